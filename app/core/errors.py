"""
Error taxonomy for the complaint core.

Every error a caller can see carries the HTTP status the API maps it to.
UpstreamDegraded is internal only: adapters raise it, pipelines absorb it.
"""

from fastapi import status


class ComplaintError(Exception):
    """Base class for caller-visible complaint errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ComplaintError):
    """Missing required fields, invalid target role or status, illegal state for a transition."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(ComplaintError):
    """Missing, invalid or expired credential."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(ComplaintError):
    """Role or ownership mismatch for an operation."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ComplaintError):
    status_code = status.HTTP_404_NOT_FOUND


class StorageError(ComplaintError):
    """Document or blob store failure. Fatal for the current request."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamDegraded(Exception):
    """
    Detector, reasoning model or geocoder failure.

    Never surfaced to the caller: the evidence pipelines catch it and apply
    their fallback policy.
    """
