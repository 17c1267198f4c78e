"""
Auth Service - Firebase ID token verification and role management.

Roles live in the "role" custom claim of the Firebase user. A token without
the claim belongs to a citizen.
"""

from typing import Callable, Dict, Optional
import logging

from firebase_admin import auth as firebase_auth

from app.config.firebase import initialize_firebase_app
from app.core.errors import AuthenticationError, AuthorizationError, ValidationError
from app.models.user import Actor, Role

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class AuthService:
    """
    Identity adapter.

    verify_token and set_claims default to the Firebase Admin SDK; tests
    pass plain callables instead.
    """

    ROLE_CLAIM = "role"

    def __init__(
        self,
        verify_token: Optional[Callable[[str], Dict]] = None,
        set_claims: Optional[Callable[[str, Dict], None]] = None,
    ):
        self._verify_token = verify_token
        self._set_claims = set_claims

    def _verify(self, id_token: str) -> Dict:
        if self._verify_token is not None:
            return self._verify_token(id_token)
        initialize_firebase_app()
        return firebase_auth.verify_id_token(id_token)

    def _store_claims(self, uid: str, claims: Dict) -> None:
        if self._set_claims is not None:
            self._set_claims(uid, claims)
            return
        initialize_firebase_app()
        firebase_auth.set_custom_user_claims(uid, claims)

    def verify_bearer_token(self, authorization: Optional[str]) -> Actor:
        """
        Resolve the caller from an "Authorization: Bearer <token>" header.

        Raises:
            AuthenticationError: Missing header, malformed header, or a token
                the identity provider rejects
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise AuthenticationError("Missing or invalid Authorization header")

        id_token = authorization[len(BEARER_PREFIX):].strip()
        if not id_token:
            raise AuthenticationError("Missing or invalid Authorization header")

        try:
            decoded = self._verify(id_token)
        except Exception as e:
            logger.warning(f"❌ Token verification failed: {e}")
            raise AuthenticationError("Invalid or expired token") from e

        uid = decoded.get("uid") or decoded.get("sub")
        if not uid:
            raise AuthenticationError("Invalid or expired token")

        role_claim = decoded.get(self.ROLE_CLAIM) or Role.CITIZEN.value
        try:
            role = Role(role_claim)
        except ValueError:
            logger.warning(f"User {uid} has unknown role claim {role_claim!r}, treating as citizen")
            role = Role.CITIZEN

        return Actor(uid=uid, role=role, email=decoded.get("email"))

    def assign_user_role(self, actor: Actor, target_uid: str, role: str) -> Role:
        """
        Set the role custom claim of another user (admin only).

        The new role takes effect once the target refreshes their ID token.

        Raises:
            AuthorizationError: Actor is not an admin
            ValidationError: Unknown role or empty target uid
        """
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Admin access only")

        if not target_uid or not target_uid.strip():
            raise ValidationError("Target uid is required")

        try:
            new_role = Role(role)
        except ValueError:
            raise ValidationError(f"Invalid role '{role}'. Allowed values: {[r.value for r in Role]}")

        try:
            self._store_claims(target_uid, {self.ROLE_CLAIM: new_role.value})
        except firebase_auth.UserNotFoundError as e:
            raise ValidationError(f"Unknown user: {target_uid}") from e

        logger.info(f"✅ Role {new_role.value} assigned to {target_uid} by admin {actor.uid}")
        return new_role


# Global service instance (singleton pattern)
_auth_service = None


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
