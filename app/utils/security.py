"""
Request security: the authenticated actor as a FastAPI dependency.

Routes depend on get_current_actor; everything below the route layer
receives the Actor explicitly.
"""

import logging
from typing import Optional

from fastapi import Depends, Header

from app.core.errors import AuthorizationError
from app.models.user import Actor, Role
from app.services.auth_service import get_auth_service

logger = logging.getLogger(__name__)


def get_current_actor(authorization: Optional[str] = Header(None)) -> Actor:
    """
    Verify the bearer token before any core logic runs.

    Raises:
        AuthenticationError: Mapped to 401 by the app's error handler
    """
    return get_auth_service().verify_bearer_token(authorization)


def require_role(*roles: Role):
    """
    Build a dependency that only lets the given roles through.

    Usage:
        @router.get("/admin/complaints")
        def list_all(actor: Actor = Depends(require_role(Role.ADMIN))): ...
    """
    allowed = ", ".join(r.value for r in roles)

    def _guard(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            logger.warning(f"Refused {actor.role.value} {actor.uid}: requires {allowed}")
            raise AuthorizationError(f"{allowed.capitalize()} access only")
        return actor

    return _guard
