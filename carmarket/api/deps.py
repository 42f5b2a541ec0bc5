# carmarket/api/deps.py
"""Shared route dependencies and error translation."""

from fastapi import Depends, HTTPException, status

from carmarket.models.user import User
from carmarket.services.exceptions import (
    AuthorizationError,
    ConflictError,
    ModerationError,
    NotFoundError,
    ValidationError,
)
from carmarket.services.transition_policy import Actor
from carmarket.utils.security import get_current_user


# ─────────────────────────────────────────
# HELPER: Enforce moderator access
# ─────────────────────────────────────────
def require_moderator(current_user: User = Depends(get_current_user)):
    if not current_user.is_moderator:
        raise HTTPException(status_code=403, detail="Moderator access required")
    return current_user


# ─────────────────────────────────────────
# HELPER: Enforce admin access
# ─────────────────────────────────────────
def require_admin(current_user: User = Depends(get_current_user)):
    if (current_user.role or "").lower() != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user


def actor_for(user: User) -> Actor:
    return Actor(user.id, (user.role or "user").lower())


_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
)


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a service failure to the HTTP error returned to the client."""
    if isinstance(exc, ModerationError):
        for error_type, code in _STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                return HTTPException(status_code=code, detail=str(exc))
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    # PersistenceError: the transaction was rolled back
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Could not save changes, nothing was applied",
    )
