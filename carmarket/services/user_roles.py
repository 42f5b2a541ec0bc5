# carmarket/services/user_roles.py
"""
Moderator Role Management

Admins grant and revoke the moderator role that every moderation entry
point checks. Admin accounts are never changed here. The role is read
from the users table on every request, so a change applies to the next
request the user makes.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carmarket import models
from carmarket.config import settings
from carmarket.crud import user as user_crud
from carmarket.models.user import UserRole
from carmarket.services.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from carmarket.services.transition_policy import Actor

logger = logging.getLogger(__name__)


def ensure_admin(actor: Actor) -> None:
    if (actor.role or "").lower() != UserRole.ADMIN.value:
        raise AuthorizationError("Admin role required")


def list_users(
    db: Session,
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Paginated user directory for choosing moderators."""
    if role is not None:
        try:
            role = UserRole(role.strip().lower()).value
        except ValueError:
            allowed = ", ".join(r.value for r in UserRole)
            raise ValidationError(f"role must be one of: {allowed}")
    if limit is None:
        limit = settings.USER_LIST_DEFAULT_LIMIT
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    limit = min(limit, settings.USER_LIST_MAX_LIMIT)

    users, total = user_crud.list_users(
        db,
        role=role,
        search=(search or "").strip() or None,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return {
        "items": users,
        "total": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit,
    }


def _change_role(
    db: Session,
    user_id: int,
    admin: Actor,
    expected_role: str,
    new_role: str,
) -> models.User:
    ensure_admin(admin)
    user = user_crud.get_user(db, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    current = (user.role or UserRole.USER.value).lower()
    if current == UserRole.ADMIN.value:
        raise ValidationError("The admin role cannot be changed")
    if current != expected_role:
        if new_role == UserRole.MODERATOR.value:
            raise ValidationError(f"User {user_id} is already a moderator")
        raise ValidationError(f"User {user_id} is not a moderator")

    try:
        applied = user_crud.conditional_role_update(db, user_id, user.role, new_role)
        if not applied:
            db.rollback()
            raise ConflictError(f"User {user_id} was changed by another request")
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Role change for user %s rolled back", user_id, exc_info=True)
        raise PersistenceError(f"Failed to change role of user {user_id}: {exc}") from exc

    logger.info("User %s role %s -> %s by admin %s", user_id, current, new_role, admin.user_id)
    return user_crud.get_user(db, user_id)


def promote_to_moderator(db: Session, user_id: int, admin_id: int, admin_role: str) -> models.User:
    """
    Grant the moderator role to a plain user.

    Raises:
        AuthorizationError: Caller is not an admin
        NotFoundError: User does not exist
        ValidationError: Target is an admin or already a moderator
        ConflictError: Role changed concurrently
    """
    return _change_role(
        db, user_id, Actor(admin_id, admin_role), UserRole.USER.value, UserRole.MODERATOR.value
    )


def demote_from_moderator(db: Session, user_id: int, admin_id: int, admin_role: str) -> models.User:
    """Take the moderator role away again. Refuses admins and non-moderators."""
    return _change_role(
        db, user_id, Actor(admin_id, admin_role), UserRole.MODERATOR.value, UserRole.USER.value
    )
