# carmarket/crud/user.py
from typing import List, Optional, Tuple

from sqlalchemy import desc, or_, update
from sqlalchemy.orm import Session

from carmarket import models


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(
        models.User.id == user_id
    ).populate_existing().first()


def list_users(
    db: Session,
    *,
    role: Optional[str] = None,
    search: Optional[str] = None,
    offset: int = 0,
    limit: int = 50,
) -> Tuple[List[models.User], int]:
    """Newest accounts first, optionally narrowed by role and a name/email search."""
    query = db.query(models.User)
    if role:
        query = query.filter(models.User.role == role)
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(models.User.username.ilike(like), models.User.email.ilike(like))
        )
    total = query.count()
    users = (
        query.order_by(desc(models.User.created_at), desc(models.User.id))
        .offset(offset)
        .limit(limit)
        .all()
    )
    return users, total


def conditional_role_update(db: Session, user_id: int, expected_role: str, new_role: str) -> bool:
    """Change the role only if it is still ``expected_role``. Does not commit."""
    result = db.execute(
        update(models.User)
        .where(
            models.User.id == user_id,
            models.User.role == expected_role,
        )
        .values(role=new_role)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
