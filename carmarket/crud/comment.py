from typing import Optional

from sqlalchemy.orm import Session

from carmarket import models


def get_comment(db: Session, comment_id: int) -> Optional[models.Comment]:
    return db.query(models.Comment).filter(
        models.Comment.id == comment_id
    ).populate_existing().first()


def set_hidden(db: Session, comment_id: int, hidden: bool = True) -> Optional[models.Comment]:
    comment = get_comment(db, comment_id)
    if not comment:
        return None
    comment.is_hidden = hidden
    db.flush()
    return comment
