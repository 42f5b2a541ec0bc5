# carmarket/crud/moderation_log.py
"""
Audit Log Store - append-only moderation log.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from carmarket import models
from carmarket.models.listing import ListingStatus


def append_entry(
    db: Session,
    *,
    listing_id: int,
    moderator_id: Optional[int],
    old_status: str,
    new_status: str,
    reason: Optional[str] = None,
    changed_at: Optional[datetime] = None,
) -> models.ModerationLog:
    """
    Append one transition record. Flushed so that a write failure surfaces
    inside the caller's transaction, before it commits.
    """
    entry = models.ModerationLog(
        listing_id=listing_id,
        moderator_id=moderator_id,
        old_status=old_status,
        new_status=new_status,
        reason=reason,
    )
    if changed_at is not None:
        entry.changed_at = changed_at
    db.add(entry)
    db.flush()
    return entry


def list_by_listing(
    db: Session,
    listing_id: int,
    limit: Optional[int] = None,
    newest_first: bool = False,
) -> List[models.ModerationLog]:
    """Entries for one listing in append order (or reversed)."""
    query = db.query(models.ModerationLog).filter(
        models.ModerationLog.listing_id == listing_id
    )
    if newest_first:
        query = query.order_by(models.ModerationLog.id.desc())
    else:
        query = query.order_by(models.ModerationLog.id.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def count_for_listing(db: Session, listing_id: int) -> int:
    return db.query(models.ModerationLog).filter(
        models.ModerationLog.listing_id == listing_id
    ).count()


def replay_status(entries: Iterable[models.ModerationLog]) -> str:
    """
    Fold entries (oldest first) from the implicit initial ``pending`` state.

    Raises:
        ValueError: If an entry's old status does not continue the chain
    """
    status = ListingStatus.PENDING.value
    for entry in entries:
        if entry.old_status != status:
            raise ValueError(
                f"Broken audit chain at entry {entry.id}: "
                f"expected old status {status!r}, found {entry.old_status!r}"
            )
        status = entry.new_status
    return status
