# carmarket/crud/listing.py
"""
Listing Record Store - CRUD Operations

Every status-bearing write goes through a conditional (compare-and-swap)
statement keyed on the status and version the caller observed. None of
these functions commit; the service layer owns the transaction.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import asc, delete, desc, update
from sqlalchemy.orm import Session

from carmarket import models
from carmarket.models.listing import ListingStatus


# =====================================
# READS
# =====================================

def get_listing(db: Session, listing_id: int) -> Optional[models.Listing]:
    """
    Load a listing, always refreshing it from the database.

    Args:
        db: Database session
        listing_id: Listing ID

    Returns:
        Listing object or None if not found
    """
    return db.query(models.Listing).filter(
        models.Listing.id == listing_id
    ).populate_existing().first()


def list_by_status(
    db: Session,
    status: str,
    *,
    offset: int = 0,
    limit: int = 20,
    sort_field: str = "created_at",
    descending: bool = False,
) -> Tuple[List[models.Listing], int]:
    """
    Ordered slice of listings in one status plus the total count.

    The listing id breaks ties so that the ordering is stable across pages.
    """
    query = db.query(models.Listing).filter(models.Listing.status == status)
    total = query.count()

    column = getattr(models.Listing, sort_field)
    direction = desc if descending else asc
    items = (
        query.order_by(direction(column), direction(models.Listing.id))
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


# =====================================
# WRITES
# =====================================

def create_listing(db: Session, owner_id: int, fields: Dict[str, Any]) -> models.Listing:
    """
    Create a new listing awaiting review.

    Args:
        db: Database session
        owner_id: Owner user ID
        fields: Validated listing fields

    Returns:
        Created Listing object (flushed, not committed)
    """
    listing = models.Listing(
        owner_id=owner_id,
        status=ListingStatus.PENDING.value,
        version=1,
        **fields,
    )
    db.add(listing)
    db.flush()
    return listing


def conditional_update(
    db: Session,
    listing_id: int,
    expected_status: str,
    expected_version: int,
    patch: Dict[str, Any],
) -> bool:
    """
    Apply ``patch`` only if the row still has the observed status and version.

    Args:
        db: Database session
        listing_id: Listing ID
        expected_status: Status the caller's decision was computed against
        expected_version: Version the caller read
        patch: Column values to write

    Returns:
        True if exactly one row was updated, False if the precondition no
        longer holds (row changed or vanished)
    """
    values = dict(patch)
    values["version"] = models.Listing.version + 1
    result = db.execute(
        update(models.Listing)
        .where(
            models.Listing.id == listing_id,
            models.Listing.status == expected_status,
            models.Listing.version == expected_version,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def conditional_delete(
    db: Session,
    listing_id: int,
    expected_status: str,
    expected_version: int,
) -> bool:
    """Delete the listing if it is still in the observed status and version."""
    result = db.execute(
        delete(models.Listing)
        .where(
            models.Listing.id == listing_id,
            models.Listing.status == expected_status,
            models.Listing.version == expected_version,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_views(db: Session, listing_id: int) -> bool:
    """
    Count one public view. Only published listings are counted.

    The view counter is not a moderation field, so the version is left alone.
    """
    result = db.execute(
        update(models.Listing)
        .where(
            models.Listing.id == listing_id,
            models.Listing.status == ListingStatus.PUBLISHED.value,
        )
        .values(views=models.Listing.views + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
