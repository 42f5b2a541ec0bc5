# carmarket/services/moderation_engine.py
"""
Moderation Engine - listing lifecycle orchestration

Every entry point follows the same discipline:
    load -> transition_policy.decide -> conditional write -> audit append -> commit

The conditional write matches the status and version that the decision was
computed against, so a concurrent writer makes this call fail with
ConflictError instead of being overwritten. The status write and its audit
entry share one transaction: either both are committed or neither is.
Nothing here retries; retrying after a conflict is the caller's decision.
"""

import logging
from datetime import datetime, timedelta, UTC
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carmarket import models
from carmarket.config import settings
from carmarket.crud import listing as listing_crud
from carmarket.crud import moderation_log as moderation_log_crud
from carmarket.models.listing import ListingStatus
from carmarket.models.moderation_log import REMOVED_STATUS
from carmarket.schemas.listing import ListingCreate, ListingEdit
from carmarket.schemas.moderation import (
    ApproveRequest,
    DeleteRequest,
    RejectRequest,
    SubmitRequest,
)
from carmarket.services import transition_policy
from carmarket.services.exceptions import (
    AuthorizationError,
    ConflictError,
    ModerationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    from_pydantic,
)
from carmarket.services.transition_policy import Actor, Verdict

logger = logging.getLogger(__name__)


# =====================================
# CONFIGURATION CONSTANTS
# =====================================

class QueuePolicy:
    """Moderation queue sort options."""
    SORT_FIELDS = {
        "createdAt": "created_at",
        "created_at": "created_at",
        "updatedAt": "updated_at",
        "updated_at": "updated_at",
    }
    DEFAULT_SORT = "created_at"


STATS_PERIODS = ("today", "week", "month", "all")


# =====================================
# INTERNAL HELPERS
# =====================================

def _now() -> datetime:
    return datetime.now(UTC)


def _load_listing(db: Session, listing_id: int) -> models.Listing:
    listing = listing_crud.get_listing(db, listing_id)
    if not listing:
        raise NotFoundError(f"Listing {listing_id} not found")
    return listing


def _persist_verdict(db: Session, listing: models.Listing, verdict: Verdict, now: datetime) -> None:
    """Conditional write plus audit append. Does not commit."""
    listing_id = listing.id
    expected_status = listing.status
    expected_version = listing.version

    if verdict.removes:
        applied = listing_crud.conditional_delete(db, listing_id, expected_status, expected_version)
    elif verdict.patch:
        applied = listing_crud.conditional_update(
            db, listing_id, expected_status, expected_version, verdict.patch
        )
    else:
        applied = True

    if not applied:
        logger.info(
            "Lost race on listing %s (expected status=%s version=%s)",
            listing_id, expected_status, expected_version,
        )
        raise ConflictError(
            f"Listing {listing_id} was changed by another request; reload and retry"
        )

    if verdict.is_transition:
        moderation_log_crud.append_entry(
            db,
            listing_id=listing_id,
            moderator_id=verdict.log_moderator_id,
            old_status=expected_status,
            new_status=verdict.next_status,
            reason=verdict.log_reason,
            changed_at=now,
        )


def apply_transition(
    db: Session,
    listing_id: int,
    actor: Actor,
    request,
    *,
    now: Optional[datetime] = None,
) -> Verdict:
    """
    Decide and write one transition inside the caller's transaction.

    Used directly by callers that must commit other rows atomically with the
    listing change (report resolution). Does not commit or roll back.

    Raises:
        NotFoundError, ValidationError, ConflictError, AuthorizationError
    """
    now = now or _now()
    listing = _load_listing(db, listing_id)
    verdict = transition_policy.decide(listing, actor, request, now=now)
    verdict.raise_if_denied()
    _persist_verdict(db, listing, verdict, now)
    return verdict


def _run_transition(db: Session, listing_id: int, actor: Actor, request) -> Verdict:
    """apply_transition in its own transaction."""
    try:
        verdict = apply_transition(db, listing_id, actor, request)
        db.commit()
    except ModerationError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Transition on listing %s rolled back", listing_id, exc_info=True)
        raise PersistenceError(f"Transition on listing {listing_id} failed: {exc}") from exc
    except Exception:
        db.rollback()
        raise

    if verdict.is_transition:
        logger.info(
            "Listing %s: %s -> %s by user %s (%s)",
            listing_id, verdict.current_status, verdict.next_status,
            actor.user_id, type(request).__name__,
        )
    return verdict


def _validate(schema, data):
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise from_pydantic(exc) from exc


# =====================================
# OWNER ENTRY POINTS
# =====================================

def create_listing(db: Session, owner_id: int, fields: Any) -> models.Listing:
    """
    Store a new listing as ``pending``.

    No audit entry is written: ``pending`` is the implicit initial state
    that audit replay starts from.
    """
    payload = _validate(ListingCreate, fields)
    try:
        listing = listing_crud.create_listing(db, owner_id, payload.model_dump())
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Failed to create listing: {exc}") from exc
    db.refresh(listing)
    logger.info("Listing %s created by user %s", listing.id, owner_id)
    return listing


def submit_listing(db: Session, listing_id: int, owner_id: int, fields: Any) -> models.Listing:
    """
    Apply an owner edit.

    Editing title, price or description of a published or rejected listing
    sends it back to ``pending`` and clears the previous moderation decision.

    Args:
        db: Database session
        listing_id: Listing ID
        owner_id: Acting user, must own the listing
        fields: ListingEdit or a mapping of the fields to change

    Returns:
        The updated listing

    Raises:
        NotFoundError: Listing does not exist
        AuthorizationError: Caller is not the owner
        ValidationError: Bad payload, or listing is sold/archived
        ConflictError: Listing changed between read and write
    """
    edit = _validate(ListingEdit, fields)
    _run_transition(db, listing_id, Actor(owner_id), SubmitRequest(fields=edit))
    return _load_listing(db, listing_id)


def delete_listing(db: Session, listing_id: int, owner_id: int) -> Dict[str, Any]:
    """Remove a listing permanently, recording ``<status> -> removed``."""
    verdict = _run_transition(db, listing_id, Actor(owner_id), DeleteRequest())
    return {
        "listing_id": listing_id,
        "old_status": verdict.current_status,
        "new_status": REMOVED_STATUS,
        "message": "Listing deleted",
    }


def view_listing(db: Session, listing_id: int, viewer: Optional[Actor] = None) -> models.Listing:
    """
    Public read. Published listings are visible to everyone and count a view;
    other statuses are visible only to the owner and moderators and never
    count a view.
    """
    listing = _load_listing(db, listing_id)
    if listing.status != ListingStatus.PUBLISHED.value:
        if viewer is None or not (viewer.is_moderator or viewer.user_id == listing.owner_id):
            raise AuthorizationError("This listing is not public")
        return listing

    try:
        listing_crud.increment_views(db, listing_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Failed to record view: {exc}") from exc
    return _load_listing(db, listing_id)


# =====================================
# MODERATOR ENTRY POINTS
# =====================================

def decide_listing(
    db: Session,
    listing_id: int,
    moderator_id: int,
    role: str,
    action: str,
    reason: Optional[str] = None,
    featured: Optional[bool] = None,
) -> models.Listing:
    """
    Approve or reject a pending listing.

    Args:
        db: Database session
        listing_id: Listing ID
        moderator_id: Acting moderator
        role: Acting user's role (moderator or admin)
        action: "approve" or "reject"
        reason: Required for reject
        featured: Optional featured flag on approve

    Returns:
        The updated listing

    Raises:
        AuthorizationError: Role is not moderator/admin
        NotFoundError: Listing does not exist
        ValidationError: Unknown action or missing reason
        ConflictError: Listing is not pending, or another decision won the race
    """
    actor = Actor(moderator_id, role)
    transition_policy.ensure_moderator(actor)

    if action == "approve":
        request = ApproveRequest(featured=featured)
    elif action == "reject":
        request = _validate(RejectRequest, {"reason": reason if reason is not None else ""})
    else:
        raise ValidationError(f"Unknown moderation action: {action!r}")

    _run_transition(db, listing_id, actor, request)
    return _load_listing(db, listing_id)


def _parse_batch_ids(listing_ids: Any) -> List[int]:
    if not isinstance(listing_ids, (list, tuple)) or len(listing_ids) == 0:
        raise ValidationError("listing_ids must be a non-empty list")
    if len(listing_ids) > settings.MODERATION_BATCH_LIMIT:
        raise ValidationError(
            f"At most {settings.MODERATION_BATCH_LIMIT} listings can be approved at once"
        )

    parsed: List[int] = []
    for raw in listing_ids:
        if isinstance(raw, bool):
            continue
        try:
            value = int(raw)
        except (TypeError, ValueError):
            continue
        if value > 0 and value not in parsed:
            parsed.append(value)

    if not parsed:
        raise ValidationError("No valid listing ids supplied")
    return parsed


def batch_approve(
    db: Session,
    listing_ids: Any,
    moderator_id: int,
    role: str,
    featured: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    Approve many listings, one independent transition per id.

    A listing that is missing, no longer pending, or lost a race is skipped
    and reported; it does not abort the rest of the batch.

    Returns:
        {"approved_ids": [...], "skipped_ids": [...], "skipped": {id: reason}}

    Raises:
        AuthorizationError: Role is not moderator/admin
        ValidationError: Empty, oversized or entirely malformed id list
    """
    transition_policy.ensure_moderator(Actor(moderator_id, role))
    ids = _parse_batch_ids(listing_ids)

    approved: List[int] = []
    skipped: Dict[int, str] = {}
    for listing_id in ids:
        try:
            decide_listing(db, listing_id, moderator_id, role, "approve", featured=featured)
            approved.append(listing_id)
        except ModerationError as exc:
            logger.info("Batch approve skipped listing %s: %s", listing_id, exc)
            skipped[listing_id] = str(exc)
        except PersistenceError as exc:
            logger.error("Batch approve failed on listing %s: %s", listing_id, exc)
            skipped[listing_id] = str(exc)

    logger.info(
        "Batch approve by moderator %s: %d approved, %d skipped",
        moderator_id, len(approved), len(skipped),
    )
    return {
        "approved_ids": approved,
        "skipped_ids": list(skipped.keys()),
        "skipped": skipped,
    }


# =====================================
# READ-ONLY VIEWS
# =====================================

def get_moderation_queue(
    db: Session,
    page: int = 1,
    limit: Optional[int] = None,
    sort_by: str = "createdAt",
    order: str = "asc",
) -> Dict[str, Any]:
    """
    Pending listings in a stable order, one page at a time. Never writes.

    Unknown sort fields fall back to creation time; any order other than
    "asc" sorts descending.
    """
    if limit is None:
        limit = settings.MODERATION_QUEUE_DEFAULT_LIMIT
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    limit = min(limit, settings.MODERATION_QUEUE_MAX_LIMIT)

    sort_field = QueuePolicy.SORT_FIELDS.get(sort_by, QueuePolicy.DEFAULT_SORT)
    descending = (order or "").strip().lower() != "asc"

    items, total = listing_crud.list_by_status(
        db,
        ListingStatus.PENDING.value,
        offset=(page - 1) * limit,
        limit=limit,
        sort_field=sort_field,
        descending=descending,
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit,
    }


def get_listing_for_moderation(db: Session, listing_id: int, log_limit: Optional[int] = None) -> Dict[str, Any]:
    """Listing plus its newest audit entries, warning when already decided."""
    listing = _load_listing(db, listing_id)
    history = moderation_log_crud.list_by_listing(
        db,
        listing_id,
        limit=log_limit or settings.MODERATION_LOG_PREVIEW_LIMIT,
        newest_first=True,
    )
    warning = None
    if listing.status != ListingStatus.PENDING.value:
        warning = f"Listing already processed (status: {listing.status})"
    return {"listing": listing, "history": history, "warning": warning}


def get_listing_history(
    db: Session,
    listing_id: int,
    viewer: Optional[Actor] = None,
) -> List[models.ModerationLog]:
    """
    Full audit trail, oldest first. Works for deleted listings too.

    With a non-moderator ``viewer`` only the owner of a still existing
    listing may read it.
    """
    if viewer is not None and not viewer.is_moderator:
        listing = listing_crud.get_listing(db, listing_id)
        if listing is None or listing.owner_id != viewer.user_id:
            raise AuthorizationError("Only the owner or a moderator can view this history")
    return moderation_log_crud.list_by_listing(db, listing_id)


def verify_audit_chain(db: Session, listing_id: int) -> bool:
    """
    True when replaying the audit trail reproduces the stored status
    (or ``removed`` for a deleted listing).
    """
    entries = moderation_log_crud.list_by_listing(db, listing_id)
    try:
        replayed = moderation_log_crud.replay_status(entries)
    except ValueError:
        return False
    listing = listing_crud.get_listing(db, listing_id)
    stored = listing.status if listing else REMOVED_STATUS
    return replayed == stored


def _period_start(period: str, now: datetime) -> Optional[datetime]:
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    return None


def get_moderation_stats(db: Session, period: str = "today") -> Dict[str, Any]:
    """Listing counts and moderator activity for today/week/month/all."""
    if period not in STATS_PERIODS:
        raise ValidationError(f"period must be one of: {', '.join(STATS_PERIODS)}")
    since = _period_start(period, _now())

    def _count(status: str, column) -> int:
        query = db.query(models.Listing).filter(models.Listing.status == status)
        if since is not None:
            query = query.filter(column >= since)
        return query.count()

    pending = _count(ListingStatus.PENDING.value, models.Listing.created_at)
    published = _count(ListingStatus.PUBLISHED.value, models.Listing.moderation_date)
    rejected = _count(ListingStatus.REJECTED.value, models.Listing.moderation_date)

    log_query = db.query(models.ModerationLog)
    activity_query = db.query(
        models.ModerationLog.moderator_id,
        func.count(models.ModerationLog.id),
    ).filter(models.ModerationLog.moderator_id.isnot(None))
    if since is not None:
        log_query = log_query.filter(models.ModerationLog.changed_at >= since)
        activity_query = activity_query.filter(models.ModerationLog.changed_at >= since)
    activity = activity_query.group_by(models.ModerationLog.moderator_id).all()

    return {
        "period": period,
        "listings": {
            "pending": pending,
            "published": published,
            "rejected": rejected,
            "total": pending + published + rejected,
        },
        "moderation": {
            "total_actions": log_query.count(),
            "moderator_activity": [
                {"moderator_id": moderator_id, "count": int(count)}
                for moderator_id, count in activity
            ],
        },
    }
