# carmarket/api/moderation.py
"""
Moderation API Router
Moderator/admin endpoints over the listing lifecycle.

Endpoints:
- GET /moderation/pending - Moderation queue (paginated)
- GET /moderation/listing/{listing_id} - Listing with recent audit entries
- POST /moderation/listing/{listing_id}/approve - Approve a pending listing
- POST /moderation/listing/{listing_id}/reject - Reject with a reason
- POST /moderation/batch/approve - Approve many, skipping the rest
- GET /moderation/stats - Counts and moderator activity
- GET /moderation/users - User directory (admin)
- POST /moderation/users/{user_id}/promote - Grant moderator role (admin)
- POST /moderation/users/{user_id}/demote - Revoke moderator role (admin)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from carmarket.api.deps import require_admin, require_moderator, to_http_exception
from carmarket.database import get_db
from carmarket.models.user import User
from carmarket.schemas.listing import ListingResponse
from carmarket.schemas.moderation import (
    ApprovePayload,
    BatchApprovePayload,
    BatchApproveResponse,
    ListingForModerationResponse,
    ModerationQueueResponse,
    RejectPayload,
)
from carmarket.schemas.user import UserListResponse, UserResponse
from carmarket.services import moderation_engine, user_roles
from carmarket.services.exceptions import ModerationError, PersistenceError

router = APIRouter(prefix="/moderation", tags=["moderation"])


# ======================
# QUEUE
# ======================
@router.get("/pending", response_model=ModerationQueueResponse)
def get_pending_listings(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = Query("asc"),
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.get_moderation_queue(
            db, page=page, limit=limit, sort_by=sort_by, order=order
        )
    except ModerationError as e:
        raise to_http_exception(e)


@router.get("/listing/{listing_id}", response_model=ListingForModerationResponse)
def get_listing_for_moderation(
    listing_id: int,
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.get_listing_for_moderation(db, listing_id)
    except ModerationError as e:
        raise to_http_exception(e)


# ======================
# DECISIONS
# ======================
@router.post("/listing/{listing_id}/approve", response_model=ListingResponse)
def approve_listing(
    listing_id: int,
    payload: Optional[ApprovePayload] = None,
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db)
):
    featured = payload.featured if payload is not None else None
    try:
        return moderation_engine.decide_listing(
            db, listing_id, moderator.id, moderator.role, "approve", featured=featured
        )
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.post("/listing/{listing_id}/reject", response_model=ListingResponse)
def reject_listing(
    listing_id: int,
    payload: RejectPayload,
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.decide_listing(
            db, listing_id, moderator.id, moderator.role, "reject", reason=payload.reason
        )
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.post("/batch/approve", response_model=BatchApproveResponse)
def batch_approve_listings(
    payload: BatchApprovePayload,
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.batch_approve(
            db, payload.listing_ids, moderator.id, moderator.role, featured=payload.featured
        )
    except ModerationError as e:
        raise to_http_exception(e)


# ======================
# STATS
# ======================
@router.get("/stats")
def get_moderation_stats(
    period: str = Query("today"),
    moderator: User = Depends(require_moderator),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.get_moderation_stats(db, period=period)
    except ModerationError as e:
        raise to_http_exception(e)


# ======================
# MODERATOR ROLES (admin only)
# ======================
@router.get("/users", response_model=UserListResponse)
def get_users(
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search by username or email"),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        return user_roles.list_users(db, role=role, search=search, page=page, limit=limit)
    except ModerationError as e:
        raise to_http_exception(e)


@router.post("/users/{user_id}/promote", response_model=UserResponse)
def promote_to_moderator(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        return user_roles.promote_to_moderator(db, user_id, admin.id, admin.role)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.post("/users/{user_id}/demote", response_model=UserResponse)
def demote_from_moderator(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        return user_roles.demote_from_moderator(db, user_id, admin.id, admin.role)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)
