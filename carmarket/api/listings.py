# carmarket/api/listings.py
"""
Listing API Router
Owner-facing endpoints. Edits that touch reviewed content send the listing
back to the moderation queue.

Endpoints:
- POST /listings/ - Create a listing (starts pending)
- PATCH /listings/{listing_id} - Edit / resubmit
- DELETE /listings/{listing_id} - Delete (audited as removed)
- GET /listings/{listing_id} - View; counts a view when published
- GET /listings/{listing_id}/history - Audit trail (owner or moderator)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from carmarket.api.deps import actor_for, to_http_exception
from carmarket.database import get_db
from carmarket.models.user import User
from carmarket.schemas.listing import ListingCreate, ListingEdit, ListingResponse
from carmarket.schemas.moderation import ModerationLogResponse
from carmarket.services import moderation_engine
from carmarket.services.exceptions import ModerationError, PersistenceError
from carmarket.utils.security import get_current_user, get_optional_user

router = APIRouter(prefix="/listings", tags=["listings"])


@router.post("/", response_model=ListingResponse, status_code=status.HTTP_201_CREATED)
def create_listing(
    listing: ListingCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.create_listing(db, current_user.id, listing)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.patch("/{listing_id}", response_model=ListingResponse)
def edit_listing(
    listing_id: int,
    changes: ListingEdit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Edit a listing you own.

    Changing title, price or description of a published or rejected
    listing puts it back in the moderation queue.
    """
    try:
        return moderation_engine.submit_listing(db, listing_id, current_user.id, changes)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.delete("/{listing_id}")
def delete_listing(
    listing_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.delete_listing(db, listing_id, current_user.id)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.get("/{listing_id}", response_model=ListingResponse)
def view_listing(
    listing_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    viewer = actor_for(current_user) if current_user is not None else None
    try:
        return moderation_engine.view_listing(db, listing_id, viewer)
    except (ModerationError, PersistenceError) as e:
        raise to_http_exception(e)


@router.get("/{listing_id}/history", response_model=List[ModerationLogResponse])
def listing_history(
    listing_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return moderation_engine.get_listing_history(db, listing_id, actor_for(current_user))
    except ModerationError as e:
        raise to_http_exception(e)
