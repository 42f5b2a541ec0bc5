# carmarket/services/transition_policy.py
"""
Listing Transition Policy

Pure decision function: given a listing snapshot, the acting principal and
a validated transition request, say whether the transition is allowed and
what the listing must look like afterwards. Nothing here touches the
database or the clock; the engine supplies ``now``.

Lifecycle:
    pending   -> published (approve) | rejected (reject)
    published -> pending (owner edits title/price/description)
    rejected  -> pending (owner edits title/price/description)
    any       -> archived (forced by an accepted report)
    any but sold/archived -> removed (owner delete, audit-only pseudo-state)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Type

from carmarket.models.listing import CORE_FIELDS, EDIT_TERMINAL_STATUSES, ListingStatus
from carmarket.models.moderation_log import REMOVED_STATUS
from carmarket.models.user import UserRole
from carmarket.schemas.moderation import (
    ApproveRequest,
    DeleteRequest,
    ForceArchiveRequest,
    RejectRequest,
    SubmitRequest,
)
from carmarket.services.exceptions import (
    AuthorizationError,
    ConflictError,
    ModerationError,
    ValidationError,
)

MODERATOR_FIELDS = ("moderator_id", "moderation_date")
MODERATOR_ROLES = (UserRole.MODERATOR.value, UserRole.ADMIN.value)


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str = UserRole.USER.value

    @property
    def is_moderator(self) -> bool:
        return (self.role or "").lower() in MODERATOR_ROLES


@dataclass
class Verdict:
    allow: bool
    current_status: Optional[str] = None
    next_status: Optional[str] = None
    patch: Dict[str, Any] = field(default_factory=dict)
    cleared_fields: Tuple[str, ...] = ()
    removes: bool = False
    log_moderator_id: Optional[int] = None
    log_reason: Optional[str] = None
    error: Optional[ModerationError] = None

    @property
    def error_kind(self) -> Optional[Type[ModerationError]]:
        return type(self.error) if self.error is not None else None

    @property
    def is_transition(self) -> bool:
        """True when the status actually changes and must be audited."""
        return self.allow and self.next_status != self.current_status

    def raise_if_denied(self) -> None:
        if not self.allow:
            raise self.error


def _deny(error: ModerationError, current_status: Optional[str] = None) -> Verdict:
    return Verdict(allow=False, current_status=current_status, error=error)


def ensure_moderator(actor: Actor) -> None:
    if not actor.is_moderator:
        raise AuthorizationError("Moderator or admin role required")


# ======================
# BRANCHES
# ======================

def _decide_submit(listing, actor: Actor, request: SubmitRequest, now: Optional[datetime]) -> Verdict:
    status = listing.status
    if listing.owner_id != actor.user_id:
        return _deny(AuthorizationError("Only the owner can edit this listing"), status)
    if status in EDIT_TERMINAL_STATUSES:
        return _deny(ValidationError(f"Cannot edit a listing with status '{status}'"), status)

    changes = request.fields.changes()
    if not changes:
        return _deny(ValidationError("No editable fields supplied"), status)

    patch = dict(changes)
    touches_core = any(name in changes for name in CORE_FIELDS)
    if touches_core:
        patch["updated_at"] = now

    if touches_core and status in (ListingStatus.PUBLISHED.value, ListingStatus.REJECTED.value):
        # Content changed after review: back to the queue, earlier decision wiped
        patch.update(
            status=ListingStatus.PENDING.value,
            moderator_id=None,
            moderation_date=None,
            rejection_reason=None,
        )
        return Verdict(
            allow=True,
            current_status=status,
            next_status=ListingStatus.PENDING.value,
            patch=patch,
            cleared_fields=MODERATOR_FIELDS + ("rejection_reason",),
            log_moderator_id=None,
        )

    return Verdict(allow=True, current_status=status, next_status=status, patch=patch)


def _decide_approve(listing, actor: Actor, request: ApproveRequest, now: Optional[datetime]) -> Verdict:
    status = listing.status
    if not actor.is_moderator:
        return _deny(AuthorizationError("Moderator or admin role required"), status)
    if status != ListingStatus.PENDING.value:
        return _deny(ConflictError(
            f"Cannot approve a listing with status '{status}'; only pending listings can be approved"
        ), status)

    patch = {
        "status": ListingStatus.PUBLISHED.value,
        "moderator_id": actor.user_id,
        "moderation_date": now,
        "rejection_reason": None,
    }
    if request.featured is not None:
        patch["featured"] = request.featured
    return Verdict(
        allow=True,
        current_status=status,
        next_status=ListingStatus.PUBLISHED.value,
        patch=patch,
        cleared_fields=("rejection_reason",),
        log_moderator_id=actor.user_id,
    )


def _decide_reject(listing, actor: Actor, request: RejectRequest, now: Optional[datetime]) -> Verdict:
    status = listing.status
    if not actor.is_moderator:
        return _deny(AuthorizationError("Moderator or admin role required"), status)
    reason = (request.reason or "").strip()
    if not reason:
        return _deny(ValidationError("Rejection reason is required"), status)
    if status != ListingStatus.PENDING.value:
        return _deny(ConflictError(
            f"Cannot reject a listing with status '{status}'; only pending listings can be rejected"
        ), status)

    return Verdict(
        allow=True,
        current_status=status,
        next_status=ListingStatus.REJECTED.value,
        patch={
            "status": ListingStatus.REJECTED.value,
            "moderator_id": actor.user_id,
            "moderation_date": now,
            "rejection_reason": reason,
        },
        log_moderator_id=actor.user_id,
        log_reason=reason,
    )


def _decide_force_archive(listing, actor: Actor, request: ForceArchiveRequest, now: Optional[datetime]) -> Verdict:
    status = listing.status
    if not actor.is_moderator:
        return _deny(AuthorizationError("Only moderators can archive a listing through a report"), status)
    if status == ListingStatus.ARCHIVED.value:
        return Verdict(allow=True, current_status=status, next_status=status)

    return Verdict(
        allow=True,
        current_status=status,
        next_status=ListingStatus.ARCHIVED.value,
        patch={
            "status": ListingStatus.ARCHIVED.value,
            "moderator_id": actor.user_id,
            "moderation_date": now,
            "rejection_reason": None,
        },
        cleared_fields=("rejection_reason",),
        log_moderator_id=actor.user_id,
        log_reason=f"Report #{request.report_id} accepted",
    )


def _decide_delete(listing, actor: Actor, request: DeleteRequest, now: Optional[datetime]) -> Verdict:
    status = listing.status
    if listing.owner_id != actor.user_id:
        return _deny(AuthorizationError("Only the owner can delete this listing"), status)
    if status in EDIT_TERMINAL_STATUSES:
        return _deny(ValidationError(f"Cannot delete a listing with status '{status}'"), status)
    return Verdict(
        allow=True,
        current_status=status,
        next_status=REMOVED_STATUS,
        removes=True,
        log_moderator_id=None,
    )


_BRANCHES = {
    SubmitRequest: _decide_submit,
    ApproveRequest: _decide_approve,
    RejectRequest: _decide_reject,
    ForceArchiveRequest: _decide_force_archive,
    DeleteRequest: _decide_delete,
}


def decide(listing, actor: Actor, request, now: Optional[datetime] = None) -> Verdict:
    """
    Decide a transition request against the listing's current state.

    Args:
        listing: Object exposing ``status`` and ``owner_id``
        actor: Acting principal
        request: One of the TransitionRequest variants
        now: Timestamp written into moderation fields

    Returns:
        Verdict; when ``allow`` is False, ``error`` holds the failure
    """
    branch = _BRANCHES.get(type(request))
    if branch is None:
        return _deny(ValidationError(f"Unsupported transition request: {type(request).__name__}"))
    return branch(listing, actor, request, now)
