"""
Transition policy tests
The policy is pure, so listings here are plain attribute bags.
"""

from datetime import datetime, UTC
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from carmarket.schemas.listing import ListingEdit
from carmarket.schemas.moderation import (
    ApproveRequest,
    DeleteRequest,
    ForceArchiveRequest,
    RejectRequest,
    SubmitRequest,
    TransitionRequest,
)
from carmarket.services.exceptions import (
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from carmarket.services.transition_policy import Actor, decide, ensure_moderator

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)
OWNER = Actor(1)
MODERATOR = Actor(9, "moderator")
ADMIN = Actor(10, "admin")


def _listing(status="pending", owner_id=1):
    return SimpleNamespace(status=status, owner_id=owner_id)


def _submit(**fields):
    return SubmitRequest(fields=ListingEdit(**fields))


# ======================
# APPROVE / REJECT
# ======================

def test_approve_pending_listing():
    verdict = decide(_listing(), MODERATOR, ApproveRequest(), now=NOW)

    assert verdict.allow
    assert verdict.next_status == "published"
    assert verdict.patch["moderator_id"] == 9
    assert verdict.patch["moderation_date"] == NOW
    assert verdict.patch["rejection_reason"] is None
    assert "featured" not in verdict.patch
    assert verdict.log_moderator_id == 9
    assert verdict.is_transition


def test_approve_sets_featured_when_given():
    verdict = decide(_listing(), ADMIN, ApproveRequest(featured=True), now=NOW)
    assert verdict.patch["featured"] is True


@pytest.mark.parametrize("status", ["published", "rejected", "sold", "archived"])
def test_approve_requires_pending(status):
    verdict = decide(_listing(status), MODERATOR, ApproveRequest(), now=NOW)

    assert not verdict.allow
    assert verdict.error_kind is ConflictError
    with pytest.raises(ConflictError):
        verdict.raise_if_denied()


def test_approve_by_plain_user_is_denied():
    verdict = decide(_listing(), Actor(5, "user"), ApproveRequest(), now=NOW)
    assert verdict.error_kind is AuthorizationError


def test_reject_records_reason():
    verdict = decide(_listing(), MODERATOR, RejectRequest(reason="  Fake photos "), now=NOW)

    assert verdict.allow
    assert verdict.next_status == "rejected"
    assert verdict.patch["rejection_reason"] == "Fake photos"
    assert verdict.log_reason == "Fake photos"


def test_reject_with_blank_reason_is_validation_error():
    request = RejectRequest.model_construct(kind="reject", reason="   ")
    verdict = decide(_listing(), MODERATOR, request, now=NOW)
    assert verdict.error_kind is ValidationError


def test_reject_checks_role_before_status():
    verdict = decide(_listing("published"), OWNER, RejectRequest(reason="x"), now=NOW)
    assert verdict.error_kind is AuthorizationError


# ======================
# OWNER EDITS
# ======================

@pytest.mark.parametrize("status", ["published", "rejected"])
def test_core_edit_after_review_resets_to_pending(status):
    verdict = decide(_listing(status), OWNER, _submit(price=Decimal("7500")), now=NOW)

    assert verdict.allow
    assert verdict.next_status == "pending"
    assert verdict.patch["status"] == "pending"
    assert verdict.patch["moderator_id"] is None
    assert verdict.patch["moderation_date"] is None
    assert verdict.patch["rejection_reason"] is None
    assert verdict.patch["updated_at"] == NOW
    assert verdict.log_moderator_id is None
    assert verdict.is_transition


def test_non_core_edit_keeps_status():
    verdict = decide(_listing("published"), OWNER, _submit(city="Olomouc"), now=NOW)

    assert verdict.allow
    assert verdict.next_status == "published"
    assert verdict.patch == {"city": "Olomouc"}
    assert not verdict.is_transition


def test_core_edit_of_pending_listing_stays_pending_without_audit():
    verdict = decide(_listing("pending"), OWNER, _submit(title="New title"), now=NOW)

    assert verdict.allow
    assert verdict.next_status == "pending"
    assert "status" not in verdict.patch
    assert not verdict.is_transition


@pytest.mark.parametrize("status", ["sold", "archived"])
def test_edit_of_terminal_listing_is_validation_error(status):
    verdict = decide(_listing(status), OWNER, _submit(title="Again"), now=NOW)
    assert verdict.error_kind is ValidationError


def test_edit_by_non_owner_is_denied():
    verdict = decide(_listing(owner_id=2), OWNER, _submit(title="Mine now"), now=NOW)
    assert verdict.error_kind is AuthorizationError


def test_empty_edit_is_validation_error():
    verdict = decide(_listing(), OWNER, _submit(), now=NOW)
    assert verdict.error_kind is ValidationError


# ======================
# FORCED ARCHIVE / DELETE
# ======================

@pytest.mark.parametrize("status", ["pending", "published", "rejected", "sold"])
def test_force_archive_from_any_status(status):
    verdict = decide(_listing(status), MODERATOR, ForceArchiveRequest(report_id=7), now=NOW)

    assert verdict.allow
    assert verdict.next_status == "archived"
    assert verdict.log_reason == "Report #7 accepted"
    assert verdict.is_transition


def test_force_archive_of_archived_listing_is_a_no_op():
    verdict = decide(_listing("archived"), MODERATOR, ForceArchiveRequest(report_id=7), now=NOW)

    assert verdict.allow
    assert verdict.patch == {}
    assert not verdict.is_transition


def test_force_archive_requires_moderator():
    verdict = decide(_listing(), OWNER, ForceArchiveRequest(report_id=7), now=NOW)
    assert verdict.error_kind is AuthorizationError


def test_delete_by_owner_records_removed():
    verdict = decide(_listing("rejected"), OWNER, DeleteRequest(), now=NOW)

    assert verdict.allow
    assert verdict.removes
    assert verdict.next_status == "removed"


@pytest.mark.parametrize("status", ["sold", "archived"])
def test_delete_of_terminal_listing_is_refused(status):
    verdict = decide(_listing(status), OWNER, DeleteRequest(), now=NOW)
    assert verdict.error_kind is ValidationError


def test_unknown_request_type_is_denied():
    verdict = decide(_listing(), MODERATOR, object(), now=NOW)
    assert verdict.error_kind is ValidationError


def test_ensure_moderator_accepts_admin_and_rejects_user():
    ensure_moderator(ADMIN)
    ensure_moderator(Actor(3, "MODERATOR"))
    with pytest.raises(AuthorizationError):
        ensure_moderator(Actor(3, "user"))


def test_transition_requests_are_a_tagged_union():
    adapter = TypeAdapter(TransitionRequest)

    reject = adapter.validate_python({"kind": "reject", "reason": " Blurry photos "})
    archive = adapter.validate_python({"kind": "force_archive", "report_id": 3})
    submit = adapter.validate_python({"kind": "submit", "fields": {"city": "Plzen"}})

    assert isinstance(reject, RejectRequest) and reject.reason == "Blurry photos"
    assert isinstance(archive, ForceArchiveRequest)
    assert submit.fields.changes() == {"city": "Plzen"}
    with pytest.raises(PydanticValidationError):
        adapter.validate_python({"kind": "publish"})
    with pytest.raises(PydanticValidationError):
        adapter.validate_python({"kind": "reject", "reason": "   "})
