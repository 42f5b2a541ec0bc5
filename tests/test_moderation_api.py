from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException

from carmarket.api import listings as listings_api
from carmarket.api import moderation as moderation_api
from carmarket.api import reports as reports_api
from carmarket.api.deps import require_admin, require_moderator, to_http_exception
from carmarket.schemas.listing import ListingCreate, ListingEdit
from carmarket.schemas.moderation import ApprovePayload, BatchApprovePayload, RejectPayload
from carmarket.schemas.report import ReportCreate, ReportStatusUpdate
from carmarket.services.exceptions import PersistenceError
from carmarket.utils.security import create_access_token, get_current_user, get_optional_user

from conftest import create_user, listing_fields


def _status_code(call):
    with pytest.raises(HTTPException) as exc_info:
        call()
    return exc_info.value.status_code


def _queue(db, moderator, **kwargs):
    params = {"page": 1, "limit": None, "sort_by": "createdAt", "order": "asc"}
    params.update(kwargs)
    return moderation_api.get_pending_listings(moderator=moderator, db=db, **params)


# ======================
# PRINCIPAL RESOLUTION
# ======================

def test_token_resolves_active_user(db_session, moderator):
    token = create_access_token({"sub": moderator.id, "role": "user"})

    user = get_current_user(token=token, db=db_session)

    assert user.id == moderator.id
    # Role comes from the stored user, not from the claim
    assert require_moderator(current_user=user) is user


def test_bad_tokens_are_unauthorized(db_session, owner):
    inactive = create_user(db_session, "ghost", is_active=False)
    expired = create_access_token({"sub": owner.id}, expires_delta=timedelta(minutes=-5))

    assert _status_code(lambda: get_current_user(token="not-a-jwt", db=db_session)) == 401
    assert _status_code(lambda: get_current_user(token=expired, db=db_session)) == 401
    assert _status_code(lambda: get_current_user(
        token=create_access_token({"sub": inactive.id}), db=db_session
    )) == 401
    assert _status_code(lambda: get_current_user(
        token=create_access_token({"sub": 4242}), db=db_session
    )) == 401
    assert _status_code(lambda: get_current_user(
        token=create_access_token({"sub": "owner@test.dev"}), db=db_session
    )) == 401


def test_optional_user_allows_anonymous(db_session, owner):
    assert get_optional_user(token=None, db=db_session) is None
    token = create_access_token({"sub": owner.id})
    assert get_optional_user(token=token, db=db_session).id == owner.id


def test_require_moderator_rejects_plain_user(owner, admin):
    assert _status_code(lambda: require_moderator(current_user=owner)) == 403
    assert require_moderator(current_user=admin) is admin


def test_error_mapping():
    assert to_http_exception(PersistenceError("boom")).status_code == 500


# ======================
# LISTINGS
# ======================

def test_listing_routes_lifecycle(db_session, owner, other_user, moderator):
    created = listings_api.create_listing(
        listing=ListingCreate(**listing_fields()), current_user=owner, db=db_session
    )
    listing_id = created.id
    assert created.status == "pending"

    assert _status_code(lambda: listings_api.view_listing(
        listing_id, current_user=None, db=db_session
    )) == 403
    assert _status_code(lambda: listings_api.edit_listing(
        listing_id, changes=ListingEdit(title="Hijack"), current_user=other_user, db=db_session
    )) == 403
    assert _status_code(lambda: listings_api.edit_listing(
        listing_id, changes=ListingEdit(), current_user=owner, db=db_session
    )) == 400

    moderation_api.approve_listing(
        listing_id, payload=ApprovePayload(featured=True), moderator=moderator, db=db_session
    )
    viewed = listings_api.view_listing(listing_id, current_user=None, db=db_session)
    assert viewed.views == 1

    edited = listings_api.edit_listing(
        listing_id, changes=ListingEdit(price=Decimal("8500")), current_user=owner, db=db_session
    )
    assert edited.status == "pending"

    history = listings_api.listing_history(listing_id, current_user=owner, db=db_session)
    assert [(h.old_status, h.new_status) for h in history] == [
        ("pending", "published"),
        ("published", "pending"),
    ]
    assert _status_code(lambda: listings_api.listing_history(
        listing_id, current_user=other_user, db=db_session
    )) == 403

    deleted = listings_api.delete_listing(listing_id, current_user=owner, db=db_session)
    assert deleted["new_status"] == "removed"
    assert _status_code(lambda: listings_api.view_listing(
        listing_id, current_user=owner, db=db_session
    )) == 404


# ======================
# MODERATION
# ======================

def test_moderation_decision_status_codes(db_session, pending_listing, published_listing, moderator):
    assert _status_code(lambda: moderation_api.approve_listing(
        published_listing.id, payload=None, moderator=moderator, db=db_session
    )) == 409
    assert _status_code(lambda: moderation_api.approve_listing(
        999, payload=None, moderator=moderator, db=db_session
    )) == 404
    assert _status_code(lambda: moderation_api.reject_listing(
        pending_listing.id, payload=RejectPayload(reason="  "), moderator=moderator, db=db_session
    )) == 400

    rejected = moderation_api.reject_listing(
        pending_listing.id, payload=RejectPayload(reason="Wrong category"), moderator=moderator, db=db_session
    )
    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "Wrong category"


def test_moderation_queue_and_detail(db_session, owner, moderator):
    ids = [
        listings_api.create_listing(
            listing=ListingCreate(**listing_fields(title=f"Car {i}")), current_user=owner, db=db_session
        ).id
        for i in range(3)
    ]

    queue = _queue(db_session, moderator, limit=2)
    assert queue["total"] == 3
    assert [item.id for item in queue["items"]] == ids[:2]

    assert _status_code(lambda: _queue(db_session, moderator, page=0)) == 400

    detail = moderation_api.get_listing_for_moderation(ids[0], moderator=moderator, db=db_session)
    assert detail["warning"] is None
    assert _status_code(lambda: moderation_api.get_listing_for_moderation(
        999, moderator=moderator, db=db_session
    )) == 404


def test_batch_approve_route(db_session, owner, moderator):
    first = listings_api.create_listing(
        listing=ListingCreate(**listing_fields()), current_user=owner, db=db_session
    )

    result = moderation_api.batch_approve_listings(
        payload=BatchApprovePayload(listing_ids=[first.id, "nope", 555]), moderator=moderator, db=db_session
    )
    assert result["approved_ids"] == [first.id]
    assert result["skipped_ids"] == [555]

    assert _status_code(lambda: moderation_api.batch_approve_listings(
        payload=BatchApprovePayload(listing_ids=[]), moderator=moderator, db=db_session
    )) == 400


def test_stats_route(db_session, published_listing, moderator):
    stats = moderation_api.get_moderation_stats(period="all", moderator=moderator, db=db_session)
    assert stats["listings"]["published"] == 1
    assert _status_code(lambda: moderation_api.get_moderation_stats(
        period="decade", moderator=moderator, db=db_session
    )) == 400


# ======================
# REPORTS
# ======================

def test_report_routes(db_session, published_listing, owner, moderator):
    reporter = create_user(db_session, "reporter")
    nosy = create_user(db_session, "nosy")

    report = reports_api.create_report(
        payload=ReportCreate(listing_id=published_listing.id, reason="Fake VIN"),
        current_user=reporter,
        db=db_session,
    )
    assert _status_code(lambda: reports_api.create_report(
        payload=ReportCreate(listing_id=published_listing.id, reason="Again"),
        current_user=reporter,
        db=db_session,
    )) == 409
    assert _status_code(lambda: reports_api.create_report(
        payload=ReportCreate(listing_id=published_listing.id, reason="Mine"),
        current_user=owner,
        db=db_session,
    )) == 403

    assert reports_api.get_report(report.id, current_user=reporter, db=db_session).id == report.id
    assert _status_code(lambda: reports_api.get_report(report.id, current_user=nosy, db=db_session)) == 404
    assert len(reports_api.list_my_reports(limit=50, current_user=reporter, db=db_session)) == 1
    assert len(reports_api.list_reports(
        status_filter="open", skip=0, limit=50, moderator=moderator, db=db_session
    )) == 1

    progress = reports_api.update_report_status(
        report.id, payload=ReportStatusUpdate(status="in_progress"), moderator=moderator, db=db_session
    )
    assert progress["report"].status == "in_progress"

    resolved = reports_api.accept_report(report.id, moderator=moderator, db=db_session)
    assert resolved["listing"].status == "archived"

    assert _status_code(lambda: reports_api.dismiss_report(
        report.id, moderator=moderator, db=db_session
    )) == 409
    assert _status_code(lambda: reports_api.accept_report(
        999, moderator=moderator, db=db_session
    )) == 404


# ======================
# MODERATOR ROLES
# ======================

def test_require_admin_rejects_moderator(moderator, admin):
    assert _status_code(lambda: require_admin(current_user=moderator)) == 403
    assert require_admin(current_user=admin) is admin


def test_role_management_routes(db_session, owner, moderator, admin):
    listed = moderation_api.get_users(
        role="moderator", search=None, page=1, limit=None, admin=admin, db=db_session
    )
    assert [u.id for u in listed["items"]] == [moderator.id]
    assert _status_code(lambda: moderation_api.get_users(
        role="root", search=None, page=1, limit=None, admin=admin, db=db_session
    )) == 400

    promoted = moderation_api.promote_to_moderator(owner.id, admin=admin, db=db_session)
    assert promoted.role == "moderator"

    # The stored role is what the next request sees
    token = create_access_token({"sub": owner.id})
    assert require_moderator(current_user=get_current_user(token=token, db=db_session)).id == owner.id

    assert _status_code(lambda: moderation_api.promote_to_moderator(
        owner.id, admin=admin, db=db_session
    )) == 400
    assert _status_code(lambda: moderation_api.demote_from_moderator(
        admin.id, admin=admin, db=db_session
    )) == 400
    assert _status_code(lambda: moderation_api.demote_from_moderator(
        999, admin=admin, db=db_session
    )) == 404

    demoted = moderation_api.demote_from_moderator(owner.id, admin=admin, db=db_session)
    assert demoted.role == "user"
    assert _status_code(lambda: require_moderator(
        current_user=get_current_user(token=token, db=db_session)
    )) == 403
