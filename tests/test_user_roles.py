# tests/test_user_roles.py
"""
Moderator role management tests
Listing users, promoting and demoting moderators.
"""

import pytest

from carmarket.crud import user as user_crud
from carmarket.services import moderation_engine, user_roles
from carmarket.services.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


# ======================
# LIST USERS
# ======================

def test_list_users_filters_by_role(db_session, owner, other_user, moderator, admin):
    everyone = user_roles.list_users(db_session)
    assert everyone["total"] == 4
    assert [u.id for u in everyone["items"]] == [admin.id, moderator.id, other_user.id, owner.id]

    moderators = user_roles.list_users(db_session, role="moderator")
    assert [u.id for u in moderators["items"]] == [moderator.id]

    assert user_roles.list_users(db_session, role=" ADMIN ")["total"] == 1


def test_list_users_search_and_pages(db_session, owner, other_user, moderator, admin):
    found = user_roles.list_users(db_session, search="bystander")
    assert [u.id for u in found["items"]] == [other_user.id]

    by_email = user_roles.list_users(db_session, search="@test.dev", limit=3)
    assert by_email["total"] == 4
    assert len(by_email["items"]) == 3
    assert by_email["pages"] == 2

    second_page = user_roles.list_users(db_session, page=2, limit=3)
    assert [u.id for u in second_page["items"]] == [owner.id]


def test_list_users_input_rules(db_session):
    with pytest.raises(ValidationError):
        user_roles.list_users(db_session, role="superuser")
    with pytest.raises(ValidationError):
        user_roles.list_users(db_session, page=0)
    with pytest.raises(ValidationError):
        user_roles.list_users(db_session, limit=0)
    assert user_roles.list_users(db_session, limit=10_000)["limit"] == 200


# ======================
# PROMOTE / DEMOTE
# ======================

def test_promote_then_demote(db_session, owner, admin):
    promoted = user_roles.promote_to_moderator(db_session, owner.id, admin.id, admin.role)
    assert promoted.role == "moderator"
    assert promoted.is_moderator

    demoted = user_roles.demote_from_moderator(db_session, owner.id, admin.id, admin.role)
    assert demoted.role == "user"
    assert not demoted.is_moderator


def test_promoted_user_can_moderate(db_session, owner, other_user, admin, pending_listing):
    user_roles.promote_to_moderator(db_session, other_user.id, admin.id, admin.role)
    fresh = user_crud.get_user(db_session, other_user.id)

    listing = moderation_engine.decide_listing(
        db_session, pending_listing.id, fresh.id, fresh.role, "approve"
    )
    assert listing.status == "published"
    assert listing.moderator_id == other_user.id


def test_role_changes_require_admin(db_session, owner, moderator):
    with pytest.raises(AuthorizationError):
        user_roles.promote_to_moderator(db_session, owner.id, moderator.id, moderator.role)
    with pytest.raises(AuthorizationError):
        user_roles.demote_from_moderator(db_session, moderator.id, moderator.id, moderator.role)
    assert user_crud.get_user(db_session, owner.id).role == "user"


def test_role_change_refusals(db_session, owner, moderator, admin):
    with pytest.raises(NotFoundError):
        user_roles.promote_to_moderator(db_session, 999, admin.id, admin.role)
    with pytest.raises(ValidationError, match="admin"):
        user_roles.promote_to_moderator(db_session, admin.id, admin.id, admin.role)
    with pytest.raises(ValidationError, match="admin"):
        user_roles.demote_from_moderator(db_session, admin.id, admin.id, admin.role)
    with pytest.raises(ValidationError, match="already a moderator"):
        user_roles.promote_to_moderator(db_session, moderator.id, admin.id, admin.role)
    with pytest.raises(ValidationError, match="not a moderator"):
        user_roles.demote_from_moderator(db_session, owner.id, admin.id, admin.role)


def test_lost_role_race_is_conflict(db_session, owner, admin, monkeypatch):
    monkeypatch.setattr(user_crud, "conditional_role_update", lambda *args, **kwargs: False)

    with pytest.raises(ConflictError):
        user_roles.promote_to_moderator(db_session, owner.id, admin.id, admin.role)
