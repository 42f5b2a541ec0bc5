"""Pytest bootstrap and shared fixtures."""

import os
from decimal import Decimal
from pathlib import Path
import sys

# Settings are read at import time; give tests a throwaway database and key
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

# Ensure project root is on sys.path so `import carmarket` works without install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carmarket.database import Base
from carmarket import models
from carmarket.services import moderation_engine


# ======================
# TEST DATABASE SETUP
# ======================

@pytest.fixture
def db_session():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


def create_user(db, username: str, role: str = "user", is_active: bool = True) -> models.User:
    user = models.User(
        username=username,
        email=f"{username}@test.dev",
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def listing_fields(**overrides):
    fields = {
        "title": "2015 Skoda Octavia 1.6 TDI",
        "price": Decimal("8900.00"),
        "currency": "EUR",
        "description": "One owner, full service history",
        "city": "Brno",
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def owner(db_session):
    return create_user(db_session, "owner")


@pytest.fixture
def other_user(db_session):
    return create_user(db_session, "bystander")


@pytest.fixture
def moderator(db_session):
    return create_user(db_session, "mod", role="moderator")


@pytest.fixture
def admin(db_session):
    return create_user(db_session, "root", role="admin")


@pytest.fixture
def pending_listing(db_session, owner):
    return moderation_engine.create_listing(db_session, owner.id, listing_fields())


@pytest.fixture
def published_listing(db_session, owner, moderator):
    listing = moderation_engine.create_listing(
        db_session, owner.id, listing_fields(title="2012 VW Golf VI")
    )
    return moderation_engine.decide_listing(
        db_session, listing.id, moderator.id, moderator.role, "approve"
    )
