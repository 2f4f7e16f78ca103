"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
from datetime import date
from types import SimpleNamespace

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of orgie.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite renders JSONB as TEXT; SQLAlchemy's JSON processors still
# serialize the values.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from orgie.config import OrgieConfig  # noqa: E402
from orgie.database.models import Base, EventType, RecurrenceFrequency  # noqa: E402
from orgie.engine.recurrence import Recurrence  # noqa: E402
from orgie.services import event_service, user_service  # noqa: E402

_jsonb_sqlite_registered = False

# Fixed "today" for service tests (a Monday)
TODAY = date(2024, 1, 15)


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Orgie tables.

    Uses StaticPool so TestClient's worker threads share the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def people(db_engine):
    """Three registered users: an owner, a regular member and an outsider."""
    return SimpleNamespace(
        owner=user_service.create_user(
            db_engine, first_name="Olga", last_name="Owner", email="olga@example.com"
        ),
        member=user_service.create_user(
            db_engine, first_name="Milan", last_name="Member", email="milan@example.com",
            nickname="Mili", prefer_nickname=True,
        ),
        outsider=user_service.create_user(
            db_engine, first_name="Otto", last_name="Outsider", email="otto@example.com"
        ),
    )


@pytest.fixture
def weekly_event(db_engine, people):
    """A RECURRING event on Monday and Wednesday owned by ``people.owner``."""
    return event_service.create_event(
        db_engine,
        people.owner.id,
        name="Futsal",
        place="Gym",
        type=EventType.RECURRING,
        start_time="18:00",
        end_time="20:00",
        recurrence=Recurrence(frequency=RecurrenceFrequency.WEEKLY, week_days=(1, 3)),
        today=TODAY,
    )


def make_token(sub: str, **claims) -> str:
    """Create a signed access token for *sub*."""
    import jwt

    from orgie.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub, **claims}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(user) -> dict:
    return {"Authorization": f"Bearer {make_token(user.id)}"}


@pytest.fixture
def test_config() -> OrgieConfig:
    return OrgieConfig(app_name="Orgie Test", api_port=5001, max_generation_days=366)


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient bound to the in-memory engine."""
    from fastapi.testclient import TestClient

    # Override the objects the routes hold; deps may have been reloaded since.
    from orgie.api.main import app, get_config, get_engine

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
