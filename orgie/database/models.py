"""
orgie.database.models — SQLAlchemy 2.0 Data Models
===================================================

Events and terms are stored as self-contained documents: every
list-valued field (administrators, attendees, guests, recurrence rule,
team statistics) is a JSONB column rather than a join table, and the
two collections reference each other only through ``terms.event_id``.
Cascading deletes are explicit service logic.

Tables:
- users   — Registered accounts (email optional)
- events  — Event definitions with embedded guest registry
- terms   — Concrete dated slots generated from an event

Stored JSON shapes::

    attendees      [{"id": "<uuid>", "kind": "USER" | "GUEST"}, ...]
    guests         [{"id", "first_name", "last_name", "added_by"}, ...]
    recurrence     {"frequency": "WEEKLY", "week_days": [1, 3], "month_days": []}
    statistics     {"teams": [{"name", "members": [attendee...], "wins", "draws", "losses"}]}

JSON values are replaced, never mutated in place, so SQLAlchemy's
change tracking always sees the new value.
"""

from __future__ import annotations

import datetime as dt
import enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    return str(uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Orgie ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class EventType(enum.StrEnum):
    ONE_TIME = "ONE_TIME"
    RECURRING = "RECURRING"


class RecurrenceFrequency(enum.StrEnum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class AttendeeKind(enum.StrEnum):
    """Discriminator of the attendee identity union."""
    USER = "USER"
    GUEST = "GUEST"


class UserRole(enum.StrEnum):
    PLAIN = "PLAIN"
    ADMIN = "ADMIN"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str | None] = mapped_column(String(254), unique=True, default=None)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    first_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_name: Mapped[str | None] = mapped_column(String(100), default=None)
    nickname: Mapped[str | None] = mapped_column(String(30), default=None)
    prefer_nickname: Mapped[bool] = mapped_column(Boolean, default=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False, default=UserRole.PLAIN.value)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
class Event(Base):
    """An event definition.

    ``administrators`` always contains ``owner_id``.  ``guests`` is the
    event-scoped guest registry; attendee entries of kind GUEST hold only
    a guest id that must be resolved against it.
    """
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    uuid: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, default=new_id)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    place: Mapped[str | None] = mapped_column(String(50), default=None)
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(
        String(10), nullable=False, default=EventType.ONE_TIME.value
    )
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:mm
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)    # HH:mm
    date: Mapped[dt.date | None] = mapped_column(Date, default=None)       # ONE_TIME only
    recurrence: Mapped[dict | None] = mapped_column(JSONB, default=None)  # RECURRING only
    administrators: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    attendees: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    guests: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    min_attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_events_owner_id", "owner_id"),
    )
    # created_at is serialized after the session closes
    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self) -> str:
        return f"<Event id={self.id} name={self.name!r} type={self.type}>"


# ---------------------------------------------------------------------------
# Terms
# ---------------------------------------------------------------------------
class Term(Base):
    """One dated occurrence of an event.

    ``date`` is a calendar day; "archived" is derived at query time by
    comparing it with today and is never stored.
    """
    __tablename__ = "terms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    attendees: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    statistics: Mapped[dict | None] = mapped_column(JSONB, default=None)

    __table_args__ = (
        # Generation dedupes by (event, day); the constraint closes the race
        UniqueConstraint("event_id", "date", name="uq_terms_event_date"),
        Index("ix_terms_event_date", "event_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<Term id={self.id} event={self.event_id} date={self.date}>"
