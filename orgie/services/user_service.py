"""
orgie.services.user_service — User Profiles & Name Resolution
==============================================================

Account creation helpers, profile edits, search, and the bulk user
lookup every attendee-list serializer needs for display names.
Credentials are stored as provided; hashing belongs to the auth layer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import Engine, func, or_, select
from sqlalchemy.orm import Session

from orgie.database.engine import get_session
from orgie.database.models import AttendeeKind, User, UserRole
from orgie.engine.attendees import Attendee, display_name, parse_guests, user_display_name
from orgie.errors import NotFound

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


def create_user(
    engine: Engine,
    *,
    first_name: str,
    last_name: str,
    email: str | None = None,
    password_hash: str = "",
    nickname: str | None = None,
    prefer_nickname: bool = False,
    role: UserRole = UserRole.PLAIN,
) -> User:
    """Insert a user row (email may be omitted for placeholder accounts)."""
    with get_session(engine) as session:
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            nickname=nickname,
            prefer_nickname=prefer_nickname,
            role=role.value,
        )
        session.add(user)
        session.flush()
        logger.info("User created → %s", user.id)
        return user


def get_user(engine: Engine, user_id: str) -> User:
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user


def search_users(engine: Engine, query: str | None) -> list[User]:
    """Case-insensitive substring match on first name, last name or email."""
    if not query:
        return []
    pattern = f"%{query.lower()}%"
    with get_session(engine) as session:
        return list(session.scalars(
            select(User)
            .where(or_(
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                func.lower(User.email).like(pattern),
            ))
            .order_by(User.last_name, User.first_name)
            .limit(SEARCH_LIMIT)
        ).all())


def update_profile(
    engine: Engine,
    user_id: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    nickname: str | None = None,
    prefer_nickname: bool | None = None,
) -> User:
    """Apply the provided fields; ``None`` leaves a field unchanged."""
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            logger.warning("User not found during profile update: %s", user_id)
            raise NotFound("User not found")
        if first_name:
            user.first_name = first_name
        if last_name:
            user.last_name = last_name
        if nickname is not None:
            user.nickname = nickname or None
        if prefer_nickname is not None:
            user.prefer_nickname = prefer_nickname
        session.flush()
        logger.info("User profile updated → %s", user.id)
        return user


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------
def load_users(session: Session, user_ids: Iterable[str]) -> dict[str, User]:
    """Fetch the given users in one query, keyed by id."""
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    rows = session.scalars(select(User).where(User.id.in_(ids))).all()
    return {u.id: u for u in rows}


def user_ids_in(*attendee_lists: Iterable[Attendee]) -> set[str]:
    return {
        a.id
        for attendees in attendee_lists
        for a in attendees
        if a.kind == AttendeeKind.USER
    }


def public_user(user: User | None) -> dict[str, Any] | None:
    """User fields safe to return to any caller (never the credential)."""
    if user is None:
        return None
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "nickname": user.nickname,
        "prefer_nickname": user.prefer_nickname,
        "display_name": user_display_name(user),
        "role": user.role,
    }


def describe_attendees(
    attendees: Iterable[Attendee],
    users: dict[str, User],
    guests_raw: Iterable[dict] | None,
) -> list[dict[str, str]]:
    """Stored ``{id, kind}`` entries plus a resolved ``name``."""
    guests = parse_guests(guests_raw)
    return [
        {**a.to_dict(), "name": display_name(a, users, guests)}
        for a in attendees
    ]


def lookup_users(engine: Engine, user_ids: Iterable[str]) -> dict[str, User]:
    """:func:`load_users` in its own session, for callers outside one."""
    with get_session(engine) as session:
        return load_users(session, user_ids)
