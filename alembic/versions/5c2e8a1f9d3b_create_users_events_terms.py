"""Create users, events and terms tables

Revision ID: 5c2e8a1f9d3b
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e8a1f9d3b"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the user, event and term document tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(254), unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False, server_default=""),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("nickname", sa.String(30)),
        sa.Column("prefer_nickname", sa.Boolean(), server_default=sa.false()),
        sa.Column("role", sa.String(10), nullable=False, server_default="PLAIN"),
        *_timestamps(),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("uuid", sa.String(36), nullable=False, unique=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("place", sa.String(50)),
        sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(10), nullable=False, server_default="ONE_TIME"),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("date", sa.Date()),
        sa.Column("recurrence", postgresql.JSONB()),
        sa.Column("administrators", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("attendees", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("guests", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("min_attendees", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_attendees", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_events_owner_id", "events", ["owner_id"])

    op.create_table(
        "terms",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "event_id",
            sa.String(36),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("attendees", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("statistics", postgresql.JSONB()),
        sa.UniqueConstraint("event_id", "date", name="uq_terms_event_date"),
    )
    op.create_index("ix_terms_event_date", "terms", ["event_id", "date"])


def downgrade() -> None:
    """Drop the term, event and user tables."""
    op.drop_index("ix_terms_event_date", table_name="terms")
    op.drop_table("terms")
    op.drop_index("ix_events_owner_id", table_name="events")
    op.drop_table("events")
    op.drop_table("users")
