"""Initial schema: users, categories, events, participation requests,
compilations and comments.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(250), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Categories table
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )
    op.create_index("ix_categories_id", "categories", ["id"])

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("annotation", sa.String(2000), nullable=False),
        sa.Column("description", sa.String(7000), nullable=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column(
            "initiator_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("event_date", sa.DateTime(), nullable=False),
        sa.Column("created_on", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("published_on", sa.DateTime(), nullable=True),
        sa.Column("lat", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("lon", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("paid", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("participant_limit", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("request_moderation", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("confirmed_requests", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("state", sa.String(20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("confirmed_requests >= 0", name="check_confirmed_requests_non_negative"),
        sa.CheckConstraint("participant_limit >= 0", name="check_participant_limit_non_negative"),
        sa.CheckConstraint(
            "participant_limit = 0 OR confirmed_requests <= participant_limit",
            name="check_confirmed_within_limit",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_category_id", "events", ["category_id"])
    op.create_index("ix_events_initiator_id", "events", ["initiator_id"])
    op.create_index("ix_events_event_date", "events", ["event_date"])
    # Public search always filters on state and a date range
    op.create_index("ix_events_state_event_date", "events", ["state", "event_date"])

    # Participation requests table
    op.create_table(
        "participation_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "requester_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("created", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'REJECTED', 'CANCELED')",
            name="check_request_status",
        ),
    )
    op.create_index("ix_participation_requests_id", "participation_requests", ["id"])
    op.create_index("ix_participation_requests_event_id", "participation_requests", ["event_id"])
    op.create_index("ix_participation_requests_requester_id", "participation_requests", ["requester_id"])
    # Covers the capacity audit: COUNT(*) WHERE event_id = ? AND status = 'CONFIRMED'
    op.create_index("ix_requests_event_status", "participation_requests", ["event_id", "status"])
    op.create_index("ix_requests_event_requester", "participation_requests", ["event_id", "requester_id"])

    # Compilations
    op.create_table(
        "compilations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(50), nullable=False),
        sa.Column("pinned", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("title", name="uq_compilations_title"),
    )
    op.create_index("ix_compilations_id", "compilations", ["id"])

    op.create_table(
        "compilation_events",
        sa.Column(
            "compilation_id",
            sa.Integer(),
            sa.ForeignKey("compilations.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), primary_key=True
        ),
    )

    # Comments
    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("text", sa.String(2000), nullable=False),
        sa.Column(
            "author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("created", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_comments_id", "comments", ["id"])
    op.create_index("ix_comments_author_id", "comments", ["author_id"])
    op.create_index("ix_comments_event_id", "comments", ["event_id"])


def downgrade() -> None:
    op.drop_table("comments")
    op.drop_table("compilation_events")
    op.drop_table("compilations")
    op.drop_table("participation_requests")
    op.drop_table("events")
    op.drop_table("categories")
    op.drop_table("users")
