"""initial schema

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-19 09:12:41.503117
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3f2a9c1d7e40"
down_revision = None
branch_labels = None
depends_on = None


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _jsonb(sa_json):
    # Portable: JSON on SQLite, JSONB on Postgres
    return sa_json.with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade():
    # --- organizations ---
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("slug", sa.String(length=80), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("website_url", sa.Text(), nullable=True),
        sa.Column("website_html_url", sa.Text(), nullable=True),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)
    op.create_index("ix_organizations_deleted", "organizations", ["deleted"])
    op.create_index("ix_organizations_created_at", "organizations", ["created_at"])

    # --- decks ---
    op.create_table(
        "decks",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column(
            "organization_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("org_name", sa.String(length=200), nullable=False),
        sa.Column("org_url", sa.Text(), nullable=True),
        sa.Column("sector", sa.String(length=80), nullable=True),
        sa.Column("deck_type", sa.String(length=20), nullable=False, server_default="impact"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="generating"),
        sa.Column("deck_url", sa.Text(), nullable=True),
        sa.Column("og_image_url", sa.Text(), nullable=True),
        sa.Column("brand_data", _jsonb(sa.JSON()), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("donor_slug", sa.String(length=60), nullable=True),
        sa.Column("donor_name", sa.String(length=200), nullable=True),
        sa.Column("donor_amount", sa.String(length=40), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("click_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_decks_slug", "decks", ["slug"], unique=True)
    op.create_index("ix_decks_organization_id", "decks", ["organization_id"])
    op.create_index("ix_decks_status", "decks", ["status"])
    op.create_index("ix_decks_donor_slug", "decks", ["donor_slug"])
    op.create_index("ix_decks_created_at", "decks", ["created_at"])
    op.create_index("ix_decks_org_type_status", "decks", ["organization_id", "deck_type", "status"])

    # --- deck_events ---
    op.create_table(
        "deck_events",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("slug", sa.String(length=120), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=120), nullable=False),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_deck_events_slug", "deck_events", ["slug"])
    op.create_index("ix_deck_events_created_at", "deck_events", ["created_at"])
    op.create_index("ix_deck_events_slug_type", "deck_events", ["slug", "event_type"])


def downgrade():
    op.drop_table("deck_events")
    op.drop_table("decks")
    op.drop_table("organizations")
