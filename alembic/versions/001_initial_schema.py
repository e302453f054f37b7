"""Initial duel arena schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates the unit catalog, players with their owned units and teams,
daily duel throttles, duel outcome records and quest progress.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Enum stores member names, matching the ORM mapping
    quest_period_enum = sa.Enum("DAILY", "WEEKLY", name="quest_period")
    quest_period_enum.create(op.get_bind(), checkfirst=True)

    # ============================================
    # Unit catalog
    # ============================================
    op.create_table(
        "unit_definitions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, index=True),
        sa.Column("rank", sa.String(8), nullable=False, server_default="C"),
        sa.Column("power", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("health", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attack_min", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attack_max", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("special_name", sa.String(100), nullable=True),
        sa.Column("special_min", sa.Integer(), nullable=True),
        sa.Column("special_max", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    # ============================================
    # Players and their collections
    # ============================================
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("telegram_user_id", sa.BigInteger(), nullable=False, unique=True, index=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("currency", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_bot", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("team", JSONB(), nullable=False, server_default="[]"),
        *_timestamps(),
    )

    op.create_table(
        "player_units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "player_id",
            sa.Integer(),
            sa.ForeignKey("players.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("unit_id", sa.String(64), sa.ForeignKey("unit_definitions.id"), nullable=False, index=True),
        sa.Column("count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("player_id", "unit_id", name="uq_player_unit"),
    )

    # ============================================
    # Duel bookkeeping
    # ============================================
    op.create_table(
        "duel_throttles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "player_id",
            sa.Integer(),
            sa.ForeignKey("players.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
            index=True,
        ),
        sa.Column("day_bucket", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("opponent_counts", JSONB(), nullable=False, server_default="{}"),
        sa.Column("xp_today", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("xp_bucket", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "duel_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "winner_id",
            sa.Integer(),
            sa.ForeignKey("players.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "loser_id",
            sa.Integer(),
            sa.ForeignKey("players.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("bounty", sa.Integer(), nullable=False),
        sa.Column("xp_gained", sa.Integer(), nullable=False),
        sa.Column("turns", sa.Integer(), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    # ============================================
    # Quest progress
    # ============================================
    op.create_table(
        "quest_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "player_id",
            sa.Integer(),
            sa.ForeignKey("players.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("period", ENUM("DAILY", "WEEKLY", name="quest_period", create_type=False), nullable=False),
        sa.Column("period_bucket", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("player_id", "period", "period_bucket", "action", name="uq_quest_progress"),
    )


def downgrade() -> None:
    op.drop_table("quest_progress")
    op.drop_table("duel_records")
    op.drop_table("duel_throttles")
    op.drop_table("player_units")
    op.drop_table("players")
    op.drop_table("unit_definitions")
    sa.Enum(name="quest_period").drop(op.get_bind(), checkfirst=True)
