"""Duel bookkeeping models.

Live duel sessions are never stored; only daily throttles and final
outcomes are.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class DuelThrottle(Base, TimestampMixin):
    """Per-player daily duel counters.

    Two independent day buckets: one for per-opponent duel counts,
    one for duel-derived experience.
    """

    __tablename__ = "duel_throttles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )

    # Per-opponent duel counts (e.g., {"17": 2}); keys are player ids as strings
    day_bucket: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    opponent_counts: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    # Duel experience earned in xp_bucket
    xp_today: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_bucket: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    player: Mapped["Player"] = relationship("Player")

    def __repr__(self) -> str:
        return f"<DuelThrottle(player={self.player_id}, day={self.day_bucket}, xp_today={self.xp_today})>"


class DuelRecord(Base, TimestampMixin):
    """Final outcome of a finished duel."""

    __tablename__ = "duel_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    winner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True
    )
    loser_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True
    )

    bounty: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_gained: Mapped[int] = mapped_column(Integer, nullable=False)
    turns: Mapped[int] = mapped_column(Integer, nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<DuelRecord(winner={self.winner_id}, loser={self.loser_id}, bounty={self.bounty})>"


# Forward references for type hints
from .players import Player  # noqa: E402, F401
