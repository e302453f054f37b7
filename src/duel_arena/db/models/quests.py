"""Quest progress models."""

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from .enums import QuestPeriod


class QuestProgress(Base, TimestampMixin):
    """How many times a player performed an action within a quest period."""

    __tablename__ = "quest_progress"
    __table_args__ = (
        UniqueConstraint("player_id", "period", "period_bucket", "action", name="uq_quest_progress"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True
    )
    period: Mapped[QuestPeriod] = mapped_column(SQLEnum(QuestPeriod, name="quest_period"), nullable=False)
    period_bucket: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<QuestProgress(player={self.player_id}, {self.period.value}:{self.action}={self.count})>"
