"""Quest progress service - counts player actions per daily and weekly period."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models.enums import QuestPeriod
from ..db.models.quests import QuestProgress
from ..utils.rewards import day_bucket, week_bucket


def period_bucket(period: QuestPeriod, now: datetime | None = None) -> int:
    """Get the bucket number of a quest period."""
    if period == QuestPeriod.WEEKLY:
        return week_bucket(now)
    return day_bucket(now)


class QuestService:
    """Service for quest progress."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def record_action(
        self,
        player_id: int,
        action: str,
        amount: int = 1,
        now: datetime | None = None,
    ) -> None:
        """Add an action to the player's daily and weekly quest progress.

        Args:
            player_id: Player who performed the action
            action: Action name (e.g., "duel")
            amount: How many times it was performed
            now: Moment of the action (default: current time)
        """
        for period in QuestPeriod:
            progress = await self._get_progress_row(player_id, period, period_bucket(period, now), action)
            progress.count += amount
        await self.session.flush()

    async def get_progress(
        self,
        player_id: int,
        period: QuestPeriod,
        action: str,
        now: datetime | None = None,
    ) -> int:
        """Get how many times an action was recorded in the current period."""
        stmt = select(QuestProgress.count).where(
            QuestProgress.player_id == player_id,
            QuestProgress.period == period,
            QuestProgress.period_bucket == period_bucket(period, now),
            QuestProgress.action == action,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def _get_progress_row(self, player_id: int, period: QuestPeriod, bucket: int, action: str) -> QuestProgress:
        stmt = select(QuestProgress).where(
            QuestProgress.player_id == player_id,
            QuestProgress.period == period,
            QuestProgress.period_bucket == bucket,
            QuestProgress.action == action,
        )
        result = await self.session.execute(stmt)
        progress = result.scalar_one_or_none()
        if progress:
            return progress

        progress = QuestProgress(player_id=player_id, period=period, period_bucket=bucket, action=action, count=0)
        self.session.add(progress)
        return progress
