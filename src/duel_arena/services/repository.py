"""SQLAlchemy implementation of the duel engine's storage interface."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models.duels import DuelRecord, DuelThrottle
from ..db.models.players import Player, PlayerUnit
from ..db.models.units import UnitDefinition
from ..engine.repository import (
    DuelOutcome,
    DuelRepository,
    EconomyDelta,
    EconomyRecord,
    PlayerInfo,
    ThrottleRecord,
    UnitProgress,
)
from ..engine.types import UnitDefinitionData
from .quests import QuestService
from .units import to_unit_data


class SqlDuelRepository(DuelRepository):
    """Duel storage backed by the application database.

    Every call runs in its own short-lived session and commits before
    returning, because duels outlive any single request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get_player(self, player_id: int) -> PlayerInfo | None:
        async with self.session_factory() as session:
            player = await session.get(Player, player_id)
            if player is None:
                return None
            return PlayerInfo(player_id=player.id, display_name=player.display_name, is_bot=player.is_bot)

    async def get_roster(self, player_id: int) -> list[str]:
        async with self.session_factory() as session:
            player = await session.get(Player, player_id)
            if player is None:
                return []
            return list(player.team or [])

    async def get_unit_progress(self, player_id: int, unit_id: str) -> UnitProgress:
        async with self.session_factory() as session:
            stmt = select(PlayerUnit).where(PlayerUnit.player_id == player_id, PlayerUnit.unit_id == unit_id)
            result = await session.execute(stmt)
            owned = result.scalar_one_or_none()
            if owned is None:
                return UnitProgress()
            return UnitProgress(level=owned.level, xp=owned.xp)

    async def get_unit_definition(self, unit_id: str) -> UnitDefinitionData | None:
        async with self.session_factory() as session:
            unit = await session.get(UnitDefinition, unit_id)
            if unit is None:
                return None
            return to_unit_data(unit)

    async def get_economy(self, player_id: int) -> EconomyRecord:
        async with self.session_factory() as session:
            player = await self._require_player(session, player_id)
            throttle = await self._get_throttle(session, player_id)
            return EconomyRecord(
                currency=player.currency,
                xp=player.xp,
                daily_duel_xp=throttle.xp_today if throttle else 0,
                daily_duel_xp_bucket=throttle.xp_bucket if throttle else 0,
            )

    async def commit_economy(self, player_id: int, delta: EconomyDelta) -> None:
        async with self.session_factory() as session:
            player = await self._require_player(session, player_id)
            player.currency += delta.currency
            player.xp += delta.xp

            throttle = await self._get_or_create_throttle(session, player_id)
            throttle.xp_today = delta.daily_duel_xp
            throttle.xp_bucket = delta.daily_duel_xp_bucket

            await session.commit()

    async def get_duel_throttle(self, player_id: int) -> ThrottleRecord:
        async with self.session_factory() as session:
            throttle = await self._get_throttle(session, player_id)
            if throttle is None:
                return ThrottleRecord()
            return ThrottleRecord(
                day_bucket=throttle.day_bucket,
                opponent_counts={int(key): int(value) for key, value in (throttle.opponent_counts or {}).items()},
            )

    async def commit_duel_throttle(self, player_id: int, record: ThrottleRecord) -> None:
        async with self.session_factory() as session:
            throttle = await self._get_or_create_throttle(session, player_id)
            throttle.day_bucket = record.day_bucket
            # Reassign, JSON columns do not track in-place changes
            throttle.opponent_counts = {str(key): value for key, value in record.opponent_counts.items()}
            await session.commit()

    async def notify_quest_progress(self, player_id: int, action: str, amount: int) -> None:
        async with self.session_factory() as session:
            await QuestService(session).record_action(player_id, action, amount)
            await session.commit()

    async def record_outcome(self, outcome: DuelOutcome) -> None:
        async with self.session_factory() as session:
            session.add(
                DuelRecord(
                    winner_id=outcome.winner_id,
                    loser_id=outcome.loser_id,
                    bounty=outcome.bounty,
                    xp_gained=outcome.xp_gained,
                    turns=outcome.turns,
                    finished_at=outcome.finished_at,
                )
            )
            await session.commit()

    async def _require_player(self, session: AsyncSession, player_id: int) -> Player:
        player = await session.get(Player, player_id)
        if player is None:
            raise ValueError(f"Player {player_id} not found")
        return player

    async def _get_throttle(self, session: AsyncSession, player_id: int) -> DuelThrottle | None:
        stmt = select(DuelThrottle).where(DuelThrottle.player_id == player_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_or_create_throttle(self, session: AsyncSession, player_id: int) -> DuelThrottle:
        throttle = await self._get_throttle(session, player_id)
        if throttle:
            return throttle

        throttle = DuelThrottle(player_id=player_id, day_bucket=0, opponent_counts={}, xp_today=0, xp_bucket=0)
        session.add(throttle)
        return throttle
