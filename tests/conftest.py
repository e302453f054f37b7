"""Shared fixtures for engine and integration tests."""

import asyncio
import random

import pytest
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from duel_arena.db.models import Base, Player
from duel_arena.engine.presenter import DuelPresenter
from duel_arena.engine.repository import (
    DuelOutcome,
    DuelRepository,
    EconomyDelta,
    EconomyRecord,
    PlayerInfo,
    ThrottleRecord,
    UnitProgress,
)
from duel_arena.engine.types import (
    AttackResult,
    DuelRules,
    PendingChallenge,
    SessionView,
    SettlementReport,
    SpecialAttack,
    UnitDefinitionData,
)
from duel_arena.services.players import PlayerService
from duel_arena.services.units import UnitService

CATALOG = [
    {"id": "brawler", "name": "Iron Brawler", "rank": "A", "power": 100, "health": 100, "attack_range": [10, 20]},
    {"id": "rookie", "name": "Rookie Pirate", "rank": "C", "power": 80, "health": 50, "attack_range": [5, 5]},
    {
        "id": "mage",
        "name": "Flame Mage",
        "rank": "B",
        "power": 90,
        "health": 60,
        "attack_range": [8, 12],
        "special_attack": {"name": "Fireball", "range": [30, 40]},
    },
]


def catalog_data() -> dict[str, UnitDefinitionData]:
    units = {}
    for entry in CATALOG:
        special = None
        if "special_attack" in entry:
            low, high = entry["special_attack"]["range"]
            special = SpecialAttack(entry["special_attack"]["name"], low, high)
        units[entry["id"]] = UnitDefinitionData(
            unit_id=entry["id"],
            name=entry["name"],
            power=entry["power"],
            attack_range=tuple(entry["attack_range"]),
            health=entry["health"],
            special=special,
        )
    return units


# =============================================================================
# Deterministic randomness
# =============================================================================


class ScriptedRandom(random.Random):
    """Random source with scripted draws.

    random() pops scripted values, then returns default_draw. randint()
    returns damage clamped into the range, or the upper bound when unset.
    """

    def __init__(self, draws=(), default_draw: float = 0.5, damage: int | None = None) -> None:
        super().__init__(0)
        self.draws = list(draws)
        self.default_draw = default_draw
        self.damage = damage

    def random(self) -> float:
        if self.draws:
            return self.draws.pop(0)
        return self.default_draw

    def randint(self, a: int, b: int) -> int:
        if self.damage is None:
            return b
        return min(b, max(a, self.damage))


# =============================================================================
# In-memory collaborators
# =============================================================================


class InMemoryDuelRepository(DuelRepository):
    """Dict-backed repository. Operations named in `failing` raise."""

    def __init__(self) -> None:
        self.players: dict[int, PlayerInfo] = {}
        self.rosters: dict[int, list[str]] = {}
        self.progress: dict[tuple[int, str], UnitProgress] = {}
        self.catalog: dict[str, UnitDefinitionData] = catalog_data()
        self.economy: dict[int, EconomyRecord] = {}
        self.throttles: dict[int, ThrottleRecord] = {}
        self.quest_actions: list[tuple[int, str, int]] = []
        self.outcomes: list[DuelOutcome] = []
        self.failing: set[str] = set()

    def add_player(
        self,
        player_id: int,
        name: str,
        team: list[str],
        is_bot: bool = False,
        xp: int = 0,
        levels: dict[str, int] | None = None,
    ) -> None:
        self.players[player_id] = PlayerInfo(player_id=player_id, display_name=name, is_bot=is_bot)
        self.rosters[player_id] = list(team)
        self.economy[player_id] = EconomyRecord(xp=xp)
        for unit_id, level in (levels or {}).items():
            self.progress[(player_id, unit_id)] = UnitProgress(level=level)

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise RuntimeError(f"{operation} unavailable")

    async def get_player(self, player_id: int) -> PlayerInfo | None:
        return self.players.get(player_id)

    async def get_roster(self, player_id: int) -> list[str]:
        return list(self.rosters.get(player_id, []))

    async def get_unit_progress(self, player_id: int, unit_id: str) -> UnitProgress:
        return self.progress.get((player_id, unit_id), UnitProgress())

    async def get_unit_definition(self, unit_id: str) -> UnitDefinitionData | None:
        return self.catalog.get(unit_id)

    async def get_economy(self, player_id: int) -> EconomyRecord:
        self._check("get_economy")
        return self.economy.get(player_id, EconomyRecord())

    async def commit_economy(self, player_id: int, delta: EconomyDelta) -> None:
        self._check("commit_economy")
        old = self.economy.get(player_id, EconomyRecord())
        self.economy[player_id] = EconomyRecord(
            currency=old.currency + delta.currency,
            xp=old.xp + delta.xp,
            daily_duel_xp=delta.daily_duel_xp,
            daily_duel_xp_bucket=delta.daily_duel_xp_bucket,
        )

    async def get_duel_throttle(self, player_id: int) -> ThrottleRecord:
        self._check("get_duel_throttle")
        record = self.throttles.get(player_id, ThrottleRecord())
        # Yield so unserialized read-modify-write cycles would interleave
        await asyncio.sleep(0)
        return ThrottleRecord(record.day_bucket, dict(record.opponent_counts))

    async def commit_duel_throttle(self, player_id: int, record: ThrottleRecord) -> None:
        self._check("commit_duel_throttle")
        self.throttles[player_id] = record

    async def notify_quest_progress(self, player_id: int, action: str, amount: int) -> None:
        self._check("notify_quest_progress")
        self.quest_actions.append((player_id, action, amount))

    async def record_outcome(self, outcome: DuelOutcome) -> None:
        self._check("record_outcome")
        self.outcomes.append(outcome)


class RecordingPresenter(DuelPresenter):
    """Presenter that records every hook call as (name, args)."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.fail = fail
        self._next_message_id = 100

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.fail:
            raise RuntimeError("transport down")

    def named(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    async def show_prompt(self, view: SessionView) -> int | None:
        self._record("show_prompt", view)
        self._next_message_id += 1
        return self._next_message_id

    async def withdraw_prompt(self, view: SessionView) -> None:
        self._record("withdraw_prompt", view)

    async def show_attack(self, view: SessionView, result: AttackResult) -> None:
        self._record("show_attack", view, result)

    async def show_settlement(self, view: SessionView, report: SettlementReport) -> None:
        self._record("show_settlement", view, report)

    async def challenge_expired(self, challenge: PendingChallenge) -> None:
        self._record("challenge_expired", challenge)


@pytest.fixture
def rules() -> DuelRules:
    """Rules with long decision bounds and no resolution pause."""
    return DuelRules(decision_timeout=5.0, challenge_timeout=5.0, resolution_delay=0)


@pytest.fixture
def repository() -> InMemoryDuelRepository:
    return InMemoryDuelRepository()


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def broken_presenter() -> RecordingPresenter:
    """Presenter whose every hook raises after recording the call."""
    return RecordingPresenter(fail=True)


@pytest.fixture
def scripted_rng():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
async def async_engine():
    """Create async SQLite in-memory engine for testing."""
    # Patch JSONB to use JSON for SQLite
    for table in Base.metadata.tables.values():
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()

    # One shared connection so every session sees the same in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create async session for testing with automatic rollback."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def unit_catalog(db_session: AsyncSession) -> None:
    """Seed the unit catalog."""
    await UnitService(db_session).upsert_definitions(CATALOG)
    await db_session.commit()


@pytest.fixture
async def player1(db_session: AsyncSession, unit_catalog) -> Player:
    """A player owning a brawler and a mage, with the brawler in their team."""
    service = PlayerService(db_session)
    player = await service.get_or_create_player(telegram_user_id=111, display_name="Player One")
    await service.grant_unit(player.id, "brawler")
    await service.grant_unit(player.id, "mage", level=10)
    player.team = ["brawler"]
    await db_session.commit()
    return player


@pytest.fixture
async def player2(db_session: AsyncSession, unit_catalog) -> Player:
    """A player owning a rookie, in their team."""
    service = PlayerService(db_session)
    player = await service.get_or_create_player(telegram_user_id=222, display_name="Player Two")
    await service.grant_unit(player.id, "rookie")
    player.team = ["rookie"]
    await db_session.commit()
    return player
