"""Storage interface the duel engine reads from and writes to."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from .types import UnitDefinitionData


@dataclass(frozen=True)
class PlayerInfo:
    """Identity of a player as the engine needs it."""

    player_id: int
    display_name: str
    is_bot: bool = False


@dataclass(frozen=True)
class UnitProgress:
    level: int = 0
    xp: int = 0


@dataclass(frozen=True)
class EconomyRecord:
    """A player's wallet plus the daily duel-experience counter."""

    currency: int = 0
    xp: int = 0
    daily_duel_xp: int = 0
    daily_duel_xp_bucket: int = 0


@dataclass(frozen=True)
class EconomyDelta:
    """Change to commit to a player's economy.

    currency and xp are added; the daily counter and its bucket replace
    the stored values.
    """

    currency: int = 0
    xp: int = 0
    daily_duel_xp: int = 0
    daily_duel_xp_bucket: int = 0


@dataclass
class ThrottleRecord:
    """Per-opponent duel counts for one day bucket."""

    day_bucket: int = 0
    opponent_counts: dict[int, int] = field(default_factory=dict)

    def count_for(self, opponent_id: int, today: int) -> int:
        """Get duels against an opponent today (0 if the bucket is stale)."""
        if self.day_bucket != today:
            return 0
        return self.opponent_counts.get(opponent_id, 0)

    def incremented(self, opponent_id: int, today: int) -> "ThrottleRecord":
        """Return a copy with one more duel against the opponent, resetting a stale bucket."""
        counts = dict(self.opponent_counts) if self.day_bucket == today else {}
        counts[opponent_id] = counts.get(opponent_id, 0) + 1
        return ThrottleRecord(day_bucket=today, opponent_counts=counts)


@dataclass(frozen=True)
class DuelOutcome:
    """Final outcome record of a duel."""

    winner_id: int
    loser_id: int
    bounty: int
    xp_gained: int
    turns: int
    finished_at: datetime


class DuelRepository(ABC):
    """Abstract store for rosters, catalog, economy and duel bookkeeping."""

    @abstractmethod
    async def get_player(self, player_id: int) -> PlayerInfo | None:
        """Get a player's identity, or None if unknown."""
        pass

    @abstractmethod
    async def get_roster(self, player_id: int) -> list[str]:
        """Get the player's ordered team of unit ids (at most 3)."""
        pass

    @abstractmethod
    async def get_unit_progress(self, player_id: int, unit_id: str) -> UnitProgress:
        """Get the player's progress on a unit (level 0 if not owned)."""
        pass

    @abstractmethod
    async def get_unit_definition(self, unit_id: str) -> UnitDefinitionData | None:
        """Get a catalog entry, or None if the unit does not exist."""
        pass

    @abstractmethod
    async def get_economy(self, player_id: int) -> EconomyRecord:
        pass

    @abstractmethod
    async def commit_economy(self, player_id: int, delta: EconomyDelta) -> None:
        pass

    @abstractmethod
    async def get_duel_throttle(self, player_id: int) -> ThrottleRecord:
        pass

    @abstractmethod
    async def commit_duel_throttle(self, player_id: int, record: ThrottleRecord) -> None:
        pass

    @abstractmethod
    async def notify_quest_progress(self, player_id: int, action: str, amount: int) -> None:
        """Record quest progress for an action (best effort for callers)."""
        pass

    @abstractmethod
    async def record_outcome(self, outcome: DuelOutcome) -> None:
        """Store the final outcome of a duel."""
        pass
