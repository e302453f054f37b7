"""Service layer for game logic."""

from .duels import DuelService
from .players import PlayerService, TeamEntry, TeamResult
from .quests import QuestService
from .repository import SqlDuelRepository
from .units import UnitService, read_catalog

__all__ = [
    "PlayerService",
    "TeamEntry",
    "TeamResult",
    "DuelService",
    "QuestService",
    "SqlDuelRepository",
    "UnitService",
    "read_catalog",
]
