"""Database models."""

from .base import Base, TimestampMixin
from .duels import DuelRecord, DuelThrottle
from .enums import (
    AttackKind,
    AttackOutcome,
    ChallengeRejection,
    ChallengeStatus,
    DecisionKind,
    DuelPhase,
    QuestPeriod,
)
from .players import Player, PlayerUnit
from .quests import QuestProgress
from .units import UnitDefinition

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Enums
    "AttackKind",
    "AttackOutcome",
    "ChallengeRejection",
    "ChallengeStatus",
    "DecisionKind",
    "DuelPhase",
    "QuestPeriod",
    # Catalog
    "UnitDefinition",
    # Players
    "Player",
    "PlayerUnit",
    # Duels
    "DuelThrottle",
    "DuelRecord",
    # Quests
    "QuestProgress",
]
