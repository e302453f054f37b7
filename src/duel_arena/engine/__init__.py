"""Duel engine module - roster snapshots, turn state machine, damage and settlement."""

from .damage import DamageResolver
from .duel import DecisionResult, DuelEngine, DuelResult
from .logging import CombatLog, CombatLogger, LogEntry, LogEventType
from .presenter import DuelPresenter, NullPresenter
from .repository import (
    DuelOutcome,
    DuelRepository,
    EconomyDelta,
    EconomyRecord,
    PlayerInfo,
    ThrottleRecord,
    UnitProgress,
)
from .roster import build_side, scale_stat, scale_stats
from .settlement import OutcomeSettlement
from .store import KeyedLocks, SessionStore
from .turn import Transition, TurnStateMachine, choose_first_turn
from .types import (
    AttackResult,
    Decision,
    DuelRules,
    DuelSession,
    PendingChallenge,
    SessionView,
    SettlementReport,
    Side,
    SpecialAttack,
    UnitDefinitionData,
    UnitSnapshot,
    first_alive_index,
)

__all__ = [
    "DamageResolver",
    "DuelEngine",
    "DuelResult",
    "DecisionResult",
    "CombatLogger",
    "CombatLog",
    "LogEntry",
    "LogEventType",
    "DuelPresenter",
    "NullPresenter",
    "DuelRepository",
    "DuelOutcome",
    "EconomyDelta",
    "EconomyRecord",
    "PlayerInfo",
    "ThrottleRecord",
    "UnitProgress",
    "build_side",
    "scale_stat",
    "scale_stats",
    "OutcomeSettlement",
    "KeyedLocks",
    "SessionStore",
    "Transition",
    "TurnStateMachine",
    "choose_first_turn",
    "AttackResult",
    "Decision",
    "DuelRules",
    "DuelSession",
    "PendingChallenge",
    "SessionView",
    "SettlementReport",
    "Side",
    "SpecialAttack",
    "UnitDefinitionData",
    "UnitSnapshot",
    "first_alive_index",
]
