"""Enums for game models and the duel engine."""

from enum import Enum


class DuelPhase(str, Enum):
    """Phases of a live duel session."""

    AWAITING_UNIT = "awaiting_unit"  # Turn owner picks one of their living units
    AWAITING_ATTACK = "awaiting_attack"  # Turn owner picks normal or special
    AWAITING_TARGET = "awaiting_target"  # Turn owner picks an opposing unit
    RESOLVING = "resolving"  # Damage applied, result on screen
    SETTLED = "settled"  # One side has no living units


class DecisionKind(str, Enum):
    """Kind of decision a player submits; one per awaiting phase."""

    UNIT = "unit"
    ATTACK = "attack"
    TARGET = "target"


class AttackKind(str, Enum):
    """Attack chosen by the player."""

    NORMAL = "normal"
    SPECIAL = "special"


class AttackOutcome(str, Enum):
    """What an attack actually did."""

    MISS = "miss"
    NORMAL = "normal"  # Damage drawn from the normal range
    SPECIAL = "special"  # Damage drawn from the special range


class ChallengeStatus(str, Enum):
    """Status of a challenge before a session exists."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class ChallengeRejection(str, Enum):
    """Why a challenge could not be issued."""

    SELF_CHALLENGE = "self_challenge"
    BOT_OPPONENT = "bot_opponent"
    NO_ROSTER = "no_roster"
    THROTTLE_EXCEEDED = "throttle_exceeded"
    ALREADY_IN_DUEL = "already_in_duel"  # A live duel or an open challenge is in the way


class QuestPeriod(str, Enum):
    """Quest tracking windows."""

    DAILY = "daily"
    WEEKLY = "weekly"
