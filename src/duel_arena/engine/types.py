"""Type definitions for the duel engine."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..db.models.enums import AttackKind, AttackOutcome, ChallengeStatus, DecisionKind, DuelPhase

if TYPE_CHECKING:
    from ..config import Settings
    from .logging import CombatLogger

AWAITING_PHASES = frozenset({DuelPhase.AWAITING_UNIT, DuelPhase.AWAITING_ATTACK, DuelPhase.AWAITING_TARGET})


@dataclass(frozen=True)
class DuelRules:
    """Timing and economy knobs for the duel engine."""

    decision_timeout: float = 30.0
    challenge_timeout: float = 30.0
    resolution_delay: float = 2.0
    max_duels_per_opponent: int = 3
    daily_xp_cap: int = 100
    xp_per_win: int = 10

    @classmethod
    def from_settings(cls, settings: "Settings") -> "DuelRules":
        return cls(
            decision_timeout=settings.decision_timeout,
            challenge_timeout=settings.challenge_timeout,
            resolution_delay=settings.resolution_delay,
            max_duels_per_opponent=settings.max_duels_per_opponent,
            daily_xp_cap=settings.daily_duel_xp_cap,
            xp_per_win=settings.xp_per_win,
        )


@dataclass(frozen=True)
class SpecialAttack:
    """A named special attack with an inclusive damage range."""

    name: str
    min_damage: int
    max_damage: int


@dataclass(frozen=True)
class UnitDefinitionData:
    """Catalog entry for a unit, detached from the database row."""

    unit_id: str
    name: str
    power: int
    attack_range: tuple[int, int]
    health: int
    special: SpecialAttack | None = None


@dataclass(frozen=True)
class UnitStats:
    """Level-scaled combat stats, fixed for the whole duel."""

    power: int
    attack_range: tuple[int, int]
    max_health: int
    special: SpecialAttack | None = None


@dataclass
class UnitSnapshot:
    """Battle-scoped view of one roster entry.

    Only current_health changes during a duel.
    """

    unit_id: str
    name: str
    owner_id: int
    level: int
    stats: UnitStats
    current_health: int

    def is_alive(self) -> bool:
        """Check if the unit can still act or be targeted."""
        return self.current_health > 0

    @property
    def has_special(self) -> bool:
        return self.stats.special is not None

    def take_damage(self, amount: int) -> int:
        """Apply damage, clamping at 0. Returns actual HP lost."""
        actual = min(self.current_health, max(0, amount))
        self.current_health -= actual
        return actual


def first_alive_index(units: list[UnitSnapshot]) -> int:
    """Get the lowest index of a living unit, or len(units) if none are alive."""
    for index, unit in enumerate(units):
        if unit.is_alive():
            return index
    return len(units)


@dataclass
class Side:
    """One duel participant and their battle roster."""

    owner_id: int
    display_name: str
    units: list[UnitSnapshot]
    active_index: int = 0

    def __post_init__(self) -> None:
        self.renormalize()

    def renormalize(self) -> None:
        """Point active_index at the first living unit (past-the-end if none)."""
        self.active_index = first_alive_index(self.units)

    def has_living_units(self) -> bool:
        return self.active_index < len(self.units)

    def strongest_power(self) -> int:
        return max((unit.stats.power for unit in self.units), default=0)

    def living_indices(self) -> list[int]:
        return [index for index, unit in enumerate(self.units) if unit.is_alive()]


@dataclass(frozen=True)
class Decision:
    """A player-submitted choice for the current prompt.

    value is a unit index for UNIT/TARGET and an AttackKind value for ATTACK.
    prompt_id scopes the decision to the prompt it was made on; None skips
    the check (e.g., text commands).
    """

    kind: DecisionKind
    value: int | str
    prompt_id: int | None = None


@dataclass(frozen=True)
class AttackResult:
    """Result of one resolved attack."""

    attacker_id: int
    attacker_index: int
    target_index: int
    kind: AttackKind
    outcome: AttackOutcome
    damage: int
    target_health: int
    knocked_out: bool


@dataclass
class PendingDecision:
    """A decision waiting in a session's queue, with the future its sender awaits."""

    actor_id: int
    decision: Decision
    reply: asyncio.Future


@dataclass
class DuelSession:
    """The live state of one in-progress duel.

    Mutated only by the turn state machine and settlement, from the
    session's driver task.
    """

    session_id: str
    challenger: Side
    challenged: Side
    current_turn_owner_id: int
    combat_logger: "CombatLogger"
    phase: DuelPhase = DuelPhase.AWAITING_UNIT
    chat_id: int | None = None
    message_id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    turn_number: int = 0
    prompt_id: int = 0
    selected_unit: int | None = None
    selected_attack: AttackKind | None = None
    last_attack: AttackResult | None = None
    settled: bool = False

    decisions: asyncio.Queue = field(default_factory=asyncio.Queue)

    @property
    def attacker(self) -> Side:
        return self.side_of(self.current_turn_owner_id)

    @property
    def defender(self) -> Side:
        return self.opponent_of(self.current_turn_owner_id)

    def side_of(self, player_id: int) -> Side:
        if self.challenger.owner_id == player_id:
            return self.challenger
        if self.challenged.owner_id == player_id:
            return self.challenged
        raise ValueError(f"Player {player_id} is not in session {self.session_id}")

    def opponent_of(self, player_id: int) -> Side:
        if self.challenger.owner_id == player_id:
            return self.challenged
        if self.challenged.owner_id == player_id:
            return self.challenger
        raise ValueError(f"Player {player_id} is not in session {self.session_id}")

    def has_player(self, player_id: int) -> bool:
        return player_id in (self.challenger.owner_id, self.challenged.owner_id)

    def enter_phase(self, phase: DuelPhase) -> None:
        """Move to a phase; every awaiting phase gets a fresh prompt id."""
        self.phase = phase
        if phase in AWAITING_PHASES:
            self.prompt_id += 1


@dataclass
class PendingChallenge:
    """A challenge waiting for the opponent's answer."""

    challenge_id: str
    challenger_id: int
    challenger_name: str
    opponent_id: int
    opponent_name: str
    chat_id: int | None = None
    message_id: int | None = None
    status: ChallengeStatus = ChallengeStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    answered: asyncio.Event = field(default_factory=asyncio.Event)


@dataclass(frozen=True)
class Choice:
    """One selectable option of a prompt."""

    value: int | str
    label: str
    enabled: bool = True


@dataclass(frozen=True)
class UnitView:
    name: str
    current_health: int
    max_health: int
    power: int
    attack_range: tuple[int, int]
    special: SpecialAttack | None


@dataclass(frozen=True)
class SideView:
    owner_id: int
    display_name: str
    active_index: int
    units: tuple[UnitView, ...]


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot of a session for rendering."""

    session_id: str
    phase: DuelPhase
    turn_number: int
    turn_owner_id: int
    prompt_id: int
    challenger: SideView
    challenged: SideView
    choices: tuple[Choice, ...] = ()
    selected_unit: int | None = None
    selected_attack: AttackKind | None = None
    last_attack: AttackResult | None = None
    chat_id: int | None = None
    message_id: int | None = None

    @property
    def attacker(self) -> SideView:
        return self.challenger if self.challenger.owner_id == self.turn_owner_id else self.challenged

    @property
    def defender(self) -> SideView:
        return self.challenged if self.challenger.owner_id == self.turn_owner_id else self.challenger

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "turn_number": self.turn_number,
            "turn_owner_id": self.turn_owner_id,
            "prompt_id": self.prompt_id,
            "sides": [
                {
                    "owner_id": side.owner_id,
                    "display_name": side.display_name,
                    "active_index": side.active_index,
                    "units": [
                        {"name": u.name, "current_health": u.current_health, "max_health": u.max_health}
                        for u in side.units
                    ],
                }
                for side in (self.challenger, self.challenged)
            ],
            "choices": [{"value": c.value, "label": c.label, "enabled": c.enabled} for c in self.choices],
        }


@dataclass
class SettlementReport:
    """What settlement credited, and which store operations failed."""

    winner_id: int
    loser_id: int
    winner_name: str
    loser_name: str
    bounty: int = 0
    xp_gained: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.errors
