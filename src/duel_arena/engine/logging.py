"""Combat logging for live duel sessions.

Records the structured events of one session in memory:
- Turn starts and forfeits
- Accepted and ignored decisions
- Attacks and knockouts
- Winner and settlement

Logs live only as long as the session; they are never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..db.models.enums import AttackKind, AttackOutcome, DecisionKind, DuelPhase


class LogEventType(str, Enum):
    """Types of log events."""

    DUEL_START = "duel_start"

    # Turn lifecycle
    TURN_START = "turn_start"
    TURN_FORFEITED = "turn_forfeited"  # Decision timed out

    # Decisions
    DECISION_ACCEPTED = "decision_accepted"
    DECISION_IGNORED = "decision_ignored"

    # Damage
    ATTACK = "attack"
    KNOCKOUT = "knockout"

    # End of duel
    WINNER_DETERMINED = "winner_determined"
    SETTLEMENT = "settlement"


@dataclass
class LogEntry:
    """A single log entry representing a combat event."""

    event_type: LogEventType
    turn_number: int
    timestamp_order: int = 0
    phase: DuelPhase | None = None
    actor_id: int | None = None

    # Decision details
    decision_kind: DecisionKind | None = None
    decision_value: int | str | None = None
    reason: str | None = None

    # Attack details
    attack_kind: AttackKind | None = None
    outcome: AttackOutcome | None = None
    attacker_index: int | None = None
    target_index: int | None = None
    value: int | None = None
    target_health: int | None = None

    # End of duel
    winner_id: int | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization, skipping unset fields."""
        result: dict[str, Any] = {
            "event_type": self.event_type.value,
            "turn_number": self.turn_number,
            "timestamp_order": self.timestamp_order,
        }
        optional = {
            "phase": self.phase.value if self.phase else None,
            "actor_id": self.actor_id,
            "decision_kind": self.decision_kind.value if self.decision_kind else None,
            "decision_value": self.decision_value,
            "reason": self.reason,
            "attack_kind": self.attack_kind.value if self.attack_kind else None,
            "outcome": self.outcome.value if self.outcome else None,
            "attacker_index": self.attacker_index,
            "target_index": self.target_index,
            "value": self.value,
            "target_health": self.target_health,
            "winner_id": self.winner_id,
            "description": self.description,
        }
        result.update({key: value for key, value in optional.items() if value is not None})
        return result


@dataclass
class CombatLog:
    """Complete log of one duel session."""

    session_id: str
    entries: list[LogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "session_id": self.session_id,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    def get_entries_by_type(self, event_type: LogEventType) -> list[LogEntry]:
        """Get all entries of a specific type."""
        return [e for e in self.entries if e.event_type == event_type]

    def get_entries_for_turn(self, turn_number: int) -> list[LogEntry]:
        """Get all entries for a specific turn."""
        return [e for e in self.entries if e.turn_number == turn_number]

    def format_readable(self) -> str:
        """Format the log in a human-readable format."""
        lines: list[str] = [f"=== Combat Log (Session {self.session_id}) ==="]

        current_turn = -1
        for entry in self.entries:
            if entry.turn_number != current_turn:
                current_turn = entry.turn_number
                lines.append(f"\n--- Turn {current_turn} ---")
            lines.append(self._format_entry(entry))

        return "\n".join(lines)

    def _format_entry(self, entry: LogEntry) -> str:
        """Format a single log entry."""
        match entry.event_type:
            case LogEventType.DUEL_START:
                return f"  Duel begins, player {entry.actor_id} moves first"

            case LogEventType.TURN_START:
                return f"  Turn {entry.turn_number} begins for player {entry.actor_id}"

            case LogEventType.TURN_FORFEITED:
                phase = entry.phase.value if entry.phase else "?"
                return f"  Player {entry.actor_id} timed out at {phase}, turn passes"

            case LogEventType.DECISION_ACCEPTED:
                kind = entry.decision_kind.value if entry.decision_kind else "?"
                return f"    ✓ {kind} = {entry.decision_value} by player {entry.actor_id}"

            case LogEventType.DECISION_IGNORED:
                return f"    ✗ Decision by player {entry.actor_id} ignored ({entry.reason})"

            case LogEventType.ATTACK:
                outcome = entry.outcome.value if entry.outcome else "?"
                return (
                    f"    → Unit #{entry.attacker_index} hits #{entry.target_index}: "
                    f"{outcome} for {entry.value} [HP left: {entry.target_health}]"
                )

            case LogEventType.KNOCKOUT:
                return f"    ☠ Unit #{entry.target_index} knocked out"

            case LogEventType.WINNER_DETERMINED:
                return f"  *** WINNER: Player {entry.winner_id} ***"

            case _:
                return f"  {entry.event_type.value}: {entry.description or ''}"


class CombatLogger:
    """Logger for tracking the events of one duel session.

    Usage:
        logger = CombatLogger(session_id="a1b2")
        logger.log_turn_start(turn_number=1, actor_id=42)
        # ... log events ...
        print(logger.get_log().format_readable())
    """

    def __init__(self, session_id: str) -> None:
        """Initialize the logger for a session."""
        self.session_id = session_id
        self._log = CombatLog(session_id=session_id)
        self._order_counter = 0

    def _next_order(self) -> int:
        """Get the next timestamp order value."""
        self._order_counter += 1
        return self._order_counter

    def _append(self, entry: LogEntry) -> None:
        entry.timestamp_order = self._next_order()
        self._log.entries.append(entry)

    def get_log(self) -> CombatLog:
        """Get the complete combat log."""
        return self._log

    def log_duel_start(self, first_player_id: int) -> None:
        self._append(LogEntry(event_type=LogEventType.DUEL_START, turn_number=0, actor_id=first_player_id))

    def log_turn_start(self, turn_number: int, actor_id: int) -> None:
        self._append(
            LogEntry(
                event_type=LogEventType.TURN_START,
                turn_number=turn_number,
                phase=DuelPhase.AWAITING_UNIT,
                actor_id=actor_id,
            )
        )

    def log_turn_forfeited(self, turn_number: int, actor_id: int, phase: DuelPhase) -> None:
        self._append(
            LogEntry(event_type=LogEventType.TURN_FORFEITED, turn_number=turn_number, phase=phase, actor_id=actor_id)
        )

    def log_decision(
        self,
        turn_number: int,
        phase: DuelPhase,
        actor_id: int,
        kind: DecisionKind,
        value: int | str,
    ) -> None:
        """Log an accepted decision."""
        self._append(
            LogEntry(
                event_type=LogEventType.DECISION_ACCEPTED,
                turn_number=turn_number,
                phase=phase,
                actor_id=actor_id,
                decision_kind=kind,
                decision_value=value,
            )
        )

    def log_decision_ignored(self, turn_number: int, phase: DuelPhase, actor_id: int, reason: str) -> None:
        """Log a decision that did not change the session."""
        self._append(
            LogEntry(
                event_type=LogEventType.DECISION_IGNORED,
                turn_number=turn_number,
                phase=phase,
                actor_id=actor_id,
                reason=reason,
            )
        )

    def log_attack(
        self,
        turn_number: int,
        actor_id: int,
        kind: AttackKind,
        outcome: AttackOutcome,
        attacker_index: int,
        target_index: int,
        damage: int,
        target_health: int,
    ) -> None:
        """Log a resolved attack."""
        self._append(
            LogEntry(
                event_type=LogEventType.ATTACK,
                turn_number=turn_number,
                phase=DuelPhase.RESOLVING,
                actor_id=actor_id,
                attack_kind=kind,
                outcome=outcome,
                attacker_index=attacker_index,
                target_index=target_index,
                value=damage,
                target_health=target_health,
            )
        )

    def log_knockout(self, turn_number: int, actor_id: int, target_index: int) -> None:
        self._append(
            LogEntry(
                event_type=LogEventType.KNOCKOUT,
                turn_number=turn_number,
                phase=DuelPhase.RESOLVING,
                actor_id=actor_id,
                target_index=target_index,
            )
        )

    def log_winner(self, turn_number: int, winner_id: int) -> None:
        """Log the winner determination."""
        self._append(LogEntry(event_type=LogEventType.WINNER_DETERMINED, turn_number=turn_number, winner_id=winner_id))

    def log_settlement(self, turn_number: int, winner_id: int, description: str) -> None:
        self._append(
            LogEntry(
                event_type=LogEventType.SETTLEMENT,
                turn_number=turn_number,
                phase=DuelPhase.SETTLED,
                winner_id=winner_id,
                description=description,
            )
        )
