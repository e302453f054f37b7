"""Turn state machine - drives the unit → attack → target → resolve pipeline."""

from collections.abc import Callable
from dataclasses import dataclass

from ..db.models.enums import AttackKind, DecisionKind, DuelPhase
from .damage import DamageResolver
from .types import AWAITING_PHASES, AttackResult, Choice, Decision, DuelSession, Side

# Decision kind each awaiting phase accepts
EXPECTED_DECISION: dict[DuelPhase, DecisionKind] = {
    DuelPhase.AWAITING_UNIT: DecisionKind.UNIT,
    DuelPhase.AWAITING_ATTACK: DecisionKind.ATTACK,
    DuelPhase.AWAITING_TARGET: DecisionKind.TARGET,
}


@dataclass(frozen=True)
class Transition:
    """Outcome of applying one decision.

    accepted is False when the decision was ignored; next_phase is then the
    unchanged current phase and notice explains why.
    """

    accepted: bool
    next_phase: DuelPhase
    notice: str | None = None
    attack: AttackResult | None = None


def choose_first_turn(challenger: Side, challenged: Side) -> int:
    """Get the owner id of the side that moves first.

    The side with the strongest unit goes first; ties favor the challenger.
    """
    if challenger.strongest_power() >= challenged.strongest_power():
        return challenger.owner_id
    return challenged.owner_id


class TurnStateMachine:
    """Applies decisions to a session, one handler per awaiting phase."""

    def __init__(self, resolver: DamageResolver | None = None) -> None:
        self.resolver = resolver or DamageResolver()
        self._handlers: dict[DuelPhase, Callable[[DuelSession, Decision], Transition]] = {
            DuelPhase.AWAITING_UNIT: self._handle_unit_choice,
            DuelPhase.AWAITING_ATTACK: self._handle_attack_type,
            DuelPhase.AWAITING_TARGET: self._handle_target,
        }

    def start_turn(self, session: DuelSession) -> None:
        """Begin a fresh AWAITING_UNIT for the current turn owner."""
        session.turn_number += 1
        session.selected_unit = None
        session.selected_attack = None
        session.last_attack = None
        session.enter_phase(DuelPhase.AWAITING_UNIT)
        session.combat_logger.log_turn_start(session.turn_number, session.current_turn_owner_id)

    def apply(self, session: DuelSession, actor_id: int, decision: Decision) -> Transition:
        """Apply a decision event to the session.

        Decisions from anyone but the turn owner, for another phase, or for
        a stale prompt are ignored without touching the session.

        Args:
            session: Live session
            actor_id: Player who submitted the decision
            decision: The submitted choice

        Returns:
            Transition describing the new phase, or an ignored transition
        """
        if session.phase not in AWAITING_PHASES:
            return self._ignore(session, actor_id, "This duel is not waiting for a decision.")

        if actor_id != session.current_turn_owner_id:
            return self._ignore(session, actor_id, "It's not your turn!")

        if decision.prompt_id is not None and decision.prompt_id != session.prompt_id:
            return self._ignore(session, actor_id, "This prompt has expired.")

        if decision.kind != EXPECTED_DECISION[session.phase]:
            return self._ignore(session, actor_id, "That choice is not available right now.")

        phase = session.phase
        turn_number = session.turn_number
        transition = self._handlers[phase](session, decision)
        if transition.accepted:
            session.combat_logger.log_decision(turn_number, phase, actor_id, decision.kind, decision.value)
        else:
            session.combat_logger.log_decision_ignored(turn_number, phase, actor_id, transition.notice or "rejected")
        return transition

    def choices(self, session: DuelSession) -> list[Choice]:
        """Get the options for the current prompt.

        Knocked-out units are listed but disabled, never auto-skipped.
        """
        match session.phase:
            case DuelPhase.AWAITING_UNIT:
                return [
                    Choice(value=index, label=unit.name, enabled=unit.is_alive())
                    for index, unit in enumerate(session.attacker.units)
                ]

            case DuelPhase.AWAITING_ATTACK:
                unit = session.attacker.units[session.selected_unit]
                options = [Choice(value=AttackKind.NORMAL.value, label="Normal")]
                if unit.stats.special is not None:
                    options.append(Choice(value=AttackKind.SPECIAL.value, label=unit.stats.special.name))
                return options

            case DuelPhase.AWAITING_TARGET:
                return [
                    Choice(
                        value=index,
                        label=f"{unit.name} ({unit.current_health}HP)",
                        enabled=unit.is_alive(),
                    )
                    for index, unit in enumerate(session.defender.units)
                ]

            case _:
                return []

    def finish_resolution(self, session: DuelSession) -> DuelPhase:
        """Leave RESOLVING: settle if the defender is wiped out, else pass the turn."""
        if session.phase != DuelPhase.RESOLVING:
            raise ValueError(f"Session {session.session_id} is {session.phase.value}, not resolving")

        if not session.defender.has_living_units():
            session.enter_phase(DuelPhase.SETTLED)
            session.combat_logger.log_winner(session.turn_number, session.current_turn_owner_id)
            return session.phase

        self._pass_turn(session)
        return session.phase

    def forfeit_turn(self, session: DuelSession) -> None:
        """Skip the rest of the current turn after a decision timeout."""
        if session.phase not in AWAITING_PHASES:
            raise ValueError(f"Session {session.session_id} is {session.phase.value}, nothing to forfeit")

        session.combat_logger.log_turn_forfeited(session.turn_number, session.current_turn_owner_id, session.phase)
        self._pass_turn(session)

    def _pass_turn(self, session: DuelSession) -> None:
        session.current_turn_owner_id = session.defender.owner_id
        self.start_turn(session)

    def _handle_unit_choice(self, session: DuelSession, decision: Decision) -> Transition:
        index = self._parse_index(decision.value, len(session.attacker.units))
        if index is None:
            return Transition(False, session.phase, "Unknown character.")

        if not session.attacker.units[index].is_alive():
            return Transition(False, session.phase, "That character is already defeated!")

        session.selected_unit = index
        session.enter_phase(DuelPhase.AWAITING_ATTACK)
        return Transition(True, session.phase)

    def _handle_attack_type(self, session: DuelSession, decision: Decision) -> Transition:
        try:
            kind = AttackKind(decision.value)
        except ValueError:
            return Transition(False, session.phase, "Unknown attack.")

        unit = session.attacker.units[session.selected_unit]
        if kind == AttackKind.SPECIAL and not unit.has_special:
            return Transition(False, session.phase, f"{unit.name} has no special attack.")

        session.selected_attack = kind
        session.enter_phase(DuelPhase.AWAITING_TARGET)
        return Transition(True, session.phase)

    def _handle_target(self, session: DuelSession, decision: Decision) -> Transition:
        defender = session.defender
        index = self._parse_index(decision.value, len(defender.units))
        if index is None:
            return Transition(False, session.phase, "Unknown target.")

        if not defender.units[index].is_alive():
            return Transition(False, session.phase, "That target is already knocked out.")

        result = self.resolver.resolve(
            session.attacker,
            session.selected_unit,
            session.selected_attack,
            defender,
            index,
        )
        session.last_attack = result
        session.enter_phase(DuelPhase.RESOLVING)

        logger = session.combat_logger
        logger.log_attack(
            session.turn_number,
            result.attacker_id,
            result.kind,
            result.outcome,
            result.attacker_index,
            result.target_index,
            result.damage,
            result.target_health,
        )
        if result.knocked_out:
            logger.log_knockout(session.turn_number, result.attacker_id, result.target_index)

        return Transition(True, session.phase, attack=result)

    def _ignore(self, session: DuelSession, actor_id: int, notice: str) -> Transition:
        session.combat_logger.log_decision_ignored(session.turn_number, session.phase, actor_id, notice)
        return Transition(False, session.phase, notice)

    @staticmethod
    def _parse_index(value: int | str, size: int) -> int | None:
        try:
            index = int(value)
        except (TypeError, ValueError):
            return None
        if 0 <= index < size:
            return index
        return None
