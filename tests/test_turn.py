"""Tests for the turn state machine."""

import pytest

from duel_arena.db.models.enums import AttackKind, DecisionKind, DuelPhase
from duel_arena.engine.damage import DamageResolver
from duel_arena.engine.logging import CombatLogger, LogEventType
from duel_arena.engine.roster import build_side
from duel_arena.engine.turn import TurnStateMachine, choose_first_turn
from duel_arena.engine.types import Decision, DuelSession, SpecialAttack, UnitDefinitionData

KNIGHT = UnitDefinitionData(unit_id="knight", name="Knight", power=100, attack_range=(10, 20), health=100)
SQUIRE = UnitDefinitionData(unit_id="squire", name="Squire", power=80, attack_range=(5, 5), health=50)
WIZARD = UnitDefinitionData(
    unit_id="wizard",
    name="Wizard",
    power=90,
    attack_range=(5, 8),
    health=40,
    special=SpecialAttack("Meteor", 50, 60),
)
CATALOG = {"knight": KNIGHT, "squire": SQUIRE, "wizard": WIZARD}

ALICE = 1
BOB = 2


def make_session(alice_team=("knight", "wizard"), bob_team=("squire", "wizard")) -> DuelSession:
    challenger = build_side(ALICE, "Alice", list(alice_team), {}, CATALOG)
    challenged = build_side(BOB, "Bob", list(bob_team), {}, CATALOG)
    return DuelSession(
        session_id="s1",
        challenger=challenger,
        challenged=challenged,
        current_turn_owner_id=choose_first_turn(challenger, challenged),
        combat_logger=CombatLogger("s1"),
    )


@pytest.fixture
def machine(scripted_rng) -> TurnStateMachine:
    return TurnStateMachine(DamageResolver(scripted_rng(damage=15)))


@pytest.fixture
def session(machine) -> DuelSession:
    session = make_session()
    machine.start_turn(session)
    return session


def decide(session: DuelSession, kind: DecisionKind, value) -> Decision:
    return Decision(kind=kind, value=value, prompt_id=session.prompt_id)


class TestFirstTurn:
    """Tests for choosing who moves first."""

    def test_strongest_unit_moves_first(self):
        challenger = build_side(ALICE, "Alice", ["squire"], {}, CATALOG)
        challenged = build_side(BOB, "Bob", ["knight"], {}, CATALOG)
        assert choose_first_turn(challenger, challenged) == BOB

    def test_tie_goes_to_challenger(self):
        challenger = build_side(ALICE, "Alice", ["knight"], {}, CATALOG)
        challenged = build_side(BOB, "Bob", ["knight"], {}, CATALOG)
        assert choose_first_turn(challenger, challenged) == ALICE


class TestTransitions:
    """Tests for the unit → attack → target pipeline."""

    def test_start_turn_awaits_unit(self, session):
        assert session.phase == DuelPhase.AWAITING_UNIT
        assert session.turn_number == 1
        assert session.current_turn_owner_id == ALICE

    def test_full_turn(self, machine, session):
        t1 = machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        assert t1.accepted and t1.next_phase == DuelPhase.AWAITING_ATTACK

        t2 = machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, "normal"))
        assert t2.accepted and t2.next_phase == DuelPhase.AWAITING_TARGET

        t3 = machine.apply(session, ALICE, decide(session, DecisionKind.TARGET, 0))
        assert t3.accepted and t3.next_phase == DuelPhase.RESOLVING
        assert t3.attack.damage == 15
        assert session.challenged.units[0].current_health == 35
        assert session.last_attack is t3.attack

        assert machine.finish_resolution(session) == DuelPhase.AWAITING_UNIT
        assert session.current_turn_owner_id == BOB
        assert session.turn_number == 2

    def test_each_awaiting_phase_gets_fresh_prompt(self, machine, session):
        first = session.prompt_id
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        assert session.prompt_id == first + 1

    def test_knocked_out_unit_not_selectable(self, machine, session):
        session.challenger.units[0].current_health = 0
        session.challenger.renormalize()

        transition = machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))

        assert not transition.accepted
        assert transition.notice == "That character is already defeated!"
        assert session.phase == DuelPhase.AWAITING_UNIT

    def test_special_rejected_for_unit_without_one(self, machine, session):
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))

        transition = machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, "special"))

        assert not transition.accepted
        assert transition.notice == "Knight has no special attack."
        assert session.phase == DuelPhase.AWAITING_ATTACK

    def test_knocked_out_target_does_not_consume_turn(self, machine, session):
        session.challenged.units[0].current_health = 0
        session.challenged.renormalize()
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, "normal"))

        transition = machine.apply(session, ALICE, decide(session, DecisionKind.TARGET, 0))

        assert not transition.accepted
        assert transition.notice == "That target is already knocked out."
        assert session.phase == DuelPhase.AWAITING_TARGET
        assert session.current_turn_owner_id == ALICE

    def test_winner_when_defender_wiped_out(self, machine, session):
        for unit in session.challenged.units[1:]:
            unit.current_health = 0
        session.challenged.units[0].current_health = 10

        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, "normal"))
        machine.apply(session, ALICE, decide(session, DecisionKind.TARGET, 0))

        assert machine.finish_resolution(session) == DuelPhase.SETTLED
        assert session.current_turn_owner_id == ALICE
        winners = session.combat_logger.get_log().get_entries_by_type(LogEventType.WINNER_DETERMINED)
        assert [entry.winner_id for entry in winners] == [ALICE]


class TestIgnoredDecisions:
    """Decisions that must leave the session untouched."""

    def test_wrong_actor_ignored(self, machine, session):
        healths = [unit.current_health for unit in session.challenged.units]

        transition = machine.apply(session, BOB, decide(session, DecisionKind.UNIT, 0))

        assert not transition.accepted
        assert transition.notice == "It's not your turn!"
        assert session.phase == DuelPhase.AWAITING_UNIT
        assert session.current_turn_owner_id == ALICE
        assert [unit.current_health for unit in session.challenged.units] == healths

    def test_stale_prompt_ignored(self, machine, session):
        stale = decide(session, DecisionKind.UNIT, 0)
        machine.apply(session, ALICE, stale)

        transition = machine.apply(session, ALICE, Decision(DecisionKind.ATTACK, "normal", prompt_id=stale.prompt_id))

        assert not transition.accepted
        assert session.phase == DuelPhase.AWAITING_ATTACK

    def test_wrong_phase_ignored(self, machine, session):
        transition = machine.apply(session, ALICE, decide(session, DecisionKind.TARGET, 0))

        assert not transition.accepted
        assert session.phase == DuelPhase.AWAITING_UNIT

    def test_decision_while_resolving_ignored(self, machine, session):
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, "normal"))
        machine.apply(session, ALICE, decide(session, DecisionKind.TARGET, 1))

        transition = machine.apply(session, ALICE, Decision(DecisionKind.UNIT, 0))

        assert not transition.accepted
        assert session.phase == DuelPhase.RESOLVING

    def test_ignored_decisions_are_logged(self, machine, session):
        machine.apply(session, BOB, decide(session, DecisionKind.UNIT, 0))

        ignored = session.combat_logger.get_log().get_entries_by_type(LogEventType.DECISION_IGNORED)
        assert len(ignored) == 1
        assert ignored[0].actor_id == BOB
        assert ignored[0].reason == "It's not your turn!"


class TestChoices:
    """Tests for prompt options."""

    def test_knocked_out_units_listed_but_disabled(self, machine, session):
        session.challenger.units[0].current_health = 0

        choices = machine.choices(session)

        assert [choice.value for choice in choices] == [0, 1]
        assert [choice.enabled for choice in choices] == [False, True]

    def test_special_offered_only_when_available(self, machine, session):
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        assert [choice.value for choice in machine.choices(session)] == ["normal"]

        session2 = make_session()
        machine.start_turn(session2)
        machine.apply(session2, ALICE, decide(session2, DecisionKind.UNIT, 1))
        assert [choice.label for choice in machine.choices(session2)] == ["Normal", "Meteor"]

    def test_target_choices_cover_full_roster(self, machine, session):
        session.challenged.units[0].current_health = 0
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, AttackKind.NORMAL.value))

        choices = machine.choices(session)

        assert len(choices) == 2
        assert not choices[0].enabled
        assert choices[1].enabled


class TestForfeit:
    """Tests for decision timeouts."""

    def test_forfeit_passes_turn_without_damage(self, machine, session):
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, "normal"))
        healths = [unit.current_health for side in (session.challenger, session.challenged) for unit in side.units]

        machine.forfeit_turn(session)

        assert session.current_turn_owner_id == BOB
        assert session.phase == DuelPhase.AWAITING_UNIT
        assert session.selected_unit is None
        assert [unit.current_health for side in (session.challenger, session.challenged) for unit in side.units] == (
            healths
        )
        forfeits = session.combat_logger.get_log().get_entries_by_type(LogEventType.TURN_FORFEITED)
        assert forfeits[0].phase == DuelPhase.AWAITING_TARGET

    def test_cannot_forfeit_while_resolving(self, machine, session):
        machine.apply(session, ALICE, decide(session, DecisionKind.UNIT, 0))
        machine.apply(session, ALICE, decide(session, DecisionKind.ATTACK, "normal"))
        machine.apply(session, ALICE, decide(session, DecisionKind.TARGET, 0))

        with pytest.raises(ValueError):
            machine.forfeit_turn(session)
