"""Duel engine - orchestrates duels from challenge to settlement."""

import asyncio
import logging
import random
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..db.models.enums import ChallengeRejection, ChallengeStatus, DuelPhase
from ..utils.rewards import day_bucket
from .damage import DamageResolver
from .logging import CombatLogger
from .presenter import DuelPresenter, NullPresenter
from .repository import DuelRepository
from .roster import build_side
from .settlement import OutcomeSettlement
from .store import KeyedLocks, SessionStore
from .turn import Transition, TurnStateMachine, choose_first_turn
from .types import (
    AWAITING_PHASES,
    AttackResult,
    Decision,
    DuelRules,
    DuelSession,
    PendingChallenge,
    PendingDecision,
    SessionView,
    Side,
    SideView,
    UnitView,
)

logger = logging.getLogger("duel_arena.engine")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DuelResult:
    """Result of a challenge operation."""

    success: bool
    message: str
    reason: ChallengeRejection | None = None
    challenge: PendingChallenge | None = None
    view: SessionView | None = None


@dataclass
class DecisionResult:
    """Result of submitting a decision."""

    success: bool
    message: str | None = None
    view: SessionView | None = None
    attack: AttackResult | None = None


class DuelEngine:
    """Main duel engine - challenges, live sessions and their driver tasks.

    Each accepted duel gets one driver task. Decisions reach it through the
    session's queue, so a session never runs two transitions at once while
    different sessions proceed independently.
    """

    def __init__(
        self,
        repository: DuelRepository,
        store: SessionStore | None = None,
        rules: DuelRules | None = None,
        presenter: DuelPresenter | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.store = store or SessionStore()
        self.rules = rules or DuelRules()
        self.presenter = presenter or NullPresenter()
        self.clock = clock
        self.rng = rng or random.Random()
        self.machine = TurnStateMachine(DamageResolver(self.rng))
        # Per-player locks, held by settlement and while an accepted challenge becomes a session
        self.locks = KeyedLocks()
        self.settlement = OutcomeSettlement(repository, self.rules, self.rng, clock, locks=self.locks)
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------

    async def propose_challenge(
        self,
        challenger_id: int,
        opponent_id: int,
        chat_id: int | None = None,
    ) -> DuelResult:
        """Issue a challenge after validating both players.

        Args:
            challenger_id: Player issuing the challenge
            opponent_id: Player being challenged
            chat_id: Chat the duel will be played in

        Returns:
            DuelResult with the pending challenge, or the rejection reason
        """
        if challenger_id == opponent_id:
            return self._reject(ChallengeRejection.SELF_CHALLENGE, "You can't duel yourself!")

        challenger = await self.repository.get_player(challenger_id)
        opponent = await self.repository.get_player(opponent_id)
        if challenger is None or opponent is None:
            return self._reject(ChallengeRejection.NO_ROSTER, "Both players need a team to duel.")

        if opponent.is_bot:
            return self._reject(ChallengeRejection.BOT_OPPONENT, "You can't duel bots!")

        if not await self.repository.get_roster(challenger_id):
            return self._reject(
                ChallengeRejection.NO_ROSTER,
                "You need to have a team to duel. Use /team add to build your team.",
            )
        if not await self.repository.get_roster(opponent_id):
            return self._reject(ChallengeRejection.NO_ROSTER, f"{opponent.display_name} doesn't have a team set up yet.")

        throttle = await self.repository.get_duel_throttle(challenger_id)
        if throttle.count_for(opponent_id, day_bucket(self.clock())) >= self.rules.max_duels_per_opponent:
            return self._reject(
                ChallengeRejection.THROTTLE_EXCEEDED,
                f"You've already dueled {opponent.display_name} {self.rules.max_duels_per_opponent} times today!",
            )

        # No await from here to add_challenge, so the checks below hold when it is registered
        if self.store.sessions_for_player(challenger_id):
            return self._reject(ChallengeRejection.ALREADY_IN_DUEL, "You are already in an active duel!")
        if self.store.sessions_for_player(opponent_id):
            return self._reject(
                ChallengeRejection.ALREADY_IN_DUEL, f"{opponent.display_name} is already in an active duel!"
            )
        if self.store.challenges_between(challenger_id, opponent_id):
            return self._reject(
                ChallengeRejection.ALREADY_IN_DUEL,
                f"There is already an open challenge between you and {opponent.display_name}.",
            )

        challenge = PendingChallenge(
            challenge_id=uuid.uuid4().hex[:12],
            challenger_id=challenger_id,
            challenger_name=challenger.display_name,
            opponent_id=opponent_id,
            opponent_name=opponent.display_name,
            chat_id=chat_id,
        )
        self.store.add_challenge(challenge)
        self._spawn(f"challenge:{challenge.challenge_id}", self._watch_challenge(challenge))

        logger.info(f"Challenge {challenge.challenge_id}: {challenger_id} -> {opponent_id}")
        return DuelResult(success=True, message="Challenge sent", challenge=challenge)

    def attach_challenge_message(self, challenge_id: str, message_id: int) -> None:
        """Remember which message shows a challenge."""
        challenge = self.store.get_challenge(challenge_id)
        if challenge is not None:
            challenge.message_id = message_id

    async def accept_challenge(self, challenge_id: str, actor_id: int) -> DuelResult:
        """Accept a challenge and start the duel.

        Args:
            challenge_id: Challenge to accept
            actor_id: Player answering; must be the challenged one

        Returns:
            DuelResult with the initial session view
        """
        challenge = self.store.get_challenge(challenge_id)
        if challenge is None or challenge.status != ChallengeStatus.PENDING:
            return DuelResult(success=False, message="This duel is no longer available.")

        if actor_id != challenge.opponent_id:
            return DuelResult(success=False, message="You are not the challenged player")

        async with self.locks.hold([challenge.challenger_id, challenge.opponent_id]):
            return await self._start_from(challenge)

    async def _start_from(self, challenge: PendingChallenge) -> DuelResult:
        """Re-check limits for an accepted challenge and create its session.

        Runs under both players' locks. A player already in a live duel leaves
        the challenge open; a used-up throttle closes it.
        """
        if challenge.status != ChallengeStatus.PENDING:
            return DuelResult(success=False, message="This duel is no longer available.")

        if self.store.sessions_for_player(challenge.opponent_id):
            return self._reject(ChallengeRejection.ALREADY_IN_DUEL, "You are already in an active duel!")
        if self.store.sessions_for_player(challenge.challenger_id):
            return self._reject(
                ChallengeRejection.ALREADY_IN_DUEL, f"{challenge.challenger_name} is already in an active duel!"
            )

        throttle = await self.repository.get_duel_throttle(challenge.challenger_id)
        if throttle.count_for(challenge.opponent_id, day_bucket(self.clock())) >= self.rules.max_duels_per_opponent:
            self._close_challenge(challenge, ChallengeStatus.EXPIRED)
            logger.info(f"Challenge {challenge.challenge_id} closed, duel limit reached since it was issued")
            return self._reject(
                ChallengeRejection.THROTTLE_EXCEEDED,
                f"{challenge.challenger_name} and {challenge.opponent_name} have already dueled "
                f"{self.rules.max_duels_per_opponent} times today!",
            )

        # The status may have changed while the throttle was read
        if challenge.status != ChallengeStatus.PENDING:
            return DuelResult(success=False, message="This duel is no longer available.")
        self._close_challenge(challenge, ChallengeStatus.ACCEPTED)

        try:
            challenger = await self._build_side(challenge.challenger_id, challenge.challenger_name)
            challenged = await self._build_side(challenge.opponent_id, challenge.opponent_name)
        except ValueError as e:
            logger.warning(f"Challenge {challenge.challenge_id} could not start: {e}")
            return DuelResult(success=False, message="A team is no longer valid.", reason=ChallengeRejection.NO_ROSTER)

        session_id = uuid.uuid4().hex[:12]
        first_player_id = choose_first_turn(challenger, challenged)
        session = DuelSession(
            session_id=session_id,
            challenger=challenger,
            challenged=challenged,
            current_turn_owner_id=first_player_id,
            combat_logger=CombatLogger(session_id),
            chat_id=challenge.chat_id,
            message_id=challenge.message_id,
            created_at=self.clock(),
        )
        self.store.create(session)
        session.combat_logger.log_duel_start(first_player_id)
        self.machine.start_turn(session)
        self._spawn(session_id, self._drive(session))

        logger.info(f"Duel {session_id} started from challenge {challenge.challenge_id}, {first_player_id} moves first")
        return DuelResult(success=True, message="Duel started", view=self.build_view(session))

    async def decline_challenge(self, challenge_id: str, actor_id: int) -> DuelResult:
        """Decline a challenge. No session is created."""
        challenge = self.store.get_challenge(challenge_id)
        if challenge is None or challenge.status != ChallengeStatus.PENDING:
            return DuelResult(success=False, message="This duel is no longer available.")

        if actor_id != challenge.opponent_id:
            return DuelResult(success=False, message="You are not the challenged player")

        self._close_challenge(challenge, ChallengeStatus.DECLINED)
        logger.info(f"Challenge {challenge_id} declined")
        return DuelResult(success=True, message="Duel declined.", challenge=challenge)

    # ------------------------------------------------------------------
    # Decisions and views
    # ------------------------------------------------------------------

    async def submit_decision(self, session_id: str, actor_id: int, decision: Decision) -> DecisionResult:
        """Submit a decision for a live session.

        The decision is queued for the session's driver and this call waits
        for the driver's answer.

        Returns:
            DecisionResult with the updated view, or the reason it was ignored
        """
        session = self.store.get(session_id)
        if session is None:
            return DecisionResult(success=False, message="This duel is no longer active.")

        if not session.has_player(actor_id):
            return DecisionResult(success=False, message="You are not in this duel!")

        if actor_id != session.current_turn_owner_id:
            session.combat_logger.log_decision_ignored(session.turn_number, session.phase, actor_id, "not turn owner")
            return DecisionResult(success=False, message="It's not your turn!", view=self.build_view(session))

        if session.phase not in AWAITING_PHASES:
            return DecisionResult(success=False, message="Please wait for the current attack to finish.")

        reply: asyncio.Future = asyncio.get_running_loop().create_future()
        session.decisions.put_nowait(PendingDecision(actor_id=actor_id, decision=decision, reply=reply))
        transition: Transition = await reply

        return DecisionResult(
            success=transition.accepted,
            message=transition.notice,
            view=self.build_view(session),
            attack=transition.attack,
        )

    def get_view(self, session_id: str) -> SessionView | None:
        """Get a read-only view of a live session."""
        session = self.store.get(session_id)
        if session is None:
            return None
        return self.build_view(session)

    def build_view(self, session: DuelSession) -> SessionView:
        return SessionView(
            session_id=session.session_id,
            phase=session.phase,
            turn_number=session.turn_number,
            turn_owner_id=session.current_turn_owner_id,
            prompt_id=session.prompt_id,
            challenger=_side_view(session.challenger),
            challenged=_side_view(session.challenged),
            choices=tuple(self.machine.choices(session)),
            selected_unit=session.selected_unit,
            selected_attack=session.selected_attack,
            last_attack=session.last_attack,
            chat_id=session.chat_id,
            message_id=session.message_id,
        )

    # ------------------------------------------------------------------
    # Task management
    # ------------------------------------------------------------------

    async def wait_closed(self, key: str) -> None:
        """Wait until a session's (or challenge:<id>) task finishes."""
        task = self._tasks.get(key)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every running session and challenge task.

        Live sessions are abandoned without settlement.
        """
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(self, key: str, coro: Awaitable[Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks[key] = task
        task.add_done_callback(lambda _: self._tasks.pop(key, None))

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------

    async def _watch_challenge(self, challenge: PendingChallenge) -> None:
        """Withdraw a challenge nobody answered in time."""
        try:
            await asyncio.wait_for(challenge.answered.wait(), timeout=self.rules.challenge_timeout)
        except asyncio.TimeoutError:
            if challenge.status != ChallengeStatus.PENDING:
                return
            self._close_challenge(challenge, ChallengeStatus.EXPIRED)
            logger.info(f"Challenge {challenge.challenge_id} expired")
            await self._present(self.presenter.challenge_expired, challenge)

    async def _drive(self, session: DuelSession) -> None:
        """Run a session until it is settled."""
        try:
            while session.phase != DuelPhase.SETTLED:
                await self._show_prompt(session)

                transition = await self._await_decision(session)
                if transition is None:
                    logger.info(
                        f"Duel {session.session_id}: player {session.current_turn_owner_id} "
                        f"timed out at {session.phase.value}"
                    )
                    await self._present(self.presenter.withdraw_prompt, self.build_view(session))
                    self.machine.forfeit_turn(session)
                    continue

                if session.phase != DuelPhase.RESOLVING:
                    continue

                await self._present(self.presenter.show_attack, self.build_view(session), transition.attack)
                await asyncio.sleep(self.rules.resolution_delay)

                if self.machine.finish_resolution(session) == DuelPhase.SETTLED:
                    report = await self.settlement.settle(session)
                    await self._present(self.presenter.show_settlement, self.build_view(session), report)
        except Exception:
            logger.exception(f"Duel {session.session_id} aborted")
        finally:
            self.store.delete(session.session_id)
            self._release_pending(session)
            logger.debug(session.combat_logger.get_log().format_readable())

    async def _await_decision(self, session: DuelSession) -> Transition | None:
        """Wait for the first valid decision of the current phase.

        Ignored decisions do not extend the wait.

        Returns:
            The accepted transition, or None when the phase timed out
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.rules.decision_timeout

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            try:
                pending: PendingDecision = await asyncio.wait_for(session.decisions.get(), timeout=remaining)
            except asyncio.TimeoutError:
                return None

            transition = self.machine.apply(session, pending.actor_id, pending.decision)
            if not pending.reply.done():
                pending.reply.set_result(transition)
            if transition.accepted:
                return transition

    async def _show_prompt(self, session: DuelSession) -> None:
        message_id = await self._present(self.presenter.show_prompt, self.build_view(session))
        if message_id is not None:
            session.message_id = message_id

    async def _present(self, hook: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        """Call a presenter hook; failures are logged and never reach the session."""
        try:
            return await hook(*args)
        except Exception:
            logger.exception(f"Presenter {hook.__name__} failed")
            return None

    def _release_pending(self, session: DuelSession) -> None:
        """Answer decisions still queued on a session that ended."""
        while not session.decisions.empty():
            pending: PendingDecision = session.decisions.get_nowait()
            if not pending.reply.done():
                pending.reply.set_result(Transition(False, session.phase, "This duel is no longer active."))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _build_side(self, player_id: int, display_name: str) -> Side:
        """Snapshot a player's current team. Raises ValueError for invalid teams."""
        team = await self.repository.get_roster(player_id)
        levels: dict[str, int] = {}
        catalog = {}
        for unit_id in team:
            definition = await self.repository.get_unit_definition(unit_id)
            if definition is not None:
                catalog[unit_id] = definition
            levels[unit_id] = (await self.repository.get_unit_progress(player_id, unit_id)).level
        return build_side(player_id, display_name, team, levels, catalog)

    def _close_challenge(self, challenge: PendingChallenge, status: ChallengeStatus) -> None:
        challenge.status = status
        challenge.answered.set()
        self.store.remove_challenge(challenge.challenge_id)

    @staticmethod
    def _reject(reason: ChallengeRejection, message: str) -> DuelResult:
        return DuelResult(success=False, message=message, reason=reason)


def _side_view(side: Side) -> SideView:
    return SideView(
        owner_id=side.owner_id,
        display_name=side.display_name,
        active_index=side.active_index,
        units=tuple(
            UnitView(
                name=unit.name,
                current_health=unit.current_health,
                max_health=unit.stats.max_health,
                power=unit.stats.power,
                attack_range=unit.stats.attack_range,
                special=unit.stats.special,
            )
            for unit in side.units
        ),
    )
