"""Outcome settlement - rewards, duel bookkeeping and quest progress after a win."""

import logging
import random
from collections.abc import Callable
from datetime import datetime, timezone

from ..utils.rewards import calculate_xp_gain, day_bucket, roll_bounty
from .repository import DuelOutcome, DuelRepository, EconomyDelta
from .store import KeyedLocks
from .types import DuelRules, DuelSession, SettlementReport

logger = logging.getLogger("duel_arena.engine.settlement")

QUEST_ACTION_DUEL = "duel"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutcomeSettlement:
    """Credits the winner and records the duel, exactly once per session.

    Store failures are logged and reported but never undo what was already
    committed: duel rewards are entertainment currency, not a ledger.
    """

    def __init__(
        self,
        repository: DuelRepository,
        rules: DuelRules | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.repository = repository
        self.rules = rules or DuelRules()
        self.rng = rng or random.Random()
        self.clock = clock
        self.locks = locks if locks is not None else KeyedLocks()

    async def settle(self, session: DuelSession) -> SettlementReport:
        """Settle a finished duel.

        The turn owner is the winner: settlement only happens right after
        their attack wiped out the defending side.

        Raises:
            ValueError: If the session was already settled or the loser still has units
        """
        if session.settled:
            raise ValueError(f"Session {session.session_id} is already settled")

        winner = session.attacker
        loser = session.defender
        if loser.has_living_units():
            raise ValueError(f"Session {session.session_id} has no winner yet")

        session.settled = True
        report = SettlementReport(
            winner_id=winner.owner_id,
            loser_id=loser.owner_id,
            winner_name=winner.display_name,
            loser_name=loser.display_name,
        )

        now = self.clock()
        today = day_bucket(now)

        async with self.locks.hold([winner.owner_id, loser.owner_id]):
            await self._credit_winner(report, today)
            await self._count_duel(report.winner_id, report.loser_id, today, report)
            await self._count_duel(report.loser_id, report.winner_id, today, report)

        await self._notify_quests(report)
        await self._record_outcome(report, session.turn_number, now)

        session.combat_logger.log_settlement(
            session.turn_number,
            report.winner_id,
            f"bounty={report.bounty} xp={report.xp_gained} errors={len(report.errors)}",
        )
        logger.info(
            f"Duel {session.session_id} settled: {report.winner_id} beat {report.loser_id}, "
            f"bounty {report.bounty}, xp {report.xp_gained}"
        )
        return report

    async def _credit_winner(self, report: SettlementReport, today: int) -> None:
        """Credit bounty and capped daily experience to the winner."""
        try:
            loser_economy = await self.repository.get_economy(report.loser_id)
            winner_economy = await self.repository.get_economy(report.winner_id)

            bounty = roll_bounty(loser_economy.xp, self.rng)

            xp_today = winner_economy.daily_duel_xp if winner_economy.daily_duel_xp_bucket == today else 0
            xp_gain = calculate_xp_gain(xp_today, self.rules.daily_xp_cap, self.rules.xp_per_win)

            await self.repository.commit_economy(
                report.winner_id,
                EconomyDelta(
                    currency=bounty,
                    xp=xp_gain,
                    daily_duel_xp=xp_today + xp_gain,
                    daily_duel_xp_bucket=today,
                ),
            )
        except Exception:
            logger.exception(f"Failed to credit duel rewards to player {report.winner_id}")
            report.errors.append("economy")
            return

        report.bounty = bounty
        report.xp_gained = xp_gain

    async def _count_duel(self, player_id: int, opponent_id: int, today: int, report: SettlementReport) -> None:
        """Increment a player's duel counter against an opponent."""
        try:
            record = await self.repository.get_duel_throttle(player_id)
            await self.repository.commit_duel_throttle(player_id, record.incremented(opponent_id, today))
        except Exception:
            logger.exception(f"Failed to update duel throttle of player {player_id}")
            report.errors.append(f"throttle:{player_id}")

    async def _notify_quests(self, report: SettlementReport) -> None:
        try:
            await self.repository.notify_quest_progress(report.winner_id, QUEST_ACTION_DUEL, 1)
        except Exception:
            logger.exception(f"Failed to record duel quest progress for player {report.winner_id}")
            report.errors.append("quests")

    async def _record_outcome(self, report: SettlementReport, turns: int, now: datetime) -> None:
        try:
            await self.repository.record_outcome(
                DuelOutcome(
                    winner_id=report.winner_id,
                    loser_id=report.loser_id,
                    bounty=report.bounty,
                    xp_gained=report.xp_gained,
                    turns=turns,
                    finished_at=now,
                )
            )
        except Exception:
            logger.exception(f"Failed to record duel outcome {report.winner_id} vs {report.loser_id}")
            report.errors.append("outcome")
