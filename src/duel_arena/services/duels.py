"""Duel service - handles duel operations for bot handlers."""

from typing import Any

from ..db.models.enums import DecisionKind
from ..engine.duel import DecisionResult, DuelEngine, DuelResult
from ..engine.types import Decision


class DuelService:
    """Service for duel operations.

    Translates bot-level input (player ids, raw callback values) into
    engine calls.
    """

    def __init__(self, engine: DuelEngine) -> None:
        self.engine = engine

    async def create_challenge(
        self,
        challenger_id: int,
        challenged_id: int,
        chat_id: int | None = None,
    ) -> DuelResult:
        """Create a new duel challenge.

        Args:
            challenger_id: Player ID of the challenger
            challenged_id: Player ID of the challenged player
            chat_id: Chat where the duel is played

        Returns:
            DuelResult with the pending challenge
        """
        return await self.engine.propose_challenge(challenger_id, challenged_id, chat_id)

    def attach_challenge_message(self, challenge_id: str, message_id: int) -> None:
        self.engine.attach_challenge_message(challenge_id, message_id)

    async def accept_challenge(self, challenge_id: str, player_id: int) -> DuelResult:
        """Accept a duel challenge."""
        return await self.engine.accept_challenge(challenge_id, player_id)

    async def decline_challenge(self, challenge_id: str, player_id: int) -> DuelResult:
        """Decline a duel challenge."""
        return await self.engine.decline_challenge(challenge_id, player_id)

    async def submit_decision(
        self,
        session_id: str,
        player_id: int,
        kind: str,
        value: str,
        prompt_id: int | None = None,
    ) -> DecisionResult:
        """Submit a unit, attack or target choice.

        Args:
            session_id: Live duel session
            player_id: Player making the choice
            kind: "unit", "attack" or "target"
            value: Unit index, or attack kind for "attack"
            prompt_id: Prompt the choice was made on

        Returns:
            DecisionResult from the engine
        """
        try:
            decision_kind = DecisionKind(kind)
        except ValueError:
            return DecisionResult(success=False, message="Unknown action.")

        decision_value: int | str = value
        if decision_kind != DecisionKind.ATTACK:
            try:
                decision_value = int(value)
            except ValueError:
                return DecisionResult(success=False, message="Unknown action.")

        decision = Decision(kind=decision_kind, value=decision_value, prompt_id=prompt_id)
        return await self.engine.submit_decision(session_id, player_id, decision)

    def get_duel_state(self, session_id: str) -> dict[str, Any] | None:
        """Get current duel state for display."""
        view = self.engine.get_view(session_id)
        if view is None:
            return None
        return view.to_dict()
