"""Presentation hooks the duel engine calls while a duel runs."""

from abc import ABC, abstractmethod

from .types import AttackResult, PendingChallenge, SessionView, SettlementReport


class DuelPresenter(ABC):
    """Renders duel progress to players.

    The engine treats every call as best effort: exceptions are logged and
    never change session state.
    """

    @abstractmethod
    async def show_prompt(self, view: SessionView) -> int | None:
        """Show the prompt for the current phase.

        Returns:
            Message id the prompt lives in, if the transport has one
        """
        pass

    @abstractmethod
    async def withdraw_prompt(self, view: SessionView) -> None:
        """Remove a prompt that timed out."""
        pass

    @abstractmethod
    async def show_attack(self, view: SessionView, result: AttackResult) -> None:
        pass

    @abstractmethod
    async def show_settlement(self, view: SessionView, report: SettlementReport) -> None:
        pass

    @abstractmethod
    async def challenge_expired(self, challenge: PendingChallenge) -> None:
        pass


class NullPresenter(DuelPresenter):
    """Presenter that renders nothing (headless engines, tests)."""

    async def show_prompt(self, view: SessionView) -> int | None:
        return None

    async def withdraw_prompt(self, view: SessionView) -> None:
        return None

    async def show_attack(self, view: SessionView, result: AttackResult) -> None:
        return None

    async def show_settlement(self, view: SessionView, report: SettlementReport) -> None:
        return None

    async def challenge_expired(self, challenge: PendingChallenge) -> None:
        return None
