"""Session store - registry of live duel sessions and pending challenges."""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from .types import DuelSession, PendingChallenge


class SessionStore:
    """Registry of live sessions and open challenges, keyed by id.

    Accessed only from the event loop; per-session ordering is provided by
    each session's decision queue, so the maps need no locking.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, DuelSession] = {}
        self._challenges: dict[str, PendingChallenge] = {}

    def create(self, session: DuelSession) -> DuelSession:
        """Register a new session.

        Raises:
            ValueError: If a session with the same id already exists
        """
        if session.session_id in self._sessions:
            raise ValueError(f"Session {session.session_id} already exists")
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> DuelSession | None:
        return self._sessions.get(session_id)

    def delete(self, session_id: str) -> DuelSession | None:
        """Remove a session. Returns the removed session, if there was one."""
        return self._sessions.pop(session_id, None)

    def sessions_for_player(self, player_id: int) -> list[DuelSession]:
        return [s for s in self._sessions.values() if s.has_player(player_id)]

    def add_challenge(self, challenge: PendingChallenge) -> PendingChallenge:
        if challenge.challenge_id in self._challenges:
            raise ValueError(f"Challenge {challenge.challenge_id} already exists")
        self._challenges[challenge.challenge_id] = challenge
        return challenge

    def get_challenge(self, challenge_id: str) -> PendingChallenge | None:
        return self._challenges.get(challenge_id)

    def challenges_between(self, first_id: int, second_id: int) -> list[PendingChallenge]:
        """Get open challenges between two players, in either direction."""
        pair = {first_id, second_id}
        return [c for c in self._challenges.values() if {c.challenger_id, c.opponent_id} == pair]

    def remove_challenge(self, challenge_id: str) -> PendingChallenge | None:
        return self._challenges.pop(challenge_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


class KeyedLocks:
    """asyncio locks created on demand per key.

    Used to serialize work on per-player duel records. A key's lock is
    dropped once nobody holds or waits for it, so the map only holds keys
    in use.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}  # Holders plus waiters per key

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, keys: Iterable[int]) -> AsyncIterator[None]:
        """Acquire the locks for several keys in sorted order."""
        ordered = sorted(set(keys))
        # Users are counted before the first await; a lock is dropped only at zero users
        for key in ordered:
            self._users[key] = self._users.get(key, 0) + 1
            if key not in self._locks:
                self._locks[key] = asyncio.Lock()

        acquired: list[int] = []
        try:
            for key in ordered:
                await self._locks[key].acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
            for key in ordered:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]
