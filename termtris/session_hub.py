from __future__ import annotations

import asyncio
from collections import defaultdict

from termtris.session import GameSession


class SessionHub:
    """In-process registry of live sessions keyed by player id.

    Note: counts are per process. If we later run multiple replicas, this should
    move to Redis.
    """

    def __init__(self) -> None:
        self._by_player: dict[str, set[GameSession]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, session: GameSession) -> None:
        async with self._lock:
            self._by_player[session.identity.id].add(session)

    async def disconnect(self, session: GameSession) -> None:
        async with self._lock:
            sessions = self._by_player.get(session.identity.id)
            if not sessions:
                return
            sessions.discard(session)
            if not sessions:
                self._by_player.pop(session.identity.id, None)

    def active_sessions(self) -> int:
        return sum(len(s) for s in self._by_player.values())

    def active_players(self) -> int:
        return len(self._by_player)


hub = SessionHub()
