from __future__ import annotations

import redis
from pydantic import TypeAdapter

from termtris.api.models import LeaderboardEntry
from termtris.lock import DEFAULT_LOCK_WAIT_MS, store_lock

LEADERBOARD_KEY = "termtris:leaderboard"
LEADERBOARD_LOCK = "termtris:leaderboard"

DEFAULT_CAPACITY = 100

_entries_adapter = TypeAdapter(list[LeaderboardEntry])


class RedisLeaderboardStore:
    """Global personal-best leaderboard.

    Stored as one ordered JSON list so ties keep their insertion order: an improved
    entry replaces the old one in place, a new player is appended, then the list is
    stable-sorted by score and capped. Every mutation runs under a shared lock, so
    upserts and reads are linearizable across sessions and processes.
    """

    def __init__(
        self, r: redis.Redis, *, capacity: int = DEFAULT_CAPACITY, lock_wait_ms: int = DEFAULT_LOCK_WAIT_MS
    ) -> None:
        self.r = r
        self.capacity = capacity
        self.lock_wait_ms = lock_wait_ms

    def _load(self) -> list[LeaderboardEntry]:
        raw = self.r.get(LEADERBOARD_KEY)
        if not raw:
            return []
        return _entries_adapter.validate_json(raw)

    def _save(self, entries: list[LeaderboardEntry]) -> None:
        self.r.set(LEADERBOARD_KEY, _entries_adapter.dump_json(entries))

    def best_score_of(self, player_id: str) -> int:
        for e in self._load():
            if e.player_id == player_id:
                return e.score
        return 0

    def upsert_if_better(self, entry: LeaderboardEntry) -> int | None:
        """Record `entry` if it beats the player's best. Returns the player's 1-based rank, or None."""

        with store_lock(r=self.r, name=LEADERBOARD_LOCK, wait_ms=self.lock_wait_ms):
            entries = self._load()
            idx = next((i for i, e in enumerate(entries) if e.player_id == entry.player_id), None)

            changed = False
            if idx is None:
                entries.append(entry)
                changed = True
            elif entry.score > entries[idx].score:
                entries[idx] = entry
                changed = True

            if changed:
                entries.sort(key=lambda e: e.score, reverse=True)
                del entries[self.capacity :]
                self._save(entries)

            return next((i + 1 for i, e in enumerate(entries) if e.player_id == entry.player_id), None)

    def top_n(self, n: int) -> list[LeaderboardEntry]:
        return self._load()[: max(n, 0)]

    def entries_for(self, player_id: str) -> list[LeaderboardEntry]:
        return [e for e in self._load() if e.player_id == player_id]

    def remove_all_for(self, player_id: str) -> None:
        with store_lock(r=self.r, name=LEADERBOARD_LOCK, wait_ms=self.lock_wait_ms):
            entries = self._load()
            kept = [e for e in entries if e.player_id != player_id]
            if len(kept) != len(entries):
                self._save(kept)

    def truncate(self) -> int:
        """Re-apply the capacity cap. Returns the number of entries dropped."""

        with store_lock(r=self.r, name=LEADERBOARD_LOCK, wait_ms=self.lock_wait_ms):
            entries = self._load()
            dropped = max(len(entries) - self.capacity, 0)
            if dropped:
                self._save(entries[: self.capacity])
            return dropped
