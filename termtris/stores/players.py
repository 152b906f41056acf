from __future__ import annotations

from datetime import UTC, datetime

import redis

from termtris.api.models import PlayerRecord, ScoreEntry
from termtris.lock import DEFAULT_LOCK_WAIT_MS, store_lock

PLAYERS_SET_KEY = "termtris:players"
PLAYER_KEY_PREFIX = "termtris:player:"  # + {fingerprint}

DEFAULT_HISTORY_CAP = 5


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _player_key(player_id: str) -> str:
    return f"{PLAYER_KEY_PREFIX}{player_id}"


class RedisPlayerStore:
    """Player profiles and bounded score history, one JSON document per player."""

    def __init__(
        self, r: redis.Redis, *, history_cap: int = DEFAULT_HISTORY_CAP, lock_wait_ms: int = DEFAULT_LOCK_WAIT_MS
    ) -> None:
        self.r = r
        self.history_cap = history_cap
        self.lock_wait_ms = lock_wait_ms

    def _save(self, record: PlayerRecord) -> None:
        self.r.set(_player_key(record.player_id), record.model_dump_json())
        self.r.sadd(PLAYERS_SET_KEY, record.player_id)

    def get(self, player_id: str) -> PlayerRecord | None:
        raw = self.r.get(_player_key(player_id))
        if not raw:
            return None
        return PlayerRecord.model_validate_json(raw)

    def upsert(self, player_id: str, display_name: str) -> PlayerRecord:
        with store_lock(r=self.r, name=f"termtris:player:{player_id}", wait_ms=self.lock_wait_ms):
            now = _now()
            record = self.get(player_id)
            if record is None:
                record = PlayerRecord(player_id=player_id, display_name=display_name, first_seen=now, last_seen=now)
            else:
                record.display_name = display_name
                record.last_seen = now
            self._save(record)
            return record

    def append_score(self, player_id: str, entry: ScoreEntry) -> None:
        with store_lock(r=self.r, name=f"termtris:player:{player_id}", wait_ms=self.lock_wait_ms):
            record = self.get(player_id)
            if record is None:
                raise ValueError("Player not found")
            record.score_history.insert(0, entry)
            del record.score_history[self.history_cap :]
            self._save(record)

    def export(self, player_id: str) -> PlayerRecord | None:
        return self.get(player_id)

    def delete(self, player_id: str) -> None:
        self.r.delete(_player_key(player_id))
        self.r.srem(PLAYERS_SET_KEY, player_id)

    def list_ids(self) -> list[str]:
        return sorted(self.r.smembers(PLAYERS_SET_KEY))
