from __future__ import annotations

from typing import Protocol

from termtris.api.models import LeaderboardEntry, PlayerRecord, ScoreEntry


class StoreBusyError(RuntimeError):
    """A store lock could not be acquired in time."""


class PlayerStore(Protocol):
    def get(self, player_id: str) -> PlayerRecord | None:  # pragma: no cover
        ...

    def upsert(self, player_id: str, display_name: str) -> PlayerRecord:  # pragma: no cover
        ...

    def append_score(self, player_id: str, entry: ScoreEntry) -> None:  # pragma: no cover
        ...

    def export(self, player_id: str) -> PlayerRecord | None:  # pragma: no cover
        ...

    def delete(self, player_id: str) -> None:  # pragma: no cover
        ...

    def list_ids(self) -> list[str]:  # pragma: no cover
        ...


class LeaderboardStore(Protocol):
    def best_score_of(self, player_id: str) -> int:  # pragma: no cover
        ...

    def upsert_if_better(self, entry: LeaderboardEntry) -> int | None:  # pragma: no cover
        ...

    def top_n(self, n: int) -> list[LeaderboardEntry]:  # pragma: no cover
        ...

    def entries_for(self, player_id: str) -> list[LeaderboardEntry]:  # pragma: no cover
        ...

    def remove_all_for(self, player_id: str) -> None:  # pragma: no cover
        ...
