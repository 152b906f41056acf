from __future__ import annotations

from datetime import UTC, datetime

import fakeredis

from termtris.api.models import LeaderboardEntry
from termtris.stores.leaderboard import LEADERBOARD_KEY, RedisLeaderboardStore


def _entry(player_id: str, score: int, *, level: int = 1, lines: int = 0) -> LeaderboardEntry:
    return LeaderboardEntry(
        player_id=player_id,
        display_name=f"name-{player_id}",
        score=score,
        level=level,
        lines=lines,
        date=datetime(2025, 1, 1, tzinfo=UTC),
    )


def _scores(store: RedisLeaderboardStore) -> list[tuple[str, int]]:
    return [(e.player_id, e.score) for e in store.top_n(1000)]


def test_new_player_is_inserted_between_existing_scores(leaderboard: RedisLeaderboardStore) -> None:
    leaderboard.upsert_if_better(_entry("a", 300))
    leaderboard.upsert_if_better(_entry("b", 200))
    leaderboard.upsert_if_better(_entry("c", 100))

    rank = leaderboard.upsert_if_better(_entry("d", 150))

    assert rank == 3
    assert _scores(leaderboard) == [("a", 300), ("b", 200), ("d", 150), ("c", 100)]


def test_score_not_exceeding_best_leaves_board_unchanged(
    leaderboard: RedisLeaderboardStore, r: fakeredis.FakeRedis
) -> None:
    leaderboard.upsert_if_better(_entry("a", 300))
    leaderboard.upsert_if_better(_entry("b", 200))
    before = r.get(LEADERBOARD_KEY)

    assert leaderboard.upsert_if_better(_entry("b", 200, level=5)) == 2
    assert leaderboard.upsert_if_better(_entry("b", 50)) == 2

    assert r.get(LEADERBOARD_KEY) == before
    assert leaderboard.best_score_of("b") == 200


def test_better_score_replaces_entry_and_reorders(leaderboard: RedisLeaderboardStore) -> None:
    leaderboard.upsert_if_better(_entry("a", 300))
    leaderboard.upsert_if_better(_entry("b", 200))

    assert leaderboard.upsert_if_better(_entry("b", 500, level=4)) == 1

    entries = leaderboard.top_n(10)
    assert [(e.player_id, e.score) for e in entries] == [("b", 500), ("a", 300)]
    assert entries[0].level == 4


def test_ties_keep_insertion_order(leaderboard: RedisLeaderboardStore) -> None:
    leaderboard.upsert_if_better(_entry("first", 100))
    leaderboard.upsert_if_better(_entry("second", 100))
    leaderboard.upsert_if_better(_entry("top", 900))
    leaderboard.upsert_if_better(_entry("third", 100))

    assert [pid for pid, _ in _scores(leaderboard)] == ["top", "first", "second", "third"]


def test_capacity_evicts_lowest_and_keeps_one_sorted_entry_per_player(r: fakeredis.FakeRedis) -> None:
    store = RedisLeaderboardStore(r, capacity=5)
    for i, score in enumerate([50, 10, 70, 30, 90, 20, 60, 80, 40]):
        store.upsert_if_better(_entry(f"p{i}", score))
    # Repeat submissions for existing players.
    store.upsert_if_better(_entry("p0", 95))
    rank = store.upsert_if_better(_entry("late", 1))

    scores = _scores(store)
    assert rank is None
    assert len(scores) == 5
    assert len({pid for pid, _ in scores}) == len(scores)
    assert [s for _, s in scores] == sorted((s for _, s in scores), reverse=True)
    assert scores[0] == ("p0", 95)


def test_remove_all_for_and_entries_for(leaderboard: RedisLeaderboardStore) -> None:
    leaderboard.upsert_if_better(_entry("a", 300))
    leaderboard.upsert_if_better(_entry("b", 200))

    assert [e.score for e in leaderboard.entries_for("a")] == [300]

    leaderboard.remove_all_for("a")

    assert leaderboard.entries_for("a") == []
    assert leaderboard.best_score_of("a") == 0
    assert _scores(leaderboard) == [("b", 200)]


def test_truncate_applies_capacity(r: fakeredis.FakeRedis) -> None:
    big = RedisLeaderboardStore(r, capacity=10)
    for i in range(6):
        big.upsert_if_better(_entry(f"p{i}", i * 10))

    small = RedisLeaderboardStore(r, capacity=4)
    assert small.truncate() == 2
    assert [s for _, s in _scores(small)] == [50, 40, 30, 20]
    assert small.truncate() == 0
