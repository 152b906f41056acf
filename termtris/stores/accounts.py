from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from termtris.api.models import AccountExport
from termtris.stores.base import LeaderboardStore, PlayerStore

logger = logging.getLogger(__name__)


def build_account_export(*, players: PlayerStore, leaderboard: LeaderboardStore, player_id: str) -> AccountExport:
    return AccountExport(
        player_id=player_id,
        player_info=players.export(player_id),
        high_scores=leaderboard.entries_for(player_id),
        export_date=datetime.now(tz=UTC),
    )


def delete_account(*, players: PlayerStore, leaderboard: LeaderboardStore, player_id: str) -> None:
    leaderboard.remove_all_for(player_id)
    players.delete(player_id)
    logger.info("Deleted account for player %s", player_id)


def purge_inactive(
    *,
    players: PlayerStore,
    leaderboard: LeaderboardStore,
    max_idle: timedelta,
    now: datetime | None = None,
) -> list[str]:
    """Delete accounts whose last visit is older than `max_idle`. Returns the purged ids."""

    now = now or datetime.now(tz=UTC)
    purged: list[str] = []
    for player_id in players.list_ids():
        record = players.get(player_id)
        if record is not None and now - record.last_seen <= max_idle:
            continue
        delete_account(players=players, leaderboard=leaderboard, player_id=player_id)
        purged.append(player_id)
    return purged
