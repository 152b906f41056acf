from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerSettings:
    tick_ms: int = 50
    delete_grace_ms: int = 3_000
    leaderboard_capacity: int = 100
    history_cap: int = 5
    inactive_days: int = 90
    # 0 disables the periodic purge.
    purge_interval_s: int = 24 * 60 * 60
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e


def settings_from_env() -> ServerSettings:
    defaults = ServerSettings()
    return ServerSettings(
        tick_ms=_env_int("TERMTRIS_TICK_MS", defaults.tick_ms),
        delete_grace_ms=_env_int("TERMTRIS_DELETE_GRACE_MS", defaults.delete_grace_ms),
        leaderboard_capacity=_env_int("TERMTRIS_LEADERBOARD_CAPACITY", defaults.leaderboard_capacity),
        history_cap=_env_int("TERMTRIS_HISTORY_CAP", defaults.history_cap),
        inactive_days=_env_int("TERMTRIS_INACTIVE_DAYS", defaults.inactive_days),
        purge_interval_s=_env_int("TERMTRIS_PURGE_INTERVAL_S", defaults.purge_interval_s),
        log_level=os.environ.get("TERMTRIS_LOG_LEVEL", defaults.log_level).upper(),
    )
