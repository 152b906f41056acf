from __future__ import annotations

from collections.abc import Generator

import redis

from termtris.infra.redis_client import create_redis
from termtris.settings import ServerSettings, settings_from_env


def get_redis() -> Generator[redis.Redis, None, None]:
    """One client per request / websocket, closed when the handler returns."""

    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_settings() -> ServerSettings:
    return settings_from_env()
