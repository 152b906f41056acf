from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from termtris.api.routes import router
from termtris.infra.redis_client import create_redis
from termtris.session_hub import hub
from termtris.settings import ServerSettings, settings_from_env
from termtris.stores.accounts import purge_inactive
from termtris.stores.leaderboard import RedisLeaderboardStore
from termtris.stores.players import RedisPlayerStore

# Local runs may keep REDIS_URL / TERMTRIS_* in a repo .env; real env vars win.
_env_path = Path(__file__).resolve().parents[1] / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path, override=False)

settings = settings_from_env()

# Configure logging
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def run_purge_once(settings: ServerSettings) -> None:
    r = create_redis()
    try:
        players = RedisPlayerStore(r, history_cap=settings.history_cap)
        leaderboard = RedisLeaderboardStore(r, capacity=settings.leaderboard_capacity)
        purged = purge_inactive(players=players, leaderboard=leaderboard, max_idle=timedelta(days=settings.inactive_days))
        dropped = leaderboard.truncate()
        logger.info(
            "Cleanup complete: purged %d inactive players, dropped %d leaderboard entries", len(purged), dropped
        )
    finally:
        r.close()


async def _purge_task(settings: ServerSettings) -> None:
    while True:
        await asyncio.sleep(settings.purge_interval_s)
        try:
            await asyncio.to_thread(run_purge_once, settings)
        except Exception:
            logger.exception("Data cleanup failed")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    task: asyncio.Task[None] | None = None
    if settings.purge_interval_s > 0:
        task = asyncio.create_task(_purge_task(settings))
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task


app = FastAPI(title="termtris", version="0.1.0", lifespan=lifespan)
app.include_router(router)


@app.get("/info")
async def info() -> dict[str, object]:
    return {
        "name": "termtris",
        "version": "0.1.0",
        "active_sessions": hub.active_sessions(),
        "active_players": hub.active_players(),
    }
