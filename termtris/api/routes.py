from __future__ import annotations

import asyncio

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, status

from termtris.api.deps import get_redis, get_settings
from termtris.api.models import LeaderboardResponse
from termtris.identity import identity_from_public_key
from termtris.session import GameSession
from termtris.session_hub import hub
from termtris.session_loop import SessionLoop
from termtris.settings import ServerSettings
from termtris.stores.leaderboard import RedisLeaderboardStore
from termtris.stores.players import RedisPlayerStore
from termtris.websocket_stream import WebSocketStream

router = APIRouter()

PUBLIC_KEY_HEADER = "x-public-key"


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard_route(
    limit: int = 10,
    r: redis.Redis = Depends(get_redis),
    settings: ServerSettings = Depends(get_settings),
) -> LeaderboardResponse:
    if limit < 1 or limit > settings.leaderboard_capacity:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"limit must be between 1 and {settings.leaderboard_capacity}",
        )
    store = RedisLeaderboardStore(r, capacity=settings.leaderboard_capacity)
    return LeaderboardResponse(entries=store.top_n(limit))


@router.websocket("/ws/play")
async def play_ws(
    websocket: WebSocket,
    key: str | None = None,
    r: redis.Redis = Depends(get_redis),
    settings: ServerSettings = Depends(get_settings),
) -> None:
    """One terminal session per connection; the client's public key is its identity."""

    public_key = key or websocket.headers.get(PUBLIC_KEY_HEADER)
    if not public_key:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    # Registration takes a store lock; keep it off the event loop.
    session = await asyncio.to_thread(
        GameSession,
        identity=identity_from_public_key(public_key),
        players=RedisPlayerStore(r, history_cap=settings.history_cap),
        leaderboard=RedisLeaderboardStore(r, capacity=settings.leaderboard_capacity),
        delete_grace_s=settings.delete_grace_ms / 1000,
    )
    await hub.connect(session)
    try:
        await SessionLoop(stream=WebSocketStream(websocket), session=session, tick_s=settings.tick_ms / 1000).run()
    finally:
        await hub.disconnect(session)
