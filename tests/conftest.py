from __future__ import annotations

import re
from collections.abc import Generator

import fakeredis
import pytest
from fastapi.testclient import TestClient

from termtris.core.board import COLS, Board
from termtris.core.pieces import PieceType
from termtris.stores.leaderboard import RedisLeaderboardStore
from termtris.stores.players import RedisPlayerStore

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def fill_rows(board: Board, rows: range | list[int], *, hole_col: int | None = None, piece: PieceType = PieceType.T) -> None:
    """Fill whole rows, optionally leaving one column empty."""

    for y in rows:
        board.cells[y] = [None if x == hole_col else piece for x in range(COLS)]


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def players(r: fakeredis.FakeRedis) -> RedisPlayerStore:
    return RedisPlayerStore(r)


@pytest.fixture()
def leaderboard(r: fakeredis.FakeRedis) -> RedisLeaderboardStore:
    return RedisLeaderboardStore(r)


@pytest.fixture()
def client_and_redis() -> Generator[tuple[TestClient, fakeredis.FakeRedis], None, None]:
    """FastAPI TestClient wired to an in-memory fakeredis."""

    from termtris.api.deps import get_redis
    from termtris.main import app

    fake = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield fake

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, fake
    app.dependency_overrides.clear()
