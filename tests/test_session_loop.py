from __future__ import annotations

import asyncio

import fakeredis
import pytest
from conftest import fill_rows

from termtris.api.models import SessionState
from termtris.core.board import ROWS
from termtris.core.pieces import PieceType
from termtris.core.rng import SequenceRandomizer
from termtris.identity import PlayerIdentity
from termtris.render import TERMINAL_RESTORE, TERMINAL_SETUP
from termtris.session import GameSession
from termtris.session_loop import GravityTick, InputReceived, SessionLoop
from termtris.stores.leaderboard import LEADERBOARD_LOCK, RedisLeaderboardStore
from termtris.stores.players import RedisPlayerStore


class FakeStream:
    def __init__(self, *, fail_writes: bool = False) -> None:
        self.inbox: asyncio.Queue[bytes | None] = asyncio.Queue()
        self.writes: list[bytes] = []
        self.closed = False
        self.fail_writes = fail_writes

    def feed(self, *chunks: bytes | None) -> None:
        for chunk in chunks:
            self.inbox.put_nowait(chunk)

    async def read(self) -> bytes | None:
        return await self.inbox.get()

    async def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise ConnectionResetError("peer gone")
        self.writes.append(data)

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def session(players: RedisPlayerStore, leaderboard: RedisLeaderboardStore) -> GameSession:
    return GameSession(
        identity=PlayerIdentity(id="fp-loop", display_name="looper"),
        players=players,
        leaderboard=leaderboard,
        randomizer_factory=lambda: SequenceRandomizer([PieceType.O]),
        delete_grace_s=0.01,
    )


@pytest.mark.asyncio
async def test_quit_restores_terminal_and_closes(session: GameSession) -> None:
    stream = FakeStream()
    stream.feed(b"q")

    await asyncio.wait_for(SessionLoop(stream=stream, session=session).run(), timeout=2)

    assert stream.writes[0] == TERMINAL_SETUP
    assert b"Welcome back" in stream.writes[1]
    assert stream.writes[-1] == TERMINAL_RESTORE
    assert len(stream.writes) == 3
    assert stream.closed
    assert session.state == SessionState.closed


@pytest.mark.asyncio
async def test_disconnect_ends_session(session: GameSession) -> None:
    stream = FakeStream()
    stream.feed(b"x", None)

    await asyncio.wait_for(SessionLoop(stream=stream, session=session).run(), timeout=2)

    assert stream.closed
    assert stream.writes[-1] == TERMINAL_RESTORE


@pytest.mark.asyncio
async def test_gravity_drops_one_row_per_interval(session: GameSession) -> None:
    clock = FakeClock()
    loop = SessionLoop(stream=FakeStream(), session=session, clock=clock)
    await loop.process(InputReceived(b"x"))
    engine = session.engine
    assert engine is not None and engine.current is not None
    y0 = engine.current.y

    clock.now = 0.5
    await loop.process(GravityTick())
    assert engine.current.y == y0

    clock.now = 1.01
    await loop.process(GravityTick())
    await loop.process(GravityTick())
    assert engine.current.y == y0 + 1


@pytest.mark.asyncio
async def test_split_arrow_key_and_unknown_input(session: GameSession) -> None:
    stream = FakeStream()
    loop = SessionLoop(stream=stream, session=session)
    await loop.process(InputReceived(b"x"))
    engine = session.engine
    assert engine is not None and engine.current is not None
    x0 = engine.current.x
    frames = len(stream.writes)

    await loop.process(InputReceived(b"\x1b[Z"))
    await loop.process(InputReceived(b"\x1b["))
    assert len(stream.writes) == frames

    await loop.process(InputReceived(b"D"))
    assert engine.current.x == x0 - 1
    assert len(stream.writes) == frames + 1


@pytest.mark.asyncio
async def test_account_deletion_closes_after_grace(
    session: GameSession, players: RedisPlayerStore
) -> None:
    stream = FakeStream()
    stream.feed(b"a", b"d", b"y")

    await asyncio.wait_for(SessionLoop(stream=stream, session=session).run(), timeout=2)

    assert players.get("fp-loop") is None
    assert b"ACCOUNT DELETED" in stream.writes[-2]
    assert stream.writes[-1] == TERMINAL_RESTORE
    assert stream.closed


@pytest.mark.asyncio
async def test_write_failure_ends_session(session: GameSession) -> None:
    stream = FakeStream(fail_writes=True)

    await asyncio.wait_for(SessionLoop(stream=stream, session=session).run(), timeout=2)

    assert stream.writes == []
    assert stream.closed


@pytest.mark.asyncio
async def test_modified_arrow_on_welcome_does_not_start_game(session: GameSession) -> None:
    stream = FakeStream()
    loop = SessionLoop(stream=stream, session=session)

    await loop.process(InputReceived(b"\x1b[1;5C"))

    assert session.state == SessionState.welcome
    assert stream.writes == []


@pytest.mark.asyncio
async def test_busy_leaderboard_lock_does_not_stall_other_sessions(
    r: fakeredis.FakeRedis, players: RedisPlayerStore
) -> None:
    session = GameSession(
        identity=PlayerIdentity(id="fp-busy", display_name="busy"),
        players=players,
        leaderboard=RedisLeaderboardStore(r, lock_wait_ms=300),
        randomizer_factory=lambda: SequenceRandomizer([PieceType.O]),
    )
    loop = SessionLoop(stream=FakeStream(), session=session)
    await loop.process(InputReceived(b"x"))
    assert session.engine is not None
    fill_rows(session.engine.board, range(4, ROWS), hole_col=0)

    # Another process holds the leaderboard lock for the whole game-over.
    r.set(f"lock:{LEADERBOARD_LOCK}", "someone-else")
    beats = 0

    async def other_session() -> None:
        nonlocal beats
        while True:
            await asyncio.sleep(0.01)
            beats += 1

    task = asyncio.create_task(other_session())
    try:
        await loop.process(InputReceived(b"  "))
    finally:
        task.cancel()

    assert session.state == SessionState.game_over
    assert session.summary is not None and session.summary.rank is None
    assert beats >= 5
