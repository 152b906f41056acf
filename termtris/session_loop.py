from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from termtris.api.models import SessionState
from termtris.keys import decode_keys
from termtris.render import TERMINAL_RESTORE, TERMINAL_SETUP, encode_frame, render
from termtris.session import DispatchResult, GameSession

logger = logging.getLogger(__name__)

DEFAULT_TICK_S = 0.05


class DuplexStream(Protocol):
    """Byte stream to one terminal client, provided by the transport layer."""

    async def read(self) -> bytes | None:  # pragma: no cover
        """Next chunk of input, or None once the stream is closed."""
        ...

    async def write(self, data: bytes) -> None:  # pragma: no cover
        ...

    async def close(self) -> None:  # pragma: no cover
        ...


@dataclass(frozen=True, slots=True)
class InputReceived:
    data: bytes


@dataclass(frozen=True, slots=True)
class GravityTick:
    pass


@dataclass(frozen=True, slots=True)
class StreamClosed:
    reason: str


SessionEvent = InputReceived | GravityTick | StreamClosed


class SessionLoop:
    """Drives one connection end to end.

    Two producers (the input pump and the gravity timer) feed a single queue; only
    `run` consumes it, so input and gravity never touch the engine concurrently.
    Session calls may hit the stores and wait on their locks, so they run in a
    worker thread, one at a time.
    """

    def __init__(
        self,
        *,
        stream: DuplexStream,
        session: GameSession,
        tick_s: float = DEFAULT_TICK_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.stream = stream
        self.session = session
        self.tick_s = tick_s
        self.clock = clock

        self.queue: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self.alive = True
        self._pending = b""
        self._last_drop = clock()
        self._tasks: list[asyncio.Task[None]] = []

    async def run(self) -> None:
        who = f"{self.session.identity.display_name} ({self.session.identity.id})"
        logger.info("Session started: %s", who)

        self._tasks.append(asyncio.create_task(self._pump_input()))
        self._tasks.append(asyncio.create_task(self._pump_gravity()))
        try:
            await self._write(TERMINAL_SETUP)
            await self._render()
            while self.alive:
                event = await self.queue.get()
                await self.process(event)
        finally:
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks.clear()
            await self._teardown()
            logger.info("Session ended: %s", who)

    async def process(self, event: SessionEvent) -> None:
        if isinstance(event, StreamClosed):
            logger.debug("Stream closed: %s", event.reason)
            self.alive = False
            return

        if isinstance(event, GravityTick):
            await self._on_gravity_tick()
            return

        keys, self._pending = decode_keys(self._pending + event.data)
        for key in keys:
            await self._apply(await asyncio.to_thread(self.session.handle_key, key))
            if not self.alive:
                break

    async def _on_gravity_tick(self) -> None:
        engine = self.session.engine
        if self.session.state != SessionState.playing or engine is None:
            return
        now = self.clock()
        if (now - self._last_drop) * 1000 > engine.stats.drop_interval_ms:
            self._last_drop = now
            await self._apply(await asyncio.to_thread(self.session.gravity_tick))

    async def _apply(self, result: DispatchResult) -> None:
        if result.reset_gravity:
            self._last_drop = self.clock()
        if result.close:
            self.alive = False
            return
        if result.close_after_s is not None:
            self._tasks.append(asyncio.create_task(self._close_later(result.close_after_s)))
        if result.changed:
            await self._render()

    async def _render(self) -> None:
        view = await asyncio.to_thread(self.session.view)
        await self._write(encode_frame(render(view)))

    async def _write(self, data: bytes) -> None:
        if not self.alive:
            return
        try:
            await self.stream.write(data)
        except Exception as e:
            logger.info("Write failed, ending session: %s", e)
            self.alive = False

    async def _teardown(self) -> None:
        try:
            await self.stream.write(TERMINAL_RESTORE)
        except Exception as e:
            # Expected when the client is already gone.
            logger.debug("Could not restore terminal: %s", e)
        try:
            await self.stream.close()
        except Exception as e:
            logger.debug("Error closing stream: %s", e)

    async def _pump_input(self) -> None:
        try:
            while True:
                data = await self.stream.read()
                if data is None:
                    await self.queue.put(StreamClosed("client disconnected"))
                    return
                await self.queue.put(InputReceived(data))
        except Exception as e:
            logger.info("Read failed: %s", e)
            await self.queue.put(StreamClosed("read error"))

    async def _pump_gravity(self) -> None:
        while True:
            await asyncio.sleep(self.tick_s)
            if self.session.state == SessionState.playing:
                await self.queue.put(GravityTick())

    async def _close_later(self, delay_s: float) -> None:
        await asyncio.sleep(delay_s)
        await self.queue.put(StreamClosed("closed after grace delay"))
