from __future__ import annotations

import logging
from contextlib import contextmanager

import redis
from redis.exceptions import LockNotOwnedError

from termtris.stores.base import StoreBusyError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TTL_MS = 5_000
DEFAULT_LOCK_WAIT_MS = 2_000


@contextmanager
def store_lock(
    *,
    r: redis.Redis,
    name: str,
    ttl_ms: int = DEFAULT_LOCK_TTL_MS,
    wait_ms: int = DEFAULT_LOCK_WAIT_MS,
):
    """Named lock shared by every process talking to the same Redis.

    Waits up to `wait_ms` to acquire, then raises StoreBusyError. The TTL bounds how
    long a crashed holder can block others. This blocks the calling thread, so
    async callers run store work through `asyncio.to_thread`.
    """

    lock = r.lock(f"lock:{name}", timeout=ttl_ms / 1000, sleep=0.005, blocking_timeout=wait_ms / 1000)
    if not lock.acquire():
        raise StoreBusyError(f"{name} is busy")
    try:
        yield
    finally:
        try:
            lock.release()
        except LockNotOwnedError:
            logger.warning("Lock %s expired before release", name)
