# app/counter_store.py
"""Expiring counters shared by every worker.

Topic creation throttling only needs three primitives from its store:
increment-with-expiry, read and delete. Redis provides them atomically in
production; ``MemoryCounterStore`` is used for tests and single-process runs.
"""
from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Tuple

from app.config import REDIS_URL

logger = logging.getLogger(__name__)


class CounterStore:
    """Interface for expiring integer counters."""

    async def incr(self, key: str, ttl: int) -> int:
        """Increment ``key`` by one and return the new value.

        The expiry is only set when the key is created, so the window keeps
        counting from the first increment.
        """
        raise NotImplementedError

    async def get(self, key: str) -> Optional[int]:
        raise NotImplementedError

    async def set(self, key: str, value: int, ttl: int) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryCounterStore(CounterStore):
    """In-process counters for tests and single-worker runs.

    Expired entries are swept on every ``incr`` so one-off keys do not pile up.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Tuple[int, float]] = {}

    def _now(self) -> float:
        return time.monotonic()

    def _sweep(self) -> None:
        now = self._now()
        for key in [k for k, (_, expires_at) in self._data.items() if expires_at <= now]:
            del self._data[key]

    def _live(self, key: str) -> Optional[Tuple[int, float]]:
        item = self._data.get(key)
        if item is None:
            return None
        if item[1] <= self._now():
            del self._data[key]
            return None
        return item

    async def incr(self, key: str, ttl: int) -> int:
        self._sweep()
        item = self._data.get(key)
        if item is None:
            value, expires_at = 1, self._now() + ttl
        else:
            value, expires_at = item[0] + 1, item[1]
        self._data[key] = (value, expires_at)
        return value

    async def get(self, key: str) -> Optional[int]:
        item = self._live(key)
        return item[0] if item else None

    async def set(self, key: str, value: int, ttl: int) -> None:
        self._data[key] = (int(value), self._now() + ttl)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisCounterStore(CounterStore):
    """Redis-backed counters.

    Connection or command errors are not caught here: a throttled write that
    cannot reach its store must fail instead of silently skipping the limit.
    """

    def __init__(self, url: Optional[str] = None, client=None):
        if client is None:
            import redis.asyncio as redis

            client = redis.from_url(url, decode_responses=True)
            logger.info("Redis counter store initialized: %s", url)
        self.client = client

    async def incr(self, key: str, ttl: int) -> int:
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.ttl(key)
            value, remaining = await pipe.execute()
        # -1: the key has no expiry yet (first increment, or a lost EXPIRE)
        if remaining == -1:
            await self.client.expire(key, ttl)
        return int(value)

    async def get(self, key: str) -> Optional[int]:
        value = await self.client.get(key)
        return int(value) if value is not None else None

    async def set(self, key: str, value: int, ttl: int) -> None:
        await self.client.setex(key, ttl, int(value))

    async def delete(self, key: str) -> None:
        await self.client.delete(key)


_store: Optional[CounterStore] = None


def get_counter_store() -> CounterStore:
    """FastAPI dependency returning the process-wide counter store."""
    global _store
    if _store is None:
        _store = RedisCounterStore(REDIS_URL) if REDIS_URL else MemoryCounterStore()
    return _store
