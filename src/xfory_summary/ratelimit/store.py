"""Counter stores used by the rate limiter.

The limiter only needs ``get`` and ``put`` with an optional expiry, which is
the narrowest contract an eventually consistent key-value store offers.
"""
from __future__ import annotations
import heapq
import logging
import time
from typing import Callable, Protocol

import redis.asyncio as aioredis

LOGGER = logging.getLogger("xfory.ratelimit.store")


class CounterStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, expire_after_seconds: int | None = None) -> None: ...


class InMemoryCounterStore:
    """Process-local store with expiry.

    Only suitable for a single worker; counts are lost on restart.
    Writing without an expiry keeps the expiry set by an earlier write, which
    matches how the limiter uses the store (expiry on first hit only).
    Expired keys are dropped on read and swept on every write, so windows
    that are never read again do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}
        self._expiries: list[tuple[float, str]] = []

    async def get(self, key: str) -> str | None:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def put(self, key: str, value: str, expire_after_seconds: int | None = None) -> None:
        now = self._clock()
        self._sweep(now)
        if expire_after_seconds is not None:
            expires_at: float | None = now + expire_after_seconds
            heapq.heappush(self._expiries, (expires_at, key))
        else:
            prev = self._data.get(key)
            expires_at = prev[1] if prev else None
        self._data[key] = (value, expires_at)

    def _sweep(self, now: float) -> None:
        while self._expiries and self._expiries[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiries)
            item = self._data.get(key)
            # the key may have been rewritten with a later expiry
            if item is not None and item[1] == expires_at:
                del self._data[key]

    def __len__(self) -> int:
        return len(self._data)


class RedisCounterStore:
    """Counter store backed by Redis ``GET`` / ``SET``.

    A plain ``SET`` would clear an existing TTL, so writes without an expiry
    use ``KEEPTTL``.
    """

    def __init__(self, redis_url: str, client: aioredis.Redis | None = None) -> None:
        self.redis_url = redis_url
        self.client = client or aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    async def get(self, key: str) -> str | None:
        value = await self.client.get(key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    async def put(self, key: str, value: str, expire_after_seconds: int | None = None) -> None:
        if expire_after_seconds is not None:
            await self.client.set(key, value, ex=expire_after_seconds)
        else:
            await self.client.set(key, value, keepttl=True)

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except Exception as e:
            LOGGER.error("Error closing Redis counter store at %s: %s", self.redis_url, e)
