"""Fixed-window, per-client rate limiter.

Best effort only: the read-increment-write against the counter store is not
atomic, so concurrent requests from one client inside one window can all read
the same count and be admitted past the limit. Stores that offer an atomic
increment-with-expiry would close the gap; the limiter deliberately sticks to
plain get/put so it works on eventually consistent key-value stores.
"""
from __future__ import annotations
import logging
import time
from typing import Callable, Mapping

from xfory_summary.ratelimit.store import CounterStore

LOGGER = logging.getLogger("xfory.ratelimit")

UNKNOWN_CLIENT = "unknown"
_IDENTITY_HEADERS = ("cf-connecting-ip", "x-forwarded-for")


def client_identity(headers: Mapping[str, str], peer_host: str | None = None) -> str:
    """Proxy-supplied address first, then the socket peer, else ``"unknown"``.

    ``headers`` must be case-insensitive (starlette Headers) or lower-cased.
    """
    for name in _IDENTITY_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return peer_host or UNKNOWN_CLIENT


class RateLimiter:
    def __init__(
        self,
        store: CounterStore,
        limit: int = 30,
        window_seconds: int = 60,
        expire_after_seconds: int = 65,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.expire_after_seconds = expire_after_seconds
        self._clock = clock

    def window_key(self, identity: str) -> str:
        return f"{identity}:{int(self._clock() // self.window_seconds)}"

    async def admit(self, identity: str) -> bool:
        """
        Count one hit for ``identity`` in the current window.

        Always performs one read and one write, whether or not the hit is
        admitted. The expiry is only set on the first write of a window.

        Returns:
            True if the post-increment count is within the limit.
        """
        key = self.window_key(identity)
        raw = await self.store.get(key)
        try:
            current = int(raw or "0") + 1
        except ValueError:
            current = 1

        if current == 1:
            await self.store.put(key, str(current), expire_after_seconds=self.expire_after_seconds)
        else:
            await self.store.put(key, str(current))

        admitted = current <= self.limit
        if not admitted:
            LOGGER.warning("Rate limit exceeded for %s (%s/%s)", identity, current, self.limit)
        return admitted
