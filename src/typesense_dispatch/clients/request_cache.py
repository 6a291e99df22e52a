"""
Response Cache

Client-side memoization for read-style calls (search, multi-search). Entries
expire by TTL from insertion and the cache keeps at most ``max_size`` entries,
evicting the least recently used one on overflow.

Patterns Applied:
- OrderedDict LRU: move_to_end() on hit, popitem(last=False) on overflow
- The wrapped call is an explicit async callable; the cache never binds
  methods by name
- Structural mutations serialized by a threading.Lock; the wrapped call runs
  outside the lock
"""

from __future__ import annotations

import json
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypeVar

from typesense_dispatch.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_RESPONSE_FOR_SECONDS: Final[float] = 2 * 60
DEFAULT_MAX_SIZE: Final[int] = 100

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A memoized response and the time it was requested."""

    response: Any
    request_timestamp: float


def cache_key(request_arguments: Sequence[Any]) -> str:
    """Exact JSON serialization of the argument list.

    Keys are not sorted or otherwise normalized: calls that differ in any
    argument, including mapping order, are distinct entries.
    """
    return json.dumps(list(request_arguments), default=str)


class RequestWithCache:
    """TTL + LRU memoization in front of an async call."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._response_cache: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._response_cache)

    def __contains__(self, request_arguments: Sequence[Any]) -> bool:
        key = cache_key(request_arguments)
        with self._lock:
            return key in self._response_cache

    def keys(self) -> list[str]:
        """Cache keys from least to most recently used."""
        with self._lock:
            return list(self._response_cache)

    def clear(self) -> None:
        with self._lock:
            self._response_cache.clear()

    async def perform(
        self,
        request_function: Callable[..., Awaitable[T]],
        request_arguments: Sequence[Any],
        *,
        cache_response_for_seconds: float = DEFAULT_CACHE_RESPONSE_FOR_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
    ) -> T:
        """Return a cached response or invoke ``request_function``.

        Args:
            request_function: Async callable performing the real request.
            request_arguments: Positional arguments for ``request_function``;
                their serialization is the cache key.
            cache_response_for_seconds: TTL; <= 0 bypasses the cache.
            max_size: Capacity; <= 0 bypasses the cache.

        Returns:
            The response, fresh or memoized. Failures propagate and are
            never stored.
        """
        if cache_response_for_seconds <= 0 or max_size <= 0:
            return await request_function(*request_arguments)

        key = cache_key(request_arguments)
        now = self._clock()

        with self._lock:
            entry = self._response_cache.get(key)
            if entry is not None:
                if now - entry.request_timestamp < cache_response_for_seconds:
                    self._response_cache.move_to_end(key)
                    logger.debug("cache_hit", key=key)
                    return entry.response
                del self._response_cache[key]

        response = await request_function(*request_arguments)

        with self._lock:
            self._response_cache[key] = CacheEntry(response=response, request_timestamp=now)
            self._response_cache.move_to_end(key)
            if len(self._response_cache) > max_size:
                evicted, _ = self._response_cache.popitem(last=False)
                logger.debug("cache_evicted", key=evicted)

        return response
