"""
Verdict Cache

Process-wide fingerprint -> Verdict map shared by all pipeline runs.

Design Decisions:
- Bounded LRU with an optional age limit, so it cannot grow without limit
- Entry map guarded by a lock; every write is a single assignment
- Concurrent requests for a fingerprint that is being computed wait on the
  in-flight future instead of starting their own remote calls
"""

import asyncio
import threading
import time
from collections import OrderedDict
from typing import Awaitable, Callable

import structlog

from vishguard.models import Verdict

logger = structlog.get_logger(__name__)


class VerdictCache:
    """LRU + TTL cache with per-key request collapsing."""

    def __init__(
        self,
        capacity: int = 256,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: OrderedDict[str, tuple[float, Verdict]] = OrderedDict()
        self._lock = threading.Lock()
        self._inflight: dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, fingerprint: str) -> bool:
        return self.get(fingerprint) is not None

    def get(self, fingerprint: str) -> Verdict | None:
        """Return the stored verdict, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                return None

            stored_at, verdict = entry
            if self.ttl_seconds is not None and self.clock() - stored_at > self.ttl_seconds:
                del self._entries[fingerprint]
                logger.debug("cache_entry_expired", fingerprint=fingerprint[:16])
                return None

            self._entries.move_to_end(fingerprint)
            return verdict

    def put(self, fingerprint: str, verdict: Verdict) -> None:
        """Store a verdict, replacing any previous one for the fingerprint."""
        with self._lock:
            self._entries[fingerprint] = (self.clock(), verdict)
            self._entries.move_to_end(fingerprint)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache_entry_evicted", fingerprint=evicted[:16])

    def invalidate(self, fingerprint: str) -> bool:
        with self._lock:
            return self._entries.pop(fingerprint, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def is_inflight(self, fingerprint: str) -> bool:
        return fingerprint in self._inflight

    async def get_or_compute(
        self,
        fingerprint: str,
        compute: Callable[[], Awaitable[Verdict]],
        wait_timeout: float | None = None,
        hand_over: Callable[[BaseException], bool] | None = None,
    ) -> tuple[Verdict, bool]:
        """Return the cached verdict or compute it at most once across callers.

        Args:
            fingerprint: Cache key.
            compute: Coroutine factory producing a fresh verdict.
            wait_timeout: Longest time to wait on another caller's computation.
            hand_over: Predicate over a failure of ``compute``. When it returns
                True the failure is raised to this caller only, and one waiter
                takes over and computes again, as on cancellation.

        Returns:
            Tuple of (verdict, computed_by_this_call).

        Raises:
            asyncio.TimeoutError: Waited longer than ``wait_timeout``.
            Whatever ``compute`` raises. Callers waiting on the same in-flight
            computation receive the same exception. If the computing call is
            cancelled, one waiter takes over and computes again.
        """
        while True:
            cached = self.get(fingerprint)
            if cached is not None:
                return cached, False

            future = self._inflight.get(fingerprint)
            if future is None:
                break

            logger.debug("cache_awaiting_inflight", fingerprint=fingerprint[:16])
            try:
                verdict = await asyncio.wait_for(asyncio.shield(future), timeout=wait_timeout)
            except asyncio.CancelledError:
                if future.cancelled():
                    continue
                raise
            return verdict, False

        future = asyncio.get_running_loop().create_future()
        self._inflight[fingerprint] = future

        try:
            verdict = await compute()
        except asyncio.CancelledError:
            self._inflight.pop(fingerprint, None)
            future.cancel()
            raise
        except BaseException as e:
            self._inflight.pop(fingerprint, None)
            if hand_over is not None and hand_over(e):
                logger.debug("cache_inflight_handed_over", fingerprint=fingerprint[:16], error=str(e))
                future.cancel()
                raise
            future.set_exception(e)
            # Waiters read it through their shield; this marks it retrieved when there are none
            future.exception()
            raise

        self.put(fingerprint, verdict)
        self._inflight.pop(fingerprint, None)
        future.set_result(verdict)
        return verdict, True
