from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from ..core.constants import DEFAULT_RATE_IDLE_TTL_SECONDS, DEFAULT_RATE_WINDOW_SECONDS
from ..core.exceptions import RateLimited

logger = logging.getLogger(__name__)


class _Shard:
    __slots__ = ("lock", "hits")

    def __init__(self):
        self.lock = threading.Lock()
        self.hits: Dict[str, Deque[float]] = {}


class AdmissionControl:
    """Sliding-window request limiter keyed by caller id.

    Callers are spread over independently locked shards; every
    read-modify-write of a caller's window happens under its shard lock.
    Callers idle for ``idle_ttl_seconds`` are dropped on the next sweep.
    """

    def __init__(
        self,
        *,
        window_seconds: float = DEFAULT_RATE_WINDOW_SECONDS,
        idle_ttl_seconds: float = DEFAULT_RATE_IDLE_TTL_SECONDS,
        shards: int = 16,
        clock: Callable[[], float] = time.monotonic,
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if shards <= 0:
            raise ValueError("shards must be positive")
        self._window = float(window_seconds)
        self._idle_ttl = max(float(idle_ttl_seconds), self._window)
        self._shards = [_Shard() for _ in range(shards)]
        self._clock = clock
        self._sweep_lock = threading.Lock()
        self._last_sweep = clock()

    def _shard(self, caller_id: str) -> _Shard:
        return self._shards[hash(caller_id) % len(self._shards)]

    def admit(self, caller_id: str, limit: int) -> None:
        """Count one call for ``caller_id`` or raise ``RateLimited``."""

        now = self._clock()
        shard = self._shard(caller_id)
        retry_after: Optional[float] = None

        with shard.lock:
            hits = shard.hits.setdefault(caller_id, deque())
            cutoff = now - self._window
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                retry_after = (hits[0] + self._window - now) if hits else self._window
            else:
                hits.append(now)

        self._maybe_sweep(now)

        if retry_after is not None:
            logger.warning("Caller %s exceeded %d calls per %.0fs", caller_id, limit, self._window)
            raise RateLimited("Too many requests", retry_after=max(retry_after, 0.0))

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep < self._idle_ttl:
            return
        if not self._sweep_lock.acquire(blocking=False):
            return
        try:
            self._last_sweep = now
            self.evict_idle(now)
        finally:
            self._sweep_lock.release()

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Forget callers with no call in the last ``idle_ttl_seconds``; returns how many."""

        now = self._clock() if now is None else now
        cutoff = now - self._idle_ttl
        evicted = 0
        for shard in self._shards:
            with shard.lock:
                stale = [cid for cid, hits in shard.hits.items() if not hits or hits[-1] <= cutoff]
                for cid in stale:
                    del shard.hits[cid]
                evicted += len(stale)
        if evicted:
            logger.debug("Evicted %d idle callers", evicted)
        return evicted

    def tracked_callers(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.hits)
        return total
