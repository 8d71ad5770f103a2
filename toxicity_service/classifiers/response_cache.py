"""
Response Cache - bounded store of verdicts keyed by normalized text.

Shared by every tier: a text classified once (remotely or by the lexicon)
is answered from here until capacity pressure evicts it. Entries never
expire by age.

Eviction is a batch trim, not LRU: once the store holds more than
``max_entries`` entries, everything but the most recent half (insertion
order) is dropped. The trim runs on every insert that crosses the ceiling
and again from a periodic maintenance task.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from toxicity_service.classifiers.verdict import Verdict
from toxicity_service.core.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_MAX_ENTRIES: Final[int] = 1000
DEFAULT_MAINTENANCE_INTERVAL: Final[float] = 300.0


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A cached verdict and when it was stored."""

    verdict: Verdict
    inserted_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time cache counters."""

    size: int
    max_entries: int
    hits: int
    misses: int
    trims: int


class ResponseCache:
    """Thread-safe bounded verdict cache.

    Usage:
        cache = ResponseCache(max_entries=1000)
        cache.put("hello", verdict)
        cache.get("hello")  # verdict
    """

    __slots__ = (
        "_entries",
        "_max_entries",
        "_maintenance_interval",
        "_clock",
        "_lock",
        "_hits",
        "_misses",
        "_trims",
        "_maintenance_task",
    )

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        maintenance_interval: float = DEFAULT_MAINTENANCE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache.

        Args:
            max_entries: Ceiling on stored entries (at least 2)
            maintenance_interval: Seconds between background trim passes
            clock: Time source for insertion timestamps
        """
        if max_entries < 2:
            raise ValueError("max_entries must be at least 2")

        # dict preserves insertion order; re-putting a key keeps its slot
        self._entries: dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._maintenance_interval = maintenance_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._trims = 0
        self._maintenance_task: asyncio.Task[None] | None = None

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def maintenance_running(self) -> bool:
        task = self._maintenance_task
        return task is not None and not task.done()

    def get(self, key: str) -> Verdict | None:
        """Return the cached verdict for a normalized key, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.verdict

    def entry(self, key: str) -> CacheEntry | None:
        """Return the stored entry without touching hit/miss counters."""
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, verdict: Verdict) -> None:
        """Store a verdict, trimming immediately if the ceiling is crossed."""
        with self._lock:
            self._entries[key] = CacheEntry(verdict=verdict, inserted_at=self._clock())
            if len(self._entries) > self._max_entries:
                self._trim_locked()

    def trim(self) -> int:
        """Drop the oldest half if over the ceiling.

        Returns:
            Number of evicted entries
        """
        with self._lock:
            if len(self._entries) <= self._max_entries:
                return 0
            return self._trim_locked()

    def _trim_locked(self) -> int:
        keep = self._max_entries // 2
        before = len(self._entries)
        recent = list(self._entries.items())[-keep:]
        self._entries = dict(recent)
        self._trims += 1
        evicted = before - len(self._entries)
        logger.info("cache_trimmed", evicted=evicted, kept=len(self._entries))
        return evicted

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_entries=self._max_entries,
                hits=self._hits,
                misses=self._misses,
                trims=self._trims,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    # =========================================================================
    # Background maintenance
    # =========================================================================

    def start_maintenance(self) -> None:
        """Start the periodic trim task on the running event loop.

        Idempotent: a second call while the task is alive is a no-op.
        """
        if self.maintenance_running:
            return
        self._maintenance_task = asyncio.get_running_loop().create_task(
            self._run_maintenance(), name="response-cache-maintenance"
        )

    async def stop_maintenance(self) -> None:
        """Cancel the periodic trim task and wait for it to finish."""
        task = self._maintenance_task
        self._maintenance_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run_maintenance(self) -> None:
        while True:
            await asyncio.sleep(self._maintenance_interval)
            evicted = self.trim()
            stats = self.stats()
            logger.debug(
                "cache_maintenance",
                size=stats.size,
                hits=stats.hits,
                misses=stats.misses,
                evicted=evicted,
            )
