from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str]


def cache_key(entity: str, user_id: str) -> CacheKey:
    return (entity, user_id)


@dataclass(slots=True)
class CacheEntry:
    value: Any = None
    confirmed: Any = None
    fetched_at: float | None = None
    pending: dict[int, Any] = field(default_factory=dict)

    def visible_value(self) -> Any:
        if self.pending:
            return self.pending[max(self.pending)]
        return self.confirmed


@dataclass(slots=True, frozen=True)
class OptimisticWrite:
    key: CacheKey
    sequence: int
    snapshot: Any
    candidate: Any


class QueryCache:
    """In-memory mirror of remote rows keyed by ``(entity, user_id)``.

    Optimistic writes are tagged with a sequence number. Settling a write
    (confirm or rollback) leaves the newest still-pending candidate visible;
    once nothing is pending the last confirmed value is shown again.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._sequence = 0

    def get(self, key: CacheKey) -> Any:
        entry = self._entries.get(key)
        return entry.value if entry else None

    def confirmed(self, key: CacheKey) -> Any:
        """Last value the backend acknowledged, ignoring pending candidates."""
        entry = self._entries.get(key)
        return entry.confirmed if entry else None

    def has(self, key: CacheKey) -> bool:
        return key in self._entries

    def is_fresh(self, key: CacheKey, max_age_sec: float) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.fetched_at is None:
            return False
        return self._clock() - entry.fetched_at < max_age_sec

    def set(self, key: CacheKey, value: Any) -> None:
        entry = self._entries.setdefault(key, CacheEntry())
        entry.confirmed = value
        entry.fetched_at = self._clock()
        entry.value = entry.visible_value()

    def clear(self, key: CacheKey) -> None:
        self._entries.pop(key, None)

    def invalidate(self, key: CacheKey) -> None:
        entry = self._entries.get(key)
        if entry is not None:
            entry.fetched_at = None

    def pending_writes(self, key: CacheKey) -> int:
        entry = self._entries.get(key)
        return len(entry.pending) if entry else 0

    def begin_optimistic(self, key: CacheKey, candidate: Any) -> OptimisticWrite:
        entry = self._entries.setdefault(key, CacheEntry())
        self._sequence += 1
        write = OptimisticWrite(key=key, sequence=self._sequence, snapshot=entry.value, candidate=candidate)
        entry.pending[write.sequence] = candidate
        entry.value = candidate
        return write

    def confirm(self, write: OptimisticWrite, value: Any) -> None:
        entry = self._entries.setdefault(write.key, CacheEntry())
        entry.pending.pop(write.sequence, None)
        entry.confirmed = value
        entry.fetched_at = self._clock()
        entry.value = entry.visible_value()

    def rollback(self, write: OptimisticWrite) -> Any:
        entry = self._entries.get(write.key)
        if entry is None:
            return None
        entry.pending.pop(write.sequence, None)
        if entry.pending:
            logger.info(
                "rolled back write %s on %s; newer write %s still pending",
                write.sequence,
                write.key,
                max(entry.pending),
            )
        entry.value = entry.visible_value()
        return entry.value
