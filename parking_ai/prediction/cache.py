"""Short-lived memo of predictions keyed by a quantized query."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Sequence

from parking_ai.config.constants import CACHE_KEY_PRECISION, DEFAULT_CACHE_TTL_SECONDS
from parking_ai.utils.data_models import Coordinates, Prediction
from parking_ai.utils.logging import get_logger


def make_cache_key(
    current_location: Coordinates,
    destination: Optional[Coordinates] = None,
    context_tags: Optional[Sequence[str]] = None,
    precision: int = CACHE_KEY_PRECISION,
) -> str:
    """Round coordinates onto a ~100 m grid and sort tags so equivalent queries share a key."""
    current_key = f"{round(current_location.lat, precision)},{round(current_location.lng, precision)}"
    destination_key = (
        f"{round(destination.lat, precision)},{round(destination.lng, precision)}"
        if destination is not None
        else ""
    )
    tags_key = ",".join(sorted(set(context_tags or [])))
    return f"{current_key}|{destination_key}|{tags_key}"


@dataclass
class _CacheEntry:
    prediction: Prediction
    created_at: datetime


class PredictionCache:
    """TTL cache with lazy expiry checked at read time.

    There is no eviction thread: an expired entry is dropped the next time it
    is looked up, and the whole cache is cleared whenever a session is learned.

    Every ``clear`` bumps ``generation``. A writer that read the generation
    before taking its model snapshot passes it to ``set``; if a clear happened
    in between, the now-stale prediction is not stored.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self.hits = 0
        self.misses = 0
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def get(self, key: str) -> Optional[Prediction]:
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if now - entry.created_at >= self.ttl:
                del self._entries[key]
                self.misses += 1
                self.logger.debug("Cache entry expired", key=key)
                return None
            self.hits += 1
            return entry.prediction

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def set(self, key: str, prediction: Prediction, generation: Optional[int] = None) -> bool:
        """Store a prediction. Returns False if it was computed before the last clear."""
        with self._lock:
            if generation is not None and generation != self._generation:
                self.logger.debug("Dropping prediction from before last clear", key=key)
                return False
            self._entries[key] = _CacheEntry(prediction=prediction, created_at=self.clock())
            return True

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._entries)
            self._entries.clear()
            self._generation += 1
        if cleared:
            self.logger.debug("Prediction cache cleared", entries=cleared)
        return cleared

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, float]:
        with self._lock:
            total = self.hits + self.misses
            return {
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hits / total if total else 0.0,
                "ttl_seconds": self.ttl.total_seconds(),
            }
