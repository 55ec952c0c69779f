"""Pattern store: discrete recurring 'parked here at this time' observations.

A new session either reinforces an existing pattern (same weekday, within
100 m and 60 minutes of time-of-day) or becomes a new one. Patterns that go
unused for 90 days are pruned unless they are well established.

The store publishes its contents as an immutable tuple. Mutations build a new
tuple and swap the reference, so readers holding a snapshot never observe a
half-applied update. Mutations themselves must be serialized by the caller.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from parking_ai.config.constants import (
    BASE_CONFIDENCE,
    PATTERN_CONFIDENCE_STEP,
    PATTERN_KEEP_MIN_CONFIDENCE,
    PATTERN_KEEP_MIN_FREQUENCY,
    PATTERN_MATCH_RADIUS_METERS,
    PATTERN_MATCH_WINDOW_MINUTES,
    PATTERN_RETENTION_DAYS,
    QUICK_SEARCH_BONUS,
    QUICK_SEARCH_MINUTES,
    SATISFACTION_BONUS,
    SATISFACTION_THRESHOLD,
    SUCCESS_BONUS,
    VENUE_BONUS,
)
from parking_ai.utils.data_models import Coordinates, ParkingPattern, ParkingSession, clamp
from parking_ai.utils.geo import distance_meters
from parking_ai.utils.logging import get_logger
from parking_ai.utils.temporal import day_of_week, minutes_of_day, time_of_day_difference


def calculate_initial_confidence(session: ParkingSession) -> float:
    """Heuristic trust in a freshly observed session, in [0, 1]."""
    confidence = BASE_CONFIDENCE

    if session.was_successful:
        confidence += SUCCESS_BONUS
    if session.user_satisfaction is not None and session.user_satisfaction >= SATISFACTION_THRESHOLD:
        confidence += SATISFACTION_BONUS
    if session.search_duration_minutes < QUICK_SEARCH_MINUTES:
        confidence += QUICK_SEARCH_BONUS
    if session.venue:
        confidence += VENUE_BONUS

    return clamp(confidence, 0.0, 1.0)


def new_pattern_id() -> str:
    return f"pattern_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class PatternUpdate:
    """Outcome of learning one session."""

    pattern: ParkingPattern
    created: bool


class PatternStore:
    """Holds parking patterns and reinforces them as sessions arrive.

    Usage::

        store = PatternStore()
        update = store.learn(session, observed_at=datetime.now())
        if update.created:
            print("new pattern", update.pattern.id)
    """

    def __init__(
        self,
        patterns: Optional[Iterable[ParkingPattern]] = None,
        match_radius_m: float = PATTERN_MATCH_RADIUS_METERS,
        match_window_minutes: int = PATTERN_MATCH_WINDOW_MINUTES,
        retention_days: int = PATTERN_RETENTION_DAYS,
    ) -> None:
        self.match_radius_m = match_radius_m
        self.match_window_minutes = match_window_minutes
        self.retention_days = retention_days
        self._patterns: Tuple[ParkingPattern, ...] = tuple(patterns or ())
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def patterns(self) -> Tuple[ParkingPattern, ...]:
        """Current immutable snapshot of all patterns."""
        return self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    def find_match(
        self, location: Coordinates, day: int, minute: int
    ) -> Optional[int]:
        """Index of the first pattern matching place, weekday and time, if any."""
        for index, pattern in enumerate(self._patterns):
            if pattern.day_of_week != day:
                continue
            if time_of_day_difference(pattern.time_of_day_minutes, minute) > self.match_window_minutes:
                continue
            if distance_meters(pattern.location, location) <= self.match_radius_m:
                return index
        return None

    def learn(self, session: ParkingSession, observed_at: datetime) -> PatternUpdate:
        """Reinforce the matching pattern or append a new one."""
        day = day_of_week(observed_at)
        minute = minutes_of_day(observed_at)
        location = session.parking_location

        match_index = self.find_match(location, day, minute)

        if match_index is not None:
            existing = self._patterns[match_index]
            updated = existing.model_copy(
                update={
                    "frequency": existing.frequency + 1,
                    "confidence": min(1.0, existing.confidence + PATTERN_CONFIDENCE_STEP),
                    "last_used_at": observed_at,
                    "context_tags": sorted(set(existing.context_tags) | set(session.context_tags)),
                    "venue": existing.venue or session.venue,
                }
            )
            patterns = list(self._patterns)
            patterns[match_index] = updated
            self._patterns = tuple(patterns)

            self.logger.debug(
                "Pattern reinforced",
                pattern_id=updated.id,
                frequency=updated.frequency,
                confidence=updated.confidence,
            )
            return PatternUpdate(pattern=updated, created=False)

        pattern = ParkingPattern(
            id=new_pattern_id(),
            day_of_week=day,
            time_of_day_minutes=minute,
            location=location,
            venue=session.venue,
            frequency=1,
            confidence=calculate_initial_confidence(session),
            last_used_at=observed_at,
            context_tags=list(session.context_tags),
        )
        self._patterns = self._patterns + (pattern,)

        self.logger.debug(
            "Pattern created",
            pattern_id=pattern.id,
            day_of_week=day,
            time_of_day=minute,
            confidence=pattern.confidence,
        )
        return PatternUpdate(pattern=pattern, created=True)

    def _should_keep(self, pattern: ParkingPattern, cutoff: datetime) -> bool:
        if pattern.last_used_at > cutoff:
            return True
        return (
            pattern.frequency >= PATTERN_KEEP_MIN_FREQUENCY
            and pattern.confidence > PATTERN_KEEP_MIN_CONFIDENCE
        )

    def prune(self, now: datetime) -> int:
        """Drop stale patterns. Returns the number removed."""
        cutoff = now - timedelta(days=self.retention_days)
        kept = tuple(p for p in self._patterns if self._should_keep(p, cutoff))
        removed = len(self._patterns) - len(kept)

        if removed:
            self._patterns = kept
            self.logger.info("Stale patterns pruned", removed=removed, remaining=len(kept))
        return removed
