"""Running averages describing the user's general parking behavior."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from parking_ai.config.constants import (
    DEFAULT_ADAPTABILITY_SCORE,
    DEFAULT_WALK_DISTANCE_METERS,
    EMA_ALPHA,
)
from parking_ai.utils.data_models import BehavioralMetrics, ParkingSession
from parking_ai.utils.logging import get_logger
from parking_ai.utils.temporal import time_bucket


def ema(previous: float, sample: float, alpha: float = EMA_ALPHA) -> float:
    return previous * (1 - alpha) + sample * alpha


class BehavioralMetricsTracker:
    """Maintains a single :class:`BehavioralMetrics` record.

    The first session initialises every average directly; afterwards each
    average moves by an exponential moving average with ``alpha``.
    ``adaptability_score`` tracks how often the user parks somewhere that is
    not one of their known patterns.
    """

    def __init__(
        self, metrics: Optional[BehavioralMetrics] = None, alpha: float = EMA_ALPHA
    ) -> None:
        self.alpha = alpha
        self._metrics = metrics
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def metrics(self) -> Optional[BehavioralMetrics]:
        return self._metrics

    def update(
        self, session: ParkingSession, observed_at: datetime, novel_spot: bool = False
    ) -> BehavioralMetrics:
        bucket = time_bucket(observed_at.hour)
        current = self._metrics

        if current is None:
            preferences = BehavioralMetrics().time_preferences
            preferences[bucket] = preferences.get(bucket, 0) + 1
            updated = BehavioralMetrics(
                avg_search_time_minutes=session.search_duration_minutes,
                preferred_walk_distance_meters=(
                    session.walk_distance_meters
                    if session.walk_distance_meters is not None
                    else DEFAULT_WALK_DISTANCE_METERS
                ),
                time_preferences=preferences,
                venue_types={session.venue.lower(): 1} if session.venue else {},
                parking_success_rate=1.0 if session.was_successful else 0.0,
                adaptability_score=DEFAULT_ADAPTABILITY_SCORE,
                session_count=1,
            )
        else:
            preferences = dict(current.time_preferences)
            preferences[bucket] = preferences.get(bucket, 0) + 1

            venues = dict(current.venue_types)
            if session.venue:
                key = session.venue.lower()
                venues[key] = venues.get(key, 0) + 1

            walk_distance = current.preferred_walk_distance_meters
            if session.walk_distance_meters is not None:
                walk_distance = ema(walk_distance, session.walk_distance_meters, self.alpha)

            updated = current.model_copy(
                update={
                    "avg_search_time_minutes": ema(
                        current.avg_search_time_minutes, session.search_duration_minutes, self.alpha
                    ),
                    "preferred_walk_distance_meters": walk_distance,
                    "parking_success_rate": ema(
                        current.parking_success_rate,
                        1.0 if session.was_successful else 0.0,
                        self.alpha,
                    ),
                    "adaptability_score": ema(
                        current.adaptability_score, 1.0 if novel_spot else 0.0, self.alpha
                    ),
                    "time_preferences": preferences,
                    "venue_types": venues,
                    "session_count": current.session_count + 1,
                }
            )

        self._metrics = updated
        self.logger.debug(
            "Behavioral metrics updated",
            avg_search_time=updated.avg_search_time_minutes,
            success_rate=updated.parking_success_rate,
            sessions=updated.session_count,
        )
        return updated
