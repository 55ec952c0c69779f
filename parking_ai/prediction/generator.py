"""Prediction generator: turns scored patterns and clusters into one best guess.

Pipeline::

    query ──► cache hit? ──► return cached prediction
                 │ miss
                 ▼
    top 5 relevant patterns + top 3 nearby clusters
                 ▼
    weighted centroid, confidence, reasons, alternatives, radius, suggestions
                 ▼
    cache for 5 minutes ──► return
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

import numpy as np

from parking_ai.config.constants import (
    DEFAULT_PREDICTION_CONFIDENCE,
    DEFAULT_PREDICTION_RADIUS_METERS,
    DEFAULT_WALK_TIME_MINUTES,
    MAX_ALTERNATIVE_SPOTS,
    MAX_RADIUS_METERS,
    MAX_REASONS,
    MAX_SUGGESTIONS,
    MIN_RADIUS_METERS,
    NO_SPREAD_RADIUS_METERS,
    PREDICTION_CLUSTER_LIMIT,
    PREDICTION_CONFIDENCE_DIVISOR,
    PREDICTION_PATTERN_LIMIT,
    RECENT_PATTERN_DAYS,
    RELEVANCE_SEARCH_RADIUS_METERS,
)
from parking_ai.prediction.cache import PredictionCache, make_cache_key
from parking_ai.prediction.relevance import RelevanceScorer
from parking_ai.utils.analytics import (
    PREDICTION_CACHE_HIT,
    PREDICTION_GENERATED,
    AnalyticsSink,
    emit_event,
)
from parking_ai.utils.data_models import (
    AlternativeSpot,
    BehavioralMetrics,
    Coordinates,
    LocationCluster,
    ModelSnapshot,
    ParkingPattern,
    PredictedLocation,
    Prediction,
    clamp,
)
from parking_ai.utils.geo import distance_meters, pairwise_distances, walk_time_minutes, weighted_centroid
from parking_ai.utils.logging import get_logger
from parking_ai.utils.temporal import day_of_week, minutes_of_day, rush_period

DEFAULT_REASONS = ("Based on general parking patterns",)
DEFAULT_SUGGESTIONS = ("Try nearby side streets", "Look for public parking structures")


def pattern_weight(pattern: ParkingPattern) -> float:
    return pattern.confidence * pattern.frequency


def cluster_weight(cluster: LocationCluster) -> float:
    return cluster.success_rate * math.log(cluster.session_count + 1)


def default_prediction(location: Coordinates) -> Prediction:
    """Fallback used when nothing has been learned near the query."""
    return Prediction(
        location=PredictedLocation(
            lat=location.lat, lng=location.lng, radius=DEFAULT_PREDICTION_RADIUS_METERS
        ),
        confidence=DEFAULT_PREDICTION_CONFIDENCE,
        reasons=DEFAULT_REASONS,
        alternative_spots=(),
        estimated_walk_time_minutes=DEFAULT_WALK_TIME_MINUTES,
        suggestions=DEFAULT_SUGGESTIONS,
        is_default=True,
    )


def prediction_radius(
    patterns: Sequence[ParkingPattern], clusters: Sequence[LocationCluster]
) -> float:
    """Spread of the contributing data, clamped to [100, 800] m."""
    if not patterns and not clusters:
        return DEFAULT_PREDICTION_RADIUS_METERS

    spreads = pairwise_distances([p.location for p in patterns]) if len(patterns) > 1 else np.array([])
    spreads = np.concatenate([spreads, np.array([c.radius for c in clusters], dtype=float)])

    if spreads.size == 0:
        return NO_SPREAD_RADIUS_METERS
    return clamp(float(spreads.mean()), MIN_RADIUS_METERS, MAX_RADIUS_METERS)


class PredictionGenerator:
    """Combine relevant patterns and nearby clusters into a :class:`Prediction`.

    Args:
        scorer: Relevance scorer used to pick candidates.
        cache: Prediction cache consulted before any work is done.
        clock: Source of "now" for day-of-week, time-of-day and recency.
        analytics: Optional sink for cache-hit / generated events.
        cluster_search_radius_m: Radius used to collect nearby clusters.
    """

    def __init__(
        self,
        scorer: RelevanceScorer,
        cache: PredictionCache,
        clock: Callable[[], datetime] = datetime.now,
        analytics: Optional[AnalyticsSink] = None,
        cluster_search_radius_m: float = RELEVANCE_SEARCH_RADIUS_METERS,
    ) -> None:
        self.scorer = scorer
        self.cache = cache
        self.clock = clock
        self.analytics = analytics
        self.cluster_search_radius_m = cluster_search_radius_m
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def predict(
        self,
        snapshot: ModelSnapshot,
        current_location: Coordinates,
        destination: Optional[Coordinates] = None,
        context_tags: Optional[Sequence[str]] = None,
        cache_generation: Optional[int] = None,
    ) -> Prediction:
        """Return the cached prediction for this query or build and cache a new one.

        ``cache_generation`` should be read from the cache before ``snapshot``
        was taken; see :class:`PredictionCache`.
        """
        cache_key = make_cache_key(current_location, destination, context_tags)

        cached = self.cache.get(cache_key)
        if cached is not None:
            emit_event(self.analytics, PREDICTION_CACHE_HIT, {"cache_key": cache_key})
            return cached

        try:
            now = self.clock()
            target = destination or current_location
            tags = sorted(set(context_tags or []))

            scored = self.scorer.find_relevant_patterns(
                snapshot.patterns,
                current_location,
                destination,
                day_of_week(now),
                minutes_of_day(now),
                tags,
                now,
            )
            patterns = [item.pattern for item in scored[:PREDICTION_PATTERN_LIMIT]]
            clusters = self.scorer.find_nearby_clusters(
                snapshot.clusters, target, self.cluster_search_radius_m
            )[:PREDICTION_CLUSTER_LIMIT]

            prediction = self.build_prediction(
                patterns, clusters, current_location, target, tags, snapshot.metrics, now
            )
        except Exception as error:
            self.logger.error("Prediction failed; returning default", error=str(error))
            return default_prediction(current_location)

        self.cache.set(cache_key, prediction, generation=cache_generation)
        emit_event(
            self.analytics,
            PREDICTION_GENERATED,
            {
                "confidence": prediction.confidence,
                "has_destination": destination is not None,
                "patterns_used": len(patterns),
                "clusters_used": len(clusters),
            },
        )
        return prediction

    def build_prediction(
        self,
        patterns: Sequence[ParkingPattern],
        clusters: Sequence[LocationCluster],
        current_location: Coordinates,
        target: Coordinates,
        context_tags: Sequence[str],
        metrics: Optional[BehavioralMetrics],
        now: datetime,
    ) -> Prediction:
        if not patterns and not clusters:
            return default_prediction(current_location)

        points = [p.location for p in patterns] + [c.centroid for c in clusters]
        weights = [pattern_weight(p) for p in patterns] + [cluster_weight(c) for c in clusters]
        total_weight = float(sum(weights))

        if total_weight <= 0:
            self.logger.debug("All candidate weights are zero; using default prediction")
            return default_prediction(current_location)

        lat, lng = weighted_centroid(points, weights)
        predicted = Coordinates(lat=lat, lng=lng)

        alternatives = sorted(clusters, key=lambda c: c.success_rate, reverse=True)
        alternative_spots = [
            AlternativeSpot(
                location=Coordinates(lat=c.centroid.lat, lng=c.centroid.lng),
                confidence=c.success_rate,
                distance_meters=distance_meters(c.centroid, target),
            )
            for c in alternatives[:MAX_ALTERNATIVE_SPOTS]
        ]

        prediction = Prediction(
            location=PredictedLocation(
                lat=lat, lng=lng, radius=prediction_radius(patterns, clusters)
            ),
            confidence=min(1.0, total_weight / PREDICTION_CONFIDENCE_DIVISOR),
            reasons=self.generate_reasons(patterns, clusters),
            alternative_spots=alternative_spots,
            estimated_walk_time_minutes=walk_time_minutes(predicted, target),
            suggestions=self.generate_suggestions(patterns, context_tags, metrics, now),
        )

        self.logger.debug(
            "Prediction generated",
            confidence=prediction.confidence,
            radius=prediction.location.radius,
            patterns=len(patterns),
            clusters=len(clusters),
        )
        return prediction

    @staticmethod
    def generate_reasons(
        patterns: Sequence[ParkingPattern], clusters: Sequence[LocationCluster]
    ) -> List[str]:
        reasons: List[str] = []
        for pattern in patterns:
            if pattern.frequency > 3:
                reasons.append(f"You've parked here {pattern.frequency} times before")
            if pattern.venue:
                reasons.append(f"Near {pattern.venue}")
        for cluster in clusters:
            if cluster.session_count > 5:
                reasons.append(f"High success rate area ({round(cluster.success_rate * 100)}%)")

        # dict.fromkeys keeps first-seen order
        return list(dict.fromkeys(reasons))[:MAX_REASONS]

    @staticmethod
    def generate_suggestions(
        patterns: Sequence[ParkingPattern],
        context_tags: Sequence[str],
        metrics: Optional[BehavioralMetrics],
        now: datetime,
    ) -> List[str]:
        suggestions: List[str] = []

        rush = rush_period(now.hour)
        if rush == "morning":
            suggestions.append("Consider arriving 10 minutes early during morning rush")
        elif rush == "evening":
            suggestions.append("Evening peak - try alternative routes for better spots")

        recent_cutoff = now - timedelta(days=RECENT_PATTERN_DAYS)
        recent = [p for p in patterns if p.last_used_at > recent_cutoff]
        if recent and sum(p.confidence for p in recent) / len(recent) > 0.8:
            suggestions.append("You have a strong parking pattern in this area")

        if "work" in context_tags:
            suggestions.append("Check for employee parking discounts")
        elif "shopping" in context_tags:
            suggestions.append("Look for validation opportunities at stores")

        if metrics is not None and metrics.avg_search_time_minutes > 10:
            suggestions.append("Searches here tend to run long - consider a nearby garage")

        return suggestions[:MAX_SUGGESTIONS]
