"""Spatio-temporal-contextual relevance scoring of learned patterns and clusters."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from parking_ai.config.constants import (
    RELEVANCE_DISTANCE_DECAY_METERS,
    RELEVANCE_MAX_DAY_DIFF,
    RELEVANCE_MAX_TIME_DIFF_MINUTES,
    RELEVANCE_RECENCY_DECAY_DAYS,
    RELEVANCE_RESULT_LIMIT,
    RELEVANCE_SEARCH_RADIUS_METERS,
    RELEVANCE_TIME_DECAY_MINUTES,
)
from parking_ai.utils.data_models import Coordinates, LocationCluster, ParkingPattern
from parking_ai.utils.geo import distance_meters
from parking_ai.utils.logging import get_logger
from parking_ai.utils.temporal import day_difference, days_between, time_of_day_difference


@dataclass(frozen=True)
class ScoredPattern:
    pattern: ParkingPattern
    score: float
    distance_meters: float


def context_overlap_ratio(query_tags: Sequence[str], pattern_tags: Sequence[str]) -> float:
    """Shared tags over the larger tag set; 0 when either side has no tags."""
    if not query_tags or not pattern_tags:
        return 0.0
    shared = len(set(query_tags) & set(pattern_tags))
    return shared / max(len(set(query_tags)), len(set(pattern_tags)))


class RelevanceScorer:
    """Filter and rank learned records against a query context.

    Pattern score::

        confidence * frequency
          * exp(-distance / 1000)
          * max(0.5, 1 - dayDiff / 7)
          * max(0.3, 1 - timeDiff / 720)
          * (1 + contextOverlapRatio)
          * exp(-daysSinceLastUse / 30)
    """

    def __init__(
        self,
        search_radius_m: float = RELEVANCE_SEARCH_RADIUS_METERS,
        max_day_diff: int = RELEVANCE_MAX_DAY_DIFF,
        max_time_diff_minutes: int = RELEVANCE_MAX_TIME_DIFF_MINUTES,
        limit: int = RELEVANCE_RESULT_LIMIT,
    ) -> None:
        self.search_radius_m = search_radius_m
        self.max_day_diff = max_day_diff
        self.max_time_diff_minutes = max_time_diff_minutes
        self.limit = limit
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def score_pattern(
        self,
        pattern: ParkingPattern,
        distance: float,
        day_of_week: int,
        time_of_day_minutes: int,
        context_tags: Sequence[str],
        now: datetime,
    ) -> float:
        day_diff = day_difference(pattern.day_of_week, day_of_week)
        time_diff = time_of_day_difference(pattern.time_of_day_minutes, time_of_day_minutes)
        days_idle = days_between(pattern.last_used_at, now)

        score = pattern.confidence * pattern.frequency
        score *= math.exp(-distance / RELEVANCE_DISTANCE_DECAY_METERS)
        score *= max(0.5, 1 - day_diff / 7)
        score *= max(0.3, 1 - time_diff / RELEVANCE_TIME_DECAY_MINUTES)
        score *= 1 + context_overlap_ratio(context_tags, pattern.context_tags)
        score *= math.exp(-days_idle / RELEVANCE_RECENCY_DECAY_DAYS)
        return score

    def _passes_filters(
        self,
        pattern: ParkingPattern,
        distance: float,
        day_of_week: int,
        time_of_day_minutes: int,
        context_tags: Sequence[str],
    ) -> bool:
        if distance > self.search_radius_m:
            return False
        if day_difference(pattern.day_of_week, day_of_week) > self.max_day_diff:
            return False
        if time_of_day_difference(pattern.time_of_day_minutes, time_of_day_minutes) > self.max_time_diff_minutes:
            return False
        if context_tags and pattern.context_tags:
            if not set(context_tags) & set(pattern.context_tags):
                return False
        return True

    def find_relevant_patterns(
        self,
        patterns: Iterable[ParkingPattern],
        current_location: Coordinates,
        destination: Optional[Coordinates],
        day_of_week: int,
        time_of_day_minutes: int,
        context_tags: Optional[Sequence[str]],
        now: datetime,
    ) -> List[ScoredPattern]:
        """Top-scoring patterns near ``destination`` (or the current location)."""
        target = destination or current_location
        tags = list(context_tags or [])

        scored: List[ScoredPattern] = []
        for pattern in patterns:
            distance = distance_meters(pattern.location, target)
            if not self._passes_filters(pattern, distance, day_of_week, time_of_day_minutes, tags):
                continue
            score = self.score_pattern(pattern, distance, day_of_week, time_of_day_minutes, tags, now)
            scored.append(ScoredPattern(pattern=pattern, score=score, distance_meters=distance))

        scored.sort(key=lambda item: item.score, reverse=True)
        self.logger.debug(
            "Relevant patterns ranked",
            candidates=len(scored),
            returned=min(len(scored), self.limit),
        )
        return scored[: self.limit]

    @staticmethod
    def find_nearby_clusters(
        clusters: Iterable[LocationCluster],
        target: Coordinates,
        radius_m: float = RELEVANCE_SEARCH_RADIUS_METERS,
    ) -> List[LocationCluster]:
        """Clusters whose centroid lies within ``radius_m`` of ``target``, nearest first."""
        nearby = []
        for cluster in clusters:
            distance = distance_meters(cluster.centroid, target)
            if distance <= radius_m:
                nearby.append((distance, cluster))
        nearby.sort(key=lambda pair: pair[0])
        return [cluster for _, cluster in nearby]
