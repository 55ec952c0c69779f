"""Recommendation engine: rank nearby parking areas for a location.

Local ranking always comes first. The optional assistant is queried in the
background as soon as a request arrives and gets a strict deadline; whatever
it contributes is appended after the local list and never reorders it.
"""

from __future__ import annotations

import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from parking_ai.config.constants import (
    ASSISTANT_MIN_CONFIDENCE,
    DEFAULT_ASSISTANT_TIMEOUT,
    DEFAULT_RECOMMENDATION_RADIUS_METERS,
    MAX_ASSISTANT_IN_FLIGHT,
    MAX_ASSISTANT_SUGGESTIONS,
    MAX_RECOMMENDATIONS,
    RECENT_PATTERN_DAYS,
    RELEVANCE_RECENCY_DECAY_DAYS,
)
from parking_ai.prediction.assistant_client import (
    AssistantRequest,
    AssistantResponse,
    ParkingAssistant,
)
from parking_ai.prediction.relevance import RelevanceScorer
from parking_ai.utils.data_models import (
    Coordinates,
    LocationCluster,
    ModelSnapshot,
    ParkingPattern,
    Recommendation,
)
from parking_ai.utils.geo import distance_meters, walk_time_minutes
from parking_ai.utils.logging import get_logger
from parking_ai.utils.temporal import days_between

RECENT_VENUE_LIMIT = 5


def recency_decay(pattern: ParkingPattern, now: datetime) -> float:
    """Linear decay from 1 (used now) to 0 (unused for 30 days)."""
    return max(0.0, 1 - days_between(pattern.last_used_at, now) / RELEVANCE_RECENCY_DECAY_DAYS)


def recommendation_score(
    cluster: LocationCluster, patterns: Sequence[ParkingPattern], now: datetime
) -> float:
    score = cluster.success_rate * math.log(cluster.session_count + 1)
    score += sum(p.confidence * recency_decay(p, now) for p in patterns)
    return score


def recommendation_reasons(
    cluster: LocationCluster, patterns: Sequence[ParkingPattern], now: datetime
) -> List[str]:
    reasons: List[str] = []

    if cluster.success_rate > 0.8:
        reasons.append(f"High success rate ({round(cluster.success_rate * 100)}%)")
    if cluster.session_count > 10:
        reasons.append(f"You've used this area {cluster.session_count} times")

    recent_cutoff = now - timedelta(days=RECENT_PATTERN_DAYS)
    if any(p.last_used_at > recent_cutoff for p in patterns):
        reasons.append("Recently used location")

    return reasons


class RecommendationEngine:
    """Rank candidate parking areas (not a single point) around a location.

    Args:
        scorer: Used for the nearby-cluster lookup.
        assistant: Optional external assistant; ``None`` disables enrichment.
        clock: Source of "now" for recency.
        assistant_timeout: Hard deadline for the assistant, in seconds.
        assistant_min_confidence: Assistant answers at or below this are ignored.
        max_results: Maximum number of locally ranked results.
        max_in_flight: Assistant calls allowed to run at once. Further
            requests skip enrichment until a running call returns.
    """

    def __init__(
        self,
        scorer: RelevanceScorer,
        assistant: Optional[ParkingAssistant] = None,
        clock: Callable[[], datetime] = datetime.now,
        default_radius_m: float = DEFAULT_RECOMMENDATION_RADIUS_METERS,
        assistant_timeout: float = DEFAULT_ASSISTANT_TIMEOUT,
        assistant_min_confidence: float = ASSISTANT_MIN_CONFIDENCE,
        max_results: int = MAX_RECOMMENDATIONS,
        max_in_flight: int = MAX_ASSISTANT_IN_FLIGHT,
    ) -> None:
        self.scorer = scorer
        self.assistant = assistant
        self.clock = clock
        self.default_radius_m = default_radius_m
        self.assistant_timeout = assistant_timeout
        self.assistant_min_confidence = assistant_min_confidence
        self.max_results = max_results
        self.max_in_flight = max_in_flight
        self._in_flight = threading.BoundedSemaphore(max_in_flight)
        self._executor: Optional[ThreadPoolExecutor] = None
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def recommend(
        self,
        snapshot: ModelSnapshot,
        location: Coordinates,
        radius_m: Optional[float] = None,
    ) -> List[Recommendation]:
        radius = radius_m if radius_m is not None else self.default_radius_m
        now = self.clock()
        deadline = time.monotonic() + self.assistant_timeout

        enrichment = self._start_enrichment(snapshot, location, now)

        try:
            local = self.rank_local(snapshot, location, radius, now)
        except Exception as error:
            self.logger.error("Local recommendation ranking failed", error=str(error))
            local = []

        extras = self._collect_enrichment(enrichment, location, deadline)

        self.logger.debug(
            "Recommendations ready",
            local=len(local),
            assistant=len(extras),
            radius=radius,
        )
        return local + extras

    def rank_local(
        self,
        snapshot: ModelSnapshot,
        location: Coordinates,
        radius_m: float,
        now: datetime,
    ) -> List[Recommendation]:
        clusters = self.scorer.find_nearby_clusters(snapshot.clusters, location, radius_m)
        patterns = [p for p in snapshot.patterns if distance_meters(p.location, location) <= radius_m]

        recommendations = []
        for cluster in clusters:
            related = [
                p for p in patterns if distance_meters(p.location, cluster.centroid) <= cluster.radius
            ]
            recommendations.append(
                Recommendation(
                    location=Coordinates(lat=cluster.centroid.lat, lng=cluster.centroid.lng),
                    score=recommendation_score(cluster, related, now),
                    reasons=recommendation_reasons(cluster, related, now),
                    walk_time_minutes=walk_time_minutes(cluster.centroid, location),
                    confidence=cluster.success_rate,
                    source="local",
                )
            )

        recommendations.sort(key=lambda r: r.score, reverse=True)
        return recommendations[: self.max_results]

    # ------------------------------------------------------------------
    # Assistant enrichment
    # ------------------------------------------------------------------

    def _start_enrichment(
        self, snapshot: ModelSnapshot, location: Coordinates, now: datetime
    ) -> Optional[Future]:
        if self.assistant is None:
            return None

        recent = sorted(snapshot.patterns, key=lambda p: p.last_used_at, reverse=True)
        request = AssistantRequest(
            location=location,
            time=now,
            recent_venues=[
                f"{p.venue or 'Unknown'} at {p.location.lat:.5f},{p.location.lng:.5f}"
                for p in recent[:RECENT_VENUE_LIMIT]
            ],
        )

        if not self._in_flight.acquire(blocking=False):
            self.logger.warning(
                "Assistant calls still running; skipping enrichment", in_flight=self.max_in_flight
            )
            return None

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_in_flight, thread_name_prefix="parking-ai-assistant"
            )
        try:
            return self._executor.submit(self._call_assistant, request)
        except RuntimeError as error:
            self._in_flight.release()
            self.logger.warning("Assistant executor unavailable", error=str(error))
            return None

    def _call_assistant(self, request: AssistantRequest) -> AssistantResponse:
        try:
            return self.assistant.suggest(request)
        finally:
            self._in_flight.release()

    def _collect_enrichment(
        self, future: Optional[Future], location: Coordinates, deadline: float
    ) -> List[Recommendation]:
        if future is None:
            return []

        try:
            response: AssistantResponse = future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FutureTimeoutError:
            if future.cancel():
                # Never started, so _call_assistant will not release its slot
                self._in_flight.release()
            self.logger.warning("Assistant timed out; using local results only", timeout=self.assistant_timeout)
            return []
        except Exception as error:
            self.logger.warning("Assistant unavailable; using local results only", error=str(error))
            return []

        if response.confidence <= self.assistant_min_confidence:
            self.logger.debug("Assistant confidence too low", confidence=response.confidence)
            return []

        return [
            Recommendation(
                location=spot.location,
                score=spot.confidence,
                reasons=[f"AI predicted {spot.confidence * 100:.0f}% success rate"],
                walk_time_minutes=walk_time_minutes(spot.location, location),
                confidence=spot.confidence,
                source="assistant",
            )
            for spot in response.alternative_spots[:MAX_ASSISTANT_SUGGESTIONS]
        ]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
