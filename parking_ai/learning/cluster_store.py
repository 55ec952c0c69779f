"""Cluster store: coarse parking areas built incrementally from every observed point.

Each absorbed point either joins a cluster whose centroid lies within 200 m
(moving the centroid by a cumulative mean) or seeds a new 100 m cluster.
``optimize`` is the periodic consolidation pass: it drops one-off failed
areas and merges clusters whose centroids have drifted within 150 m of each
other. The merge pass is a single pairwise sweep, so a long chain of near
clusters may take several passes to collapse fully.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Literal, Optional, Tuple

from parking_ai.config.constants import (
    CLUSTER_MATCH_RADIUS_METERS,
    CLUSTER_MERGE_RADIUS_METERS,
    CLUSTER_PRUNE_MAX_SUCCESS_RATE,
    CLUSTER_PRUNE_MIN_SESSIONS,
    MAX_RADIUS_METERS,
    MIN_RADIUS_METERS,
)
from parking_ai.utils.data_models import Coordinates, LocationCluster, clamp
from parking_ai.utils.geo import distance_meters
from parking_ai.utils.logging import get_logger
from parking_ai.utils.temporal import day_of_week

AssignmentPolicy = Literal["nearest", "first"]


def new_cluster_id() -> str:
    return f"cluster_{uuid.uuid4().hex[:12]}"


def _increment(histogram: Dict[int, int], key: int) -> Dict[int, int]:
    updated = dict(histogram)
    updated[key] = updated.get(key, 0) + 1
    return updated


@dataclass(frozen=True)
class ClusterUpdate:
    cluster: LocationCluster
    created: bool


@dataclass(frozen=True)
class OptimizationResult:
    """Summary of one consolidation pass."""

    initial_count: int
    pruned: int
    merged: int
    final_count: int

    @property
    def changed(self) -> bool:
        return self.initial_count != self.final_count


def merge_clusters(primary: LocationCluster, other: LocationCluster) -> LocationCluster:
    """Fold ``other`` into ``primary`` weighting by session counts."""
    total_sessions = primary.session_count + other.session_count
    weight_a = primary.session_count / total_sessions
    weight_b = other.session_count / total_sessions
    duration_samples = primary.duration_samples + other.duration_samples

    centroid = Coordinates(
        lat=primary.centroid.lat * weight_a + other.centroid.lat * weight_b,
        lng=primary.centroid.lng * weight_a + other.centroid.lng * weight_b,
    )

    return primary.model_copy(
        update={
            "centroid": centroid,
            "session_count": total_sessions,
            "success_rate": clamp(
                primary.success_rate * weight_a + other.success_rate * weight_b, 0.0, 1.0
            ),
            "radius": clamp(max(primary.radius, other.radius), MIN_RADIUS_METERS, MAX_RADIUS_METERS),
            "last_visit_at": max(primary.last_visit_at, other.last_visit_at),
            "avg_parking_duration_minutes": (
                (
                    primary.avg_parking_duration_minutes * primary.duration_samples
                    + other.avg_parking_duration_minutes * other.duration_samples
                )
                / duration_samples
                if duration_samples
                else 0.0
            ),
            "duration_samples": duration_samples,
            "time_patterns": dict(Counter(primary.time_patterns) + Counter(other.time_patterns)),
            "day_patterns": dict(Counter(primary.day_patterns) + Counter(other.day_patterns)),
        }
    )


class ClusterStore:
    """Holds location clusters and keeps them consolidated.

    Like :class:`PatternStore`, the store publishes an immutable tuple and
    swaps it on every mutation; callers serialize mutations.

    Args:
        clusters: Initial clusters, typically loaded from storage.
        match_radius_m: Distance within which a point joins a cluster.
        merge_radius_m: Centroid distance at which ``optimize`` merges clusters.
        assignment: ``"nearest"`` picks the closest matching cluster;
            ``"first"`` keeps the legacy first-match behaviour, which depends
            on insertion order.
    """

    def __init__(
        self,
        clusters: Optional[Iterable[LocationCluster]] = None,
        match_radius_m: float = CLUSTER_MATCH_RADIUS_METERS,
        merge_radius_m: float = CLUSTER_MERGE_RADIUS_METERS,
        assignment: AssignmentPolicy = "nearest",
    ) -> None:
        if assignment not in ("nearest", "first"):
            raise ValueError(f"Unknown cluster assignment policy: {assignment!r}")

        self.match_radius_m = match_radius_m
        self.merge_radius_m = merge_radius_m
        self.assignment = assignment
        self._clusters: Tuple[LocationCluster, ...] = tuple(clusters or ())
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def clusters(self) -> Tuple[LocationCluster, ...]:
        return self._clusters

    def __len__(self) -> int:
        return len(self._clusters)

    def _find_candidate(self, point: Coordinates) -> Optional[int]:
        best_index: Optional[int] = None
        best_distance = float("inf")

        for index, cluster in enumerate(self._clusters):
            distance = distance_meters(cluster.centroid, point)
            if distance > self.match_radius_m:
                continue
            if self.assignment == "first":
                return index
            if distance < best_distance:
                best_index, best_distance = index, distance

        return best_index

    def absorb(
        self,
        point: Coordinates,
        observed_at: datetime,
        was_successful: bool = True,
        parking_duration_minutes: Optional[float] = None,
    ) -> ClusterUpdate:
        """Fold a parked location into the cluster set."""
        outcome = 1.0 if was_successful else 0.0
        hour = observed_at.hour
        day = day_of_week(observed_at)

        index = self._find_candidate(point)

        if index is None:
            cluster = LocationCluster(
                id=new_cluster_id(),
                centroid=Coordinates(lat=point.lat, lng=point.lng),
                radius=MIN_RADIUS_METERS,
                session_count=1,
                last_visit_at=observed_at,
                avg_parking_duration_minutes=parking_duration_minutes or 0.0,
                duration_samples=0 if parking_duration_minutes is None else 1,
                success_rate=outcome,
                time_patterns={hour: 1},
                day_patterns={day: 1},
            )
            self._clusters = self._clusters + (cluster,)
            self.logger.debug("Cluster created", cluster_id=cluster.id, lat=point.lat, lng=point.lng)
            return ClusterUpdate(cluster=cluster, created=True)

        existing = self._clusters[index]
        sessions = existing.session_count + 1
        # Cumulative mean: the n-th point moves the centroid by 1/n of the gap.
        weight = 1 / sessions

        avg_duration = existing.avg_parking_duration_minutes
        duration_samples = existing.duration_samples
        if parking_duration_minutes is not None:
            # Averaged over sessions that reported a duration, not all sessions
            duration_samples += 1
            avg_duration += (parking_duration_minutes - avg_duration) / duration_samples

        updated = existing.model_copy(
            update={
                "centroid": Coordinates(
                    lat=existing.centroid.lat * (1 - weight) + point.lat * weight,
                    lng=existing.centroid.lng * (1 - weight) + point.lng * weight,
                ),
                "session_count": sessions,
                "last_visit_at": observed_at,
                "success_rate": clamp(
                    existing.success_rate * (1 - weight) + outcome * weight, 0.0, 1.0
                ),
                "avg_parking_duration_minutes": avg_duration,
                "duration_samples": duration_samples,
                "time_patterns": _increment(existing.time_patterns, hour),
                "day_patterns": _increment(existing.day_patterns, day),
            }
        )
        clusters = list(self._clusters)
        clusters[index] = updated
        self._clusters = tuple(clusters)

        self.logger.debug(
            "Cluster updated",
            cluster_id=updated.id,
            session_count=sessions,
            success_rate=updated.success_rate,
        )
        return ClusterUpdate(cluster=updated, created=False)

    def _is_low_quality(self, cluster: LocationCluster) -> bool:
        return (
            cluster.success_rate <= CLUSTER_PRUNE_MAX_SUCCESS_RATE
            and cluster.session_count < CLUSTER_PRUNE_MIN_SESSIONS
        )

    def optimize(self) -> OptimizationResult:
        """Prune low-quality clusters, then merge near neighbours in one pass."""
        initial_count = len(self._clusters)
        survivors: List[LocationCluster] = [
            c for c in self._clusters if not self._is_low_quality(c)
        ]
        pruned = initial_count - len(survivors)

        absorbed = set()
        for i in range(len(survivors) - 1):
            if i in absorbed:
                continue
            for j in range(i + 1, len(survivors)):
                if j in absorbed:
                    continue
                if distance_meters(survivors[i].centroid, survivors[j].centroid) <= self.merge_radius_m:
                    survivors[i] = merge_clusters(survivors[i], survivors[j])
                    absorbed.add(j)

        merged_clusters = tuple(c for idx, c in enumerate(survivors) if idx not in absorbed)
        self._clusters = merged_clusters

        result = OptimizationResult(
            initial_count=initial_count,
            pruned=pruned,
            merged=len(absorbed),
            final_count=len(merged_clusters),
        )
        self.logger.info(
            "Cluster optimization finished",
            initial_count=result.initial_count,
            pruned=result.pruned,
            merged=result.merged,
            final_count=result.final_count,
        )
        return result
