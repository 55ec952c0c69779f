"""Main entry point: the parking pattern engine."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from parking_ai.analysis import InsightsReporter, ParkingInsights
from parking_ai.config import Settings, settings
from parking_ai.learning import (
    BehavioralMetricsTracker,
    ClusterStore,
    OptimizationResult,
    PatternStore,
)
from parking_ai.maintenance import MaintenanceScheduler
from parking_ai.prediction import (
    AssistantConfig,
    ParkingAssistant,
    ParkingAssistantClient,
    PredictionCache,
    PredictionGenerator,
    RecommendationEngine,
    RelevanceScorer,
)
from parking_ai.storage import InMemoryStorage, JsonFileStorage, SnapshotCodec, SnapshotWriter, StorageAdapter
from parking_ai.utils.analytics import (
    CLUSTERS_OPTIMIZED,
    INSIGHTS_GENERATED,
    PATTERN_LEARNED,
    PATTERNS_CLEANED,
    AnalyticsSink,
    LoggingAnalyticsSink,
    emit_event,
)
from parking_ai.utils.data_models import (
    Coordinates,
    InvalidSessionError,
    ModelSnapshot,
    ParkingSession,
    Prediction,
    Recommendation,
)
from parking_ai.utils.logging import get_logger
from parking_ai.utils.temporal import to_local_naive

LocationInput = Union[Coordinates, Mapping[str, Any]]

PRUNE_JOB = "prune_patterns"
OPTIMIZE_JOB = "optimize_clusters"


def to_coordinates(location: LocationInput) -> Coordinates:
    """Accept a Coordinates/LocationFix or a provider-style mapping."""
    if isinstance(location, Coordinates):
        return location
    return Coordinates.model_validate(dict(location))


class ParkingEngine:
    """
    Learns where a driver parks and predicts where they will park next

    All mutations (learning, pruning, cluster consolidation) go through one
    lock, and each one publishes a fresh immutable :class:`ModelSnapshot`.
    Readers never take the lock: ``predict`` and ``recommend`` work on
    whatever snapshot was current when they started.

    Usage::

        engine = ParkingEngine()
        engine.learn({
            "start_location": {"lat": 37.77, "lng": -122.41},
            "parking_location": {"lat": 37.7749, "lng": -122.4194},
            "search_duration_minutes": 3,
            "was_successful": True,
        })
        prediction = engine.predict(Coordinates(lat=37.7749, lng=-122.4194))
    """

    def __init__(
        self,
        storage: Optional[StorageAdapter] = None,
        clock: Optional[Callable[[], datetime]] = None,
        assistant: Optional[ParkingAssistant] = None,
        analytics: Optional[AnalyticsSink] = None,
        config: Optional[Settings] = None,
    ) -> None:
        """
        Initialize the engine and load any persisted state.

        Args:
            storage: Key/value adapter for the snapshot. Defaults to an
                in-memory store; see :meth:`from_settings` for file storage.
            clock: Source of "now". Defaults to ``datetime.now``. Aware
                values are converted to naive local time.
            assistant: Optional external assistant for recommendations. When
                omitted, one is built from ``config`` if an API URL is set.
            analytics: Event sink. Defaults to a sink that logs at debug level.
            config: Settings override. Defaults to the global settings.
        """
        self.config = config or settings
        self._source_clock = clock or datetime.now
        self.analytics = analytics if analytics is not None else LoggingAnalyticsSink()
        self.storage = storage if storage is not None else InMemoryStorage()
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

        self._lock = threading.RLock()
        self._closed = False

        self.codec = SnapshotCodec(self.storage)
        patterns, clusters, metrics = self._load_state()

        self.pattern_store = PatternStore(
            patterns, retention_days=self.config.pattern_retention_days
        )
        self.cluster_store = ClusterStore(
            clusters, assignment=self.config.cluster_assignment
        )
        self.metrics_tracker = BehavioralMetricsTracker(metrics)
        self._snapshot = self._build_snapshot()

        self.cache = PredictionCache(ttl_seconds=self.config.cache_ttl_seconds, clock=self.clock)
        self.scorer = RelevanceScorer(search_radius_m=self.config.prediction_search_radius_m)
        self.generator = PredictionGenerator(
            self.scorer,
            self.cache,
            clock=self.clock,
            analytics=self.analytics,
            cluster_search_radius_m=self.config.prediction_search_radius_m,
        )

        if assistant is None and self.config.assistant_enabled:
            assistant = ParkingAssistantClient(
                AssistantConfig(
                    api_url=self.config.assistant_api_url,
                    api_key=self.config.assistant_api_key,
                    model=self.config.assistant_model,
                    timeout=self.config.assistant_timeout_seconds,
                )
            )
        self.recommender = RecommendationEngine(
            self.scorer,
            assistant=assistant,
            clock=self.clock,
            default_radius_m=self.config.recommendation_radius_m,
            assistant_timeout=self.config.assistant_timeout_seconds,
            assistant_min_confidence=self.config.assistant_min_confidence,
            max_results=self.config.max_recommendations,
        )

        self.writer = SnapshotWriter(self.codec)
        self.insights_reporter = InsightsReporter()

        self.scheduler = MaintenanceScheduler()
        self.scheduler.add_job(
            PRUNE_JOB, self.config.pattern_prune_interval_seconds, self.prune_patterns
        )
        self.scheduler.add_job(
            OPTIMIZE_JOB, self.config.cluster_optimize_interval_seconds, self.optimize_clusters
        )

        self.logger.info(
            "Parking engine ready",
            patterns=len(self.pattern_store),
            clusters=len(self.cluster_store),
            assistant=assistant is not None,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, **kwargs: Any) -> "ParkingEngine":
        """Build an engine persisting to ``config.storage_dir`` as JSON files."""
        config = config or settings
        return cls(storage=JsonFileStorage(config.storage_dir), config=config, **kwargs)

    def clock(self) -> datetime:
        return to_local_naive(self._source_clock())

    def _load_state(self):
        try:
            return self.codec.load()
        except Exception as error:
            self.logger.error("Could not load stored state; starting empty", error=str(error))
            return [], [], None

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def _build_snapshot(self) -> ModelSnapshot:
        return ModelSnapshot(
            patterns=self.pattern_store.patterns,
            clusters=self.cluster_store.clusters,
            metrics=self.metrics_tracker.metrics,
            taken_at=self.clock(),
        )

    def _publish(self) -> ModelSnapshot:
        """Swap in a new snapshot, invalidate predictions and persist. Caller holds the lock."""
        self._snapshot = self._build_snapshot()
        self.cache.clear()
        self.writer.submit(self._snapshot)
        return self._snapshot

    def snapshot(self) -> ModelSnapshot:
        """Current consistent view of patterns, clusters and metrics."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def learn(self, session: Union[ParkingSession, Mapping[str, Any]]) -> None:
        """
        Learn from one completed parking session.

        Raises:
            InvalidSessionError: If required fields are missing or invalid.
        """
        if not isinstance(session, ParkingSession):
            if not isinstance(session, Mapping):
                raise InvalidSessionError(
                    f"Parking session must be a mapping, got {type(session).__name__}"
                )
            try:
                session = ParkingSession.model_validate(dict(session))
            except ValidationError as error:
                raise InvalidSessionError.from_validation_error(error) from error

        with self._lock:
            observed_at = session.occurred_at or self.clock()

            pattern_update = self.pattern_store.learn(session, observed_at)
            cluster_update = self.cluster_store.absorb(
                session.parking_location,
                observed_at,
                was_successful=session.was_successful,
                parking_duration_minutes=session.parking_duration_minutes,
            )
            self.metrics_tracker.update(session, observed_at, novel_spot=pattern_update.created)
            snapshot = self._publish()

        self.logger.info(
            "Parking session learned",
            pattern_id=pattern_update.pattern.id,
            new_pattern=pattern_update.created,
            cluster_id=cluster_update.cluster.id,
            patterns=len(snapshot.patterns),
            clusters=len(snapshot.clusters),
        )
        emit_event(
            self.analytics,
            PATTERN_LEARNED,
            {
                "patterns_count": len(snapshot.patterns),
                "clusters_count": len(snapshot.clusters),
                "success": session.was_successful,
                "search_time": session.search_duration_minutes,
            },
        )

    def prune_patterns(self) -> int:
        """Drop stale patterns. Returns how many were removed."""
        with self._lock:
            removed = self.pattern_store.prune(self.clock())
            remaining = len(self.pattern_store)
            if removed:
                self._publish()

        emit_event(self.analytics, PATTERNS_CLEANED, {"removed": removed, "remaining": remaining})
        return removed

    def optimize_clusters(self) -> OptimizationResult:
        """Prune weak clusters and merge close ones."""
        with self._lock:
            result = self.cluster_store.optimize()
            if result.changed:
                self._publish()

        emit_event(
            self.analytics,
            CLUSTERS_OPTIMIZED,
            {
                "initial_count": result.initial_count,
                "final_count": result.final_count,
                "pruned": result.pruned,
                "merged": result.merged,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def predict(
        self,
        current_location: LocationInput,
        destination: Optional[LocationInput] = None,
        context_tags: Optional[Sequence[str]] = None,
    ) -> Prediction:
        """Predict where the user will park, falling back to a default guess."""
        current = to_coordinates(current_location)
        target = to_coordinates(destination) if destination is not None else None

        # Generation first, then snapshot: a learn() in between makes the result uncacheable
        generation = self.cache.generation
        return self.generator.predict(
            self.snapshot(),
            current,
            destination=target,
            context_tags=context_tags,
            cache_generation=generation,
        )

    def recommend(
        self, location: LocationInput, radius_m: Optional[float] = None
    ) -> List[Recommendation]:
        """Ranked parking areas near ``location``; assistant suggestions come last."""
        return self.recommender.recommend(self.snapshot(), to_coordinates(location), radius_m)

    def get_insights(self) -> ParkingInsights:
        snapshot = self.snapshot()
        insights = self.insights_reporter.build(snapshot)
        emit_event(
            self.analytics,
            INSIGHTS_GENERATED,
            {
                "efficiency": insights.parking_efficiency,
                "total_patterns": len(snapshot.patterns),
                "total_clusters": len(snapshot.clusters),
            },
        )
        return insights

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_maintenance(self) -> None:
        """Start hourly pattern pruning and 6-hourly cluster optimization."""
        self.scheduler.start()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for pending snapshot writes."""
        return self.writer.flush(timeout)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.scheduler.stop()
        self.recommender.close()
        self.writer.close()
        self.logger.info("Parking engine closed")

    def __enter__(self) -> "ParkingEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
