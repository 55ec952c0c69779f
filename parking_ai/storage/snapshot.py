"""Serialization of the three learned collections.

Patterns, clusters and metrics are stored under independent keys so one
corrupted blob never takes the others down with it.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from parking_ai.config.constants import (
    CLUSTERS_STORAGE_KEY,
    METRICS_STORAGE_KEY,
    PATTERNS_STORAGE_KEY,
)
from parking_ai.storage.adapters import StorageAdapter
from parking_ai.utils.data_models import (
    BehavioralMetrics,
    LocationCluster,
    ModelSnapshot,
    ParkingPattern,
)
from parking_ai.utils.logging import get_logger

ModelT = TypeVar("ModelT", bound=BaseModel)


class SnapshotCodec:
    """Encode and decode learned state to/from a storage adapter."""

    def __init__(self, storage: StorageAdapter) -> None:
        self.storage = storage
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    @staticmethod
    def encode_list(items) -> bytes:
        payload = [item.model_dump(mode="json") for item in items]
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")

    @staticmethod
    def encode_metrics(metrics: Optional[BehavioralMetrics]) -> bytes:
        payload = metrics.model_dump(mode="json") if metrics is not None else None
        return json.dumps(payload, ensure_ascii=False).encode("utf-8")

    def save_patterns(self, patterns) -> None:
        self.storage.set(PATTERNS_STORAGE_KEY, self.encode_list(patterns))

    def save_clusters(self, clusters) -> None:
        self.storage.set(CLUSTERS_STORAGE_KEY, self.encode_list(clusters))

    def save_metrics(self, metrics: Optional[BehavioralMetrics]) -> None:
        self.storage.set(METRICS_STORAGE_KEY, self.encode_metrics(metrics))

    def save(self, snapshot: ModelSnapshot) -> None:
        self.save_patterns(snapshot.patterns)
        self.save_clusters(snapshot.clusters)
        self.save_metrics(snapshot.metrics)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def _read_json(self, key: str) -> Any:
        """Fetch and parse a blob. Storage or JSON failures yield None."""
        try:
            blob = self.storage.get(key)
        except Exception as error:
            self.logger.warning("Storage read failed", key=key, error=str(error))
            return None

        if not blob:
            return None

        try:
            return json.loads(blob)
        except (UnicodeDecodeError, json.JSONDecodeError) as error:
            self.logger.warning("Discarding unreadable blob", key=key, error=str(error))
            return None

    def _decode_items(self, key: str, model: Type[ModelT]) -> List[ModelT]:
        raw = self._read_json(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            self.logger.warning("Expected a list", key=key, found=type(raw).__name__)
            return []

        items: List[ModelT] = []
        for index, entry in enumerate(raw):
            try:
                items.append(model.model_validate(entry))
            except ValidationError as error:
                self.logger.warning(
                    "Skipping corrupted item",
                    key=key,
                    index=index,
                    error=str(error.errors()[0]["msg"]),
                )
        return items

    def load_patterns(self) -> List[ParkingPattern]:
        return self._decode_items(PATTERNS_STORAGE_KEY, ParkingPattern)

    def load_clusters(self) -> List[LocationCluster]:
        return self._decode_items(CLUSTERS_STORAGE_KEY, LocationCluster)

    def load_metrics(self) -> Optional[BehavioralMetrics]:
        raw = self._read_json(METRICS_STORAGE_KEY)
        if raw is None:
            return None
        try:
            return BehavioralMetrics.model_validate(raw)
        except ValidationError as error:
            self.logger.warning("Discarding invalid metrics", error=str(error))
            return None

    def load(self) -> Tuple[List[ParkingPattern], List[LocationCluster], Optional[BehavioralMetrics]]:
        patterns = self.load_patterns()
        clusters = self.load_clusters()
        metrics = self.load_metrics()

        self.logger.info(
            "Snapshot loaded",
            patterns=len(patterns),
            clusters=len(clusters),
            has_metrics=metrics is not None,
        )
        return patterns, clusters, metrics
