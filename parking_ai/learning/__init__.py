"""Learning layer: the write path fed by completed parking sessions.

- PatternStore: recurring place/weekday/time observations
- ClusterStore: incremental parking-area aggregates
- BehavioralMetricsTracker: EMA-smoothed behavior metrics
"""

from parking_ai.learning.cluster_store import (
    ClusterStore,
    ClusterUpdate,
    OptimizationResult,
    merge_clusters,
)
from parking_ai.learning.metrics_tracker import BehavioralMetricsTracker
from parking_ai.learning.pattern_store import (
    PatternStore,
    PatternUpdate,
    calculate_initial_confidence,
)

__all__ = [
    "ClusterStore",
    "ClusterUpdate",
    "OptimizationResult",
    "merge_clusters",
    "BehavioralMetricsTracker",
    "PatternStore",
    "PatternUpdate",
    "calculate_initial_confidence",
]
