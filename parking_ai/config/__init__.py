from .constants import (
    CLUSTER_MATCH_RADIUS_METERS,
    CLUSTER_MERGE_RADIUS_METERS,
    DEFAULT_ASSISTANT_TIMEOUT,
    DEFAULT_CACHE_TTL_SECONDS,
    EMA_ALPHA,
    MAX_RADIUS_METERS,
    MIN_RADIUS_METERS,
    PATTERN_MATCH_RADIUS_METERS,
    PATTERN_MATCH_WINDOW_MINUTES,
    WALKING_SPEED_METERS_PER_MINUTE,
)
from .settings import Settings, settings

__all__ = [
    "CLUSTER_MATCH_RADIUS_METERS",
    "CLUSTER_MERGE_RADIUS_METERS",
    "DEFAULT_ASSISTANT_TIMEOUT",
    "DEFAULT_CACHE_TTL_SECONDS",
    "EMA_ALPHA",
    "MAX_RADIUS_METERS",
    "MIN_RADIUS_METERS",
    "PATTERN_MATCH_RADIUS_METERS",
    "PATTERN_MATCH_WINDOW_MINUTES",
    "WALKING_SPEED_METERS_PER_MINUTE",
    "Settings",
    "settings",
]
