"""Project-wide constants for the parking pattern engine."""

from typing import Final

# Pattern matching
PATTERN_MATCH_RADIUS_METERS: Final[float] = 100.0
PATTERN_MATCH_WINDOW_MINUTES: Final[int] = 60
PATTERN_CONFIDENCE_STEP: Final[float] = 0.1
PATTERN_RETENTION_DAYS: Final[int] = 90
PATTERN_KEEP_MIN_FREQUENCY: Final[int] = 5
PATTERN_KEEP_MIN_CONFIDENCE: Final[float] = 0.7

# Initial confidence heuristic
BASE_CONFIDENCE: Final[float] = 0.5
SUCCESS_BONUS: Final[float] = 0.3
SATISFACTION_BONUS: Final[float] = 0.2
QUICK_SEARCH_BONUS: Final[float] = 0.2
VENUE_BONUS: Final[float] = 0.1
SATISFACTION_THRESHOLD: Final[int] = 4
QUICK_SEARCH_MINUTES: Final[float] = 5.0

# Clustering
CLUSTER_MATCH_RADIUS_METERS: Final[float] = 200.0
CLUSTER_MERGE_RADIUS_METERS: Final[float] = 150.0
CLUSTER_PRUNE_MAX_SUCCESS_RATE: Final[float] = 0.3
CLUSTER_PRUNE_MIN_SESSIONS: Final[int] = 2
MIN_RADIUS_METERS: Final[float] = 100.0
MAX_RADIUS_METERS: Final[float] = 800.0

# Behavioral metrics
EMA_ALPHA: Final[float] = 0.1
DEFAULT_WALK_DISTANCE_METERS: Final[float] = 200.0
DEFAULT_ADAPTABILITY_SCORE: Final[float] = 0.5

# Relevance scoring
RELEVANCE_SEARCH_RADIUS_METERS: Final[float] = 2000.0
RELEVANCE_MAX_DAY_DIFF: Final[int] = 1
RELEVANCE_MAX_TIME_DIFF_MINUTES: Final[int] = 120
RELEVANCE_DISTANCE_DECAY_METERS: Final[float] = 1000.0
RELEVANCE_TIME_DECAY_MINUTES: Final[float] = 720.0
RELEVANCE_RECENCY_DECAY_DAYS: Final[float] = 30.0
RELEVANCE_RESULT_LIMIT: Final[int] = 10

# Prediction
PREDICTION_PATTERN_LIMIT: Final[int] = 5
PREDICTION_CLUSTER_LIMIT: Final[int] = 3
PREDICTION_CONFIDENCE_DIVISOR: Final[float] = 10.0
MAX_ALTERNATIVE_SPOTS: Final[int] = 3
MAX_REASONS: Final[int] = 3
MAX_SUGGESTIONS: Final[int] = 3
NO_SPREAD_RADIUS_METERS: Final[float] = 200.0
DEFAULT_PREDICTION_RADIUS_METERS: Final[float] = 500.0
DEFAULT_PREDICTION_CONFIDENCE: Final[float] = 0.3
DEFAULT_WALK_TIME_MINUTES: Final[int] = 5
WALKING_SPEED_METERS_PER_MINUTE: Final[float] = 80.0
CACHE_KEY_PRECISION: Final[int] = 3
DEFAULT_CACHE_TTL_SECONDS: Final[int] = 300
RECENT_PATTERN_DAYS: Final[int] = 7

# Recommendations
DEFAULT_RECOMMENDATION_RADIUS_METERS: Final[float] = 1000.0
MAX_RECOMMENDATIONS: Final[int] = 5
MAX_ASSISTANT_SUGGESTIONS: Final[int] = 3
ASSISTANT_MIN_CONFIDENCE: Final[float] = 0.7
DEFAULT_ASSISTANT_TIMEOUT: Final[float] = 2.5  # seconds
MAX_ASSISTANT_IN_FLIGHT: Final[int] = 2

# Maintenance cadence
PATTERN_PRUNE_INTERVAL_SECONDS: Final[int] = 60 * 60
CLUSTER_OPTIMIZE_INTERVAL_SECONDS: Final[int] = 6 * 60 * 60

# Persistence keys
PATTERNS_STORAGE_KEY: Final[str] = "parking_patterns"
CLUSTERS_STORAGE_KEY: Final[str] = "location_clusters"
METRICS_STORAGE_KEY: Final[str] = "behavioral_metrics"
