"""Application settings management for the parking pattern engine."""

from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

from .constants import (
    CLUSTER_OPTIMIZE_INTERVAL_SECONDS,
    DEFAULT_ASSISTANT_TIMEOUT,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_RECOMMENDATION_RADIUS_METERS,
    MAX_RECOMMENDATIONS,
    PATTERN_PRUNE_INTERVAL_SECONDS,
    PATTERN_RETENTION_DAYS,
    RELEVANCE_SEARCH_RADIUS_METERS,
    ASSISTANT_MIN_CONFIDENCE,
)

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Project Paths
    project_root: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent
    )
    data_dir: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent / "data"
    )

    # Prediction
    cache_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=0)
    prediction_search_radius_m: float = Field(
        default=RELEVANCE_SEARCH_RADIUS_METERS, gt=0
    )

    # Recommendations
    recommendation_radius_m: float = Field(
        default=DEFAULT_RECOMMENDATION_RADIUS_METERS, gt=0
    )
    max_recommendations: int = Field(default=MAX_RECOMMENDATIONS, ge=1)

    # Clustering
    cluster_assignment: Literal["nearest", "first"] = Field(
        default="nearest",
        description="How a new point picks among clusters within the match radius",
    )

    # Maintenance
    pattern_retention_days: int = Field(default=PATTERN_RETENTION_DAYS, ge=1)
    pattern_prune_interval_seconds: float = Field(
        default=PATTERN_PRUNE_INTERVAL_SECONDS, gt=0
    )
    cluster_optimize_interval_seconds: float = Field(
        default=CLUSTER_OPTIMIZE_INTERVAL_SECONDS, gt=0
    )

    # External assistant (optional, untrusted)
    assistant_api_url: Optional[str] = Field(default=None)
    assistant_api_key: Optional[str] = Field(default=None)
    assistant_model: str = Field(default="gemini-1.5-flash")
    assistant_timeout_seconds: float = Field(default=DEFAULT_ASSISTANT_TIMEOUT, gt=0)
    assistant_min_confidence: float = Field(
        default=ASSISTANT_MIN_CONFIDENCE, ge=0, le=1
    )

    # Logging
    log_level: str = Field(default="INFO")

    class Config:
        env_prefix = "PARKING_AI_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra environment variables

    @property
    def storage_dir(self) -> Path:
        """Directory holding the persisted pattern/cluster/metrics snapshot."""
        return self.data_dir / "parking_memory"

    @property
    def assistant_enabled(self) -> bool:
        return bool(self.assistant_api_url)


# Global settings instance
settings = Settings()
