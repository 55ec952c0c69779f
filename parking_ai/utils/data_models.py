"""Pydantic models shared across the learning, prediction and storage layers.

Persisted models ignore unknown fields and default missing optional ones so
snapshots written by older or newer versions still load.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from parking_ai.config.constants import MAX_RADIUS_METERS, MIN_RADIUS_METERS
from parking_ai.utils.temporal import to_local_naive


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


class InvalidSessionError(ValueError):
    """Raised when a parking session is missing required fields or holds invalid values."""

    def __init__(self, message: str, errors: Optional[List[Dict]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> "InvalidSessionError":
        fields = sorted({".".join(str(p) for p in e["loc"]) for e in error.errors()})
        return cls(
            f"Invalid parking session: {', '.join(fields)}",
            errors=error.errors(),
        )


class Coordinates(BaseModel):
    """WGS84 point with optional horizontal accuracy in meters"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    lat: float = Field(ge=-90, le=90, description="Latitude")
    lng: float = Field(ge=-180, le=180, description="Longitude")
    accuracy: Optional[float] = Field(default=None, ge=0, description="Accuracy in meters")

    @model_validator(mode="before")
    @classmethod
    def _accept_provider_keys(cls, data: Any) -> Any:
        # Location providers and the assistant report latitude/longitude
        if isinstance(data, dict) and "lat" not in data and "latitude" in data:
            data = {**data, "lat": data["latitude"], "lng": data.get("longitude")}
        return data

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


class LocationFix(Coordinates):
    """Reading supplied by the device location provider"""
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("timestamp")
    @classmethod
    def _local_timestamp(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class ParkingSession(BaseModel):
    """A completed parking session reported by the app (snake_case or camelCase keys)"""
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    start_location: Coordinates
    parking_location: Coordinates
    search_duration_minutes: float = Field(ge=0)
    was_successful: bool
    walk_distance_meters: Optional[float] = Field(default=None, ge=0)
    venue: Optional[str] = None
    user_satisfaction: Optional[int] = Field(default=None, ge=1, le=5)
    context_tags: List[str] = Field(default_factory=list)
    parking_duration_minutes: Optional[float] = Field(default=None, ge=0)
    occurred_at: Optional[datetime] = Field(
        default=None, description="When the car was parked; defaults to the engine clock"
    )

    @field_validator("venue")
    @classmethod
    def _blank_venue_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("context_tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        return sorted({tag.strip() for tag in value if tag and tag.strip()})

    @field_validator("occurred_at")
    @classmethod
    def _local_occurred_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Clients send ISO strings with a UTC offset; the engine clock is naive local
        return None if value is None else to_local_naive(value)


class ParkingPattern(BaseModel):
    """A recurring 'parked here at this time' observation"""
    model_config = ConfigDict(extra="ignore")

    id: str
    day_of_week: int = Field(ge=0, le=6, description="0=Sunday ... 6=Saturday")
    time_of_day_minutes: int = Field(ge=0, le=1439)
    location: Coordinates
    venue: Optional[str] = None
    frequency: int = Field(default=1, ge=1)
    confidence: float = Field(default=0.5)
    last_used_at: datetime
    context_tags: List[str] = Field(default_factory=list)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return clamp(value, 0.0, 1.0)

    @field_validator("context_tags")
    @classmethod
    def _sorted_unique_tags(cls, value: List[str]) -> List[str]:
        return sorted(set(value))

    @field_validator("last_used_at")
    @classmethod
    def _local_last_used_at(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class LocationCluster(BaseModel):
    """Incrementally built spatial aggregate approximating a parking area"""
    model_config = ConfigDict(extra="ignore")

    id: str
    centroid: Coordinates
    radius: float = Field(default=MIN_RADIUS_METERS, description="Radius in meters")
    session_count: int = Field(default=1, ge=1)
    last_visit_at: datetime
    avg_parking_duration_minutes: float = Field(default=0.0, ge=0)
    duration_samples: int = Field(
        default=0, ge=0, description="Sessions that reported a parking duration"
    )
    success_rate: float = Field(default=1.0)
    time_patterns: Dict[int, int] = Field(default_factory=dict, description="hour -> count")
    day_patterns: Dict[int, int] = Field(default_factory=dict, description="day -> count")

    @model_validator(mode="before")
    @classmethod
    def _infer_duration_samples(cls, data: Any) -> Any:
        # Snapshots written before duration_samples existed
        if (
            isinstance(data, dict)
            and "duration_samples" not in data
            and data.get("avg_parking_duration_minutes")
        ):
            data = {**data, "duration_samples": data.get("session_count", 1)}
        return data

    @field_validator("last_visit_at")
    @classmethod
    def _local_last_visit_at(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @field_validator("radius")
    @classmethod
    def _clamp_radius(cls, value: float) -> float:
        return clamp(value, MIN_RADIUS_METERS, MAX_RADIUS_METERS)

    @field_validator("success_rate")
    @classmethod
    def _clamp_success_rate(cls, value: float) -> float:
        return clamp(value, 0.0, 1.0)


class BehavioralMetrics(BaseModel):
    """Running description of the user's general parking behavior"""
    model_config = ConfigDict(extra="ignore")

    avg_search_time_minutes: float = 0.0
    preferred_walk_distance_meters: float = 0.0
    time_preferences: Dict[str, int] = Field(
        default_factory=lambda: {"early": 0, "peak": 0, "offpeak": 0, "late": 0}
    )
    venue_types: Dict[str, int] = Field(default_factory=dict)
    parking_success_rate: float = Field(default=0.0, ge=0, le=1)
    adaptability_score: float = Field(default=0.5, ge=0, le=1)
    session_count: int = Field(default=0, ge=0)


class PredictedLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    radius: float = Field(description="Prediction radius in meters")


class AlternativeSpot(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: Coordinates
    confidence: float
    distance_meters: float


class Prediction(BaseModel):
    """Best-guess parking location plus alternatives. Never persisted."""
    model_config = ConfigDict(frozen=True)

    location: PredictedLocation
    confidence: float = Field(ge=0, le=1)
    # Immutable: cache hits hand the same instance to every caller
    reasons: Tuple[str, ...] = ()
    alternative_spots: Tuple[AlternativeSpot, ...] = ()
    estimated_walk_time_minutes: int = Field(ge=0)
    suggestions: Tuple[str, ...] = ()
    is_default: bool = False


class Recommendation(BaseModel):
    """Ranked candidate parking area for a 'where should I park near X' query"""
    location: Coordinates
    score: float
    reasons: List[str] = Field(default_factory=list)
    walk_time_minutes: int = Field(ge=0)
    confidence: float = Field(ge=0, le=1)
    source: Literal["local", "assistant"] = "local"


@dataclass(frozen=True)
class ModelSnapshot:
    """Consistent read-only view of the learned state handed to readers."""

    patterns: Tuple[ParkingPattern, ...] = ()
    clusters: Tuple[LocationCluster, ...] = ()
    metrics: Optional[BehavioralMetrics] = None
    taken_at: datetime = field(default_factory=datetime.now)
