from .data_models import (
    AlternativeSpot,
    BehavioralMetrics,
    Coordinates,
    InvalidSessionError,
    LocationCluster,
    LocationFix,
    ModelSnapshot,
    ParkingPattern,
    ParkingSession,
    PredictedLocation,
    Prediction,
    Recommendation,
)
from .logging import StructuredLogger, get_logger
from .analytics import AnalyticsSink, LoggingAnalyticsSink, emit_event

__all__ = [
    "AlternativeSpot",
    "BehavioralMetrics",
    "Coordinates",
    "InvalidSessionError",
    "LocationCluster",
    "LocationFix",
    "ModelSnapshot",
    "ParkingPattern",
    "ParkingSession",
    "PredictedLocation",
    "Prediction",
    "Recommendation",
    "StructuredLogger",
    "get_logger",
    "AnalyticsSink",
    "LoggingAnalyticsSink",
    "emit_event",
]
