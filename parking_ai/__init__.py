"""
Parking pattern engine

Learns a driver's recurring parking places from completed sessions and
predicts where they are likely to park next.
"""

from .engine import ParkingEngine
from .utils.data_models import (
    Coordinates,
    InvalidSessionError,
    LocationFix,
    ParkingSession,
    Prediction,
    Recommendation,
)

__version__ = "0.1.0"

__all__ = [
    "ParkingEngine",
    "Coordinates",
    "InvalidSessionError",
    "LocationFix",
    "ParkingSession",
    "Prediction",
    "Recommendation",
    "__version__",
]
