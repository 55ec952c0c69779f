"""Geodesic helpers used by the stores and the prediction layer."""

import math
from itertools import combinations
from typing import Sequence, Tuple, Union

import numpy as np
from geopy.distance import geodesic

from parking_ai.config.constants import WALKING_SPEED_METERS_PER_MINUTE
from parking_ai.utils.data_models import Coordinates

PointLike = Union[Coordinates, Tuple[float, float]]


def _as_tuple(point: PointLike) -> Tuple[float, float]:
    if isinstance(point, Coordinates):
        return point.as_tuple()
    return (float(point[0]), float(point[1]))


def distance_meters(point_a: PointLike, point_b: PointLike) -> float:
    """Compute distance between two points in meters."""
    return geodesic(_as_tuple(point_a), _as_tuple(point_b)).meters


def walk_time_minutes(point_a: PointLike, point_b: PointLike) -> int:
    """Whole minutes needed to walk between two points at 80 m/min."""
    return math.ceil(distance_meters(point_a, point_b) / WALKING_SPEED_METERS_PER_MINUTE)


def weighted_centroid(
    points: Sequence[PointLike], weights: Sequence[float]
) -> Tuple[float, float]:
    """Weighted mean of (lat, lng) pairs.

    Raises:
        ValueError: If there are no points or the weights sum to zero.
    """
    if not points:
        raise ValueError("Cannot compute centroid of an empty point set")

    coords = np.array([_as_tuple(p) for p in points], dtype=float)
    weight_arr = np.asarray(weights, dtype=float)
    if weight_arr.sum() <= 0:
        raise ValueError("Centroid weights must sum to a positive value")

    lat, lng = np.average(coords, axis=0, weights=weight_arr)
    return float(lat), float(lng)


def pairwise_distances(points: Sequence[PointLike]) -> np.ndarray:
    """Distances for every unordered pair of points, in meters."""
    return np.array(
        [distance_meters(a, b) for a, b in combinations(points, 2)], dtype=float
    )
