"""
Test suite for PredictionGenerator.

Tests cover:
- Default prediction when nothing is learned
- Weighted centroid, confidence and radius
- Reasons and suggestions heuristics
- Cache read-through and failure fallback
- Analytics events
"""

import math
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from parking_ai.prediction import PredictionCache, PredictionGenerator, RelevanceScorer, prediction_radius
from parking_ai.utils.analytics import PREDICTION_CACHE_HIT, PREDICTION_GENERATED
from parking_ai.utils.data_models import (
    BehavioralMetrics,
    Coordinates,
    LocationCluster,
    ModelSnapshot,
    ParkingPattern,
)
from parking_ai.utils.geo import distance_meters

from conftest import MONDAY_9AM

HERE = Coordinates(lat=37.7749, lng=-122.4194)


def _pattern(pattern_id="p", lat=37.7749, lng=-122.4194, frequency=5, confidence=1.0, venue=None):
    return ParkingPattern(
        id=pattern_id,
        day_of_week=1,
        time_of_day_minutes=540,
        location=Coordinates(lat=lat, lng=lng),
        venue=venue,
        frequency=frequency,
        confidence=confidence,
        last_used_at=MONDAY_9AM,
    )


def _cluster(cluster_id="c", lat=37.7749, lng=-122.4194, sessions=5, success_rate=1.0, radius=100):
    return LocationCluster(
        id=cluster_id,
        centroid=Coordinates(lat=lat, lng=lng),
        radius=radius,
        session_count=sessions,
        success_rate=success_rate,
        last_visit_at=MONDAY_9AM,
    )


@pytest.fixture
def analytics():
    return MagicMock()


@pytest.fixture
def generator(clock, analytics):
    return PredictionGenerator(
        RelevanceScorer(),
        PredictionCache(clock=clock),
        clock=clock,
        analytics=analytics,
    )


# ============================================================================
# Default prediction
# ============================================================================


def test_empty_model_returns_default(generator):
    prediction = generator.predict(ModelSnapshot(), HERE)

    assert prediction.is_default is True
    assert prediction.confidence == 0.3
    assert prediction.location.radius == 500
    assert prediction.location.lat == HERE.lat
    assert prediction.estimated_walk_time_minutes == 5
    assert prediction.suggestions


def test_internal_failure_returns_uncached_default(clock):
    scorer = MagicMock(spec=RelevanceScorer)
    scorer.find_relevant_patterns.side_effect = RuntimeError("boom")
    cache = PredictionCache(clock=clock)
    generator = PredictionGenerator(scorer, cache, clock=clock)

    prediction = generator.predict(ModelSnapshot(patterns=(_pattern(),)), HERE)

    assert prediction.is_default is True
    assert len(cache) == 0


# ============================================================================
# Learned prediction
# ============================================================================


class TestLearnedPrediction:

    def test_single_strong_pattern(self, generator):
        snapshot = ModelSnapshot(patterns=(_pattern(),), clusters=(_cluster(),))
        prediction = generator.predict(snapshot, HERE)

        assert prediction.is_default is False
        assert prediction.confidence == pytest.approx((5 + math.log(6)) / 10)
        assert prediction.location.radius == 100
        spot = (prediction.location.lat, prediction.location.lng)
        assert distance_meters(spot, HERE) <= prediction.location.radius
        assert prediction.estimated_walk_time_minutes <= 1

    def test_centroid_is_weighted_by_confidence_and_frequency(self, generator):
        heavy = _pattern("heavy", lat=37.7749, frequency=3)
        light = _pattern("light", lat=37.7759, frequency=1)
        prediction = generator.predict(ModelSnapshot(patterns=(heavy, light)), HERE)

        assert prediction.location.lat == pytest.approx(37.7749 * 0.75 + 37.7759 * 0.25)

    def test_confidence_is_capped(self, generator):
        patterns = tuple(_pattern(f"p{i}", frequency=10) for i in range(3))
        assert generator.predict(ModelSnapshot(patterns=patterns), HERE).confidence == 1.0

    def test_alternatives_are_clusters_by_success_rate(self, generator):
        clusters = (
            _cluster("ok", lat=37.7752, success_rate=0.6),
            _cluster("best", lat=37.7755, success_rate=0.95),
            _cluster("good", lat=37.7758, success_rate=0.8),
        )
        prediction = generator.predict(ModelSnapshot(clusters=clusters), HERE)

        confidences = [spot.confidence for spot in prediction.alternative_spots]
        assert confidences == [0.95, 0.8, 0.6]
        assert prediction.alternative_spots[0].distance_meters == pytest.approx(
            distance_meters(clusters[1].centroid, HERE)
        )


# ============================================================================
# Radius
# ============================================================================


def test_radius_falls_back_when_only_one_pattern():
    assert prediction_radius([_pattern()], []) == 200


def test_radius_is_clamped_to_bounds():
    spread = [_pattern("a", lat=37.70), _pattern("b", lat=37.80)]
    assert prediction_radius(spread, []) == 800

    tight = [_pattern("a"), _pattern("b", lat=37.77491)]
    assert prediction_radius(tight, []) == 100


# ============================================================================
# Reasons and suggestions
# ============================================================================


def test_reasons_are_deduplicated_and_limited():
    patterns = [
        _pattern("a", venue="Gym"),
        _pattern("b", venue="Gym", frequency=7),
        _pattern("c", venue="Office"),
    ]
    reasons = PredictionGenerator.generate_reasons(patterns, [_cluster(sessions=8)])

    assert reasons == [
        "You've parked here 5 times before",
        "Near Gym",
        "You've parked here 7 times before",
    ]


def test_rush_hour_and_context_suggestions():
    suggestions = PredictionGenerator.generate_suggestions(
        [_pattern(confidence=0.9)], ["work"], None, MONDAY_9AM
    )
    assert suggestions == [
        "Consider arriving 10 minutes early during morning rush",
        "You have a strong parking pattern in this area",
        "Check for employee parking discounts",
    ]


def test_evening_and_slow_search_suggestions():
    evening = MONDAY_9AM.replace(hour=18)
    metrics = BehavioralMetrics(avg_search_time_minutes=14)
    stale = _pattern(confidence=0.9).model_copy(update={"last_used_at": evening - timedelta(days=20)})

    suggestions = PredictionGenerator.generate_suggestions([stale], ["shopping"], metrics, evening)
    assert suggestions[0].startswith("Evening peak")
    assert "Look for validation opportunities at stores" in suggestions
    assert "You have a strong parking pattern in this area" not in suggestions
    assert len(suggestions) == 3


# ============================================================================
# Caching and analytics
# ============================================================================


def test_second_identical_query_hits_cache(generator, analytics):
    snapshot = ModelSnapshot(patterns=(_pattern(),))
    first = generator.predict(snapshot, HERE, context_tags=["work"])
    second = generator.predict(snapshot, HERE, context_tags=["work"])

    assert second is first
    event_names = [call.args[0] for call in analytics.event.call_args_list]
    assert event_names == [PREDICTION_GENERATED, PREDICTION_CACHE_HIT]


def test_failing_analytics_sink_does_not_break_prediction(clock):
    sink = MagicMock()
    sink.event.side_effect = RuntimeError("sink down")
    generator = PredictionGenerator(RelevanceScorer(), PredictionCache(clock=clock), clock=clock, analytics=sink)

    prediction = generator.predict(ModelSnapshot(patterns=(_pattern(),)), HERE)
    assert prediction.is_default is False
