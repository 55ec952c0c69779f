"""
Test suite for InsightsReporter.

Tests cover:
- Parking efficiency and its rating
- Most used spots and busy hours
- Personalized suggestions and weekly report
"""

import pytest

from parking_ai.analysis import InsightsReporter, calculate_parking_efficiency, efficiency_rating
from parking_ai.utils.data_models import (
    BehavioralMetrics,
    Coordinates,
    LocationCluster,
    ModelSnapshot,
    ParkingPattern,
)

from conftest import MONDAY_9AM


def _pattern(pattern_id, minute, frequency):
    return ParkingPattern(
        id=pattern_id,
        day_of_week=1,
        time_of_day_minutes=minute,
        location=Coordinates(lat=0, lng=0),
        frequency=frequency,
        last_used_at=MONDAY_9AM,
    )


def _cluster(cluster_id, sessions):
    return LocationCluster(
        id=cluster_id,
        centroid=Coordinates(lat=0, lng=sessions * 0.01),
        session_count=sessions,
        last_visit_at=MONDAY_9AM,
    )


def test_efficiency_without_metrics_is_neutral():
    assert calculate_parking_efficiency(None) == 0.5


def test_efficiency_averages_search_and_success():
    metrics = BehavioralMetrics(avg_search_time_minutes=5, parking_success_rate=0.9)
    assert calculate_parking_efficiency(metrics) == pytest.approx((0.75 + 0.9) / 2)


def test_very_long_searches_floor_at_zero():
    metrics = BehavioralMetrics(avg_search_time_minutes=45, parking_success_rate=0.4)
    assert calculate_parking_efficiency(metrics) == pytest.approx(0.2)


@pytest.mark.parametrize(
    "efficiency, rating",
    [(0.8, "Excellent"), (0.79, "Good"), (0.6, "Good"), (0.4, "Average"), (0.39, "Needs Improvement")],
)
def test_efficiency_rating(efficiency, rating):
    assert efficiency_rating(efficiency) == rating


def test_most_used_spots_are_top_clusters_by_sessions():
    clusters = tuple(_cluster(f"c{n}", n) for n in (3, 9, 1, 7, 5, 2))
    spots = InsightsReporter().most_used_spots(ModelSnapshot(clusters=clusters))

    assert [spot.usage for spot in spots] == [9, 7, 5, 3, 2]


def test_time_patterns_sum_frequency_per_hour():
    patterns = (
        _pattern("a", 9 * 60, 3),
        _pattern("b", 9 * 60 + 40, 2),
        _pattern("c", 18 * 60, 4),
    )
    result = InsightsReporter.time_patterns(ModelSnapshot(patterns=patterns))

    assert [(t.time, t.frequency) for t in result] == [("9:00", 5), ("18:00", 4)]


def test_personalized_suggestions():
    metrics = BehavioralMetrics(avg_search_time_minutes=12, parking_success_rate=0.5)
    patterns = tuple(_pattern(f"p{i}", 600, 1) for i in range(21))

    suggestions = InsightsReporter.personalized_suggestions(
        ModelSnapshot(patterns=patterns, metrics=metrics)
    )
    assert len(suggestions) == 3
    assert InsightsReporter.personalized_suggestions(ModelSnapshot()) == []


def test_build_weekly_report():
    metrics = BehavioralMetrics(avg_search_time_minutes=4, parking_success_rate=1.0)
    snapshot = ModelSnapshot(
        patterns=(_pattern("a", 540, 2),),
        clusters=(_cluster("c", 2), _cluster("d", 4)),
        metrics=metrics,
    )
    insights = InsightsReporter().build(snapshot)

    assert insights.parking_efficiency == pytest.approx(0.9)
    report = insights.weekly_report
    assert report.total_sessions == 1
    assert report.avg_search_time_minutes == 4
    assert report.favorite_spots == 2
    assert report.efficiency == "Excellent"
    assert insights.to_dict()["most_used_spots"][0]["usage"] == 4
