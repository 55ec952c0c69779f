"""
Test suite for BehavioralMetricsTracker.

Tests cover:
- First-session initialisation
- EMA updates for search time, walk distance, success rate
- Time-preference buckets and venue counts
- Adaptability score
"""

from datetime import timedelta

import pytest

from parking_ai.learning import BehavioralMetricsTracker
from parking_ai.learning.metrics_tracker import ema
from parking_ai.utils.temporal import rush_period, time_bucket

from conftest import MONDAY_9AM


def test_ema_moves_ten_percent_toward_sample():
    assert ema(10.0, 20.0) == pytest.approx(11.0)


@pytest.mark.parametrize(
    "hour, bucket",
    [(5, "early"), (7, "peak"), (9, "peak"), (12, "offpeak"), (18, "peak"), (20, "late"), (23, "late")],
)
def test_time_buckets(hour, bucket):
    assert time_bucket(hour) == bucket


@pytest.mark.parametrize(
    "hour, period",
    [(6, None), (7, "morning"), (9, "morning"), (10, None), (17, "evening"), (19, "evening"), (20, None)],
)
def test_rush_periods(hour, period):
    assert rush_period(hour) == period


class TestFirstSession:

    def test_first_session_initialises_directly(self, make_session):
        tracker = BehavioralMetricsTracker()
        metrics = tracker.update(
            make_session(search_duration_minutes=8, walk_distance_meters=150, venue="Mall"),
            MONDAY_9AM,
        )

        assert metrics.avg_search_time_minutes == 8
        assert metrics.preferred_walk_distance_meters == 150
        assert metrics.parking_success_rate == 1.0
        assert metrics.adaptability_score == 0.5
        assert metrics.time_preferences["peak"] == 1
        assert metrics.venue_types == {"mall": 1}
        assert metrics.session_count == 1

    def test_missing_walk_distance_defaults_to_200(self, make_session):
        tracker = BehavioralMetricsTracker()
        metrics = tracker.update(make_session(), MONDAY_9AM)
        assert metrics.preferred_walk_distance_meters == 200


class TestSubsequentSessions:

    def test_averages_follow_ema(self, make_session):
        tracker = BehavioralMetricsTracker()
        tracker.update(make_session(search_duration_minutes=10, walk_distance_meters=100), MONDAY_9AM)
        metrics = tracker.update(
            make_session(search_duration_minutes=20, walk_distance_meters=300, was_successful=False),
            MONDAY_9AM + timedelta(hours=4),
        )

        assert metrics.avg_search_time_minutes == pytest.approx(11.0)
        assert metrics.preferred_walk_distance_meters == pytest.approx(120.0)
        assert metrics.parking_success_rate == pytest.approx(0.9)
        assert metrics.time_preferences["offpeak"] == 1
        assert metrics.session_count == 2

    def test_missing_walk_distance_keeps_previous_value(self, make_session):
        tracker = BehavioralMetricsTracker()
        tracker.update(make_session(walk_distance_meters=100), MONDAY_9AM)
        metrics = tracker.update(make_session(), MONDAY_9AM)
        assert metrics.preferred_walk_distance_meters == 100

    def test_venue_counts_are_case_insensitive(self, make_session):
        tracker = BehavioralMetricsTracker()
        tracker.update(make_session(venue="Whole Foods"), MONDAY_9AM)
        metrics = tracker.update(make_session(venue="WHOLE FOODS"), MONDAY_9AM)
        assert metrics.venue_types == {"whole foods": 2}

    def test_adaptability_tracks_novel_spots(self, make_session):
        tracker = BehavioralMetricsTracker()
        tracker.update(make_session(), MONDAY_9AM, novel_spot=True)

        novel = tracker.update(make_session(), MONDAY_9AM, novel_spot=True)
        assert novel.adaptability_score == pytest.approx(0.55)

        routine = tracker.update(make_session(), MONDAY_9AM, novel_spot=False)
        assert routine.adaptability_score == pytest.approx(0.495)
