"""
Test suite for ClusterStore.

Tests cover:
- Absorbing points (new cluster, cumulative-mean centroid, success rate, duration)
- Nearest vs. first-match assignment
- Radius bounds
- Optimization: pruning low-quality clusters and merging near ones over repeated passes
"""

from datetime import timedelta

import pytest

from parking_ai.learning import ClusterStore, merge_clusters
from parking_ai.utils.data_models import Coordinates, LocationCluster

from conftest import MONDAY_9AM


def _cluster(cluster_id, lat, lng, sessions=1, success_rate=1.0, radius=100.0, **extra):
    return LocationCluster(
        id=cluster_id,
        centroid=Coordinates(lat=lat, lng=lng),
        radius=radius,
        session_count=sessions,
        last_visit_at=MONDAY_9AM,
        success_rate=success_rate,
        **extra,
    )


# ============================================================================
# Absorb
# ============================================================================


class TestAbsorb:

    def test_first_point_seeds_cluster(self):
        store = ClusterStore()
        update = store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM, was_successful=True)

        assert update.created is True
        cluster = update.cluster
        assert cluster.radius == 100
        assert cluster.session_count == 1
        assert cluster.success_rate == 1.0
        assert cluster.time_patterns == {9: 1}
        assert cluster.day_patterns == {1: 1}

    def test_failed_first_point_starts_at_zero_success(self):
        store = ClusterStore()
        update = store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM, was_successful=False)
        assert update.cluster.success_rate == 0.0

    def test_point_within_radius_moves_centroid_by_cumulative_mean(self):
        store = ClusterStore()
        store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM)
        # ~111 m away
        update = store.absorb(Coordinates(lat=0.001, lng=0), MONDAY_9AM, was_successful=False)

        assert update.created is False
        assert update.cluster.session_count == 2
        assert update.cluster.centroid.lat == pytest.approx(0.0005)
        assert update.cluster.success_rate == pytest.approx(0.5)
        assert len(store) == 1

        store.absorb(Coordinates(lat=0.001, lng=0), MONDAY_9AM)
        assert store.clusters[0].centroid.lat == pytest.approx(0.002 / 3)

    def test_point_beyond_radius_creates_second_cluster(self):
        store = ClusterStore()
        store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM)
        # ~212 m away
        update = store.absorb(Coordinates(lat=0.00135, lng=0.00135), MONDAY_9AM)
        assert update.created is True
        assert len(store) == 2

    def test_histograms_and_duration_are_tracked(self):
        store = ClusterStore()
        store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM, parking_duration_minutes=60)
        update = store.absorb(
            Coordinates(lat=0, lng=0),
            MONDAY_9AM + timedelta(days=1, hours=9),
            parking_duration_minutes=120,
        )
        assert update.cluster.avg_parking_duration_minutes == pytest.approx(90)
        assert update.cluster.time_patterns == {9: 1, 18: 1}
        assert update.cluster.day_patterns == {1: 1, 2: 1}

    def test_sessions_without_duration_do_not_dilute_average(self):
        store = ClusterStore()
        store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM)
        store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM, parking_duration_minutes=45)
        update = store.absorb(Coordinates(lat=0, lng=0), MONDAY_9AM, parking_duration_minutes=75)

        assert update.cluster.avg_parking_duration_minutes == pytest.approx(60)
        assert update.cluster.duration_samples == 2
        assert update.cluster.session_count == 3

    def test_merge_weights_duration_by_reported_samples(self):
        merged = merge_clusters(
            _cluster("a", 0, 0, sessions=4, avg_parking_duration_minutes=30, duration_samples=1),
            _cluster("b", 0, 0.0001, sessions=1, avg_parking_duration_minutes=90, duration_samples=1),
        )
        assert merged.avg_parking_duration_minutes == pytest.approx(60)
        assert merged.duration_samples == 2

    def test_legacy_cluster_without_sample_count_keeps_its_average(self):
        cluster = LocationCluster.model_validate({
            "id": "old",
            "centroid": {"lat": 0, "lng": 0},
            "session_count": 3,
            "last_visit_at": MONDAY_9AM.isoformat(),
            "avg_parking_duration_minutes": 40,
        })
        assert cluster.duration_samples == 3

    def test_nearest_assignment_picks_closest_cluster(self):
        far = _cluster("far", 0.0, 0.0)
        near = _cluster("near", 0.0015, 0.0)
        store = ClusterStore([far, near])

        # ~150 m from "far", ~17 m from "near"
        update = store.absorb(Coordinates(lat=0.00135, lng=0), MONDAY_9AM)
        assert update.cluster.id == "near"

    def test_first_assignment_keeps_insertion_order(self):
        far = _cluster("far", 0.0, 0.0)
        near = _cluster("near", 0.0015, 0.0)
        store = ClusterStore([far, near], assignment="first")

        update = store.absorb(Coordinates(lat=0.00135, lng=0), MONDAY_9AM)
        assert update.cluster.id == "far"

    def test_unknown_assignment_policy_is_rejected(self):
        with pytest.raises(ValueError):
            ClusterStore(assignment="random")


# ============================================================================
# Radius bounds
# ============================================================================


@pytest.mark.parametrize("requested, expected", [(5000, 800), (10, 100), (350, 350)])
def test_cluster_radius_is_clamped(requested, expected):
    assert _cluster("c", 0, 0, radius=requested).radius == expected


# ============================================================================
# Optimize
# ============================================================================


class TestOptimize:

    def test_low_quality_single_visit_clusters_are_pruned(self):
        store = ClusterStore([
            _cluster("failed_once", 0, 0, sessions=1, success_rate=0.0),
            _cluster("good", 1, 1, sessions=4, success_rate=0.9),
        ])
        result = store.optimize()

        assert result.pruned == 1
        assert [c.id for c in store.clusters] == ["good"]

    def test_low_success_with_history_is_kept(self):
        store = ClusterStore([_cluster("struggle", 0, 0, sessions=3, success_rate=0.2)])
        result = store.optimize()
        assert result.pruned == 0
        assert result.changed is False

    def test_close_clusters_merge_conserving_sessions(self):
        # ~141 m apart, inside the 150 m merge radius
        store = ClusterStore([
            _cluster("a", 0.0, 0.0, sessions=3, success_rate=1.0, time_patterns={9: 3}),
            _cluster("b", 0.0009, 0.0009, sessions=2, success_rate=0.5, time_patterns={9: 1, 18: 1}),
        ])
        result = store.optimize()

        assert result.merged == 1
        assert result.final_count == 1
        merged = store.clusters[0]
        assert merged.id == "a"
        assert merged.session_count == 5
        assert merged.centroid.lat == pytest.approx(0.0009 * 2 / 5)
        assert merged.success_rate == pytest.approx((3 * 1.0 + 2 * 0.5) / 5)
        assert merged.time_patterns == {9: 4, 18: 1}

    def test_distant_clusters_are_not_merged(self):
        store = ClusterStore([
            _cluster("a", 0.0, 0.0, sessions=2),
            _cluster("b", 0.00135, 0.00135, sessions=2),
        ])
        result = store.optimize()
        assert result.merged == 0
        assert len(store) == 2

    def test_merged_radius_stays_within_bounds(self):
        merged = merge_clusters(
            _cluster("a", 0, 0, sessions=1, radius=800),
            _cluster("b", 0, 0.0001, sessions=1, radius=300),
        )
        assert merged.radius == 800

    def test_optimize_is_idempotent(self):
        store = ClusterStore([
            _cluster("a", 0.0, 0.0, sessions=3),
            _cluster("b", 0.0009, 0.0009, sessions=2),
        ])
        store.optimize()
        second = store.optimize()
        assert second.changed is False
        assert second.final_count == 1

    def test_chained_clusters_finish_merging_on_a_later_pass(self):
        # On the equator: a-b ~139 m, b-c ~128 m, a-c ~267 m
        store = ClusterStore([
            _cluster("a", 0.0, 0.0, sessions=1),
            _cluster("c", 0.0, 0.0024, sessions=1),
            _cluster("b", 0.0, 0.00125, sessions=9),
        ])

        first = store.optimize()
        assert first.merged == 1
        assert len(store) == 2
        assert sum(c.session_count for c in store.clusters) == 11

        second = store.optimize()
        assert second.merged == 1
        (cluster,) = store.clusters
        assert cluster.session_count == 11

        assert store.optimize().changed is False
