#!/usr/bin/env python3
"""
Example 1: Commute simulation

Feeds a month of weekday commutes into the engine and asks it where the
driver will park next.

This example shows how to:
1. Create an engine with file-backed storage
2. Learn from completed parking sessions
3. Get a prediction, recommendations and insights
"""

import random
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

from parking_ai import Coordinates, ParkingEngine
from parking_ai.config import Settings

OFFICE = (37.7897, -122.3972)  # SoMa office garage
GYM = (37.7786, -122.4059)


def simulated_sessions(start: datetime, days: int = 28):
    """Weekday office commutes plus Thursday evening gym visits, with GPS jitter."""
    rng = random.Random(7)
    for offset in range(days):
        day = start + timedelta(days=offset)
        if day.weekday() >= 5:
            continue

        yield {
            "start_location": {"lat": 37.7599, "lng": -122.4148},
            "parking_location": {
                "lat": OFFICE[0] + rng.uniform(-0.0003, 0.0003),
                "lng": OFFICE[1] + rng.uniform(-0.0003, 0.0003),
            },
            "search_duration_minutes": rng.uniform(1, 8),
            "walk_distance_meters": rng.uniform(50, 250),
            "was_successful": rng.random() > 0.1,
            "venue": "Office",
            "context_tags": ["work"],
            "occurred_at": day.replace(hour=8, minute=rng.randint(40, 59)),
        }

        if day.weekday() == 3:
            yield {
                "start_location": {"lat": OFFICE[0], "lng": OFFICE[1]},
                "parking_location": {"lat": GYM[0], "lng": GYM[1]},
                "search_duration_minutes": rng.uniform(5, 15),
                "was_successful": True,
                "venue": "Gym",
                "context_tags": ["fitness"],
                "occurred_at": day.replace(hour=18, minute=30),
            }


def main():
    """Run commute simulation example"""
    print("=" * 70)
    print("Parking Pattern Engine - Commute Simulation")
    print("=" * 70)

    start = datetime(2024, 1, 1)
    now = start + timedelta(days=28, hours=8, minutes=45)  # the following Monday

    with tempfile.TemporaryDirectory() as data_dir:
        config = Settings(data_dir=Path(data_dir), assistant_api_url=None)

        print("\n1. Initializing engine...")
        engine = ParkingEngine.from_settings(config, clock=lambda: now)

        print("\n2. Learning sessions...")
        count = 0
        for session in simulated_sessions(start):
            engine.learn(session)
            count += 1
        engine.flush(timeout=5)

        snapshot = engine.snapshot()
        print(f"   Sessions:  {count}")
        print(f"   Patterns:  {len(snapshot.patterns)}")
        print(f"   Clusters:  {len(snapshot.clusters)}")

        print("\n3. Prediction for Monday morning:")
        here = Coordinates(lat=37.7599, lng=-122.4148)
        prediction = engine.predict(here, destination=Coordinates(lat=OFFICE[0], lng=OFFICE[1]), context_tags=["work"])
        print(f"   Location:   {prediction.location.lat:.5f}, {prediction.location.lng:.5f}")
        print(f"   Radius:     {prediction.location.radius:.0f} m")
        print(f"   Confidence: {prediction.confidence:.2f}")
        for reason in prediction.reasons:
            print(f"   • {reason}")
        for suggestion in prediction.suggestions:
            print(f"   → {suggestion}")

        print("\n4. Recommendations near the office:")
        for rec in engine.recommend(Coordinates(lat=OFFICE[0], lng=OFFICE[1])):
            print(
                f"   [{rec.source}] {rec.location.lat:.5f}, {rec.location.lng:.5f} "
                f"score={rec.score:.2f} walk={rec.walk_time_minutes} min"
            )

        print("\n5. Insights:")
        insights = engine.get_insights()
        print(f"   Efficiency: {insights.parking_efficiency:.2f} ({insights.weekly_report.efficiency})")
        for pattern in insights.time_patterns[:3]:
            print(f"   {pattern.time:>6s}  {pattern.frequency} sessions")

        engine.close()

    print(f"\n{'=' * 70}")
    print("Simulation complete!")
    print(f"{'=' * 70}\n")


if __name__ == "__main__":
    main()
