"""
Parking insights

Summary statistics over the learned state: efficiency, favourite areas,
busiest hours and a short weekly report.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from parking_ai.utils.data_models import BehavioralMetrics, Coordinates, ModelSnapshot

EFFICIENCY_SEARCH_CEILING_MINUTES = 20.0
NEUTRAL_EFFICIENCY = 0.5
MOST_USED_SPOTS_LIMIT = 5


@dataclass
class SpotUsage:
    """A cluster ranked by how often the user parked there"""
    location: Coordinates
    usage: int


@dataclass
class TimePattern:
    time: str  # "H:00"
    frequency: int


@dataclass
class WeeklyReport:
    total_sessions: int
    avg_search_time_minutes: float
    favorite_spots: int
    efficiency: str  # Excellent / Good / Average / Needs Improvement


@dataclass
class ParkingInsights:
    parking_efficiency: float
    most_used_spots: List[SpotUsage] = field(default_factory=list)
    time_patterns: List[TimePattern] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    weekly_report: Optional[WeeklyReport] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["most_used_spots"] = [
            {"location": spot.location.model_dump(), "usage": spot.usage}
            for spot in self.most_used_spots
        ]
        return data


def calculate_parking_efficiency(metrics: Optional[BehavioralMetrics]) -> float:
    """
    Combine search speed and success rate into a 0-1 score

    A 20 minute average search scores 0 on speed; no metrics at all is
    treated as neutral (0.5).
    """
    if metrics is None:
        return NEUTRAL_EFFICIENCY

    search_score = max(0.0, 1 - metrics.avg_search_time_minutes / EFFICIENCY_SEARCH_CEILING_MINUTES)
    return (search_score + metrics.parking_success_rate) / 2


def efficiency_rating(efficiency: float) -> str:
    if efficiency >= 0.8:
        return "Excellent"
    if efficiency >= 0.6:
        return "Good"
    if efficiency >= 0.4:
        return "Average"
    return "Needs Improvement"


class InsightsReporter:
    """Build :class:`ParkingInsights` from a model snapshot"""

    def __init__(self, spot_limit: int = MOST_USED_SPOTS_LIMIT):
        self.spot_limit = spot_limit

    def most_used_spots(self, snapshot: ModelSnapshot) -> List[SpotUsage]:
        ranked = sorted(snapshot.clusters, key=lambda c: c.session_count, reverse=True)
        return [
            SpotUsage(location=cluster.centroid, usage=cluster.session_count)
            for cluster in ranked[: self.spot_limit]
        ]

    @staticmethod
    def time_patterns(snapshot: ModelSnapshot) -> List[TimePattern]:
        by_hour: Dict[int, int] = {}
        for pattern in snapshot.patterns:
            hour = pattern.time_of_day_minutes // 60
            by_hour[hour] = by_hour.get(hour, 0) + pattern.frequency

        ranked = sorted(by_hour.items(), key=lambda item: (-item[1], item[0]))
        return [TimePattern(time=f"{hour}:00", frequency=freq) for hour, freq in ranked]

    @staticmethod
    def personalized_suggestions(snapshot: ModelSnapshot) -> List[str]:
        metrics = snapshot.metrics
        if metrics is None:
            return []

        suggestions = []
        if metrics.avg_search_time_minutes > 10:
            suggestions.append("Consider using parking apps to pre-book spots")
        if metrics.parking_success_rate < 0.7:
            suggestions.append("Try exploring alternative parking areas")
        if len(snapshot.patterns) > 20:
            suggestions.append("You have strong parking patterns - trust the predictions")
        return suggestions

    def build(self, snapshot: ModelSnapshot) -> ParkingInsights:
        efficiency = calculate_parking_efficiency(snapshot.metrics)
        metrics = snapshot.metrics

        return ParkingInsights(
            parking_efficiency=efficiency,
            most_used_spots=self.most_used_spots(snapshot),
            time_patterns=self.time_patterns(snapshot),
            suggestions=self.personalized_suggestions(snapshot),
            weekly_report=WeeklyReport(
                total_sessions=len(snapshot.patterns),
                avg_search_time_minutes=metrics.avg_search_time_minutes if metrics else 0.0,
                favorite_spots=len(snapshot.clusters),
                efficiency=efficiency_rating(efficiency),
            ),
        )
