"""
Reporting over learned parking behaviour

- InsightsReporter: efficiency, favourite areas, busy hours, weekly report
"""

from .insights import (
    InsightsReporter,
    ParkingInsights,
    SpotUsage,
    TimePattern,
    WeeklyReport,
    calculate_parking_efficiency,
    efficiency_rating,
)

__all__ = [
    "InsightsReporter",
    "ParkingInsights",
    "SpotUsage",
    "TimePattern",
    "WeeklyReport",
    "calculate_parking_efficiency",
    "efficiency_rating",
]
