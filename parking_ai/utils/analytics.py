"""Fire-and-forget analytics events.

The engine reports a handful of lifecycle events to whatever sink the host
application injects. Sinks never get to fail a foreground call.
"""

from typing import Any, Dict, Optional, Protocol

from parking_ai.utils.logging import get_logger

PATTERN_LEARNED = "parking_ai_learned"
PREDICTION_GENERATED = "parking_prediction_generated"
PREDICTION_CACHE_HIT = "parking_prediction_cache_hit"
PATTERNS_CLEANED = "parking_patterns_cleaned"
CLUSTERS_OPTIMIZED = "parking_clusters_optimized"
INSIGHTS_GENERATED = "parking_insights_generated"

logger = get_logger(__name__)


class AnalyticsSink(Protocol):
    def event(self, name: str, properties: Dict[str, Any]) -> None:
        ...


class LoggingAnalyticsSink:
    """Default sink that writes events to the debug log."""

    def __init__(self) -> None:
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def event(self, name: str, properties: Dict[str, Any]) -> None:
        self.logger.debug("Analytics event", event=name, **properties)


def emit_event(
    sink: Optional[AnalyticsSink], name: str, properties: Optional[Dict[str, Any]] = None
) -> None:
    """Send an event, logging and dropping any sink failure."""
    if sink is None:
        return
    try:
        sink.event(name, properties or {})
    except Exception as error:
        logger.warning("Analytics sink failed", event=name, error=str(error))
