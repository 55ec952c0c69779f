"""
Prediction layer: the read path

Scores learned patterns/clusters against a query, memoizes predictions,
synthesizes a best-guess spot and ranks candidate parking areas.
"""

from .assistant_client import (
    AssistantConfig,
    AssistantRequest,
    AssistantResponse,
    AssistantSpot,
    ParkingAssistant,
    ParkingAssistantClient,
)
from .cache import PredictionCache, make_cache_key
from .generator import PredictionGenerator, default_prediction, prediction_radius
from .recommendation import RecommendationEngine, recommendation_score
from .relevance import RelevanceScorer, ScoredPattern, context_overlap_ratio

__all__ = [
    "AssistantConfig",
    "AssistantRequest",
    "AssistantResponse",
    "AssistantSpot",
    "ParkingAssistant",
    "ParkingAssistantClient",
    "PredictionCache",
    "make_cache_key",
    "PredictionGenerator",
    "default_prediction",
    "prediction_radius",
    "RecommendationEngine",
    "recommendation_score",
    "RelevanceScorer",
    "ScoredPattern",
    "context_overlap_ratio",
]
