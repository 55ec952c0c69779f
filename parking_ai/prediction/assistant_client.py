"""
Client for the optional external parking assistant (LLM)

The assistant is an untrusted, supplementary source: its answers may only add
suggestions after the locally ranked results, and any failure is reported to
the caller as "no suggestions".
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import requests
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from parking_ai.config.constants import DEFAULT_ASSISTANT_TIMEOUT
from parking_ai.utils.data_models import Coordinates
from parking_ai.utils.logging import get_logger


class AssistantRequest(BaseModel):
    location: Coordinates
    time: datetime
    recent_venues: List[str] = Field(default_factory=list)


class AssistantSpot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: Coordinates
    confidence: float = Field(ge=0, le=1)


class AssistantResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    confidence: float = Field(ge=0, le=1)
    alternative_spots: List[AssistantSpot] = Field(
        default_factory=list,
        validation_alias=AliasChoices("alternative_spots", "alternativeSpots"),
    )


class ParkingAssistant(Protocol):
    def suggest(self, request: AssistantRequest) -> AssistantResponse:
        ...


@dataclass
class AssistantConfig:
    """Configuration for the assistant HTTP endpoint"""

    api_url: str
    api_key: Optional[str] = None
    model: str = "gemini-1.5-flash"
    timeout: float = DEFAULT_ASSISTANT_TIMEOUT  # seconds
    temperature: float = 0.7
    max_tokens: int = 200


@dataclass
class AssistantStats:
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0

    @property
    def success_rate(self) -> float:
        return self.successful_calls / self.total_calls if self.total_calls > 0 else 0.0


class ParkingAssistantClient:
    """
    OpenAI-compatible chat completion client asking for parking suggestions

    Features:
    - Hard per-request timeout
    - JSON extraction from free-form model output
    - Response validation before anything reaches the engine
    """

    def __init__(self, config: AssistantConfig) -> None:
        self.config = config
        self.stats = AssistantStats()
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def build_prompt(self, request: AssistantRequest) -> str:
        venues = "\n".join(f"- {venue}" for venue in request.recent_venues) or "- none recorded"
        return (
            "Suggest up to 3 parking spots near "
            f"({request.location.lat:.5f}, {request.location.lng:.5f}) "
            f"for {request.time:%A %H:%M}.\n"
            f"Places this driver parked recently:\n{venues}\n"
            "Respond with JSON only: "
            '{"confidence": 0-1, "alternativeSpots": '
            '[{"location": {"lat": .., "lng": ..}, "confidence": 0-1}]}'
        )

    def suggest(self, request: AssistantRequest) -> AssistantResponse:
        """Ask the assistant for spots.

        Raises:
            requests.RequestException: On transport errors or timeouts.
            ValueError: If the reply holds no valid JSON payload.
        """
        self.stats.total_calls += 1
        try:
            raw = self._call_api(self.build_prompt(request))
            response = self._parse_response(raw)
        except Exception as error:
            self.stats.failed_calls += 1
            self.logger.warning("Assistant call failed", error=str(error))
            raise

        self.stats.successful_calls += 1
        self.logger.debug(
            "Assistant responded",
            confidence=response.confidence,
            spots=len(response.alternative_spots),
        )
        return response

    def _call_api(self, prompt: str) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        payload = {
            "model": self.config.model,
            "messages": [
                {
                    "role": "system",
                    "content": "You are a parking assistant. Respond with valid JSON only.",
                },
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

        response = requests.post(
            f"{self.config.api_url.rstrip('/')}/chat/completions",
            headers=headers,
            json=payload,
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _parse_response(raw: Dict[str, Any]) -> AssistantResponse:
        try:
            content = raw["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as error:
            raise ValueError(f"Unexpected assistant response shape: {error}") from error

        json_match = re.search(r"\{.*\}", content or "", re.DOTALL)
        if not json_match:
            raise ValueError("No JSON found in assistant response")

        return AssistantResponse.model_validate(json.loads(json_match.group(0)))
