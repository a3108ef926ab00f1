"""
Client for the external scoring service.

``POST /api/score-job`` scores one posting against the user's criteria;
``POST /api/analyze-cv`` turns an uploaded CV into the criteria text.
"""

import logging
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from aggregator.classification.policy import clamp_score
from aggregator.config.settings import settings
from aggregator.core.errors import ClassificationFailure
from aggregator.core.models import MAX_HIGHLIGHTS, Posting

logger = logging.getLogger(__name__)


class ScoreResponse(BaseModel):
    """
    Validated scoring payload. The ``category`` label is informational only.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    score: int
    category: Optional[str] = None
    reasoning: str = ""
    contract_type: Optional[str] = None
    salary_range: Optional[str] = None
    key_highlights: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, value):
        if isinstance(value, bool) or value is None:
            raise ValueError("score must be a number")
        return clamp_score(value)

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning(cls, value):
        return "" if value is None else str(value)

    @field_validator("key_highlights", mode="before")
    @classmethod
    def _highlights(cls, value):
        if not value:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(item).strip() for item in value if str(item).strip()][:MAX_HIGHLIGHTS]


class ScoringClient:
    """
    Thin async wrapper around the scoring backend. One call, one timeout,
    no retries.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.SCORING_URL).rstrip("/")
        self.timeout = timeout or settings.SCORING_TIMEOUT
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        )

    async def score(self, posting: Posting, criteria: str) -> ScoreResponse:
        job = posting.to_dict()
        if not job.get("description"):
            job["description"] = posting.title

        try:
            async with self._client() as client:
                response = await client.post(
                    "/api/score-job", json={"job": job, "criteria": criteria}
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise ClassificationFailure(f"Scoring call failed: {e}") from e
        except ValueError as e:
            raise ClassificationFailure(f"Scoring response is not JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ClassificationFailure("Scoring response is not an object")
        try:
            return ScoreResponse.model_validate(payload)
        except ValidationError as e:
            raise ClassificationFailure(f"Malformed scoring response: {e}") from e

    async def extract_criteria(self, cv_path: Path, mime_type: str = "application/pdf") -> str:
        """
        Upload a CV (multipart) and return the extracted criteria text.
        """
        try:
            async with self._client() as client:
                with open(cv_path, "rb") as fh:
                    response = await client.post(
                        "/api/analyze-cv",
                        files={"file": (cv_path.name, fh, mime_type)},
                    )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise ClassificationFailure(f"CV analysis failed: {e}") from e
        except ValueError as e:
            raise ClassificationFailure(f"CV analysis response is not JSON: {e}") from e

        if data.get("status") == "success" and data.get("analysis"):
            return data["analysis"]
        raise ClassificationFailure(data.get("message") or "CV analysis failed")
