"""
Azure Advisor Score
Queries the Advisor score REST API for a subscription, keeping only the known score categories
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pydantic
import requests
from azure.core.exceptions import AzureError
from pydantic import BaseModel, ConfigDict, Field

from errors import CollaboratorError
from sliding_cache import SlidingExpirationCache

logger = logging.getLogger(__name__)

SCORE_API_VERSION = "2023-01-01"
MANAGEMENT_SCOPE = "https://management.azure.com/.default"

# The API also returns categories named by GUID; those are dropped
VALID_CATEGORIES = (
    "Security",
    "OperationalExcellence",
    "Cost",
    "HighAvailability",
    "Performance",
    "Advisor",
)


class AdvisorScore(BaseModel):
    category: str
    last_refreshed: datetime
    score: float
    potential_score_increase: float
    impacted_resource_count: int


class _LastRefreshedScore(BaseModel):
    date: datetime
    score: float
    potential_score_increase: float = Field(alias="potentialScoreIncrease")
    impacted_resource_count: int = Field(alias="impactedResourceCount")


class _ScoreProperties(BaseModel):
    last_refreshed_score: _LastRefreshedScore = Field(alias="lastRefreshedScore")


class _ScoreEntity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    properties: Dict[str, Any]


class _ScoreResponse(BaseModel):
    value: List[_ScoreEntity]


def parse_advisor_scores(content: str) -> List[AdvisorScore]:
    """
    Decode an advisorScore response body

    Args:
        content: Raw JSON body

    Returns:
        Scores for the valid categories, in response order

    Raises:
        CollaboratorError: If the body does not have the expected shape
    """
    try:
        response = _ScoreResponse.model_validate_json(content)
        scores = []
        for entity in response.value:
            if entity.name not in VALID_CATEGORIES:
                continue
            last = _ScoreProperties.model_validate(entity.properties).last_refreshed_score
            scores.append(AdvisorScore(
                category=entity.name,
                last_refreshed=last.date,
                score=last.score,
                potential_score_increase=last.potential_score_increase,
                impacted_resource_count=last.impacted_resource_count,
            ))
    except pydantic.ValidationError as e:
        logger.error(f"Unexpected advisor score payload: {e}")
        raise CollaboratorError(f"Unexpected advisor score payload: {e.error_count()} validation errors") from e

    return scores


def scores_to_json(scores: List[AdvisorScore]) -> str:
    return json.dumps([score.model_dump(mode="json") for score in scores])


class AdvisorScoreClient:
    """Cache-aside client for the Advisor score API"""

    def __init__(
        self,
        credential,
        cache: SlidingExpirationCache,
        endpoint: str = "https://management.azure.com",
        session: Optional[requests.Session] = None,
    ):
        self.credential = credential
        self.cache = cache
        self.endpoint = endpoint.rstrip("/")
        self.session = session or requests.Session()

    async def get_scores(self, subscription_id: str) -> List[AdvisorScore]:
        scores = self.cache.get(subscription_id)
        if scores is not None:
            logger.info(f"Cache hit for subscriptionId {subscription_id}")
            return scores

        scores = await asyncio.to_thread(self._download_scores, subscription_id)
        self.cache.set(subscription_id, scores)
        return scores

    def _download_scores(self, subscription_id: str) -> List[AdvisorScore]:
        url = (
            f"{self.endpoint}/subscriptions/{subscription_id}"
            f"/providers/Microsoft.Advisor/advisorScore?api-version={SCORE_API_VERSION}"
        )
        try:
            token = self.credential.get_token(MANAGEMENT_SCOPE)
            response = self.session.get(
                url,
                headers={"Authorization": f"Bearer {token.token}", "Content-Type": "application/json"},
                timeout=45,
            )
        except (AzureError, requests.RequestException) as e:
            logger.error(f"Error fetching advisor score: {e}")
            raise CollaboratorError(str(e)) from e

        logger.info(f"Advisor Score API Response: {response.status_code}")
        if response.status_code != 200:
            raise CollaboratorError(f"Advisor score API error: {response.status_code}")

        return parse_advisor_scores(response.text)
