"""
Azure Advisor Recommendations
Downloads Advisor recommendations through Azure Resource Graph and builds the
per-subscription embeddings cache that MemoryQuery searches
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from azure.core.exceptions import AzureError
from azure.mgmt.resourcegraph import ResourceGraphClient
from azure.mgmt.resourcegraph.models import QueryRequest, QueryRequestOptions

from errors import CollaboratorError
from semantic_memory import SemanticTextMemory
from text_chunker import count_tokens, split_plain_text_lines, split_plain_text_paragraphs

logger = logging.getLogger(__name__)

MAX_TOKENS = 1024
MAX_FILE_SIZE = 2048
PAGE_SIZE = 1000

RECOMMENDATIONS_QUERY = """
AdvisorResources
| where type == 'microsoft.advisor/recommendations'
| project
    impactedValue = tostring(properties.impactedValue),
    impactedField = tostring(properties.impactedField),
    problem = tostring(properties.shortDescription.problem),
    solution = tostring(properties.shortDescription.solution),
    impact = tostring(properties.impact),
    category = tostring(properties.category),
    lastUpdated = tostring(properties.lastUpdated),
    recommendationMessage = tostring(properties.extendedProperties.recommendationMessage)
"""


@dataclass(frozen=True)
class RecommendationRecord:
    """Snapshot of one Azure Advisor recommendation"""
    impacted_value: str
    impacted_field: str
    problem: str
    solution: str
    impact: str
    category: str
    last_updated: str
    recommendation_message: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RecommendationRecord":
        return cls(
            impacted_value=row.get("impactedValue") or "",
            impacted_field=row.get("impactedField") or "",
            problem=row.get("problem") or "",
            solution=row.get("solution") or "",
            impact=row.get("impact") or "",
            category=row.get("category") or "",
            last_updated=row.get("lastUpdated") or "",
            recommendation_message=row.get("recommendationMessage") or "",
        )

    def to_line(self) -> str:
        return ", ".join([
            f"Affected Resource: {self.impacted_value}",
            f"Resource Type: {self.impacted_field}",
            f"Problem: {self.problem}",
            f"Solution: {self.solution}",
            f"Impact: {self.impact}",
            f"Category: {self.category}",
            f"Last Updated: {self.last_updated}",
            f"Recommendation Message: {self.recommendation_message}",
        ])


class RecommendationSource(Protocol):
    async def list_recommendations(self, subscription_id: str) -> List[RecommendationRecord]:
        ...


class AdvisorRecommendationSource:
    """Reads every Advisor recommendation of a subscription from Resource Graph, following all pages"""

    def __init__(self, credential, client: Optional[ResourceGraphClient] = None):
        self.rg_client = client or ResourceGraphClient(credential)

    async def list_recommendations(self, subscription_id: str) -> List[RecommendationRecord]:
        logger.info(f"Downloading Azure Advisor recommendations for subscription: {subscription_id}")
        try:
            rows = await asyncio.to_thread(self._query_all_pages, subscription_id)
        except AzureError as e:
            logger.error(f"Failed to download recommendations for {subscription_id}: {e}")
            raise CollaboratorError(str(e)) from e

        return [RecommendationRecord.from_row(row) for row in rows]

    def _query_all_pages(self, subscription_id: str) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        skip_token = None

        while True:
            request = QueryRequest(
                subscriptions=[subscription_id],
                query=RECOMMENDATIONS_QUERY,
                options=QueryRequestOptions(top=PAGE_SIZE, skip_token=skip_token, result_format="objectArray"),
            )
            response = self.rg_client.resources(request)
            rows.extend(response.data or [])

            skip_token = response.skip_token
            if not skip_token:
                return rows


def flatten_recommendations(records: List[RecommendationRecord]) -> str:
    """One line per recommendation, fields in fixed order"""
    return "\n".join(record.to_line() for record in records)


class EmbeddingsCacheBuilder:
    """
    Lazily fills the memory collection of a subscription with its recommendations

    A subscription is considered cached when any memory collection name starts
    with its id. Builds for the same subscription are serialized inside this
    process; a second caller waiting on the lock finds the cache warm and skips
    the download.
    """

    def __init__(self, memory: SemanticTextMemory, source: RecommendationSource):
        self.memory = memory
        self.source = source
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Counter = Counter()

    async def is_cache_empty(self, subscription_id: str) -> bool:
        # TODO: invalidate on age once recommendations carry a refresh timestamp
        collections = await self.memory.get_collections()
        return not any(name.startswith(subscription_id) for name in collections)

    async def fetch_recommendations(self, subscription_id: str) -> List[RecommendationRecord]:
        return await self.source.list_recommendations(subscription_id)

    async def ensure_warm(self, subscription_id: str) -> bool:
        """
        Build the embeddings cache for a subscription if it is empty

        Returns:
            True if this call built the cache, False if it was already populated
        """
        if not await self.is_cache_empty(subscription_id):
            return False

        lock = self._locks.setdefault(subscription_id, asyncio.Lock())
        self._lock_users[subscription_id] += 1
        try:
            async with lock:
                if not await self.is_cache_empty(subscription_id):
                    return False

                logger.info(f"Embeddings cache empty for subscription: {subscription_id}")
                recommendations = await self.fetch_recommendations(subscription_id)
                await self.save_recommendations(subscription_id, recommendations)
                return True
        finally:
            # Drop the lock once no caller holds or waits on it
            self._lock_users[subscription_id] -= 1
            if not self._lock_users[subscription_id]:
                del self._lock_users[subscription_id]
                del self._locks[subscription_id]

    async def save_recommendations(self, subscription_id: str, recommendations: List[RecommendationRecord]) -> List[str]:
        """
        Flatten, chunk and save recommendations into the subscription's collection

        Returns:
            The saved record ids, in chunk order
        """
        logger.info(
            f"Building embeddings cache from {len(recommendations)} Azure Advisor recommendations "
            f"for subscription: {subscription_id}"
        )

        text = flatten_recommendations(recommendations)
        if not text:
            text = f"No Azure Advisor recommendations found for subscription {subscription_id}."

        if count_tokens(text) > MAX_FILE_SIZE:
            lines = split_plain_text_lines(text, MAX_TOKENS)
            paragraphs = split_plain_text_paragraphs(lines, MAX_TOKENS)
            ids = []
            for i, paragraph in enumerate(paragraphs):
                ids.append(await self.memory.save_information(subscription_id, text=paragraph, id=f"{subscription_id}_{i}"))
            return ids

        return [await self.memory.save_information(subscription_id, text=text, id=subscription_id)]
