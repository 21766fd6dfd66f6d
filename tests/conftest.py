"""Pytest configuration and fixtures."""

import zlib
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from advisor_recommendations import RecommendationRecord
from config import AppSettings
from errors import CollaboratorError
from kernel import build_kernel
from main import app, build_services, get_services

EMBEDDING_SIZE = 64
BASE_WORDS_PER_RECORD = 19  # label words plus one word per field value


class BagOfWordsEmbeddingService:
    """Deterministic embeddings: word counts hashed into a fixed number of buckets"""

    def __init__(self):
        self.calls: List[List[str]] = []

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        vectors = []
        for text in texts:
            vector = [0.0] * EMBEDDING_SIZE
            for word in text.lower().split():
                vector[zlib.crc32(word.strip(",.?!:").encode()) % EMBEDDING_SIZE] += 1.0
            vectors.append(vector)
        return vectors


class ConstantEmbeddingService:
    """Every text maps to the same vector, so every stored record is fully relevant"""

    def __init__(self):
        self.calls: List[List[str]] = []

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [[1.0, 0.0, 0.0] for _ in texts]


class FakeChatService:
    def __init__(self, reply: str = "Here are your top cost recommendations."):
        self.reply = reply
        self.prompts: List[str] = []
        self.settings: List[Optional[Dict[str, Any]]] = []

    async def complete(self, prompt: str, request_settings: Optional[Dict[str, Any]] = None) -> str:
        self.prompts.append(prompt)
        self.settings.append(request_settings)
        return self.reply


class CountingRecommendationSource:
    def __init__(self, records: Optional[List[RecommendationRecord]] = None):
        self.records = records or []
        self.calls: List[str] = []

    async def list_recommendations(self, subscription_id: str) -> List[RecommendationRecord]:
        self.calls.append(subscription_id)
        return list(self.records)


class FailingRecommendationSource:
    def __init__(self, message: str = "Resource Graph unavailable"):
        self.message = message

    async def list_recommendations(self, subscription_id: str) -> List[RecommendationRecord]:
        raise CollaboratorError(self.message)


class FakeScoreClient:
    def __init__(self, scores=None):
        self.scores = scores or []
        self.calls: List[str] = []

    async def get_scores(self, subscription_id: str):
        self.calls.append(subscription_id)
        return self.scores


class FakeCostSavingsClient:
    def __init__(self, payload: str = "[]"):
        self.payload = payload
        self.calls: List[str] = []

    async def get_cost_savings(self, subscription_id: str) -> str:
        self.calls.append(subscription_id)
        return self.payload


def make_record(index: int, total_words: int, category: str = "Cost") -> RecommendationRecord:
    """A recommendation whose flattened line is exactly total_words words long"""
    message_words = total_words - BASE_WORDS_PER_RECORD
    return RecommendationRecord(
        impacted_value=f"vm-{index}",
        impacted_field="Microsoft.Compute/virtualMachines",
        problem="Underutilized",
        solution="Resize",
        impact="High",
        category=category,
        last_updated="2024-05-01T00:00:00Z",
        recommendation_message=" ".join(f"word{index}x{j}" for j in range(message_words)),
    )


@pytest.fixture
def settings():
    return AppSettings()


@pytest.fixture
def chat_service():
    return FakeChatService()


@pytest.fixture
def embedding_service():
    return ConstantEmbeddingService()


@pytest.fixture
def kernel(settings, chat_service, embedding_service):
    return build_kernel(settings, chat_service=chat_service, embedding_service=embedding_service)


@pytest.fixture
def recommendation_source():
    return CountingRecommendationSource([make_record(0, 167), make_record(1, 167), make_record(2, 166)])


@pytest.fixture
def score_client():
    return FakeScoreClient()


@pytest.fixture
def cost_savings_client():
    return FakeCostSavingsClient()


@pytest.fixture
def services(settings, kernel, recommendation_source, score_client, cost_savings_client):
    return build_services(
        settings,
        kernel=kernel,
        recommendation_source=recommendation_source,
        score_client=score_client,
        cost_savings_client=cost_savings_client,
    )


@pytest.fixture
def client(services):
    """Test client with the service graph replaced by fakes."""
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()
