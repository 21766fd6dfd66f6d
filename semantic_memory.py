"""
Semantic Memory
In-process memory store keyed by collection plus the text memory facade that embeds and ranks records
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

Vector = Union[np.ndarray, Sequence[float]]


@dataclass
class MemoryRecord:
    """One stored chunk of text and its embedding"""
    id: str
    text: str
    embedding: np.ndarray = field(default_factory=lambda: np.zeros(0), compare=False)
    description: Optional[str] = None

    def __post_init__(self):
        self.embedding = np.asarray(self.embedding, dtype=float)


@dataclass
class MemoryQueryResult:
    id: str
    text: str
    relevance: float
    description: Optional[str] = None


class EmbeddingGenerator(Protocol):
    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        ...


class MemoryStore(Protocol):
    async def get_collections(self) -> List[str]:
        ...

    async def upsert(self, collection: str, record: MemoryRecord) -> str:
        ...

    async def get_nearest_matches(
        self, collection: str, embedding: Vector, limit: int, min_relevance_score: float
    ) -> List[Tuple[MemoryRecord, float]]:
        ...


def cosine_similarity(a: Vector, b: Vector) -> float:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Embedding size mismatch: {a.shape} != {b.shape}")
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.dot(a, b) / norm)


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of every row of matrix against query; zero vectors score 0"""
    if matrix.shape[1] != query.shape[0]:
        raise ValueError(f"Embedding size mismatch: {matrix.shape[1]} != {query.shape[0]}")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)


class VolatileMemoryStore:
    """Process-local memory store; contents are lost on restart"""

    def __init__(self):
        self._collections: Dict[str, Dict[str, MemoryRecord]] = {}

    async def get_collections(self) -> List[str]:
        return list(self._collections.keys())

    async def upsert(self, collection: str, record: MemoryRecord) -> str:
        # Same id overwrites
        self._collections.setdefault(collection, {})[record.id] = record
        return record.id

    async def get(self, collection: str, key: str) -> Optional[MemoryRecord]:
        return self._collections.get(collection, {}).get(key)

    async def get_nearest_matches(
        self, collection: str, embedding: Vector, limit: int, min_relevance_score: float
    ) -> List[Tuple[MemoryRecord, float]]:
        records = self._collections.get(collection)
        if not records or limit <= 0:
            return []

        candidates = list(records.values())
        matrix = np.vstack([record.embedding for record in candidates])  # (n, dims)
        relevances = cosine_similarities(matrix, np.asarray(embedding, dtype=float))

        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-relevances, kind="stable")
        return [
            (candidates[i], float(relevances[i]))
            for i in order[:limit]
            if relevances[i] >= min_relevance_score
        ]


class SemanticTextMemory:
    """Embeds text on save and ranks stored text by relevance on search"""

    def __init__(self, storage: MemoryStore, embedding_generator: EmbeddingGenerator):
        self.storage = storage
        self.embedding_generator = embedding_generator

    async def get_collections(self) -> List[str]:
        return await self.storage.get_collections()

    async def save_information(
        self, collection: str, text: str, id: str, description: Optional[str] = None
    ) -> str:
        """
        Embed and upsert a piece of text

        Args:
            collection: Collection name (the subscription id for recommendations)
            text: Text to remember
            id: Record id; saving the same id again overwrites
            description: Optional description stored with the record
        """
        embedding = (await self.embedding_generator.generate_embeddings([text]))[0]
        record = MemoryRecord(id=id, text=text, embedding=embedding, description=description)
        return await self.storage.upsert(collection, record)

    async def search(
        self, collection: str, query: str, limit: int = 1, min_relevance_score: float = 0.7
    ) -> List[MemoryQueryResult]:
        """
        Return the stored records most relevant to the query, best first

        Args:
            collection: Collection to search
            query: Free-text query
            limit: Maximum number of results
            min_relevance_score: Minimum cosine similarity to include a record
        """
        query_embedding = (await self.embedding_generator.generate_embeddings([query]))[0]
        matches = await self.storage.get_nearest_matches(collection, query_embedding, limit, min_relevance_score)
        logger.debug(f"Memory search in '{collection}' returned {len(matches)} matches")
        return [
            MemoryQueryResult(id=record.id, text=record.text, relevance=relevance, description=record.description)
            for record, relevance in matches
        ]
