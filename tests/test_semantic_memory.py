"""Tests for the memory store and semantic text memory."""

import numpy as np
import pytest

from semantic_memory import (
    MemoryRecord,
    SemanticTextMemory,
    VolatileMemoryStore,
    cosine_similarities,
    cosine_similarity,
)

from conftest import BagOfWordsEmbeddingService


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 3.0]) == pytest.approx(0.0)

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_size_mismatch(self):
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 0.0])


class TestCosineSimilarities:
    def test_scores_every_row_in_one_pass(self):
        matrix = np.array([[1.0, 0.0], [0.6, 0.8], [0.0, 0.0], [2.0, 0.0]])
        scores = cosine_similarities(matrix, np.array([1.0, 0.0]))
        np.testing.assert_allclose(scores, [1.0, 0.6, 0.0, 1.0])

    def test_size_mismatch(self):
        with pytest.raises(ValueError):
            cosine_similarities(np.ones((2, 3)), np.ones(2))


class TestVolatileMemoryStore:
    @pytest.mark.asyncio
    async def test_upsert_creates_collection(self):
        store = VolatileMemoryStore()
        await store.upsert("sub-1", MemoryRecord(id="sub-1", text="hello", embedding=[1.0]))
        assert await store.get_collections() == ["sub-1"]

    @pytest.mark.asyncio
    async def test_embeddings_are_stored_as_arrays(self):
        store = VolatileMemoryStore()
        await store.upsert("c", MemoryRecord(id="r", text="t", embedding=[0.5, 0.25]))
        record = await store.get("c", "r")
        assert isinstance(record.embedding, np.ndarray)
        assert record.embedding.tolist() == [0.5, 0.25]

    @pytest.mark.asyncio
    async def test_same_id_overwrites(self):
        store = VolatileMemoryStore()
        await store.upsert("sub-1", MemoryRecord(id="r", text="old", embedding=[1.0]))
        await store.upsert("sub-1", MemoryRecord(id="r", text="new", embedding=[1.0]))
        record = await store.get("sub-1", "r")
        assert record.text == "new"

    @pytest.mark.asyncio
    async def test_nearest_matches_are_ranked_and_filtered(self):
        store = VolatileMemoryStore()
        await store.upsert("c", MemoryRecord(id="exact", text="a", embedding=[1.0, 0.0]))
        await store.upsert("c", MemoryRecord(id="close", text="b", embedding=[1.0, 0.5]))
        await store.upsert("c", MemoryRecord(id="far", text="c", embedding=[0.0, 1.0]))

        matches = await store.get_nearest_matches("c", [1.0, 0.0], limit=5, min_relevance_score=0.7)

        assert [record.id for record, _ in matches] == ["exact", "close"]
        assert matches[0][1] >= matches[1][1]

    @pytest.mark.asyncio
    async def test_limit(self):
        store = VolatileMemoryStore()
        for i in range(5):
            await store.upsert("c", MemoryRecord(id=str(i), text=str(i), embedding=[1.0]))
        matches = await store.get_nearest_matches("c", [1.0], limit=2, min_relevance_score=0.0)
        assert len(matches) == 2

    @pytest.mark.asyncio
    async def test_unknown_collection(self):
        store = VolatileMemoryStore()
        assert await store.get_nearest_matches("missing", [1.0], limit=3, min_relevance_score=0.0) == []


class TestSemanticTextMemory:
    @pytest.mark.asyncio
    async def test_save_embeds_and_stores(self):
        embedder = BagOfWordsEmbeddingService()
        memory = SemanticTextMemory(VolatileMemoryStore(), embedder)

        record_id = await memory.save_information("sub-1", text="resize idle vm", id="sub-1_0")

        assert record_id == "sub-1_0"
        assert embedder.calls == [["resize idle vm"]]
        assert await memory.get_collections() == ["sub-1"]

    @pytest.mark.asyncio
    async def test_search_returns_most_relevant_first(self):
        memory = SemanticTextMemory(VolatileMemoryStore(), BagOfWordsEmbeddingService())
        await memory.save_information("sub-1", text="enable soft delete on key vault", id="a")
        await memory.save_information("sub-1", text="resize underutilized virtual machine", id="b")

        results = await memory.search("sub-1", "resize underutilized virtual machine", limit=2, min_relevance_score=0.0)

        assert results[0].id == "b"
        assert results[0].relevance == pytest.approx(1.0)
        assert results[0].text == "resize underutilized virtual machine"
