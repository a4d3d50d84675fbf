"""Tests for InMemoryCategoryManager."""

from __future__ import annotations

import pytest

from categorization_engine.categorization.category_store import InMemoryCategoryManager
from categorization_engine.categorization.protocols import CategoryManagerProtocol

from conftest import CATEGORY_AI, CATEGORY_ARCHIVED, CATEGORY_FINANCE, CATEGORY_TECH


class TestCategories:
    def test_implements_protocol(self, taxonomy_manager: InMemoryCategoryManager) -> None:
        assert isinstance(taxonomy_manager, CategoryManagerProtocol)

    @pytest.mark.asyncio
    async def test_active_filter(self, taxonomy_manager: InMemoryCategoryManager) -> None:
        active = await taxonomy_manager.get_categories(is_active=True)
        everything = await taxonomy_manager.get_categories(is_active=None)

        assert [c.id for c in active] == [CATEGORY_TECH, CATEGORY_AI, CATEGORY_FINANCE]
        assert CATEGORY_ARCHIVED in {c.id for c in everything}

    @pytest.mark.asyncio
    async def test_unknown_category(self, taxonomy_manager: InMemoryCategoryManager) -> None:
        assert await taxonomy_manager.get_category(404) is None


class TestKeywords:
    @pytest.mark.asyncio
    async def test_upsert_keeps_max_weight(
        self, taxonomy_manager: InMemoryCategoryManager
    ) -> None:
        await taxonomy_manager.add_category_keyword(CATEGORY_TECH, "python", 2.0)
        await taxonomy_manager.add_category_keyword(CATEGORY_TECH, "python", 1.0)

        keywords = await taxonomy_manager.get_category_keywords(CATEGORY_TECH)

        assert [(k.term, k.weight) for k in keywords] == [("python", 2.0)]

    @pytest.mark.asyncio
    async def test_sorted_by_weight(self, taxonomy_manager: InMemoryCategoryManager) -> None:
        taxonomy_manager.upsert_keyword(CATEGORY_TECH, "code", 0.5)
        taxonomy_manager.upsert_keyword(CATEGORY_TECH, "python", 1.5)

        keywords = await taxonomy_manager.get_category_keywords(CATEGORY_TECH)

        assert [k.term for k in keywords] == ["python", "code"]


class TestSimilarDocuments:
    @pytest.mark.asyncio
    async def test_ranked_by_cosine_similarity(
        self, taxonomy_manager: InMemoryCategoryManager
    ) -> None:
        taxonomy_manager.add_document("far", "x", [(CATEGORY_FINANCE, 1.0)], [0.0, 1.0])
        taxonomy_manager.add_document("near", "x", [(CATEGORY_AI, 1.0)], [2.0, 0.1])
        taxonomy_manager.add_document("no-embedding", "x", [(CATEGORY_AI, 1.0)])

        similar = await taxonomy_manager.find_similar_documents([1.0, 0.0], limit=5)

        assert [s.document_id for s in similar] == ["near", "far"]
        assert similar[0].similarity == pytest.approx(0.99875, abs=1e-4)
        assert similar[0].categories == ((CATEGORY_AI, 1.0),)

    @pytest.mark.asyncio
    async def test_limit(self, taxonomy_manager: InMemoryCategoryManager) -> None:
        for i in range(4):
            taxonomy_manager.add_document(i, "x", [(CATEGORY_AI, 1.0)], [1.0, float(i)])

        similar = await taxonomy_manager.find_similar_documents([1.0, 0.0], limit=2)

        assert [s.document_id for s in similar] == [0, 1]

    @pytest.mark.asyncio
    async def test_zero_vector_has_zero_similarity(
        self, taxonomy_manager: InMemoryCategoryManager
    ) -> None:
        taxonomy_manager.add_document("zero", "x", [(CATEGORY_AI, 1.0)], [0.0, 0.0])

        similar = await taxonomy_manager.find_similar_documents([1.0, 0.0], limit=1)

        assert similar[0].similarity == 0.0

    @pytest.mark.asyncio
    async def test_empty_store(self, taxonomy_manager: InMemoryCategoryManager) -> None:
        assert await taxonomy_manager.find_similar_documents([1.0], limit=3) == []


class TestTrainingExamples:
    @pytest.mark.asyncio
    async def test_only_confident_manual_assignments(
        self, taxonomy_manager: InMemoryCategoryManager
    ) -> None:
        taxonomy_manager.add_document(
            1, "manual", [(CATEGORY_AI, 0.95), (CATEGORY_TECH, 0.5)], is_manual=True
        )
        taxonomy_manager.add_document(2, "automatic", [(CATEGORY_AI, 0.99)])

        examples = await taxonomy_manager.get_training_examples(min_confidence=0.8, limit=10)

        assert [(e.content, e.category_id) for e in examples] == [("manual", CATEGORY_AI)]

    @pytest.mark.asyncio
    async def test_limit(self, taxonomy_manager: InMemoryCategoryManager) -> None:
        for i in range(5):
            taxonomy_manager.add_document(i, f"doc {i}", [(CATEGORY_AI, 1.0)], is_manual=True)

        examples = await taxonomy_manager.get_training_examples(min_confidence=0.8, limit=3)

        assert len(examples) == 3
