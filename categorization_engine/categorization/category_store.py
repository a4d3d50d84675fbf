"""
In-process implementation of CategoryManagerProtocol.

Holds categories, rules, keywords, entity patterns and categorized documents
in dictionaries. Used by tests and by embedders that keep their taxonomy in
memory. Nearest-neighbour search ranks stored embeddings by cosine similarity
with numpy.

Keyword upserts keep the larger of the existing and new weight.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from categorization_engine.categorization.models import (
    Category,
    CategoryKeyword,
    EntityPattern,
    Rule,
    SimilarDocument,
    TrainingExample,
)


@dataclass(slots=True)
class CategorizedDocument:
    """A stored document with its embedding and category assignments."""

    document_id: int | str
    content: str
    embedding: list[float] | None
    categories: list[tuple[int, float]]
    is_manual: bool = False


class InMemoryCategoryManager:
    """Dictionary-backed category manager.

    Usage:
        manager = InMemoryCategoryManager()
        manager.add_category(Category(id=1, path="Technology", name="Technology"))
        manager.add_rule(Rule(category_id=1, rule_type="regex", pattern="python"))
    """

    def __init__(self) -> None:
        self._categories: dict[int, Category] = {}
        self._rules: dict[int, list[Rule]] = {}
        self._keywords: dict[int, dict[str, float]] = {}
        self._entity_patterns: dict[int, list[EntityPattern]] = {}
        self._documents: list[CategorizedDocument] = []

    # ------------------------------------------------------------------
    # Configuration (synchronous setup helpers)
    # ------------------------------------------------------------------

    def add_category(self, category: Category) -> None:
        self._categories[category.id] = category

    def add_rule(self, rule: Rule) -> None:
        self._rules.setdefault(rule.category_id, []).append(rule)

    def add_entity_pattern(self, pattern: EntityPattern) -> None:
        self._entity_patterns.setdefault(pattern.category_id, []).append(pattern)

    def upsert_keyword(self, category_id: int, term: str, weight: float) -> None:
        terms = self._keywords.setdefault(category_id, {})
        terms[term] = max(terms.get(term, weight), weight)

    def add_document(
        self,
        document_id: int | str,
        content: str,
        categories: Sequence[tuple[int, float]],
        embedding: Sequence[float] | None = None,
        is_manual: bool = False,
    ) -> None:
        self._documents.append(
            CategorizedDocument(
                document_id=document_id,
                content=content,
                embedding=list(embedding) if embedding is not None else None,
                categories=list(categories),
                is_manual=is_manual,
            )
        )

    # ------------------------------------------------------------------
    # CategoryManagerProtocol
    # ------------------------------------------------------------------

    async def get_categories(self, is_active: bool | None = True) -> list[Category]:
        return [
            c
            for c in self._categories.values()
            if is_active is None or c.is_active == is_active
        ]

    async def get_category(self, category_id: int) -> Category | None:
        return self._categories.get(category_id)

    async def get_category_rules(self, category_id: int) -> list[Rule]:
        return list(self._rules.get(category_id, []))

    async def get_category_keywords(self, category_id: int) -> list[CategoryKeyword]:
        terms = self._keywords.get(category_id, {})
        keywords = [
            CategoryKeyword(category_id=category_id, term=term, weight=weight)
            for term, weight in terms.items()
        ]
        return sorted(keywords, key=lambda k: k.weight, reverse=True)

    async def add_category_keyword(
        self, category_id: int, term: str, weight: float
    ) -> None:
        self.upsert_keyword(category_id, term, weight)

    async def get_category_entity_patterns(
        self, category_id: int
    ) -> list[EntityPattern]:
        return list(self._entity_patterns.get(category_id, []))

    async def find_similar_documents(
        self, embedding: Sequence[float], limit: int
    ) -> list[SimilarDocument]:
        candidates = [d for d in self._documents if d.embedding is not None]
        if not candidates or limit <= 0:
            return []

        query = np.asarray(embedding, dtype=np.float64)
        matrix = np.asarray([d.embedding for d in candidates], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarities = np.where(norms > 0, matrix @ query / norms, 0.0)

        # Stable sort keeps insertion order among equal similarities
        order = np.argsort(-similarities, kind="stable")[:limit]
        return [
            SimilarDocument(
                document_id=candidates[i].document_id,
                similarity=float(similarities[i]),
                categories=tuple(candidates[i].categories),
            )
            for i in order
        ]

    async def get_training_examples(
        self, min_confidence: float, limit: int
    ) -> list[TrainingExample]:
        examples: list[TrainingExample] = []
        for document in self._documents:
            if not document.is_manual:
                continue
            for category_id, confidence in document.categories:
                if confidence > min_confidence:
                    examples.append(
                        TrainingExample(content=document.content, category_id=category_id)
                    )
        return examples[:limit]
