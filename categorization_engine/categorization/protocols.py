"""
Collaborator protocols consumed by the categorization engine.

The engine never talks to storage, embedding models or LLMs directly; it
depends on these runtime-checkable protocols so that tests can inject fakes
and deployments can inject HTTP clients or database-backed managers.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from categorization_engine.categorization.models import (
        Category,
        CategoryKeyword,
        EntityPattern,
        Rule,
        SimilarDocument,
        TrainingExample,
    )


@runtime_checkable
class CategoryManagerProtocol(Protocol):
    """Read access to category configuration plus the persistence hooks the
    engine needs for its keyword index and training data."""

    async def get_categories(self, is_active: bool | None = True) -> list[Category]:
        """Return categories, filtered by active flag unless is_active is None."""
        ...

    async def get_category(self, category_id: int) -> Category | None:
        """Return one category or None if it does not exist."""
        ...

    async def get_category_rules(self, category_id: int) -> list[Rule]:
        """Return the rules attached to a category."""
        ...

    async def get_category_keywords(self, category_id: int) -> list[CategoryKeyword]:
        """Return the keyword dictionary of a category, heaviest first."""
        ...

    async def add_category_keyword(
        self, category_id: int, term: str, weight: float
    ) -> None:
        """Upsert a keyword, keeping the larger of existing and new weight."""
        ...

    async def get_category_entity_patterns(
        self, category_id: int
    ) -> list[EntityPattern]:
        """Return the entity-pattern templates of a category."""
        ...

    async def find_similar_documents(
        self, embedding: Sequence[float], limit: int
    ) -> list[SimilarDocument]:
        """Return up to limit categorized documents nearest to embedding."""
        ...

    async def get_training_examples(
        self, min_confidence: float, limit: int
    ) -> list[TrainingExample]:
        """Return confirmed manual categorizations above min_confidence."""
        ...


@runtime_checkable
class EmbeddingServiceProtocol(Protocol):
    """Embedding collaborator."""

    async def generate_embedding(self, text: str) -> list[float]:
        """Return an embedding vector for text."""
        ...


@runtime_checkable
class LLMProviderProtocol(Protocol):
    """LLM completion collaborator."""

    async def complete(
        self, prompt: str, max_tokens: int, temperature: float
    ) -> str:
        """Return the raw completion text for prompt."""
        ...
