"""
ML similarity categorization strategy.

Two signals are accumulated per category:
1. Nearest neighbours: each of the K previously categorized documents closest
   to the document's embedding adds similarity * neighbour confidence to each
   of its categories.
2. Classifier vote: the trained text classifier's predicted category gets a
   fixed bonus.

Categories whose accumulated score is not positive are dropped; the rest are
clamped to at most 1. Any failure in the embedding, neighbour search
or classifier path is logged and the strategy returns an empty list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from categorization_engine.categorization.models import (
    STRATEGY_ML,
    Document,
    StrategyResult,
)
from categorization_engine.core.logging import get_logger

if TYPE_CHECKING:
    from categorization_engine.categorization.protocols import (
        CategoryManagerProtocol,
        EmbeddingServiceProtocol,
    )
    from categorization_engine.categorization.text_classifier import (
        TextClassifierProtocol,
    )

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_EMBEDDING_CHAR_BUDGET: Final[int] = 8000
DEFAULT_NEIGHBOR_LIMIT: Final[int] = 10
DEFAULT_CLASSIFIER_BONUS: Final[float] = 0.5


class MLScorer:
    """ML strategy: nearest-neighbour voting plus a classifier bonus."""

    def __init__(
        self,
        category_manager: CategoryManagerProtocol,
        embedding_service: EmbeddingServiceProtocol | None,
        classifier: TextClassifierProtocol | None = None,
        embedding_char_budget: int = DEFAULT_EMBEDDING_CHAR_BUDGET,
        neighbor_limit: int = DEFAULT_NEIGHBOR_LIMIT,
        classifier_bonus: float = DEFAULT_CLASSIFIER_BONUS,
    ) -> None:
        self._category_manager = category_manager
        self._embedding_service = embedding_service
        self.classifier = classifier
        self._embedding_char_budget = embedding_char_budget
        self._neighbor_limit = neighbor_limit
        self._classifier_bonus = classifier_bonus

    async def _embed(self, document: Document) -> list[float] | None:
        if document.embedding is not None:
            return list(document.embedding)
        if self._embedding_service is None:
            return None
        text = f"{document.title} {document.content}"[: self._embedding_char_budget]
        return await self._embedding_service.generate_embedding(text)

    async def _score_categories(self, document: Document) -> dict[int, float]:
        scores: dict[int, float] = {}

        embedding = await self._embed(document)
        if embedding is not None:
            neighbours = await self._category_manager.find_similar_documents(
                embedding, self._neighbor_limit
            )
            for neighbour in neighbours:
                for category_id, confidence in neighbour.categories:
                    scores[category_id] = (
                        scores.get(category_id, 0.0) + neighbour.similarity * confidence
                    )

        if self.classifier is not None:
            voted = self.classifier.predict(document.content or "")
            if voted is not None:
                scores[voted] = scores.get(voted, 0.0) + self._classifier_bonus

        return scores

    async def categorize(self, document: Document) -> list[StrategyResult]:
        """Score categories by similar documents and the classifier vote.

        Never raises; failures degrade to an empty list.
        """
        try:
            scores = await self._score_categories(document)

            results: list[StrategyResult] = []
            for category_id, score in scores.items():
                # Dissimilar neighbours (cosine <= 0) are evidence against
                if score <= 0.0:
                    continue
                category = await self._category_manager.get_category(category_id)
                if category is None:
                    continue
                results.append(
                    StrategyResult(
                        category_id=category.id,
                        category_path=category.path,
                        confidence=min(score, 1.0),
                        method=STRATEGY_ML,
                        details={"similarity_score": score},
                    )
                )
            return results

        except Exception as e:
            logger.error(
                "ml_categorization_failed",
                document_id=document.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []


# =============================================================================
# Test Double
# =============================================================================


class FakeEmbeddingService:
    """Fake embedding service returning fixed vectors or raising an error.

    Usage:
        fake = FakeEmbeddingService(vectors={"neural": [1.0, 0.0]})
        await fake.generate_embedding("neural nets")  # [1.0, 0.0]
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._vectors = dict(vectors or {})
        self._default = default if default is not None else [0.0, 0.0, 1.0]
        self._error = error
        self.requests: list[str] = []

    async def generate_embedding(self, text: str) -> list[float]:
        self.requests.append(text)
        if self._error is not None:
            raise self._error
        for needle, vector in self._vectors.items():
            if needle in text:
                return list(vector)
        return list(self._default)
