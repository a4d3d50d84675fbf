"""
AutoCategorizationEngine - ensemble orchestration of the four strategies.

Per call:
1. Fan-out: the requested strategies (rules, keywords, ml, entities) run
   concurrently with asyncio.gather against the same document.
2. Fan-in: EnsembleCombiner sums weighted confidences per category under the
   weights snapshot captured at the start of the call.
3. Results below the threshold are dropped and the rest capped.
4. Each surviving result gets an explanation.
5. Subscribers receive a DocumentCategorizedEvent.

Failure policy:
- ML and entity extraction failures are absorbed inside their strategies.
- MalformedConfigurationError (and any category-manager error) propagates
  and aborts the call.

Weight updates and classifier training happen out of band and take effect on
the next call. train_classifier() must be serialized by the caller.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from categorization_engine.categorization.ensemble import EnsembleCombiner
from categorization_engine.categorization.entity_matcher import (
    EntityExtractor,
    EntityMatcher,
)
from categorization_engine.categorization.events import (
    CategorizationSubscriber,
    DocumentCategorizedEvent,
    EventPublisher,
)
from categorization_engine.categorization.explanation import ExplanationGenerator
from categorization_engine.categorization.keyword_scorer import (
    KeywordScorer,
    remove_stopwords,
    tokenize,
)
from categorization_engine.categorization.ml_scorer import MLScorer
from categorization_engine.categorization.model_store import ModelStore
from categorization_engine.categorization.models import (
    ALL_STRATEGIES,
    STRATEGY_ENTITIES,
    STRATEGY_KEYWORDS,
    STRATEGY_ML,
    STRATEGY_RULES,
    CategorizationResult,
    Document,
    StrategyResult,
    StrategyWeights,
    TrainingExample,
)
from categorization_engine.categorization.rule_evaluator import RuleEvaluator
from categorization_engine.categorization.text_classifier import TextCategoryClassifier
from categorization_engine.categorization.weight_adapter import (
    StrategyFeedback,
    WeightAdapter,
)
from categorization_engine.clients.embedding_client import HttpEmbeddingService
from categorization_engine.clients.llm_client import HttpLLMProvider
from categorization_engine.core.config import Settings, get_settings
from categorization_engine.core.logging import bind_document_context, get_logger
from categorization_engine.core.tracing import (
    ATTR_CATEGORY_COUNT,
    ATTR_DOCUMENT_ID,
    ATTR_RESULT_COUNT,
    SPAN_CATEGORIZE,
    get_tracer,
    strategy_span,
)

if TYPE_CHECKING:
    from categorization_engine.categorization.model_store import ModelSnapshot
    from categorization_engine.categorization.protocols import (
        CategoryManagerProtocol,
        EmbeddingServiceProtocol,
        LLMProviderProtocol,
    )
    from categorization_engine.categorization.text_classifier import (
        TextClassifierProtocol,
    )

logger = get_logger(__name__)
tracer = get_tracer(__name__)

KEYWORD_INDEX_WEIGHT: Final[float] = 1.0

StrategyFn = Callable[[Document], Awaitable[list[StrategyResult]]]


class AutoCategorizationEngine:
    """Multi-strategy ensemble categorizer.

    Example:
        engine = AutoCategorizationEngine(
            category_manager=manager,
            embedding_service=embeddings,
            llm_provider=llm,
        )
        await engine.initialize()
        results = await engine.categorize_document(document, threshold=0.5)
    """

    def __init__(
        self,
        category_manager: CategoryManagerProtocol,
        embedding_service: EmbeddingServiceProtocol | None = None,
        llm_provider: LLMProviderProtocol | None = None,
        classifier: TextClassifierProtocol | None = None,
        model_store: ModelStore | None = None,
        settings: Settings | None = None,
        weights: StrategyWeights | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self._settings = settings if settings is not None else get_settings()
        self._category_manager = category_manager
        self._model_store = model_store
        self._weights = weights if weights is not None else StrategyWeights()
        self._publisher = publisher if publisher is not None else EventPublisher()
        self._initialized = False

        extractor = EntityExtractor(
            llm_provider,
            excerpt_chars=self._settings.entity_excerpt_chars,
            max_tokens=self._settings.llm_max_tokens,
            temperature=self._settings.llm_temperature,
        )
        self.rule_evaluator = RuleEvaluator(category_manager, extractor=extractor)
        self.keyword_scorer = KeywordScorer(
            category_manager, score_normalizer=self._settings.keyword_score_normalizer
        )
        self.ml_scorer = MLScorer(
            category_manager,
            embedding_service,
            classifier=classifier if classifier is not None else TextCategoryClassifier(),
            embedding_char_budget=self._settings.embedding_char_budget,
            neighbor_limit=self._settings.similar_documents_limit,
            classifier_bonus=self._settings.classifier_vote_bonus,
        )
        self.entity_matcher = EntityMatcher(category_manager, extractor)
        self.combiner = EnsembleCombiner(
            default_weight=self._settings.default_strategy_weight
        )
        self.explainer = ExplanationGenerator()
        self.weight_adapter = WeightAdapter()

        self._strategies: dict[str, StrategyFn] = {
            STRATEGY_RULES: self.rule_evaluator.categorize,
            STRATEGY_KEYWORDS: self.keyword_scorer.categorize,
            STRATEGY_ML: self.ml_scorer.categorize,
            STRATEGY_ENTITIES: self.entity_matcher.categorize,
        }

    @classmethod
    def from_settings(
        cls,
        category_manager: CategoryManagerProtocol,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> AutoCategorizationEngine:
        """Build an engine wired to the HTTP collaborators and on-disk model store.

        Endpoints, timeout and model_store_dir come from settings; keyword
        arguments override any constructor argument.
        """
        settings = settings if settings is not None else get_settings()
        kwargs.setdefault("embedding_service", HttpEmbeddingService.from_settings(settings))
        kwargs.setdefault("llm_provider", HttpLLMProvider.from_settings(settings))
        kwargs.setdefault("model_store", ModelStore(Path(settings.model_store_dir)))
        return cls(category_manager, settings=settings, **kwargs)

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def strategy_weights(self) -> StrategyWeights:
        return self._weights

    @property
    def classifier(self) -> TextClassifierProtocol | None:
        return self.ml_scorer.classifier

    def subscribe(self, subscriber: CategorizationSubscriber) -> None:
        self._publisher.subscribe(subscriber)

    def unsubscribe(self, subscriber: CategorizationSubscriber) -> None:
        self._publisher.unsubscribe(subscriber)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load weights, restore the classifier and build the keyword index.

        Idempotent: later calls return immediately.
        """
        if self._initialized:
            return

        try:
            self._load_strategy_weights()
            self._restore_classifier()
            await self.build_keyword_index()
            if self._settings.train_on_initialize:
                await self.load_training_data()
        except Exception as e:
            logger.error("engine_initialize_failed", error=str(e))
            raise

        self._initialized = True
        logger.info(
            "engine_initialized",
            weights=self._weights.as_dict(),
            classifier_trained=bool(self.classifier and self.classifier.is_trained),
        )

    def _load_strategy_weights(self) -> None:
        path_setting = self._settings.strategy_weights_path
        if not path_setting:
            return
        path = Path(path_setting)
        if not path.exists():
            logger.warning("strategy_weights_file_missing", path=str(path))
            return
        self._weights = StrategyWeights.from_yaml(path)
        logger.info("strategy_weights_loaded", path=str(path), weights=self._weights.as_dict())

    def _restore_classifier(self) -> None:
        if self._model_store is None:
            return
        current = self.ml_scorer.classifier
        if not isinstance(current, TextCategoryClassifier) or current.is_trained:
            return
        payload = self._model_store.load(self._settings.classifier_model_name)
        if payload is None:
            return
        self.ml_scorer.classifier = TextCategoryClassifier.from_bytes(payload)
        logger.info(
            "classifier_restored", model_name=self._settings.classifier_model_name
        )

    async def build_keyword_index(self) -> None:
        """Seed each active category's dictionary from its name and description."""
        categories = await self._category_manager.get_categories(is_active=True)
        for category in categories:
            tokens = remove_stopwords(tokenize(f"{category.name} {category.description}"))
            for token in dict.fromkeys(tokens):
                await self._category_manager.add_category_keyword(
                    category.id, token, KEYWORD_INDEX_WEIGHT
                )
        logger.info("keyword_index_built", category_count=len(categories))

    async def load_training_data(self) -> None:
        """Train on confirmed manual categorizations; failures only warn."""
        try:
            examples = await self._category_manager.get_training_examples(
                min_confidence=self._settings.training_min_confidence,
                limit=self._settings.training_limit,
            )
            if examples:
                await self.train_classifier(examples)
        except Exception as e:
            logger.warning("training_data_unavailable", error=str(e))

    # ------------------------------------------------------------------
    # Categorization
    # ------------------------------------------------------------------

    async def _run_strategy(self, name: str, document: Document) -> list[StrategyResult]:
        with strategy_span(tracer, name) as span:
            results = await self._strategies[name](document)
            span.set_attribute(ATTR_RESULT_COUNT, len(results))
            return results

    async def categorize_document(
        self,
        document: Document,
        strategies: str | Sequence[str] | None = None,
        threshold: float | None = None,
        max_categories: int | None = None,
    ) -> list[CategorizationResult]:
        """Categorize a document with the weighted ensemble.

        Args:
            document: Document to categorize.
            strategies: Strategy names to run, or a single name; all four
                when None.
            threshold: Minimum ensemble confidence; settings default when None.
            max_categories: Result cap; settings default when None.

        Returns:
            Results sorted by descending confidence, each with an explanation.

        Raises:
            MalformedConfigurationError: If a rule or pattern is malformed.
        """
        if strategies is None:
            requested = list(ALL_STRATEGIES)
        elif isinstance(strategies, str):
            requested = [strategies]
        else:
            requested = list(strategies)
        unknown = [name for name in requested if name not in self._strategies]
        if unknown:
            logger.warning("unknown_strategies_ignored", strategies=unknown)
        requested = [name for name in dict.fromkeys(requested) if name in self._strategies]

        threshold = self._settings.confidence_threshold if threshold is None else threshold
        max_categories = (
            self._settings.max_categories if max_categories is None else max_categories
        )
        weights = self._weights
        started = time.perf_counter()

        with (
            bind_document_context(document.id),
            tracer.start_as_current_span(SPAN_CATEGORIZE) as span,
        ):
            span.set_attribute(ATTR_DOCUMENT_ID, str(document.id))
            try:
                strategy_results = await asyncio.gather(
                    *(self._run_strategy(name, document) for name in requested)
                )
            except Exception as e:
                logger.error(
                    "categorization_failed",
                    document_id=document.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            combined = self.combiner.combine(
                dict(zip(requested, strategy_results)), weights
            )
            final = [r for r in combined if r.confidence >= threshold][
                : max(max_categories, 0)
            ]
            for result in final:
                result.explanation = self.explainer.explain(result)

            span.set_attribute(ATTR_CATEGORY_COUNT, len(final))

        logger.info(
            "document_categorized",
            document_id=document.id,
            strategies=requested,
            category_count=len(final),
            categories=[r.category_path for r in final],
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        self._publisher.publish(
            DocumentCategorizedEvent(document_id=document.id, categories=tuple(final))
        )
        return final

    # ------------------------------------------------------------------
    # Out-of-band operations
    # ------------------------------------------------------------------

    async def train_classifier(
        self, training_data: Sequence[TrainingExample]
    ) -> ModelSnapshot | None:
        """Train the classifier and persist a snapshot.

        Not safe to run concurrently with itself.

        Returns:
            The stored snapshot, or None without a model store or training data.
        """
        classifier = self.ml_scorer.classifier
        if classifier is None:
            classifier = TextCategoryClassifier()
            self.ml_scorer.classifier = classifier

        classifier.train(training_data)
        logger.info("classifier_trained", example_count=len(training_data))

        if self._model_store is None or not classifier.is_trained:
            return None

        return self._model_store.save(
            self._settings.classifier_model_name,
            classifier.to_bytes(),
            metadata={
                "example_count": len(training_data),
                "trained_at": datetime.now(timezone.utc).isoformat(),
            },
        )

    async def update_strategy_weights(
        self, feedback: Iterable[StrategyFeedback]
    ) -> StrategyWeights:
        """Recompute strategy weights from accuracy feedback.

        Calls already in flight keep the snapshot they started with.
        """
        self._weights = self.weight_adapter.adapt(self._weights, feedback)
        logger.info("strategy_weights_updated", weights=self._weights.as_dict())
        return self._weights
