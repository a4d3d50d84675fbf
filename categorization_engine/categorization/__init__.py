"""Categorization components of the Auto-Categorization Engine."""
from categorization_engine.categorization.category_store import InMemoryCategoryManager
from categorization_engine.categorization.engine import AutoCategorizationEngine
from categorization_engine.categorization.ensemble import EnsembleCombiner
from categorization_engine.categorization.entity_matcher import (
    EntityExtractor,
    EntityMatcher,
    ExtractedEntities,
    FakeLLMProvider,
    basic_entity_extraction,
    entity_match_ratio,
)
from categorization_engine.categorization.events import (
    CategorizationSubscriber,
    DocumentCategorizedEvent,
    EventPublisher,
    RecordingSubscriber,
)
from categorization_engine.categorization.explanation import ExplanationGenerator
from categorization_engine.categorization.keyword_scorer import KeywordScorer
from categorization_engine.categorization.ml_scorer import FakeEmbeddingService, MLScorer
from categorization_engine.categorization.model_store import ModelSnapshot, ModelStore
from categorization_engine.categorization.models import (
    ALL_STRATEGIES,
    Category,
    CategorizationResult,
    CategoryKeyword,
    Document,
    EntityPattern,
    Rule,
    SimilarDocument,
    StrategyResult,
    StrategyWeights,
    TrainingExample,
)
from categorization_engine.categorization.protocols import (
    CategoryManagerProtocol,
    EmbeddingServiceProtocol,
    LLMProviderProtocol,
)
from categorization_engine.categorization.rule_evaluator import (
    RuleContext,
    RuleEvaluator,
    register_rule_type,
)
from categorization_engine.categorization.text_classifier import (
    FakeTextClassifier,
    TextCategoryClassifier,
    TextClassifierProtocol,
)
from categorization_engine.categorization.weight_adapter import (
    StrategyFeedback,
    WeightAdapter,
)

__all__ = [
    "ALL_STRATEGIES",
    "AutoCategorizationEngine",
    "CategorizationResult",
    "CategorizationSubscriber",
    "Category",
    "CategoryKeyword",
    "CategoryManagerProtocol",
    "Document",
    "DocumentCategorizedEvent",
    "EmbeddingServiceProtocol",
    "EnsembleCombiner",
    "EntityExtractor",
    "EntityMatcher",
    "EntityPattern",
    "EventPublisher",
    "ExplanationGenerator",
    "ExtractedEntities",
    "FakeEmbeddingService",
    "FakeLLMProvider",
    "FakeTextClassifier",
    "InMemoryCategoryManager",
    "KeywordScorer",
    "LLMProviderProtocol",
    "MLScorer",
    "ModelSnapshot",
    "ModelStore",
    "RecordingSubscriber",
    "Rule",
    "RuleContext",
    "RuleEvaluator",
    "SimilarDocument",
    "StrategyFeedback",
    "StrategyResult",
    "StrategyWeights",
    "TextCategoryClassifier",
    "TextClassifierProtocol",
    "TrainingExample",
    "WeightAdapter",
    "basic_entity_extraction",
    "entity_match_ratio",
    "register_rule_type",
]
