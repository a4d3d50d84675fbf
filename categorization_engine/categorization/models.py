"""
Domain models for the categorization pipeline.

Categories, rules, keywords and entity patterns are read-only inputs owned by
the category manager. StrategyResult is what a single strategy emits;
CategorizationResult is what the ensemble surfaces to callers.

Confidence values are clamped to [0, 1] at construction so every consumer
downstream can rely on the bound.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

import yaml  # type: ignore[import-untyped]

from categorization_engine.core.exceptions import MalformedConfigurationError

# =============================================================================
# Constants
# =============================================================================

STRATEGY_RULES: Final[str] = "rules"
STRATEGY_KEYWORDS: Final[str] = "keywords"
STRATEGY_ML: Final[str] = "ml"
STRATEGY_ENTITIES: Final[str] = "entities"

ALL_STRATEGIES: Final[tuple[str, ...]] = (
    STRATEGY_RULES,
    STRATEGY_KEYWORDS,
    STRATEGY_ML,
    STRATEGY_ENTITIES,
)

DEFAULT_STRATEGY_WEIGHTS: Final[dict[str, float]] = {
    STRATEGY_RULES: 0.3,
    STRATEGY_KEYWORDS: 0.2,
    STRATEGY_ML: 0.3,
    STRATEGY_ENTITIES: 0.2,
}

ENTITY_TYPES: Final[tuple[str, ...]] = (
    "people",
    "organizations",
    "locations",
    "topics",
    "concepts",
)


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value into [0, 1]."""
    return max(0.0, min(float(value), 1.0))


# =============================================================================
# Category configuration (read-only inputs)
# =============================================================================


@dataclass(frozen=True, slots=True)
class Category:
    """A node of the category taxonomy.

    Attributes:
        id: Category identifier.
        path: Materialized hierarchical label, e.g. "Technology/AI".
        name: Display name (last path segment).
        description: Free-text description, used to seed keywords.
        is_active: Inactive categories are never scored.
    """

    id: int
    path: str
    name: str
    description: str = ""
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class Rule:
    """A single rule attached to a category.

    The pattern is interpreted according to rule_type: a regex, a
    comma-separated keyword list, or JSON text for entity and metadata rules.
    confidence caps the score the rule can contribute.
    """

    category_id: int
    rule_type: str
    pattern: str
    confidence: float = 0.8


@dataclass(frozen=True, slots=True)
class CategoryKeyword:
    """A weighted dictionary term for a category."""

    category_id: int
    term: str
    weight: float = 1.0


@dataclass(frozen=True, slots=True)
class EntityPattern:
    """Expected named entities for a category.

    Attributes:
        category_id: Owning category.
        entities: Mapping of entity type (people, organizations, ...) to the
            values expected in a matching document.
        weight: Multiplier applied to the pattern's match ratio.
    """

    category_id: int
    entities: Mapping[str, list[str]]
    weight: float = 1.0

    @classmethod
    def from_json(
        cls, category_id: int, pattern: str, weight: float = 1.0
    ) -> EntityPattern:
        """Build a pattern from its persisted JSON text.

        Raises:
            MalformedConfigurationError: If the JSON cannot be parsed or is
                not an object of lists.
        """
        entities = parse_entity_template(pattern, category_id=category_id)
        return cls(category_id=category_id, entities=entities, weight=weight)


def parse_entity_template(
    pattern: str, category_id: int | None = None
) -> dict[str, list[str]]:
    """Parse an entity template such as {"people": ["Elon Musk"]}.

    Raises:
        MalformedConfigurationError: On invalid JSON or wrong shape.
    """
    try:
        data = json.loads(pattern)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedConfigurationError(
            f"Unparseable entity pattern {pattern!r}: {e}", category_id=category_id
        ) from e

    if not isinstance(data, dict):
        raise MalformedConfigurationError(
            f"Entity pattern must be a JSON object, got {pattern!r}",
            category_id=category_id,
        )

    template: dict[str, list[str]] = {}
    for entity_type, values in data.items():
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, list):
            raise MalformedConfigurationError(
                f"Entity pattern values for {entity_type!r} must be a list",
                category_id=category_id,
            )
        template[entity_type] = [str(v) for v in values]
    return template


# =============================================================================
# Documents
# =============================================================================


@dataclass(slots=True)
class Document:
    """A document to categorize.

    Attributes:
        id: Document identifier.
        title: Document title.
        content: Main body text.
        description: Optional summary.
        metadata: Free-form metadata, matched by metadata rules.
        embedding: Optional precomputed embedding vector.
    """

    id: int | str
    title: str = ""
    content: str = ""
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    embedding: list[float] | None = None

    @property
    def searchable_text(self) -> str:
        """Lowercased title, content and description joined by spaces."""
        return f"{self.title} {self.content} {self.description}".lower()


@dataclass(frozen=True, slots=True)
class SimilarDocument:
    """A previously categorized document returned by nearest-neighbour search.

    Attributes:
        document_id: Identifier of the neighbour.
        similarity: Similarity to the query embedding (higher is closer).
        categories: (category_id, confidence) pairs assigned to the neighbour.
    """

    document_id: int | str
    similarity: float
    categories: tuple[tuple[int, float], ...]


@dataclass(frozen=True, slots=True)
class TrainingExample:
    """Confirmed categorization used to train the text classifier."""

    content: str
    category_id: int


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True, slots=True)
class StrategyResult:
    """A single strategy's verdict for one category."""

    category_id: int
    category_path: str
    confidence: float
    method: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))


@dataclass(slots=True)
class CategorizationResult:
    """Ensemble verdict for one category.

    Attributes:
        category_id: Category identifier.
        category_path: Hierarchical path of the category.
        confidence: Weighted ensemble confidence in [0, 1].
        methods: Strategies that contributed, in the order they were combined.
        details: Per-strategy diagnostic payload keyed by strategy name.
        explanation: Human-readable rationale.
    """

    category_id: int
    category_path: str
    confidence: float = 0.0
    methods: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)
    explanation: str = ""


# =============================================================================
# Strategy weights
# =============================================================================


class StrategyWeights:
    """Immutable snapshot of per-strategy multiplicative coefficients.

    Weights are non-negative and need not sum to 1. Updates produce a new
    snapshot, so a categorization call that captured one instance keeps
    reading consistent values while an update happens.
    """

    __slots__ = ("_weights",)

    def __init__(self, weights: Mapping[str, float] | None = None) -> None:
        source = DEFAULT_STRATEGY_WEIGHTS if weights is None else weights
        for name, value in source.items():
            if value < 0:
                raise ValueError(f"Strategy weight for {name!r} must be >= 0, got {value}")
        self._weights: dict[str, float] = {k: float(v) for k, v in source.items()}

    def get(self, strategy: str, default: float) -> float:
        """Return the weight of a strategy, or default when unset."""
        return self._weights.get(strategy, default)

    def updated(self, changes: Mapping[str, float]) -> StrategyWeights:
        """Return a new snapshot with changes applied on top of this one."""
        merged = dict(self._weights)
        merged.update(changes)
        return StrategyWeights(merged)

    def as_dict(self) -> dict[str, float]:
        return dict(self._weights)

    @classmethod
    def from_yaml(cls, path: Path) -> StrategyWeights:
        """Load weights from a YAML mapping of strategy name to weight.

        Raises:
            MalformedConfigurationError: If the file is not a mapping of numbers.
        """
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        weights = data.get("strategy_weights", data) if isinstance(data, dict) else None
        if not isinstance(weights, dict):
            raise MalformedConfigurationError(f"Invalid strategy weights file: {path}")
        try:
            return cls({str(k): float(v) for k, v in weights.items()})
        except (TypeError, ValueError) as e:
            raise MalformedConfigurationError(
                f"Invalid strategy weights in {path}: {e}"
            ) from e

    def to_yaml(self, path: Path) -> None:
        """Persist weights as YAML under a strategy_weights key."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump({"strategy_weights": self._weights}, f, sort_keys=True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StrategyWeights):
            return NotImplemented
        return self._weights == other._weights

    def __repr__(self) -> str:
        return f"StrategyWeights({self._weights!r})"
