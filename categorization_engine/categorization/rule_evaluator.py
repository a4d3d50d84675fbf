"""
Rule-based categorization strategy.

Each active category owns a set of rules. Rules are alternative triggers, not
cumulative evidence: a category's score is the maximum over its rules.

Rule types are dispatched through a registry mapping rule_type to an async
evaluator, so a new rule kind is added with @register_rule_type and no change
to RuleEvaluator itself:

- regex:    case-insensitive search, full rule confidence on a hit
- contains: comma-separated keywords, partial credit by coverage
- entity:   JSON entity template, scored by entity_match_ratio
- metadata: JSON conditions on document metadata, partial credit

Unknown rule types score 0. A malformed pattern (invalid regex, unparseable
JSON) raises MalformedConfigurationError and aborts the categorization call.
"""

from __future__ import annotations

import json
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

from categorization_engine.categorization.entity_matcher import (
    EntityExtractor,
    entity_match_ratio,
)
from categorization_engine.categorization.models import (
    STRATEGY_RULES,
    Document,
    Rule,
    StrategyResult,
    parse_entity_template,
)
from categorization_engine.core.exceptions import MalformedConfigurationError

if TYPE_CHECKING:
    from categorization_engine.categorization.protocols import CategoryManagerProtocol

# =============================================================================
# Constants
# =============================================================================

RULE_TYPE_REGEX: Final[str] = "regex"
RULE_TYPE_CONTAINS: Final[str] = "contains"
RULE_TYPE_ENTITY: Final[str] = "entity"
RULE_TYPE_METADATA: Final[str] = "metadata"

OPERATOR_KEY: Final[str] = "operator"
VALUE_KEY: Final[str] = "value"


# =============================================================================
# Evaluation context
# =============================================================================


@dataclass(slots=True)
class RuleContext:
    """Per-call state shared by all rules evaluated for one document.

    Entities are extracted lazily, at most once, and only if an entity rule
    is actually evaluated.
    """

    document: Document
    text: str
    extractor: EntityExtractor | None = None
    _entities: dict[str, list[str]] | None = field(default=None)

    async def entities(self) -> dict[str, list[str]]:
        if self._entities is None:
            if self.extractor is None:
                self._entities = {}
            else:
                self._entities = (await self.extractor.extract(self.document)).by_type()
        return self._entities


RuleEvaluatorFn = Callable[[Rule, RuleContext], Awaitable[float]]

RULE_EVALUATORS: dict[str, RuleEvaluatorFn] = {}


def register_rule_type(rule_type: str) -> Callable[[RuleEvaluatorFn], RuleEvaluatorFn]:
    """Register an evaluator for rule_type.

    Usage:
        @register_rule_type("length")
        async def evaluate_length(rule: Rule, context: RuleContext) -> float:
            ...
    """

    def decorator(fn: RuleEvaluatorFn) -> RuleEvaluatorFn:
        RULE_EVALUATORS[rule_type] = fn
        return fn

    return decorator


def _load_json(rule: Rule) -> Any:
    try:
        return json.loads(rule.pattern)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedConfigurationError(
            f"Unparseable {rule.rule_type} rule pattern {rule.pattern!r}: {e}",
            category_id=rule.category_id,
        ) from e


# =============================================================================
# Built-in rule types
# =============================================================================


@register_rule_type(RULE_TYPE_REGEX)
async def evaluate_regex(rule: Rule, context: RuleContext) -> float:
    try:
        regex = re.compile(rule.pattern, re.IGNORECASE)
    except re.error as e:
        raise MalformedConfigurationError(
            f"Invalid regex rule pattern {rule.pattern!r}: {e}",
            category_id=rule.category_id,
        ) from e
    return rule.confidence if regex.search(context.text) else 0.0


@register_rule_type(RULE_TYPE_CONTAINS)
async def evaluate_contains(rule: Rule, context: RuleContext) -> float:
    keywords = [k.strip() for k in rule.pattern.lower().split(",")]
    keywords = [k for k in keywords if k]
    if not keywords:
        return 0.0
    matches = sum(1 for keyword in keywords if keyword in context.text)
    return (matches / len(keywords)) * rule.confidence


@register_rule_type(RULE_TYPE_ENTITY)
async def evaluate_entity(rule: Rule, context: RuleContext) -> float:
    template = parse_entity_template(rule.pattern, category_id=rule.category_id)
    entities = await context.entities()
    return entity_match_ratio(entities, template) * rule.confidence


@register_rule_type(RULE_TYPE_METADATA)
async def evaluate_metadata(rule: Rule, context: RuleContext) -> float:
    conditions = _load_json(rule)
    if not isinstance(conditions, dict):
        raise MalformedConfigurationError(
            f"Metadata rule pattern must be a JSON object: {rule.pattern!r}",
            category_id=rule.category_id,
        )
    return match_metadata_pattern(context.document.metadata, conditions) * rule.confidence


# =============================================================================
# Metadata matching
# =============================================================================


def match_metadata_pattern(metadata: Mapping[str, Any], pattern: Mapping[str, Any]) -> float:
    """Fraction of pattern conditions satisfied by metadata."""
    if not pattern:
        return 0.0
    matches = sum(
        1 for key, expected in pattern.items() if match_value(metadata.get(key), expected)
    )
    return matches / len(pattern)


def match_value(value: Any, expected: Any) -> bool:
    """Match a metadata value against a literal or an {operator, value} condition.

    String literals match as case-insensitive substrings; other literals by
    equality. A missing value never matches.
    """
    if value is None:
        return False
    if isinstance(expected, str):
        return expected.lower() in str(value).lower()
    if isinstance(expected, dict) and OPERATOR_KEY in expected:
        return evaluate_operator(value, expected[OPERATOR_KEY], expected.get(VALUE_KEY))
    return value == expected


def evaluate_operator(value: Any, operator: str, target: Any) -> bool:
    """Evaluate a comparison; incomparable types never match."""
    try:
        if operator == ">":
            return value > target
        if operator == ">=":
            return value >= target
        if operator == "<":
            return value < target
        if operator == "<=":
            return value <= target
        if operator == "!=":
            return value != target
        if operator == "in":
            return value in target
        if operator == "contains":
            return str(target) in str(value)
    except TypeError:
        return False
    return value == target


# =============================================================================
# RuleEvaluator
# =============================================================================


class RuleEvaluator:
    """Rule strategy: max rule confidence per active category."""

    def __init__(
        self,
        category_manager: CategoryManagerProtocol,
        extractor: EntityExtractor | None = None,
        evaluators: Mapping[str, RuleEvaluatorFn] | None = None,
    ) -> None:
        self._category_manager = category_manager
        self._extractor = extractor
        self._evaluators = evaluators if evaluators is not None else RULE_EVALUATORS

    async def evaluate_rule(self, rule: Rule, context: RuleContext) -> float:
        """Score one rule; unknown rule types score 0."""
        evaluator = self._evaluators.get(rule.rule_type)
        if evaluator is None:
            return 0.0
        return await evaluator(rule, context)

    async def categorize(self, document: Document) -> list[StrategyResult]:
        """Evaluate every active category's rules against the document.

        Raises:
            MalformedConfigurationError: If any rule pattern is malformed.
        """
        context = RuleContext(
            document=document,
            text=document.searchable_text,
            extractor=self._extractor,
        )
        categories = await self._category_manager.get_categories(is_active=True)
        results: list[StrategyResult] = []

        for category in categories:
            rules = await self._category_manager.get_category_rules(category.id)
            max_confidence = 0.0
            matched_rule: Rule | None = None

            for rule in rules:
                confidence = await self.evaluate_rule(rule, context)
                if confidence > max_confidence:
                    max_confidence = confidence
                    matched_rule = rule

            if matched_rule is not None:
                results.append(
                    StrategyResult(
                        category_id=category.id,
                        category_path=category.path,
                        confidence=max_confidence,
                        method=STRATEGY_RULES,
                        details={"rule": matched_rule},
                    )
                )

        return results
