"""
Entity extraction and entity-pattern matching.

Extraction asks the LLM collaborator for a JSON object of people,
organizations, locations, topics and concepts. If the provider fails, times
out, or returns something that is not valid JSON of that shape, a heuristic
extractor takes over: runs of capitalized words are classified by honorifics,
corporate suffixes and location nouns.

Matching compares extracted entities against each category's entity-pattern
templates. A pattern value matches when it is a case-insensitive substring of
any extracted entity of the same type.

Pattern: Protocol-based fakes (FakeLLMProvider)
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Final

from pydantic import BaseModel, ValidationError
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from categorization_engine.categorization.models import (
    ENTITY_TYPES,
    STRATEGY_ENTITIES,
    Document,
    StrategyResult,
)
from categorization_engine.core.exceptions import LLMProviderError
from categorization_engine.core.logging import get_logger

if TYPE_CHECKING:
    from categorization_engine.categorization.protocols import (
        CategoryManagerProtocol,
        LLMProviderProtocol,
    )

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_EXCERPT_CHARS: Final[int] = 2000
DEFAULT_MAX_TOKENS: Final[int] = 500
DEFAULT_TEMPERATURE: Final[float] = 0.3

EXTRACTION_PROMPT_TEMPLATE: Final[str] = """Extract key entities from the following text. Return a JSON object with arrays for: people, organizations, locations, topics, and concepts.

Text: {text}

Return only valid JSON."""

HONORIFICS: Final[tuple[str, ...]] = ("Mr", "Mrs", "Ms", "Dr", "Prof")
ORGANIZATION_SUFFIXES: Final[frozenset[str]] = frozenset(
    {"Inc", "Corp", "LLC", "Ltd", "Company", "Corporation", "Group"}
)
LOCATION_NOUNS: Final[frozenset[str]] = frozenset(
    {"City", "County", "State", "Country", "Street", "Avenue", "Road"}
)

# Sentence ends at . ! ? unless the period closes an honorific
SENTENCE_BOUNDARY: Final[re.Pattern[str]] = re.compile(
    r"(?<!\bMr)(?<!\bMrs)(?<!\bMs)(?<!\bDr)(?<!\bProf)[.!?]+(?=\s|$)"
)
HONORIFIC_PREFIX: Final[re.Pattern[str]] = re.compile(
    r"^(?:" + "|".join(HONORIFICS) + r")\.\s"
)
FIRST_LAST_NAME: Final[re.Pattern[str]] = re.compile(r"^[A-Z][a-z]+ [A-Z][a-z]+$")
WORD_PUNCTUATION: Final[str] = ",;:\"'()[]{}"
JSON_OBJECT: Final[re.Pattern[str]] = re.compile(r"\{.*\}", re.DOTALL)


# =============================================================================
# Data Classes
# =============================================================================


class ExtractedEntities(BaseModel):
    """Typed entities found in a document."""

    people: list[str] = []
    organizations: list[str] = []
    locations: list[str] = []
    topics: list[str] = []
    concepts: list[str] = []

    def by_type(self) -> dict[str, list[str]]:
        return {entity_type: list(getattr(self, entity_type)) for entity_type in ENTITY_TYPES}


# =============================================================================
# Extraction
# =============================================================================


def parse_entity_response(raw: str) -> ExtractedEntities:
    """Validate an LLM completion into ExtractedEntities.

    Tolerates prose or code fences around the JSON object.

    Raises:
        LLMProviderError: If no valid entity object can be parsed.
    """
    match = JSON_OBJECT.search(raw or "")
    if match is None:
        raise LLMProviderError(f"No JSON object in entity response: {raw[:200]!r}")
    try:
        return ExtractedEntities.model_validate_json(match.group(0))
    except ValidationError as e:
        raise LLMProviderError(f"Invalid entity response: {e}") from e


def _classify_run(entity: str) -> str:
    """Assign an entity type to a run of capitalized words."""
    words = entity.split()
    if HONORIFIC_PREFIX.match(entity):
        return "people"
    if words[-1].rstrip(".") in ORGANIZATION_SUFFIXES:
        return "organizations"
    if any(word.rstrip(".") in LOCATION_NOUNS for word in words):
        return "locations"
    if FIRST_LAST_NAME.match(entity):
        return "people"
    return "topics"


def _is_capitalized(word: str) -> bool:
    return bool(word) and word[0].isupper()


def basic_entity_extraction(text: str) -> ExtractedEntities:
    """Heuristic entity extraction from capitalization patterns.

    Each sentence is scanned for runs of consecutive capitalized words. A run
    made of a single stopword ("The", "In") is ignored.
    """
    found: dict[str, list[str]] = {entity_type: [] for entity_type in ENTITY_TYPES}

    for sentence in SENTENCE_BOUNDARY.split(text):
        run: list[str] = []
        # Trailing sentinel flushes a run that ends the sentence
        for raw_word in [*sentence.split(), ""]:
            word = raw_word.strip(WORD_PUNCTUATION)
            if _is_capitalized(word):
                run.append(word)
                # A comma or similar ends the run after this word
                if raw_word.rstrip(WORD_PUNCTUATION) != raw_word:
                    _flush_run(run, found)
                    run = []
                continue
            _flush_run(run, found)
            run = []

    return ExtractedEntities(**found)


def _flush_run(run: list[str], found: dict[str, list[str]]) -> None:
    if not run:
        return
    entity = " ".join(run)
    if len(run) == 1 and entity.lower() in ENGLISH_STOP_WORDS:
        return
    found[_classify_run(entity)].append(entity)


class EntityExtractor:
    """Extracts typed entities with an LLM, falling back to heuristics.

    Extraction never raises: provider failures are logged and answered by
    basic_entity_extraction().
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol | None,
        excerpt_chars: int = DEFAULT_EXCERPT_CHARS,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self._llm_provider = llm_provider
        self._excerpt_chars = excerpt_chars
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def extract(self, document: Document) -> ExtractedEntities:
        """Extract entities from the document content."""
        content = document.content or ""
        if self._llm_provider is None:
            return basic_entity_extraction(content)

        prompt = EXTRACTION_PROMPT_TEMPLATE.format(text=content[: self._excerpt_chars])
        try:
            response = await self._llm_provider.complete(
                prompt=prompt,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
            return parse_entity_response(response)
        except Exception as e:
            logger.warning(
                "entity_extraction_failed",
                document_id=document.id,
                error=str(e),
                fallback="heuristic",
            )
            return basic_entity_extraction(content)


# =============================================================================
# Matching
# =============================================================================


def entity_match_ratio(
    entities: Mapping[str, Sequence[str]], template: Mapping[str, Sequence[str]]
) -> float:
    """Fraction of template values found among extracted entities.

    Args:
        entities: Extracted entities keyed by type.
        template: Expected entities keyed by type.

    Returns:
        matches / total template values, or 0.0 for an empty template.
    """
    matches = 0
    total = 0
    for entity_type, expected_values in template.items():
        total += len(expected_values)
        extracted = [e.lower() for e in entities.get(entity_type, [])]
        for expected in expected_values:
            needle = expected.lower()
            if any(needle in candidate for candidate in extracted):
                matches += 1
    return matches / total if total > 0 else 0.0


class EntityMatcher:
    """Entity strategy: scores categories by their entity-pattern templates."""

    def __init__(
        self,
        category_manager: CategoryManagerProtocol,
        extractor: EntityExtractor,
    ) -> None:
        self._category_manager = category_manager
        self._extractor = extractor

    async def categorize(self, document: Document) -> list[StrategyResult]:
        """Score every active category against the document's entities.

        The confidence of a category is the mean of ratio * pattern weight
        over its patterns with a positive ratio. Categories without any
        positive pattern are omitted.
        """
        entities = (await self._extractor.extract(document)).by_type()
        categories = await self._category_manager.get_categories(is_active=True)
        results: list[StrategyResult] = []

        for category in categories:
            patterns = await self._category_manager.get_category_entity_patterns(
                category.id
            )
            total_score = 0.0
            match_count = 0
            for pattern in patterns:
                ratio = entity_match_ratio(entities, pattern.entities)
                if ratio > 0:
                    total_score += ratio * pattern.weight
                    match_count += 1

            if match_count > 0:
                results.append(
                    StrategyResult(
                        category_id=category.id,
                        category_path=category.path,
                        confidence=total_score / match_count,
                        method=STRATEGY_ENTITIES,
                        details={
                            "matched_entities": entities,
                            "match_count": match_count,
                        },
                    )
                )

        return results


# =============================================================================
# Test Double
# =============================================================================


class FakeLLMProvider:
    """Fake LLM provider returning a canned completion or raising an error.

    Usage:
        fake = FakeLLMProvider(response='{"people": ["Ada Lovelace"]}')
        text = await fake.complete(prompt="...", max_tokens=500, temperature=0.3)
    """

    def __init__(
        self,
        response: str = "{}",
        error: Exception | None = None,
    ) -> None:
        self._response = response
        self._error = error
        self.prompts: list[str] = []

    async def complete(
        self, prompt: str, max_tokens: int, temperature: float  # noqa: ARG002
    ) -> str:
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        return self._response
