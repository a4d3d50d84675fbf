"""
Tests for entity extraction and EntityMatcher.

- LLM responses are validated into ExtractedEntities
- Provider failures fall back to heuristic extraction
- Heuristic extraction classifies capitalized runs
- Pattern matching is case-insensitive substring per entity type
"""

from __future__ import annotations

import pytest

from categorization_engine.categorization.category_store import InMemoryCategoryManager
from categorization_engine.categorization.entity_matcher import (
    EntityExtractor,
    EntityMatcher,
    ExtractedEntities,
    FakeLLMProvider,
    basic_entity_extraction,
    entity_match_ratio,
    parse_entity_response,
)
from categorization_engine.categorization.models import Document, EntityPattern
from categorization_engine.core.exceptions import (
    LLMProviderError,
    MalformedConfigurationError,
)

from conftest import CATEGORY_AI, CATEGORY_ARCHIVED, CATEGORY_TECH

# =============================================================================
# Constants
# =============================================================================

HEURISTIC_TEXT = (
    "Dr. Jane Doe joined Acme Corp in New York City. "
    "John Smith spoke about Kubernetes."
)
LLM_RESPONSE = '{"people": ["Sam Altman"], "organizations": ["OpenAI"], "topics": ["AGI"]}'


# =============================================================================
# Response parsing
# =============================================================================


class TestParseEntityResponse:
    def test_plain_json(self) -> None:
        entities = parse_entity_response(LLM_RESPONSE)

        assert entities.people == ["Sam Altman"]
        assert entities.organizations == ["OpenAI"]
        assert entities.concepts == []

    def test_json_inside_code_fence(self) -> None:
        raw = f"Here you go:\n```json\n{LLM_RESPONSE}\n```"

        assert parse_entity_response(raw).topics == ["AGI"]

    def test_no_json_raises(self) -> None:
        with pytest.raises(LLMProviderError):
            parse_entity_response("I cannot help with that.")

    def test_wrong_shape_raises(self) -> None:
        with pytest.raises(LLMProviderError):
            parse_entity_response('{"people": "not a list"}')

    def test_by_type_covers_every_entity_type(self) -> None:
        assert set(ExtractedEntities().by_type()) == {
            "people",
            "organizations",
            "locations",
            "topics",
            "concepts",
        }


# =============================================================================
# Heuristic extraction
# =============================================================================


class TestBasicEntityExtraction:
    def test_classifies_capitalized_runs(self) -> None:
        entities = basic_entity_extraction(HEURISTIC_TEXT)

        assert entities.people == ["Dr. Jane Doe", "John Smith"]
        assert entities.organizations == ["Acme Corp"]
        assert entities.locations == ["New York City"]
        assert entities.topics == ["Kubernetes"]

    def test_single_stopword_run_is_ignored(self) -> None:
        entities = basic_entity_extraction("The model works. In practice it scales.")

        assert all("The" not in values and "In" not in values for values in entities.by_type().values())

    def test_comma_ends_run(self) -> None:
        entities = basic_entity_extraction("We met Globex Inc, Initech Ltd and others.")

        assert entities.organizations == ["Globex Inc", "Initech Ltd"]

    def test_empty_text(self) -> None:
        assert basic_entity_extraction("") == ExtractedEntities()


class TestEntityExtractor:
    @pytest.mark.asyncio
    async def test_uses_llm_response(self) -> None:
        llm = FakeLLMProvider(response=LLM_RESPONSE)

        entities = await EntityExtractor(llm).extract(Document(id=1, content="text"))

        assert entities.organizations == ["OpenAI"]

    @pytest.mark.asyncio
    async def test_prompt_uses_content_excerpt(self) -> None:
        llm = FakeLLMProvider(response="{}")

        await EntityExtractor(llm, excerpt_chars=5).extract(
            Document(id=1, content="abcdefghij")
        )

        assert "abcde" in llm.prompts[0]
        assert "abcdef" not in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_provider_error_falls_back_to_heuristic(self) -> None:
        llm = FakeLLMProvider(error=LLMProviderError("timeout"))

        entities = await EntityExtractor(llm).extract(Document(id=1, content=HEURISTIC_TEXT))

        assert entities.organizations == ["Acme Corp"]

    @pytest.mark.asyncio
    async def test_garbage_response_falls_back_to_heuristic(self) -> None:
        llm = FakeLLMProvider(response="not json at all")

        entities = await EntityExtractor(llm).extract(Document(id=1, content=HEURISTIC_TEXT))

        assert entities.locations == ["New York City"]

    @pytest.mark.asyncio
    async def test_no_provider_uses_heuristic(self) -> None:
        entities = await EntityExtractor(None).extract(Document(id=1, content=HEURISTIC_TEXT))

        assert entities.people == ["Dr. Jane Doe", "John Smith"]


# =============================================================================
# Matching
# =============================================================================


class TestEntityMatchRatio:
    def test_substring_case_insensitive(self) -> None:
        entities = {"organizations": ["OpenAI Inc"], "people": []}
        template = {"organizations": ["openai"], "people": ["Sam Altman"]}

        assert entity_match_ratio(entities, template) == pytest.approx(0.5)

    def test_type_must_match(self) -> None:
        entities = {"people": ["Tesla"]}

        assert entity_match_ratio(entities, {"organizations": ["Tesla"]}) == 0.0

    def test_empty_template(self) -> None:
        assert entity_match_ratio({"people": ["Ada"]}, {}) == 0.0


class TestEntityMatcher:
    @pytest.mark.asyncio
    async def test_averages_positive_patterns(
        self, taxonomy_manager: InMemoryCategoryManager
    ) -> None:
        taxonomy_manager.add_entity_pattern(
            EntityPattern(CATEGORY_AI, {"organizations": ["OpenAI"]}, weight=1.0)
        )
        taxonomy_manager.add_entity_pattern(
            EntityPattern(CATEGORY_AI, {"people": ["Sam Altman", "Ilya"]}, weight=0.8)
        )
        taxonomy_manager.add_entity_pattern(
            EntityPattern(CATEGORY_AI, {"locations": ["Paris"]}, weight=1.0)
        )
        matcher = EntityMatcher(taxonomy_manager, EntityExtractor(FakeLLMProvider(LLM_RESPONSE)))

        results = await matcher.categorize(Document(id=1, content="text"))

        assert len(results) == 1
        # (1.0 * 1.0 + 0.5 * 0.8) / 2 positive patterns
        assert results[0].confidence == pytest.approx(0.7)
        assert results[0].details["match_count"] == 2
        assert results[0].details["matched_entities"]["organizations"] == ["OpenAI"]
        assert results[0].method == "entities"

    @pytest.mark.asyncio
    async def test_no_patterns_no_results(
        self, taxonomy_manager: InMemoryCategoryManager
    ) -> None:
        matcher = EntityMatcher(taxonomy_manager, EntityExtractor(FakeLLMProvider(LLM_RESPONSE)))

        assert await matcher.categorize(Document(id=1, content="text")) == []

    @pytest.mark.asyncio
    async def test_inactive_category_skipped(
        self, taxonomy_manager: InMemoryCategoryManager
    ) -> None:
        taxonomy_manager.add_entity_pattern(
            EntityPattern(CATEGORY_ARCHIVED, {"organizations": ["OpenAI"]})
        )
        matcher = EntityMatcher(taxonomy_manager, EntityExtractor(FakeLLMProvider(LLM_RESPONSE)))

        assert await matcher.categorize(Document(id=1, content="text")) == []


class TestEntityPatternFromJson:
    def test_string_value_becomes_list(self) -> None:
        pattern = EntityPattern.from_json(CATEGORY_TECH, '{"organizations": "Google"}')

        assert pattern.entities == {"organizations": ["Google"]}

    def test_non_object_raises(self) -> None:
        with pytest.raises(MalformedConfigurationError) as exc_info:
            EntityPattern.from_json(CATEGORY_TECH, '["Google"]')

        assert exc_info.value.category_id == CATEGORY_TECH
