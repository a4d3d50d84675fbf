"""Human-readable rationale for an ensemble result."""

from __future__ import annotations

from categorization_engine.categorization.models import (
    STRATEGY_ENTITIES,
    STRATEGY_KEYWORDS,
    STRATEGY_ML,
    STRATEGY_RULES,
    CategorizationResult,
)

SEPARATOR = "; "


class ExplanationGenerator:
    """Builds explanations only from the strategy details actually present."""

    def explain(self, result: CategorizationResult) -> str:
        details = result.details
        fragments: list[str] = []

        rule_details = details.get(STRATEGY_RULES)
        if rule_details and rule_details.get("rule") is not None:
            fragments.append(f"Matched rule: {rule_details['rule'].pattern}")

        keyword_details = details.get(STRATEGY_KEYWORDS)
        if keyword_details and keyword_details.get("matched_keywords"):
            fragments.append(f"Keywords: {', '.join(keyword_details['matched_keywords'])}")

        ml_details = details.get(STRATEGY_ML)
        if ml_details and "similarity_score" in ml_details:
            fragments.append(
                f"Similar to {ml_details['similarity_score']:.2f} categorized documents"
            )

        entity_details = details.get(STRATEGY_ENTITIES)
        if entity_details and entity_details.get("match_count", 0) > 0:
            fragments.append(f"Matched {entity_details['match_count']} entity patterns")

        if not fragments and result.methods:
            fragments.append(f"Matched by {', '.join(result.methods)}")

        return SEPARATOR.join(fragments)
