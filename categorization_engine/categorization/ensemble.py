"""
EnsembleCombiner - fuses per-strategy results into ensemble confidences.

For each strategy result:
- confidence += clamp(result.confidence) * weight(strategy)
- the strategy is appended to methods
- details[strategy] = result.details

A category missing from a strategy's list is a no-op for that strategy; it is
never treated as a zero vote. Combination is commutative over strategies.
Output is sorted by confidence descending; ties keep first-encountered order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final

from categorization_engine.categorization.models import (
    CategorizationResult,
    StrategyResult,
    StrategyWeights,
    clamp_confidence,
)

DEFAULT_STRATEGY_WEIGHT: Final[float] = 0.25


class EnsembleCombiner:
    """Weighted-sum ensemble over strategy results."""

    def __init__(self, default_weight: float = DEFAULT_STRATEGY_WEIGHT) -> None:
        self._default_weight = default_weight

    def combine(
        self,
        results: Mapping[str, Sequence[StrategyResult]],
        weights: StrategyWeights,
    ) -> list[CategorizationResult]:
        """Combine strategy results under a weights snapshot.

        Args:
            results: Result lists keyed by the strategy that produced them.
            weights: Weights snapshot for this call.

        Returns:
            Combined results sorted by descending ensemble confidence.
        """
        combined: dict[int, CategorizationResult] = {}

        for strategy, strategy_results in results.items():
            weight = weights.get(strategy, self._default_weight)
            for result in strategy_results:
                entry = combined.get(result.category_id)
                if entry is None:
                    entry = CategorizationResult(
                        category_id=result.category_id,
                        category_path=result.category_path,
                    )
                    combined[result.category_id] = entry

                entry.confidence += clamp_confidence(result.confidence) * weight
                if strategy not in entry.methods:
                    entry.methods.append(strategy)
                entry.details[strategy] = result.details

        for entry in combined.values():
            entry.confidence = clamp_confidence(entry.confidence)

        return sorted(combined.values(), key=lambda r: r.confidence, reverse=True)
