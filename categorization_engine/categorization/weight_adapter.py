"""
WeightAdapter - recomputes strategy weights from labeled feedback.

Per method in the feedback batch:
    accuracy = correct / total
    new weight = accuracy / sum(accuracies of methods in the batch)

Methods absent from the batch keep their weight. An empty batch, or a batch
where every method scored zero accuracy, leaves the weights unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from categorization_engine.categorization.models import StrategyWeights
from categorization_engine.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StrategyFeedback:
    """Whether a strategy's suggestion was confirmed by a reviewer."""

    method: str
    is_correct: bool


@dataclass(slots=True)
class StrategyPerformance:
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


class WeightAdapter:
    """Derives new StrategyWeights from accuracy feedback."""

    @staticmethod
    def analyze(feedback: Iterable[StrategyFeedback]) -> dict[str, StrategyPerformance]:
        """Tally correct/total per method, in first-seen order."""
        performance: dict[str, StrategyPerformance] = {}
        for item in feedback:
            stats = performance.setdefault(item.method, StrategyPerformance())
            stats.total += 1
            if item.is_correct:
                stats.correct += 1
        return performance

    def adapt(
        self, weights: StrategyWeights, feedback: Iterable[StrategyFeedback]
    ) -> StrategyWeights:
        """Return weights updated from feedback; the input is not modified."""
        performance = self.analyze(feedback)
        if not performance:
            return weights

        total_accuracy = sum(stats.accuracy for stats in performance.values())
        if total_accuracy <= 0:
            logger.warning(
                "strategy_weights_unchanged",
                reason="zero_total_accuracy",
                methods=sorted(performance),
            )
            return weights

        return weights.updated(
            {
                method: stats.accuracy / total_accuracy
                for method, stats in performance.items()
            }
        )
