#!/usr/bin/env python3
"""
Train the category text classifier used by the ML strategy.

This script trains the TF-IDF + naive Bayes classifier on confirmed manual
categorizations and stores the result as a new version in the ModelStore.

Usage:
    python scripts/train_classifier.py --input data/training_examples.json

Input format:
    {"examples": [{"content": "...", "category_id": 3}, ...]}

Output:
    <model_store_dir>/category_classifier/vNNNN-<sha>.joblib + manifest.json

Evaluation reports accuracy, precision, recall and F1 on a held-out split
before the final model is refitted on all examples.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from sklearn.metrics import (  # type: ignore[import-untyped]
    accuracy_score,
    f1_score,
    precision_score,
    recall_score,
)
from sklearn.model_selection import train_test_split  # type: ignore[import-untyped]

from categorization_engine.categorization.model_store import ModelSnapshot, ModelStore
from categorization_engine.categorization.models import TrainingExample
from categorization_engine.categorization.text_classifier import TextCategoryClassifier
from categorization_engine.core.config import get_settings
from categorization_engine.core.logging import configure_logging_from_settings
from categorization_engine.core.tracing import configure_tracing_from_settings

# =============================================================================
# Constants
# =============================================================================

PROJECT_ROOT: Final[Path] = Path(__file__).parent.parent
DEFAULT_INPUT_FILE: Final[Path] = PROJECT_ROOT / "data" / "training_examples.json"
MIN_EXAMPLES_FOR_EVALUATION: Final[int] = 10


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class TrainingConfig:
    """
    Configuration for classifier training.

    Attributes:
        test_size: Fraction of data held out for evaluation (default 0.2).
        random_state: Random seed for reproducibility (default 42).
    """

    test_size: float = 0.2
    random_state: int = 42


@dataclass(frozen=True, slots=True)
class EvaluationMetrics:
    """Weighted evaluation metrics on the held-out split."""

    accuracy: float
    precision: float
    recall: float
    f1_score: float
    test_count: int


# =============================================================================
# Data Loading
# =============================================================================


def prepare_training_data(input_path: Path) -> list[TrainingExample]:
    """
    Load training examples from a JSON file.

    Args:
        input_path: Path to a JSON object with an "examples" list.

    Returns:
        TrainingExample list; entries without content are skipped.

    Raises:
        FileNotFoundError: If the input file doesn't exist.
        ValueError: If an entry has no integer category_id.
    """
    if not input_path.exists():
        raise FileNotFoundError(f"Training data file not found: {input_path}")

    with input_path.open("r", encoding="utf-8") as f:
        data: dict[str, Any] = json.load(f)

    examples: list[TrainingExample] = []
    for entry in data.get("examples", []):
        content = f"{entry.get('title', '')} {entry.get('content', '')}".strip()
        if not content:
            continue
        try:
            category_id = int(entry["category_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid category_id in training entry: {entry}") from e
        examples.append(TrainingExample(content=content, category_id=category_id))
    return examples


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_classifier(
    examples: list[TrainingExample],
    config: TrainingConfig | None = None,
) -> EvaluationMetrics | None:
    """
    Fit on a training split and score the held-out split.

    Returns:
        EvaluationMetrics, or None when there are too few examples or
        fewer than two categories to evaluate meaningfully.
    """
    if config is None:
        config = TrainingConfig()

    labels = [e.category_id for e in examples]
    if len(examples) < MIN_EXAMPLES_FOR_EVALUATION or len(set(labels)) < 2:
        return None

    counts = Counter(labels)
    stratify = labels if min(counts.values()) >= 2 else None
    train, test = train_test_split(
        examples,
        test_size=config.test_size,
        random_state=config.random_state,
        stratify=stratify,
    )

    classifier = TextCategoryClassifier()
    classifier.train(train)
    y_true = [e.category_id for e in test]
    y_pred = [classifier.predict(e.content) for e in test]

    return EvaluationMetrics(
        accuracy=float(accuracy_score(y_true, y_pred)),
        precision=float(precision_score(y_true, y_pred, average="weighted", zero_division=0)),
        recall=float(recall_score(y_true, y_pred, average="weighted", zero_division=0)),
        f1_score=float(f1_score(y_true, y_pred, average="weighted", zero_division=0)),
        test_count=len(test),
    )


# =============================================================================
# Training + Persistence
# =============================================================================


def train_and_save(
    examples: list[TrainingExample],
    store: ModelStore,
    model_name: str,
    metadata: dict[str, Any] | None = None,
) -> ModelSnapshot:
    """Train on all examples and store the snapshot as a new version."""
    classifier = TextCategoryClassifier()
    classifier.train(examples)
    return store.save(model_name, classifier.to_bytes(), metadata=metadata)


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point for training the classifier."""
    settings = get_settings()
    configure_logging_from_settings(settings)
    configure_tracing_from_settings(settings)
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--input", type=Path, default=DEFAULT_INPUT_FILE)
    parser.add_argument("--store", type=Path, default=Path(settings.model_store_dir))
    parser.add_argument("--model-name", default=settings.classifier_model_name)
    args = parser.parse_args(argv)

    print("=" * 60)
    print("Training Category Classifier")
    print("=" * 60)

    print(f"\nLoading training data from: {args.input}")
    try:
        examples = prepare_training_data(args.input)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    if not examples:
        print("ERROR: No usable training examples")
        return 1

    counts = Counter(e.category_id for e in examples)
    print(f"  Total examples: {len(examples):,}")
    print(f"  Categories: {len(counts):,}")

    print("\n" + "-" * 60)
    metrics = evaluate_classifier(examples)
    if metrics is None:
        print("Skipping evaluation (too few examples or categories)")
    else:
        print("Evaluation Results:")
        print(f"  Accuracy:  {metrics.accuracy:.4f}")
        print(f"  Precision: {metrics.precision:.4f}")
        print(f"  Recall:    {metrics.recall:.4f}")
        print(f"  F1 Score:  {metrics.f1_score:.4f}")

    print("\n" + "-" * 60)
    snapshot = train_and_save(
        examples,
        ModelStore(args.store),
        args.model_name,
        metadata={
            "input_file": str(args.input),
            "example_count": len(examples),
            "category_count": len(counts),
            "accuracy": metrics.accuracy if metrics else None,
        },
    )
    print(f"✓ Stored {snapshot.model_name} v{snapshot.version} ({snapshot.sha256[:12]})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
