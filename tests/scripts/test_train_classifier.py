"""
Tests for scripts/train_classifier.py.

- Training data loads from an {"examples": [...]} JSON file
- Evaluation reports accuracy, precision, recall, F1 (or is skipped)
- Trained model is stored as a ModelStore version
- main() returns a process exit code
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from categorization_engine.categorization.model_store import ModelStore
from categorization_engine.categorization.models import TrainingExample
from categorization_engine.categorization.text_classifier import TextCategoryClassifier
from scripts.train_classifier import (
    TrainingConfig,
    evaluate_classifier,
    main,
    prepare_training_data,
    train_and_save,
)

# =============================================================================
# Test Fixtures
# =============================================================================

TECH_TEXTS = [
    "python programming code",
    "compiler code generation",
    "software debugging python",
    "code review software",
    "python library packaging",
    "compiler optimization passes",
]
FINANCE_TEXTS = [
    "stock market trading",
    "bank interest rates",
    "dividend stock portfolio",
    "bank loans mortgage",
    "market shares trading",
    "interest rates inflation",
]


@pytest.fixture
def examples() -> list[TrainingExample]:
    return [TrainingExample(t, 1) for t in TECH_TEXTS] + [
        TrainingExample(t, 3) for t in FINANCE_TEXTS
    ]


@pytest.fixture
def training_file(tmp_path: Path) -> Path:
    path = tmp_path / "training_examples.json"
    entries = [{"title": "Tech", "content": t, "category_id": 1} for t in TECH_TEXTS]
    entries += [{"content": t, "category_id": "3"} for t in FINANCE_TEXTS]
    entries.append({"content": "   ", "category_id": 1})
    path.write_text(json.dumps({"examples": entries}))
    return path


@pytest.fixture(autouse=True)
def bootstrap(mocker) -> dict:
    """Keep main() from installing process-wide logging and tracing."""
    return {
        "logging": mocker.patch("scripts.train_classifier.configure_logging_from_settings"),
        "tracing": mocker.patch("scripts.train_classifier.configure_tracing_from_settings"),
    }


# =============================================================================
# Data Loading
# =============================================================================


class TestPrepareTrainingData:
    def test_loads_examples(self, training_file: Path) -> None:
        loaded = prepare_training_data(training_file)

        assert len(loaded) == 12
        assert loaded[0] == TrainingExample("Tech python programming code", 1)
        assert loaded[-1].category_id == 3

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            prepare_training_data(tmp_path / "absent.json")

    def test_bad_category_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"examples": [{"content": "x", "category_id": "abc"}]}))

        with pytest.raises(ValueError):
            prepare_training_data(path)


# =============================================================================
# Evaluation
# =============================================================================


class TestEvaluateClassifier:
    def test_reports_metrics(self, examples: list[TrainingExample]) -> None:
        metrics = evaluate_classifier(examples, TrainingConfig(test_size=0.34))

        assert metrics is not None
        assert metrics.test_count == 5
        for value in (metrics.accuracy, metrics.precision, metrics.recall, metrics.f1_score):
            assert 0.0 <= value <= 1.0

    def test_too_few_examples_skipped(self) -> None:
        assert evaluate_classifier([TrainingExample("x", 1), TrainingExample("y", 2)]) is None

    def test_single_category_skipped(self) -> None:
        examples = [TrainingExample(f"text {i}", 1) for i in range(20)]

        assert evaluate_classifier(examples) is None


# =============================================================================
# Training + Persistence
# =============================================================================


class TestTrainAndSave:
    def test_stores_loadable_snapshot(
        self, examples: list[TrainingExample], tmp_path: Path
    ) -> None:
        store = ModelStore(tmp_path / "models")

        snapshot = train_and_save(examples, store, "clf", metadata={"source": "test"})

        restored = TextCategoryClassifier.from_bytes(store.load("clf"))
        assert snapshot.version == 1
        assert snapshot.metadata == {"source": "test"}
        assert restored.predict("stock trading") == 3


class TestMain:
    def test_success(self, training_file: Path, tmp_path: Path) -> None:
        store_dir = tmp_path / "store"

        exit_code = main(
            ["--input", str(training_file), "--store", str(store_dir), "--model-name", "clf"]
        )

        assert exit_code == 0
        snapshot = ModelStore(store_dir).latest("clf")
        assert snapshot is not None
        assert snapshot.metadata["example_count"] == 12

    def test_configures_logging_and_tracing(
        self, training_file: Path, tmp_path: Path, bootstrap: dict
    ) -> None:
        main(["--input", str(training_file), "--store", str(tmp_path / "store")])

        bootstrap["logging"].assert_called_once()
        bootstrap["tracing"].assert_called_once()
        assert (
            bootstrap["tracing"].call_args.args[0] is bootstrap["logging"].call_args.args[0]
        )

    def test_missing_input_fails(self, tmp_path: Path) -> None:
        exit_code = main(["--input", str(tmp_path / "absent.json"), "--store", str(tmp_path)])

        assert exit_code == 1

    def test_empty_input_fails(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"examples": []}))

        assert main(["--input", str(path), "--store", str(tmp_path)]) == 1
