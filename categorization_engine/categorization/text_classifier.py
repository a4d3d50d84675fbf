"""
Standalone text classifier voting for a category in the ML strategy.

A scikit-learn pipeline (TfidfVectorizer + MultinomialNB) trained on confirmed
manual categorizations. Training is incremental in the sense that every call
to train() adds examples to the accumulated corpus and refits on all of it.

Snapshots are joblib-serialized bytes, stored through ModelStore.

train() is not synchronized: it replaces the fitted pipeline as one unit and
callers must not run it concurrently with itself.

AC: Untrained classifier votes None
AC: FakeTextClassifier passes Protocol and returns configured votes
"""

from __future__ import annotations

import io
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import joblib  # type: ignore[import-untyped]
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.naive_bayes import MultinomialNB
from sklearn.pipeline import Pipeline

from categorization_engine.core.exceptions import (
    ClassifierNotTrainedError,
    ModelStoreError,
)
from categorization_engine.core.logging import get_logger

if TYPE_CHECKING:
    from categorization_engine.categorization.models import TrainingExample

logger = get_logger(__name__)

SNAPSHOT_FORMAT_VERSION = 1


# =============================================================================
# Protocol Definition
# =============================================================================


@runtime_checkable
class TextClassifierProtocol(Protocol):
    """Interface of the classifier consulted by MLScorer."""

    @property
    def is_trained(self) -> bool:
        ...

    def predict(self, text: str) -> int | None:
        """Return the voted category id, or None if no vote."""
        ...

    def train(self, examples: Sequence[TrainingExample]) -> None:
        """Add examples and refit."""
        ...

    def to_bytes(self) -> bytes:
        """Serialize the trained state for ModelStore."""
        ...


# =============================================================================
# Implementation
# =============================================================================


class TextCategoryClassifier:
    """Naive Bayes category classifier over TF-IDF features.

    Example:
        >>> classifier = TextCategoryClassifier()
        >>> classifier.train([TrainingExample("neural networks", 1)])
        >>> classifier.predict("deep neural networks")
        1
    """

    __slots__ = ("_texts", "_labels", "_pipeline")

    def __init__(self) -> None:
        self._texts: list[str] = []
        self._labels: list[int] = []
        self._pipeline: Pipeline | None = None

    @property
    def is_trained(self) -> bool:
        return self._pipeline is not None

    @property
    def example_count(self) -> int:
        return len(self._texts)

    @staticmethod
    def _build_pipeline() -> Pipeline:
        return Pipeline(
            [
                ("tfidf", TfidfVectorizer(stop_words="english", sublinear_tf=True)),
                ("nb", MultinomialNB()),
            ]
        )

    def train(self, examples: Sequence[TrainingExample]) -> None:
        """Add examples to the corpus and refit on everything seen so far.

        Examples with blank content are skipped. A corpus left empty keeps
        the classifier untrained. The corpus only grows when the refit
        succeeds; a corpus with no usable vocabulary is logged and leaves
        the classifier unchanged.
        """
        texts = list(self._texts)
        labels = list(self._labels)
        for example in examples:
            if example.content and example.content.strip():
                texts.append(example.content)
                labels.append(int(example.category_id))

        if not texts:
            return

        pipeline = self._build_pipeline()
        try:
            pipeline.fit(texts, labels)
        except ValueError:
            # Only stopwords in the whole corpus; retry keeping them
            pipeline.set_params(tfidf__stop_words=None)
            try:
                pipeline.fit(texts, labels)
            except ValueError as e:
                logger.warning(
                    "classifier_training_skipped",
                    reason="empty_vocabulary",
                    example_count=len(texts),
                    error=str(e),
                )
                return

        self._texts = texts
        self._labels = labels
        self._pipeline = pipeline

    def predict(self, text: str) -> int | None:
        if self._pipeline is None or not text:
            return None
        return int(self._pipeline.predict([text])[0])

    def to_bytes(self) -> bytes:
        """Serialize corpus and fitted pipeline with joblib.

        Raises:
            ClassifierNotTrainedError: If nothing has been trained yet.
        """
        if self._pipeline is None:
            raise ClassifierNotTrainedError("Cannot snapshot an untrained classifier")
        buffer = io.BytesIO()
        joblib.dump(
            {
                "format_version": SNAPSHOT_FORMAT_VERSION,
                "texts": self._texts,
                "labels": self._labels,
                "pipeline": self._pipeline,
            },
            buffer,
        )
        return buffer.getvalue()

    @classmethod
    def from_bytes(cls, payload: bytes) -> TextCategoryClassifier:
        """Restore a classifier from to_bytes() output.

        Raises:
            ModelStoreError: If the payload is not a classifier snapshot.
        """
        try:
            data: dict[str, Any] = joblib.load(io.BytesIO(payload))
        except Exception as e:
            raise ModelStoreError(f"Failed to load classifier snapshot: {e}") from e

        if not isinstance(data, dict) or data.get("format_version") != SNAPSHOT_FORMAT_VERSION:
            raise ModelStoreError("Unsupported classifier snapshot format")

        classifier = cls()
        classifier._texts = list(data["texts"])
        classifier._labels = list(data["labels"])
        classifier._pipeline = data["pipeline"]
        return classifier


# =============================================================================
# Fake Classifier for Testing
# =============================================================================


class FakeTextClassifier:
    """Test double voting from a substring → category map.

    Usage:
        fake = FakeTextClassifier(votes={"neural": 3})
        fake.predict("a neural network")  # 3
    """

    def __init__(
        self,
        votes: Mapping[str, int] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._votes = dict(votes or {})
        self._error = error
        self.trained_examples: list[TrainingExample] = []

    @property
    def is_trained(self) -> bool:
        return bool(self._votes) or bool(self.trained_examples)

    def predict(self, text: str) -> int | None:
        if self._error is not None:
            raise self._error
        for needle, category_id in self._votes.items():
            if needle in text:
                return category_id
        return None

    def train(self, examples: Sequence[TrainingExample]) -> None:
        self.trained_examples.extend(examples)

    def to_bytes(self) -> bytes:
        return repr(sorted(self._votes.items())).encode("utf-8")
