"""
Keyword TF-IDF categorization strategy.

The document is tokenized, lowercased and stripped of English stopwords, then
a single-document TfidfVectorizer is fitted over the remaining tokens. Each
active category scores sum(tfidf(term) * keyword weight) over its keyword
dictionary; the sum is divided by a normalizer and clamped to [0, 1].

Categories with no dictionary hits are omitted from the result list.

Architecture: Service Layer Pattern
- Stopwords come from scikit-learn's ENGLISH_STOP_WORDS
- Multi-word keyword terms score the sum of their token scores
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS, TfidfVectorizer

from categorization_engine.categorization.models import (
    STRATEGY_KEYWORDS,
    Document,
    StrategyResult,
)

if TYPE_CHECKING:
    from categorization_engine.categorization.protocols import CategoryManagerProtocol

# =============================================================================
# Module Constants
# =============================================================================

DEFAULT_SCORE_NORMALIZER: Final[float] = 10.0
EMPTY_DOCUMENT_TOKEN: Final[str] = "empty"
TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens of text."""
    return TOKEN_PATTERN.findall(text.lower())


def remove_stopwords(tokens: list[str]) -> list[str]:
    return [token for token in tokens if token not in ENGLISH_STOP_WORDS]


def _identity(tokens: list[str]) -> list[str]:
    return tokens


class DocumentTfidfIndex:
    """TF-IDF index over a single pre-tokenized document.

    Example:
        >>> index = DocumentTfidfIndex(["python", "code", "python"])
        >>> index.score("python") > index.score("code")
        True
    """

    __slots__ = ("_scores",)

    def __init__(self, tokens: list[str]) -> None:
        vectorizer = TfidfVectorizer(analyzer=_identity, norm=None)
        matrix = vectorizer.fit_transform([tokens or [EMPTY_DOCUMENT_TOKEN]])
        row = matrix.toarray()[0]
        self._scores: dict[str, float] = {
            term: float(row[column]) for term, column in vectorizer.vocabulary_.items()
        }

    def score(self, term: str) -> float:
        """TF-IDF of term; multi-word terms sum the scores of their tokens."""
        return sum(self._scores.get(token, 0.0) for token in tokenize(term))


class KeywordScorer:
    """Keyword strategy: TF-IDF match against category keyword dictionaries."""

    def __init__(
        self,
        category_manager: CategoryManagerProtocol,
        score_normalizer: float = DEFAULT_SCORE_NORMALIZER,
    ) -> None:
        self._category_manager = category_manager
        self._score_normalizer = score_normalizer

    async def categorize(self, document: Document) -> list[StrategyResult]:
        """Score every active category's keyword dictionary against document."""
        tokens = remove_stopwords(tokenize(document.searchable_text))
        index = DocumentTfidfIndex(tokens)

        categories = await self._category_manager.get_categories(is_active=True)
        results: list[StrategyResult] = []

        for category in categories:
            keywords = await self._category_manager.get_category_keywords(category.id)
            score = 0.0
            matched: list[str] = []
            for keyword in keywords:
                term_score = index.score(keyword.term)
                if term_score > 0:
                    score += term_score * keyword.weight
                    matched.append(keyword.term)

            if score > 0:
                results.append(
                    StrategyResult(
                        category_id=category.id,
                        category_path=category.path,
                        confidence=min(score / self._score_normalizer, 1.0),
                        method=STRATEGY_KEYWORDS,
                        details={"score": score, "matched_keywords": matched},
                    )
                )

        return results
