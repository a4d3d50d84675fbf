"""Shared fixtures: a small taxonomy held by InMemoryCategoryManager."""

from __future__ import annotations

import pytest

from categorization_engine.categorization.category_store import InMemoryCategoryManager
from categorization_engine.categorization.models import Category, Document
from categorization_engine.core.config import Settings

# =============================================================================
# Constants
# =============================================================================

CATEGORY_TECH = 1
CATEGORY_AI = 2
CATEGORY_FINANCE = 3
CATEGORY_ARCHIVED = 4


@pytest.fixture
def taxonomy_manager() -> InMemoryCategoryManager:
    """Manager with three active categories and one inactive category."""
    manager = InMemoryCategoryManager()
    manager.add_category(
        Category(
            id=CATEGORY_TECH,
            path="Technology",
            name="Technology",
            description="Software and programming",
        )
    )
    manager.add_category(
        Category(
            id=CATEGORY_AI,
            path="Technology/AI",
            name="Machine Learning",
            description="Neural networks and models",
        )
    )
    manager.add_category(
        Category(
            id=CATEGORY_FINANCE,
            path="Finance",
            name="Finance",
            description="Markets and banking",
        )
    )
    manager.add_category(
        Category(
            id=CATEGORY_ARCHIVED,
            path="Archive",
            name="Archive",
            is_active=False,
        )
    )
    return manager


@pytest.fixture
def python_document() -> Document:
    return Document(
        id=42,
        title="Intro to Python",
        content="I love python programming. Python is great for scripting.",
        description="A beginner tutorial",
        metadata={"language": "en", "pages": 12, "status": "final"},
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment's training and weights files."""
    return Settings(
        train_on_initialize=False,
        strategy_weights_path=None,
        confidence_threshold=0.0,
        max_categories=5,
    )
