"""Auto-Categorization Engine.

Multi-strategy ensemble classifier that assigns hierarchical categories to
documents by fusing four independent signals:
- Rule matching (regex, contains, entity, metadata rules)
- Keyword TF-IDF scoring against per-category dictionaries
- ML similarity voting (nearest categorized documents + trained classifier)
- Named-entity pattern matching
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
