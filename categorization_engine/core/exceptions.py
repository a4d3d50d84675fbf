"""
Auto-Categorization Engine - Custom Exceptions

Failure taxonomy:
- MalformedConfigurationError: corrupt category configuration (invalid regex,
  unparseable JSON pattern). Propagates out of categorize_document.
- CollaboratorError: embedding or LLM call failed. Absorbed by the strategy
  that made the call, which degrades to an empty result list.

Anti-Patterns Avoided:
- Exception Shadowing: namespaced exceptions instead of builtins like
  ConnectionError or TimeoutError
"""


class CategorizationEngineError(Exception):
    """Base exception for the Auto-Categorization Engine.

    All custom exceptions inherit from this base class.
    """

    pass


class MalformedConfigurationError(CategorizationEngineError):
    """Raised when persisted category configuration cannot be interpreted.

    Attributes:
        category_id: Category whose rule or pattern is broken, when known.
    """

    def __init__(self, message: str, category_id: int | None = None) -> None:
        super().__init__(message)
        self.category_id = category_id


class CollaboratorError(CategorizationEngineError):
    """Raised when an external collaborator call fails.

    Attributes:
        status_code: HTTP status returned by the collaborator, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmbeddingServiceError(CollaboratorError):
    """Raised when the embedding service fails to return a vector."""

    pass


class LLMProviderError(CollaboratorError):
    """Raised when the LLM completion provider fails."""

    pass


class ModelStoreError(CategorizationEngineError):
    """Raised when a classifier snapshot cannot be written or read."""

    pass


class ClassifierNotTrainedError(CategorizationEngineError):
    """Raised when a snapshot is requested from a classifier with no data."""

    pass
