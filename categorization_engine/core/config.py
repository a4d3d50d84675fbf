"""
Auto-Categorization Engine - Application Configuration

Patterns Applied:
- Pydantic Settings with SettingsConfigDict
- Environment variable prefix ACE_ for Auto-Categorization Engine

Every tunable constant of the categorization pipeline lives here so that
deployments can adjust thresholds and collaborator endpoints without code
changes.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables with ACE_ prefix.
    Example: ACE_CONFIDENCE_THRESHOLD=0.5, ACE_MAX_CATEGORIES=3
    """

    # Application metadata
    service_name: str = "auto-categorization-engine"

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True

    # Tracing configuration
    tracing_enabled: bool = True
    tracing_console_export: bool = False

    # Ensemble configuration
    confidence_threshold: float = 0.6
    max_categories: int = 5
    default_strategy_weight: float = 0.25
    strategy_weights_path: str | None = None

    # Keyword strategy
    keyword_score_normalizer: float = 10.0

    # ML strategy
    embedding_char_budget: int = 8000
    similar_documents_limit: int = 10
    classifier_vote_bonus: float = 0.5

    # Entity strategy
    entity_excerpt_chars: int = 2000
    llm_max_tokens: int = 500
    llm_temperature: float = 0.3

    # Classifier training
    training_min_confidence: float = 0.8
    training_limit: int = 1000
    train_on_initialize: bool = True
    model_store_dir: str = "./cache/models"
    classifier_model_name: str = "category_classifier"

    # Collaborator endpoints
    embedding_service_url: str = "http://localhost:8084"
    llm_provider_url: str = "http://localhost:8085"
    llm_model: str | None = None
    collaborator_timeout: float = 30.0

    model_config = SettingsConfigDict(
        env_prefix="ACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()
