"""HTTP clients implementing the embedding and LLM collaborator protocols."""
from categorization_engine.clients.embedding_client import HttpEmbeddingService
from categorization_engine.clients.llm_client import HttpLLMProvider

__all__ = ["HttpEmbeddingService", "HttpLLMProvider"]
