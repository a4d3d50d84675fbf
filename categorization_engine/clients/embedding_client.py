"""
Embedding Service Client.

HTTP implementation of EmbeddingServiceProtocol.

Endpoint: POST {base_url}/v1/embed
Request:  {"text": "string"}
Response: {"embedding": [float, ...]}

Timeouts are the collaborator's concern: the client enforces its own timeout
and converts every transport failure into EmbeddingServiceError. No retries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

import httpx

from categorization_engine.core.exceptions import EmbeddingServiceError

if TYPE_CHECKING:
    from categorization_engine.core.config import Settings

# =============================================================================
# Constants
# =============================================================================

DEFAULT_BASE_URL: Final[str] = "http://localhost:8084"
ENDPOINT_PATH: Final[str] = "/v1/embed"
DEFAULT_TIMEOUT: Final[float] = 30.0
FIELD_EMBEDDING: Final[str] = "embedding"


class HttpEmbeddingService:
    """Calls a remote embedding service.

    Usage:
        service = HttpEmbeddingService(base_url="http://embeddings:8084")
        vector = await service.generate_embedding("some text")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpEmbeddingService:
        """Build from embedding_service_url and collaborator_timeout."""
        return cls(
            base_url=settings.embedding_service_url,
            timeout=settings.collaborator_timeout,
        )

    async def generate_embedding(self, text: str) -> list[float]:
        """Return the embedding vector for text.

        Raises:
            EmbeddingServiceError: On timeout, connection error, non-200
                status, or a response without an embedding.
        """
        url = f"{self._base_url}{ENDPOINT_PATH}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json={"text": text})
        except httpx.TimeoutException as e:
            raise EmbeddingServiceError(f"Timeout calling embedding service: {e}") from e
        except httpx.HTTPError as e:
            raise EmbeddingServiceError(f"HTTP error calling embedding service: {e}") from e

        if response.status_code != 200:
            raise EmbeddingServiceError(
                f"Embedding service returned status {response.status_code}",
                status_code=response.status_code,
            )

        return self._parse_response(response.json())

    def _parse_response(self, data: dict[str, Any]) -> list[float]:
        vector = data.get(FIELD_EMBEDDING) if isinstance(data, dict) else None
        if not isinstance(vector, list) or not vector:
            raise EmbeddingServiceError(
                f"Invalid response from embedding service: missing {FIELD_EMBEDDING!r}"
            )
        return [float(v) for v in vector]
