"""
LLM Provider Client.

HTTP implementation of LLMProviderProtocol against an OpenAI-compatible
completions endpoint.

Endpoint: POST {base_url}/v1/completions
Request:  {"prompt": str, "max_tokens": int, "temperature": float, "model"?: str}
Response: {"choices": [{"text": str}]}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

import httpx

from categorization_engine.core.exceptions import LLMProviderError

if TYPE_CHECKING:
    from categorization_engine.core.config import Settings

# =============================================================================
# Constants
# =============================================================================

DEFAULT_BASE_URL: Final[str] = "http://localhost:8085"
ENDPOINT_PATH: Final[str] = "/v1/completions"
DEFAULT_TIMEOUT: Final[float] = 30.0


class HttpLLMProvider:
    """Calls a remote completion endpoint.

    Usage:
        llm = HttpLLMProvider(base_url="http://inference:8085")
        text = await llm.complete(prompt="...", max_tokens=500, temperature=0.3)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        model: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpLLMProvider:
        return cls(
            base_url=settings.llm_provider_url,
            timeout=settings.collaborator_timeout,
            model=settings.llm_model,
        )

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Return the completion text for prompt.

        Raises:
            LLMProviderError: On timeout, connection error, non-200 status or
                a response without completion text.
        """
        url = f"{self._base_url}{ENDPOINT_PATH}"
        payload: dict[str, Any] = {
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if self.model:
            payload["model"] = self.model

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise LLMProviderError(f"Timeout calling LLM provider: {e}") from e
        except httpx.HTTPError as e:
            raise LLMProviderError(f"HTTP error calling LLM provider: {e}") from e

        if response.status_code != 200:
            raise LLMProviderError(
                f"LLM provider returned status {response.status_code}",
                status_code=response.status_code,
            )

        return self._parse_response(response.json())

    def _parse_response(self, data: dict[str, Any]) -> str:
        try:
            text = data["choices"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMProviderError(f"Invalid response from LLM provider: {data}") from e
        if not isinstance(text, str):
            raise LLMProviderError("LLM provider returned non-text completion")
        return text
