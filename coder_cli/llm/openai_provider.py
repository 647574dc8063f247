"""OpenAI provider - direct HTTP calls to the Chat Completions API."""

import json
from typing import Any

import httpx

from coder_cli.exceptions import ConfigurationError, LLMAPIError, LLMError, LLMRateLimitError
from coder_cli.llm.base import LLMProvider, LLMRequest, LLMResponse, TokenUsage
from coder_cli.logging import get_logger

log = get_logger(__name__)


OPENAI_BASE_URL = "https://api.openai.com/v1"

# Reasoning models only accept the default temperature.
_FIXED_TEMPERATURE_PREFIXES = ("o1", "o3", "o4")


def supports_temperature(model: str) -> bool:
    """Whether the model accepts a custom sampling temperature."""
    name = model.strip().lower().rsplit("/", 1)[-1]
    return not name.startswith(_FIXED_TEMPERATURE_PREFIXES)


class OpenAIProvider(LLMProvider):
    """Chat Completions provider."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            base_url: API base URL (override for compatible gateways)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        if not api_key:
            raise ConfigurationError("API key is required for the OpenAI provider")
        self.api_key = api_key
        self.base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def _build_body(self, request: LLMRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if supports_temperature(request.model):
            body["temperature"] = request.temperature
        if request.max_tokens:
            body["max_tokens"] = request.max_tokens
        body.update(request.extra)
        return body

    async def send_request(self, request: LLMRequest) -> LLMResponse:
        """Send one chat completion request."""
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            log.debug("Calling OpenAI", model=request.model, url=url)
            response = await self.client.post(url, json=self._build_body(request), headers=headers)
        except httpx.HTTPError as e:
            raise LLMAPIError(f"OpenAI HTTP error: {e}") from e

        log.debug("OpenAI response status", status=response.status_code)

        if response.status_code == 429:
            log.error("OpenAI API error", status=response.status_code, body=response.text)
            raise LLMRateLimitError("OpenAI API rate limit exceeded. Retry after a short delay.")
        if not response.is_success:
            log.error("OpenAI API error", status=response.status_code, body=response.text)
            raise LLMAPIError(
                f"OpenAI API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"] or ""
        except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"OpenAI response decode error: {e}") from e

        usage_data = data.get("usage") or {}
        usage = TokenUsage(
            prompt=int(usage_data.get("prompt_tokens", 0)),
            completion=int(usage_data.get("completion_tokens", 0)),
            total=int(usage_data.get("total_tokens", 0)),
        )

        return LLMResponse(
            content=content,
            usage=usage,
            model=str(data.get("model", request.model)),
            id=str(data.get("id", "")),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
