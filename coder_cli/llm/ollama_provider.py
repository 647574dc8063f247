"""Ollama provider - direct HTTP calls to Ollama API."""

import json
from typing import Any

import httpx

from coder_cli.exceptions import LLMAPIError, LLMError, LLMRateLimitError
from coder_cli.llm.base import LLMProvider, LLMRequest, LLMResponse, TokenUsage
from coder_cli.logging import get_logger

log = get_logger(__name__)


OLLAMA_NATIVE_BASE_URL = "http://127.0.0.1:11434"


class OllamaProvider(LLMProvider):
    """Direct Ollama API provider."""

    name = "ollama"

    def __init__(
        self,
        base_url: str = OLLAMA_NATIVE_BASE_URL,
        api_key: str | None = None,
        timeout: float = 120.0,
        num_ctx: int = 65536,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Ollama provider.

        Args:
            base_url: Ollama API base URL
            api_key: Optional API key (Ollama usually doesn't need one locally)
            timeout: Request timeout in seconds
            num_ctx: Context window requested from the server
            transport: Optional httpx transport
        """
        self.base_url = (base_url or OLLAMA_NATIVE_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.num_ctx = num_ctx
        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def send_request(self, request: LLMRequest) -> LLMResponse:
        """Generate a non-streaming chat completion."""
        url = f"{self.base_url}/api/chat"

        options: dict[str, Any] = {
            "num_ctx": self.num_ctx,
            "temperature": request.temperature,
        }
        if request.max_tokens:
            options["num_predict"] = request.max_tokens
        options.update(request.extra)

        body: dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "stream": False,
            "options": options,
        }

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            log.debug("Calling Ollama", model=request.model, url=url)
            response = await self.client.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise LLMAPIError(f"Ollama HTTP error: {e}") from e

        log.debug("Ollama response status", status=response.status_code)

        if response.status_code == 429:
            raise LLMRateLimitError(f"Ollama API rate limit exceeded: {response.text}")
        if not response.is_success:
            raise LLMAPIError(
                f"Ollama API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise LLMError(f"Ollama response decode error: {e}") from e

        content = (data.get("message") or {}).get("content", "") or ""
        prompt_tokens = int(data.get("prompt_eval_count", 0) or 0)
        completion_tokens = int(data.get("eval_count", 0) or 0)

        return LLMResponse(
            content=content,
            usage=TokenUsage(
                prompt=prompt_tokens,
                completion=completion_tokens,
                total=prompt_tokens + completion_tokens,
            ),
            model=str(data.get("model", request.model)),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
