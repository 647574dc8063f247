"""LLM client: rate-limited prompt dispatch and JSON extraction."""

import json
from typing import Any

import structlog

from coder_cli.exceptions import InvalidJSONError, LLMRequestError
from coder_cli.llm.base import LLMProvider, LLMRequest, LLMResponse
from coder_cli.llm.tokenizer import Tokenizer
from coder_cli.logging import get_logger
from coder_cli.rate_limiter import RateLimiter

log = get_logger(__name__)

_JSON_FENCE = "```json"
_FENCE = "```"


def strip_code_fence(text: str) -> str:
    """Return the body of the first ```json fence, else of the first bare fence."""
    if _JSON_FENCE in text:
        return text.split(_JSON_FENCE, 1)[1].split(_FENCE, 1)[0].strip()
    if _FENCE in text:
        return text.split(_FENCE, 2)[1].strip()
    return text.strip()


class LLMClient:
    """Send prompts through a provider with retry/backoff."""

    def __init__(
        self,
        provider: LLMProvider,
        rate_limiter: RateLimiter | None = None,
        tokenizer: Tokenizer | None = None,
        logger: structlog.BoundLogger | None = None,
    ):
        self.provider = provider
        self.rate_limiter = rate_limiter or RateLimiter()
        self.tokenizer = tokenizer or Tokenizer()
        self.log = logger or log

    async def send_prompt(self, request: LLMRequest) -> LLMResponse:
        """Send a prompt and return the model response.

        Raises:
            LLMRequestError: on any provider failure, after retries
        """
        self.log.info(
            "Sending prompt to LLM",
            model=request.model,
            provider=self.provider.name,
            estimated_tokens=self.tokenizer.count_tokens(request.prompt),
        )

        try:
            response = await self.rate_limiter.execute(
                lambda: self.provider.send_request(request),
                context="LLM request",
            )
        except Exception as exc:
            self.log.error("LLM API error", model=request.model, error=str(exc))
            raise LLMRequestError(str(exc)) from exc

        if response.usage is not None:
            self.log.debug(
                "LLM usage",
                prompt_tokens=response.usage.prompt,
                completion_tokens=response.usage.completion,
                total_tokens=response.usage.total,
            )
        return response

    def parse_json(self, text: str) -> Any:
        """Parse JSON from model output, tolerating markdown code fences.

        Raises:
            InvalidJSONError: when the remaining text is not valid JSON
        """
        try:
            return json.loads(strip_code_fence(text))
        except (json.JSONDecodeError, IndexError) as exc:
            self.log.error("Failed to parse JSON from LLM response", error=str(exc))
            raise InvalidJSONError(str(exc)) from exc

    async def close(self) -> None:
        await self.provider.close()
