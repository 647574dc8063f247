"""Provider-neutral request/response types and the provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LLMRequest:
    """A single prompt sent to a model."""

    prompt: str
    model: str
    temperature: float = 0.7
    max_tokens: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # provider-specific options


@dataclass
class TokenUsage:
    """Token accounting reported by the provider."""

    prompt: int = 0
    completion: int = 0
    total: int = 0


@dataclass
class LLMResponse:
    """Response from the LLM."""

    content: str
    usage: TokenUsage | None = None
    model: str = ""
    id: str = ""


class LLMProvider(ABC):
    """Transport capability: turns an LLMRequest into an LLMResponse.

    Implementations own the wire format and map provider failures onto the
    exceptions in ``coder_cli.exceptions``.
    """

    name: str = ""

    @abstractmethod
    async def send_request(self, request: LLMRequest) -> LLMResponse:
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None
