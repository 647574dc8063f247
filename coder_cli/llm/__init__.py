"""LLM access layer: provider strategies, client, tokenizer."""

import os

from coder_cli.llm.base import LLMProvider, LLMRequest, LLMResponse, TokenUsage
from coder_cli.llm.client import LLMClient, strip_code_fence
from coder_cli.llm.ollama_provider import OLLAMA_NATIVE_BASE_URL, OllamaProvider
from coder_cli.llm.openai_provider import OPENAI_BASE_URL, OpenAIProvider
from coder_cli.llm.tokenizer import MODEL_TOKEN_LIMITS, Tokenizer

_PROVIDER_ALIASES = {
    "openai": "openai",
    "chatgpt": "openai",
    "ollama": "ollama",
}


def normalize_provider_name(provider: str) -> str:
    """Map a provider name or alias to its canonical form."""
    key = str(provider or "").strip().lower()
    if key not in _PROVIDER_ALIASES:
        raise ValueError(
            f"Provider '{provider}' not supported. Use one of: {', '.join(sorted(_PROVIDER_ALIASES))}"
        )
    return _PROVIDER_ALIASES[key]


def create_provider(
    provider: str = "openai",
    api_key: str | None = None,
    base_url: str | None = None,
    timeout: float = 120.0,
) -> LLMProvider:
    """Create an LLM provider.

    Args:
        provider: Provider name (openai, chatgpt, ollama)
        api_key: API key; openai falls back to OPENAI_API_KEY
        base_url: Optional base URL override
        timeout: HTTP timeout in seconds

    Returns:
        Configured LLMProvider instance
    """
    name = normalize_provider_name(provider)
    if name == "ollama":
        return OllamaProvider(
            base_url=base_url or OLLAMA_NATIVE_BASE_URL,
            api_key=api_key or None,
            timeout=timeout,
        )
    return OpenAIProvider(
        api_key=api_key or os.environ.get("OPENAI_API_KEY", ""),
        base_url=base_url or OPENAI_BASE_URL,
        timeout=timeout,
    )


__all__ = [
    "LLMClient",
    "LLMProvider",
    "LLMRequest",
    "LLMResponse",
    "MODEL_TOKEN_LIMITS",
    "OllamaProvider",
    "OpenAIProvider",
    "TokenUsage",
    "Tokenizer",
    "create_provider",
    "normalize_provider_name",
    "strip_code_fence",
]
