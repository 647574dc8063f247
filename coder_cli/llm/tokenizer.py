"""Token estimation and context-window helpers."""

import math

# Token limits for known models
MODEL_TOKEN_LIMITS: dict[str, int] = {
    "gpt-3.5-turbo": 4096,
    "gpt-3.5-turbo-16k": 16384,
    "gpt-4": 8192,
    "gpt-4-32k": 32768,
    "gpt-4-turbo": 128000,
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
}

DEFAULT_TOKEN_LIMIT = 4096
CHARS_PER_TOKEN = 4
TRUNCATION_STEP_CHARS = 100


class Tokenizer:
    """Approximate tokenizer (~4 characters per token for English text)."""

    def __init__(self, model_limits: dict[str, int] | None = None, default_limit: int = DEFAULT_TOKEN_LIMIT):
        self.model_limits = dict(MODEL_TOKEN_LIMITS if model_limits is None else model_limits)
        self.default_limit = default_limit

    def count_tokens(self, text: str) -> int:
        """Estimate the token count of ``text``."""
        if not text:
            return 0
        return math.ceil(len(text) / CHARS_PER_TOKEN)

    def token_limit(self, model: str) -> int:
        return self.model_limits.get(model, self.default_limit)

    def fits_in_context(self, text: str, model: str) -> bool:
        """Check if text fits within the model's context window."""
        return self.count_tokens(text) <= self.token_limit(model)

    def get_remaining_tokens(self, used_tokens: int, model: str) -> int:
        """Get remaining tokens in the model's context window."""
        return max(0, self.token_limit(model) - used_tokens)

    def truncate_to_fit(self, text: str, max_tokens: int) -> str:
        """Drop trailing characters until ``text`` fits in ``max_tokens``."""
        if self.count_tokens(text) <= max_tokens:
            return text

        truncated = text
        while truncated and self.count_tokens(truncated) > max_tokens:
            truncated = truncated[:-TRUNCATION_STEP_CHARS]
        return truncated
