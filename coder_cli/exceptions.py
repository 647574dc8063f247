"""Custom exceptions for coder-cli."""


class CoderError(Exception):
    """Base exception for coder-cli."""

    pass


class ConfigurationError(CoderError):
    """Configuration-related errors."""

    pass


class LLMError(CoderError):
    """LLM-related errors."""

    pass


class LLMAPIError(LLMError):
    """LLM API errors (auth, server errors, transport failures)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LLMRateLimitError(LLMAPIError):
    """Provider reported that the request was rate limited."""

    def __init__(self, message: str, status_code: int | None = 429):
        super().__init__(message, status_code=status_code)


class LLMRequestError(LLMError):
    """A prompt could not be answered, even after retries."""

    def __init__(self, message: str):
        super().__init__(f"Failed to get response from LLM: {message}")
        self.detail = message


class InvalidJSONError(LLMError):
    """Model output could not be parsed as JSON."""

    def __init__(self, message: str):
        super().__init__(f"Invalid JSON in LLM response: {message}")
        self.detail = message


class ActionError(CoderError):
    """Action dispatch errors."""

    pass


class ActionNotRegisteredError(ActionError):
    """Action name is not in the executor registry."""

    def __init__(self, action_name: str):
        super().__init__(f'Action "{action_name}" is not registered')
        self.action_name = action_name


class SchemaNotFoundError(ActionError):
    """Registered action has no schema."""

    def __init__(self, action_name: str):
        super().__init__(f'Schema not found for action "{action_name}"')
        self.action_name = action_name


class MissingParameterError(ActionError):
    """A schema-required parameter is absent."""

    def __init__(self, action_name: str, parameter: str):
        super().__init__(
            f'Missing required parameter "{parameter}" for action "{action_name}"'
        )
        self.action_name = action_name
        self.parameter = parameter


class ActionParseError(ActionError):
    """Model reply did not contain a usable action object."""

    def __init__(self, message: str):
        super().__init__(f"Failed to parse action from LLM response: {message}")
        self.detail = message
