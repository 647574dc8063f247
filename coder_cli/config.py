"""Configuration management for coder-cli."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from coder_cli.agent import AgentConfig
from coder_cli.exceptions import ConfigurationError


# Paths
DEFAULT_CONFIG_PATH = Path("~/.coder-cli/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "config.yaml"
DOTENV_FILENAME = ".env"

# Flat variable names accepted for compatibility with existing .env files.
# Value: (section, field, converter)
LEGACY_ENV_KEYS: dict[str, tuple[str, str, Any]] = {
    "LLM_API_KEY": ("llm", "api_key", str),
    "LLM_MODEL": ("llm", "model", str),
    "RATE_LIMIT_BASE_DELAY": ("rate_limit", "base_delay", lambda raw: int(raw) / 1000.0),
    "RATE_LIMIT_MAX_RETRIES": ("rate_limit", "max_retries", int),
    "FILE_CHUNK_SIZE": ("files", "chunk_size", int),
    "MAX_ITERATIONS": ("agent", "max_iterations", int),
    "CONFIRM_ACTIONS": ("agent", "confirm_actions", lambda raw: raw.strip().lower() == "true"),
}


class LLMConfig(BaseModel):
    """Model provider configuration."""

    provider: str = "openai"
    model: str = "gpt-4"
    api_key: str = ""
    base_url: str = ""
    timeout: float = 120.0
    max_tokens: int | None = None


class RateLimitConfig(BaseModel):
    """Retry/backoff configuration for model requests."""

    base_delay: float = Field(default=1.0, ge=0, description="Base delay in seconds.")
    max_retries: int = Field(default=5, ge=0)


class FilesConfig(BaseModel):
    """Chunked file access configuration."""

    chunk_size: int = Field(default=1000, ge=1, description="Suggested lines per chunk.")


class AgentSettings(BaseModel):
    """Agent loop configuration."""

    max_iterations: int = Field(default=10, ge=1)
    confirm_actions: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for coder-cli."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    files: FilesConfig = Field(default_factory=FilesConfig)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="CODER_",
        env_file=DOTENV_FILENAME,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats YAML-provided init values.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data

    @staticmethod
    def _legacy_environment() -> dict[str, str]:
        """Collect flat variables from .env, with the process environment winning."""
        values: dict[str, str] = {}
        dotenv_path = Path.cwd() / DOTENV_FILENAME
        if dotenv_path.exists():
            for key, value in dotenv_values(dotenv_path).items():
                if value is not None:
                    values[key] = value
        for key in (*LEGACY_ENV_KEYS, "OPENAI_API_KEY"):
            if key in os.environ:
                values[key] = os.environ[key]
        return values

    @classmethod
    def _apply_legacy_keys(cls, data: dict[str, Any], env: dict[str, str]) -> dict[str, Any]:
        for key, (section, field, convert) in LEGACY_ENV_KEYS.items():
            raw = env.get(key)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {key}: {raw!r}") from e
            bucket = data.setdefault(section, {})
            if isinstance(bucket, dict):
                bucket[field] = value
        return data

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()
        return cls(**cls._read_yaml(config_path))

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Config":
        """Load configuration: YAML, then flat legacy variables, then CODER_* variables.

        Raises:
            ConfigurationError: a flat variable cannot be converted
            ValidationError: a value is out of range
        """
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()
        data = cls._read_yaml(config_path)
        env = cls._legacy_environment()
        data = cls._apply_legacy_keys(data, env)

        config = cls(**data)

        if not config.llm.api_key and config.llm.provider in ("openai", "chatgpt"):
            fallback = env.get("OPENAI_API_KEY", "").strip()
            if fallback:
                config.llm.api_key = fallback
        return config

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def agent_config(self) -> AgentConfig:
        """Build the immutable per-run agent configuration."""
        return AgentConfig(
            max_iterations=self.agent.max_iterations,
            llm_model=self.llm.model,
            confirm_actions=self.agent.confirm_actions,
            file_chunk_size=self.files.chunk_size,
        )


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
