from pathlib import Path

import pytest
from pydantic import ValidationError

import coder_cli.config as config_module
from coder_cli.config import LEGACY_ENV_KEYS, Config
from coder_cli.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    for key in (*LEGACY_ENV_KEYS, "OPENAI_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    for key in (
        "CODER_LLM__API_KEY",
        "CODER_LLM__MODEL",
        "CODER_AGENT__MAX_ITERATIONS",
    ):
        monkeypatch.delenv(key, raising=False)


def test_load_defaults_without_any_source():
    cfg = Config.load()

    assert cfg.llm.provider == "openai"
    assert cfg.llm.model == "gpt-4"
    assert cfg.llm.api_key == ""
    assert cfg.rate_limit.base_delay == 1.0
    assert cfg.rate_limit.max_retries == 5
    assert cfg.files.chunk_size == 1000
    assert cfg.agent.max_iterations == 10
    assert cfg.agent.confirm_actions is False


def test_load_prefers_local_config_yaml(tmp_path: Path):
    home_cfg = config_module.DEFAULT_CONFIG_PATH
    home_cfg.parent.mkdir(parents=True)
    home_cfg.write_text("llm:\n  model: llama3.2\n", encoding="utf-8")
    (tmp_path / "config.yaml").write_text(
        "llm:\n  model: gpt-4o-mini\nagent:\n  max_iterations: 4\n",
        encoding="utf-8",
    )

    cfg = Config.load()

    assert cfg.llm.model == "gpt-4o-mini"
    assert cfg.agent.max_iterations == 4


def test_load_falls_back_to_home_config():
    home_cfg = config_module.DEFAULT_CONFIG_PATH
    home_cfg.parent.mkdir(parents=True)
    home_cfg.write_text("llm:\n  provider: ollama\n  model: llama3.2\n", encoding="utf-8")

    cfg = Config.load()

    assert cfg.llm.provider == "ollama"
    assert cfg.llm.model == "llama3.2"


def test_legacy_variables_override_yaml(monkeypatch, tmp_path: Path):
    (tmp_path / "config.yaml").write_text("agent:\n  max_iterations: 9\n", encoding="utf-8")
    monkeypatch.setenv("MAX_ITERATIONS", "3")
    monkeypatch.setenv("RATE_LIMIT_BASE_DELAY", "250")
    monkeypatch.setenv("RATE_LIMIT_MAX_RETRIES", "2")
    monkeypatch.setenv("FILE_CHUNK_SIZE", "50")
    monkeypatch.setenv("CONFIRM_ACTIONS", "TRUE")
    monkeypatch.setenv("LLM_API_KEY", "sk-legacy")

    cfg = Config.load()

    assert cfg.agent.max_iterations == 3
    assert cfg.rate_limit.base_delay == 0.25
    assert cfg.rate_limit.max_retries == 2
    assert cfg.files.chunk_size == 50
    assert cfg.agent.confirm_actions is True
    assert cfg.llm.api_key == "sk-legacy"


def test_legacy_variables_read_from_dotenv(monkeypatch, tmp_path: Path):
    (tmp_path / ".env").write_text("LLM_MODEL=gpt-4o\nMAX_ITERATIONS=7\n", encoding="utf-8")
    monkeypatch.setenv("MAX_ITERATIONS", "2")

    cfg = Config.load()

    assert cfg.llm.model == "gpt-4o"
    assert cfg.agent.max_iterations == 2


def test_prefixed_environment_beats_legacy_and_yaml(monkeypatch, tmp_path: Path):
    (tmp_path / "config.yaml").write_text("agent:\n  max_iterations: 9\n", encoding="utf-8")
    monkeypatch.setenv("MAX_ITERATIONS", "3")
    monkeypatch.setenv("CODER_AGENT__MAX_ITERATIONS", "4")

    cfg = Config.load()

    assert cfg.agent.max_iterations == 4


def test_openai_api_key_fallback(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")

    cfg = Config.load()

    assert cfg.llm.api_key == "sk-openai"


def test_explicit_key_wins_over_openai_fallback(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    monkeypatch.setenv("LLM_API_KEY", "sk-explicit")

    cfg = Config.load()

    assert cfg.llm.api_key == "sk-explicit"


def test_invalid_values_are_rejected(tmp_path: Path):
    (tmp_path / "config.yaml").write_text("agent:\n  max_iterations: 0\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        Config.load()


def test_save_and_reload(tmp_path: Path):
    cfg = Config.load()
    cfg.llm.model = "gpt-4-turbo"
    cfg.files.chunk_size = 250
    target = tmp_path / "saved" / "config.yaml"

    cfg.save(target)
    reloaded = Config.load(target)

    assert reloaded.llm.model == "gpt-4-turbo"
    assert reloaded.files.chunk_size == 250


def test_agent_config_carries_run_settings(monkeypatch):
    monkeypatch.setenv("MAX_ITERATIONS", "6")
    monkeypatch.setenv("LLM_MODEL", "gpt-4o")

    agent_config = Config.load().agent_config()

    assert agent_config.max_iterations == 6
    assert agent_config.llm_model == "gpt-4o"
    assert agent_config.file_chunk_size == 1000


def test_malformed_legacy_variable_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("MAX_ITERATIONS", "abc")

    with pytest.raises(ConfigurationError) as exc_info:
        Config.load()

    assert "MAX_ITERATIONS" in str(exc_info.value)
