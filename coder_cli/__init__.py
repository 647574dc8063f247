"""coder-cli - an AI agent loop driving shell and chunked file actions."""

__version__ = "1.0.0"

from coder_cli.agent import AgentConfig, AgentController, AgentOutcome, HistoryItem
from coder_cli.config import Config

__all__ = [
    "AgentConfig",
    "AgentController",
    "AgentOutcome",
    "Config",
    "HistoryItem",
    "__version__",
]
