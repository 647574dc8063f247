"""Actions package for coder-cli."""

from coder_cli.actions.models import (
    Action,
    ActionResult,
    ActionSchema,
    FileChunkResult,
    FileStatsResult,
    ParameterSpec,
    ShellResult,
)
from coder_cli.actions.schemas import ACTION_SCHEMAS
from coder_cli.actions import filesystem, finish, shell
from coder_cli.actions.executor import ActionExecutor, ActionHandler

__all__ = [
    "ACTION_SCHEMAS",
    "Action",
    "ActionExecutor",
    "ActionHandler",
    "ActionResult",
    "ActionSchema",
    "FileChunkResult",
    "FileStatsResult",
    "ParameterSpec",
    "ShellResult",
    "filesystem",
    "finish",
    "shell",
]
