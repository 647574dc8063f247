"""Action, result, and schema models."""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Action(BaseModel):
    """A named, parameterized operation chosen by the model."""

    name: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)

    def to_history(self) -> str:
        return self.model_dump_json(indent=2)


class ActionResult(BaseModel):
    """Result from action execution."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str | None = None
    error: str | None = None

    def to_observation(self) -> str:
        """Serialize for the history, using wire field names and omitting unset fields."""
        return json.dumps(self.model_dump(by_alias=True, exclude_none=True), indent=2)


class ShellResult(ActionResult):
    """Outcome of a shell command."""

    exit_code: int = Field(alias="exitCode")
    stdout: str = ""
    stderr: str = ""


class FileStatsResult(ActionResult):
    """File metadata."""

    exists: bool = False
    size: int | None = None
    line_count: int | None = Field(default=None, alias="lineCount")


class FileChunkResult(ActionResult):
    """A window of lines read from a file."""

    content: str | None = None
    read_lines: int | None = Field(default=None, alias="readLines")
    is_eof: bool | None = Field(default=None, alias="isEOF")


class ParameterSpec(BaseModel):
    """Description of a single action parameter."""

    type: str
    description: str


class ActionSchema(BaseModel):
    """Model-facing contract for one action."""

    name: str
    description: str
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)

    def render(self) -> str:
        """Render as a prompt section."""
        lines = [f"## {self.name}", self.description, "", "Parameters:"]
        for param, spec in self.parameters.items():
            marker = "" if param in self.required else " (optional)"
            lines.append(f"- {param} ({spec.type}){marker}: {spec.description}")
        return "\n".join(lines)
