"""Action schemas rendered into the system prompt and used for validation."""

from coder_cli.actions.models import ActionSchema, ParameterSpec

SHELL_SCHEMA = ActionSchema(
    name="shell",
    description="Execute a shell command and return its output.",
    parameters={
        "command": ParameterSpec(type="string", description="The shell command to execute."),
    },
    required=["command"],
)

READ_FILE_STATS_SCHEMA = ActionSchema(
    name="readFileStats",
    description="Get metadata about a file (size, line count, existence).",
    parameters={
        "path": ParameterSpec(type="string", description="The path to the file to read stats for."),
    },
    required=["path"],
)

READ_FILE_CHUNK_SCHEMA = ActionSchema(
    name="readFileChunk",
    description="Read a portion of a file specified by starting line and line count.",
    parameters={
        "path": ParameterSpec(type="string", description="The path to the file to read."),
        "startLine": ParameterSpec(
            type="number",
            description="The line number to start reading from (0-indexed).",
        ),
        "lineCount": ParameterSpec(type="number", description="The number of lines to read."),
    },
    required=["path", "startLine", "lineCount"],
)

APPEND_FILE_CHUNK_SCHEMA = ActionSchema(
    name="appendFileChunk",
    description="Append content to the end of a file.",
    parameters={
        "path": ParameterSpec(type="string", description="The path to the file to append to."),
        "content": ParameterSpec(type="string", description="The content to append to the file."),
    },
    required=["path", "content"],
)

FINISH_SCHEMA = ActionSchema(
    name="finish",
    description="Signal that the task is complete.",
    parameters={
        "reason": ParameterSpec(
            type="string",
            description="The reason why the task is considered complete.",
        ),
    },
    required=["reason"],
)

ACTION_SCHEMAS: dict[str, ActionSchema] = {
    schema.name: schema
    for schema in (
        SHELL_SCHEMA,
        READ_FILE_STATS_SCHEMA,
        READ_FILE_CHUNK_SCHEMA,
        APPEND_FILE_CHUNK_SCHEMA,
        FINISH_SCHEMA,
    )
}
