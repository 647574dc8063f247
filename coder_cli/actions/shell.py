"""Shell action: run a command through the host shell."""

import asyncio
from typing import Any

from coder_cli.actions.models import ShellResult
from coder_cli.logging import get_logger

log = get_logger(__name__)


async def execute(params: dict[str, Any]) -> ShellResult:
    """Execute a shell command.

    Args:
        params: ``{"command": str}``

    Returns:
        ShellResult with exit code and captured output
    """
    command = str(params["command"])
    log.info("Executing shell command", command=command)

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except Exception as e:
        log.error("Command process error", command=command, error=str(e))
        return ShellResult(
            success=False,
            exit_code=1,
            stdout="",
            stderr=str(e),
            error=str(e),
        )

    exit_code = process.returncode if process.returncode is not None else 1
    stdout_text = stdout.decode("utf-8", errors="replace")
    stderr_text = stderr.decode("utf-8", errors="replace")

    if exit_code != 0:
        log.error("Command execution failed", command=command, exit_code=exit_code)
        return ShellResult(
            success=False,
            exit_code=exit_code,
            stdout=stdout_text,
            stderr=stderr_text,
            error=f"Command exited with code {exit_code}",
        )

    return ShellResult(
        success=True,
        exit_code=0,
        stdout=stdout_text,
        stderr=stderr_text,
    )
