"""Finish action: signals that the task is complete."""

from typing import Any

from coder_cli.actions.models import ActionResult
from coder_cli.logging import get_logger

log = get_logger(__name__)


async def execute(params: dict[str, Any]) -> ActionResult:
    message = str(params.get("reason") or "") or "Task completed"
    log.info("Task finished", message=message)
    return ActionResult(success=True, message=message)
