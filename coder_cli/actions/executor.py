"""Action registry, parameter validation, and dispatch."""

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from coder_cli.actions import filesystem, finish, shell
from coder_cli.actions.models import Action, ActionResult, ActionSchema
from coder_cli.actions.schemas import ACTION_SCHEMAS
from coder_cli.exceptions import (
    ActionNotRegisteredError,
    MissingParameterError,
    SchemaNotFoundError,
)
from coder_cli.logging import get_logger

log = get_logger(__name__)

ActionHandler = Callable[[dict[str, Any]], Awaitable[ActionResult]]
ApprovalCallback = Callable[[Action], bool]

# Actions that are never gated behind user approval.
UNGATED_ACTIONS = frozenset({"finish"})


class ActionExecutor:
    """Registry of actions keyed by name; the single dispatch point.

    Every registered handler has exactly one schema. Validation errors raise;
    failures inside a handler are returned as ``success=False`` results.
    """

    def __init__(
        self,
        approval_callback: ApprovalCallback | None = None,
        logger: structlog.BoundLogger | None = None,
    ):
        self._handlers: dict[str, ActionHandler] = {}
        self._schemas: dict[str, ActionSchema] = {}
        self._approval_callback = approval_callback
        self.log = logger or log
        self._register_default_actions()

    def _register_default_actions(self) -> None:
        self.register("shell", shell.execute, ACTION_SCHEMAS["shell"])
        self.register("readFileStats", filesystem.read_file_stats, ACTION_SCHEMAS["readFileStats"])
        self.register("readFileChunk", filesystem.read_file_chunk, ACTION_SCHEMAS["readFileChunk"])
        self.register("appendFileChunk", filesystem.append_file_chunk, ACTION_SCHEMAS["appendFileChunk"])
        self.register("finish", finish.execute, ACTION_SCHEMAS["finish"])

    def register(self, name: str, handler: ActionHandler, schema: ActionSchema) -> None:
        """Register an action handler together with its schema.

        Raises:
            ValueError: on an empty or duplicate name, or a schema for another name
        """
        if not name:
            raise ValueError("Action must have a name")
        if name in self._handlers:
            raise ValueError(f'Action "{name}" is already registered')
        if schema.name != name:
            raise ValueError(f'Schema name "{schema.name}" does not match action "{name}"')

        self._handlers[name] = handler
        self._schemas[name] = schema
        self.log.debug("Registered action", action=name)

    def set_approval_callback(self, callback: ApprovalCallback | None) -> None:
        """Set approval callback consulted before non-finish actions run."""
        self._approval_callback = callback

    def is_action_registered(self, name: str) -> bool:
        return name in self._handlers

    def list_actions(self) -> list[str]:
        return list(self._handlers)

    @property
    def schemas(self) -> list[ActionSchema]:
        """Schemas of all registered actions, in registration order."""
        return [self.get_schema(name) for name in self._handlers]

    def get_schema(self, name: str) -> ActionSchema:
        schema = self._schemas.get(name)
        if schema is None:
            raise SchemaNotFoundError(name)
        return schema

    def validate(self, action: Action) -> None:
        """Check that the action exists and carries every required parameter.

        Raises:
            ActionNotRegisteredError, SchemaNotFoundError, MissingParameterError
        """
        if not self.is_action_registered(action.name):
            raise ActionNotRegisteredError(action.name)

        schema = self.get_schema(action.name)
        for param in schema.required:
            if param not in action.parameters:
                raise MissingParameterError(action.name, param)

    async def execute(self, action: Action) -> ActionResult:
        """Validate and run an action.

        Raises:
            ActionError subclasses on validation failure. Handler exceptions
            and approval failures are converted to
            ``ActionResult(success=False, error=...)``.
        """
        self.validate(action)

        if self._approval_callback is not None and action.name not in UNGATED_ACTIONS:
            try:
                # The callback may block on console input.
                approved = await asyncio.to_thread(self._approval_callback, action)
            except Exception as e:
                self.log.error(
                    "Approval failed",
                    action=action.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                return ActionResult(success=False, error=f"Approval failed: {str(e) or type(e).__name__}")
            if not approved:
                self.log.warning("Action rejected by user", action=action.name)
                return ActionResult(success=False, error="Action rejected by user")

        handler = self._handlers[action.name]
        try:
            self.log.info("Executing action", action=action.name)
            result = await handler(action.parameters)
        except Exception as e:
            self.log.error("Error executing action", action=action.name, error=str(e))
            return ActionResult(success=False, error=str(e))

        self.log.info("Action executed", action=action.name, success=result.success)
        return result
