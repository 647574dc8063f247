"""Agent controller: the plan -> act -> observe loop."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable

import structlog
from pydantic import ValidationError

from coder_cli.actions import Action, ActionExecutor, ActionResult
from coder_cli.exceptions import ActionParseError, InvalidJSONError
from coder_cli.llm import LLMClient, LLMRequest, Tokenizer
from coder_cli.logging import get_logger

log = get_logger(__name__)

DEFAULT_TEMPERATURE = 0.7


class HistoryItemType(str, Enum):
    """Kinds of history entries."""

    PLAN = "plan"
    ACTION = "action"
    OBSERVATION = "observation"


HISTORY_LABELS: dict[HistoryItemType, str] = {
    HistoryItemType.PLAN: "PLAN:",
    HistoryItemType.ACTION: "ACTION:",
    HistoryItemType.OBSERVATION: "OBSERVATION:",
}


@dataclass(frozen=True)
class HistoryItem:
    """One entry in the agent's history."""

    type: HistoryItemType
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def render(self) -> str:
        return f"{HISTORY_LABELS[self.type]}\n{self.content}"


@dataclass(frozen=True)
class AgentConfig:
    """Per-run agent configuration."""

    max_iterations: int
    llm_model: str
    confirm_actions: bool = False
    temperature: float = DEFAULT_TEMPERATURE
    file_chunk_size: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise ValueError("max_iterations must be an integer")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be a positive integer")
        if not self.llm_model:
            raise ValueError("llm_model is required")


class AgentState(str, Enum):
    RUNNING = "running"
    DONE = "done"


@dataclass
class AgentOutcome:
    """Summary of a finished run."""

    completed: bool
    iterations: int
    message: str | None = None


class AgentController:
    """Drive the model one action at a time until it finishes or the budget runs out.

    Each iteration builds a prompt from the task and history, asks the model
    for one JSON action, executes it, and records the action and its result.
    Errors inside an iteration are logged and leave the history untouched.
    """

    def __init__(
        self,
        task: str,
        llm_client: LLMClient,
        config: AgentConfig,
        executor: ActionExecutor | None = None,
        tokenizer: Tokenizer | None = None,
        logger: structlog.BoundLogger | None = None,
        on_history: Callable[[HistoryItem], None] | None = None,
    ):
        """Initialize the controller.

        Args:
            task: The user's goal
            llm_client: Client used for every model call
            config: Immutable run configuration
            executor: Optional action executor override
            tokenizer: Optional tokenizer override
            logger: Optional logger override
            on_history: Optional callback invoked for every appended history item
        """
        self._task = task
        self.llm_client = llm_client
        self.config = config
        self.executor = executor or ActionExecutor()
        self.tokenizer = tokenizer or llm_client.tokenizer
        self.log = (logger or log).bind(model=config.llm_model)
        self.on_history = on_history

        self._history: list[HistoryItem] = []
        self._current_plan = ""
        self._iteration = 0
        self._state = AgentState.RUNNING
        self._outcome: AgentOutcome | None = None

        self.log.info("Task received", task=task)

    @property
    def task(self) -> str:
        return self._task

    @property
    def history(self) -> tuple[HistoryItem, ...]:
        return tuple(self._history)

    @property
    def iteration_count(self) -> int:
        return self._iteration

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def current_plan(self) -> str:
        return self._current_plan

    def _add_to_history(self, item_type: HistoryItemType, content: str) -> HistoryItem:
        item = HistoryItem(type=item_type, content=content)
        self._history.append(item)
        if self.on_history is not None:
            self.on_history(item)
        return item

    def set_plan(self, plan: str) -> None:
        """Record the current plan; it is quoted in subsequent prompts."""
        self._current_plan = plan.strip()
        if self._current_plan:
            self.log.info("Plan updated", plan=self._current_plan)
            self._add_to_history(HistoryItemType.PLAN, self._current_plan)

    def build_system_prompt(self) -> str:
        """Describe the agent's working style and every registered action."""
        schemas = self.executor.schemas
        action_docs = "\n\n".join(schema.render() for schema in schemas)
        names = ", ".join(schema.name for schema in schemas)

        chunk_hint = ""
        if self.config.file_chunk_size:
            chunk_hint = (
                "\nNever read large files in one go: use readFileStats first, then "
                f"readFileChunk with at most {self.config.file_chunk_size} lines per call.\n"
            )

        return (
            "You are an AI assistant that helps users complete tasks. You work in steps:\n"
            "1. Analyze the task and decide on a plan\n"
            "2. Take actions one at a time to accomplish the plan\n"
            "3. Observe results and adjust your plan if needed\n"
            "\n"
            "Available actions:\n"
            f"{action_docs}\n"
            f"{chunk_hint}"
            "\n"
            "When executing actions, respond ONLY with a valid JSON object with this format:\n"
            "{\n"
            '  "action": {\n'
            '    "name": "actionName",\n'
            '    "parameters": {\n'
            '      "param1": "value1",\n'
            '      "param2": "value2"\n'
            "    }\n"
            "  }\n"
            "}\n"
            "\n"
            f"The available actions are: {names}."
        )

    def format_prompt(self) -> str:
        """Build the full prompt for the next iteration."""
        parts = [self.build_system_prompt(), f"TASK: {self._task}"]

        if self._history:
            history_text = "\n\n".join(item.render() for item in self._history)
            parts.append(f"HISTORY:\n{history_text}")

        plan_clause = f' and your current plan: "{self._current_plan}"' if self._current_plan else ""
        parts.append(
            f"Based on the task{plan_clause}, decide what action to take next.\n"
            "Respond with ONLY a valid JSON action object as described earlier."
        )
        return "\n\n".join(parts)

    def parse_action(self, text: str) -> Action:
        """Extract the action object from a model reply.

        Raises:
            ActionParseError: when the reply is not ``{"action": {"name", "parameters"}}``
        """
        try:
            parsed: Any = self.llm_client.parse_json(text)
        except InvalidJSONError as e:
            raise ActionParseError(str(e)) from e

        payload = parsed.get("action") if isinstance(parsed, dict) else None
        if not isinstance(payload, dict):
            raise ActionParseError('expected an object with an "action" object')
        for key in ("name", "parameters"):
            if key not in payload:
                raise ActionParseError(f'"action" is missing "{key}"')

        try:
            return Action.model_validate(payload)
        except ValidationError as e:
            raise ActionParseError(str(e)) from e

    async def _request_action(self) -> Action:
        prompt = self.format_prompt()
        if not self.tokenizer.fits_in_context(prompt, self.config.llm_model):
            self.log.warning(
                "Prompt exceeds model context window",
                estimated_tokens=self.tokenizer.count_tokens(prompt),
                limit=self.tokenizer.token_limit(self.config.llm_model),
            )

        response = await self.llm_client.send_prompt(
            LLMRequest(
                prompt=prompt,
                model=self.config.llm_model,
                temperature=self.config.temperature,
            )
        )
        return self.parse_action(response.content)

    def _stop(self, completed: bool, message: str | None = None) -> None:
        self._state = AgentState.DONE
        self._outcome = AgentOutcome(
            completed=completed,
            iterations=self._iteration,
            message=message,
        )

    async def step(self) -> bool:
        """Run one iteration. Returns True once the loop is done."""
        if self._state is AgentState.DONE:
            return True

        self._iteration += 1
        self.log.info(
            "Starting iteration",
            iteration=self._iteration,
            max_iterations=self.config.max_iterations,
        )

        try:
            action = await self._request_action()
            self.executor.validate(action)
            self.log.info("Action selected", action=action.name, parameters=action.parameters)

            result: ActionResult = await self.executor.execute(action)
            self.log.info("Observation", action=action.name, success=result.success)
        except Exception as e:
            self.log.error(
                "Iteration failed",
                iteration=self._iteration,
                error_type=type(e).__name__,
                error=str(e),
            )
            return self._check_budget()

        # Action and observation are recorded together or not at all.
        self._add_to_history(HistoryItemType.ACTION, action.to_history())
        self._add_to_history(HistoryItemType.OBSERVATION, result.to_observation())

        if action.name == "finish":
            message = result.message or "No message provided"
            self.log.info("Task completed", message=message)
            self._stop(completed=True, message=message)
            return True

        return self._check_budget()

    def _check_budget(self) -> bool:
        if self._iteration < self.config.max_iterations:
            return False
        self.log.warning("Reached maximum iterations", max_iterations=self.config.max_iterations)
        self._stop(completed=False, message="Reached maximum iterations")
        return True

    async def run(self) -> AgentOutcome:
        """Run the loop until the model finishes or the iteration budget is spent."""
        self.log.info(
            "Starting agent",
            task=self._task,
            max_iterations=self.config.max_iterations,
            confirm_actions=self.config.confirm_actions,
        )

        while self._state is AgentState.RUNNING:
            await self.step()

        assert self._outcome is not None
        self.log.info("Agent completed", iterations=self._iteration, completed=self._outcome.completed)
        return self._outcome
