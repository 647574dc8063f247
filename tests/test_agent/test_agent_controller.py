import json

import pytest

from coder_cli.actions import ActionExecutor
from coder_cli.agent import (
    AgentConfig,
    AgentController,
    AgentState,
    HistoryItem,
    HistoryItemType,
)
from coder_cli.exceptions import ActionParseError
from coder_cli.llm import LLMClient, LLMProvider, LLMRequest, LLMResponse
from coder_cli.rate_limiter import RateLimiter


async def _no_sleep(delay: float) -> None:
    return None


class ScriptedProvider(LLMProvider):
    """Replies with queued texts and records every prompt it receives."""

    name = "scripted"

    def __init__(self, replies: list[str], repeat_last: bool = False):
        self.replies = list(replies)
        self.repeat_last = repeat_last
        self.prompts: list[str] = []

    async def send_request(self, request: LLMRequest) -> LLMResponse:
        self.prompts.append(request.prompt)
        if self.repeat_last and len(self.replies) == 1:
            return LLMResponse(content=self.replies[0], model=request.model)
        return LLMResponse(content=self.replies.pop(0), model=request.model)


def _action(name: str, **parameters) -> str:
    return json.dumps({"action": {"name": name, "parameters": parameters}})


def _controller(
    provider: LLMProvider,
    max_iterations: int = 5,
    **kwargs,
) -> AgentController:
    client = LLMClient(provider, rate_limiter=RateLimiter(base_delay=0.0, max_retries=0, sleep=_no_sleep))
    config = AgentConfig(max_iterations=max_iterations, llm_model="gpt-4", file_chunk_size=kwargs.pop("chunk", None))
    return AgentController("Create hello.txt", client, config, **kwargs)


@pytest.mark.asyncio
async def test_finish_on_first_iteration_completes():
    provider = ScriptedProvider([_action("finish", reason="Nothing to do")])
    controller = _controller(provider)

    outcome = await controller.run()

    assert outcome.completed is True
    assert outcome.iterations == 1
    assert outcome.message == "Nothing to do"
    assert controller.state is AgentState.DONE
    assert [item.type for item in controller.history] == [
        HistoryItemType.ACTION,
        HistoryItemType.OBSERVATION,
    ]


@pytest.mark.asyncio
async def test_never_finishing_stops_at_iteration_budget():
    provider = ScriptedProvider([_action("shell", command="true")], repeat_last=True)
    controller = _controller(provider, max_iterations=3)

    outcome = await controller.run()

    assert outcome.completed is False
    assert outcome.iterations == 3
    assert outcome.message == "Reached maximum iterations"
    assert len(controller.history) == 6
    assert len(provider.prompts) == 3


@pytest.mark.asyncio
async def test_invalid_replies_still_stop_at_budget_without_history():
    provider = ScriptedProvider(["I think we should list files."], repeat_last=True)
    controller = _controller(provider, max_iterations=2)

    outcome = await controller.run()

    assert outcome.completed is False
    assert outcome.iterations == 2
    assert controller.history == ()


@pytest.mark.asyncio
async def test_failed_iteration_leaves_history_untouched():
    provider = ScriptedProvider(
        [
            _action("deleteEverything"),
            _action("shell"),
            _action("finish", reason="done"),
        ]
    )
    controller = _controller(provider)

    assert await controller.step() is False
    assert await controller.step() is False
    assert controller.history == ()

    assert await controller.step() is True
    assert controller.iteration_count == 3
    assert len(controller.history) == 2


@pytest.mark.asyncio
async def test_step_after_done_is_noop():
    provider = ScriptedProvider([_action("finish", reason="done")])
    controller = _controller(provider)

    await controller.run()

    assert await controller.step() is True
    assert controller.iteration_count == 1


@pytest.mark.asyncio
async def test_history_observation_is_serialized_result():
    provider = ScriptedProvider([_action("shell", command="echo hi"), _action("finish", reason="ok")])
    controller = _controller(provider)

    await controller.run()

    action_item, observation_item = controller.history[:2]
    assert json.loads(action_item.content) == {"name": "shell", "parameters": {"command": "echo hi"}}
    observation = json.loads(observation_item.content)
    assert observation["success"] is True
    assert observation["exitCode"] == 0
    assert observation["stdout"] == "hi\n"


@pytest.mark.asyncio
async def test_second_prompt_includes_labeled_history():
    provider = ScriptedProvider([_action("shell", command="true"), _action("finish", reason="ok")])
    controller = _controller(provider)

    await controller.run()

    first, second = provider.prompts
    assert "TASK: Create hello.txt" in first
    assert "HISTORY:" not in first
    assert "HISTORY:\nACTION:\n" in second
    assert "\n\nOBSERVATION:\n" in second


@pytest.mark.asyncio
async def test_plan_is_recorded_and_quoted_in_prompt():
    provider = ScriptedProvider([_action("finish", reason="ok")])
    controller = _controller(provider)

    controller.set_plan("  Write the file, then verify it  ")
    await controller.run()

    assert controller.current_plan == "Write the file, then verify it"
    assert controller.history[0].type is HistoryItemType.PLAN
    assert 'your current plan: "Write the file, then verify it"' in provider.prompts[0]
    assert "PLAN:\nWrite the file, then verify it" in provider.prompts[0]


def test_blank_plan_is_not_recorded():
    controller = _controller(ScriptedProvider([]))

    controller.set_plan("   ")

    assert controller.history == ()
    assert "current plan" not in controller.format_prompt()


def test_system_prompt_lists_every_action():
    controller = _controller(ScriptedProvider([]), chunk=200)

    prompt = controller.build_system_prompt()

    for name in ("shell", "readFileStats", "readFileChunk", "appendFileChunk", "finish"):
        assert f"## {name}" in prompt
    assert "The available actions are: shell, readFileStats, readFileChunk, appendFileChunk, finish." in prompt
    assert "at most 200 lines per call" in prompt


def test_parse_action_accepts_fenced_reply():
    controller = _controller(ScriptedProvider([]))

    action = controller.parse_action("Sure:\n```json\n" + _action("readFileStats", path="a.txt") + "\n```")

    assert action.name == "readFileStats"
    assert action.parameters == {"path": "a.txt"}


@pytest.mark.parametrize(
    "reply",
    [
        "not json",
        "[1, 2]",
        json.dumps({"name": "shell", "parameters": {}}),
        json.dumps({"action": {"name": "shell"}}),
        json.dumps({"action": {"parameters": {}}}),
        json.dumps({"action": {"name": "", "parameters": {}}}),
    ],
)
def test_parse_action_rejects_malformed_replies(reply: str):
    controller = _controller(ScriptedProvider([]))

    with pytest.raises(ActionParseError):
        controller.parse_action(reply)


@pytest.mark.asyncio
async def test_on_history_receives_each_item():
    seen: list[HistoryItem] = []
    provider = ScriptedProvider([_action("finish", reason="ok")])
    controller = _controller(provider, on_history=seen.append)

    await controller.run()

    assert seen == list(controller.history)


def test_history_is_read_only_view():
    controller = _controller(ScriptedProvider([]))
    controller.set_plan("plan")

    history = controller.history
    assert isinstance(history, tuple)
    assert history[0].render() == "PLAN:\nplan"


@pytest.mark.parametrize("value", [0, -1, 1.5, True])
def test_agent_config_rejects_invalid_iteration_budget(value):
    with pytest.raises(ValueError):
        AgentConfig(max_iterations=value, llm_model="gpt-4")


def test_agent_config_requires_model():
    with pytest.raises(ValueError):
        AgentConfig(max_iterations=1, llm_model="")


@pytest.mark.asyncio
async def test_step_enforces_budget_after_failed_iterations():
    provider = ScriptedProvider(["not an action"], repeat_last=True)
    controller = _controller(provider, max_iterations=2)

    assert await controller.step() is False
    assert await controller.step() is True
    assert controller.state is AgentState.DONE
    assert await controller.step() is True

    assert controller.iteration_count == 2
    assert len(provider.prompts) == 2
    assert controller.history == ()


@pytest.mark.asyncio
async def test_raising_approval_is_observed_as_pair():
    def _no_input(action) -> bool:
        raise EOFError()

    provider = ScriptedProvider([_action("shell", command="true")], repeat_last=True)
    controller = _controller(
        provider,
        max_iterations=2,
        executor=ActionExecutor(approval_callback=_no_input),
    )

    outcome = await controller.run()

    assert outcome.completed is False
    assert [item.type for item in controller.history] == [
        HistoryItemType.ACTION,
        HistoryItemType.OBSERVATION,
    ] * 2
    observation = json.loads(controller.history[1].content)
    assert observation == {"success": False, "error": "Approval failed: EOFError"}


class ExplodingExecutor(ActionExecutor):
    async def execute(self, action):
        raise RuntimeError("executor crashed")


@pytest.mark.asyncio
async def test_execution_error_leaves_no_dangling_action():
    provider = ScriptedProvider([_action("shell", command="true")], repeat_last=True)
    controller = _controller(provider, max_iterations=2, executor=ExplodingExecutor())

    outcome = await controller.run()

    assert outcome.iterations == 2
    assert controller.history == ()
