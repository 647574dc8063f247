"""Main entry point for coder-cli."""

import asyncio
from typing import Optional

import typer
from pydantic import ValidationError

from coder_cli import __version__
from coder_cli.actions import ActionExecutor
from coder_cli.agent import AgentController, AgentOutcome
from coder_cli.cli import TerminalUI
from coder_cli.config import Config, set_config
from coder_cli.exceptions import ConfigurationError
from coder_cli.llm import LLMClient, LLMProvider, create_provider
from coder_cli.logging import configure_logging
from coder_cli.rate_limiter import RateLimiter

app = typer.Typer(
    help="coder-cli - an AI agent that solves tasks with shell and file actions",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        print(f"coder-cli v{__version__}")
        raise typer.Exit()


def apply_overrides(
    config: Config,
    *,
    llm_api_key: str = "",
    llm_model: str = "",
    provider: str = "",
    rate_limit_base_delay: int | None = None,
    rate_limit_max_retries: int | None = None,
    file_chunk_size: int | None = None,
    max_iterations: int | None = None,
    confirm_actions: bool = False,
) -> Config:
    """Apply command-line values on top of loaded configuration."""
    if llm_api_key:
        config.llm.api_key = llm_api_key
    if llm_model:
        config.llm.model = llm_model
    if provider:
        config.llm.provider = provider
    if rate_limit_base_delay is not None:
        config.rate_limit.base_delay = rate_limit_base_delay / 1000.0
    if rate_limit_max_retries is not None:
        config.rate_limit.max_retries = rate_limit_max_retries
    if file_chunk_size is not None:
        config.files.chunk_size = file_chunk_size
    if max_iterations is not None:
        config.agent.max_iterations = max_iterations
    if confirm_actions:
        config.agent.confirm_actions = True
    return config


async def run_agent(
    task: str,
    config: Config,
    provider: LLMProvider,
    ui: TerminalUI,
) -> AgentOutcome:
    """Wire the core components and run one task."""
    client = LLMClient(
        provider,
        rate_limiter=RateLimiter(
            base_delay=config.rate_limit.base_delay,
            max_retries=config.rate_limit.max_retries,
        ),
    )
    executor = ActionExecutor(
        approval_callback=ui.confirm_action if config.agent.confirm_actions else None,
    )
    controller = AgentController(
        task,
        client,
        config.agent_config(),
        executor=executor,
        on_history=ui.print_history_item,
    )
    try:
        return await controller.run()
    finally:
        await client.close()


@app.command()
def main(
    task: str = typer.Argument(..., help="Task description to execute"),
    config_path: str = typer.Option("", "-C", "--config", help="Path to config file"),
    llm_api_key: str = typer.Option("", "-k", "--llm-api-key", help="API key for the LLM provider"),
    llm_model: str = typer.Option("", "-m", "--llm-model", help="Model name to use"),
    provider: str = typer.Option("", "-p", "--provider", help="LLM provider (openai, ollama)"),
    rate_limit_base_delay: Optional[int] = typer.Option(
        None, "-r", "--rate-limit-base-delay", min=0, help="Base delay for rate limiting in milliseconds"
    ),
    rate_limit_max_retries: Optional[int] = typer.Option(
        None, "-x", "--rate-limit-max-retries", min=0, help="Maximum retry attempts for rate limiting"
    ),
    file_chunk_size: Optional[int] = typer.Option(
        None, "-c", "--file-chunk-size", min=1, help="Size of file chunks to process"
    ),
    max_iterations: Optional[int] = typer.Option(
        None, "-i", "--max-iterations", min=1, help="Maximum iterations for the agent loop"
    ),
    confirm_actions: bool = typer.Option(
        False, "--confirm-actions", help="Require confirmation before executing actions"
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Execute TASK with the agent loop."""
    ui = TerminalUI()

    try:
        config = Config.load(config_path or None)
    except ConfigurationError as e:
        ui.print_error(str(e))
        raise typer.Exit(code=1)
    except ValidationError as e:
        ui.print_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=1)

    apply_overrides(
        config,
        llm_api_key=llm_api_key,
        llm_model=llm_model,
        provider=provider,
        rate_limit_base_delay=rate_limit_base_delay,
        rate_limit_max_retries=rate_limit_max_retries,
        file_chunk_size=file_chunk_size,
        max_iterations=max_iterations,
        confirm_actions=confirm_actions,
    )
    set_config(config)
    configure_logging(
        level="DEBUG" if verbose else config.logging.level,
        fmt=config.logging.format,
    )

    try:
        llm_provider = create_provider(
            provider=config.llm.provider,
            api_key=config.llm.api_key or None,
            base_url=config.llm.base_url or None,
            timeout=config.llm.timeout,
        )
    except ConfigurationError:
        ui.print_error(
            "LLM API key is required. Set it via LLM_API_KEY env variable or --llm-api-key option."
        )
        raise typer.Exit(code=1)
    except ValueError as e:
        ui.print_error(str(e))
        raise typer.Exit(code=1)

    ui.print_task(task)
    ui.print_system("Starting agent with configuration:")
    ui.print_system(f"- Provider: {config.llm.provider}")
    ui.print_system(f"- Model: {config.llm.model}")
    ui.print_system(f"- Max Iterations: {config.agent.max_iterations}")
    ui.print_system(f"- Confirm Actions: {config.agent.confirm_actions}")

    outcome = asyncio.run(run_agent(task, config, llm_provider, ui))

    if outcome.completed:
        ui.print_success(f"Task completed: {outcome.message}")
    else:
        ui.print_warning(f"Stopped after {outcome.iterations} iterations without finishing")
    ui.print_system(f"Agent completed after {outcome.iterations} iterations")


if __name__ == "__main__":
    app()
