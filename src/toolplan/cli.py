"""toolplan CLI -- run the planning strategies from a terminal.

This module is never imported from toolplan/__init__.py. It is loaded via
the ``toolplan`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING

import click
from rich.logging import RichHandler

from toolplan.cancellation import CancellationToken
from toolplan.config import PlannerSettings, Settings
from toolplan.exceptions import ConfigError
from toolplan.formatting import format_error, get_console, render_report, render_tools
from toolplan.llm.client import ChatClient
from toolplan.llm.images import ImageClient
from toolplan.orchestrator import (
    DEFAULT_GOAL,
    DriverConfig,
    OrchestratorDriver,
    RunOutcome,
    default_strategies,
)
from toolplan.planners.stepwise import StepwiseConfig
from toolplan.plugins import WeatherstackSource, build_default_registry

if TYPE_CHECKING:
    from rich.console import Console

    from toolplan.orchestrator import StrategyReport

logger = logging.getLogger(__name__)

EXIT_FAILED = 1
EXIT_CANCELLED = 130


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _load_settings(env_file: str | None, planner: PlannerSettings, console: Console) -> Settings:
    try:
        return Settings.from_env(env_file=env_file, planner=planner)
    except ConfigError as e:
        format_error(str(e), console)
        raise SystemExit(EXIT_FAILED) from None


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    envvar="TOOLPLAN_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level.",
)
@click.option(
    "--env-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Load settings from this .env file.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, env_file: str | None) -> None:
    """toolplan: reach one goal with three LLM planning strategies."""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


@cli.command()
@click.option("--goal", default=DEFAULT_GOAL, show_default=False, help="Goal to pursue.")
@click.option("--max-steps", default=15, type=click.IntRange(min=1), help="Stepwise planner step limit.")
@click.option("--max-seconds", default=None, type=click.FloatRange(min=0, min_open=True), help="Stepwise planner time budget.")
@click.option("--continue-on-failure", is_flag=True, help="Keep going after a strategy fails.")
@click.option("--no-initial-plan", is_flag=True, help="Skip the stepwise planner's initial outline.")
@click.pass_context
def run(
    ctx: click.Context,
    goal: str,
    max_steps: int,
    max_seconds: float | None,
    continue_on_failure: bool,
    no_initial_plan: bool,
) -> None:
    """Run the goal through the stepwise, template and auto-invoke strategies."""
    console = get_console()
    planner = PlannerSettings(
        max_steps=max_steps,
        max_seconds=max_seconds,
        generate_initial_plan=not no_initial_plan,
        continue_on_failure=continue_on_failure,
    )
    settings = _load_settings(ctx.obj["env_file"], planner, console)

    console.print("[green]Starting App...[/green]")
    reports = asyncio.run(_run(settings, goal, console))

    if any(r.outcome == RunOutcome.CANCELLED for r in reports):
        raise SystemExit(EXIT_CANCELLED)
    if any(r.outcome == RunOutcome.FAILED for r in reports):
        raise SystemExit(EXIT_FAILED)
    console.print("[green]Bye![/green]")


@cli.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """List the capabilities offered to the model."""
    console = get_console()
    settings = _load_settings(ctx.obj["env_file"], PlannerSettings(), console)

    async def _describe() -> None:
        async with AsyncExitStack() as stack:
            registry, _ = await _build(settings, stack)
            console.print(render_tools(registry))

    asyncio.run(_describe())


async def _build(settings: Settings, stack: AsyncExitStack):
    azure = settings.azure_openai
    endpoint = str(azure.endpoint)
    chat = await stack.enter_async_context(
        ChatClient(endpoint, azure.key, azure.chat_deployment, api_version=azure.api_version)
    )
    images = await stack.enter_async_context(
        ImageClient(endpoint, azure.key, azure.image_deployment, api_version=azure.api_version)
    )
    weather = WeatherstackSource(
        settings.weatherstack.access_key, base_url=str(settings.weatherstack.base_url)
    )
    stack.push_async_callback(weather.aclose)
    return build_default_registry(chat, images, weather), chat


async def _run(settings: Settings, goal: str, console: Console) -> list[StrategyReport]:
    cancel = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel, "interrupted")
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler not supported on this platform")

    planner = settings.planner
    async with AsyncExitStack() as stack:
        registry, chat = await _build(settings, stack)
        strategies = default_strategies(
            chat,
            StepwiseConfig(
                max_steps=planner.max_steps,
                max_seconds=planner.max_seconds,
                generate_initial_plan=planner.generate_initial_plan,
            ),
        )
        driver = OrchestratorDriver(
            registry,
            strategies,
            DriverConfig(
                continue_on_failure=planner.continue_on_failure,
                on_report=lambda report: render_report(report, console),
            ),
        )
        return await driver.run(goal, cancel=cancel)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
