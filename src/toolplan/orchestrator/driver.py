"""Orchestrator driver: runs one goal through every strategy in sequence.

Each strategy gets a fresh execution trace. Strategies never run
concurrently and share only the frozen capability registry.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from toolplan.exceptions import RunCancelledError
from toolplan.orchestrator.models import RunOutcome, StrategyReport
from toolplan.planners.auto_invoke import AutoInvokePlanner
from toolplan.planners.stepwise import StepwiseConfig, StepwisePlanner
from toolplan.planners.template import TemplatePlanner
from toolplan.trace import ExecutionTrace

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from toolplan.cancellation import CancellationToken
    from toolplan.llm.protocols import ChatService
    from toolplan.planners.base import PlanningStrategy
    from toolplan.toolkit.registry import CapabilityRegistry

logger = logging.getLogger(__name__)

DEFAULT_GOAL = (
    "Check current UTC time, then tell me the current weather in Madrid city, "
    "and finally use that information from the weather to create an image."
)


@dataclass
class DriverConfig:
    """Configuration for the orchestrator driver.

    Attributes:
        continue_on_failure: Keep running the remaining strategies after
            one fails. By default the first failure ends the run.
        on_report: Callback invoked with each report as soon as it exists.
    """

    continue_on_failure: bool = False
    on_report: Callable[[StrategyReport], None] | None = None


def default_strategies(
    chat: ChatService, stepwise: StepwiseConfig | None = None
) -> list[PlanningStrategy]:
    """The three strategies in demonstration order."""
    return [
        StepwisePlanner(chat, stepwise),
        TemplatePlanner(chat),
        AutoInvokePlanner(chat),
    ]


class OrchestratorDriver:
    """Runs a fixed goal through a list of strategies.

    Usage::

        driver = OrchestratorDriver(registry, default_strategies(chat))
        for report in await driver.run(DEFAULT_GOAL):
            print(report.strategy, report.outcome, report.final_answer)
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        strategies: Sequence[PlanningStrategy],
        config: DriverConfig | None = None,
    ) -> None:
        if not strategies:
            raise ValueError("At least one strategy is required")
        self._registry = registry
        self._strategies = list(strategies)
        self._config = config or DriverConfig()

    async def run(
        self, goal: str = DEFAULT_GOAL, *, cancel: CancellationToken | None = None
    ) -> list[StrategyReport]:
        """Run every strategy in order and report on each.

        A cancelled strategy always ends the run. A failed strategy ends it
        unless ``continue_on_failure`` is set. Strategies that never ran
        are absent from the returned list.
        """
        self._registry.freeze()
        reports: list[StrategyReport] = []

        for strategy in self._strategies:
            report = await self._run_one(strategy, goal, cancel)
            reports.append(report)
            if self._config.on_report is not None:
                self._config.on_report(report)

            if report.outcome == RunOutcome.CANCELLED:
                logger.warning("Run cancelled during %s; stopping", strategy.name)
                break
            if report.outcome == RunOutcome.FAILED and not self._config.continue_on_failure:
                logger.warning("%s failed; skipping remaining strategies", strategy.name)
                break

        return reports

    async def _run_one(
        self,
        strategy: PlanningStrategy,
        goal: str,
        cancel: CancellationToken | None,
    ) -> StrategyReport:
        trace = ExecutionTrace()
        logger.info("Starting %s strategy", strategy.name)
        started = time.perf_counter()
        try:
            result = await strategy.run(goal, self._registry, trace=trace, cancel=cancel)
        except RunCancelledError as exc:
            return StrategyReport(
                strategy=strategy.name,
                outcome=RunOutcome.CANCELLED,
                trace=trace,
                elapsed_seconds=time.perf_counter() - started,
                error=exc,
            )
        except Exception as exc:
            logger.error("%s strategy failed: %s", strategy.name, exc)
            return StrategyReport(
                strategy=strategy.name,
                outcome=RunOutcome.FAILED,
                trace=trace,
                elapsed_seconds=time.perf_counter() - started,
                error=exc,
            )

        logger.info(
            "%s strategy completed in %.1fs", strategy.name, result.elapsed_seconds
        )
        return StrategyReport(
            strategy=strategy.name,
            outcome=RunOutcome.COMPLETED,
            trace=result.trace,
            elapsed_seconds=result.elapsed_seconds,
            result=result,
        )
