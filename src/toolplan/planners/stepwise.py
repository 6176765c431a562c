"""Stepwise function-calling planner.

Repeatedly asks the model for the next tool call, executes it, and feeds the
result back until the model answers in plain text:

    THINKING -> (TOOL_CALL -> THINKING)* -> DONE

The number of TOOL_CALL transitions is bounded by ``max_steps`` and the
whole run optionally by ``max_seconds``; running out raises
PlannerExhaustedError instead of returning a partial answer.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from toolplan.exceptions import PlannerExhaustedError
from toolplan.llm.protocols import SamplingOptions
from toolplan.planners.base import RunResult, check_cancelled
from toolplan.prompts.planners import (
    INITIAL_PLAN_SYSTEM,
    STEPWISE_PLAN_SECTION,
    STEPWISE_SYSTEM,
)
from toolplan.toolkit.bridge import ToolCallBridge
from toolplan.trace import ExecutionTrace, Message

if TYPE_CHECKING:
    from collections.abc import Callable

    from toolplan.cancellation import CancellationToken
    from toolplan.llm.protocols import ChatService
    from toolplan.toolkit.registry import CapabilityRegistry
    from toolplan.trace import ToolCall

logger = logging.getLogger(__name__)


class StepState(str, enum.Enum):
    """States of the stepwise planner."""

    THINKING = "thinking"
    TOOL_CALL = "tool_call"
    DONE = "done"


@dataclass(frozen=True)
class StepRecord:
    """One transition of the stepwise planner, passed to ``on_step``."""

    step: int
    state: StepState
    tool_calls: tuple[ToolCall, ...] = ()


@dataclass
class StepwiseConfig:
    """Configuration for the stepwise planner.

    Attributes:
        max_steps: Maximum number of tool-call transitions per run.
        max_seconds: Optional wall-clock budget, checked before each
            model call.
        generate_initial_plan: Ask the model for a numbered outline first
            and include it in the system message.
        options: Sampling options for the planning calls.
        on_step: Callback invoked after each transition.
    """

    max_steps: int = 15
    max_seconds: float | None = None
    generate_initial_plan: bool = True
    options: SamplingOptions = field(default_factory=lambda: SamplingOptions(temperature=0.0))
    on_step: Callable[[StepRecord], None] | None = None

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if self.max_seconds is not None and self.max_seconds <= 0:
            raise ValueError("max_seconds must be positive")


class StepwisePlanner:
    """Function-calling planner that decides one step at a time.

    Usage::

        planner = StepwisePlanner(chat, StepwiseConfig(max_steps=10))
        result = await planner.run(goal, registry)
        print(result.final_answer)
    """

    name = "stepwise"

    def __init__(self, chat: ChatService, config: StepwiseConfig | None = None) -> None:
        self._chat = chat
        self._config = config or StepwiseConfig()

    @property
    def config(self) -> StepwiseConfig:
        return self._config

    async def run(
        self,
        goal: str,
        registry: CapabilityRegistry,
        *,
        trace: ExecutionTrace | None = None,
        cancel: CancellationToken | None = None,
    ) -> RunResult:
        """Run the planner loop until the model produces a final answer.

        Raises:
            PlannerExhaustedError: Step or time budget ran out.
            UnknownCapabilityError, ArgumentBindingError: Bad tool call.
            LlmServiceError: The chat service failed.
            RunCancelledError: ``cancel`` fired.
        """
        trace = trace if trace is not None else ExecutionTrace()
        started = time.perf_counter()
        tools = registry.list()
        functions = registry.describe()

        system_prompt = STEPWISE_SYSTEM.format(functions=functions)
        if self._config.generate_initial_plan:
            outline = await self._initial_plan(goal, functions, cancel)
            if outline:
                system_prompt += STEPWISE_PLAN_SECTION.format(plan=outline)

        trace.append(Message.system(system_prompt))
        trace.append(Message.user(goal))
        bridge = ToolCallBridge(registry, trace)

        tool_steps = 0
        while True:
            check_cancelled(cancel)
            self._check_time(started, tool_steps)
            self._notify(StepRecord(tool_steps, StepState.THINKING))

            reply = await self._chat.complete(
                trace.messages,
                tools=tools,
                options=self._config.options,
                cancel=cancel,
            )

            if not reply.tool_calls:
                trace.append(reply)
                self._notify(StepRecord(tool_steps, StepState.DONE))
                elapsed = time.perf_counter() - started
                logger.info(
                    "Stepwise planner done after %d tool-call step(s) in %.1fs",
                    tool_steps, elapsed,
                )
                return RunResult(
                    strategy=self.name,
                    final_answer=reply.content or "",
                    trace=trace,
                    elapsed_seconds=elapsed,
                )

            if tool_steps >= self._config.max_steps:
                raise PlannerExhaustedError(
                    tool_steps, f"step limit of {self._config.max_steps} reached"
                )

            tool_steps += 1
            trace.append(reply)
            self._notify(StepRecord(tool_steps, StepState.TOOL_CALL, reply.tool_calls))
            logger.debug(
                "Step %d: %s", tool_steps, ", ".join(tc.name for tc in reply.tool_calls)
            )
            await bridge.dispatch(reply, cancel=cancel)

    async def _initial_plan(
        self, goal: str, functions: str, cancel: CancellationToken | None
    ) -> str:
        reply = await self._chat.complete(
            [
                Message.system(INITIAL_PLAN_SYSTEM.format(functions=functions)),
                Message.user(goal),
            ],
            options=self._config.options,
            cancel=cancel,
        )
        return (reply.content or "").strip()

    def _check_time(self, started: float, tool_steps: int) -> None:
        budget = self._config.max_seconds
        if budget is not None and time.perf_counter() - started > budget:
            raise PlannerExhaustedError(tool_steps, f"time budget of {budget}s exceeded")

    def _notify(self, record: StepRecord) -> None:
        if self._config.on_step is None:
            return
        try:
            self._config.on_step(record)
        except Exception:
            logger.debug("on_step callback error", exc_info=True)
