"""Template plan compiler.

Two phases: **compile** asks the model once for a templated JSON plan and
validates it; **execute** walks the steps top to bottom, resolving argument
templates against earlier outputs and invoking capabilities directly. No
model call happens during execution.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from toolplan.exceptions import PlanParseError
from toolplan.llm.protocols import SamplingOptions
from toolplan.planners.base import RunResult, check_cancelled
from toolplan.planners.plan import parse_plan, render_result, render_value
from toolplan.prompts.planners import TEMPLATE_PLAN_SYSTEM
from toolplan.toolkit.bridge import ToolCallBridge
from toolplan.trace import ExecutionTrace, Message, ToolCall

if TYPE_CHECKING:
    from toolplan.cancellation import CancellationToken
    from toolplan.llm.protocols import ChatService
    from toolplan.planners.plan import Plan
    from toolplan.toolkit.registry import CapabilityRegistry

logger = logging.getLogger(__name__)


class TemplatePlanner:
    """Compiles a goal into a plan once, then executes it deterministically.

    Usage::

        planner = TemplatePlanner(chat)
        trace = ExecutionTrace()
        plan = await planner.compile(goal, registry, trace)
        print(plan)
        answer = await planner.execute(plan, registry, trace)
    """

    name = "template"

    def __init__(self, chat: ChatService, options: SamplingOptions | None = None) -> None:
        self._chat = chat
        self._options = options or SamplingOptions(temperature=0.0)

    async def run(
        self,
        goal: str,
        registry: CapabilityRegistry,
        *,
        trace: ExecutionTrace | None = None,
        cancel: CancellationToken | None = None,
    ) -> RunResult:
        trace = trace if trace is not None else ExecutionTrace()
        started = time.perf_counter()

        plan = await self.compile(goal, registry, trace, cancel=cancel)
        answer = await self.execute(plan, registry, trace, cancel=cancel)
        trace.append(Message.assistant(answer))

        elapsed = time.perf_counter() - started
        logger.info("Template plan of %d step(s) done in %.1fs", len(plan.steps), elapsed)
        return RunResult(
            strategy=self.name,
            final_answer=answer,
            trace=trace,
            elapsed_seconds=elapsed,
            plan=plan,
        )

    async def compile(
        self,
        goal: str,
        registry: CapabilityRegistry,
        trace: ExecutionTrace,
        *,
        cancel: CancellationToken | None = None,
    ) -> Plan:
        """Ask the model for a plan and validate it.

        The prompt, goal and plan text are appended to ``trace``.

        Raises:
            PlanParseError: The reply is not a well-formed plan.
            LlmServiceError: The chat service failed.
        """
        check_cancelled(cancel)
        trace.append(Message.system(TEMPLATE_PLAN_SYSTEM.format(functions=registry.describe())))
        trace.append(Message.user(goal))

        reply = await self._chat.complete(trace.messages, options=self._options, cancel=cancel)
        text = reply.content or ""
        trace.append(Message.assistant(text))
        if not text.strip():
            raise PlanParseError("Model returned an empty plan", raw=text)

        plan = parse_plan(text, registry)
        logger.info("Compiled plan:\n%s", plan.render_text())
        return plan

    async def execute(
        self,
        plan: Plan,
        registry: CapabilityRegistry,
        trace: ExecutionTrace,
        *,
        cancel: CancellationToken | None = None,
    ) -> str:
        """Run every step in order and return the rendered final answer.

        Each step is recorded as an assistant tool-call message followed by
        its tool result, so the trace has the same shape as a model-driven
        run.
        """
        bridge = ToolCallBridge(registry, trace)
        slots: dict[str, str] = {}
        for index, step in enumerate(plan.steps, 1):
            check_cancelled(cancel)
            arguments = {
                name: render_value(value, slots)
                for name, value in step.arguments.items()
            }
            call = ToolCall(
                id=f"plan_{len(trace)}_{index}",
                name=step.capability,
                arguments=arguments,
            )
            trace.append(Message.assistant(None, [call]))
            result = await bridge.invoke(call, cancel=cancel)
            slots[step.output] = result.content or ""
        return render_result(plan, slots)
