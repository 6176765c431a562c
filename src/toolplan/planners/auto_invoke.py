"""Single-turn auto-invoke strategy.

Hands loop control to the chat service: one ``complete`` call with the full
tool set and auto-invoke enabled. The service runs the tool round-trips
itself, recording them in the trace through the bridge.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from toolplan.exceptions import PlannerExhaustedError
from toolplan.planners.base import RunResult, check_cancelled
from toolplan.toolkit.bridge import ToolCallBridge
from toolplan.trace import ExecutionTrace, Message, Role

if TYPE_CHECKING:
    from toolplan.cancellation import CancellationToken
    from toolplan.llm.protocols import ChatService, SamplingOptions
    from toolplan.toolkit.registry import CapabilityRegistry

logger = logging.getLogger(__name__)


class AutoInvokePlanner:
    """Lets the chat service call tools on its own within one turn."""

    name = "auto_invoke"

    def __init__(self, chat: ChatService, options: SamplingOptions | None = None) -> None:
        self._chat = chat
        self._options = options

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
        check_cancelled(cancel)

        trace.append(Message.user(goal))
        bridge = ToolCallBridge(registry, trace)
        reply = await self._chat.complete(
            trace.messages,
            tools=registry.list(),
            options=self._options,
            auto_invoke=bridge,
            cancel=cancel,
        )
        if reply.tool_calls:
            rounds = sum(1 for m in trace if m.role == Role.ASSISTANT and m.tool_calls)
            raise PlannerExhaustedError(
                rounds, "chat service stopped auto-invoking before a final answer"
            )
        trace.append(reply)

        elapsed = time.perf_counter() - started
        logger.info("Auto-invoke run done in %.1fs", elapsed)
        return RunResult(
            strategy=self.name,
            final_answer=reply.content or "",
            trace=trace,
            elapsed_seconds=elapsed,
        )
