"""ToolCallBridge: turns model tool-call requests into capability invocations.

For every tool call carried by an assistant message the bridge looks up the
capability, binds the arguments, invokes it and appends one ``tool``
message with the result to the execution trace.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from toolplan.trace import Message, Role

if TYPE_CHECKING:
    from toolplan.cancellation import CancellationToken
    from toolplan.toolkit.registry import CapabilityRegistry
    from toolplan.trace import ExecutionTrace, ToolCall

logger = logging.getLogger(__name__)


class ToolCallBridge:
    """Dispatches tool calls against a registry and records results in a trace.

    Failures are not turned into error strings for the model. Unknown
    capabilities, binding errors and capability failures propagate, and
    nothing is appended for a call that fails.

    Usage::

        bridge = ToolCallBridge(registry, trace)
        trace.append(reply)
        tool_messages = await bridge.dispatch(reply, cancel=token)
    """

    def __init__(self, registry: CapabilityRegistry, trace: ExecutionTrace) -> None:
        self._registry = registry
        self._trace = trace

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def trace(self) -> ExecutionTrace:
        return self._trace

    async def dispatch(
        self, message: Message, *, cancel: CancellationToken | None = None
    ) -> list[Message]:
        """Execute every tool call of ``message`` in request order.

        Args:
            message: Assistant message carrying tool calls. It must already
                be in the trace.
            cancel: Cancellation token forwarded to each capability.

        Returns:
            The tool messages appended to the trace, one per request.

        Raises:
            UnknownCapabilityError: A call names an unregistered capability.
            ArgumentBindingError: Arguments do not fit the parameter list.
        """
        if message.role != Role.ASSISTANT:
            raise ValueError("Only assistant messages carry tool calls")

        results: list[Message] = []
        for tc in message.tool_calls:
            results.append(await self.invoke(tc, cancel=cancel))
        return results

    async def invoke(
        self, tool_call: ToolCall, *, cancel: CancellationToken | None = None
    ) -> Message:
        """Execute a single tool call and append its result message."""
        if cancel is not None:
            cancel.raise_if_cancelled()

        capability = self._registry.get(tool_call.name)
        logger.info("Calling %s(%s)", tool_call.name, _format_args(tool_call.arguments))
        try:
            output = await capability.invoke(tool_call.arguments, cancel=cancel)
        except Exception as exc:
            logger.info("Tool %s failed: %s: %s", tool_call.name, type(exc).__name__, exc)
            raise

        result = Message.tool(tool_call.id, output, name=tool_call.name)
        self._trace.append(result)
        logger.debug("Tool %s returned %d chars", tool_call.name, len(output))
        return result


def _format_args(arguments: dict) -> str:
    return ", ".join(f"{k}={v!r}" for k, v in arguments.items())
