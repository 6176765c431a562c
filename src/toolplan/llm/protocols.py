"""Chat and image service protocols plus per-call sampling options.

Strategies and capabilities depend on these protocols, not on the httpx
clients, so tests can script the model with in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolplan.cancellation import CancellationToken
    from toolplan.toolkit.bridge import ToolCallBridge
    from toolplan.toolkit.models import Capability
    from toolplan.trace import Message


@dataclass(frozen=True)
class SamplingOptions:
    """Sampling settings for one chat request.

    All fields are optional -- None means "use the service default".

    Example::

        SamplingOptions(max_tokens=200, temperature=0.1, top_p=1.0)
    """

    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.top_p is not None:
            payload["top_p"] = self.top_p
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload


@runtime_checkable
class ChatService(Protocol):
    """Protocol for the LLM chat service.

    ``complete`` returns the model's reply as an assistant Message. When
    ``auto_invoke`` is given, tool calls are executed through that bridge
    and fed back until the model produces a reply without tool calls; the
    intermediate assistant and tool messages land in the bridge's trace.
    """

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        tools: Sequence[Capability] | None = None,
        options: SamplingOptions | None = None,
        auto_invoke: ToolCallBridge | None = None,
        cancel: CancellationToken | None = None,
    ) -> Message:
        """Send a conversation, return the assistant reply."""
        ...


@runtime_checkable
class ImageService(Protocol):
    """Protocol for the text-to-image service."""

    async def generate(
        self,
        prompt: str,
        width: int,
        height: int,
        *,
        cancel: CancellationToken | None = None,
    ) -> str:
        """Generate an image and return its URL."""
        ...
