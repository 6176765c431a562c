"""Conversation messages and the append-only execution trace.

A trace is the ordered conversation of one strategy run. Messages are
frozen; the trace only ever grows.
"""

from __future__ import annotations

import enum
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from toolplan.exceptions import TraceIntegrityError

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    """Author role of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A structured request from the model to invoke a capability."""

    id: str
    name: str
    arguments: dict = field(default_factory=dict)

    def to_openai(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": json.dumps(self.arguments),
            },
        }


@dataclass(frozen=True)
class Message:
    """One turn in a conversation.

    Attributes:
        role: Author role.
        content: Message text. May be None only on assistant messages that
            carry tool calls.
        tool_calls: Tool invocations requested by an assistant message.
        tool_call_id: On tool messages, the id of the request being answered.
        name: On tool messages, the capability that produced the result.
    """

    role: Role
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        role = Role(self.role)
        object.__setattr__(self, "role", role)
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

        if self.tool_calls and role != Role.ASSISTANT:
            raise ValueError("Only assistant messages may carry tool calls")
        if role == Role.TOOL and not self.tool_call_id:
            raise ValueError("Tool messages require a tool_call_id")
        if role != Role.TOOL and self.tool_call_id is not None:
            raise ValueError("Only tool messages may carry a tool_call_id")
        if self.content is None and not self.tool_calls:
            raise ValueError(
                f"{role.value} message requires content unless it carries tool calls"
            )

    # -- constructors ------------------------------------------------------

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(Role.USER, content)

    @classmethod
    def assistant(
        cls, content: str | None, tool_calls: tuple[ToolCall, ...] | list[ToolCall] = ()
    ) -> Message:
        return cls(Role.ASSISTANT, content, tuple(tool_calls))

    @classmethod
    def tool(cls, tool_call_id: str, content: str, name: str | None = None) -> Message:
        return cls(Role.TOOL, content, tool_call_id=tool_call_id, name=name)

    # -- wire format -------------------------------------------------------

    def to_openai(self) -> dict:
        """Serialise to the chat-completions message format."""
        out: dict = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            out["tool_calls"] = [tc.to_openai() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            out["tool_call_id"] = self.tool_call_id
        if self.name is not None and self.role == Role.TOOL:
            out["name"] = self.name
        return out


class ExecutionTrace:
    """Append-only log of the messages exchanged during one strategy run.

    Every ``tool`` message must answer a tool call requested by an earlier
    assistant message, and each request is answered at most once.
    """

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages: list[Message] = []
        self._requested: set[str] = set()
        self._answered: set[str] = set()
        for msg in messages or []:
            self.append(msg)

    @classmethod
    def seeded(cls, goal: str, system_prompt: str | None = None) -> ExecutionTrace:
        """Create a fresh trace whose first user message is ``goal``."""
        trace = cls()
        if system_prompt:
            trace.append(Message.system(system_prompt))
        trace.append(Message.user(goal))
        return trace

    def append(self, message: Message) -> None:
        if message.role == Role.TOOL:
            call_id = message.tool_call_id
            if call_id not in self._requested:
                raise TraceIntegrityError(
                    f"Tool message answers unknown tool call id '{call_id}'"
                )
            if call_id in self._answered:
                raise TraceIntegrityError(
                    f"Tool call id '{call_id}' already has a result"
                )
            self._answered.add(call_id)

        new_ids = [tc.id for tc in message.tool_calls]
        if len(set(new_ids)) != len(new_ids) or self._requested.intersection(new_ids):
            raise TraceIntegrityError(f"Duplicate tool call id in {new_ids}")
        self._requested.update(new_ids)
        self._messages.append(message)
        logger.debug("trace += %s (%d messages)", message.role.value, len(self._messages))

    def extend(self, messages: list[Message]) -> None:
        for msg in messages:
            self.append(msg)

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the messages in append order."""
        return tuple(self._messages)

    def pending_tool_call_ids(self) -> list[str]:
        """Ids of requested tool calls that have no result yet, in request order."""
        return [
            tc.id
            for msg in self._messages
            for tc in msg.tool_calls
            if tc.id not in self._answered
        ]

    def last_assistant(self) -> Message | None:
        for msg in reversed(self._messages):
            if msg.role == Role.ASSISTANT:
                return msg
        return None

    def to_openai(self) -> list[dict]:
        return [msg.to_openai() for msg in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __repr__(self) -> str:
        return f"ExecutionTrace({len(self._messages)} messages)"
