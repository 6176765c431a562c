"""Async httpx client for Azure OpenAI chat completions.

Implements the ChatService protocol, including the auto-invoke mode used by
the single-turn strategy. Requests are not retried: a failed call fails the
strategy that made it.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import TYPE_CHECKING, Any

import httpx

from toolplan.cancellation import guarded
from toolplan.exceptions import LlmAuthError, LlmResponseError, LlmServiceError
from toolplan.trace import Message, ToolCall

if TYPE_CHECKING:
    from collections.abc import Sequence

    from toolplan.cancellation import CancellationToken
    from toolplan.llm.protocols import SamplingOptions
    from toolplan.toolkit.bridge import ToolCallBridge
    from toolplan.toolkit.models import Capability

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-02-15-preview"
DEFAULT_MAX_AUTO_INVOKE_ATTEMPTS = 128

_AUTH_ERROR_STATUS_CODES = {401, 403}


def parse_reply(data: dict) -> Message:
    """Convert a chat-completions response body into an assistant Message.

    Tool-call arguments that are not valid JSON are logged and replaced by
    an empty dict; argument binding then reports what is missing.

    Raises:
        LlmResponseError: If the body has no usable first choice.
    """
    try:
        raw = data["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LlmResponseError(
            f"Unexpected response format: {exc}. Response: {data}"
        ) from exc

    tool_calls: list[ToolCall] = []
    for call in raw.get("tool_calls") or []:
        func = call.get("function") or {}
        name = func.get("name", "")
        try:
            arguments = json.loads(func.get("arguments") or "{}")
        except (json.JSONDecodeError, TypeError):
            logger.warning("Malformed JSON in tool call arguments for %s", name)
            arguments = {}
        if not isinstance(arguments, dict):
            logger.warning("Tool call arguments for %s are not an object", name)
            arguments = {}
        call_id = call.get("id") or f"call_{uuid.uuid4().hex[:8]}"
        tool_calls.append(ToolCall(id=call_id, name=name, arguments=arguments))

    content = raw.get("content")
    if content is None and not tool_calls:
        content = ""
    return Message.assistant(content, tool_calls)


class ChatClient:
    """Azure OpenAI chat-completions client.

    Usage::

        async with ChatClient(endpoint, api_key, deployment="gpt-4o") as chat:
            reply = await chat.complete([Message.user("Hello")])
            print(reply.content)
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str,
        *,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 120.0,
        max_auto_invoke_attempts: int = DEFAULT_MAX_AUTO_INVOKE_ATTEMPTS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the chat client.

        Args:
            endpoint: Azure OpenAI resource URL (scheme and host).
            api_key: Resource key, sent as the ``api-key`` header.
            deployment: Chat model deployment name.
            api_version: Azure OpenAI REST API version.
            timeout: Request timeout in seconds.
            max_auto_invoke_attempts: Tool round-trips allowed in
                auto-invoke mode before tools are withdrawn.
            http_client: Pre-built client (tests pass one with a mock
                transport). The caller keeps ownership.
        """
        self._url = (
            f"{endpoint.rstrip('/')}/openai/deployments/{deployment}"
            f"/chat/completions"
        )
        self._api_version = api_version
        self._max_auto_invoke_attempts = max_auto_invoke_attempts
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Content-Type": "application/json", "api-key": api_key}

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        tools: Sequence[Capability] | None = None,
        options: SamplingOptions | None = None,
        auto_invoke: ToolCallBridge | None = None,
        cancel: CancellationToken | None = None,
    ) -> Message:
        """Send the conversation and return the assistant reply.

        Without ``auto_invoke`` this is a single request and the reply may
        carry tool calls. With it, each tool-call reply is appended to the
        bridge's trace, dispatched, and the conversation re-sent until the
        model answers in plain text.

        Raises:
            LlmAuthError: On 401/403.
            LlmResponseError: On an unexpected response body.
            LlmServiceError: On any other transport or HTTP failure.
        """
        conversation = list(messages)
        attempts = 0
        while True:
            offer = tools
            exhausted = (
                auto_invoke is not None and attempts >= self._max_auto_invoke_attempts
            )
            if exhausted:
                logger.warning(
                    "Auto-invoke limit (%d) reached; requesting a final answer without tools",
                    self._max_auto_invoke_attempts,
                )
                offer = None

            reply = await self._send(conversation, offer, options, cancel)
            if auto_invoke is None or not reply.tool_calls or exhausted:
                return reply

            attempts += 1
            auto_invoke.trace.append(reply)
            conversation.append(reply)
            conversation.extend(await auto_invoke.dispatch(reply, cancel=cancel))

    async def _send(
        self,
        conversation: list[Message],
        tools: Sequence[Capability] | None,
        options: SamplingOptions | None,
        cancel: CancellationToken | None,
    ) -> Message:
        payload: dict[str, Any] = {"messages": [m.to_openai() for m in conversation]}
        if tools:
            payload["tools"] = [cap.to_openai() for cap in tools]
            payload["tool_choice"] = "auto"
        if options is not None:
            payload.update(options.to_payload())

        logger.debug(
            "POST %s (%d messages, %d tools)",
            self._url, len(conversation), len(payload.get("tools", [])),
        )
        try:
            response = await guarded(
                self._client.post(
                    self._url,
                    params={"api-version": self._api_version},
                    headers=self._headers,
                    json=payload,
                ),
                cancel,
            )
        except httpx.HTTPError as exc:
            raise LlmServiceError(f"Chat request failed: {exc}") from exc

        if response.status_code in _AUTH_ERROR_STATUS_CODES:
            raise LlmAuthError(
                f"Authentication failed: HTTP {response.status_code} - {response.text}"
            )
        if response.is_error:
            raise LlmServiceError(
                f"Chat request failed: HTTP {response.status_code} - {response.text}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LlmResponseError(f"Response is not JSON: {response.text[:200]}") from exc
        return parse_reply(data)

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
