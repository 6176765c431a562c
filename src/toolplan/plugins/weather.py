"""Weather capability backed by the Weatherstack HTTP API.

The raw JSON payload is summarised into a short natural-language
description by one auxiliary chat call before it is returned to the model.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from toolplan.cancellation import guarded
from toolplan.exceptions import WeatherServiceError
from toolplan.llm.protocols import SamplingOptions
from toolplan.prompts.plugins import WEATHER_SUMMARY_SYSTEM
from toolplan.toolkit.models import Capability, Parameter
from toolplan.trace import Message

if TYPE_CHECKING:
    from toolplan.cancellation import CancellationToken
    from toolplan.llm.protocols import ChatService

logger = logging.getLogger(__name__)

DEFAULT_WEATHERSTACK_URL = "https://api.weatherstack.com"

SUMMARY_OPTIONS = SamplingOptions(max_tokens=200, temperature=0.1, top_p=1.0)


class WeatherstackSource:
    """Fetches current weather payloads from Weatherstack.

    Non-success statuses are hard failures and are not retried.
    """

    def __init__(
        self,
        access_key: str,
        *,
        base_url: str = DEFAULT_WEATHERSTACK_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._access_key = access_key
        self._url = f"{base_url.rstrip('/')}/current"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def current(
        self, city_name: str, *, cancel: CancellationToken | None = None
    ) -> str:
        """Return the raw JSON payload for ``city_name``.

        Raises:
            WeatherServiceError: On transport failure, a non-2xx status, or
                an error document (Weatherstack reports some failures with
                HTTP 200 and ``"success": false``).
        """
        logger.debug("GET %s query=%s", self._url, city_name)
        try:
            response = await guarded(
                self._client.get(
                    self._url,
                    params={"query": city_name, "access_key": self._access_key},
                ),
                cancel,
            )
        except httpx.HTTPError as exc:
            raise WeatherServiceError(f"Weather request failed: {exc}") from exc

        if response.is_error:
            raise WeatherServiceError(
                f"Weather request failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("success") is False:
            error = body.get("error")
            info = error.get("info", "unknown error") if isinstance(error, dict) else error
            info = info or "unknown error"
            raise WeatherServiceError(
                f"Weather service error: {info}", status_code=response.status_code
            )
        return response.text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class WeatherPlugin:
    """Looks up the weather for a city and describes it in plain words."""

    def __init__(self, chat: ChatService, source: WeatherstackSource) -> None:
        self._chat = chat
        self._source = source

    async def get_weather_for_city(
        self, city_name: str, cancel: CancellationToken | None = None
    ) -> str:
        payload = await self._source.current(city_name, cancel=cancel)
        prompt = WEATHER_SUMMARY_SYSTEM.format(payload=payload)
        reply = await self._chat.complete(
            [Message.system(prompt)], options=SUMMARY_OPTIONS, cancel=cancel
        )
        return reply.content or ""

    def capability(self) -> Capability:
        return Capability(
            name="get_weather_for_city",
            description="Gets the current weather for the specified city.",
            parameters=(
                Parameter("city_name", "string", "Name of the city, e.g. Madrid."),
            ),
            handler=self.get_weather_for_city,
        )
