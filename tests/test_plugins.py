"""Tests for the built-in capabilities: time, weather and image."""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from toolplan.exceptions import ImageGenerationError, LlmServiceError, WeatherServiceError
from toolplan.plugins import ImagePlugin, TimePlugin, WeatherPlugin, WeatherstackSource
from toolplan.plugins.image import CONFIRMATION_OPTIONS
from toolplan.plugins.weather import SUMMARY_OPTIONS
from toolplan.trace import Message, Role, ToolCall

from tests.conftest import FIXED_NOW
from tests.fakes import FakeImages, FakeWeather, ScriptedChat, run, text_reply

RFC1123 = re.compile(r"^[A-Z][a-z]{2}, \d{2} [A-Z][a-z]{2} \d{4} \d{2}:\d{2}:\d{2} GMT$")


# ===========================================================================
# Time
# ===========================================================================


class TestTimePlugin:
    def test_fixed_clock(self):
        plugin = TimePlugin(clock=lambda: FIXED_NOW)
        assert plugin.get_current_utc_time() == "Wed, 01 Jan 2025 00:00:00 GMT"

    def test_converts_to_utc(self):
        cest = timezone(timedelta(hours=2))
        plugin = TimePlugin(clock=lambda: datetime(2025, 6, 1, 14, 30, 5, tzinfo=cest))
        assert plugin.get_current_utc_time() == "Sun, 01 Jun 2025 12:30:05 GMT"

    def test_real_clock_matches_rfc1123(self):
        assert RFC1123.match(TimePlugin().get_current_utc_time())

    def test_capability_takes_no_arguments(self, registry):
        cap = registry.get("get_current_utc_time")
        assert cap.parameters == ()
        assert run(cap.invoke({})) == "Wed, 01 Jan 2025 00:00:00 GMT"


# ===========================================================================
# Weather
# ===========================================================================


class TestWeatherPlugin:
    def test_summarises_payload(self):
        chat = ScriptedChat([text_reply("Sunny, 20 C in Madrid.")])
        weather = FakeWeather(payload='{"current":{"temperature":20}}')
        plugin = WeatherPlugin(chat, weather)

        result = run(plugin.get_weather_for_city("Madrid"))

        assert result == "Sunny, 20 C in Madrid."
        assert weather.cities == ["Madrid"]
        call = chat.calls[0]
        assert call["tools"] is None
        assert call["options"] == SUMMARY_OPTIONS
        assert call["options"].max_tokens == 200
        assert call["options"].temperature == 0.1
        assert call["messages"][0].role == Role.SYSTEM
        assert '{"current":{"temperature":20}}' in call["messages"][0].content

    def test_source_failure_skips_summary(self):
        chat = ScriptedChat()
        plugin = WeatherPlugin(chat, FakeWeather(error=WeatherServiceError("HTTP 500", 500)))
        with pytest.raises(WeatherServiceError):
            run(plugin.get_weather_for_city("Madrid"))
        assert chat.calls == []

    def test_summary_failure_propagates(self):
        chat = ScriptedChat([LlmServiceError("down")])
        plugin = WeatherPlugin(chat, FakeWeather())
        with pytest.raises(LlmServiceError):
            run(plugin.get_weather_for_city("Madrid"))


def _weatherstack(handler) -> WeatherstackSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WeatherstackSource("secret", base_url="https://weather.test", http_client=client)


class TestWeatherstackSource:
    def test_request_shape(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text='{"current":{"temperature":20}}')

        text = run(_weatherstack(handler).current("Madrid"))

        assert text == '{"current":{"temperature":20}}'
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/current"
        assert request.url.params["query"] == "Madrid"
        assert request.url.params["access_key"] == "secret"

    def test_client_error_status(self):
        source = _weatherstack(lambda r: httpx.Response(404, text="not found"))
        with pytest.raises(WeatherServiceError) as exc_info:
            run(source.current("Atlantis"))
        assert exc_info.value.status_code == 404

    def test_error_document_with_200(self):
        body = {"success": False, "error": {"code": 101, "info": "Invalid access key."}}
        source = _weatherstack(lambda r: httpx.Response(200, json=body))
        with pytest.raises(WeatherServiceError, match="Invalid access key"):
            run(source.current("Madrid"))

    @pytest.mark.parametrize("error", ["quota exceeded", None])
    def test_error_document_without_error_object(self, error):
        body = {"success": False, "error": error}
        source = _weatherstack(lambda r: httpx.Response(200, json=body))
        expected = error or "unknown error"
        with pytest.raises(WeatherServiceError, match=expected):
            run(source.current("Madrid"))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(WeatherServiceError, match="refused"):
            run(_weatherstack(handler).current("Madrid"))


# ===========================================================================
# Image
# ===========================================================================


class TestImagePlugin:
    def test_success_combines_confirmation_and_url(self):
        chat = ScriptedChat([text_reply("Your image is ready!")])
        images = FakeImages(url="https://img.test/cat.png")
        plugin = ImagePlugin(chat, images)

        result = run(plugin.create_image_from_text("a cat in Madrid"))

        assert result == "Your image is ready! \n\n URL: https://img.test/cat.png"
        assert images.calls == [("a cat in Madrid", 1024, 1024)]
        call = chat.calls[0]
        assert call["options"] == CONFIRMATION_OPTIONS
        assert call["options"].max_tokens == 50
        assert call["options"].temperature == 1.0
        assert "a cat in Madrid" in call["messages"][0].content

    def test_confirmation_without_text(self):
        reply = Message.assistant(None, [ToolCall("c1", "get_current_utc_time")])
        plugin = ImagePlugin(ScriptedChat([reply]), FakeImages(url="https://img.test/a.png"))
        result = run(plugin.create_image_from_text("a cat"))
        assert result == " \n\n URL: https://img.test/a.png"

    def test_requests_run_concurrently(self):
        started: list[str] = []
        gate = asyncio.Event()

        class SlowImages(FakeImages):
            async def generate(self, prompt, width, height, *, cancel=None):
                started.append("image")
                await gate.wait()
                return await super().generate(prompt, width, height, cancel=cancel)

        class GateChat(ScriptedChat):
            async def complete(self, messages, **kwargs):
                started.append("chat")
                gate.set()
                return await super().complete(messages, **kwargs)

        plugin = ImagePlugin(GateChat([text_reply("done")]), SlowImages())
        # The image branch blocks until the chat branch has started, so this
        # only completes when both run at the same time.
        result = run(asyncio.wait_for(plugin.create_image_from_text("x"), timeout=5))
        assert set(started) == {"image", "chat"}
        assert result.startswith("done")

    def test_image_failure_after_confirmation_finished(self):
        chat = ScriptedChat([text_reply("Here it is!")])
        images = FakeImages(error=ImageGenerationError("content filter"), delay=0.01)
        plugin = ImagePlugin(chat, images)

        with pytest.raises(ImageGenerationError, match="content filter"):
            run(plugin.create_image_from_text("a cat"))
        # The confirmation request was made and consumed.
        assert chat.remaining == 0
        assert images.finished

    def test_unexpected_image_error_is_wrapped(self):
        chat = ScriptedChat([text_reply("ok")])
        plugin = ImagePlugin(chat, FakeImages(error=RuntimeError("boom")))
        with pytest.raises(ImageGenerationError, match="boom"):
            run(plugin.create_image_from_text("a cat"))

    def test_confirmation_failure_propagates(self):
        chat = ScriptedChat([LlmServiceError("chat down")])
        images = FakeImages()
        plugin = ImagePlugin(chat, images)
        with pytest.raises(LlmServiceError):
            run(plugin.create_image_from_text("a cat"))
        assert images.finished
