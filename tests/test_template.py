"""Tests for the template plan compiler and the auto-invoke strategy."""

from __future__ import annotations

import json

import pytest

from toolplan.exceptions import (
    ImageGenerationError,
    PlannerExhaustedError,
    PlanParseError,
    UnknownCapabilityError,
)
from toolplan.llm import SamplingOptions
from toolplan.planners import AutoInvokePlanner, TemplatePlanner, parse_plan
from toolplan.plugins import TimePlugin, build_default_registry
from toolplan.toolkit import CapabilityRegistry
from toolplan.trace import ExecutionTrace, Role

from tests.conftest import FIXED_NOW, make_echo
from tests.fakes import FakeImages, ScriptedChat, run, text_reply, tool_reply

MADRID_PLAN = json.dumps({
    "steps": [
        {"capability": "get_current_utc_time", "arguments": {}, "output": "now"},
        {"capability": "get_weather_for_city",
         "arguments": {"city_name": "Madrid"}, "output": "weather"},
        {"capability": "create_image_from_text",
         "arguments": {"description": "Madrid at {{ now }}: {{ weather }}"},
         "output": "image"},
    ],
    "result": "{{ image }}",
})


# ===========================================================================
# Template plan compiler
# ===========================================================================


class TestTemplatePlanner:
    def test_compile_and_execute(self, chat, registry, images):
        chat.queue(
            text_reply(MADRID_PLAN),
            text_reply("Sunny, 20 C."),      # weather summary
            text_reply("Your picture is ready."),  # image confirmation
        )

        result = run(TemplatePlanner(chat).run("Draw Madrid now", registry))

        assert result.strategy == "template"
        assert result.plan is not None
        assert result.plan.outputs == ["now", "weather", "image"]
        assert images.calls == [
            ("Madrid at Wed, 01 Jan 2025 00:00:00 GMT: Sunny, 20 C.", 1024, 1024)
        ]
        assert result.final_answer == (
            "Your picture is ready. \n\n URL: https://images.example/madrid.png"
        )
        # Only the compile request is a planning call; the rest come from
        # inside the capabilities.
        assert chat.calls[0]["tools"] is None
        assert chat.calls[0]["messages"][-1].content == "Draw Madrid now"
        assert len(chat.calls) == 3

    def test_trace_shape(self, chat, registry):
        chat.queue(text_reply(MADRID_PLAN), text_reply("Sunny."), text_reply("Done!"))
        result = run(TemplatePlanner(chat).run("Draw Madrid now", registry))
        roles = [m.role for m in result.trace]
        assert roles == [
            Role.SYSTEM, Role.USER, Role.ASSISTANT,
            Role.ASSISTANT, Role.TOOL,
            Role.ASSISTANT, Role.TOOL,
            Role.ASSISTANT, Role.TOOL,
            Role.ASSISTANT,
        ]
        assert result.trace.messages[-1].content == result.final_answer
        assert result.trace.pending_tool_call_ids() == []

    def test_execute_makes_no_planning_calls(self):
        chat = ScriptedChat()
        registry = CapabilityRegistry([make_echo("echo")])
        plan_text = json.dumps({
            "steps": [
                {"capability": "echo", "arguments": {"text": "one"}, "output": "a"},
                {"capability": "echo", "arguments": {"text": "{{ a }}!"}, "output": "b"},
            ],
            "result": "Final: {{ b }}",
        })
        plan = parse_plan(plan_text, registry)
        answer = run(TemplatePlanner(chat).execute(plan, registry, ExecutionTrace()))
        assert answer == "Final: text=text=one!"
        assert chat.calls == []

    def test_unparseable_plan(self, chat, registry):
        chat.queue(text_reply("First I will check the time, then..."))
        trace = ExecutionTrace()
        with pytest.raises(PlanParseError) as exc_info:
            run(TemplatePlanner(chat).run("goal", registry, trace=trace))
        assert "check the time" in exc_info.value.raw
        # The compile exchange stays in the trace; nothing was executed.
        assert [m.role for m in trace] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]

    def test_empty_plan_text(self, chat, registry):
        chat.queue(text_reply(""))
        with pytest.raises(PlanParseError, match="empty plan"):
            run(TemplatePlanner(chat).run("goal", registry))

    def test_plan_with_unknown_capability_never_executes(self, chat, registry, images):
        plan = json.dumps({
            "steps": [
                {"capability": "create_image_from_text",
                 "arguments": {"description": "x"}, "output": "image"},
                {"capability": "teleport", "arguments": {}, "output": "t"},
            ],
        })
        chat.queue(text_reply(plan))
        with pytest.raises(PlanParseError, match="teleport"):
            run(TemplatePlanner(chat).run("goal", registry))
        assert images.calls == []

    @pytest.mark.parametrize(
        "template",
        [
            "{{ ''.__class__.__mro__[1].__subclasses__() | length }}",
            "{{ a.missing }}",
            "{{ a[0] }}",
            "{{ a.upper() }}",
            "{{ a is defined }}",
            "{% for c in a %}{{ c }}{% endfor %}",
            "{% if a %}yes{% endif %}",
            "{% set b = a %}{{ b }}",
        ],
    )
    def test_plan_with_disallowed_template_never_executes(self, template):
        chat = ScriptedChat([text_reply(json.dumps({
            "steps": [
                {"capability": "echo", "arguments": {"text": "seed"}, "output": "a"},
                {"capability": "echo", "arguments": {"text": template}, "output": "b"},
            ],
        }))])
        trace = ExecutionTrace()
        registry = CapabilityRegistry([make_echo("echo")])
        with pytest.raises(PlanParseError, match="not allowed"):
            run(TemplatePlanner(chat).run("goal", registry, trace=trace))
        assert not any(m.role == Role.TOOL for m in trace)

    def test_plan_with_unknown_filter_never_executes(self):
        chat = ScriptedChat([text_reply(json.dumps({
            "steps": [
                {"capability": "echo", "arguments": {"text": "seed"}, "output": "a"},
                {"capability": "echo", "arguments": {"text": "{{ a | nosuchfilter }}"},
                 "output": "b"},
            ],
        }))])
        trace = ExecutionTrace()
        registry = CapabilityRegistry([make_echo("echo")])
        with pytest.raises(PlanParseError, match="nosuchfilter"):
            run(TemplatePlanner(chat).run("goal", registry, trace=trace))
        assert not any(m.role == Role.TOOL for m in trace)

    def test_filters_render_during_execution(self):
        registry = CapabilityRegistry([make_echo("echo")])
        plan = parse_plan(json.dumps({
            "steps": [
                {"capability": "echo", "arguments": {"text": "madrid"}, "output": "a"},
                {"capability": "echo", "arguments": {"text": "{{ a | upper ~ '!' }}"},
                 "output": "b"},
            ],
        }), registry)
        answer = run(TemplatePlanner(ScriptedChat()).execute(plan, registry, ExecutionTrace()))
        assert answer == "text=TEXT=MADRID!"

    def test_step_failure_stops_execution(self, chat, weather):
        images = FakeImages(error=ImageGenerationError("filtered"))
        registry = build_default_registry(
            chat, images, weather, time_plugin=TimePlugin(clock=lambda: FIXED_NOW)
        )
        chat.queue(text_reply(MADRID_PLAN), text_reply("Sunny."), text_reply("Here!"))
        trace = ExecutionTrace()
        with pytest.raises(ImageGenerationError):
            run(TemplatePlanner(chat).run("goal", registry, trace=trace))
        assert trace.last_assistant().tool_calls[0].name == "create_image_from_text"
        assert sum(1 for m in trace if m.role == Role.TOOL) == 2

    def test_custom_options(self, chat, registry):
        options = SamplingOptions(temperature=0.3)
        chat.queue(text_reply("not a plan"))
        with pytest.raises(PlanParseError):
            run(TemplatePlanner(chat, options=options).run("goal", registry))
        assert chat.calls[0]["options"] is options


# ===========================================================================
# Auto-invoke
# ===========================================================================


class TestAutoInvokePlanner:
    def test_single_turn_with_tool_round_trips(self, chat, registry):
        chat.queue(
            tool_reply(("get_current_utc_time", {}, "c1")),
            text_reply("It is midnight UTC."),
        )
        result = run(AutoInvokePlanner(chat).run("What time is it?", registry))

        assert result.strategy == "auto_invoke"
        assert result.final_answer == "It is midnight UTC."
        assert [m.role for m in result.trace] == [
            Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT,
        ]
        assert result.trace.messages[0].content == "What time is it?"
        assert result.trace.messages[2].content == "Wed, 01 Jan 2025 00:00:00 GMT"
        assert chat.calls[0]["tools"] == registry.names()

    def test_no_system_message(self, chat, registry):
        chat.queue(text_reply("Hi."))
        result = run(AutoInvokePlanner(chat).run("Hello", registry))
        assert all(m.role != Role.SYSTEM for m in result.trace)

    def test_reply_still_requesting_tools(self, registry):
        class StubbornChat(ScriptedChat):
            async def complete(self, messages, *, auto_invoke=None, **kwargs):
                return await super().complete(messages, **kwargs)

        chat = StubbornChat([tool_reply(("get_current_utc_time", {}, "c1"))])
        with pytest.raises(PlannerExhaustedError):
            run(AutoInvokePlanner(chat).run("goal", registry))

    def test_tool_error_propagates(self, chat, registry):
        chat.queue(tool_reply(("open_door", {}, "c1")))
        trace = ExecutionTrace()
        with pytest.raises(UnknownCapabilityError):
            run(AutoInvokePlanner(chat).run("goal", registry, trace=trace))
        assert trace.pending_tool_call_ids() == ["c1"]
