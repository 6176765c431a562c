"""Shared test fixtures for toolplan.

Provides scripted collaborators and a registry of the built-in
capabilities wired to them. Nothing touches the network.
"""

from datetime import datetime, timezone

import pytest

from toolplan.plugins import TimePlugin, build_default_registry
from toolplan.toolkit import Capability, CapabilityRegistry, Parameter

from tests.fakes import FakeImages, FakeWeather, ScriptedChat

FIXED_NOW = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def chat() -> ScriptedChat:
    return ScriptedChat()


@pytest.fixture
def images() -> FakeImages:
    return FakeImages()


@pytest.fixture
def weather() -> FakeWeather:
    return FakeWeather()


@pytest.fixture
def registry(chat, images, weather) -> CapabilityRegistry:
    """The three built-in capabilities with a fixed clock."""
    return build_default_registry(
        chat, images, weather, time_plugin=TimePlugin(clock=lambda: FIXED_NOW)
    )


def make_echo(name: str = "echo", **param_types: str) -> Capability:
    """Capability that echoes its arguments back as ``k=v`` pairs."""
    params = param_types or {"text": "string"}

    def handler(cancel=None, **kwargs):
        return ",".join(f"{k}={v}" for k, v in sorted(kwargs.items()))

    return Capability(
        name=name,
        description=f"Echo capability {name}.",
        parameters=tuple(Parameter(p, t) for p, t in params.items()),
        handler=handler,
    )
