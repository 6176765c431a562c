"""Built-in capabilities: UTC time, city weather and text-to-image."""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolplan.plugins.image import ImagePlugin
from toolplan.plugins.time import TimePlugin
from toolplan.plugins.weather import WeatherPlugin, WeatherstackSource
from toolplan.toolkit.registry import CapabilityRegistry

if TYPE_CHECKING:
    from toolplan.llm.protocols import ChatService, ImageService


def build_default_registry(
    chat: ChatService,
    images: ImageService,
    weather: WeatherstackSource,
    *,
    time_plugin: TimePlugin | None = None,
) -> CapabilityRegistry:
    """Register the three built-in capabilities (image, time, weather)."""
    registry = CapabilityRegistry()
    registry.register(ImagePlugin(chat, images).capability())
    registry.register((time_plugin or TimePlugin()).capability())
    registry.register(WeatherPlugin(chat, weather).capability())
    return registry


__all__ = [
    "ImagePlugin",
    "TimePlugin",
    "WeatherPlugin",
    "WeatherstackSource",
    "build_default_registry",
]
