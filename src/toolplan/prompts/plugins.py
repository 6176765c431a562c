"""Prompts used inside capabilities for auxiliary (non-tool) chat calls."""

from __future__ import annotations

WEATHER_SUMMARY_SYSTEM: str = (
    "You are an expert AI understanding and interpreting the JSON response "
    "from the Weatherstack service. Create an easy to read and short summary "
    "of the weather from the following JSON:\n\n{payload}\n"
)

IMAGE_CONFIRMATION_SYSTEM: str = (
    "Create a human response to indicate users that the image they "
    "requested has been created. The prompt for the image the user has "
    "requested is: {description}"
)
