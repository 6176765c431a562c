"""Configuration models for toolplan.

Settings are read from environment variables (optionally loaded from a
``.env`` file) and validated before any orchestration code runs. Invalid
configuration raises ConfigError listing every problem.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, ValidationError, field_validator

from toolplan.exceptions import ConfigError
from toolplan.llm.client import DEFAULT_API_VERSION
from toolplan.plugins.weather import DEFAULT_WEATHERSTACK_URL

ENV_PREFIX = "TOOLPLAN_"


class AzureOpenAISettings(BaseModel):
    """Azure OpenAI resource and deployments.

    Deployment names are not necessarily the model names: a ``gpt-4``
    model may be deployed as "MyGPT". The model names are informational.
    """

    model_config = {"frozen": True}

    endpoint: HttpUrl
    key: str
    chat_deployment: str
    chat_model: str
    image_deployment: str
    image_model: str
    api_version: str = DEFAULT_API_VERSION

    @field_validator(
        "key", "chat_deployment", "chat_model", "image_deployment", "image_model",
        "api_version",
    )
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class WeatherstackSettings(BaseModel):
    """Weatherstack API access."""

    model_config = {"frozen": True}

    access_key: str
    base_url: HttpUrl = Field(default=DEFAULT_WEATHERSTACK_URL, validate_default=True)

    @field_validator("access_key")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class PlannerSettings(BaseModel):
    """Knobs for the strategies and the driver."""

    max_steps: int = Field(default=15, ge=1)
    max_seconds: Optional[float] = Field(default=None, gt=0)
    generate_initial_plan: bool = True
    continue_on_failure: bool = False


class Settings(BaseModel):
    """Complete application settings."""

    azure_openai: AzureOpenAISettings
    weatherstack: WeatherstackSettings
    planner: PlannerSettings = Field(default_factory=PlannerSettings)

    @classmethod
    def from_env(
        cls,
        env: dict[str, str] | None = None,
        *,
        env_file: str | None = None,
        planner: PlannerSettings | None = None,
    ) -> Settings:
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (tests).
            env_file: Path of a ``.env`` file to load first. When omitted
                and ``env`` is None, a ``.env`` in the working directory is
                loaded if present. Existing variables are not overridden.
            planner: Planner settings to attach.

        Raises:
            ConfigError: If any value is missing or invalid.
        """
        if env is None:
            load_dotenv(env_file, override=False)
            env = dict(os.environ)

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        raw: dict = {
            "azure_openai": _drop_none({
                "endpoint": get("AZURE_OPENAI_ENDPOINT"),
                "key": get("AZURE_OPENAI_KEY"),
                "chat_deployment": get("CHAT_DEPLOYMENT"),
                "chat_model": get("CHAT_MODEL"),
                "image_deployment": get("IMAGE_DEPLOYMENT"),
                "image_model": get("IMAGE_MODEL"),
                "api_version": get("AZURE_OPENAI_API_VERSION"),
            }),
            "weatherstack": _drop_none({
                "access_key": get("WEATHERSTACK_KEY"),
                "base_url": get("WEATHERSTACK_URL"),
            }),
        }
        if planner is not None:
            raw["planner"] = planner
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(_problems(exc)) from exc


def _drop_none(values: dict) -> dict:
    return {k: v for k, v in values.items() if v is not None}


_ENV_NAMES = {
    ("azure_openai", "endpoint"): "AZURE_OPENAI_ENDPOINT",
    ("azure_openai", "key"): "AZURE_OPENAI_KEY",
    ("azure_openai", "chat_deployment"): "CHAT_DEPLOYMENT",
    ("azure_openai", "chat_model"): "CHAT_MODEL",
    ("azure_openai", "image_deployment"): "IMAGE_DEPLOYMENT",
    ("azure_openai", "image_model"): "IMAGE_MODEL",
    ("azure_openai", "api_version"): "AZURE_OPENAI_API_VERSION",
    ("weatherstack", "access_key"): "WEATHERSTACK_KEY",
    ("weatherstack", "base_url"): "WEATHERSTACK_URL",
}


def _problems(exc: ValidationError) -> list[str]:
    problems = []
    for err in exc.errors():
        loc = tuple(str(part) for part in err["loc"])
        name = _ENV_NAMES.get(loc[:2])
        where = ENV_PREFIX + name if name else ".".join(loc)
        problems.append(f"{where}: {err['msg']}")
    return problems


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty or whitespace")
    return value
