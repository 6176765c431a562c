"""Tests for settings loading and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from toolplan.config import PlannerSettings, Settings
from toolplan.exceptions import ConfigError

VALID_ENV = {
    "TOOLPLAN_AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
    "TOOLPLAN_AZURE_OPENAI_KEY": "  secret  ",
    "TOOLPLAN_CHAT_DEPLOYMENT": "MyGPT",
    "TOOLPLAN_CHAT_MODEL": "gpt-4",
    "TOOLPLAN_IMAGE_DEPLOYMENT": "MyDalle",
    "TOOLPLAN_IMAGE_MODEL": "dall-e-3",
    "TOOLPLAN_WEATHERSTACK_KEY": "ws-key",
}


class TestSettings:
    def test_from_env(self):
        settings = Settings.from_env(VALID_ENV)
        azure = settings.azure_openai
        assert str(azure.endpoint).startswith("https://example.openai.azure.com")
        assert azure.key == "secret"
        assert azure.chat_deployment == "MyGPT"
        assert azure.api_version == "2024-02-15-preview"
        assert str(settings.weatherstack.base_url).startswith("https://api.weatherstack.com")
        assert settings.planner.max_steps == 15
        assert settings.planner.continue_on_failure is False

    def test_overrides(self):
        env = dict(
            VALID_ENV,
            TOOLPLAN_AZURE_OPENAI_API_VERSION="2024-06-01",
            TOOLPLAN_WEATHERSTACK_URL="http://weather.internal:8080",
        )
        settings = Settings.from_env(env, planner=PlannerSettings(max_steps=3))
        assert settings.azure_openai.api_version == "2024-06-01"
        assert settings.weatherstack.base_url.port == 8080
        assert settings.planner.max_steps == 3

    def test_missing_values_are_all_reported(self):
        env = {k: v for k, v in VALID_ENV.items() if k != "TOOLPLAN_AZURE_OPENAI_KEY"}
        del env["TOOLPLAN_WEATHERSTACK_KEY"]
        with pytest.raises(ConfigError) as exc_info:
            Settings.from_env(env)
        problems = exc_info.value.problems
        assert any(p.startswith("TOOLPLAN_AZURE_OPENAI_KEY:") for p in problems)
        assert any(p.startswith("TOOLPLAN_WEATHERSTACK_KEY:") for p in problems)

    def test_blank_key_rejected(self):
        with pytest.raises(ConfigError, match="TOOLPLAN_AZURE_OPENAI_KEY"):
            Settings.from_env(dict(VALID_ENV, TOOLPLAN_AZURE_OPENAI_KEY="   "))

    def test_malformed_endpoint_rejected(self):
        with pytest.raises(ConfigError, match="TOOLPLAN_AZURE_OPENAI_ENDPOINT"):
            Settings.from_env(dict(VALID_ENV, TOOLPLAN_AZURE_OPENAI_ENDPOINT="not a url"))

    def test_settings_are_frozen(self):
        settings = Settings.from_env(VALID_ENV)
        with pytest.raises(ValidationError):
            settings.azure_openai.key = "other"

    def test_env_file(self, tmp_path, monkeypatch):
        # Register each name so variables loaded from the file are removed afterwards.
        for name in VALID_ENV:
            monkeypatch.setenv(name, "placeholder")
            monkeypatch.delenv(name)
        env_file = tmp_path / ".env"
        env_file.write_text("\n".join(f"{k}={v.strip()}" for k, v in VALID_ENV.items()))
        settings = Settings.from_env(env_file=str(env_file))
        assert settings.azure_openai.image_deployment == "MyDalle"


class TestPlannerSettings:
    @pytest.mark.parametrize("kwargs", [{"max_steps": 0}, {"max_seconds": 0}])
    def test_rejects_bad_budgets(self, kwargs):
        with pytest.raises(ValueError):
            PlannerSettings(**kwargs)
