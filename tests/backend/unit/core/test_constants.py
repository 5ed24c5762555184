"""Tests for settings validation and loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from pydantic import ValidationError

from core import constants
from core.constants import SAVE_STRATEGY_END_OF_STREAM, Settings

SECRET = "s" * 32


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real dotenv files and exported variables out of Settings()."""
    monkeypatch.setattr(constants, "PROJECT_ROOT", tmp_path)
    for name in ("JWT_SECRET", "AI_MODEL", "AI_TEMPERATURE", "SAVE_STRATEGY", "CORS_ALLOW_ORIGINS"):
        monkeypatch.delenv(name, raising=False)


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"jwt_secret": SECRET}
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


class TestSettingsDefaults:
    def test_defaults(self) -> None:
        settings = _settings()

        assert settings.ai_base_url == "http://localhost:11434/v1"
        assert settings.save_strategy == SAVE_STRATEGY_END_OF_STREAM
        assert settings.chat_max_message_length == 4000
        assert settings.thinking_enabled is True
        assert settings.persistence_warning_threshold == 5
        assert settings.persistence_critical_threshold == 20

    def test_csv_properties(self) -> None:
        settings = _settings(cors_allow_origins="http://a.test, http://b.test,", cors_allow_methods="GET,POST")

        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
        assert settings.cors_methods_list == ["GET", "POST"]

    def test_profile_helpers(self) -> None:
        settings = _settings(app_env="PROD", jwt_secret="p" * 40)

        assert settings.app_env == "prod"
        assert settings.is_production
        assert not settings.is_test
        assert settings.active_profiles == ["prod"]


class TestSettingsValidation:
    def test_short_jwt_secret_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 32 bytes"):
            _settings(jwt_secret="short")

    def test_unknown_environment_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _settings(app_env="qa")

    def test_unknown_save_strategy_rejected(self) -> None:
        with pytest.raises(ValidationError, match="save_strategy must be one of"):
            _settings(save_strategy="per-token")

    def test_blank_save_strategy_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not be blank"):
            _settings(save_strategy="  ")

    def test_non_positive_message_length_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _settings(chat_max_message_length=0)

    def test_blank_thinking_tag_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _settings(thinking_start_tag=" ")

    def test_thresholds_must_be_ordered(self) -> None:
        with pytest.raises(ValidationError, match="must not exceed"):
            _settings(persistence_warning_threshold=30, persistence_critical_threshold=20)

    def test_default_secret_rejected_in_production(self) -> None:
        with pytest.raises(ValidationError, match="jwt_secret must be changed"):
            Settings(app_env="prod")


class TestEnvFiles:
    def test_env_file_order(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (".env", ".env.staging", ".env.local", ".env.prod"):
            (tmp_path / name).write_text("")
        monkeypatch.setattr(constants, "PROJECT_ROOT", tmp_path)
        monkeypatch.setenv("APP_ENV", "staging")

        files = constants._get_env_files()

        assert [f.name for f in files] == [".env", ".env.staging", ".env.local"]

    def test_unknown_app_env_falls_back_to_dev(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / ".env.dev").write_text("")
        monkeypatch.setattr(constants, "PROJECT_ROOT", tmp_path)
        monkeypatch.setenv("APP_ENV", "weird")

        assert [f.name for f in constants._get_env_files()] == [".env.dev"]

    def test_environment_variables_override_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AI_MODEL", "llama3.2")
        monkeypatch.setenv("JWT_SECRET", SECRET)

        assert Settings().ai_model == "llama3.2"


class TestSettingsManager:
    def test_cached_until_cleared(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET", SECRET)
        manager = constants._SettingsManager()

        first = manager.get()
        assert manager.get() is first

        manager.clear()
        assert manager.get() is not first

    def test_reload_picks_up_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET", SECRET)
        manager = constants._SettingsManager()
        manager.get()

        monkeypatch.setenv("AI_TEMPERATURE", "0.1")

        assert manager.reload().ai_temperature == 0.1
