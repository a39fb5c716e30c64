"""Tests for environment-driven settings."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from cfnscript.core.settings import (
    DEFAULT_SETTINGS,
    FORMAT_VAR,
    INDENT_VAR,
    LOG_LEVEL_VAR,
    MAX_DEPTH_LIMIT,
    MAX_DEPTH_VAR,
    OutputFormat,
    Settings,
    load_settings,
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (LOG_LEVEL_VAR, MAX_DEPTH_VAR, FORMAT_VAR, INDENT_VAR):
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    def test_defaults(self) -> None:
        settings = load_settings()
        assert settings == DEFAULT_SETTINGS
        assert settings.log_level == "WARNING"
        assert settings.max_depth == 100
        assert settings.default_format == OutputFormat.YAML
        assert settings.indent == 2

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            DEFAULT_SETTINGS.indent = 4  # type: ignore[misc]

    def test_indent_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Settings(indent=0)
        with pytest.raises(ValidationError):
            Settings(indent=9)

    def test_max_depth_bounds(self) -> None:
        assert Settings(max_depth=MAX_DEPTH_LIMIT).max_depth == MAX_DEPTH_LIMIT
        with pytest.raises(ValidationError):
            Settings(max_depth=0)
        with pytest.raises(ValidationError):
            Settings(max_depth=MAX_DEPTH_LIMIT + 1)


class TestEnvironment:
    def test_valid_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(LOG_LEVEL_VAR, "debug")
        monkeypatch.setenv(MAX_DEPTH_VAR, "50")
        monkeypatch.setenv(FORMAT_VAR, "JSON")
        monkeypatch.setenv(INDENT_VAR, " 4 ")

        settings = load_settings()

        assert settings.log_level == "DEBUG"
        assert settings.max_depth == 50
        assert settings.default_format == OutputFormat.JSON
        assert settings.indent == 4

    def test_unknown_log_level(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv(LOG_LEVEL_VAR, "loud")
        with caplog.at_level(logging.WARNING, logger="cfnscript"):
            settings = load_settings()
        assert settings.log_level == "WARNING"
        assert "Unknown CFNSCRIPT_LOG_LEVEL value 'LOUD'" in caplog.text

    def test_unknown_format(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setenv(FORMAT_VAR, "xml")
        with caplog.at_level(logging.WARNING, logger="cfnscript"):
            settings = load_settings()
        assert settings.default_format == OutputFormat.YAML
        assert "Unknown CFNSCRIPT_FORMAT value 'xml'" in caplog.text

    @pytest.mark.parametrize(
        ("var", "raw", "message"),
        [
            (MAX_DEPTH_VAR, "deep", "not an integer"),
            (MAX_DEPTH_VAR, "0", "must be between 1 and 100"),
            (MAX_DEPTH_VAR, "5000", "must be between 1 and 100"),
            (INDENT_VAR, "12", "must be between 1 and 8"),
            (INDENT_VAR, "1.5", "not an integer"),
        ],
    )
    def test_invalid_numbers_fall_back(
        self,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
        var: str,
        raw: str,
        message: str,
    ) -> None:
        monkeypatch.setenv(var, raw)
        with caplog.at_level(logging.WARNING, logger="cfnscript"):
            settings = load_settings()
        assert settings.max_depth == DEFAULT_SETTINGS.max_depth
        assert settings.indent == DEFAULT_SETTINGS.indent
        assert message in caplog.text
