"""Tests for settings.py and how main.py maps settings onto compile options."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from main import compile_options
from settings import Settings, get_settings, reset_settings_cache


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.DEFAULT_DIALECT == "https://json-schema.org/draft/2020-12/schema"
        assert settings.UNKNOWN_DIALECT_POLICY == "error"
        assert settings.VALIDATE_FORMATS is True
        assert settings.MAX_SCHEMA_DEPTH == 100
        assert settings.MAX_EVALUATION_DEPTH == 100
        assert settings.CACHE_MAXSIZE == 128
        assert settings.LOG_LEVEL == "WARNING"

    def test_memoised_until_reset(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("CACHE_MAXSIZE", "7")
        assert get_settings() is first
        reset_settings_cache()
        assert get_settings().CACHE_MAXSIZE == 7

    def test_invalid_policy_rejected(self, monkeypatch):
        monkeypatch.setenv("UNKNOWN_DIALECT_POLICY", "guess")
        with pytest.raises(ValidationError):
            Settings()


class TestCompileOptions:
    def test_mapping(self, monkeypatch):
        monkeypatch.setenv("MAX_SCHEMA_DEPTH", "12")
        monkeypatch.setenv("MAX_EVALUATION_DEPTH", "34")
        monkeypatch.setenv("UNKNOWN_DIALECT_POLICY", "default")
        reset_settings_cache()
        options = compile_options()
        assert options.max_schema_depth == 12
        assert options.max_evaluation_depth == 34
        assert options.unknown_dialect == "default"
        assert options.validate_formats is True
