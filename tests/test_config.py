"""
Tests for core/config.py
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from mahoshojo.core.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AI_PROVIDERS_CONFIG", raising=False)
        monkeypatch.delenv("AI_LOAD_BALANCE_STRATEGY", raising=False)

        s = Settings(_env_file=None)

        assert s.PORT == 3001
        assert s.AI_PROVIDERS_CONFIG is None
        assert s.AI_LOAD_BALANCE_STRATEGY == "random"
        assert s.MAX_NAME_LENGTH == 20

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDERS_CONFIG", '[{"name": "A"}]')
        monkeypatch.setenv("AI_LOAD_BALANCE_STRATEGY", "round_robin")
        monkeypatch.setenv("AI_REQUEST_TIMEOUT", "15")

        s = Settings(_env_file=None)

        assert s.AI_PROVIDERS_CONFIG == '[{"name": "A"}]'
        assert s.AI_LOAD_BALANCE_STRATEGY == "round_robin"
        assert s.AI_REQUEST_TIMEOUT == 15.0

    def test_unknown_strategy_is_accepted(self, monkeypatch):
        monkeypatch.setenv("AI_LOAD_BALANCE_STRATEGY", "weighted")

        assert Settings(_env_file=None).AI_LOAD_BALANCE_STRATEGY == "weighted"

    def test_production_rejects_wildcard_cors(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ENVIRONMENT="production", CORS_ORIGINS=["*"])

    def test_production_with_explicit_origins(self):
        s = Settings(_env_file=None, ENVIRONMENT="production", CORS_ORIGINS=["https://mahoshojo.app"])

        assert s.CORS_ORIGINS == ["https://mahoshojo.app"]

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestServerEntryPoint:
    def test_main_runs_uvicorn_with_settings(self):
        from mahoshojo import __main__ as entry

        with patch.object(entry.uvicorn, "run") as mock_run, patch.object(
            entry.settings, "PORT", 4010
        ), patch.object(entry.settings, "HOST", "127.0.0.1"):
            entry.main()

        args, kwargs = mock_run.call_args
        assert args == ("mahoshojo.main:app",)
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 4010
