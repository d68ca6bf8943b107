"""
Tests for Config validation.
"""

import pytest

from ctatracker.core.config import Config


class TestConfigValidate:
    def test_defaults_are_valid(self):
        assert Config.validate() is True

    def test_rejects_unknown_audience(self, monkeypatch):
        monkeypatch.setattr(Config, "DEFAULT_AUDIENCE", "lukewarm")
        with pytest.raises(ValueError, match="CTA_DEFAULT_AUDIENCE"):
            Config.validate()

    def test_rejects_inverted_retry_waits(self, monkeypatch):
        monkeypatch.setattr(Config, "RETRY_MIN_WAIT", 10.0)
        monkeypatch.setattr(Config, "RETRY_MAX_WAIT", 1.0)
        with pytest.raises(ValueError, match="CTA_RETRY_MIN_WAIT"):
            Config.validate()

    def test_get(self):
        assert Config.get("DEFAULT_DEVICE") == Config.DEFAULT_DEVICE
        assert Config.get("NOT_A_SETTING", "fallback") == "fallback"
