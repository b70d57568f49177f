"""Tests for settings loading and command line overrides."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mailsink.config import Settings
from mailsink.smtp.server import load_settings, parse_args


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.SINK_HOST == "localhost"
        assert settings.SINK_PORT == 25
        assert settings.SINK_HOSTNAME == "localhost"
        assert settings.LOG_BODY is False
        assert settings.SAVE_ATTACHMENTS is False
        assert settings.ATTACHMENT_DIR == Path(".")
        assert settings.QUEUE_ID == "31337"

    def test_greeting(self):
        settings = Settings(_env_file=None, SINK_HOSTNAME="mx.example.com")
        assert settings.greeting == "mx.example.com SMTP mail-sink"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SINK_PORT", "2525")
        monkeypatch.setenv("SAVE_ATTACHMENTS", "true")
        settings = Settings(_env_file=None)
        assert settings.SINK_PORT == 2525
        assert settings.SAVE_ATTACHMENTS is True

    def test_settings_are_frozen(self):
        settings = Settings(_env_file=None)
        with pytest.raises(ValidationError):
            settings.SINK_PORT = 2525

    def test_log_level_is_validated(self):
        assert Settings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="chatty")

    def test_log_format_is_validated(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_FORMAT="xml")

    def test_port_range(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, SINK_PORT=70000)


class TestCommandLine:

    def test_no_flags_no_overrides(self):
        assert parse_args([]) == {}

    def test_flags_map_to_settings(self):
        overrides = parse_args(["-p", "2525", "-i", "0.0.0.0", "-H", "mx.test", "-v", "-s", "-d", "/tmp/out"])
        assert overrides == {
            "SINK_PORT": 2525,
            "SINK_HOST": "0.0.0.0",
            "SINK_HOSTNAME": "mx.test",
            "LOG_BODY": True,
            "SAVE_ATTACHMENTS": True,
            "ATTACHMENT_DIR": "/tmp/out",
        }

    def test_load_settings_applies_flags(self):
        settings = load_settings(["--port", "2526", "--save"])
        assert settings.SINK_PORT == 2526
        assert settings.SAVE_ATTACHMENTS is True
