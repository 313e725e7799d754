"""Tests for configuration loading and interval parsing."""

from datetime import timedelta

import pytest

from certreminder.config import (
    Config,
    EntityOverride,
    format_interval,
    generate_example_config,
    load_config,
    parse_interval,
)
from certreminder.errors import ConfigError


class TestParseInterval:
    """Test the follow-up interval grammar."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("24h", timedelta(hours=24)),
            ("12h", timedelta(hours=12)),
            ("7d", timedelta(days=7)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("2d3h", timedelta(days=2, hours=3)),
            ("10m", timedelta(minutes=10)),
            ("1w", timedelta(weeks=1)),
            (" 5m ", timedelta(minutes=5)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_interval(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_disabled(self, text):
        assert parse_interval(text) is None

    @pytest.mark.parametrize("text", ["24", "h", "1x", "1h 30", "abc", "0h", "-5m"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_interval(text)

    def test_format_interval(self):
        assert format_interval(timedelta(hours=24)) == "1d"
        assert format_interval(timedelta(hours=1, minutes=30)) == "1h30m"
        assert format_interval(None) == ""


class TestModels:
    """Test configuration model defaults and validation."""

    def test_defaults(self):
        config = Config()
        assert config.master.warning_days == 14
        assert config.master.follow_up_interval == "24h"
        assert config.scheduler.unit_name == "ssl-expiry-followup"
        assert config.scheduler.follow_up_mode == "global"
        assert str(config.certificates.directory) == "/etc/letsencrypt/live"

    def test_override_single_recipient_string(self):
        override = EntityOverride.model_validate({"recipients": "ops@example.com"})
        assert override.recipients == ["ops@example.com"]

    def test_override_unset_vs_disabled_interval(self):
        unset = EntityOverride.model_validate({})
        disabled = EntityOverride.model_validate({"follow_up_interval": ""})
        assert unset.follow_up_interval is None
        assert disabled.follow_up_interval == ""

    def test_invalid_interval_rejected(self):
        with pytest.raises(ValueError):
            Config.model_validate({"master": {"follow_up_interval": "tomorrow"}})

    def test_negative_warning_days_rejected(self):
        with pytest.raises(ValueError):
            Config.model_validate({"domains": {"a.example": {"warning_days": -1}}})


class TestLoadConfig:
    """Test loading configuration files."""

    def test_none_returns_defaults(self):
        assert load_config(None) == Config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CERT_ADMIN", "admin@example.com")
        path = tmp_path / "config.yaml"
        path.write_text('master:\n  master_email: "${CERT_ADMIN}"\n')

        assert load_config(path).master.master_email == "admin@example.com"

    def test_domains_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "domains:\n"
            "  a.example:\n"
            "    warning_days: 3\n"
            "    follow_up_interval: ''\n"
        )
        config = load_config(path)
        assert config.domains["a.example"].warning_days == 3
        assert config.domains["a.example"].follow_up_interval == ""

    def test_validation_error_is_config_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("master:\n  warning_days: soon\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("master: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_example_config_is_valid(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(generate_example_config())

        config = load_config(path)
        assert config.master.master_email == "Domain Admin <admin@example.com>"
        assert config.domains["yourdomain1.com"].recipients == ["Domain Admin <user1@example.com>"]
        assert config.domains["yourdomain2.com"].follow_up_interval == ""
