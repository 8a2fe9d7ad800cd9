"""Unit tests for utils/config.py and the CLI parser."""

from unittest.mock import patch

import pytest

from core.errors import ConfigurationError
from main import build_parser
from utils.config import Config, DATE_MODE_FULL_PULL, DATE_MODE_INCREMENTAL

ENV_VARS = [
    "AD_SERVER", "AD_USERNAME", "AD_PASSWORD", "BASE_DN", "ROSTER_OUTPUT", "CANDIDATE_CACHE",
    "DATE_MODE", "INCLUDE_OPTIONAL_PROPERTIES", "INJECT_FAULTS", "VERIFY_DIRECT_REPORTS",
    "FLUSH_THRESHOLD", "RETRY_ATTEMPTS", "RETRY_DELAY_SECONDS",
]


@pytest.fixture
def config(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    with patch("utils.config.load_dotenv"):
        yield Config()


class TestConfig:
    """Tests for environment-backed configuration."""

    def test_defaults(self, config):
        assert config.roster_output == "org_roster.csv"
        assert config.candidate_cache == "candidate_users.csv"
        assert config.date_mode == DATE_MODE_FULL_PULL
        assert config.include_optional_properties is False
        assert config.inject_faults is False
        assert config.flush_threshold == 250
        assert config.retry_attempts == 5
        assert config.retry_delay_seconds == 10.0

    def test_reads_environment(self, config, monkeypatch):
        monkeypatch.setenv("DATE_MODE", "Incremental-Delta")
        monkeypatch.setenv("INCLUDE_OPTIONAL_PROPERTIES", "yes")
        monkeypatch.setenv("FLUSH_THRESHOLD", "100")
        monkeypatch.setenv("RETRY_DELAY_SECONDS", "2.5")

        assert config.date_mode == DATE_MODE_INCREMENTAL
        assert config.include_optional_properties is True
        assert config.flush_threshold == 100
        assert config.retry_delay_seconds == 2.5

    @pytest.mark.parametrize("name, value, prop", [
        ("DATE_MODE", "weekly", "date_mode"),
        ("FLUSH_THRESHOLD", "0", "flush_threshold"),
        ("RETRY_ATTEMPTS", "many", "retry_attempts"),
    ])
    def test_invalid_values_raise(self, config, monkeypatch, name, value, prop):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError):
            getattr(config, prop)

    def test_missing_ad_vars(self, config, monkeypatch):
        monkeypatch.setenv("AD_SERVER", "ldap://dc")

        assert not config.validate_ad_config()
        assert config.get_missing_ad_vars() == ["AD_USERNAME", "AD_PASSWORD", "BASE_DN"]


def test_parser_defaults_come_from_config(config, monkeypatch):
    monkeypatch.setenv("ROSTER_OUTPUT", "out/roster.csv")

    args = build_parser(config).parse_args(["--include-optional", "--date-mode", "incremental-delta"])

    assert args.output == "out/roster.csv"
    assert args.include_optional is True
    assert args.date_mode == DATE_MODE_INCREMENTAL
    assert args.flush_threshold is None
