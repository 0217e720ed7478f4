"""
Configuration loading tests.
"""

import copy
from pathlib import Path

import pytest
import yaml

from coinwatch.config import (
    DEFAULT_ATH_BUFFER_PCT,
    AppConfig,
    ConfigValidationError,
    load_config,
    parse_config,
)


def with_changes(raw, section, **values):
    """Copy of raw config with one section updated."""
    updated = copy.deepcopy(raw)
    updated.setdefault(section, {}).update(values)
    return updated


class TestParseConfig:
    """Test building AppConfig from a mapping."""

    def test_parses_valid_config(self, raw_config):
        """Should build typed sections and assets."""
        config = parse_config(raw_config)

        assert isinstance(config, AppConfig)
        assert config.price_source.provider == "coingecko"
        assert config.price_source.api_key == "test-key"
        assert config.notifier.type == "discord"
        assert config.schedule.recap_hour == 21
        assert config.schedule.timezone == "UTC"
        assert [a.id for a in config.assets] == ["bitcoin", "ethereum"]

    def test_defaults_applied(self, raw_config):
        """Should fill omitted sections with defaults."""
        config = parse_config(raw_config)

        assert config.alerts.intraday_cooldown_minutes == 15
        assert config.alerts.ath_hysteresis_pct == 0.3
        assert config.schedule.ath_refresh_hours == 24
        assert config.advanced.log_level == "INFO"
        assert config.price_source.api_tier == "demo"

    def test_asset_fields(self, raw_config):
        """Should coerce thresholds to floats and apply the default ATH buffer."""
        btc = parse_config(raw_config).assets[0]

        assert btc.symbol == "BTC"
        assert btc.intraday_pct == 2.0
        assert btc.daily_up_pct == 5.0
        assert btc.daily_down_pct == -5.0
        assert btc.ath_buffer_pct == DEFAULT_ATH_BUFFER_PCT
        assert btc.ath_buffer == pytest.approx(0.0005)

    def test_symbol_uppercased(self, raw_config):
        raw_config["assets"][0]["symbol"] = "btc"

        assert parse_config(raw_config).assets[0].symbol == "BTC"

    def test_per_asset_buffer_overrides_default(self, raw_config):
        raw_config["assets"][0]["ath_buffer_pct"] = 0.2
        raw_config["alerts"] = {"default_ath_buffer_pct": 0.1}

        config = parse_config(raw_config)

        assert config.assets[0].ath_buffer_pct == 0.2
        assert config.assets[1].ath_buffer_pct == 0.1

    def test_display_name(self, raw_config):
        raw_config["assets"][0]["name"] = "Bitcoin"
        config = parse_config(raw_config)

        assert config.assets[0].display_name == "Bitcoin"
        assert config.assets[1].display_name == "ETH"

    def test_env_var_substitution(self, raw_config, monkeypatch):
        """Should replace ${VAR} placeholders from the environment."""
        monkeypatch.setenv("COINGECKO_API_KEY", "from-env")
        monkeypatch.setenv("DISCORD_WEBHOOK_URL", "https://discord.com/api/webhooks/1/x")
        raw_config["price_source"]["api_key"] = "${COINGECKO_API_KEY}"
        raw_config["notifier"]["webhook_url"] = "${DISCORD_WEBHOOK_URL}"

        config = parse_config(raw_config)

        assert config.price_source.api_key == "from-env"
        assert config.notifier.webhook_url == "https://discord.com/api/webhooks/1/x"

    def test_unset_env_var_becomes_empty(self, raw_config, monkeypatch):
        """Should fail validation when the webhook placeholder is unset."""
        monkeypatch.delenv("DISCORD_WEBHOOK_URL", raising=False)
        raw_config["notifier"]["webhook_url"] = "${DISCORD_WEBHOOK_URL}"

        with pytest.raises(ConfigValidationError, match="webhook_url"):
            parse_config(raw_config)

    def test_log_notifier_needs_no_webhook(self, raw_config):
        raw_config["notifier"] = {"type": "log"}

        assert parse_config(raw_config).notifier.type == "log"


class TestConfigValidation:
    """Test configuration validation errors."""

    def test_requires_assets(self, raw_config):
        raw_config["assets"] = []

        with pytest.raises(ConfigValidationError, match="At least one asset"):
            parse_config(raw_config)

    def test_duplicate_asset_ids(self, raw_config):
        raw_config["assets"][1]["id"] = "bitcoin"

        with pytest.raises(ConfigValidationError, match="Duplicate asset id"):
            parse_config(raw_config)

    def test_missing_symbol(self, raw_config):
        del raw_config["assets"][0]["symbol"]

        with pytest.raises(ConfigValidationError, match="symbol"):
            parse_config(raw_config)

    @pytest.mark.parametrize("value", ["2", None, True])
    def test_non_numeric_threshold(self, raw_config, value):
        raw_config["assets"][0]["intraday_pct"] = value

        with pytest.raises(ConfigValidationError, match="intraday_pct"):
            parse_config(raw_config)

    def test_intraday_must_be_positive(self, raw_config):
        raw_config["assets"][0]["intraday_pct"] = 0

        with pytest.raises(ConfigValidationError, match="positive"):
            parse_config(raw_config)

    def test_negative_buffer(self, raw_config):
        raw_config["assets"][0]["ath_buffer_pct"] = -0.1

        with pytest.raises(ConfigValidationError, match="ath_buffer_pct"):
            parse_config(raw_config)

    def test_unknown_provider(self, raw_config):
        with pytest.raises(ConfigValidationError, match="price provider"):
            parse_config(with_changes(raw_config, "price_source", provider="binance"))

    def test_unknown_api_tier(self, raw_config):
        with pytest.raises(ConfigValidationError, match="api_tier"):
            parse_config(with_changes(raw_config, "price_source", api_tier="enterprise"))

    def test_unknown_notifier(self, raw_config):
        with pytest.raises(ConfigValidationError, match="notifier type"):
            parse_config(with_changes(raw_config, "notifier", type="telegram"))

    @pytest.mark.parametrize("hour", [-1, 24, "21"])
    def test_recap_hour_range(self, raw_config, hour):
        with pytest.raises(ConfigValidationError, match="recap_hour"):
            parse_config(with_changes(raw_config, "schedule", recap_hour=hour))

    def test_recap_minute_range(self, raw_config):
        with pytest.raises(ConfigValidationError, match="recap_minute"):
            parse_config(with_changes(raw_config, "schedule", recap_minute=60))

    def test_poll_interval(self, raw_config):
        with pytest.raises(ConfigValidationError, match="poll_interval_minutes"):
            parse_config(with_changes(raw_config, "schedule", poll_interval_minutes=0))

    def test_unknown_timezone(self, raw_config):
        with pytest.raises(ConfigValidationError, match="timezone"):
            parse_config(with_changes(raw_config, "schedule", timezone="Mars/Olympus"))

    def test_negative_alert_tuning(self, raw_config):
        with pytest.raises(ConfigValidationError, match="intraday_cooldown_minutes"):
            parse_config(with_changes(raw_config, "alerts", intraday_cooldown_minutes=-1))

    @pytest.mark.parametrize("hours", [0, 1, 23, "24h", None])
    def test_ath_refresh_at_most_daily(self, raw_config, hours):
        """Should refuse ATH refresh intervals shorter than a day."""
        with pytest.raises(ConfigValidationError, match="ath_refresh_hours"):
            parse_config(with_changes(raw_config, "schedule", ath_refresh_hours=hours))

    def test_ath_refresh_longer_than_a_day(self, raw_config):
        config = parse_config(with_changes(raw_config, "schedule", ath_refresh_hours=48))

        assert config.schedule.ath_refresh_hours == 48

    @pytest.mark.parametrize("hours", [0, -6, "24h"])
    def test_recap_window_must_be_positive_number(self, raw_config, hours):
        with pytest.raises(ConfigValidationError, match="recap_window_hours"):
            parse_config(with_changes(raw_config, "alerts", recap_window_hours=hours))

    @pytest.mark.parametrize("seconds", [0, "15"])
    def test_timeout_must_be_positive_number(self, raw_config, seconds):
        with pytest.raises(ConfigValidationError, match="timeout_seconds"):
            parse_config(with_changes(raw_config, "price_source", timeout_seconds=seconds))

    @pytest.mark.parametrize("level", ["VERBOSE", 10, ""])
    def test_unknown_log_level(self, raw_config, level):
        """Should reject log levels the logging module does not know."""
        with pytest.raises(ConfigValidationError, match="log level"):
            parse_config(with_changes(raw_config, "advanced", log_level=level))

    def test_log_level_case_insensitive(self, raw_config):
        config = parse_config(with_changes(raw_config, "advanced", log_level="debug"))

        assert config.advanced.log_level == "debug"

    def test_unknown_section_key(self, raw_config):
        """Should report unexpected keys as a config error, not a TypeError."""
        with pytest.raises(ConfigValidationError, match="schedule"):
            parse_config(with_changes(raw_config, "schedule", poll_every="5m"))


class TestLoadConfig:
    """Test loading YAML files."""

    def test_load_from_file(self, raw_config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(raw_config))

        config = load_config(str(path))

        assert len(config.assets) == 2
        assert config.notifier.webhook_url == "https://discord.com/api/webhooks/123/abc"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        with pytest.raises(ConfigValidationError, match="At least one asset"):
            load_config(str(path))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigValidationError, match="mapping"):
            load_config(str(path))

    def test_example_config_is_valid(self, monkeypatch):
        """The shipped example config should load once secrets are present."""
        monkeypatch.setenv("COINGECKO_API_KEY", "demo-key")
        monkeypatch.setenv("DISCORD_WEBHOOK_URL", "https://discord.com/api/webhooks/1/x")
        example = Path(__file__).parent.parent / "config.example.yaml"

        config = load_config(str(example))

        assert config.assets
