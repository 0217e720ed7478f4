"""
Configuration loading and validation.
"""

import logging
import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml


DEFAULT_ATH_BUFFER_PCT = 0.05
# Canonical ATH data changes at most daily
MIN_ATH_REFRESH_HOURS = 24

PRICE_PROVIDERS = ("coingecko", "yahoo_finance")
NOTIFIER_TYPES = ("discord", "log")


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass(frozen=True)
class Asset:
    """Monitored asset and its alert thresholds (percent units)."""

    id: str
    symbol: str
    intraday_pct: float
    daily_up_pct: float
    daily_down_pct: float
    ath_buffer_pct: float = DEFAULT_ATH_BUFFER_PCT
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.symbol

    @property
    def ath_buffer(self) -> float:
        """ATH buffer as a fraction (0.05% -> 0.0005)."""
        return self.ath_buffer_pct / 100


@dataclass
class PriceSourceConfig:
    """Price API configuration."""

    provider: str = "coingecko"
    api_key: str = ""
    api_tier: str = "demo"  # "demo" or "pro"
    timeout_seconds: float = 15


@dataclass
class NotifierConfig:
    """Notification destination configuration."""

    type: str = "discord"
    webhook_url: str = ""
    mention_on_ath: bool = True
    username: Optional[str] = None


@dataclass
class ScheduleConfig:
    """Schedule configuration."""

    poll_interval_minutes: int = 5
    ath_refresh_hours: int = 24
    recap_hour: int = 21
    recap_minute: int = 0
    timezone: str = ""  # empty = process local time


@dataclass
class AlertsConfig:
    """Alert engine tuning."""

    intraday_cooldown_minutes: float = 15
    ath_hysteresis_pct: float = 0.3
    default_ath_buffer_pct: float = DEFAULT_ATH_BUFFER_PCT
    recap_window_hours: int = 24


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"


@dataclass
class AppConfig:
    """Main application configuration."""

    price_source: PriceSourceConfig = field(default_factory=PriceSourceConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    assets: list[Asset] = field(default_factory=list)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validate_timezone(timezone: str) -> None:
    """Validate timezone string (empty means process local time)."""
    if not timezone:
        return
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigValidationError(f"Unknown timezone: {timezone}")


def _validate_log_level(level: Any) -> None:
    if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
        raise ConfigValidationError(f"Unknown log level: {level}")


def _validate_assets(assets: Any) -> None:
    if not isinstance(assets, list) or not assets:
        raise ConfigValidationError("At least one asset is required")

    seen = set()
    for index, asset in enumerate(assets):
        if not isinstance(asset, dict):
            raise ConfigValidationError(f"Asset #{index} must be a mapping")

        asset_id = asset.get("id")
        if not asset_id or not isinstance(asset_id, str):
            raise ConfigValidationError(f"Asset #{index} is missing an id")
        if asset_id in seen:
            raise ConfigValidationError(f"Duplicate asset id: {asset_id}")
        seen.add(asset_id)

        if not asset.get("symbol"):
            raise ConfigValidationError(f"Asset {asset_id} is missing a symbol")

        for key in ("intraday_pct", "daily_up_pct", "daily_down_pct"):
            if not _is_number(asset.get(key)):
                raise ConfigValidationError(f"Asset {asset_id}: {key} must be a number")

        if asset["intraday_pct"] <= 0:
            raise ConfigValidationError(f"Asset {asset_id}: intraday_pct must be positive")

        buffer_pct = asset.get("ath_buffer_pct")
        if buffer_pct is not None and (not _is_number(buffer_pct) or buffer_pct < 0):
            raise ConfigValidationError(
                f"Asset {asset_id}: ath_buffer_pct must be a non-negative number"
            )


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    source = config_dict.get("price_source") or {}
    provider = source.get("provider", "coingecko")
    if provider not in PRICE_PROVIDERS:
        raise ConfigValidationError(f"Unknown price provider: {provider}")
    if source.get("api_tier", "demo") not in ("demo", "pro"):
        raise ConfigValidationError("price_source.api_tier must be 'demo' or 'pro'")
    timeout = source.get("timeout_seconds", 15)
    if not _is_number(timeout) or timeout <= 0:
        raise ConfigValidationError("price_source.timeout_seconds must be a positive number")

    notifier = config_dict.get("notifier") or {}
    notifier_type = notifier.get("type", "discord")
    if notifier_type not in NOTIFIER_TYPES:
        raise ConfigValidationError(f"Unknown notifier type: {notifier_type}")
    if notifier_type == "discord" and not notifier.get("webhook_url"):
        raise ConfigValidationError("notifier.webhook_url is required for discord")

    schedule = config_dict.get("schedule") or {}
    poll = schedule.get("poll_interval_minutes", 5)
    if not isinstance(poll, int) or poll < 1:
        raise ConfigValidationError("schedule.poll_interval_minutes must be >= 1")
    hour = schedule.get("recap_hour", 21)
    minute = schedule.get("recap_minute", 0)
    if not isinstance(hour, int) or not 0 <= hour <= 23:
        raise ConfigValidationError("schedule.recap_hour must be between 0 and 23")
    if not isinstance(minute, int) or not 0 <= minute <= 59:
        raise ConfigValidationError("schedule.recap_minute must be between 0 and 59")
    refresh = schedule.get("ath_refresh_hours", 24)
    if not _is_number(refresh) or refresh < MIN_ATH_REFRESH_HOURS:
        raise ConfigValidationError(
            f"schedule.ath_refresh_hours must be a number >= {MIN_ATH_REFRESH_HOURS}"
        )
    _validate_timezone(schedule.get("timezone") or "")

    alerts = config_dict.get("alerts") or {}
    for key in ("intraday_cooldown_minutes", "ath_hysteresis_pct", "default_ath_buffer_pct"):
        if key in alerts and (not _is_number(alerts[key]) or alerts[key] < 0):
            raise ConfigValidationError(f"alerts.{key} must be a non-negative number")
    window = alerts.get("recap_window_hours", 24)
    if not _is_number(window) or window <= 0:
        raise ConfigValidationError("alerts.recap_window_hours must be a positive number")

    advanced = config_dict.get("advanced") or {}
    _validate_log_level(advanced.get("log_level", "INFO"))

    _validate_assets(config_dict.get("assets"))


def _build_section(section_cls: type, config_dict: dict[str, Any], name: str) -> Any:
    try:
        return section_cls(**(config_dict.get(name) or {}))
    except TypeError as e:
        raise ConfigValidationError(f"Invalid {name} section: {e}")


def _build_assets(raw_assets: list[dict[str, Any]], default_buffer_pct: float) -> list[Asset]:
    assets = []
    for raw in raw_assets:
        buffer_pct = raw.get("ath_buffer_pct")
        assets.append(
            Asset(
                id=raw["id"],
                symbol=str(raw["symbol"]).upper(),
                name=raw.get("name"),
                intraday_pct=float(raw["intraday_pct"]),
                daily_up_pct=float(raw["daily_up_pct"]),
                daily_down_pct=float(raw["daily_down_pct"]),
                ath_buffer_pct=float(default_buffer_pct if buffer_pct is None else buffer_pct),
            )
        )
    return assets


def parse_config(raw_config: dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from an already-loaded mapping.

    Args:
        raw_config: Parsed YAML mapping (environment placeholders allowed)

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    config_dict = _substitute_env_vars(raw_config)

    _validate_config(config_dict)

    price_source = _build_section(PriceSourceConfig, config_dict, "price_source")
    notifier = _build_section(NotifierConfig, config_dict, "notifier")
    schedule = _build_section(ScheduleConfig, config_dict, "schedule")
    alerts = _build_section(AlertsConfig, config_dict, "alerts")
    advanced = _build_section(AdvancedConfig, config_dict, "advanced")
    assets = _build_assets(config_dict["assets"], alerts.default_ath_buffer_pct)

    return AppConfig(
        price_source=price_source,
        notifier=notifier,
        schedule=schedule,
        alerts=alerts,
        assets=assets,
        advanced=advanced,
    )


def load_config(config_path: str) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    if not isinstance(raw_config, dict):
        raise ConfigValidationError("Configuration root must be a mapping")

    return parse_config(raw_config)
