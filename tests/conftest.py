"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from coinwatch.clock import Clock
from coinwatch.config import Asset, parse_config


class FakeClock(Clock):
    """Clock whose time is set by the test."""

    def __init__(self, start: datetime, tz_name=None):
        super().__init__(tz_name)
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def start_time():
    """A fixed UTC moment mid-day."""
    return datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time):
    """Fake clock using UTC as local time."""
    return FakeClock(start_time, "UTC")


@pytest.fixture
def btc():
    """Bitcoin with round-number thresholds."""
    return Asset(
        id="bitcoin",
        symbol="BTC",
        name="Bitcoin",
        intraday_pct=2.0,
        daily_up_pct=5.0,
        daily_down_pct=-5.0,
    )


@pytest.fixture
def eth():
    """Ethereum with wider thresholds."""
    return Asset(
        id="ethereum",
        symbol="ETH",
        name="Ethereum",
        intraday_pct=3.0,
        daily_up_pct=7.0,
        daily_down_pct=-7.0,
    )


@pytest.fixture
def raw_config():
    """Minimal valid raw configuration mapping."""
    return {
        "price_source": {"provider": "coingecko", "api_key": "test-key"},
        "notifier": {
            "type": "discord",
            "webhook_url": "https://discord.com/api/webhooks/123/abc",
        },
        "schedule": {
            "poll_interval_minutes": 5,
            "recap_hour": 21,
            "recap_minute": 0,
            "timezone": "UTC",
        },
        "assets": [
            {
                "id": "bitcoin",
                "symbol": "BTC",
                "intraday_pct": 2,
                "daily_up_pct": 5,
                "daily_down_pct": -5,
            },
            {
                "id": "ethereum",
                "symbol": "ETH",
                "intraday_pct": 3,
                "daily_up_pct": 7,
                "daily_down_pct": -7,
            },
        ],
    }


@pytest.fixture
def app_config(raw_config):
    """Parsed AppConfig."""
    return parse_config(raw_config)


@pytest.fixture
def sample_simple_price_response():
    """Sample CoinGecko /simple/price response."""
    return {
        "bitcoin": {"usd": 67250.0, "usd_24h_change": 2.41},
        "ethereum": {"usd": 3510.5, "usd_24h_change": -1.12},
    }


@pytest.fixture
def sample_coin_response():
    """Sample CoinGecko /coins/{id} response (market data only)."""
    return {
        "id": "bitcoin",
        "market_data": {
            "ath": {"usd": 73738.0, "eur": 67500.0},
            "ath_date": {"usd": "2024-03-14T07:10:36.635Z"},
            "current_price": {"usd": 67250.0},
        },
    }


@pytest.fixture
def sample_discord_webhook_url():
    """Sample Discord webhook URL for testing."""
    return "https://discord.com/api/webhooks/123456789/abcdefghijklmnop"


@pytest.fixture
def make_clock():
    """Factory for fake clocks in other timezones."""
    return FakeClock
