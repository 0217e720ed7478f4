"""
Daily recap tests.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from coinwatch.rules.recap import RecapBuilder, summarize_series
from coinwatch.state.models import RecapState

T0 = datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)


def make_series(*prices):
    """Hourly series ending at T0."""
    start = T0 - timedelta(hours=len(prices) - 1)
    return [(start + timedelta(hours=i), price) for i, price in enumerate(prices)]


class TestSummarizeSeries:
    """Test OHLC aggregation."""

    def test_ohlc(self, btc):
        """[100, 105, 98, 102] -> O100 H105 L98 C102, +2%."""
        entry = summarize_series(btc, make_series(100.0, 105.0, 98.0, 102.0))

        assert entry.symbol == "BTC"
        assert entry.open == 100.0
        assert entry.high == 105.0
        assert entry.low == 98.0
        assert entry.close == 102.0
        assert entry.change_pct == pytest.approx(2.0)

    def test_single_point(self, btc):
        entry = summarize_series(btc, make_series(100.0))

        assert entry.open == entry.close == entry.high == entry.low == 100.0
        assert entry.change_pct == 0.0

    def test_empty_series(self, btc):
        assert summarize_series(btc, []) is None


class TestRecapTiming:
    """Test when the recap is due."""

    @pytest.fixture
    def builder(self, btc):
        return RecapBuilder([btc], hour=21, minute=0)

    def test_not_due_before_time(self, builder):
        local = datetime(2024, 3, 14, 20, 59, tzinfo=timezone.utc)

        assert builder.is_due(local, "2024-03-14", RecapState()) is False

    def test_due_at_time(self, builder):
        local = datetime(2024, 3, 14, 21, 0, tzinfo=timezone.utc)

        assert builder.is_due(local, "2024-03-14", RecapState()) is True

    def test_due_after_time(self, builder):
        local = datetime(2024, 3, 14, 23, 30, tzinfo=timezone.utc)

        assert builder.is_due(local, "2024-03-14", RecapState()) is True

    def test_not_due_once_sent_today(self, builder):
        local = datetime(2024, 3, 14, 21, 30, tzinfo=timezone.utc)
        state = RecapState(last_sent_day_key="2024-03-14")

        assert builder.is_due(local, "2024-03-14", state) is False

    def test_due_next_day(self, builder):
        local = datetime(2024, 3, 15, 21, 0, tzinfo=timezone.utc)
        state = RecapState(last_sent_day_key="2024-03-14")

        assert builder.is_due(local, "2024-03-15", state) is True

    def test_minute_granularity(self, btc):
        builder = RecapBuilder([btc], hour=21, minute=30)

        assert builder.is_due(datetime(2024, 3, 14, 21, 29), "2024-03-14", RecapState()) is False
        assert builder.is_due(datetime(2024, 3, 14, 21, 30), "2024-03-14", RecapState()) is True


class TestRecapBuild:
    """Test building the recap from price series."""

    def test_builds_entries_in_asset_order(self, btc, eth):
        source = MagicMock()
        source.get_intraday_series.side_effect = lambda asset_id, hours: {
            "bitcoin": make_series(100.0, 105.0, 98.0, 102.0),
            "ethereum": make_series(3000.0, 2900.0),
        }[asset_id]
        builder = RecapBuilder([btc, eth], hour=21, minute=0)

        recap = builder.build(source, T0)

        assert recap.day_key == "2024-03-14"
        assert recap.triggered_at == T0
        assert [e.symbol for e in recap.entries] == ["BTC", "ETH"]
        assert recap.unavailable == []
        assert "Daily recap for 2024-03-14" in recap.message

    def test_unavailable_asset_listed(self, btc, eth):
        """Should omit assets without data and name them."""
        source = MagicMock()
        source.get_intraday_series.side_effect = lambda asset_id, hours: (
            make_series(100.0, 101.0) if asset_id == "bitcoin" else []
        )
        builder = RecapBuilder([btc, eth], hour=21, minute=0)

        recap = builder.build(source, T0)

        assert [e.symbol for e in recap.entries] == ["BTC"]
        assert recap.unavailable == ["ETH"]
        assert "No data: ETH" in recap.message

    def test_no_data_returns_none(self, btc):
        source = MagicMock()
        source.get_intraday_series.return_value = []

        assert RecapBuilder([btc], hour=21, minute=0).build(source, T0) is None

    def test_requests_configured_window(self, btc):
        source = MagicMock()
        source.get_intraday_series.return_value = make_series(1.0)

        RecapBuilder([btc], hour=21, minute=0, window_hours=12).build(source, T0)

        source.get_intraday_series.assert_called_once_with("bitcoin", 12)
