from unittest.mock import AsyncMock, MagicMock

import pytest

from coinlens.common.custom_exceptions.data_unavailable_error import DataUnavailableError
from coinlens.core.use_cases.market_analysis.multi_timeframe import MultiTimeframeAnalyzer
from coinlens.core.use_cases.market_analysis.technical_indicators import calculate_indicator_set
from mock_data.simulated_series import get_flat_bars, get_rising_bars, get_sine_bars


class TestMultiTimeframeAnalyzer:
    @pytest.fixture
    def provider(self):
        provider = MagicMock()
        provider.fetch_price_series = AsyncMock(return_value=get_rising_bars())
        return provider

    def test_flat_series_is_neutral(self, provider):
        summary = MultiTimeframeAnalyzer(provider).summarize("1d", get_flat_bars())
        assert summary.trend == "neutral"
        assert summary.strength == 0.0
        assert summary.available

    def test_trend_threshold_and_strength(self, provider):
        analyzer = MultiTimeframeAnalyzer(provider, config={"bullish_threshold": 50})
        summary = analyzer.summarize("4h", get_rising_bars())

        assert summary.trend == "bullish"
        assert summary.strength == pytest.approx((round(375 / 7, 2) - 50) * 2)
        assert summary.regime.regime == "TRENDING"

    @pytest.mark.asyncio
    async def test_every_configured_timeframe_is_fetched(self, provider):
        results = await MultiTimeframeAnalyzer(provider).analyze("alpha", 129.0)

        assert [tf.timeframe for tf in results] == ["1h", "4h", "1d", "1w"]
        assert [call.args for call in provider.fetch_price_series.await_args_list] == [
            ("alpha", "1h", 7), ("alpha", "4h", 30), ("alpha", "1d", 90), ("alpha", "1w", 365),
        ]

    @pytest.mark.asyncio
    async def test_failures_become_neutral_placeholders(self, provider):
        provider.fetch_price_series.side_effect = [
            DataUnavailableError("Market data unavailable", "1h"),
            get_rising_bars(),
            [],
            get_rising_bars(),
        ]
        results = await MultiTimeframeAnalyzer(provider).analyze("alpha", 129.0)

        assert [tf.available for tf in results] == [False, True, False, True]
        placeholder = results[0]
        assert placeholder.trend == "neutral"
        assert placeholder.strength == 0.0
        assert placeholder.indicators.sma20 == 129.0

    @pytest.mark.asyncio
    async def test_provider_errors_become_neutral_placeholders(self, provider):
        provider.fetch_price_series.side_effect = [
            ConnectionError("provider timed out"),
            get_rising_bars(),
            get_rising_bars(),
            get_rising_bars(),
        ]
        results = await MultiTimeframeAnalyzer(provider).analyze("alpha", 129.0)

        assert [tf.available for tf in results] == [False, True, True, True]
        assert results[0].trend == "neutral"
        assert results[0].strength == 0.0
        assert results[0].indicators.sma20 == 129.0

    def test_indicator_config_is_applied_per_timeframe(self, provider):
        bars = get_sine_bars()
        summary = MultiTimeframeAnalyzer(provider, indicator_config={"rsi_period": 5}).summarize("1d", bars)

        assert summary.indicators.rsi == calculate_indicator_set(bars, {"rsi_period": 5}).rsi
        assert summary.indicators.rsi != calculate_indicator_set(bars).rsi
