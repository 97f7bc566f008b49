import pytest

from coinlens.core.use_cases.market_analysis.detect_patterns import PatternDetector
from coinlens.core.use_cases.market_analysis.detect_patterns_engine.pattern_registry import (
    get_categories,
    get_patterns_by_category,
    get_patterns_by_type,
    register_pattern,
)
from mock_data.simulated_series import (
    get_bearish_engulfing_bars,
    get_bullish_divergence_bars,
    get_bullish_engulfing_bars,
    get_double_top_bars,
    get_doji_bars,
    get_flat_bars,
    get_hammer_bars,
    get_head_and_shoulders_bars,
    make_bars,
)


@pytest.fixture
def detector():
    return PatternDetector()


class TestRegistry:
    def test_categories(self):
        assert get_categories() == ["candlestick", "chart", "divergence"]
        assert set(get_patterns_by_category("candlestick")) == {"doji", "hammer", "shooting_star", "engulfing"}
        assert set(get_patterns_by_category("chart")) == {
            "head_and_shoulders", "double_top", "double_bottom", "triangle", "flag",
        }

    def test_lookup_by_emitted_type(self):
        assert list(get_patterns_by_type("BEAR_FLAG")) == ["flag"]
        assert list(get_patterns_by_type("BULLISH_DIVERGENCE")) == ["rsi_divergence"]

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError):
            register_pattern("doji", "candlestick")(lambda ohlcv, context: None)

    def test_unknown_pattern(self, detector):
        with pytest.raises(ValueError):
            detector.detect("cup_and_handle", get_flat_bars())


class TestChartPatterns:
    def test_double_top(self, detector):
        pattern = detector.detect("double_top", get_double_top_bars())

        assert pattern.pattern_type == "DOUBLE_TOP"
        assert pattern.key_levels == [120.5, 121.0, 104.5]
        assert pattern.target_price == pytest.approx(88.0)
        assert pattern.confidence == 75.0
        assert pattern.start_time < pattern.end_time

    def test_head_and_shoulders(self, detector):
        bars = get_head_and_shoulders_bars()
        pattern = detector.detect("head_and_shoulders", bars)

        assert pattern.pattern_type == "HEAD_AND_SHOULDERS"
        assert pattern.key_levels[-1] == pytest.approx(103.5)
        assert pattern.target_price == pytest.approx(88.5)
        assert pattern.start_time == bars[8].timestamp
        assert pattern.end_time == bars[40].timestamp

    def test_bull_flag(self, detector):
        closes = [100.0 + 3 * i for i in range(10)] + [127.5, 127.0] * 5
        pattern = detector.detect("flag", make_bars(closes))

        assert pattern.pattern_type == "BULL_FLAG"
        assert pattern.target_price == pytest.approx(127.0 + 27.0)

    def test_no_double_bottom_in_double_top(self, detector):
        assert detector.detect("double_bottom", get_double_top_bars()) is None


class TestCandlestickPatterns:
    @pytest.mark.parametrize("name, bars, expected", [
        ("doji", get_doji_bars(), "DOJI"),
        ("hammer", get_hammer_bars(), "HAMMER"),
        ("engulfing", get_bullish_engulfing_bars(), "BULLISH_ENGULFING"),
        ("engulfing", get_bearish_engulfing_bars(), "BEARISH_ENGULFING"),
    ])
    def test_detected(self, detector, name, bars, expected):
        pattern = detector.detect(name, bars)
        assert pattern is not None
        assert pattern.pattern_type == expected
        assert 30 <= pattern.confidence <= 100

    def test_hammer_target(self, detector):
        pattern = detector.detect("hammer", get_hammer_bars())
        assert pattern.target_price == pytest.approx(104.1)

    def test_doji_is_not_a_hammer(self, detector):
        assert detector.detect("hammer", get_doji_bars()) is None


class TestDivergence:
    def test_bullish_divergence(self, detector):
        pattern = detector.detect("rsi_divergence", get_bullish_divergence_bars())

        assert pattern.pattern_type == "BULLISH_DIVERGENCE"
        assert pattern.target_price == pytest.approx(115.5)


class TestDetectAll:
    def test_flat_series_has_no_patterns(self, detector):
        assert detector.detect_all(get_flat_bars()) == []

    def test_empty_series(self, detector):
        assert detector.detect_all([]) == []
        assert detector.detect("doji", []) is None

    def test_sorted_and_filtered(self):
        patterns = PatternDetector({"min_confidence": 70}).detect_all(get_double_top_bars())
        confidences = [p.confidence for p in patterns]
        assert confidences == sorted(confidences, reverse=True)
        assert all(c >= 70 for c in confidences)
        assert "DOUBLE_TOP" in [p.pattern_type for p in patterns]

    def test_by_category(self, detector):
        patterns = detector.detect_by_category("candlestick", get_hammer_bars())
        assert [p.pattern_type for p in patterns] == ["HAMMER"]

    def test_rsi_period_follows_indicator_config(self):
        assert PatternDetector().rsi_period == 14
        assert PatternDetector(indicator_config={"rsi_period": 5}).rsi_period == 5
