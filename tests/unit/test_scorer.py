import pytest

from coinlens.common.custom_exceptions.data_unavailable_error import AnalysisError
from coinlens.core.domain.entities.AnalysisEntity import (
    IndicatorSet,
    StochasticValue,
    SupportResistanceLevel,
    TimeframeAnalysis,
)
from coinlens.core.use_cases.market_analysis.scorer import AnalysisScorer, is_excluded_asset
from coinlens.core.use_cases.market_analysis.technical_indicators import calculate_indicator_set
from mock_data.simulated_series import get_rising_bars, make_snapshot


@pytest.fixture
def scorer():
    return AnalysisScorer()


def _neutral(**update):
    return IndicatorSet.neutral(100.0).model_copy(update=update)


def _level(price, level_type, index=0):
    return SupportResistanceLevel(price=price, type=level_type, strength=1.0, touches=1, index=index)


class TestConfiguration:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            AnalysisScorer({"weights": {"technical": 0.5, "fundamental": 0.5, "sentiment": 0.5}})

    def test_max_change_must_be_positive(self):
        with pytest.raises(ValueError):
            AnalysisScorer({"max_predicted_change": 0})


class TestTechnicalScore:
    def test_neutral_indicators_score_fifty(self, scorer):
        assert scorer.calculate_technical_score(_neutral(), 100.0) == 50.0

    def test_rising_series(self, scorer):
        bars = get_rising_bars()
        score = scorer.calculate_technical_score(calculate_indicator_set(bars), bars[-1].close)
        assert score == pytest.approx(round(375 / 7, 2))

    def test_bounds_with_extreme_indicators(self, scorer):
        bearish = _neutral(rsi=95.0, sma20=120.0, sma50=130.0, ema12=90.0, ema26=110.0, adx=90.0,
                           stochastic=StochasticValue(k=95.0, d=95.0))
        score = scorer.calculate_technical_score(bearish, 100.0)
        assert 0 <= score < 50

    def test_signals(self, scorer):
        bars = get_rising_bars()
        signals = scorer.technical_signals(calculate_indicator_set(bars), bars[-1].close)
        assert "RSI Overbought" in signals
        assert "Bullish MA Alignment" in signals
        assert "Golden Cross" in signals
        assert "Strong Uptrend (ADX)" in signals


class TestFundamentalAndSentiment:
    def test_fundamental_buckets(self, scorer):
        snapshot = make_snapshot(
            rank=5, change_24h=6.0, total_volume=200_000_000.0,
            market_cap_change_percentage_24h=3.0, ath=400.0,
        )
        assert scorer.calculate_fundamental_score(snapshot) == 85.0

    def test_flat_day_is_penalised_and_clamped(self, scorer):
        snapshot = make_snapshot(rank=500, change_24h=0.2, total_volume=0.0)
        assert scorer.calculate_fundamental_score(snapshot) == 0.0

    @pytest.mark.parametrize("overrides", [
        {"asset_id": "tether", "symbol": "usdt", "name": "Tether"},
        {"asset_id": "wrapped-bitcoin", "symbol": "wbtc", "name": "Wrapped Bitcoin", "price": 60000.0},
        {"asset_id": "staked-ether", "symbol": "steth", "name": "Lido Staked Ether", "price": 3000.0},
        {"asset_id": "peg", "symbol": "peg", "name": "Peg", "price": 1.001, "change_24h": 0.1},
    ])
    def test_pegs_and_wrapped_assets_score_zero(self, scorer, overrides):
        snapshot = make_snapshot(rank=5, total_volume=500_000_000.0, **overrides)
        assert is_excluded_asset(snapshot)
        assert scorer.calculate_fundamental_score(snapshot) == 0.0

    def test_regular_asset_not_excluded(self):
        assert not is_excluded_asset(make_snapshot())

    def test_sentiment_centred_at_fifty(self, scorer):
        assert scorer.calculate_sentiment_score(make_snapshot()) == 50.0
        assert scorer.calculate_sentiment_score(make_snapshot(change_24h=12.0, price_change_percentage_7d=25.0)) == 80.0
        assert scorer.calculate_sentiment_score(make_snapshot(change_24h=-12.0, price_change_percentage_7d=-25.0)) == 20.0

    def test_overall_weights(self, scorer):
        assert scorer.calculate_overall_score(60.0, 50.0, 50.0) == pytest.approx(54.0)
        assert scorer.calculate_overall_score(100.0, 100.0, 100.0) == 100.0

    @pytest.mark.parametrize("overrides", [{"market_cap": None}, {"price": None}, {"market_cap": 0.0}])
    def test_missing_fundamentals(self, scorer, overrides):
        with pytest.raises(AnalysisError):
            scorer.calculate_fundamental_score(make_snapshot(**overrides))


class TestPrediction:
    def test_neutral_inputs_predict_no_move(self, scorer):
        assert scorer.predict_change(_neutral(), make_snapshot(), [], []) == 0.0

    @pytest.mark.parametrize("momentum, expected", [(500.0, 15.0), (-500.0, -15.0)])
    def test_prediction_is_clamped(self, scorer, momentum, expected):
        snapshot = make_snapshot(change_24h=momentum, rank=None)
        assert scorer.predict_change(_neutral(rsi=5.0), snapshot, [], []) == expected

    def test_momentum_nudge_and_rank_scaling(self, scorer):
        assert scorer.predict_change(_neutral(), make_snapshot(change_24h=5.0), [], []) == pytest.approx(0.5)
        assert scorer.predict_change(_neutral(), make_snapshot(change_24h=20.0), [], []) == pytest.approx(6.0)
        assert scorer.predict_change(_neutral(), make_snapshot(change_24h=5.0, rank=3), [], []) == pytest.approx(0.35)
        assert scorer.predict_change(_neutral(), make_snapshot(change_24h=5.0, rank=None), [], []) == pytest.approx(0.65)

    def test_bullish_timeframes_and_nearby_support(self, scorer):
        timeframes = [
            TimeframeAnalysis(timeframe=tf, trend="bullish", strength=40.0, indicators=_neutral())
            for tf in ("1h", "4h", "1d", "1w")
        ]
        contributions = scorer.prediction_contributions(_neutral(), 100.0, timeframes, [_level(99.0, "support")])
        assert contributions["multi_timeframe"] == 1.0
        assert contributions["support_resistance"] == 1.0

        change = scorer.predict_change(_neutral(), make_snapshot(), timeframes, [_level(99.0, "support")])
        # Placeholder volume halves the MFI weight: 13.25 in total
        assert change == pytest.approx(round(3.0 / 13.25 * 10, 4))

    def test_far_level_has_no_influence(self, scorer):
        contributions = scorer.prediction_contributions(_neutral(), 100.0, [], [_level(90.0, "resistance")])
        assert contributions["support_resistance"] == 0.0

    def test_contributions_bounded(self, scorer):
        bars = get_rising_bars()
        contributions = scorer.prediction_contributions(calculate_indicator_set(bars), bars[-1].close, [], [])
        assert all(-1.0 <= value <= 1.0 for value in contributions.values())

    @pytest.mark.parametrize("change, expected", [
        (2.0, "NEUTRAL"), (2.0001, "LONG"), (-2.0, "NEUTRAL"), (-2.5, "SHORT"), (0.0, "NEUTRAL"), (15.0, "LONG"),
    ])
    def test_recommendation_thresholds(self, scorer, change, expected):
        assert scorer.get_recommendation(change) == expected


class TestRiskTargetConfidence:
    def test_risk_levels(self, scorer):
        assert scorer.get_risk_level(make_snapshot(rank=5), 70.0, _neutral()) == "LOW"
        assert scorer.get_risk_level(make_snapshot(rank=50), 55.0, _neutral()) == "MEDIUM"
        assert scorer.get_risk_level(make_snapshot(rank=None), 40.0, _neutral(atr=10.0)) == "VERY_HIGH"

    def test_price_target(self, scorer):
        snapshot = make_snapshot(rank=50)
        assert scorer.calculate_price_target(snapshot, 65.0, _neutral(), []) == pytest.approx(110.0)
        assert scorer.calculate_price_target(snapshot, 40.0, _neutral(), []) == pytest.approx(95.0)
        assert scorer.calculate_price_target(make_snapshot(rank=5), 65.0, _neutral(), []) == pytest.approx(107.0)

    def test_price_target_pulled_toward_blocking_level(self, scorer):
        snapshot = make_snapshot(rank=50)
        assert scorer.calculate_price_target(snapshot, 65.0, _neutral(), [_level(104.0, "resistance")]) == pytest.approx(107.0)
        assert scorer.calculate_price_target(snapshot, 40.0, _neutral(), [_level(97.0, "support")]) == pytest.approx(96.0)

    def test_confidence_for_full_series(self, scorer):
        assert scorer.calculate_confidence(50.0, 2, 60) == 56.0
        assert scorer.calculate_confidence(0.0, 0, 60) == 55.0
        assert scorer.calculate_confidence(100.0, 10, 60) == 95.0

    def test_short_series_stay_below_full_series(self, scorer):
        assert scorer.calculate_confidence(50.0, 2, 25) == 28.0
        assert scorer.calculate_confidence(100.0, 10, 49) == 50.0
        assert scorer.calculate_confidence(0.0, 0, 5) == 20.0
