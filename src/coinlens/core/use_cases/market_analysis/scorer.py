"""
Scorer Module for Asset Analysis

This module fuses indicator values, the multi-timeframe summary, support/resistance
levels and snapshot fundamentals into technical, fundamental, sentiment and overall
scores, a bounded 24h predicted change, a ternary recommendation, a risk level, a
price target and a confidence value.
"""

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from coinlens.common.config.analysis_config import get_scoring_config
from coinlens.common.custom_exceptions.data_unavailable_error import AnalysisError
from coinlens.common.logger import logger
from coinlens.core.domain.entities.AnalysisEntity import (
    ChartPattern,
    IndicatorSet,
    MarketRegime,
    SupportResistanceLevel,
    TimeframeAnalysis,
)
from coinlens.core.domain.entities.AssetEntity import AssetSnapshot


STABLECOIN_SYMBOLS = {
    "usdt", "usdc", "busd", "dai", "tusd", "frax", "lusd", "usdd", "usdp", "gusd",
    "husd", "susd", "cusd", "ousd", "musd", "dusd", "yusd", "rusd", "nusd",
    "usdn", "ustc", "ust", "vai", "mim", "fei", "rai", "pyusd", "fdusd", "usde",
    "eurc", "eurs", "eurt", "gbpt", "jpyc", "cadc", "audc", "nzds",
    "paxg", "xaut", "dgld", "pmgt",
}
STABLECOIN_NAME_PATTERN = re.compile(
    r"\b(usd\w*|\w*usd|dollar|stablecoin|stable|tether|euro|eur|gbp|jpy|cny|cad|aud|chf|paxos|gold token)\b"
)
WRAPPED_PATTERNS = (
    "wrapped", "staked", "liquid staking", "staking derivative",
    "weth", "wbtc", "wbnb", "wmatic", "wavax", "wftm", "wsol",
    "steth", "reth", "cbeth", "sfrxeth", "lido",
)
WRAPPED_MAJORS = ("eth", "btc", "bnb", "matic", "avax", "ftm", "sol")

# Directional contribution weights for the predicted change
PREDICTION_WEIGHTS = {
    "rsi": 1.5,
    "macd": 1.5,
    "moving_averages": 1.5,
    "bollinger": 1.0,
    "multi_timeframe": 2.0,
    "support_resistance": 1.0,
    "adx": 1.0,
    "stochastic": 1.0,
    "williams_r": 0.5,
    "cci": 0.5,
    "parabolic_sar": 0.5,
    "mfi": 0.5,
    "ichimoku": 1.0,
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def is_excluded_asset(snapshot: AssetSnapshot) -> bool:
    """True for stable-value pegs and wrapped/staked derivatives."""
    symbol = snapshot.symbol.lower()
    name = snapshot.name.lower()

    if symbol in STABLECOIN_SYMBOLS or STABLECOIN_NAME_PATTERN.search(name):
        return True

    price = snapshot.current_price or 0.0
    if abs(snapshot.price_change_percentage_24h) < 2 and 0.85 < price < 1.15:
        return True

    if any(pattern in name or pattern in symbol for pattern in WRAPPED_PATTERNS):
        return True
    return symbol.startswith("w") and any(token in symbol for token in WRAPPED_MAJORS)


class AnalysisScorer:
    """
    Scores an asset from its indicators and snapshot.
    The same technical scoring function serves every timeframe and the top-level score.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the scorer.

        Args:
            config: Overrides for the ``scoring`` config section
        """
        self.config = get_scoring_config()
        if config:
            self.config.update(config)

        self.weights = self.config["weights"]

        # Validate weights sum to 1.0
        total_weight = sum(self.weights.values())
        if abs(total_weight - 1.0) > 0.01:
            raise ValueError(f"Weights must sum to 1.0, got {total_weight}")

        self.max_change = float(self.config["max_predicted_change"])
        if self.max_change <= 0:
            raise ValueError(f"max_predicted_change must be positive, got {self.max_change}")

    # --- Technical score ---

    def _technical_components(self, indicators: IndicatorSet, price: float) -> List[Tuple[float, Optional[str]]]:
        """Point value (0-100) and optional signal name for each technical sub-signal."""
        components = []

        rsi = indicators.rsi
        if rsi < 30:
            components.append((80.0, "RSI Oversold"))
        elif rsi > 70:
            components.append((25.0, "RSI Overbought"))
        elif rsi < 40:
            components.append((60.0, None))
        elif rsi > 60:
            components.append((45.0, None))
        else:
            components.append((50.0, None))

        macd = indicators.macd
        if macd.line > macd.signal:
            components.append((75.0, "MACD Bullish"))
        elif macd.line < macd.signal:
            components.append((25.0, "MACD Bearish"))
        else:
            components.append((50.0, None))
        components.append((50.0 + 15.0 * _sign(macd.line), None))

        sma20, sma50 = indicators.sma20, indicators.sma50
        if price > sma20 > sma50:
            components.append((85.0, "Bullish MA Alignment"))
        elif price < sma20 < sma50:
            components.append((15.0, "Bearish MA Alignment"))
        elif price > sma20:
            components.append((60.0, "Above SMA20"))
        elif price < sma20:
            components.append((40.0, "Below SMA20"))
        else:
            components.append((50.0, None))

        position = self.bollinger_position(indicators, price)
        if position < 0.2:
            components.append((75.0, "Bollinger Oversold"))
        elif position > 0.8:
            components.append((35.0, "Bollinger Overbought"))
        else:
            components.append((50.0, None))

        stoch = indicators.stochastic
        if stoch.k < 20 and stoch.d < 20:
            components.append((75.0, "Stochastic Oversold"))
        elif stoch.k > 80 and stoch.d > 80:
            components.append((30.0, "Stochastic Overbought"))
        else:
            components.append((50.0, None))

        direction = _sign(indicators.ema12 - indicators.ema26)
        adx_signal = None
        if indicators.adx > 25 and direction:
            adx_signal = "Strong Uptrend (ADX)" if direction > 0 else "Strong Downtrend (ADX)"
        components.append((50.0 + direction * min(50.0, indicators.adx), adx_signal))

        return components

    def calculate_technical_score(self, indicators: IndicatorSet, price: float) -> float:
        components = self._technical_components(indicators, price)
        return round(_clamp(sum(points for points, _ in components) / len(components), 0.0, 100.0), 2)

    def technical_signals(self, indicators: IndicatorSet, price: float) -> List[str]:
        signals = [name for _, name in self._technical_components(indicators, price) if name]
        if indicators.sma20 > indicators.sma50:
            signals.append("Golden Cross")
        elif indicators.sma20 < indicators.sma50:
            signals.append("Death Cross")
        return signals

    @staticmethod
    def bollinger_position(indicators: IndicatorSet, price: float) -> float:
        """Position of price inside the bands, 0 at the lower band and 1 at the upper; 0.5 when the bands are flat."""
        width = indicators.bollinger.upper - indicators.bollinger.lower
        if width <= 0:
            return 0.5
        return (price - indicators.bollinger.lower) / width

    # --- Fundamental and sentiment ---

    def calculate_fundamental_score(self, snapshot: AssetSnapshot) -> float:
        """
        Fundamental score from market-cap rank, liquidity, 24h performance, market-cap change
        and distance from the all-time high. Pegs and wrapped/staked tokens score 0 outright.

        Raises:
            AnalysisError: If price or market cap is missing.
        """
        self.validate_snapshot(snapshot)

        if is_excluded_asset(snapshot):
            logger.info(f"[Scorer] Excluding peg/wrapped asset {snapshot.name} ({snapshot.symbol})")
            return 0.0

        score = 0.0
        rank = snapshot.market_cap_rank
        if rank is not None:
            if rank <= 10:
                score += 30
            elif rank <= 50:
                score += 20
            elif rank <= 100:
                score += 10

        volume_ratio = (snapshot.total_volume or 0.0) / snapshot.market_cap
        if volume_ratio > 0.1:
            score += 20
        elif volume_ratio > 0.05:
            score += 10

        change_24h = snapshot.price_change_percentage_24h
        if abs(change_24h) < 1:
            score -= 20
        elif change_24h > 5:
            score += 15
        elif change_24h > 0:
            score += 10
        elif change_24h < -10:
            score -= 10

        cap_change = snapshot.market_cap_change_percentage_24h or 0.0
        if cap_change > 5:
            score += 10
        elif cap_change > 0:
            score += 5

        if snapshot.ath:
            ath_distance = (snapshot.ath - snapshot.current_price) / snapshot.current_price * 100
            if ath_distance > 200:
                score += 15
            elif ath_distance > 100:
                score += 10
            elif ath_distance < 10:
                score -= 5

        return round(_clamp(score, 0.0, 100.0), 2)

    def calculate_sentiment_score(self, snapshot: AssetSnapshot) -> float:
        """Momentum sentiment centred at 50."""
        score = 50.0
        change_24h = snapshot.price_change_percentage_24h
        if change_24h > 10:
            score += 15
        elif change_24h > 5:
            score += 10
        elif change_24h < -10:
            score -= 15
        elif change_24h < -5:
            score -= 10

        change_7d = snapshot.price_change_percentage_7d
        if change_7d is not None:
            if change_7d > 20:
                score += 15
            elif change_7d > 10:
                score += 10
            elif change_7d < -20:
                score -= 15
            elif change_7d < -10:
                score -= 10

        return _clamp(score, 0.0, 100.0)

    def calculate_overall_score(self, technical: float, fundamental: float, sentiment: float) -> float:
        overall = (
            technical * self.weights["technical"] +
            fundamental * self.weights["fundamental"] +
            sentiment * self.weights["sentiment"]
        )
        return round(_clamp(overall, 0.0, 100.0), 2)

    @staticmethod
    def validate_snapshot(snapshot: AssetSnapshot) -> None:
        if not snapshot.current_price or snapshot.current_price <= 0:
            raise AnalysisError("Missing fundamental data", f"{snapshot.id}: current price unavailable")
        if not snapshot.market_cap or snapshot.market_cap <= 0:
            raise AnalysisError("Missing fundamental data", f"{snapshot.id}: market cap unavailable")

    # --- Prediction ---

    def _nearest_level(self, levels: Sequence[SupportResistanceLevel], price: float) -> Optional[SupportResistanceLevel]:
        if not levels or price <= 0:
            return None
        return min(levels, key=lambda lvl: (abs(lvl.price - price), lvl.index))

    def prediction_contributions(self, indicators: IndicatorSet, price: float,
                                 timeframes: Sequence[TimeframeAnalysis],
                                 levels: Sequence[SupportResistanceLevel]) -> Dict[str, float]:
        """Directional contribution in [-1, 1] for every predictor."""
        contributions = {}

        rsi = indicators.rsi
        if rsi < 30:
            contributions["rsi"] = min(1.0, 0.5 + (30 - rsi) / 30)
        elif rsi > 70:
            contributions["rsi"] = -min(1.0, 0.5 + (rsi - 70) / 30)
        else:
            contributions["rsi"] = 0.0

        histogram = indicators.macd.histogram
        if histogram and price > 0:
            strength = _clamp(abs(histogram) / (0.005 * price), 0.5, 1.0)
            contributions["macd"] = _sign(histogram) * strength
        else:
            contributions["macd"] = 0.0

        if price > indicators.sma20 > indicators.sma50:
            contributions["moving_averages"] = 1.0
        elif price < indicators.sma20 < indicators.sma50:
            contributions["moving_averages"] = -1.0
        else:
            contributions["moving_averages"] = 0.0

        position = self.bollinger_position(indicators, price)
        if position < 0.2:
            contributions["bollinger"] = 1.0
        elif position > 0.8:
            contributions["bollinger"] = -0.5
        else:
            contributions["bollinger"] = 0.0

        if timeframes:
            bullish = sum(1 for tf in timeframes if tf.trend == "bullish")
            bearish = sum(1 for tf in timeframes if tf.trend == "bearish")
            contributions["multi_timeframe"] = (bullish - bearish) / len(timeframes)
        else:
            contributions["multi_timeframe"] = 0.0

        nearest = self._nearest_level(levels, price)
        contributions["support_resistance"] = 0.0
        if nearest is not None and abs(nearest.price - price) / price <= self.config["near_level_tolerance"]:
            contributions["support_resistance"] = 1.0 if nearest.type == "support" else -1.0

        direction = _sign(indicators.ema12 - indicators.ema26)
        contributions["adx"] = direction * min(1.0, indicators.adx / 50) if indicators.adx > 25 else 0.0

        stoch = indicators.stochastic
        if stoch.k < 20 and stoch.d < 20:
            contributions["stochastic"] = 1.0
        elif stoch.k > 80 and stoch.d > 80:
            contributions["stochastic"] = -1.0
        else:
            contributions["stochastic"] = 0.0

        williams = indicators.williams_r
        contributions["williams_r"] = 1.0 if williams < -80 else -1.0 if williams > -20 else 0.0

        cci = indicators.cci
        contributions["cci"] = 1.0 if cci < -100 else -1.0 if cci > 100 else 0.0

        contributions["parabolic_sar"] = float(_sign(price - indicators.parabolic_sar))

        mfi = indicators.mfi
        contributions["mfi"] = 1.0 if mfi < 20 else -1.0 if mfi > 80 else 0.0

        ichimoku = indicators.ichimoku
        cloud_top = max(ichimoku.senkou_span_a, ichimoku.senkou_span_b)
        cloud_bottom = min(ichimoku.senkou_span_a, ichimoku.senkou_span_b)
        cloud = 1.0 if price > cloud_top else -1.0 if price < cloud_bottom else 0.0
        cross = _sign(ichimoku.tenkan_sen - ichimoku.kijun_sen)
        contributions["ichimoku"] = 0.7 * cloud + 0.3 * cross

        return contributions

    def predict_change(self, indicators: IndicatorSet, snapshot: AssetSnapshot,
                       timeframes: Sequence[TimeframeAnalysis],
                       levels: Sequence[SupportResistanceLevel]) -> float:
        """
        Predicted 24h change in percent.

        The weighted mean of the directional contributions is scaled to a percentage move,
        nudged by recent momentum, scaled by market-cap tier and clamped to the horizon bound.
        """
        price = snapshot.current_price
        contributions = self.prediction_contributions(indicators, price, timeframes, levels)

        weighted_sum = 0.0
        total_weight = 0.0
        for name, value in contributions.items():
            weight = PREDICTION_WEIGHTS[name]
            if name == "mfi" and not indicators.has_real_volume:
                weight /= 2
            weighted_sum += value * weight
            total_weight += weight

        bias = weighted_sum / total_weight if total_weight else 0.0
        change = bias * self.config["technical_move_scale"]

        momentum = snapshot.price_change_percentage_24h
        change += momentum * (0.3 if abs(momentum) > 10 else 0.1)

        change *= self._rank_factor(snapshot.market_cap_rank)
        return round(_clamp(change, -self.max_change, self.max_change), 4)

    @staticmethod
    def _rank_factor(rank: Optional[int]) -> float:
        # Large caps move less, small caps more
        if rank is not None and rank <= 10:
            return 0.7
        if rank is None or rank > 100:
            return 1.3
        return 1.0

    def get_recommendation(self, predicted_change: float) -> str:
        threshold = self.config["recommendation_threshold"]
        if predicted_change > threshold:
            return "LONG"
        if predicted_change < -threshold:
            return "SHORT"
        return "NEUTRAL"

    # --- Risk, target, confidence ---

    def get_risk_level(self, snapshot: AssetSnapshot, overall_score: float, indicators: IndicatorSet) -> str:
        """Risk from market-cap rank tier, overall score tier and ATR as a share of price."""
        rank = snapshot.market_cap_rank
        if rank is not None and rank <= 10:
            points = 0
        elif rank is not None and rank <= 50:
            points = 1
        elif rank is not None and rank <= 100:
            points = 2
        else:
            points = 3

        if overall_score < 50:
            points += 2
        elif overall_score < 60:
            points += 1

        atr_pct = indicators.atr / snapshot.current_price * 100 if snapshot.current_price else 0.0
        if atr_pct >= 8:
            points += 3
        elif atr_pct >= 5:
            points += 2
        elif atr_pct >= 2:
            points += 1

        if points <= 1:
            return "LOW"
        if points <= 3:
            return "MEDIUM"
        if points <= 5:
            return "HIGH"
        return "VERY_HIGH"

    def calculate_price_target(self, snapshot: AssetSnapshot, overall_score: float,
                               indicators: IndicatorSet, levels: Sequence[SupportResistanceLevel]) -> float:
        price = snapshot.current_price

        if overall_score >= 80:
            multiplier = 1.25
        elif overall_score >= 70:
            multiplier = 1.15
        elif overall_score >= 60:
            multiplier = 1.10
        elif overall_score >= 50:
            multiplier = 1.05
        else:
            multiplier = 0.95

        if price < indicators.bollinger.lower:
            multiplier *= 1.1

        multiplier = 1 + (multiplier - 1) * self._rank_factor(snapshot.market_cap_rank)
        target = price * multiplier

        # Pull the target halfway toward a level that stands in the way
        if target > price:
            blocking = [lvl.price for lvl in levels if lvl.type == "resistance" and price < lvl.price < target]
            if blocking:
                target = (target + min(blocking)) / 2
        elif target < price:
            blocking = [lvl.price for lvl in levels if lvl.type == "support" and target < lvl.price < price]
            if blocking:
                target = (target + max(blocking)) / 2

        return round(target, 8)

    def calculate_confidence(self, overall_score: float, signal_count: int, bar_count: int) -> float:
        """
        Confidence from the overall score, fired signals and data completeness.
        Short series are capped below the floor of full-length series.
        """
        min_bars = self.config["min_bars"]
        raw = overall_score * 0.6 + 20 + min(15, signal_count * 3)
        if bar_count >= min_bars:
            return round(_clamp(raw, 55.0, 95.0), 2)

        completeness = bar_count / min_bars if min_bars else 0.0
        return round(_clamp(raw * completeness, 20.0, 50.0), 2)

    def collect_signals(self, indicators: IndicatorSet, price: float, timeframes: Sequence[TimeframeAnalysis],
                        levels: Sequence[SupportResistanceLevel], patterns: Sequence[ChartPattern],
                        regime: MarketRegime) -> List[str]:
        signals = self.technical_signals(indicators, price)

        nearest = self._nearest_level(levels, price)
        if nearest is not None and abs(nearest.price - price) / price <= self.config["near_level_tolerance"]:
            signals.append("Near Support" if nearest.type == "support" else "Near Resistance")

        available = [tf for tf in timeframes if tf.available]
        if available and all(tf.trend == "bullish" for tf in available):
            signals.append("Timeframes Aligned Bullish")
        elif available and all(tf.trend == "bearish" for tf in available):
            signals.append("Timeframes Aligned Bearish")

        if regime.regime != "RANGING":
            signals.append(f"Regime: {regime.regime} {regime.direction}")

        for pattern in patterns:
            signals.append(f"Pattern: {pattern.pattern_type}")

        if not indicators.has_real_volume:
            signals.append("Approximated Volume")
        return signals
