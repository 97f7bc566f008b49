# src/coinlens/core/use_cases/market_analysis/detect_patterns_engine/candlestick_patterns.py
"""
Candlestick pattern detection functions. Each looks at the last one or two bars.
"""

from typing import Any, Dict, Optional

from coinlens.core.domain.entities.AnalysisEntity import ChartPattern
from .pattern_registry import register_pattern
from .pattern_utils import PatternDetectionContext, build_pattern


def _candle(ohlcv: Dict[str, Any], index: int):
    o, h, l, c = (ohlcv[key][index] for key in ("open", "high", "low", "close"))
    body = abs(c - o)
    upper_shadow = h - max(o, c)
    lower_shadow = min(o, c) - l
    return o, h, l, c, body, upper_shadow, lower_shadow


@register_pattern("doji", "candlestick", types=["DOJI"])
def _detect_doji(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    """Body smaller than a fixed share (10% by default) of the bar's range."""
    if len(ohlcv["close"]) < 1:
        return None
    last = len(ohlcv["close"]) - 1
    o, h, l, c, body, _, _ = _candle(ohlcv, last)
    price_range = h - l
    if price_range <= 0 or body >= context.config["doji_body_ratio"] * price_range:
        return None

    return build_pattern(
        ohlcv, "DOJI", "candlestick", last, last,
        target_price=c,
        key_levels=[h, l],
        description="Doji: open and close nearly equal, market indecision",
    )


@register_pattern("hammer", "candlestick", types=["HAMMER"])
def _detect_hammer(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    if len(ohlcv["close"]) < 1:
        return None
    last = len(ohlcv["close"]) - 1
    o, h, l, c, body, upper, lower = _candle(ohlcv, last)
    price_range = h - l
    if price_range <= 0 or body <= 0:
        return None
    if lower < 2 * body or upper > max(body, 0.1 * price_range):
        return None

    return build_pattern(
        ohlcv, "HAMMER", "candlestick", last, last,
        target_price=c + price_range,
        key_levels=[l, h],
        description="Hammer: long lower shadow, buyers rejected lower prices",
    )


@register_pattern("shooting_star", "candlestick", types=["SHOOTING_STAR"])
def _detect_shooting_star(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    if len(ohlcv["close"]) < 1:
        return None
    last = len(ohlcv["close"]) - 1
    o, h, l, c, body, upper, lower = _candle(ohlcv, last)
    price_range = h - l
    if price_range <= 0 or body <= 0:
        return None
    if upper < 2 * body or lower > max(body, 0.1 * price_range):
        return None

    return build_pattern(
        ohlcv, "SHOOTING_STAR", "candlestick", last, last,
        target_price=c - price_range,
        key_levels=[h, l],
        description="Shooting star: long upper shadow, sellers rejected higher prices",
    )


@register_pattern("engulfing", "candlestick", types=["BULLISH_ENGULFING", "BEARISH_ENGULFING"])
def _detect_engulfing(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    """Current body completely engulfs the previous, opposite-coloured body."""
    if len(ohlcv["close"]) < 2:
        return None
    last = len(ohlcv["close"]) - 1
    prev_open, _, _, prev_close, _, _, _ = _candle(ohlcv, last - 1)
    curr_open, curr_high, curr_low, curr_close, curr_body, _, _ = _candle(ohlcv, last)

    prev_bullish = prev_close > prev_open
    prev_bearish = prev_close < prev_open
    curr_bullish = curr_close > curr_open
    curr_bearish = curr_close < curr_open

    if prev_bearish and curr_bullish and curr_open <= prev_close and curr_close >= prev_open:
        return build_pattern(
            ohlcv, "BULLISH_ENGULFING", "candlestick", last - 1, last,
            target_price=curr_close + curr_body,
            key_levels=[prev_open, prev_close, curr_low],
            description="Bullish engulfing: buyers overwhelmed the previous bearish candle",
        )
    if prev_bullish and curr_bearish and curr_open >= prev_close and curr_close <= prev_open:
        return build_pattern(
            ohlcv, "BEARISH_ENGULFING", "candlestick", last - 1, last,
            target_price=curr_close - curr_body,
            key_levels=[prev_open, prev_close, curr_high],
            description="Bearish engulfing: sellers overwhelmed the previous bullish candle",
        )
    return None
