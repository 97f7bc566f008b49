# src/coinlens/core/use_cases/market_analysis/detect_patterns_engine/chart_patterns.py
"""
Chart pattern detection functions working on a rolling window of recent bars.
"""

from typing import Any, Dict, Optional, Tuple

import numpy as np

from coinlens.core.domain.entities.AnalysisEntity import ChartPattern
from .pattern_registry import register_pattern
from .pattern_utils import (
    PatternDetectionContext,
    build_pattern,
    find_peaks,
    find_troughs,
    within_tolerance,
)


def _window(ohlcv: Dict[str, Any], size: int) -> Optional[Tuple[int, np.ndarray, np.ndarray, np.ndarray]]:
    """Offset of the window into the full series plus its highs, lows and closes."""
    n = len(ohlcv["close"])
    if n < size:
        return None
    offset = n - size
    highs = np.asarray(ohlcv["high"][offset:], dtype=float)
    lows = np.asarray(ohlcv["low"][offset:], dtype=float)
    closes = np.asarray(ohlcv["close"][offset:], dtype=float)
    return offset, highs, lows, closes


@register_pattern("head_and_shoulders", "chart", types=["HEAD_AND_SHOULDERS"])
def _detect_head_and_shoulders(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    """
    Three consecutive peaks where the middle one is the highest and the outer two sit
    within the shoulder tolerance of each other. The neckline is the mean of the two
    troughs between them; the target projects the head height below the neckline.
    """
    window = _window(ohlcv, context.config["head_shoulders_window"])
    if window is None:
        return None
    offset, highs, lows, _ = window
    tolerance = context.config["shoulder_tolerance"]

    peaks = find_peaks(highs, context.config["peak_window"])
    # Most recent formation first
    for left, head, right in reversed(list(zip(peaks, peaks[1:], peaks[2:]))):
        left_high, head_high, right_high = highs[left], highs[head], highs[right]
        if head_high <= max(left_high, right_high):
            continue
        if not within_tolerance(left_high, right_high, tolerance):
            continue

        neckline = (lows[left:head + 1].min() + lows[head:right + 1].min()) / 2
        height = head_high - neckline
        return build_pattern(
            ohlcv, "HEAD_AND_SHOULDERS", "head_and_shoulders", offset + left, offset + right,
            target_price=neckline - height,
            key_levels=[left_high, head_high, right_high, neckline],
            description="Head and shoulders: bearish reversal below a neckline",
        )
    return None


@register_pattern("double_top", "chart", types=["DOUBLE_TOP"])
def _detect_double_top(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    window = _window(ohlcv, context.config["double_pattern_window"])
    if window is None:
        return None
    offset, highs, lows, _ = window
    tolerance = context.config["double_tolerance"]

    peaks = find_peaks(highs, context.config["peak_window"])
    if len(peaks) < 2:
        return None
    first, second = peaks[-2], peaks[-1]
    if not within_tolerance(highs[first], highs[second], tolerance):
        return None

    top = max(highs[first], highs[second])
    valley = lows[first:second + 1].min()
    # The valley between the tops must be meaningfully lower than the tops
    if within_tolerance(top, valley, tolerance):
        return None

    return build_pattern(
        ohlcv, "DOUBLE_TOP", "double", offset + first, offset + second,
        target_price=valley - (top - valley),
        key_levels=[highs[first], highs[second], valley],
        description="Double top: two failed attempts at the same high",
    )


@register_pattern("double_bottom", "chart", types=["DOUBLE_BOTTOM"])
def _detect_double_bottom(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    window = _window(ohlcv, context.config["double_pattern_window"])
    if window is None:
        return None
    offset, highs, lows, _ = window
    tolerance = context.config["double_tolerance"]

    troughs = find_troughs(lows, context.config["peak_window"])
    if len(troughs) < 2:
        return None
    first, second = troughs[-2], troughs[-1]
    if not within_tolerance(lows[first], lows[second], tolerance):
        return None

    bottom = min(lows[first], lows[second])
    ridge = highs[first:second + 1].max()
    if within_tolerance(bottom, ridge, tolerance):
        return None

    return build_pattern(
        ohlcv, "DOUBLE_BOTTOM", "double", offset + first, offset + second,
        target_price=ridge + (ridge - bottom),
        key_levels=[lows[first], lows[second], ridge],
        description="Double bottom: two successful defences of the same low",
    )


@register_pattern("triangle", "chart", types=["ASCENDING_TRIANGLE", "DESCENDING_TRIANGLE", "SYMMETRICAL_TRIANGLE"])
def _detect_triangle(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    """
    Triangles from the slopes of lines fitted through the window's peaks and troughs.
    A flat side means the last 10 highs (or lows) stay within 2% of each other.
    """
    window = _window(ohlcv, context.config["triangle_window"])
    if window is None:
        return None
    offset, highs, lows, closes = window

    peaks = find_peaks(highs, context.config["peak_window"])
    troughs = find_troughs(lows, context.config["peak_window"])
    if len(peaks) < 2 or len(troughs) < 2:
        return None

    resistance_slope = np.polyfit(peaks, highs[peaks], 1)[0]
    support_slope = np.polyfit(troughs, lows[troughs], 1)[0]
    flat_top = within_tolerance(highs[-10:].max(), highs[-10:].min(), 0.02)
    flat_bottom = within_tolerance(lows[-10:].max(), lows[-10:].min(), 0.02)

    height = highs.max() - lows.min()
    resistance = highs[peaks[-1]]
    support = lows[troughs[-1]]

    if flat_top and support_slope > 0:
        pattern_type, target, description = (
            "ASCENDING_TRIANGLE", resistance + height, "Ascending triangle: rising lows under flat resistance")
    elif flat_bottom and resistance_slope < 0:
        pattern_type, target, description = (
            "DESCENDING_TRIANGLE", support - height, "Descending triangle: falling highs over flat support")
    elif resistance_slope < 0 and support_slope > 0:
        midpoint = (resistance + support) / 2
        direction = 1 if closes[-1] >= midpoint else -1
        pattern_type, target, description = (
            "SYMMETRICAL_TRIANGLE", closes[-1] + direction * height, "Symmetrical triangle: converging highs and lows")
    else:
        return None

    return build_pattern(
        ohlcv, pattern_type, "triangle", offset + min(peaks[0], troughs[0]), offset + len(closes) - 1,
        target_price=target,
        key_levels=[resistance, support],
        description=description,
    )


@register_pattern("flag", "chart", types=["BULL_FLAG", "BEAR_FLAG"])
def _detect_flag(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    """A sharp pole over the first half of the window followed by a quiet consolidation."""
    window = _window(ohlcv, context.config["flag_window"])
    if window is None:
        return None
    offset, _, _, closes = window
    half = len(closes) // 2

    pole_start, pole_end = closes[0], closes[half - 1]
    if pole_start <= 0 or np.any(closes[half:] <= 0):
        return None
    move = (pole_end - pole_start) / pole_start
    if abs(move) <= context.config["flag_min_move"]:
        return None

    volatility = float(np.std(np.diff(np.log(closes[half:]))))
    if volatility >= context.config["flag_max_volatility"]:
        return None

    pole_height = pole_end - pole_start
    pattern_type = "BULL_FLAG" if move > 0 else "BEAR_FLAG"
    return build_pattern(
        ohlcv, pattern_type, "flag", offset, offset + len(closes) - 1,
        target_price=closes[-1] + pole_height,
        key_levels=[pole_start, pole_end],
        description=f"{'Bull' if move > 0 else 'Bear'} flag: consolidation after a {abs(move) * 100:.1f}% move",
    )
