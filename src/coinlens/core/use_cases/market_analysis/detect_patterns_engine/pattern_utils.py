# src/coinlens/core/use_cases/market_analysis/detect_patterns_engine/pattern_utils.py
"""
Shared helpers for the pattern detectors: extrema extraction, confidence scoring and
ChartPattern construction.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from scipy.signal import argrelextrema

from coinlens.core.domain.entities.AnalysisEntity import ChartPattern

# Base confidence per pattern family
BASE_CONFIDENCE = {
    "head_and_shoulders": 75,
    "double": 70,
    "triangle": 65,
    "flag": 60,
    "divergence": 60,
    "candlestick": 55,
}
DEFAULT_BASE_CONFIDENCE = 50
HIGH_VOLUME_THRESHOLD = 1_000_000


class PatternDetectionContext:
    """Per-run state handed to every detector."""

    def __init__(self, config: Dict[str, Any], rsi_values: Optional[np.ndarray] = None):
        self.config = config
        self.rsi_values = rsi_values if rsi_values is not None else np.array([], dtype=float)


def find_peaks(values: Sequence[float], window: int = 3) -> List[int]:
    """Indices of strict local maxima over ``window`` bars on each side."""
    arr = np.asarray(values, dtype=float)
    if len(arr) < 2 * window + 1:
        return []
    candidates = argrelextrema(arr, np.greater, order=window)[0]
    return [int(i) for i in candidates if window <= i < len(arr) - window]


def find_troughs(values: Sequence[float], window: int = 3) -> List[int]:
    """Indices of strict local minima over ``window`` bars on each side."""
    arr = np.asarray(values, dtype=float)
    if len(arr) < 2 * window + 1:
        return []
    candidates = argrelextrema(arr, np.less, order=window)[0]
    return [int(i) for i in candidates if window <= i < len(arr) - window]


def within_tolerance(a: float, b: float, tolerance: float) -> bool:
    reference = max(abs(a), abs(b))
    if reference == 0:
        return True
    return abs(a - b) / reference <= tolerance


def calculate_confidence(family: str, ohlcv: Dict[str, Any], start: int, end: int) -> float:
    """
    Heuristic confidence in [30, 100]: a base score for the pattern family, +10 when the
    window traded heavily (real volume only), +5 when the window's price range is clear.
    """
    confidence = BASE_CONFIDENCE.get(family, DEFAULT_BASE_CONFIDENCE)

    highs = np.asarray(ohlcv["high"][start:end + 1], dtype=float)
    lows = np.asarray(ohlcv["low"][start:end + 1], dtype=float)
    if ohlcv.get("has_real_volume"):
        volumes = np.asarray(ohlcv["volume"][start:end + 1], dtype=float)
        if len(volumes) and volumes.mean() > HIGH_VOLUME_THRESHOLD:
            confidence += 10

    if len(highs):
        mean_price = (highs.mean() + lows.mean()) / 2
        if mean_price > 0 and (highs.max() - lows.min()) / mean_price > 0.1:
            confidence += 5

    return float(min(100, max(30, confidence)))


def build_pattern(ohlcv: Dict[str, Any], pattern_type: str, family: str, start: int, end: int,
                  target_price: float, key_levels: Sequence[float], description: str) -> ChartPattern:
    timestamps = ohlcv["timestamp"]
    return ChartPattern(
        pattern_type=pattern_type,
        confidence=calculate_confidence(family, ohlcv, start, end),
        start_time=timestamps[start],
        end_time=timestamps[end],
        target_price=float(target_price),
        key_levels=[float(level) for level in key_levels],
        description=description,
    )
