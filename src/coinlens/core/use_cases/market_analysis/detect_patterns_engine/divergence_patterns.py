# src/coinlens/core/use_cases/market_analysis/detect_patterns_engine/divergence_patterns.py
"""
Price/oscillator divergence detection.
"""

from typing import Any, Dict, Optional

import numpy as np

from coinlens.core.domain.entities.AnalysisEntity import ChartPattern
from .pattern_registry import register_pattern
from .pattern_utils import PatternDetectionContext, build_pattern


@register_pattern("rsi_divergence", "divergence", types=["BULLISH_DIVERGENCE", "BEARISH_DIVERGENCE"])
def _detect_rsi_divergence(ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
    """
    Compare the direction of price over the last N bars with the direction of RSI over
    the same bars. Price falling while RSI rises is bullish, the reverse is bearish.
    """
    window = context.config["divergence_window"]
    closes = np.asarray(ohlcv["close"], dtype=float)
    rsi_values = context.rsi_values
    if len(closes) < window or len(rsi_values) < window:
        return None

    price_change = closes[-1] - closes[-window]
    rsi_change = rsi_values[-1] - rsi_values[-window]
    start = len(closes) - window
    end = len(closes) - 1

    if price_change < 0 and rsi_change > 0:
        return build_pattern(
            ohlcv, "BULLISH_DIVERGENCE", "divergence", start, end,
            target_price=float(np.max(ohlcv["high"][start:])),
            key_levels=[closes[-window], closes[-1]],
            description=f"Bullish divergence: price fell while RSI rose {rsi_change:.1f} points",
        )
    if price_change > 0 and rsi_change < 0:
        return build_pattern(
            ohlcv, "BEARISH_DIVERGENCE", "divergence", start, end,
            target_price=float(np.min(ohlcv["low"][start:])),
            key_levels=[closes[-window], closes[-1]],
            description=f"Bearish divergence: price rose while RSI fell {abs(rsi_change):.1f} points",
        )
    return None
