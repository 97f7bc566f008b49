import numpy as np
import pandas as pd
from scipy.signal import argrelextrema
from typing import Dict, List, Any, Optional, Sequence

from coinlens.common.config.analysis_config import get_support_resistance_config
from coinlens.common.logger import logger
from coinlens.common.utils.data_processing import bars_to_dataframe
from coinlens.core.domain.entities.AnalysisEntity import (
    FibonacciLevel,
    SupportResistanceLevel,
    VolumeProfileLevel,
)
from coinlens.core.domain.entities.MarketDataEntity import PriceBar


class SupportResistanceEngine:
    """
    Detects support and resistance levels from pivot highs/lows.

    A bar is a pivot high when its high is the strict maximum of the surrounding
    ``[i - lookback, i + lookback]`` window (pivot low symmetric on lows). Each level is
    then scored by how later bars interacted with it: a bar coming within the tolerance
    band counts as a touch, and a touch that closes back on the level's side counts double.
    The engine also derives Fibonacci retracement levels and a volume profile.
    """
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Args:
            config (Optional[Dict[str, Any]]): Overrides for the ``support_resistance`` config section.
        """
        self.config = get_support_resistance_config()
        if config:
            self.config.update(config)

        self.lookback = int(self.config["lookback"])
        self.tolerance = float(self.config["tolerance"])
        if self.lookback < 1:
            raise ValueError(f"lookback must be at least 1, got {self.lookback}")

    def detect(self, bars: Sequence[PriceBar]) -> List[SupportResistanceLevel]:
        """
        Detect pivot-based levels.

        Args:
            bars (Sequence[PriceBar]): Price bars ordered ascending by timestamp.

        Returns:
            List[SupportResistanceLevel]: Levels sorted descending by strength, truncated to ``max_levels``.
        """
        if len(bars) < 2 * self.lookback + 1:
            logger.debug(f"[S/R Engine] Not enough bars for pivots ({len(bars)} < {2 * self.lookback + 1})")
            return []

        try:
            highs = np.array([bar.high for bar in bars], dtype=float)
            lows = np.array([bar.low for bar in bars], dtype=float)

            levels = []
            for index in self._find_pivots(highs, np.greater):
                levels.append(self._score_level(bars, index, float(highs[index]), "resistance"))
            for index in self._find_pivots(lows, np.less):
                levels.append(self._score_level(bars, index, float(lows[index]), "support"))

            levels.sort(key=lambda lvl: (-lvl.strength, lvl.index))
            levels = levels[: self.config["max_levels"]]

            logger.info(f"[S/R Engine] Detected {len(levels)} levels from {len(bars)} bars")
            return levels
        except (ValueError, IndexError) as e:
            logger.error(f"[S/R Engine] Level detection failed: {e}")
            return []

    def _find_pivots(self, values: np.ndarray, comparator) -> List[int]:
        """Indices whose value strictly beats every neighbour within the lookback on both sides."""
        candidates = argrelextrema(values, comparator, order=self.lookback)[0]
        last_valid = len(values) - 1 - self.lookback
        return [int(i) for i in candidates if self.lookback <= i <= last_valid]

    def _score_level(self, bars: Sequence[PriceBar], index: int, price: float, level_type: str) -> SupportResistanceLevel:
        strength = 0.0
        touches = 0
        last_touch = None
        band = abs(price) * self.tolerance

        for bar in bars[index + 1:]:
            probe = bar.low if level_type == "support" else bar.high
            if abs(probe - price) > band:
                continue

            touches += 1
            last_touch = bar.timestamp
            bounced = bar.close > price if level_type == "support" else bar.close < price
            strength += self.config["rejection_weight"] if bounced else self.config["touch_weight"]

        return SupportResistanceLevel(
            price=price,
            type=level_type,
            strength=strength,
            touches=touches,
            index=index,
            first_touch=bars[index].timestamp,
            last_touch=last_touch,
        )

    def _count_touches(self, bars: Sequence[PriceBar], level: float) -> int:
        band = abs(level) * self.tolerance
        return sum(
            1 for bar in bars
            if abs(bar.high - level) <= band or abs(bar.low - level) <= band
        )

    def calculate_fibonacci_levels(self, bars: Sequence[PriceBar]) -> List[FibonacciLevel]:
        """
        Fibonacci retracement levels measured down from the highest high to the lowest low.
        The 0 ratio is resistance, the 1 ratio support, everything in between a retracement.
        """
        if len(bars) < 2:
            return []

        highest = max(bar.high for bar in bars)
        lowest = min(bar.low for bar in bars)
        price_range = highest - lowest

        levels = []
        for ratio in self.config["fibonacci_ratios"]:
            level = highest - price_range * ratio
            touches = self._count_touches(bars, level)
            if ratio == 0:
                level_type = "resistance"
            elif ratio == 1:
                level_type = "support"
            else:
                level_type = "retracement"
            levels.append(FibonacciLevel(
                level=level,
                ratio=ratio,
                type=level_type,
                strength=float(min(100, touches * 20)),
                touches=touches,
            ))
        return levels

    def calculate_volume_profile(self, bars: Sequence[PriceBar]) -> List[VolumeProfileLevel]:
        """
        Distribute each bar's volume over fixed price bins in proportion to how much of the
        bar's range overlaps the bin. Bullish bars split 60/40 buy/sell, bearish bars 40/60.
        Placeholder volume carries no information, so the profile is empty without real volume.
        """
        if not bars or not all(bar.has_real_volume for bar in bars):
            return []

        df = bars_to_dataframe(bars)
        low, high = float(df["low"].min()), float(df["high"].max())
        if high <= low:
            return []

        bins = int(self.config["volume_profile_bins"])
        edges = np.linspace(low, high, bins + 1)
        candle_range = (df["high"] - df["low"]).to_numpy()
        bullish = (df["close"] > df["open"]).to_numpy()

        rows = []
        for lower_edge, upper_edge in zip(edges[:-1], edges[1:]):
            overlap = np.clip(
                np.minimum(df["high"].to_numpy(), upper_edge) - np.maximum(df["low"].to_numpy(), lower_edge),
                0.0,
                None,
            )
            ratio = np.divide(overlap, candle_range, out=np.zeros_like(overlap), where=candle_range > 0)
            in_level = df["volume"].to_numpy() * ratio
            total = float(in_level.sum())
            if total <= 0:
                continue
            buy = float((in_level * np.where(bullish, 0.6, 0.4)).sum())
            rows.append({
                "price_level": float(lower_edge),
                "total_volume": total,
                "buy_volume": buy,
                "sell_volume": total - buy,
            })

        if not rows:
            return []

        profile = pd.DataFrame(rows)
        profile["volume_percentage"] = profile["total_volume"] / profile["total_volume"].sum() * 100
        profile = profile.sort_values("total_volume", ascending=False, kind="mergesort")
        return [VolumeProfileLevel(**row) for row in profile.to_dict(orient="records")]
