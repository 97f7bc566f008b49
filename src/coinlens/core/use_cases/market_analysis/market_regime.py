"""
Market Regime Classification Module

This module classifies the current market state as trending, ranging or volatile from
indicator values at the latest bar, giving the scorer context about the asset.
"""

from typing import Any, Dict, Optional, Sequence

from coinlens.common.config.analysis_config import get_regime_config
from coinlens.common.logger import logger
from coinlens.core.domain.entities.AnalysisEntity import IndicatorSet, MarketRegime


class MarketRegimeClassifier:
    """
    Classifies the market regime from ATR, ADX and the short/long SMA spread.

    Decision order:
        1. ATR / price above the volatility threshold -> VOLATILE / SIDEWAYS
        2. SMA spread above its threshold and ADX above the trend threshold -> TRENDING, UP or DOWN
        3. otherwise -> RANGING / SIDEWAYS
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the regime classifier.

        Args:
            config: Overrides for the ``regime`` config section
        """
        self.config = get_regime_config()
        if config:
            self.config.update(config)

    def classify(self, indicators: IndicatorSet, closes: Sequence[float]) -> MarketRegime:
        """
        Classify the regime at the latest bar.

        Args:
            indicators: Indicator values at the latest bar
            closes: Recent closing prices; the last one is the reference price

        Returns:
            MarketRegime with regime, direction and a 0-100 strength
        """
        if len(closes) == 0 or closes[-1] <= 0:
            return MarketRegime()

        price = float(closes[-1])
        volatility = indicators.atr / price
        divergence = (indicators.sma20 - indicators.sma50) / indicators.sma50 if indicators.sma50 else 0.0
        strength = self._calculate_strength(divergence, indicators.adx)

        if volatility > self.config["volatility_threshold"]:
            regime = MarketRegime(regime="VOLATILE", direction="SIDEWAYS", strength=strength)
        elif abs(divergence) > self.config["sma_divergence_threshold"] and indicators.adx > self.config["adx_trend_threshold"]:
            direction = "UP" if divergence > 0 else "DOWN"
            regime = MarketRegime(regime="TRENDING", direction=direction, strength=strength)
        else:
            regime = MarketRegime(regime="RANGING", direction="SIDEWAYS", strength=strength)

        logger.debug(f"[Regime] volatility={volatility:.4f} divergence={divergence:.4f} adx={indicators.adx:.1f} -> {regime.regime}/{regime.direction}")
        return regime

    def _calculate_strength(self, divergence: float, adx: float) -> float:
        # 1% of SMA spread counts as 10 points of trend strength
        trend_strength = min(100.0, abs(divergence) * 1000)
        return round(min(100.0, max(0.0, (trend_strength + adx) / 2)), 2)
