"""
Multi-Timeframe Aggregation Module

Re-runs the indicator library and regime classifier per timeframe and condenses each
timeframe into a trend direction and strength.
"""

from typing import Any, Dict, List, Optional, Sequence

from coinlens.common.config.analysis_config import get_indicator_config, get_multi_timeframe_config
from coinlens.common.logger import logger
from coinlens.common.utils.data_processing import prepare_price_bars
from coinlens.core.domain.entities.AnalysisEntity import IndicatorSet, TimeframeAnalysis
from coinlens.core.domain.entities.MarketDataEntity import PriceBar
from coinlens.core.interfaces.price_series_provider import PriceSeriesProvider
from .market_regime import MarketRegimeClassifier
from .scorer import AnalysisScorer
from .technical_indicators import calculate_indicator_set


class MultiTimeframeAnalyzer:
    """
    Summarises an asset over several timeframes (1h, 4h, 1d, 1w by default).

    A failing timeframe never aborts the analysis: it is replaced by a neutral,
    zero-strength summary flagged ``available=False``.
    """

    def __init__(self, provider: PriceSeriesProvider, scorer: Optional[AnalysisScorer] = None,
                 regime_classifier: Optional[MarketRegimeClassifier] = None,
                 config: Optional[Dict[str, Any]] = None,
                 indicator_config: Optional[Dict[str, Any]] = None):
        self.provider = provider
        self.scorer = scorer or AnalysisScorer()
        self.regime_classifier = regime_classifier or MarketRegimeClassifier()
        self.config = get_multi_timeframe_config()
        if config:
            self.config.update(config)
        self.indicator_config = get_indicator_config()
        if indicator_config:
            self.indicator_config.update(indicator_config)

    def summarize(self, timeframe: str, bars: Sequence[PriceBar]) -> TimeframeAnalysis:
        """Trend summary for one timeframe from already-fetched bars."""
        bars = prepare_price_bars(bars)
        closes = [bar.close for bar in bars]
        indicators = calculate_indicator_set(bars, self.indicator_config)
        score = self.scorer.calculate_technical_score(indicators, closes[-1])

        if score > self.config["bullish_threshold"]:
            trend = "bullish"
        elif score < self.config["bearish_threshold"]:
            trend = "bearish"
        else:
            trend = "neutral"

        return TimeframeAnalysis(
            timeframe=timeframe,
            trend=trend,
            strength=min(100.0, max(0.0, abs(score - 50) * 2)),
            indicators=indicators,
            regime=self.regime_classifier.classify(indicators, closes),
        )

    @staticmethod
    def neutral(timeframe: str, price: float) -> TimeframeAnalysis:
        return TimeframeAnalysis(
            timeframe=timeframe,
            trend="neutral",
            strength=0.0,
            indicators=IndicatorSet.neutral(price),
            available=False,
        )

    async def analyze(self, asset_id: str, current_price: float) -> List[TimeframeAnalysis]:
        """
        Fetch and summarise every configured timeframe, in configuration order.

        Args:
            asset_id: Asset identifier understood by the provider
            current_price: Anchor price for neutral substitutes

        Returns:
            One TimeframeAnalysis per configured timeframe
        """
        results = []
        for timeframe, settings in self.config["timeframes"].items():
            try:
                bars = await self.provider.fetch_price_series(asset_id, timeframe, settings["lookback_days"])
                results.append(self.summarize(timeframe, bars))
            except Exception as e:
                logger.warning(f"[MultiTimeframe] {asset_id} {timeframe} unavailable, using neutral default: {e}")
                results.append(self.neutral(timeframe, current_price))
        return results
