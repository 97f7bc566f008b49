"""
Analysis Pipeline Module for Asset Analysis

This module orchestrates the complete per-asset analysis: indicators, support/resistance,
patterns, regime, multi-timeframe summary and scoring, producing one immutable Analysis.
"""

from typing import Any, Dict, List, Optional, Sequence

from coinlens.common.config.analysis_config import get_config
from coinlens.common.logger import logger
from coinlens.common.utils.data_processing import prepare_price_bars
from coinlens.core.domain.entities.AnalysisEntity import Analysis, IndicatorSet, TimeframeAnalysis
from coinlens.core.domain.entities.AssetEntity import AssetSnapshot
from coinlens.core.domain.entities.MarketDataEntity import PriceBar
from coinlens.core.engines.support_resistance_engine import SupportResistanceEngine
from coinlens.core.interfaces.price_series_provider import PriceSeriesProvider

from .detect_patterns import PatternDetector
from .market_regime import MarketRegimeClassifier
from .multi_timeframe import MultiTimeframeAnalyzer
from .scorer import AnalysisScorer
from .technical_indicators import calculate_indicator_set

FALLBACK_SIGNALS = ["Momentum Fallback Analysis"]
FALLBACK_CONFIDENCE_CEILING = 40.0


class AnalysisPipeline:
    """
    Main pipeline for single-asset analysis.

    Implements the complete workflow:
    1. Fetch the primary price series
    2. Indicator calculation
    3. Support/resistance, Fibonacci and volume profile levels
    4. Pattern recognition and regime classification
    5. Multi-timeframe summary
    6. Scoring, prediction, recommendation, risk, target and confidence

    The numeric path (``analyze_series``) is synchronous and deterministic; only the
    provider calls are awaited.
    """

    def __init__(self, provider: PriceSeriesProvider, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the analysis pipeline.

        Args:
            provider: Source of price bars
            config: Nested overrides applied on top of the default configuration
        """
        self.provider = provider
        self.config = get_config(config)

        # Initialize all modules
        self.sr_engine = SupportResistanceEngine(self.config["support_resistance"])
        self.pattern_detector = PatternDetector(self.config["patterns"], indicator_config=self.config["indicators"])
        self.regime_classifier = MarketRegimeClassifier(self.config["regime"])
        self.scorer = AnalysisScorer(self.config["scoring"])
        self.multi_timeframe = MultiTimeframeAnalyzer(
            provider,
            scorer=self.scorer,
            regime_classifier=self.regime_classifier,
            config=self.config["multi_timeframe"],
            indicator_config=self.config["indicators"],
        )

        self.primary_timeframe = self.config["scoring"]["primary_timeframe"]
        self.primary_lookback_days = self.config["scoring"]["primary_lookback_days"]

    async def analyze_asset(self, snapshot: AssetSnapshot) -> Analysis:
        """
        Fetch data for one asset and run the full analysis.

        Raises:
            AnalysisError: If the snapshot lacks fundamental data.
            DataUnavailableError: If the primary price series cannot be fetched.
        """
        self.scorer.validate_snapshot(snapshot)

        logger.info(f"[Pipeline] Analyzing {snapshot.symbol.upper()} ({snapshot.id})")
        bars = await self.provider.fetch_price_series(snapshot.id, self.primary_timeframe, self.primary_lookback_days)
        timeframes = await self.multi_timeframe.analyze(snapshot.id, snapshot.current_price)
        return self.analyze_series(snapshot, bars, timeframes)

    def analyze_series(self, snapshot: AssetSnapshot, bars: Sequence[PriceBar],
                       timeframes: Sequence[TimeframeAnalysis]) -> Analysis:
        """
        Build the Analysis from already-fetched data.

        Args:
            snapshot: Current asset snapshot
            bars: Primary price series
            timeframes: Multi-timeframe summaries

        Returns:
            Analysis
        """
        self.scorer.validate_snapshot(snapshot)
        bars = prepare_price_bars(bars)
        price = snapshot.current_price
        closes = [bar.close for bar in bars]

        indicators = calculate_indicator_set(bars, self.config["indicators"])
        levels = self.sr_engine.detect(bars)
        patterns = self.pattern_detector.detect_all(bars)
        regime = self.regime_classifier.classify(indicators, closes)

        technical = self.scorer.calculate_technical_score(indicators, price)
        fundamental = self.scorer.calculate_fundamental_score(snapshot)
        sentiment = self.scorer.calculate_sentiment_score(snapshot)
        overall = self.scorer.calculate_overall_score(technical, fundamental, sentiment)

        predicted_change = self.scorer.predict_change(indicators, snapshot, timeframes, levels)
        signals = self.scorer.collect_signals(indicators, price, timeframes, levels, patterns, regime)

        analysis = Analysis(
            asset=snapshot.to_ref(),
            indicators=indicators,
            multi_timeframe=list(timeframes),
            support_resistance=levels,
            patterns=patterns,
            regime=regime,
            fibonacci_levels=self.sr_engine.calculate_fibonacci_levels(bars),
            volume_profile=self.sr_engine.calculate_volume_profile(bars),
            technical_score=technical,
            fundamental_score=fundamental,
            sentiment_score=sentiment,
            overall_score=overall,
            predicted_change=predicted_change,
            horizon=self.config["scoring"]["horizon"],
            recommendation=self.scorer.get_recommendation(predicted_change),
            risk_level=self.scorer.get_risk_level(snapshot, overall, indicators),
            price_target=self.scorer.calculate_price_target(snapshot, overall, indicators, levels),
            confidence=self.scorer.calculate_confidence(overall, len(signals), len(bars)),
            signals=signals,
            bars_analyzed=len(bars),
        )

        logger.info(
            f"[Pipeline] {snapshot.symbol.upper()}: overall={overall} predicted={predicted_change}% "
            f"-> {analysis.recommendation} ({analysis.risk_level})"
        )
        return analysis

    def build_momentum_fallback(self, snapshot: AssetSnapshot) -> Analysis:
        """
        Momentum-only analysis for assets without usable price history.

        The result is flagged ``is_fallback``, carries only the fallback signal and never
        exceeds the fallback confidence ceiling.
        """
        self.scorer.validate_snapshot(snapshot)
        price = snapshot.current_price
        momentum = snapshot.price_change_percentage_24h
        max_change = self.scorer.max_change

        indicators = IndicatorSet.neutral(price)
        timeframes: List[TimeframeAnalysis] = [
            MultiTimeframeAnalyzer.neutral(timeframe, price)
            for timeframe in self.config["multi_timeframe"]["timeframes"]
        ]

        technical = max(20.0, min(80.0, 50 + momentum * 2))
        fundamental = self.scorer.calculate_fundamental_score(snapshot)
        sentiment = self.scorer.calculate_sentiment_score(snapshot)
        overall = self.scorer.calculate_overall_score(technical, fundamental, sentiment)
        predicted_change = round(max(-max_change, min(max_change, momentum * 0.5)), 4)

        logger.warning(f"[Pipeline] Using momentum fallback for {snapshot.symbol.upper()}")
        return Analysis(
            asset=snapshot.to_ref(),
            indicators=indicators,
            multi_timeframe=timeframes,
            technical_score=technical,
            fundamental_score=fundamental,
            sentiment_score=sentiment,
            overall_score=overall,
            predicted_change=predicted_change,
            horizon=self.config["scoring"]["horizon"],
            recommendation=self.scorer.get_recommendation(predicted_change),
            risk_level=self.scorer.get_risk_level(snapshot, overall, indicators),
            price_target=round(price * (1 + predicted_change / 100), 8),
            confidence=round(max(20.0, min(FALLBACK_CONFIDENCE_CEILING, overall * 0.5)), 2),
            signals=list(FALLBACK_SIGNALS),
            bars_analyzed=0,
            is_fallback=True,
        )
