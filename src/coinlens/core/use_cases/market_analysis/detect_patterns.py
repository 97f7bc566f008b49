# src/coinlens/core/use_cases/market_analysis/detect_patterns.py
from typing import Any, Dict, List, Optional, Sequence

from coinlens.common.config.analysis_config import get_indicator_config, get_pattern_config
from coinlens.common.logger import logger
from coinlens.common.utils.data_processing import bars_to_ohlcv
from coinlens.core.domain.entities.AnalysisEntity import ChartPattern
from coinlens.core.domain.entities.MarketDataEntity import PriceBar

# Import all pattern modules to ensure registration
from .detect_patterns_engine import candlestick_patterns, chart_patterns, divergence_patterns  # noqa: F401
from .detect_patterns_engine.pattern_registry import get_pattern_function, get_patterns_by_category, pattern_registry
from .detect_patterns_engine.pattern_utils import PatternDetectionContext
from .technical_indicators import rsi_series


class PatternDetector:
    """
    Runs the registered candlestick, chart and divergence detectors over a bar sequence.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, indicator_config: Optional[Dict[str, Any]] = None):
        self.config = get_pattern_config()
        if config:
            self.config.update(config)
        indicators = get_indicator_config()
        if indicator_config:
            indicators.update(indicator_config)
        self.rsi_period = indicators["rsi_period"]

    def _context(self, bars: Sequence[PriceBar]) -> PatternDetectionContext:
        closes = [bar.close for bar in bars]
        return PatternDetectionContext(self.config, rsi_series(closes, self.rsi_period))

    def _run(self, name: str, func, ohlcv: Dict[str, Any], context: PatternDetectionContext) -> Optional[ChartPattern]:
        try:
            return func(ohlcv, context)
        except (ValueError, IndexError, FloatingPointError) as e:
            logger.warning(f"[Patterns] Detector '{name}' failed: {e}")
            return None

    def detect(self, pattern_name: str, bars: Sequence[PriceBar]) -> Optional[ChartPattern]:
        func = get_pattern_function(pattern_name)
        if not func:
            raise ValueError(f"Unsupported pattern: {pattern_name}")
        if not bars:
            return None
        return self._run(pattern_name, func, bars_to_ohlcv(bars), self._context(bars))

    def detect_by_category(self, category: str, bars: Sequence[PriceBar]) -> List[ChartPattern]:
        if not bars:
            return []
        ohlcv = bars_to_ohlcv(bars)
        context = self._context(bars)
        results = []
        for name, info in get_patterns_by_category(category).items():
            pattern = self._run(name, info["function"], ohlcv, context)
            if pattern is not None:
                results.append(pattern)
        return results

    def detect_all(self, bars: Sequence[PriceBar]) -> List[ChartPattern]:
        """
        Run every registered detector.

        Returns:
            Patterns at or above ``min_confidence``, highest confidence first.
        """
        if not bars:
            return []

        ohlcv = bars_to_ohlcv(bars)
        context = self._context(bars)
        patterns = []
        for name in sorted(pattern_registry):
            pattern = self._run(name, pattern_registry[name]["function"], ohlcv, context)
            if pattern is not None and pattern.confidence >= self.config["min_confidence"]:
                patterns.append(pattern)

        patterns.sort(key=lambda p: (-p.confidence, p.pattern_type))
        if patterns:
            logger.info(f"[Patterns] Detected {len(patterns)} patterns: {[p.pattern_type for p in patterns]}")
        return patterns
