# src/coinlens/core/use_cases/market_analysis/detect_patterns_engine/__init__.py
"""
Pattern detection engine initialization.
This module imports all pattern detection modules to ensure they are registered.
"""

# Import all pattern modules to ensure registration
from . import candlestick_patterns
from . import chart_patterns
from . import divergence_patterns

from .pattern_registry import pattern_registry

__all__ = ["pattern_registry"]
