# src/coinlens/core/use_cases/market_analysis/detect_patterns_engine/pattern_registry.py
"""
Central pattern registry and decorator for registering pattern detection functions.

Detectors are plain functions ``(ohlcv, context) -> Optional[ChartPattern]`` grouped by
category ("candlestick", "chart", "divergence"). ``types`` lists every pattern_type a
detector can emit.
"""

from typing import Any, Callable, Dict, List, Optional

pattern_registry: Dict[str, Dict[str, Any]] = {}


def register_pattern(name: str, category: str, types: Optional[List[str]] = None):
    def decorator(func: Callable):
        if name in pattern_registry:
            raise ValueError(f"Pattern '{name}' is already registered")
        pattern_registry[name] = {
            "function": func,
            "category": category,
            "types": types if types is not None else [name.upper()],
        }
        return func
    return decorator


def get_patterns_by_category(category: str) -> Dict[str, Dict[str, Any]]:
    return {name: info for name, info in pattern_registry.items() if info["category"] == category}


def get_pattern_function(name: str) -> Optional[Callable]:
    return pattern_registry.get(name, {}).get("function")


def get_patterns_by_type(pattern_type: str) -> Dict[str, Dict[str, Any]]:
    return {name: info for name, info in pattern_registry.items() if pattern_type in (info.get("types") or [])}


def get_categories() -> List[str]:
    return sorted({info["category"] for info in pattern_registry.values()})
