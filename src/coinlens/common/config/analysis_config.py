"""
Configuration for the Coinlens Analysis System

This module provides configuration settings for indicator windows, support/resistance
detection, pattern recognition, regime classification, multi-timeframe aggregation,
scoring and the recommendation ranker.
"""

import copy
import os
from typing import Dict, Any

from dotenv import load_dotenv

load_dotenv()

# Default configuration for the analysis core
DEFAULT_CONFIG = {
    # Indicator Library Settings
    "indicators": {
        "rsi_period": 14,
        "macd_fast": 12,
        "macd_slow": 26,
        "macd_signal": 9,
        "bollinger_period": 20,
        "bollinger_std": 2.0,
        "stochastic_period": 14,
        "stochastic_signal": 3,
        "atr_period": 14,
        "adx_period": 14,
        "williams_period": 14,
        "cci_period": 20,
        "mfi_period": 14,
        "sar_step": 0.02,
        "sar_max": 0.2,
        "volume_proxy": 1.0,  # placeholder volume when real volume is absent
    },

    # Support/Resistance Settings
    "support_resistance": {
        "lookback": 10,
        "tolerance": 0.02,  # ±2% proximity band
        "rejection_weight": 2.0,
        "touch_weight": 1.0,
        "max_levels": 10,
        "volume_profile_bins": 20,
        "fibonacci_ratios": [0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0],
    },

    # Pattern Recognition Settings
    "patterns": {
        "peak_window": 3,
        "head_shoulders_window": 50,
        "shoulder_tolerance": 0.05,
        "double_pattern_window": 40,
        "double_tolerance": 0.03,
        "triangle_window": 30,
        "flag_window": 20,
        "flag_min_move": 0.10,
        "flag_max_volatility": 0.05,
        "divergence_window": 10,
        "doji_body_ratio": 0.10,
        "min_confidence": 30,
    },

    # Market Regime Settings
    "regime": {
        "volatility_threshold": 0.05,  # ATR / price
        "sma_divergence_threshold": 0.02,
        "adx_trend_threshold": 25,
    },

    # Multi-Timeframe Settings
    "multi_timeframe": {
        "timeframes": {
            "1h": {"lookback_days": 7},
            "4h": {"lookback_days": 30},
            "1d": {"lookback_days": 90},
            "1w": {"lookback_days": 365},
        },
        "bullish_threshold": 60,
        "bearish_threshold": 40,
    },

    # Scoring & Prediction Settings
    "scoring": {
        "primary_timeframe": "1d",
        "primary_lookback_days": 90,
        "weights": {
            "technical": 0.40,
            "fundamental": 0.40,
            "sentiment": 0.20,
        },
        "horizon": "24h",
        "max_predicted_change": 15.0,
        "technical_move_scale": 10.0,
        "recommendation_threshold": 2.0,
        "min_bars": 50,
        "near_level_tolerance": 0.02,
    },

    # Recommendation Ranker Settings
    "ranker": {
        "top_n": 10,
        "batch_size": 5,
        "batch_delay_seconds": 1.0,
        "enough_results": 20,
        "allow_fallback": False,
        "min_results": 10,
    },

    # Logging Settings
    "logging": {
        "log_dir": "logs",
        "level": "INFO",
    },
}


def get_config(override_config: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Get configuration for the analysis core with environment overrides.

    Args:
        override_config: Optional configuration overrides

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    # Apply environment variable overrides
    env_overrides = _get_env_overrides()
    _deep_merge(config, env_overrides)

    # Apply user-provided overrides
    if override_config:
        _deep_merge(config, copy.deepcopy(override_config))

    return config


def _get_env_overrides() -> Dict[str, Any]:
    """
    Get configuration overrides from environment variables.

    Returns:
        Dictionary of environment-based overrides
    """
    overrides = {}

    # Support/resistance overrides
    if os.getenv("COINLENS_SR_LOOKBACK"):
        overrides.setdefault("support_resistance", {})["lookback"] = int(os.getenv("COINLENS_SR_LOOKBACK"))

    if os.getenv("COINLENS_SR_TOLERANCE"):
        overrides.setdefault("support_resistance", {})["tolerance"] = float(os.getenv("COINLENS_SR_TOLERANCE"))

    # Pattern overrides
    if os.getenv("COINLENS_PATTERN_MIN_CONFIDENCE"):
        overrides.setdefault("patterns", {})["min_confidence"] = float(os.getenv("COINLENS_PATTERN_MIN_CONFIDENCE"))

    # Scoring overrides
    if os.getenv("COINLENS_MIN_BARS"):
        overrides.setdefault("scoring", {})["min_bars"] = int(os.getenv("COINLENS_MIN_BARS"))

    # Ranker overrides
    if os.getenv("COINLENS_TOP_N"):
        overrides.setdefault("ranker", {})["top_n"] = int(os.getenv("COINLENS_TOP_N"))

    if os.getenv("COINLENS_BATCH_SIZE"):
        overrides.setdefault("ranker", {})["batch_size"] = int(os.getenv("COINLENS_BATCH_SIZE"))

    if os.getenv("COINLENS_BATCH_DELAY_SECONDS"):
        overrides.setdefault("ranker", {})["batch_delay_seconds"] = float(os.getenv("COINLENS_BATCH_DELAY_SECONDS"))

    if os.getenv("COINLENS_ALLOW_FALLBACK"):
        overrides.setdefault("ranker", {})["allow_fallback"] = os.getenv("COINLENS_ALLOW_FALLBACK").lower() == "true"

    # Logging overrides
    if os.getenv("COINLENS_LOG_DIR"):
        overrides.setdefault("logging", {})["log_dir"] = os.getenv("COINLENS_LOG_DIR")

    if os.getenv("COINLENS_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = os.getenv("COINLENS_LOG_LEVEL").upper()

    return overrides


def _deep_merge(base_dict: Dict[str, Any], override_dict: Dict[str, Any]) -> None:
    """
    Deep merge override dictionary into base dictionary.

    Args:
        base_dict: Base dictionary to merge into
        override_dict: Dictionary with overrides
    """
    for key, value in override_dict.items():
        if key in base_dict and isinstance(base_dict[key], dict) and isinstance(value, dict):
            _deep_merge(base_dict[key], value)
        else:
            base_dict[key] = value


def get_indicator_config() -> Dict[str, Any]:
    """Get indicator library configuration."""
    return get_config()["indicators"]

def get_support_resistance_config() -> Dict[str, Any]:
    """Get support/resistance configuration."""
    return get_config()["support_resistance"]

def get_pattern_config() -> Dict[str, Any]:
    """Get pattern recognition configuration."""
    return get_config()["patterns"]

def get_regime_config() -> Dict[str, Any]:
    """Get market regime configuration."""
    return get_config()["regime"]

def get_multi_timeframe_config() -> Dict[str, Any]:
    """Get multi-timeframe configuration."""
    return get_config()["multi_timeframe"]

def get_scoring_config() -> Dict[str, Any]:
    """Get scoring configuration."""
    return get_config()["scoring"]

def get_ranker_config() -> Dict[str, Any]:
    """Get recommendation ranker configuration."""
    return get_config()["ranker"]


# Preset configurations for different use cases.
# Presets tune detection and scheduling only; the recommendation policy stays fixed.
PRESET_CONFIGS = {
    "conservative": {
        "patterns": {
            "min_confidence": 60,
            "double_tolerance": 0.02,
        },
        "ranker": {
            "batch_size": 3,
            "batch_delay_seconds": 2.0,
        },
    },

    "aggressive": {
        "patterns": {
            "min_confidence": 30,
            "double_tolerance": 0.04,
        },
        "ranker": {
            "batch_size": 10,
            "batch_delay_seconds": 0.5,
            "allow_fallback": True,
        },
    },
}


def get_preset_config(preset_name: str, override_config: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Get a preset configuration with optional overrides.

    Args:
        preset_name: Name of the preset ("conservative", "aggressive")
        override_config: Optional additional overrides

    Returns:
        Configuration dictionary
    """
    if preset_name not in PRESET_CONFIGS:
        raise ValueError(f"Unknown preset: {preset_name}. Available presets: {list(PRESET_CONFIGS.keys())}")

    config = get_config()
    _deep_merge(config, copy.deepcopy(PRESET_CONFIGS[preset_name]))

    if override_config:
        _deep_merge(config, copy.deepcopy(override_config))

    return config
