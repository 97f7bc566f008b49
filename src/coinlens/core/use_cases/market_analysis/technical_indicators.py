# src/coinlens/core/use_cases/market_analysis/technical_indicators.py
"""
Classical technical indicators computed from OHLC price-bar sequences.

Every function is pure: identical input arrays give identical output. When the input
is shorter than an indicator's window, the function returns the documented neutral
default instead of raising:

    RSI 50, MACD {0,0,0}, Stochastic {50,50}, ATR mean of available true ranges (0 if none),
    ADX 0, Williams %R -50, CCI 0, MFI 50, OBV/VPT 0, Ichimoku flat cloud at the last close.

The series helpers (``sma``, ``ema``, ``rsi_series``) return an empty array instead.
"""

from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from coinlens.common.config.analysis_config import get_indicator_config
from coinlens.common.logger import logger
from coinlens.core.domain.entities.AnalysisEntity import (
    BollingerBandsValue,
    IchimokuValue,
    IndicatorSet,
    MACDValue,
    StochasticValue,
)
from coinlens.core.domain.entities.MarketDataEntity import PriceBar


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


# --- Moving averages ---

def sma(values: Sequence[float], period: int) -> np.ndarray:
    """Simple rolling mean. Empty if the input is shorter than ``period``."""
    arr = _as_array(values)
    if period <= 0 or len(arr) < period:
        return np.array([], dtype=float)
    return sliding_window_view(arr, period).mean(axis=1)


def ema(values: Sequence[float], period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the simple average of the first ``period`` values.

    Returns one value per input from index ``period - 1`` onwards; empty if the input
    is shorter than ``period``.
    """
    arr = _as_array(values)
    if period <= 0 or len(arr) < period:
        return np.array([], dtype=float)

    k = 2.0 / (period + 1)
    out = np.empty(len(arr) - period + 1)
    out[0] = arr[:period].mean()
    for i, value in enumerate(arr[period:], start=1):
        # close*k + prev*(1-k), written so a constant series stays exactly constant
        out[i] = out[i - 1] + k * (value - out[i - 1])
    return out


def latest_sma(values: Sequence[float], period: int) -> float:
    """Latest SMA value, or the mean of the available values when there are fewer than ``period``."""
    arr = _as_array(values)
    series = sma(arr, period)
    if len(series):
        return float(series[-1])
    return float(arr.mean()) if len(arr) else 0.0


def latest_ema(values: Sequence[float], period: int) -> float:
    """Latest EMA value, or the last value when there are fewer than ``period``."""
    arr = _as_array(values)
    series = ema(arr, period)
    if len(series):
        return float(series[-1])
    return float(arr[-1]) if len(arr) else 0.0


# --- Momentum oscillators ---

def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # No movement at all is neutral; a one-sided rise is maximal
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def rsi_series(closes: Sequence[float], period: int = 14) -> np.ndarray:
    """RSI with Wilder's smoothing, one value per close from index ``period`` onwards."""
    arr = _as_array(closes)
    if len(arr) < period + 1:
        return np.array([], dtype=float)

    deltas = np.diff(arr)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    values = [_rsi_value(avg_gain, avg_loss)]

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        values.append(_rsi_value(avg_gain, avg_loss))

    return np.array(values)


def rsi(closes: Sequence[float], period: int = 14) -> float:
    """Latest RSI, 50 when fewer than ``period + 1`` closes are available."""
    series = rsi_series(closes, period)
    return float(series[-1]) if len(series) else 50.0


def macd(closes: Sequence[float], fast: int = 12, slow: int = 26, signal: int = 9) -> MACDValue:
    """
    MACD line (EMA fast - EMA slow on their overlapping tail), its signal EMA and histogram.

    Returns {0, 0, 0} until there is enough data for the signal line.
    """
    fast_ema = ema(closes, fast)
    slow_ema = ema(closes, slow)
    if len(slow_ema) == 0 or len(fast_ema) < len(slow_ema):
        return MACDValue()

    macd_line = fast_ema[-len(slow_ema):] - slow_ema
    signal_line = ema(macd_line, signal)
    if len(signal_line) == 0:
        return MACDValue()

    line = float(macd_line[-1])
    signal_value = float(signal_line[-1])
    return MACDValue(line=line, signal=signal_value, histogram=line - signal_value)


def stochastic(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
               period: int = 14, signal: int = 3) -> StochasticValue:
    """%K over ``period`` bars and %D as the SMA of the last ``signal`` %K values. Flat ranges give 50."""
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(close_arr) < period:
        return StochasticValue()

    highest = sliding_window_view(high_arr, period).max(axis=1)
    lowest = sliding_window_view(low_arr, period).min(axis=1)
    ranges = highest - lowest
    tail_closes = close_arr[period - 1:]

    k_values = np.full(len(ranges), 50.0)
    moving = ranges > 0
    k_values[moving] = (tail_closes[moving] - lowest[moving]) / ranges[moving] * 100.0
    k_values = np.clip(k_values, 0.0, 100.0)

    k = float(k_values[-1])
    d = float(k_values[-signal:].mean())
    return StochasticValue(k=k, d=d)


def williams_r(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14) -> float:
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(close_arr) < period:
        return -50.0

    highest = float(high_arr[-period:].max())
    lowest = float(low_arr[-period:].min())
    if highest == lowest:
        return -50.0
    value = (highest - float(close_arr[-1])) / (highest - lowest) * -100.0
    return float(min(0.0, max(-100.0, value)))


def cci(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 20) -> float:
    """Commodity Channel Index on the typical price; 0 when the mean deviation is zero."""
    typical = (_as_array(highs) + _as_array(lows) + _as_array(closes)) / 3.0
    if len(typical) < period:
        return 0.0

    window = typical[-period:]
    mean = window.mean()
    mean_deviation = np.abs(window - mean).mean()
    if mean_deviation == 0:
        return 0.0
    return float((typical[-1] - mean) / (0.015 * mean_deviation))


# --- Volatility and trend strength ---

def true_range(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float]) -> np.ndarray:
    """True range for every bar after the first."""
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(close_arr) < 2:
        return np.array([], dtype=float)

    prev_close = close_arr[:-1]
    return np.maximum.reduce([
        high_arr[1:] - low_arr[1:],
        np.abs(high_arr[1:] - prev_close),
        np.abs(low_arr[1:] - prev_close),
    ])


def atr(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14) -> float:
    """Average True Range as a simple rolling mean of the true range."""
    tr = true_range(highs, lows, closes)
    if len(tr) == 0:
        return 0.0
    if len(tr) < period:
        return float(tr.mean())
    return float(pd.Series(tr).rolling(window=period).mean().iloc[-1])


def adx(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14) -> float:
    """
    Simplified ADX: directional movement summed over the last ``period`` bars, turned into
    +DI/-DI and reported as the resulting DX (no second smoothing pass).
    """
    high_arr, low_arr = _as_array(highs), _as_array(lows)
    if len(high_arr) < period + 1:
        return 0.0

    up_move = high_arr[1:] - high_arr[:-1]
    down_move = low_arr[:-1] - low_arr[1:]
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    tr_sum = float(true_range(highs, lows, closes)[-period:].sum())
    if tr_sum == 0:
        return 0.0

    plus_di = 100.0 * float(plus_dm[-period:].sum()) / tr_sum
    minus_di = 100.0 * float(minus_dm[-period:].sum()) / tr_sum
    di_sum = plus_di + minus_di
    if di_sum == 0:
        return 0.0
    return float(min(100.0, abs(plus_di - minus_di) / di_sum * 100.0))


def bollinger_bands(closes: Sequence[float], period: int = 20, num_std: float = 2.0) -> BollingerBandsValue:
    """
    Bollinger Bands around SMA(period) using the population standard deviation of the
    same window. With fewer than ``period`` closes the bands collapse onto the mean of
    the available closes.
    """
    arr = _as_array(closes)
    middles = sma(arr, period)
    if len(middles) == 0:
        middle = float(arr.mean()) if len(arr) else 0.0
        return BollingerBandsValue(upper=middle, middle=middle, lower=middle)

    middle = float(middles[-1])
    window = arr[-period:]
    std = float(np.sqrt(np.mean((window - middle) ** 2)))
    return BollingerBandsValue(upper=middle + num_std * std, middle=middle, lower=middle - num_std * std)


def parabolic_sar(highs: Sequence[float], lows: Sequence[float], step: float = 0.02, max_step: float = 0.2) -> float:
    """Iterative Parabolic SAR starting long from the first bar's low."""
    high_arr, low_arr = _as_array(highs), _as_array(lows)
    if len(high_arr) == 0:
        return 0.0

    uptrend = True
    sar = float(low_arr[0])
    extreme = float(high_arr[0])
    acceleration = step

    for high, low in zip(high_arr[1:], low_arr[1:]):
        sar = sar + acceleration * (extreme - sar)
        if uptrend:
            if low < sar:
                uptrend = False
                sar = extreme
                extreme = float(low)
                acceleration = step
            elif high > extreme:
                extreme = float(high)
                acceleration = min(acceleration + step, max_step)
        else:
            if high > sar:
                uptrend = True
                sar = extreme
                extreme = float(high)
                acceleration = step
            elif low < extreme:
                extreme = float(low)
                acceleration = min(acceleration + step, max_step)

    return float(sar)


# --- Volume based ---

def mfi(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float],
        volumes: Sequence[float], period: int = 14) -> float:
    """
    Money Flow Index. Returns 100 when there is positive but no negative flow,
    and 50 when there is no flow in either direction or too little data. The 50 for a
    series with no flow at all is intentional, so a flat series reads neutral as with RSI.
    """
    typical = (_as_array(highs) + _as_array(lows) + _as_array(closes)) / 3.0
    if len(typical) < period + 1:
        return 50.0

    flow = typical * _as_array(volumes)
    direction = np.diff(typical)[-period:]
    flows = flow[1:][-period:]
    positive = float(flows[direction > 0].sum())
    negative = float(flows[direction < 0].sum())

    if negative == 0:
        return 50.0 if positive == 0 else 100.0
    money_ratio = positive / negative
    return float(100.0 - 100.0 / (1.0 + money_ratio))


def obv(closes: Sequence[float], volumes: Sequence[float]) -> float:
    """On-Balance Volume. Only meaningful as a direction signal, not across assets."""
    arr = _as_array(closes)
    if len(arr) < 2:
        return 0.0
    return float((np.sign(np.diff(arr)) * _as_array(volumes)[1:]).sum())


def vpt(closes: Sequence[float], volumes: Sequence[float]) -> float:
    """Volume-Price Trend."""
    arr = _as_array(closes)
    if len(arr) < 2:
        return 0.0
    prev = arr[:-1]
    safe_prev = np.where(prev == 0, 1.0, prev)
    change = np.where(prev == 0, 0.0, np.diff(arr) / safe_prev)
    return float((change * _as_array(volumes)[1:]).sum())


# --- Ichimoku ---

def _midpoint(highs: np.ndarray, lows: np.ndarray, period: int) -> float:
    return float((highs[-period:].max() + lows[-period:].min()) / 2.0)


def ichimoku(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float]) -> IchimokuValue:
    """Ichimoku lines at the latest bar. Needs 52 bars, otherwise a flat cloud at the last close."""
    high_arr, low_arr, close_arr = _as_array(highs), _as_array(lows), _as_array(closes)
    current = float(close_arr[-1]) if len(close_arr) else 0.0
    if len(close_arr) < 52:
        return IchimokuValue(
            tenkan_sen=current,
            kijun_sen=current,
            senkou_span_a=current,
            senkou_span_b=current,
            chikou_span=current,
        )

    tenkan = _midpoint(high_arr, low_arr, 9)
    kijun = _midpoint(high_arr, low_arr, 26)
    return IchimokuValue(
        tenkan_sen=tenkan,
        kijun_sen=kijun,
        senkou_span_a=(tenkan + kijun) / 2.0,
        senkou_span_b=_midpoint(high_arr, low_arr, 52),
        chikou_span=current,
    )


# --- Indicator set ---

def volume_proxy(bars: Sequence[PriceBar], placeholder: float = 1.0) -> np.ndarray:
    """Real volumes when every bar carries them, otherwise a constant placeholder per bar."""
    if bars and all(bar.has_real_volume for bar in bars):
        return np.array([bar.volume for bar in bars], dtype=float)
    return np.full(len(bars), placeholder, dtype=float)


def calculate_indicator_set(bars: Sequence[PriceBar], config: Optional[Dict[str, Any]] = None) -> IndicatorSet:
    """
    Compute every indicator at the latest bar.

    Args:
        bars: Price bars ordered ascending by timestamp.
        config: Optional indicator settings (see the ``indicators`` config section).

    Returns:
        IndicatorSet
    """
    cfg = get_indicator_config()
    if config:
        cfg.update(config)

    if not bars:
        return IndicatorSet.neutral(0.0)

    highs = np.array([bar.high for bar in bars], dtype=float)
    lows = np.array([bar.low for bar in bars], dtype=float)
    closes = np.array([bar.close for bar in bars], dtype=float)
    has_real_volume = all(bar.has_real_volume for bar in bars)
    volumes = volume_proxy(bars, cfg["volume_proxy"])

    if not has_real_volume:
        logger.debug("[Indicators] Using placeholder volume for MFI/OBV/VPT")

    return IndicatorSet(
        rsi=rsi(closes, cfg["rsi_period"]),
        macd=macd(closes, cfg["macd_fast"], cfg["macd_slow"], cfg["macd_signal"]),
        sma20=latest_sma(closes, 20),
        sma50=latest_sma(closes, 50),
        ema12=latest_ema(closes, 12),
        ema26=latest_ema(closes, 26),
        bollinger=bollinger_bands(closes, cfg["bollinger_period"], cfg["bollinger_std"]),
        stochastic=stochastic(highs, lows, closes, cfg["stochastic_period"], cfg["stochastic_signal"]),
        atr=atr(highs, lows, closes, cfg["atr_period"]),
        adx=adx(highs, lows, closes, cfg["adx_period"]),
        williams_r=williams_r(highs, lows, closes, cfg["williams_period"]),
        cci=cci(highs, lows, closes, cfg["cci_period"]),
        parabolic_sar=parabolic_sar(highs, lows, cfg["sar_step"], cfg["sar_max"]),
        mfi=mfi(highs, lows, closes, volumes, cfg["mfi_period"]),
        obv=obv(closes, volumes),
        vpt=vpt(closes, volumes),
        ichimoku=ichimoku(highs, lows, closes),
        has_real_volume=has_real_volume,
    )
