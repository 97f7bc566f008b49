from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from coinlens.common.custom_exceptions.data_unavailable_error import DataUnavailableError
from coinlens.common.logger import logger
from coinlens.core.domain.entities.MarketDataEntity import PriceBar


def reconstruct_ohlc(prices: Sequence[Tuple[float, float]], group_size: Optional[int] = None) -> List[PriceBar]:
    """
    Reshape a flat ``[timestamp_ms, price]`` series into synthetic OHLC bars.

    Consecutive points are grouped into buckets of ``group_size``; each bar takes the
    bucket's first/max/min/last price as open/high/low/close and the first timestamp.
    A series of length n therefore yields ceil(n / group_size) bars. Volume is unknown,
    so bars carry ``volume=0`` and ``has_real_volume=False``.

    Args:
        prices: Sequence of (timestamp in milliseconds, price) pairs, ascending.
        group_size: Points per bar. Defaults to max(1, n // 100).

    Returns:
        List of PriceBar
    """
    if not prices:
        return []

    if group_size is None:
        group_size = max(1, len(prices) // 100)
    if group_size < 1:
        raise ValueError(f"group_size must be positive, got {group_size}")

    df = pd.DataFrame(list(prices), columns=["timestamp", "price"])
    grouped = df.groupby(np.arange(len(df)) // group_size)
    ohlc = grouped.agg(
        timestamp=("timestamp", "first"),
        open=("price", "first"),
        high=("price", "max"),
        low=("price", "min"),
        close=("price", "last"),
    )

    bars = [
        PriceBar(
            timestamp=datetime.fromtimestamp(row.timestamp / 1000, tz=timezone.utc),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=0.0,
            has_real_volume=False,
        )
        for row in ohlc.itertuples(index=False)
    ]
    return bars


def prepare_price_bars(bars: Sequence[PriceBar]) -> List[PriceBar]:
    """
    Order bars ascending by timestamp and drop duplicate timestamps (the later bar wins).

    Raises:
        DataUnavailableError: If no bars were supplied.
    """
    if not bars:
        raise DataUnavailableError("No price bars available", "Price series is empty")

    by_timestamp: Dict[datetime, PriceBar] = {}
    for bar in bars:
        by_timestamp[bar.timestamp] = bar

    if len(by_timestamp) != len(bars):
        logger.info(f"[Data] Dropped {len(bars) - len(by_timestamp)} duplicate bars")

    return [by_timestamp[ts] for ts in sorted(by_timestamp)]


def bars_to_dataframe(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """Convert price bars to a standardized OHLCV DataFrame."""
    df = pd.DataFrame(
        [
            {
                "timestamp": bar.timestamp,
                "open": bar.open,
                "high": bar.high,
                "low": bar.low,
                "close": bar.close,
                "volume": bar.volume,
            }
            for bar in bars
        ],
        columns=["timestamp", "open", "high", "low", "close", "volume"],
    )
    return df


def bars_to_ohlcv(bars: Sequence[PriceBar]) -> Dict[str, list]:
    """Column-oriented view of price bars, as consumed by the pattern detectors."""
    return {
        "timestamp": [bar.timestamp for bar in bars],
        "open": [bar.open for bar in bars],
        "high": [bar.high for bar in bars],
        "low": [bar.low for bar in bars],
        "close": [bar.close for bar in bars],
        "volume": [bar.volume for bar in bars],
        "has_real_volume": bool(bars) and all(bar.has_real_volume for bar in bars),
    }
