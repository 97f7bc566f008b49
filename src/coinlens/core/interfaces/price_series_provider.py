from abc import ABC, abstractmethod
from typing import List

from coinlens.core.domain.entities.MarketDataEntity import PriceBar


class PriceSeriesProvider(ABC):
    """
    Source of historical price bars for an asset.

    Implementations return bars ordered ascending by timestamp and raise
    ``DataUnavailableError`` when no data can be produced. Bars may be exact OHLC
    or reconstructed from a price-only series (``has_real_volume=False``).
    """

    @abstractmethod
    async def fetch_price_series(self, asset_id: str, timeframe: str, lookback_days: int) -> List[PriceBar]:
        pass
