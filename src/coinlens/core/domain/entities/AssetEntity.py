from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class AssetRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str


class AssetSnapshot(BaseModel):
    """Current market snapshot of an asset, used for fundamental and sentiment scoring."""
    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    total_volume: Optional[float] = None
    price_change_percentage_24h: float = 0.0
    price_change_percentage_7d: Optional[float] = None
    price_change_percentage_30d: Optional[float] = None
    market_cap_change_percentage_24h: Optional[float] = None
    ath: Optional[float] = None
    ath_date: Optional[datetime] = None

    def to_ref(self) -> AssetRef:
        return AssetRef(id=self.id, symbol=self.symbol, name=self.name)
