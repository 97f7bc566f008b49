from pydantic import BaseModel, ConfigDict, model_validator
from datetime import datetime


class PriceBar(BaseModel):
    """
    One OHLC bar. ``has_real_volume`` is False when ``volume`` is a placeholder,
    e.g. for bars reconstructed from a price-only series.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    has_real_volume: bool = True

    @model_validator(mode="after")
    def _check_range(self) -> "PriceBar":
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) must not be below low ({self.low})")
        return self
