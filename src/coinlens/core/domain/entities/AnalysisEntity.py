from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Literal, Optional

from coinlens.core.domain.entities.AssetEntity import AssetRef


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class MACDValue(_Record):
    line: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


class BollingerBandsValue(_Record):
    upper: float
    middle: float
    lower: float


class StochasticValue(_Record):
    k: float = 50.0
    d: float = 50.0


class IchimokuValue(_Record):
    tenkan_sen: float
    kijun_sen: float
    senkou_span_a: float
    senkou_span_b: float
    chikou_span: float


class IndicatorSet(_Record):
    """Value of every indicator at the latest bar of a sequence."""
    rsi: float = 50.0
    macd: MACDValue = Field(default_factory=MACDValue)
    sma20: float
    sma50: float
    ema12: float
    ema26: float
    bollinger: BollingerBandsValue
    stochastic: StochasticValue = Field(default_factory=StochasticValue)
    atr: float = 0.0
    adx: float = 0.0
    williams_r: float = -50.0
    cci: float = 0.0
    parabolic_sar: float
    mfi: float = 50.0
    obv: float = 0.0
    vpt: float = 0.0
    ichimoku: IchimokuValue
    has_real_volume: bool = False

    @classmethod
    def neutral(cls, price: float) -> "IndicatorSet":
        """All-defaults indicator set anchored at ``price``."""
        return cls(
            sma20=price,
            sma50=price,
            ema12=price,
            ema26=price,
            bollinger=BollingerBandsValue(upper=price, middle=price, lower=price),
            parabolic_sar=price,
            ichimoku=IchimokuValue(
                tenkan_sen=price,
                kijun_sen=price,
                senkou_span_a=price,
                senkou_span_b=price,
                chikou_span=price,
            ),
        )


class SupportResistanceLevel(_Record):
    price: float
    type: Literal["support", "resistance"]
    strength: float = Field(ge=0)
    touches: int = Field(ge=0)
    index: int
    first_touch: Optional[datetime] = None
    last_touch: Optional[datetime] = None


class FibonacciLevel(_Record):
    level: float
    ratio: float
    type: Literal["support", "resistance", "retracement"]
    strength: float
    touches: int


class VolumeProfileLevel(_Record):
    price_level: float
    total_volume: float
    buy_volume: float
    sell_volume: float
    volume_percentage: float


class ChartPattern(_Record):
    pattern_type: str
    confidence: float = Field(ge=0, le=100)
    start_time: datetime
    end_time: datetime
    target_price: float
    key_levels: List[float] = Field(default_factory=list)
    description: str = ""


class MarketRegime(_Record):
    regime: Literal["TRENDING", "RANGING", "VOLATILE"] = "RANGING"
    direction: Literal["UP", "DOWN", "SIDEWAYS"] = "SIDEWAYS"
    strength: float = 0.0


class TimeframeAnalysis(_Record):
    timeframe: str
    trend: Literal["bullish", "bearish", "neutral"] = "neutral"
    strength: float = Field(default=0.0, ge=0, le=100)
    indicators: IndicatorSet
    regime: MarketRegime = Field(default_factory=MarketRegime)
    available: bool = True


class Analysis(_Record):
    """The immutable output record for one asset."""
    asset: AssetRef
    indicators: IndicatorSet
    multi_timeframe: List[TimeframeAnalysis]
    support_resistance: List[SupportResistanceLevel] = Field(default_factory=list)
    patterns: List[ChartPattern] = Field(default_factory=list)
    regime: MarketRegime = Field(default_factory=MarketRegime)
    fibonacci_levels: List[FibonacciLevel] = Field(default_factory=list)
    volume_profile: List[VolumeProfileLevel] = Field(default_factory=list)
    technical_score: float = Field(ge=0, le=100)
    fundamental_score: float = Field(ge=0, le=100)
    sentiment_score: float = Field(ge=0, le=100)
    overall_score: float = Field(ge=0, le=100)
    predicted_change: float
    horizon: str = "24h"
    recommendation: Literal["LONG", "NEUTRAL", "SHORT"]
    risk_level: Literal["LOW", "MEDIUM", "HIGH", "VERY_HIGH"]
    price_target: float
    confidence: float = Field(ge=0, le=100)
    signals: List[str] = Field(default_factory=list)
    bars_analyzed: int = 0
    is_fallback: bool = False
