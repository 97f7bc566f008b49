from .AnalysisEntity import (
    Analysis,
    BollingerBandsValue,
    ChartPattern,
    FibonacciLevel,
    IchimokuValue,
    IndicatorSet,
    MACDValue,
    MarketRegime,
    StochasticValue,
    SupportResistanceLevel,
    TimeframeAnalysis,
    VolumeProfileLevel,
)
from .AssetEntity import AssetRef, AssetSnapshot
from .MarketDataEntity import PriceBar
