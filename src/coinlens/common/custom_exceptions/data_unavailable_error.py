from typing import Optional

# Custom Exceptions
class CoinlensError(Exception):
    """Base class for errors raised by the analysis core."""

    def __init__(self, message: str = "Analysis failed", detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class DataUnavailableError(CoinlensError):
    def __init__(self, message: str = "Market data unavailable", detail: Optional[str] = None):
        super().__init__(message, detail)


class AnalysisError(CoinlensError):
    """Raised when an asset cannot be analysed, e.g. its fundamental snapshot is incomplete."""

    def __init__(self, message: str = "Asset analysis failed", detail: Optional[str] = None):
        super().__init__(message, detail)
