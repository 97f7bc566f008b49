from .data_unavailable_error import AnalysisError, CoinlensError, DataUnavailableError

__all__ = ["AnalysisError", "CoinlensError", "DataUnavailableError"]
