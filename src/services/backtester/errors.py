from typing import Any, Dict, List, Sequence


class BacktestError(Exception):
    """Base class for failures reported back to the caller as data."""

    def __init__(self, message: str, failed_tickers: Sequence[str] = ()):
        super().__init__(message)
        self.message: str = message
        self.failed_tickers: List[str] = list(failed_tickers)

    def to_detail(self) -> Dict[str, Any]:
        return {"error": self.message, "failed_tickers": self.failed_tickers}


class DataFetchError(BacktestError):
    def __init__(self, failed_tickers: Sequence[str]):
        super().__init__(f"Failed to fetch data for: {', '.join(failed_tickers)}", failed_tickers)


class MissingPriceDataError(BacktestError):
    def __init__(self, missing_tickers: Sequence[str]):
        super().__init__(f"No aligned price data for: {', '.join(missing_tickers)}", missing_tickers)


class NoOverlappingDatesError(BacktestError):
    def __init__(self):
        super().__init__("No overlapping trading days found between assets and benchmark")


class BenchmarkNotFoundError(BacktestError):
    def __init__(self, identifier: str):
        super().__init__(f"Benchmark portfolio {identifier} could not be resolved", [identifier])


class EmptyPortfolioError(BacktestError):
    def __init__(self):
        super().__init__("Portfolio has no assets to simulate")
