"""Contracts for the external data sources the backtester depends on."""
from typing import Optional, Protocol, Union

from src.services.backtester.models.BacktestConfig import FetchWindow
from src.services.backtester.models.HistoricalPricePoint import HistoricalPriceSeries
from src.services.backtester.models.PortfolioItem import SavedPortfolio


class PriceHistorySource(Protocol):
    def fetch(self, ticker: str, window: FetchWindow) -> HistoricalPriceSeries:
        """Daily history for `ticker`. An empty series signals failure."""
        ...


class SavedPortfolioSource(Protocol):
    def fetch(self, portfolio_id: Union[int, str]) -> Optional[SavedPortfolio]:
        """The saved portfolio, or None if it does not exist."""
        ...


class RiskFreeRateSource(Protocol):
    def fetch(self) -> float:
        """Current annual risk-free rate as a fraction, with a fallback on failure."""
        ...
