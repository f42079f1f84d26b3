"""Shared fixtures: in-memory stand-ins for the price, saved-portfolio and risk-free sources."""
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd
import pytest

from src.services.backtester.models.BacktestConfig import FetchWindow
from src.services.backtester.models.HistoricalPricePoint import HistoricalPricePoint, HistoricalPriceSeries
from src.services.backtester.models.PortfolioItem import PortfolioItem, SavedPortfolio


def build_series(
    ticker: str,
    closes: Sequence[float],
    start: date = date(2024, 1, 2),
    adj_closes: Optional[Sequence[float]] = None,
    dates: Optional[Sequence[date]] = None,
) -> HistoricalPriceSeries:
    """A daily series on consecutive business days (or the given dates)."""
    if dates is None:
        dates = [ts.date() for ts in pd.bdate_range(start=start, periods=len(closes))]
    adj_closes = adj_closes if adj_closes is not None else closes
    points = [
        HistoricalPricePoint(date=d, open=c, high=c, low=c, close=c, adj_close=a, volume=1000)
        for d, c, a in zip(dates, closes, adj_closes)
    ]
    return HistoricalPriceSeries(ticker=ticker, data=points)


def leaf(ticker: str, weight: float) -> PortfolioItem:
    return PortfolioItem(ticker=ticker, name=ticker, weight=weight)


def portfolio_ref(portfolio_id: Union[int, str], weight: float) -> PortfolioItem:
    return PortfolioItem(
        ticker=f"PORT_{portfolio_id}", name=f"Portfolio {portfolio_id}", type="PORTFOLIO",
        weight=weight, is_portfolio=True, portfolio_id=portfolio_id,
    )


class FakePriceSource():
    def __init__(self, series: Optional[Dict[str, HistoricalPriceSeries]] = None):
        self.series: Dict[str, HistoricalPriceSeries] = dict(series or {})
        self.calls: List[str] = []

    def add(self, series: HistoricalPriceSeries) -> None:
        self.series[series.ticker] = series

    def fetch(self, ticker: str, window: FetchWindow) -> HistoricalPriceSeries:
        self.calls.append(ticker)
        return self.series.get(ticker, HistoricalPriceSeries(ticker=ticker))


class FakePortfolioSource():
    def __init__(self, portfolios: Optional[Dict[str, List[PortfolioItem]]] = None):
        self.portfolios: Dict[str, List[PortfolioItem]] = dict(portfolios or {})
        self.calls: List[str] = []

    def fetch(self, portfolio_id: Union[int, str]) -> Optional[SavedPortfolio]:
        key = str(portfolio_id)
        self.calls.append(key)
        if key not in self.portfolios:
            return None
        return SavedPortfolio(id=key, name=f"Portfolio {key}", assets=self.portfolios[key])


class FakeRiskFreeSource():
    def __init__(self, rate: float = 0.04):
        self.rate: float = rate

    def fetch(self) -> float:
        return self.rate


@pytest.fixture
def make_series():
    return build_series


@pytest.fixture
def price_source() -> FakePriceSource:
    return FakePriceSource()


@pytest.fixture
def portfolio_source() -> FakePortfolioSource:
    return FakePortfolioSource()


@pytest.fixture
def risk_free_source() -> FakeRiskFreeSource:
    return FakeRiskFreeSource(0.04)
