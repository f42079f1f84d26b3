import logging
from datetime import date, timedelta
from typing import List, Optional

import pandas as pd
import yfinance as yf

from src.services.backtester.models.BacktestConfig import FetchWindow
from src.services.backtester.models.HistoricalPricePoint import HistoricalPricePoint, HistoricalPriceSeries

logger = logging.getLogger(__name__)


class HistoricalPriceFetcher():
    """Daily OHLC history from Yahoo Finance with both raw and adjusted closes."""

    HISTORY_COLUMNS: List[str] = ['Open', 'High', 'Low', 'Close', 'Adj Close', 'Volume']

    def _download(self, ticker: str, start: date, end: date) -> pd.DataFrame:
        # auto_adjust=False keeps the raw Close next to Adj Close
        return yf.Ticker(ticker).history(start=start, end=end, interval="1d", auto_adjust=False)

    @staticmethod
    def _value(row: pd.Series, column: str) -> Optional[float]:
        value = row.get(column)
        if value is None or pd.isna(value):
            return None
        return float(value)

    def to_series(self, ticker: str, history: pd.DataFrame) -> HistoricalPriceSeries:
        points: List[HistoricalPricePoint] = []
        for ts, row in history.sort_index().iterrows():
            close = self._value(row, 'Close')
            adj_close = self._value(row, 'Adj Close')
            points.append(HistoricalPricePoint(
                date=pd.Timestamp(ts).date(),
                open=self._value(row, 'Open'),
                high=self._value(row, 'High'),
                low=self._value(row, 'Low'),
                close=close,
                adj_close=adj_close if adj_close is not None else close,
                volume=self._value(row, 'Volume'),
            ))
        return HistoricalPriceSeries(ticker=ticker, data=points)

    def fetch(self, ticker: str, window: FetchWindow, today: Optional[date] = None) -> HistoricalPriceSeries:
        """
        Fetch daily history for `ticker` over `window`.

        Any download failure is logged and reported as an empty series; the caller
        decides whether that aborts the backtest.
        """
        ticker = ticker.upper()
        today = today or date.today()
        start = window.start_date(today)
        # Yahoo treats `end` as exclusive
        end = today + timedelta(days=1)

        try:
            history = self._download(ticker, start, end)
        except Exception as e:
            logger.error(f"Error fetching {ticker}: {e}")
            return HistoricalPriceSeries(ticker=ticker)

        if history is None or history.empty:
            logger.warning(f"No price history returned for {ticker}")
            return HistoricalPriceSeries(ticker=ticker)

        return self.to_series(ticker, history)
