import logging

import pandas as pd
import yfinance as yf

from src.config.settings import settings

logger = logging.getLogger(__name__)


class RiskFreeRateFetcher():
    """
    Annual risk-free rate proxied by the 10-year treasury yield.

    Yahoo quotes ^TNX in percent, so 4.25 becomes 0.0425. Falls back to a fixed rate
    whenever the quote is unavailable.
    """

    def __init__(
        self,
        ticker: str = settings.risk_free_ticker,
        fallback_rate: float = settings.fallback_risk_free_rate,
    ):
        self.ticker: str = ticker
        self.fallback_rate: float = fallback_rate

    def _latest_close(self) -> float:
        history: pd.DataFrame = yf.Ticker(self.ticker).history(period="5d")
        closes = history['Close'].dropna()
        if closes.empty:
            raise ValueError(f"No recent quote for {self.ticker}")
        return float(closes.iloc[-1])

    def fetch(self) -> float:
        try:
            rate_percent = self._latest_close()
        except Exception as e:
            logger.warning(f"Error fetching risk-free rate, using {self.fallback_rate:.2%}: {e}")
            return self.fallback_rate

        if not rate_percent or pd.isna(rate_percent):
            return self.fallback_rate
        return rate_percent / 100.0
