from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from src.services.backtester.models.BacktestConfig import FetchWindow
from src.services.backtester.models.HistoricalPricePoint import HistoricalPriceSeries
from src.services.market_data.HistoricalPriceFetcher import HistoricalPriceFetcher
from src.services.market_data.RiskFreeRateFetcher import RiskFreeRateFetcher

router = APIRouter()


def get_price_fetcher() -> HistoricalPriceFetcher:
    return HistoricalPriceFetcher()


def get_risk_free_fetcher() -> RiskFreeRateFetcher:
    return RiskFreeRateFetcher()


@router.get("/historical/{ticker}", response_model=HistoricalPriceSeries)
def get_historical_data(
    ticker: str,
    months: int = Query(12, ge=1, description="Number of trailing months of history"),
    ytd: bool = Query(False, description="Year-to-date history instead of trailing months"),
    fetcher: HistoricalPriceFetcher = Depends(get_price_fetcher),
) -> HistoricalPriceSeries:
    """
    Daily price history (raw and adjusted close) for a single ticker.
    """
    series = fetcher.fetch(ticker, FetchWindow(months=months, ytd=ytd))
    if series.is_empty:
        raise HTTPException(status_code=404, detail=f"No price history for {ticker.upper()}")
    return series


@router.get("/risk-free-rate", response_model=Dict[str, float])
def get_risk_free_rate(fetcher: RiskFreeRateFetcher = Depends(get_risk_free_fetcher)):
    return {"rate": fetcher.fetch()}
