import logging
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException

from src.services.backtester.Backtester import Backtester
from src.services.backtester.errors import BacktestError
from src.services.backtester.models.BacktestParams import BacktestParams
from src.services.backtester.models.BacktestResult import BacktestResult
from src.services.market_data.HistoricalPriceFetcher import HistoricalPriceFetcher
from src.services.market_data.RiskFreeRateFetcher import RiskFreeRateFetcher
from src.services.portfolio_store.SavedPortfolioClient import SavedPortfolioClient

logger = logging.getLogger(__name__)
router = APIRouter()


def get_backtester() -> Iterator[Backtester]:
    portfolio_client = SavedPortfolioClient()
    try:
        yield Backtester(
            price_source=HistoricalPriceFetcher(),
            portfolio_source=portfolio_client,
            risk_free_source=RiskFreeRateFetcher(),
        )
    finally:
        portfolio_client.close()


@router.post("/backtest", response_model=BacktestResult)
async def run_backtest(
    params: BacktestParams,
    backtester: Backtester = Depends(get_backtester),
) -> BacktestResult:
    """
    Backtest a weighted portfolio against a benchmark ticker or saved portfolio.

    :param params: Backtest input parameters
    :type params: BacktestParams
    :return: Value curves, metrics and correlation matrix
    :rtype: BacktestResult
    """
    try:
        return await backtester.run(params)
    except BacktestError as e:
        raise HTTPException(status_code=400, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Error running backtest: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
