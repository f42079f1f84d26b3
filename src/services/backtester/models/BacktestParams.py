from typing import List

from pydantic import BaseModel, Field

from src.config.settings import settings
from src.services.backtester.models.PortfolioItem import PortfolioItem
from src.services.backtester.models.BacktestConfig import (
    DCAConfig,
    FetchWindow,
    RebalanceConfig,
    ReturnType,
)


class BacktestParams(BaseModel):
    """Request body for the backtest endpoint."""

    portfolio: List[PortfolioItem] = Field(..., description="Weighted assets, possibly referencing saved portfolios")
    benchmark: str = Field(settings.default_benchmark, description="Benchmark ticker or PORT_<id> for a saved portfolio")
    window: FetchWindow = Field(default_factory=FetchWindow, description="History window (trailing months or YTD)")
    dca: DCAConfig = Field(default_factory=DCAConfig, description="Recurring contribution policy")
    rebalance: RebalanceConfig = Field(default_factory=RebalanceConfig, description="Periodic rebalancing policy")
    return_type: ReturnType = Field(ReturnType.TOTAL, description="'total' uses adjusted close, 'price' uses raw close")
    initial_capital: float = Field(settings.initial_capital, gt=0, description="Starting capital")

    class Config:
        extra = "forbid"
