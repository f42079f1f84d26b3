from typing import Dict, List, Optional
from datetime import date

from pydantic import BaseModel

from src.services.backtester.models.BacktestConfig import ReturnType


class PerformanceMetrics(BaseModel):
    cagr: float
    max_drawdown: float
    max_drawdown_start: Optional[date] = None
    max_drawdown_end: Optional[date] = None
    max_drawdown_days: int = 0
    volatility: float
    sharpe_ratio: float
    total_return: float
    final_balance: float
    total_invested: float


class BacktestResult(BaseModel):
    dates: List[date]
    portfolio_values: List[float]
    benchmark_values: List[float]
    asset_returns: Dict[str, float]
    correlation_matrix: Dict[str, Dict[str, float]]
    benchmark_ticker: str
    return_type: ReturnType
    risk_free_rate: float
    metrics: PerformanceMetrics
    benchmark_metrics: PerformanceMetrics
