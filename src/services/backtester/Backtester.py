import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from src.config.settings import settings
from src.services.backtester import return_statistics as stats
from src.services.backtester.BenchmarkResolver import BenchmarkResolver, ResolvedBenchmark
from src.services.backtester.PortfolioExpander import PortfolioExpander
from src.services.backtester.PriceAligner import AlignedPrices, PriceAligner
from src.services.backtester.SimulationEngine import SimulationEngine
from src.services.backtester.collaborators import PriceHistorySource, RiskFreeRateSource, SavedPortfolioSource
from src.services.backtester.errors import DataFetchError, EmptyPortfolioError, NoOverlappingDatesError
from src.services.backtester.models.BacktestParams import BacktestParams
from src.services.backtester.models.BacktestResult import BacktestResult, PerformanceMetrics
from src.services.backtester.models.HistoricalPricePoint import HistoricalPriceSeries
from src.services.backtester.models.PortfolioItem import PortfolioItem

logger = logging.getLogger(__name__)


class Backtester():
    """
    Runs a historical backtest of a weighted portfolio against a benchmark.

    Pipeline: expand nested portfolios, resolve the benchmark, fetch every price history
    (plus the risk-free rate) concurrently, align calendars, replay the calendar, and
    derive metrics and the correlation matrix. Any missing series aborts the whole run.
    """

    def __init__(
        self,
        price_source: PriceHistorySource,
        portfolio_source: SavedPortfolioSource,
        risk_free_source: RiskFreeRateSource,
        max_expansion_depth: int = settings.max_expansion_depth,
        benchmark_prefix: str = settings.benchmark_portfolio_prefix,
    ):
        self.price_source: PriceHistorySource = price_source
        self.risk_free_source: RiskFreeRateSource = risk_free_source
        self.expander: PortfolioExpander = PortfolioExpander(portfolio_source, max_expansion_depth)
        self.benchmark_resolver: BenchmarkResolver = BenchmarkResolver(self.expander, benchmark_prefix)

    async def run(self, params: BacktestParams, today: Optional[date] = None) -> BacktestResult:
        # Expansion and resolution must finish before any price is fetched
        portfolio: List[PortfolioItem] = await asyncio.to_thread(self.expander.expand, params.portfolio)
        if not portfolio:
            raise EmptyPortfolioError()

        benchmark: ResolvedBenchmark = await asyncio.to_thread(self.benchmark_resolver.resolve, params.benchmark)

        history, risk_free_rate = await self.fetch_history(portfolio, benchmark, params)

        result = self.build_result(portfolio, benchmark, history, risk_free_rate, params, today)
        logger.info(
            f"Backtest of {len(portfolio)} assets vs {params.benchmark} over {len(result.dates)} days: "
            f"total return {result.metrics.total_return:.2%}"
        )
        return result

    async def fetch_history(
        self,
        portfolio: Sequence[PortfolioItem],
        benchmark: ResolvedBenchmark,
        params: BacktestParams,
    ) -> Tuple[Dict[str, HistoricalPriceSeries], float]:
        """Fetch one series per distinct ticker and the risk-free rate, all awaited together."""
        portfolio_tickers: List[str] = [item.ticker for item in portfolio]
        benchmark_tickers: List[str] = [t for t in benchmark.tickers if t not in portfolio_tickers]
        tickers: List[str] = portfolio_tickers + benchmark_tickers

        results = await asyncio.gather(
            *(asyncio.to_thread(self.price_source.fetch, ticker, params.window) for ticker in tickers),
            asyncio.to_thread(self.risk_free_source.fetch),
        )
        risk_free_rate: float = results[-1]
        history: Dict[str, HistoricalPriceSeries] = dict(zip(tickers, results[:-1]))

        failed: List[str] = [t for t in tickers if history[t] is None or history[t].is_empty]
        if failed:
            logger.warning(f"Failed to fetch data for: {', '.join(failed)}")
            raise DataFetchError(failed)

        return history, risk_free_rate

    def align(
        self,
        portfolio: Sequence[PortfolioItem],
        benchmark: ResolvedBenchmark,
        history: Dict[str, HistoricalPriceSeries],
        params: BacktestParams,
    ) -> AlignedPrices:
        tickers: List[str] = [item.ticker for item in portfolio]
        if benchmark.is_basket:
            tickers += [t for t in benchmark.tickers if t not in tickers]

        # A basket benchmark borrows the calendar of its first member
        reference: HistoricalPriceSeries = history[benchmark.tickers[0]]

        aligned = PriceAligner(params.return_type).align(
            {ticker: history[ticker].data for ticker in tickers},
            reference.data,
        )
        if aligned.is_empty:
            raise NoOverlappingDatesError()
        return aligned

    @staticmethod
    def performance_metrics(
        values: np.ndarray,
        dates: Sequence[date],
        total_invested: float,
        initial_capital: float,
        risk_free_rate: float,
        dca_enabled: bool,
        months_in_window: float,
    ) -> PerformanceMetrics:
        final_value: float = float(values[-1])
        total_return: float = stats.total_return(final_value, total_invested)

        # Compound growth is ill-defined once contributions change the capital base
        if dca_enabled:
            annual_return = stats.linear_annualized_return(total_return, months_in_window)
        else:
            annual_return = stats.cagr(initial_capital, final_value, len(values))

        volatility = stats.annualized_volatility(values)
        drawdown = stats.max_drawdown_details(values, dates)

        return PerformanceMetrics(
            cagr=annual_return,
            max_drawdown=drawdown.max_drawdown,
            max_drawdown_start=drawdown.start,
            max_drawdown_end=drawdown.end,
            max_drawdown_days=drawdown.days,
            volatility=volatility,
            sharpe_ratio=stats.sharpe_ratio(annual_return, risk_free_rate, volatility),
            total_return=total_return,
            final_balance=final_value,
            total_invested=total_invested,
        )

    def build_result(
        self,
        portfolio: Sequence[PortfolioItem],
        benchmark: ResolvedBenchmark,
        history: Dict[str, HistoricalPriceSeries],
        risk_free_rate: float,
        params: BacktestParams,
        today: Optional[date] = None,
    ) -> BacktestResult:
        aligned = self.align(portfolio, benchmark, history, params)

        curves = SimulationEngine(
            portfolio,
            aligned,
            benchmark,
            dca=params.dca,
            rebalance=params.rebalance,
            initial_capital=params.initial_capital,
        ).run()

        months_in_window: float = params.window.months_in_window(today)
        metrics_args = dict(
            dates=aligned.dates,
            total_invested=curves.total_invested,
            initial_capital=params.initial_capital,
            risk_free_rate=risk_free_rate,
            dca_enabled=params.dca.enabled,
            months_in_window=months_in_window,
        )

        portfolio_prices: Dict[str, np.ndarray] = {
            item.ticker: aligned.asset_prices[item.ticker] for item in portfolio
        }

        return BacktestResult(
            dates=aligned.dates,
            portfolio_values=curves.portfolio_values.tolist(),
            benchmark_values=curves.benchmark_values.tolist(),
            asset_returns=stats.asset_total_returns(portfolio_prices),
            correlation_matrix=stats.correlation_matrix(
                {ticker: stats.daily_returns(prices) for ticker, prices in portfolio_prices.items()}
            ),
            benchmark_ticker=params.benchmark,
            return_type=params.return_type,
            risk_free_rate=risk_free_rate,
            metrics=self.performance_metrics(curves.portfolio_values, **metrics_args),
            benchmark_metrics=self.performance_metrics(curves.benchmark_values, **metrics_args),
        )
