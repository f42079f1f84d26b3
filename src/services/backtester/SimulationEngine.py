import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from src.config.settings import settings
from src.services.backtester.BenchmarkResolver import ResolvedBenchmark
from src.services.backtester.PriceAligner import AlignedPrices
from src.services.backtester.errors import MissingPriceDataError, NoOverlappingDatesError
from src.services.backtester.models.BacktestConfig import DCAConfig, RebalanceConfig
from src.services.backtester.models.PortfolioItem import PortfolioItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationState:
    """Holdings after a trading day: share counts per ticker for both sides and capital contributed."""

    shares: Dict[str, float]
    benchmark_shares: Dict[str, float]
    total_invested: float


@dataclass(frozen=True)
class SimulationCurves:
    portfolio_values: np.ndarray
    benchmark_values: np.ndarray
    contributions: np.ndarray
    final_state: SimulationState

    @property
    def total_invested(self) -> float:
        return self.final_state.total_invested


class SimulationEngine():
    """
    Replays the aligned calendar day by day as a fold: state_i = step(state_{i-1}, i).

    On each day the portfolio is first rebalanced (if due), then receives the recurring
    contribution (if due), then both sides are valued at the day's prices. Event timing is
    a modulo on the trading-day index, so holidays shift the effective calendar date.

    The benchmark is tracked like a second portfolio: a single ticker is a one-asset
    basket at 100%. It receives the same contributions but is never rebalanced.
    """

    def __init__(
        self,
        portfolio: Sequence[PortfolioItem],
        prices: AlignedPrices,
        benchmark: ResolvedBenchmark,
        dca: Optional[DCAConfig] = None,
        rebalance: Optional[RebalanceConfig] = None,
        initial_capital: float = settings.initial_capital,
    ):
        if prices.is_empty:
            raise NoOverlappingDatesError()

        self.prices: AlignedPrices = prices
        self.dca: DCAConfig = dca or DCAConfig()
        self.rebalance: RebalanceConfig = rebalance or RebalanceConfig()
        self.initial_capital: float = float(initial_capital)

        self.weights: Dict[str, float] = self._weights_by_ticker(
            [item.ticker for item in portfolio], [item.weight for item in portfolio]
        )
        self.benchmark_weights: Dict[str, float] = self._weights_by_ticker(benchmark.tickers, benchmark.weights)

        # A partial portfolio would misrepresent the configured weights
        missing: List[str] = [t for t in self.weights if t not in prices.asset_prices]
        if benchmark.is_basket:
            missing += [
                t for t in self.benchmark_weights if t not in prices.asset_prices and t not in missing
            ]
        if missing:
            raise MissingPriceDataError(missing)

        self.asset_prices: Dict[str, np.ndarray] = {t: prices.asset_prices[t] for t in self.weights}
        if benchmark.is_basket:
            self.benchmark_prices: Dict[str, np.ndarray] = {
                t: prices.asset_prices[t] for t in self.benchmark_weights
            }
        else:
            self.benchmark_prices = {benchmark.ticker: prices.benchmark_prices}

    @staticmethod
    def _weights_by_ticker(tickers: Sequence[str], weights: Sequence[float]) -> Dict[str, float]:
        result: Dict[str, float] = {}
        for ticker, weight in zip(tickers, weights):
            result[ticker] = result.get(ticker, 0.0) + float(weight)
        return result

    @staticmethod
    def _buy(
        shares: Mapping[str, float],
        weights: Mapping[str, float],
        prices: Mapping[str, np.ndarray],
        amount: float,
        day: int,
    ) -> Dict[str, float]:
        """Splits `amount` across assets by weight and converts it to shares at `day`'s prices."""
        updated: Dict[str, float] = dict(shares)
        for ticker, weight in weights.items():
            price: float = prices[ticker][day]
            bought: float = amount * (weight / 100.0) / price if price != 0 else 0.0
            updated[ticker] = updated.get(ticker, 0.0) + bought
        return updated

    @staticmethod
    def _holdings_value(shares: Mapping[str, float], prices: Mapping[str, np.ndarray], day: int) -> float:
        return float(sum(shares[ticker] * prices[ticker][day] for ticker in shares))

    def _rebalanced(self, shares: Mapping[str, float], day: int) -> Dict[str, float]:
        current_total: float = self._holdings_value(shares, self.asset_prices, day)
        return self._buy({}, self.weights, self.asset_prices, current_total, day)

    def initial_state(self) -> SimulationState:
        return SimulationState(
            shares=self._buy({}, self.weights, self.asset_prices, self.initial_capital, 0),
            benchmark_shares=self._buy({}, self.benchmark_weights, self.benchmark_prices, self.initial_capital, 0),
            total_invested=self.initial_capital,
        )

    def step(self, state: SimulationState, day: int) -> SimulationState:
        shares = state.shares
        benchmark_shares = state.benchmark_shares
        total_invested = state.total_invested

        if self.rebalance.fires_on(day):
            shares = self._rebalanced(shares, day)

        if self.dca.fires_on(day):
            deposit: float = self.dca.amount
            total_invested += deposit
            shares = self._buy(shares, self.weights, self.asset_prices, deposit, day)
            benchmark_shares = self._buy(benchmark_shares, self.benchmark_weights, self.benchmark_prices, deposit, day)

        return SimulationState(shares=shares, benchmark_shares=benchmark_shares, total_invested=total_invested)

    def value(self, state: SimulationState, day: int) -> Tuple[float, float]:
        """(portfolio value, benchmark value) of `state` at `day`'s prices."""
        return (
            self._holdings_value(state.shares, self.asset_prices, day),
            self._holdings_value(state.benchmark_shares, self.benchmark_prices, day),
        )

    def run(self) -> SimulationCurves:
        n: int = len(self.prices)

        # Pre-allocate arrays for performance
        portfolio_values: np.ndarray = np.empty(n, dtype=np.float64)
        benchmark_values: np.ndarray = np.empty(n, dtype=np.float64)
        contributions: np.ndarray = np.zeros(n, dtype=np.float64)

        state = self.initial_state()
        for i in range(n):
            next_state = self.step(state, i)
            contributions[i] = next_state.total_invested - state.total_invested
            state = next_state
            portfolio_values[i], benchmark_values[i] = self.value(state, i)

        logger.debug(
            f"Simulated {n} trading days, final value {portfolio_values[-1]:.2f} "
            f"vs benchmark {benchmark_values[-1]:.2f}"
        )

        return SimulationCurves(
            portfolio_values=portfolio_values,
            benchmark_values=benchmark_values,
            contributions=contributions,
            final_state=state,
        )
