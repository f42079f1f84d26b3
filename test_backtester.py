"""
End-to-end backtests over in-memory data sources.
"""
import asyncio
import math
from datetime import date

import pytest

from conftest import FakePortfolioSource, FakePriceSource, FakeRiskFreeSource, build_series, leaf, portfolio_ref
from src.services.backtester.Backtester import Backtester
from src.services.backtester.errors import (
    BenchmarkNotFoundError,
    DataFetchError,
    EmptyPortfolioError,
    NoOverlappingDatesError,
)
from src.services.backtester.models.BacktestConfig import DCAConfig, FetchWindow, Frequency, ReturnType
from src.services.backtester.models.BacktestParams import BacktestParams

TODAY = date(2024, 6, 28)


def _run(backtester, params):
    return asyncio.run(backtester.run(params, today=TODAY))


@pytest.fixture
def prices():
    return FakePriceSource({
        "A": build_series("A", [100, 110, 90]),
        "B": build_series("B", [100, 90, 110]),
        "SPY": build_series("SPY", [400, 404, 408]),
    })


@pytest.fixture
def backtester(prices):
    return Backtester(prices, FakePortfolioSource(), FakeRiskFreeSource(0.05))


def test_anti_correlated_pair(backtester):
    params = BacktestParams(portfolio=[leaf("A", 50), leaf("B", 50)], benchmark="SPY", initial_capital=1000)

    result = _run(backtester, params)

    assert len(result.dates) == 3
    assert result.portfolio_values == pytest.approx([1000, 1000, 1000])
    assert result.benchmark_values == pytest.approx([1000, 1010, 1020])
    assert result.correlation_matrix["A"]["B"] == pytest.approx(-1.0)
    assert result.correlation_matrix["A"]["A"] == 1.0
    assert set(result.correlation_matrix) == {"A", "B"}
    assert result.asset_returns == pytest.approx({"A": -0.1, "B": 0.1})
    assert result.risk_free_rate == 0.05
    assert result.benchmark_ticker == "SPY"

    assert result.metrics.total_return == pytest.approx(0.0)
    assert result.metrics.max_drawdown == pytest.approx(0.0, abs=1e-12)
    assert result.metrics.total_invested == 1000
    assert result.metrics.final_balance == pytest.approx(1000)
    assert result.benchmark_metrics.total_return == pytest.approx(0.02)


def test_cagr_without_contributions_compounds(backtester):
    params = BacktestParams(portfolio=[leaf("SPY", 100)], benchmark="SPY", initial_capital=1000)

    result = _run(backtester, params)

    assert result.metrics.cagr == pytest.approx((1020 / 1000) ** (252 / 3) - 1)
    assert result.metrics.sharpe_ratio == pytest.approx(
        (result.metrics.cagr - 0.05) / result.metrics.volatility
    )
    assert result.metrics == result.benchmark_metrics


def test_cagr_with_contributions_is_linear(make_series):
    closes = [100.0 + i for i in range(30)]
    prices = FakePriceSource({"A": make_series("A", closes), "SPY": make_series("SPY", closes)})
    backtester = Backtester(prices, FakePortfolioSource(), FakeRiskFreeSource())
    params = BacktestParams(
        portfolio=[leaf("A", 100)],
        benchmark="SPY",
        window=FetchWindow(months=6),
        dca=DCAConfig(enabled=True, amount=500, frequency=Frequency.WEEKLY),
    )

    result = _run(backtester, params)

    assert result.metrics.total_invested == pytest.approx(10_000 + 5 * 500)
    assert result.metrics.cagr == pytest.approx(result.metrics.total_return / 0.5)
    assert result.benchmark_metrics.total_invested == result.metrics.total_invested


def test_price_return_uses_raw_close(make_series):
    prices = FakePriceSource({
        "A": make_series("A", [10.0, 10.0], adj_closes=[10.0, 11.0]),
        "SPY": make_series("SPY", [100.0, 100.0]),
    })
    backtester = Backtester(prices, FakePortfolioSource(), FakeRiskFreeSource())

    total = _run(backtester, BacktestParams(portfolio=[leaf("A", 100)], initial_capital=1000))
    price_only = _run(
        backtester,
        BacktestParams(portfolio=[leaf("A", 100)], initial_capital=1000, return_type=ReturnType.PRICE),
    )

    assert total.portfolio_values == pytest.approx([1000, 1100])
    assert price_only.portfolio_values == pytest.approx([1000, 1000])


def test_failed_fetches_abort_with_tickers(prices, backtester):
    params = BacktestParams(portfolio=[leaf("A", 40), leaf("NOPE", 30), leaf("GONE", 30)])

    with pytest.raises(DataFetchError) as exc_info:
        _run(backtester, params)

    assert exc_info.value.failed_tickers == ["NOPE", "GONE"]


def test_failed_benchmark_fetch_aborts(backtester):
    params = BacktestParams(portfolio=[leaf("A", 100)], benchmark="XXX")

    with pytest.raises(DataFetchError) as exc_info:
        _run(backtester, params)

    assert exc_info.value.failed_tickers == ["XXX"]


def test_each_ticker_is_fetched_once(prices, backtester):
    params = BacktestParams(portfolio=[leaf("A", 50), leaf("SPY", 50)], benchmark="SPY")

    _run(backtester, params)

    assert sorted(prices.calls) == ["A", "SPY"]


def test_no_overlapping_dates(make_series):
    prices = FakePriceSource({
        "A": make_series("A", [1.0, 2.0], start=date(2024, 1, 2)),
        "SPY": make_series("SPY", [1.0, 2.0], start=date(2024, 2, 5)),
    })
    backtester = Backtester(prices, FakePortfolioSource(), FakeRiskFreeSource())

    with pytest.raises(NoOverlappingDatesError):
        _run(backtester, BacktestParams(portfolio=[leaf("A", 100)]))


def test_empty_portfolio(backtester):
    with pytest.raises(EmptyPortfolioError):
        _run(backtester, BacktestParams(portfolio=[]))


def test_nested_portfolio_and_basket_benchmark(make_series):
    prices = FakePriceSource({
        "A": make_series("A", [100.0, 120.0]),
        "B": make_series("B", [50.0, 50.0]),
        "C": make_series("C", [10.0, 5.0]),
    })
    portfolios = FakePortfolioSource({
        "1": [leaf("B", 50), leaf("C", 50)],
        "2": [leaf("A", 50), leaf("C", 50)],
    })
    backtester = Backtester(prices, portfolios, FakeRiskFreeSource())
    params = BacktestParams(
        portfolio=[leaf("A", 50), portfolio_ref(1, 50)],
        benchmark="PORT_2",
        initial_capital=1000,
    )

    result = _run(backtester, params)

    # Portfolio: A 50%, B 25%, C 25% -> 600 + 250 + 125
    assert result.portfolio_values == pytest.approx([1000, 975])
    # Benchmark basket: A 50%, C 50% -> 600 + 250
    assert result.benchmark_values == pytest.approx([1000, 850])
    assert set(result.correlation_matrix) == {"A", "B", "C"}
    assert sorted(prices.calls) == ["A", "B", "C"]
    assert result.benchmark_ticker == "PORT_2"


def test_unknown_benchmark_portfolio(backtester):
    with pytest.raises(BenchmarkNotFoundError):
        _run(backtester, BacktestParams(portfolio=[leaf("A", 100)], benchmark="PORT_42"))


def test_single_day_window(make_series):
    prices = FakePriceSource({"A": make_series("A", [50.0]), "SPY": make_series("SPY", [400.0])})
    backtester = Backtester(prices, FakePortfolioSource(), FakeRiskFreeSource())

    result = _run(backtester, BacktestParams(portfolio=[leaf("A", 60), leaf("A", 40)]))

    assert result.portfolio_values == pytest.approx([10_000])
    assert result.metrics.volatility == 0.0
    assert result.metrics.sharpe_ratio == 0.0
    assert result.metrics.cagr == pytest.approx(0.0)
    assert result.correlation_matrix == {}


def test_oversized_weights_over_one_day_still_produce_metrics(make_series):
    prices = FakePriceSource({"A": make_series("A", [50.0]), "SPY": make_series("SPY", [400.0])})
    backtester = Backtester(prices, FakePortfolioSource(), FakeRiskFreeSource())

    result = _run(backtester, BacktestParams(portfolio=[leaf("A", 100)] * 20))

    assert result.portfolio_values == pytest.approx([200_000])
    assert result.metrics.total_return == pytest.approx(19.0)
    assert math.isfinite(result.metrics.cagr)
    assert result.metrics.sharpe_ratio == 0.0
