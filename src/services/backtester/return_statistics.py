"""
Return and risk statistics over value curves.

Every function here is pure and resolves degenerate input (zero variance,
zero prices, empty or single-point series) to 0 instead of raising.
"""
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

YEARLY_MARKET_DAYS: int = 252
# exp(709) is close to the largest finite double
MAX_GROWTH_EXPONENT: float = 709.0


@dataclass(frozen=True)
class DrawdownDetails:
    max_drawdown: float
    start: Optional[date]
    end: Optional[date]
    days: int


def daily_returns(values: Sequence[float]) -> np.ndarray:
    """r[i-1] = (v[i] - v[i-1]) / v[i-1], length n-1. A zero previous value yields 0."""
    v = np.asarray(values, dtype=np.float64)
    if len(v) < 2:
        return np.empty(0, dtype=np.float64)

    prev = v[:-1]
    with np.errstate(divide="ignore", invalid="ignore"):
        returns = np.where(prev != 0, (v[1:] - prev) / prev, 0.0)
    return returns


def annualized_volatility(values: Sequence[float]) -> float:
    returns = daily_returns(values)
    if len(returns) == 0:
        return 0.0
    return float(np.std(returns) * np.sqrt(YEARLY_MARKET_DAYS))


def correlation(returns_a: Sequence[float], returns_b: Sequence[float]) -> float:
    """Pearson correlation; 0 on length mismatch, empty input or zero variance."""
    a = np.asarray(returns_a, dtype=np.float64)
    b = np.asarray(returns_b, dtype=np.float64)
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    da = a - a.mean()
    db = b - b.mean()
    den_a = float(np.dot(da, da))
    den_b = float(np.dot(db, db))
    if den_a == 0 or den_b == 0:
        return 0.0

    return float(np.dot(da, db) / np.sqrt(den_a * den_b))


def correlation_matrix(returns_by_ticker: Mapping[str, Sequence[float]]) -> Dict[str, Dict[str, float]]:
    """Symmetric matrix over the tickers with at least one daily return; the diagonal is 1."""
    tickers = [t for t, r in returns_by_ticker.items() if len(r) > 0]
    matrix: Dict[str, Dict[str, float]] = {t: {} for t in tickers}

    for i, t1 in enumerate(tickers):
        matrix[t1][t1] = 1.0
        for t2 in tickers[i + 1:]:
            coefficient = correlation(returns_by_ticker[t1], returns_by_ticker[t2])
            matrix[t1][t2] = coefficient
            matrix[t2][t1] = coefficient

    return matrix


def max_drawdown_details(values: Sequence[float], dates: Sequence[date]) -> DrawdownDetails:
    """
    Largest peak-to-trough decline as a fraction in [0, 1].

    `start` is the date of the peak preceding the trough, `end` the trough date and
    `days` the calendar-day distance between them.
    """
    if len(values) == 0:
        return DrawdownDetails(0.0, None, None, 0)

    peak = -np.inf
    peak_idx = 0
    max_dd = 0.0
    start_idx = 0
    end_idx = 0

    for i, value in enumerate(values):
        if value > peak:
            peak = value
            peak_idx = i
        dd = (peak - value) / peak if peak > 0 else 0.0
        if dd > max_dd:
            max_dd = dd
            start_idx = peak_idx
            end_idx = i

    start = dates[start_idx] if start_idx < len(dates) else None
    end = dates[end_idx] if end_idx < len(dates) else None
    days = abs((end - start).days) if start is not None and end is not None else 0

    return DrawdownDetails(float(max_dd), start, end, days)


def cagr(initial_value: float, final_value: float, num_days: int) -> float:
    """
    Compound growth annualized over `num_days` trading days.

    Very short windows can push the annualized growth past the float range; the
    exponent is capped so the result stays finite.
    """
    if initial_value == 0 or num_days == 0:
        return 0.0
    ratio = final_value / initial_value
    if ratio <= 0:
        return -1.0
    years = num_days / YEARLY_MARKET_DAYS
    return math.exp(min(math.log(ratio) / years, MAX_GROWTH_EXPONENT)) - 1.0


def linear_annualized_return(total_return_value: float, months: float) -> float:
    """
    Simple linear annualization used when recurring contributions change the capital base,
    which leaves compound growth ill-defined.
    """
    if months <= 0:
        return 0.0
    return total_return_value / (months / 12.0)


def total_return(final_value: float, total_invested: float) -> float:
    if total_invested == 0:
        return 0.0
    return (final_value - total_invested) / total_invested


def sharpe_ratio(annual_return: float, risk_free_rate: float, volatility: float) -> float:
    if volatility == 0:
        return 0.0
    return (annual_return - risk_free_rate) / volatility


def asset_total_returns(prices_by_ticker: Mapping[str, Sequence[float]]) -> Dict[str, float]:
    """First-to-last price return per ticker over the aligned window."""
    result: Dict[str, float] = {}
    for ticker, prices in prices_by_ticker.items():
        if len(prices) == 0:
            continue
        start = float(prices[0])
        end = float(prices[-1])
        result[ticker] = (end - start) / start if start != 0 else 0.0
    return result
