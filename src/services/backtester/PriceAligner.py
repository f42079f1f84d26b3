import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

from src.services.backtester.models.HistoricalPricePoint import HistoricalPricePoint
from src.services.backtester.models.BacktestConfig import ReturnType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlignedPrices:
    dates: List[date]
    asset_prices: Dict[str, np.ndarray] = field(default_factory=dict)
    benchmark_prices: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.float64))

    @property
    def is_empty(self) -> bool:
        return len(self.dates) == 0

    def __len__(self) -> int:
        return len(self.dates)


class PriceAligner():
    """
    Merges per-asset daily price series onto the benchmark's trading calendar.

    A benchmark date is kept only when every asset series and the benchmark itself
    carry a price on it. Missing dates are dropped, never filled.
    """

    def __init__(self, return_type: ReturnType = ReturnType.TOTAL):
        self.return_type: ReturnType = return_type

    @property
    def price_field(self) -> str:
        return self.return_type.price_field

    def _to_series(self, points: Sequence[HistoricalPricePoint]) -> pd.Series:
        series = pd.Series(
            [getattr(p, self.price_field) for p in points],
            index=pd.Index([p.date for p in points]),
            dtype=np.float64,
        )
        # Duplicate dates keep the last point
        return series[~series.index.duplicated(keep="last")]

    def align(
        self,
        asset_series: Mapping[str, Sequence[HistoricalPricePoint]],
        benchmark_series: Sequence[HistoricalPricePoint],
    ) -> AlignedPrices:
        benchmark = self._to_series(benchmark_series).sort_index()
        calendar = benchmark.index

        # Reindex every asset onto the benchmark calendar; absent dates become NaN
        frame = pd.DataFrame(
            {ticker: self._to_series(points).reindex(calendar) for ticker, points in asset_series.items()},
            index=calendar,
        )

        keep = benchmark.notna() & frame.notna().all(axis=1)
        frame = frame[keep]
        benchmark = benchmark[keep]

        if len(benchmark) == 0:
            logger.warning(
                f"No overlapping trading days between {', '.join(asset_series.keys())} and the benchmark"
            )

        return AlignedPrices(
            dates=list(benchmark.index),
            asset_prices={ticker: frame[ticker].to_numpy(dtype=np.float64) for ticker in frame.columns},
            benchmark_prices=benchmark.to_numpy(dtype=np.float64),
        )
