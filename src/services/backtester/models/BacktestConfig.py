from enum import Enum
from typing import ClassVar, Dict, Optional
from datetime import date

import pandas as pd
from pydantic import BaseModel, Field


class Frequency(str, Enum):
    WEEKLY = "WEEKLY"
    BI_WEEKLY = "BI_WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUALLY = "SEMI_ANNUALLY"
    ANNUALLY = "ANNUALLY"

    @property
    def interval(self) -> int:
        """Approximate number of trading days between two events."""
        return FREQUENCY_INTERVALS[self]


FREQUENCY_INTERVALS: Dict[Frequency, int] = {
    Frequency.WEEKLY: 5,
    Frequency.BI_WEEKLY: 10,
    Frequency.MONTHLY: 21,
    Frequency.QUARTERLY: 63,
    Frequency.SEMI_ANNUALLY: 126,
    Frequency.ANNUALLY: 252,
}


class ReturnType(str, Enum):
    TOTAL = "total"  # adjusted close, dividends reinvested
    PRICE = "price"  # raw close

    @property
    def price_field(self) -> str:
        return "adj_close" if self is ReturnType.TOTAL else "close"


class DCAConfig(BaseModel):
    """Recurring contribution policy."""

    enabled: bool = Field(False, description="Whether recurring contributions are made")
    amount: float = Field(0.0, ge=0, description="Amount deposited at every contribution")
    frequency: Frequency = Field(Frequency.MONTHLY, description="Contribution cadence")

    def fires_on(self, day_index: int) -> bool:
        return self.enabled and day_index > 0 and day_index % self.frequency.interval == 0


class RebalanceConfig(BaseModel):
    """Periodic rebalancing policy."""

    enabled: bool = Field(False, description="Whether the portfolio is reset to target weights")
    frequency: Frequency = Field(Frequency.QUARTERLY, description="Rebalancing cadence")

    def fires_on(self, day_index: int) -> bool:
        return self.enabled and day_index > 0 and day_index % self.frequency.interval == 0


class FetchWindow(BaseModel):
    """History window requested from the price source: trailing months or year-to-date."""

    AVERAGE_DAYS_PER_MONTH: ClassVar[float] = 30.4375

    months: int = Field(12, ge=1, description="Number of trailing months of history")
    ytd: bool = Field(False, description="Use year-to-date history instead of trailing months")

    def start_date(self, today: Optional[date] = None) -> date:
        today = today or date.today()
        if self.ytd:
            return date(today.year, 1, 1)
        return (pd.Timestamp(today) - pd.DateOffset(months=self.months)).date()

    def months_in_window(self, today: Optional[date] = None) -> float:
        if not self.ytd:
            return float(self.months)
        today = today or date.today()
        return (today - date(today.year, 1, 1)).days / self.AVERAGE_DAYS_PER_MONTH
