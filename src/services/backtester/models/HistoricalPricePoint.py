from typing import List, Optional
import datetime

from pydantic import AliasChoices, BaseModel, Field


class HistoricalPricePoint(BaseModel):
    date: datetime.date
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    adj_close: Optional[float] = Field(
        None, validation_alias=AliasChoices("adj_close", "adjClose"), description="Dividend and split adjusted close"
    )
    volume: Optional[float] = None


class HistoricalPriceSeries(BaseModel):
    """Daily price history for one ticker, ascending by date."""

    ticker: str
    data: List[HistoricalPricePoint] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return len(self.data) == 0
