from enum import Enum
from typing import List, Optional, Union
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


class AssetType(str, Enum):
    STOCK = "STOCK"
    ETF = "ETF"
    PORTFOLIO = "PORTFOLIO"


class Asset(BaseModel):
    """Reference data for a tradable asset or a saved portfolio."""

    ticker: str = Field(..., description="Unique ticker symbol")
    name: str = Field("", description="Display name")
    type: AssetType = Field(AssetType.STOCK, description="Security, ETF or portfolio reference")
    asset_class: str = Field(
        "", validation_alias=AliasChoices("asset_class", "assetClass"), description="Category / asset-class label"
    )
    sector: Optional[str] = None
    description: Optional[str] = None


class PortfolioItem(Asset):
    """An asset held in a portfolio with its weight in percentage points (0-100)."""

    weight: float = Field(..., ge=0, description="Weight in percentage points of total capital")
    color: Optional[str] = Field(None, description="Display color")
    is_portfolio: bool = Field(
        False,
        validation_alias=AliasChoices("is_portfolio", "isPortfolio"),
        description="Whether this item references a saved portfolio",
    )
    portfolio_id: Optional[Union[int, str]] = Field(
        None,
        validation_alias=AliasChoices("portfolio_id", "portfolioId"),
        description="Id of the referenced saved portfolio",
    )

    @property
    def is_portfolio_reference(self) -> bool:
        return self.is_portfolio and self.portfolio_id is not None


class SavedPortfolio(BaseModel):
    """A portfolio as stored by the persistence API, which answers in camelCase."""

    id: Union[int, str]
    name: str
    assets: List[PortfolioItem] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("created_at", "createdAt"))
    updated_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("updated_at", "updatedAt"))
