import logging
from dataclasses import dataclass, field
from typing import List, Literal

from src.config.settings import settings
from src.services.backtester.PortfolioExpander import PortfolioExpander
from src.services.backtester.errors import BenchmarkNotFoundError
from src.services.backtester.models.PortfolioItem import PortfolioItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedBenchmark:
    kind: Literal["single", "basket"]
    ticker: str
    items: List[PortfolioItem] = field(default_factory=list)

    @property
    def is_basket(self) -> bool:
        return self.kind == "basket"

    @property
    def tickers(self) -> List[str]:
        if self.is_basket:
            return [item.ticker for item in self.items]
        return [self.ticker]

    @property
    def weights(self) -> List[float]:
        """Percentage weights; a single ticker is a one-asset basket at 100%."""
        if self.is_basket:
            return [item.weight for item in self.items]
        return [100.0]


class BenchmarkResolver():
    """Tells a plain market ticker apart from a saved portfolio used as benchmark."""

    def __init__(self, expander: PortfolioExpander, prefix: str = settings.benchmark_portfolio_prefix):
        self.expander: PortfolioExpander = expander
        self.prefix: str = prefix

    def is_portfolio_identifier(self, identifier: str) -> bool:
        return identifier.startswith(self.prefix)

    def resolve(self, identifier: str) -> ResolvedBenchmark:
        if not self.is_portfolio_identifier(identifier):
            return ResolvedBenchmark(kind="single", ticker=identifier)

        portfolio_id = identifier[len(self.prefix):]
        saved = self.expander.portfolio_source.fetch(portfolio_id)
        if saved is None:
            logger.warning(f"Benchmark portfolio {portfolio_id} not found")
            raise BenchmarkNotFoundError(identifier)

        items = self.expander.expand(saved.assets)
        if not items:
            logger.warning(f"Benchmark portfolio {portfolio_id} has no resolvable assets")
            raise BenchmarkNotFoundError(identifier)

        return ResolvedBenchmark(kind="basket", ticker=identifier, items=items)
