import logging
from typing import Dict, List, Sequence

from src.config.settings import settings
from src.services.backtester.collaborators import SavedPortfolioSource
from src.services.backtester.models.PortfolioItem import PortfolioItem

logger = logging.getLogger(__name__)


class PortfolioExpander():
    """
    Flattens nested portfolio references into leaf tickers with combined weights.

    Saved portfolios are not checked for cycles when stored, so recursion is bounded
    by depth: a subtree deeper than `max_depth` contributes nothing.
    """

    def __init__(self, portfolio_source: SavedPortfolioSource, max_depth: int = settings.max_expansion_depth):
        self.portfolio_source: SavedPortfolioSource = portfolio_source
        self.max_depth: int = max_depth

    def expand(self, items: Sequence[PortfolioItem], depth: int = 0) -> List[PortfolioItem]:
        if depth > self.max_depth:
            logger.warning(f"Portfolio nesting deeper than {self.max_depth} levels, dropping branch")
            return []

        # ticker -> leaf item carrying the accumulated weight, in first-seen order
        expanded: Dict[str, PortfolioItem] = {}

        for item in items:
            if item.is_portfolio_reference:
                saved = self.portfolio_source.fetch(item.portfolio_id)
                if saved is None or not saved.assets:
                    logger.warning(f"Saved portfolio {item.portfolio_id} not found, skipping")
                    continue

                for sub_item in self.expand(saved.assets, depth + 1):
                    self._merge(expanded, sub_item, (item.weight / 100.0) * sub_item.weight)
            else:
                self._merge(expanded, item, item.weight)

        return list(expanded.values())

    @staticmethod
    def _merge(expanded: Dict[str, PortfolioItem], item: PortfolioItem, weight: float) -> None:
        existing = expanded.get(item.ticker)
        if existing is not None:
            expanded[item.ticker] = existing.model_copy(update={"weight": existing.weight + weight})
        else:
            expanded[item.ticker] = item.model_copy(update={"weight": weight})
