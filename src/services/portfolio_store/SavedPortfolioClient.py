import logging
from typing import Optional, Union

import requests

from src.config.settings import settings
from src.services.backtester.models.PortfolioItem import SavedPortfolio

logger = logging.getLogger(__name__)


class SavedPortfolioClient():
    """Reads saved portfolios from the portfolio persistence API. No retries."""

    def __init__(
        self,
        base_url: str = settings.portfolio_api_url,
        timeout: float = settings.request_timeout,
        session: Optional[requests.Session] = None,
    ):
        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = timeout
        self.session: requests.Session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def fetch(self, portfolio_id: Union[int, str]) -> Optional[SavedPortfolio]:
        url = f"{self.base_url}/portfolios/{portfolio_id}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error fetching saved portfolio {portfolio_id}: {e}")
            return None

        if not response.ok:
            logger.warning(f"Saved portfolio {portfolio_id} not available (HTTP {response.status_code})")
            return None

        try:
            return SavedPortfolio.model_validate(response.json())
        except ValueError as e:
            logger.error(f"Malformed saved portfolio {portfolio_id}: {e}")
            return None
