# src/replica_top/core/services/dashboard_fetch_service.py
import logging
import time
from typing import Optional

import requests

from dashboard_parser.model import ReplicaSnapshot
from dashboard_parser.services.dashboard_parse_service import parse_dashboard
from replica_top.core.managers.config_manager import config_manager

logger = logging.getLogger(__name__)


class DashboardFetchError(RuntimeError):
    """Raised when the dashboard page could not be retrieved."""


class DashboardFetchService:
    """
    Fetches the replica dashboard over HTTP.
    Uses one requests.Session so repeated refreshes reuse the connection.
    """

    def __init__(self, timeout: Optional[float] = None, user_agent: Optional[str] = None):
        self.timeout = float(timeout or config_manager.get_nested("session.time_out", 10))
        self.user_agent = user_agent or config_manager.get_nested("session.user_agent", "replica-top/0.1")
        self._session: Optional[requests.Session] = None

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({'User-Agent': self.user_agent})
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def fetch(self, url: str) -> str:
        """Returns the page body; raises DashboardFetchError on any transport or HTTP error."""
        start = time.perf_counter()
        try:
            response = self._get_session().get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise DashboardFetchError(f"HTTP status {e.response.status_code} from {url}") from e
        except requests.exceptions.RequestException as e:
            raise DashboardFetchError(f"Could not reach {url}: {e}") from e

        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("Fetched %s (%d bytes) in %.2f ms", url, len(response.text), elapsed)
        return response.text

    def fetch_snapshot(self, url: str) -> ReplicaSnapshot:
        """Fetches and parses in one go. May raise DashboardFetchError or DashboardParseError."""
        return parse_dashboard(self.fetch(url))
