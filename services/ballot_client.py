# services/ballot_client.py
"""Client that drives a RankingEngine against the ballot API."""
import os
import logging
import requests
from typing import List, Dict, Optional

from services.ranking_engine import RankingEngine, RankItem

logger = logging.getLogger(__name__)


class BallotClientError(Exception):
    """Non-2xx response (or no response) from the ballot API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BallotClient:
    """Client for the poll's JSON API."""

    def __init__(self, base_url: str = None, session: requests.Session = None, timeout: int = 30):
        """
        Initialize ballot API client.

        Args:
            base_url: API root, e.g. http://localhost:5057 (if not provided, reads POLL_API_URL)
            session: requests.Session to reuse; keeps the login cookie between calls
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or os.getenv("POLL_API_URL", "http://localhost:5057")).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, endpoint: str, json: Dict = None) -> Dict:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {e}")
            raise BallotClientError(f"Could not reach {url}") from e

        if not response.ok:
            try:
                message = response.json().get("error") or response.reason
            except ValueError:
                message = response.reason
            logger.error(f"HTTP {response.status_code} from {method} {url}: {message}")
            raise BallotClientError(message, status_code=response.status_code)

        return response.json()

    def login(self, username: str, password: str) -> Dict:
        data = self._request("POST", "auth/login", json={"username": username, "password": password})
        return data.get("user", {})

    def fetch_teams(self) -> List[RankItem]:
        data = self._request("GET", "teams")
        return [RankItem.from_dict(t) for t in data.get("teams", [])]

    def load_engine(self, catalog: List[RankItem] = None) -> RankingEngine:
        """
        Fetch the saved draft and rebuild the slot/pool state from it.

        Args:
            catalog: Teams to rank (fetched from /teams if not provided)

        Returns:
            A RankingEngine reconciled against the saved rankings
        """
        if catalog is None:
            catalog = self.fetch_teams()
        data = self._request("GET", "ballot")
        rankings = data.get("rankings", [])
        logger.info(f"Loaded {len(rankings)} saved rankings")
        return RankingEngine.from_payload(catalog, rankings)

    def save(self, engine: RankingEngine) -> int:
        """Save the engine's current ranking as the draft. Returns the ballot id."""
        data = self._request("PUT", "ballot", json={"rankings": engine.to_payload()})
        return data["ballotId"]

    def submit(self, engine: RankingEngine) -> int:
        """Submit the engine's current ranking as the final ballot for the open period."""
        data = self._request("POST", "ballot", json={"rankings": engine.to_payload()})
        return data["ballotId"]
