"""HTTP utilities for the dataset importer.

Provides:
- SessionManager: a pooled requests.Session (no retries)
- fetch_json(): GET a URL and decode its JSON body, raising FetchError
"""

import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter

from utils.errors import FetchError

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages an HTTP session with connection pooling.

    Retries are disabled: a failed import is reported, never repeated.
    """

    def __init__(self, pool_connections: int = 4, pool_maxsize: int = 4):
        """Initialize session manager.

        Args:
            pool_connections: Number of connection pools to cache
            pool_maxsize: Maximum number of connections per pool
        """
        self.pool_connections = pool_connections
        self.pool_maxsize = pool_maxsize
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Get or create the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            adapter = HTTPAdapter(
                max_retries=0,
                pool_connections=self.pool_connections,
                pool_maxsize=self.pool_maxsize,
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)
        return self._session

    def close(self) -> None:
        """Close the session and release resources."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def fetch_json(url: str, session: Optional[requests.Session] = None,
               timeout: float = 30.0) -> Any:
    """GET ``url`` and return its decoded JSON body.

    Args:
        url: Resource to fetch
        session: Optional requests session (a bare requests.get otherwise)
        timeout: Connect/read timeout in seconds

    Raises:
        FetchError: On connection errors, timeouts, non-2xx responses or a
            body that is not valid JSON.
    """
    getter = session.get if session is not None else requests.get
    logger.info("fetching %s timeout=%.1fs", url, timeout)
    try:
        resp = getter(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch data from {url}: {exc}") from exc
    try:
        return resp.json()
    except ValueError as exc:
        raise FetchError(f"Response from {url} is not valid JSON") from exc
