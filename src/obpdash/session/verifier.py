"""Session Verifier: establish trust when no token is held in memory.

The order is: a readable token cookie, then the "who am I" probe, then a
second authenticated resource for servers that enforce auth inconsistently.
A successful probe means the server honors an http-only cookie we cannot
read, so the session becomes cookie-delegated.
"""

import logging
import time

import httpx

from ..client.fetchers import NO_CACHE_HEADERS, Fetcher
from ..utils.client_state import LOGGED_OUT_FLAG
from .store import SessionStore

logger = logging.getLogger(__name__)


def cache_buster() -> str:
    """Millisecond timestamp used as the ``_`` query parameter."""
    return str(int(time.time() * 1000))


class SessionVerifier:
    """Probes the backing service to decide whether we are authenticated."""

    def __init__(self, http: httpx.AsyncClient, fetcher: Fetcher, store: SessionStore):
        self.http = http
        self.fetcher = fetcher
        self.store = store

    async def probe(self) -> bool:
        """Try every way of establishing trust, in order.

        Returns:
            bool: True if the store now holds a credential. Never raises.
        """
        if self.store.client_state.state.flag(LOGGED_OUT_FLAG):
            logger.info("Logged-out marker set, not probing for a session")
            return False

        if self.store.adopt_client_cookie():
            return True

        logger.info("No token found in client-side cookie")

        path, params = self.fetcher.probe_request()
        if await self._check(path, params, self.fetcher.probe_accepts):
            logger.info("Token verified via probe request")
            self.store.adopt_delegated()
            return True

        path, params = self.fetcher.fallback_probe_request()
        if await self._check(path, params, lambda r: r.is_success):
            logger.info(f"Token verified via {path}")
            self.store.adopt_delegated()
            return True

        logger.debug("No authentication token found")
        return False

    async def refresh(self) -> bool:
        """Last-resort recovery against the refresh endpoint. Never raises."""
        path, params = self.fetcher.refresh_request()
        if await self._check(path, params, self.fetcher.probe_accepts):
            logger.info("Authentication recovered via refresh endpoint")
            self.store.adopt_delegated()
            return True
        return False

    async def _check(self, path, params, accepts) -> bool:
        try:
            response = await self.http.get(
                path,
                params={**params, "_": cache_buster()},
                headers=NO_CACHE_HEADERS,
            )
            return bool(accepts(response))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Probe {path} failed: {e}")
            return False
