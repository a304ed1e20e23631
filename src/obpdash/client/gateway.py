"""Authenticated Request Gateway.

Every call to a banking resource goes through ``AuthenticatedGateway.request``.
It attaches the credential, defeats HTTP caching, and recovers from a 401 at
most once per logical call: clear the session, re-verify (or fall back to
the refresh probe), then retry the original request a single time.
"""

import logging
from typing import Any

import httpx

from ..errors import AuthenticationError, RequestError
from ..session.store import SessionStore
from ..session.verifier import SessionVerifier, cache_buster
from .fetchers import NO_CACHE_HEADERS, Fetcher

logger = logging.getLogger(__name__)


class AuthenticatedGateway:
    """Wraps outbound calls with token attachment and bounded 401 recovery."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        fetcher: Fetcher,
        store: SessionStore,
        verifier: SessionVerifier,
    ):
        self.http = http
        self.fetcher = fetcher
        self.store = store
        self.verifier = verifier

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any | None = None,
    ) -> Any:
        """Issue an authenticated request and return the decoded JSON body.

        Args:
            endpoint: Path relative to the fetcher's base URL
            method: HTTP method
            body: Optional JSON-serializable request body

        Returns:
            Any: The parsed JSON payload

        Raises:
            AuthenticationError: If the call is still unauthorized after recovery
            RequestError: On any other non-2xx status or transport failure
        """
        if not self.store.has_credential():
            await self.verifier.probe()

        recovered = False
        while True:
            response = await self._send(endpoint, method, body)

            if response.status_code != 401:
                break

            if recovered:
                logger.warning(f"Still unauthorized after recovery: {method} {endpoint}")
                raise AuthenticationError(body=response.text)

            logger.warning("Unauthorized API request, clearing token")
            self.store.clear()
            recovered = True
            if await self.verifier.probe():
                logger.info(f"Session re-verified, retrying {method} {endpoint}")
                continue
            if await self.verifier.refresh():
                logger.info(f"Session refreshed, retrying {method} {endpoint}")
                continue
            raise AuthenticationError(body=response.text)

        if not response.is_success:
            logger.error(f"API request failed: {response.status_code} {method} {endpoint}")
            raise RequestError("Request failed", response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as e:
            raise RequestError(
                "Response was not valid JSON", response.status_code, response.text
            ) from e

        logger.debug(f"Request successful: {method} {endpoint}")
        return payload

    async def _send(self, endpoint: str, method: str, body: Any | None) -> httpx.Response:
        headers = {"Content-Type": "application/json", **NO_CACHE_HEADERS}
        token = self.store.session.bearer_token
        if token:
            headers["Authorization"] = self.fetcher.authorization_header(token)
            logger.debug(f"Request with token: {method} {endpoint}")
        elif self.store.session.is_cookie_delegated:
            logger.debug(f"Request with http-only cookie: {method} {endpoint}")
        else:
            logger.debug(f"Request without token: {method} {endpoint}")

        try:
            return await self.http.request(
                method,
                endpoint,
                params={"_": cache_buster()},
                headers=headers,
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error(f"API request failed: {method} {endpoint}: {e}")
            raise RequestError(f"Request to {endpoint} failed: {e}") from e
