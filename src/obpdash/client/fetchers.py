"""Endpoint layouts for the two ways of reaching the banking API.

The dashboard either talked to OBP directly (server side, holding the
consumer key) or went through its own proxy routes (client side, relying on
an http-only cookie). Each layout is one Fetcher implementation, picked once
when the session context is built.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..config import ObpDashSettings
from ..errors import AuthenticationError, ConfigurationError, RequestError

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}


def error_message(response: httpx.Response, default: str) -> str:
    """Pull a human message out of an error payload, if it has one."""
    try:
        payload = response.json()
    except ValueError:
        return default
    if isinstance(payload, dict):
        for key in ("message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return default


class Fetcher(ABC):
    """Where each logical resource lives and how credentials are presented."""

    name: str = "fetcher"

    def __init__(self, base_url: str):
        self.base_url = base_url

    @abstractmethod
    def banks_path(self) -> str: ...

    @abstractmethod
    def accounts_path(self, bank_id: str) -> str: ...

    @abstractmethod
    def transactions_path(self, bank_id: str, account_id: str, view_id: str) -> str: ...

    @abstractmethod
    def probe_request(self) -> tuple[str, dict[str, str]]:
        """Path and query parameters of the "who am I" probe."""

    @abstractmethod
    def refresh_request(self) -> tuple[str, dict[str, str]]:
        """Path and query parameters of the last-resort refresh probe."""

    @abstractmethod
    def probe_accepts(self, response: httpx.Response) -> bool:
        """Whether a 2xx probe response means we are authenticated."""

    def authorization_header(self, token: str) -> str:
        return f'DirectLogin token="{token}"'

    @abstractmethod
    def login_request(self, username: str, password: str) -> dict[str, Any]:
        """Keyword arguments for the POST that exchanges credentials for a token."""

    async def exchange_credentials(
        self, http: httpx.AsyncClient, username: str, password: str
    ) -> str:
        """Trade a username and password for a token.

        Raises:
            AuthenticationError: If the credentials are rejected
            ConfigurationError: If the exchange cannot be attempted
            RequestError: On transport failures or malformed replies
        """
        request = self.login_request(username, password)
        try:
            response = await http.post(**request)
        except httpx.HTTPError as e:
            raise RequestError(f"Login request failed: {e}") from e

        if not response.is_success:
            message = error_message(response, "Authentication failed")
            if response.status_code in (400, 401, 403):
                raise AuthenticationError(message, body=response.text)
            raise RequestError(message, response.status_code, response.text)

        token = _token_from(response)
        if not token:
            raise RequestError("No token received in response", response.status_code)
        return token

    @abstractmethod
    async def end_remote_session(self, http: httpx.AsyncClient) -> None:
        """Ask the server to forget the session (best-effort)."""

    def fallback_probe_request(self) -> tuple[str, dict[str, str]]:
        """A second authenticated resource used when the probe is inconclusive."""
        return self.banks_path(), {}


class ServerSideFetcher(Fetcher):
    """Talks to the OBP API directly using DirectLogin."""

    name = "server"

    def __init__(self, base_url: str, api_version: str, consumer_key: str | None):
        super().__init__(base_url)
        self.api_version = api_version
        self.consumer_key = consumer_key

    @property
    def _prefix(self) -> str:
        return f"/obp/{self.api_version}"

    def banks_path(self) -> str:
        return f"{self._prefix}/banks"

    def accounts_path(self, bank_id: str) -> str:
        return f"{self._prefix}/banks/{bank_id}/accounts"

    def transactions_path(self, bank_id: str, account_id: str, view_id: str) -> str:
        return (
            f"{self._prefix}/banks/{bank_id}/accounts/{account_id}/{view_id}/transactions"
        )

    def probe_request(self) -> tuple[str, dict[str, str]]:
        return f"{self._prefix}/users/current", {}

    def refresh_request(self) -> tuple[str, dict[str, str]]:
        # OBP has no refresh endpoint; re-asking who we are is the closest thing
        return self.probe_request()

    def probe_accepts(self, response: httpx.Response) -> bool:
        return response.is_success

    def login_request(self, username: str, password: str) -> dict[str, Any]:
        if not self.consumer_key:
            raise ConfigurationError("Consumer key is not configured")

        auth_string = (
            f'DirectLogin username="{username}",password="{password}",'
            f'consumer_key="{self.consumer_key}"'
        )
        logger.debug("Making DirectLogin request to /my/logins/direct")
        return {
            "url": "/my/logins/direct",
            "headers": {"Authorization": auth_string, "Content-Type": "application/json"},
        }

    async def end_remote_session(self, http: httpx.AsyncClient) -> None:
        # DirectLogin tokens are not revocable through the API
        logger.debug("No remote logout for DirectLogin sessions")


class ClientSideFetcher(Fetcher):
    """Talks to the dashboard's /api proxy routes, relying on its cookie."""

    name = "client"

    def banks_path(self) -> str:
        return "/api/banks"

    def accounts_path(self, bank_id: str) -> str:
        return f"/api/accounts/{bank_id}"

    def transactions_path(self, bank_id: str, account_id: str, view_id: str) -> str:
        return f"/api/transactions/{bank_id}/{account_id}/{view_id}"

    def probe_request(self) -> tuple[str, dict[str, str]]:
        return "/api/test-connection", {"client": "true"}

    def refresh_request(self) -> tuple[str, dict[str, str]]:
        return "/api/test-connection", {"client": "true", "refresh": "true"}

    def probe_accepts(self, response: httpx.Response) -> bool:
        if not response.is_success:
            return False
        payload: Any = response.json()
        return (
            isinstance(payload, dict)
            and payload.get("success") is True
            and payload.get("authenticated") is True
        )

    def login_request(self, username: str, password: str) -> dict[str, Any]:
        return {
            "url": "/api/auth/login",
            "json": {"username": username, "password": password},
        }

    async def end_remote_session(self, http: httpx.AsyncClient) -> None:
        response = await http.post("/api/auth/logout", headers=NO_CACHE_HEADERS)
        logger.info(f"Logout API response: {response.status_code}")
        if not response.is_success:
            raise RequestError("Logout failed", response.status_code, response.text)


def _token_from(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    token = payload.get("token") if isinstance(payload, dict) else None
    return token if isinstance(token, str) and token else None


def build_fetcher(settings: ObpDashSettings) -> Fetcher:
    """Pick the fetcher for the configured API mode.

    Raises:
        ConfigurationError: If the selected mode has no URL configured
    """
    settings.validate_required_endpoints()
    api = settings.api
    if api.mode == "client":
        if not api.dashboard_url:
            raise ConfigurationError("Dashboard URL is not configured")
        return ClientSideFetcher(api.dashboard_url)
    if not api.base_url:
        raise ConfigurationError("API base URL is not configured")
    return ServerSideFetcher(api.base_url, api.api_version, api.consumer_key)
