"""Banking API facade used by the sync pipeline and the lifecycle controller."""

import logging
from typing import Any

import httpx

from ..errors import RequestError
from .fetchers import Fetcher
from .gateway import AuthenticatedGateway

logger = logging.getLogger(__name__)


class BankingApi:
    """Resource calls go through the gateway; login and logout do not.

    Credential exchange and remote logout are unauthenticated by nature, so
    they use the raw HTTP client and never trigger 401 recovery.
    """

    def __init__(
        self, http: httpx.AsyncClient, fetcher: Fetcher, gateway: AuthenticatedGateway
    ):
        self.http = http
        self.fetcher = fetcher
        self.gateway = gateway

    async def get_banks(self) -> Any:
        logger.debug("Fetching banks from API")
        return await self.gateway.request(self.fetcher.banks_path())

    async def get_accounts(self, bank_id: str) -> Any:
        logger.debug(f"Fetching accounts for bank {bank_id}")
        return await self.gateway.request(self.fetcher.accounts_path(bank_id))

    async def get_transactions(self, bank_id: str, account_id: str, view_id: str) -> Any:
        logger.debug(f"Fetching transactions for {bank_id}/{account_id}/{view_id}")
        return await self.gateway.request(
            self.fetcher.transactions_path(bank_id, account_id, view_id)
        )

    async def login(self, username: str, password: str) -> str:
        """Exchange credentials for a token.

        Raises:
            AuthenticationError: If the credentials are rejected
            ConfigurationError: If the login cannot be attempted
            RequestError: On transport failures or malformed replies
        """
        logger.info(f"Attempting login for user: {username}")
        token = await self.fetcher.exchange_credentials(self.http, username, password)
        logger.info("Login successful, token received")
        return token

    async def logout(self) -> None:
        """Ask the server to end the session.

        Raises:
            RequestError: If the logout call fails
        """
        try:
            await self.fetcher.end_remote_session(self.http)
        except httpx.HTTPError as e:
            raise RequestError(f"Logout request failed: {e}") from e
