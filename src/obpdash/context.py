"""Session context: builds and owns every collaborator for one client.

The cache and session store are per-context rather than module globals, so
each context (one CLI invocation, one test) is isolated and the
orchestrator's single-flight guard applies to everything sharing it.
"""

import logging
from types import TracebackType

import httpx
import yaml

from .client.api import BankingApi
from .client.fetchers import build_fetcher
from .client.gateway import AuthenticatedGateway
from .config import ObpDashSettings, get_settings
from .session.lifecycle import SessionLifecycle
from .session.store import SessionStore
from .session.verifier import SessionVerifier
from .sync.cache import ResourceCache
from .sync.orchestrator import DataSyncOrchestrator
from .sync.progress import ProgressBus
from .utils.client_state import ClientStateStore, capture_jar, restore_jar

logger = logging.getLogger(__name__)


class SessionContext:
    """Dependency-injection root for the session and sync core.

    Example:
        async with SessionContext() as ctx:
            outcome = await ctx.lifecycle.initialize()
    """

    def __init__(
        self,
        settings: ObpDashSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client_state: ClientStateStore | None = None,
    ):
        """Wire up the collaborators.

        Args:
            settings: Configuration to use; defaults to the current profile's
            transport: Optional HTTP transport (tests pass ``httpx.MockTransport``)
            client_state: Optional persisted state store

        Raises:
            ConfigurationError: If the selected API mode has no URL configured
        """
        self.settings = settings or get_settings()
        self.fetcher = build_fetcher(self.settings)
        self.client_state = client_state or ClientStateStore(self.settings.state_path)

        self.http = httpx.AsyncClient(
            base_url=self.fetcher.base_url,
            timeout=self.settings.api.timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        restore_jar(self.client_state.state, self.http.cookies)

        self.store = SessionStore(
            self.client_state,
            cookie_name=self.settings.session.cookie_name,
            cookie_days=self.settings.session.cookie_days,
            secure=self.settings.is_production,
        )
        self.verifier = SessionVerifier(self.http, self.fetcher, self.store)
        self.gateway = AuthenticatedGateway(
            self.http, self.fetcher, self.store, self.verifier
        )
        self.api = BankingApi(self.http, self.fetcher, self.gateway)
        self.cache = ResourceCache(self.settings.cache.ttl_seconds)
        self.progress = ProgressBus()
        self.orchestrator = DataSyncOrchestrator(
            self.api,
            self.cache,
            self.store,
            self.verifier,
            self.progress,
            self.settings.sync,
        )
        self.lifecycle = SessionLifecycle(
            self.store, self.verifier, self.api, self.cache, self.orchestrator
        )
        logger.debug(
            f"Session context ready ({self.fetcher.name} mode, {self.fetcher.base_url})"
        )

    async def aclose(self) -> None:
        """Persist the server cookie jar and close the HTTP client."""
        capture_jar(self.client_state.state, self.http.cookies)
        try:
            self.client_state.save()
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save client state: {e}")
        await self.http.aclose()

    async def __aenter__(self) -> "SessionContext":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
