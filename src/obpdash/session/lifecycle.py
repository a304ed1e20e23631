"""Session Lifecycle Controller: start-up authentication, login and logout."""

import logging
from dataclasses import dataclass

import yaml

from ..client.api import BankingApi
from ..errors import AuthenticationError, BankingError
from ..sync.cache import ResourceCache
from ..sync.orchestrator import DataSyncOrchestrator, SyncResult
from ..utils.client_state import LAST_USERNAME, LOGGED_OUT_FLAG
from .store import SessionStore
from .verifier import SessionVerifier

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/login"
DASHBOARD_ROUTE = "/dashboard"


@dataclass(frozen=True)
class LifecycleOutcome:
    """What ``initialize()`` decided.

    Attributes:
        authenticated: Whether a session was established
        redirect_to: Route the caller should navigate to, if any
        result: The sync result when data was loaded
        error: Message of a non-authentication sync failure
    """

    authenticated: bool
    redirect_to: str | None = None
    result: SyncResult | None = None
    error: str | None = None


class SessionLifecycle:
    """Decides at start-up whether we are signed in, and handles sign-in/out."""

    def __init__(
        self,
        store: SessionStore,
        verifier: SessionVerifier,
        api: BankingApi,
        cache: ResourceCache,
        orchestrator: DataSyncOrchestrator,
    ):
        self.store = store
        self.verifier = verifier
        self.api = api
        self.cache = cache
        self.orchestrator = orchestrator
        self.authenticated = False
        self._outcome: LifecycleOutcome | None = None

    @property
    def last_username(self) -> str | None:
        """Username of the last successful login, for display only."""
        return self.store.client_state.state.local_storage.get(LAST_USERNAME)

    async def initialize(
        self, on_login_surface: bool = False, with_sync: bool = True
    ) -> LifecycleOutcome:
        """Establish the session once per application load.

        Args:
            on_login_surface: True when called from the login screen; clears the
                logged-out marker and never redirects back to login
            with_sync: Run the data sync once authenticated

        Returns:
            LifecycleOutcome: The authentication verdict and any redirect
        """
        if self._outcome is not None:
            return self._outcome

        state = self.store.client_state.state
        if on_login_surface and state.flag(LOGGED_OUT_FLAG):
            logger.info("On login page, clearing logout flag")
            state.set_flag(LOGGED_OUT_FLAG, False)
            self._save_state()

        logger.info("Starting authentication check...")
        authenticated = self.store.has_credential() or await self.verifier.probe()

        if not authenticated:
            logger.info("No valid authentication found")
            self.authenticated = False
            outcome = LifecycleOutcome(
                authenticated=False,
                redirect_to=None if on_login_surface else LOGIN_ROUTE,
            )
            self._outcome = outcome
            return outcome

        self.authenticated = True
        redirect = DASHBOARD_ROUTE if on_login_surface else None
        outcome = LifecycleOutcome(authenticated=True, redirect_to=redirect)

        if with_sync:
            try:
                result = await self.orchestrator.sync()
                outcome = LifecycleOutcome(True, redirect, result=result)
            except AuthenticationError:
                logger.warning("Session rejected while loading data")
                self.authenticated = False
                outcome = LifecycleOutcome(
                    authenticated=False,
                    redirect_to=None if on_login_surface else LOGIN_ROUTE,
                )
            except BankingError as e:
                outcome = LifecycleOutcome(True, redirect, error=str(e))

        self._outcome = outcome
        return outcome

    async def login(self, username: str, password: str) -> None:
        """Exchange credentials for a token and adopt it.

        Does not sync; callers sequence that themselves.

        Raises:
            AuthenticationError: If the credentials are rejected
            ConfigurationError: If login is not possible with this configuration
            RequestError: On transport failures or malformed replies
        """
        state = self.store.client_state.state
        state.set_flag(LOGGED_OUT_FLAG, False)

        try:
            token = await self.api.login(username, password)
        except BankingError:
            self.authenticated = False
            self._save_state()
            raise

        self.store.set_credential(token)
        if self.store.read_client_cookie() != token:
            logger.info("Setting fallback client-side cookie")
            self.store.write_client_cookie(token)

        state.local_storage[LAST_USERNAME] = username
        self._save_state()
        self.authenticated = True
        self.orchestrator.clear_cooldown()
        self._outcome = LifecycleOutcome(authenticated=True)

    async def logout(self) -> None:
        """Sign out locally and remotely and leave a logged-out marker.

        Local cleanup always completes; the remote call is best-effort.
        """
        self.orchestrator.reset()
        self.authenticated = False
        self.cache.invalidate_all()
        self.store.clear()

        try:
            await self.api.logout()
        except BankingError as e:
            logger.warning(f"Error during logout API call: {e}")

        self.store.client_state.state.set_flag(LOGGED_OUT_FLAG, True)
        self._save_state()
        self._outcome = None
        logger.info("Logout completed")

    def _save_state(self) -> None:
        try:
            self.store.client_state.save()
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save client state: {e}")
