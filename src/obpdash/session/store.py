"""Session Store: the current credential and its client-visible cookie.

The in-memory session is authoritative for the lifetime of the process.
The client-visible cookie is a mirror that lets the next process pick the
session back up; failing to write or remove it is logged and ignored.
"""

import logging
from datetime import UTC, datetime, timedelta

import yaml

from ..logging.config import token_prefix
from ..utils.client_state import (
    AUTHENTICATED_FLAG,
    ClientCookie,
    ClientStateStore,
)
from .credential import (
    COOKIE_DELEGATED,
    EMPTY_SESSION,
    BearerToken,
    CookieDelegated,
    EstablishedVia,
    Session,
)

logger = logging.getLogger(__name__)

# Every path the token cookie has ever been written under
COOKIE_PATH_VARIANTS: tuple[str | None, ...] = (None, "/", "/api")


class SessionStore:
    """Holds the current credential and mirrors it into a client cookie."""

    def __init__(
        self,
        client_state: ClientStateStore,
        cookie_name: str = "obp_token",
        cookie_days: int = 7,
        secure: bool = False,
    ):
        self.client_state = client_state
        self.cookie_name = cookie_name
        self.cookie_days = cookie_days
        self.secure = secure
        self._session: Session = EMPTY_SESSION

    @property
    def session(self) -> Session:
        return self._session

    def has_credential(self) -> bool:
        """True iff a non-empty credential is held in memory."""
        return bool(self._session.credential)

    def set_credential(
        self,
        token: str | CookieDelegated | None,
        established_via: EstablishedVia = "memory",
    ) -> None:
        """Store or clear the current credential.

        Args:
            token: A bearer token, the cookie-delegated sentinel, or None/"" to clear
            established_via: How the credential was obtained
        """
        if not token:
            self.clear()
            return

        if isinstance(token, CookieDelegated):
            self.adopt_delegated()
            return

        self._session = Session(BearerToken(token), established_via)
        logger.info(f"Token set ({established_via}): {token_prefix(token)}")
        self.write_client_cookie(token)

    def adopt_client_cookie(self) -> bool:
        """Load the credential from the client-visible cookie without rewriting it.

        Returns:
            bool: True if a live token cookie was found
        """
        token = self.read_client_cookie()
        if not token:
            return False
        self._session = Session(BearerToken(token), "cookie")
        logger.info(f"Token loaded from cookie: {token_prefix(token)}")
        return True

    def adopt_delegated(self) -> None:
        """Trust the server's http-only cookie; no readable token is kept."""
        self._session = Session(COOKIE_DELEGATED, "probe")
        logger.info("Session delegated to http-only cookie")
        state = self.client_state.state
        state.set_flag(AUTHENTICATED_FLAG, True)
        self._persist("save authenticated flag")

    def clear(self) -> None:
        """Drop the in-memory credential and every copy of the token cookie."""
        self._session = EMPTY_SESSION
        logger.info("Clearing authentication token")
        state = self.client_state.state
        for path in COOKIE_PATH_VARIANTS:
            state.remove_cookie(self.cookie_name, path)
        state.set_flag(AUTHENTICATED_FLAG, False)
        self._persist("remove token cookie")

    def read_client_cookie(self) -> str | None:
        """Return the token from the client-visible cookie, if present and live."""
        return self.client_state.state.get_cookie(self.cookie_name)

    def write_client_cookie(self, token: str) -> None:
        """Write the token cookie: 7-day expiry, SameSite=Strict, Secure in production."""
        cookie = ClientCookie(
            name=self.cookie_name,
            value=token,
            path="/",
            expires=datetime.now(UTC) + timedelta(days=self.cookie_days),
            same_site="Strict",
            secure=self.secure,
        )
        state = self.client_state.state
        state.set_cookie(cookie)
        state.set_flag(AUTHENTICATED_FLAG, True)
        self._persist("save token cookie")

    def _persist(self, action: str) -> None:
        try:
            self.client_state.save()
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to {action}: {e}")
