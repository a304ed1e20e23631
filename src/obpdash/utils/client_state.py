"""Persisted client-visible state for obpdash.

The dashboard kept three things on the client: a readable token cookie,
a couple of local-storage flags, and the browser's cookie jar holding the
server's http-only session cookie. This module keeps the same state in a
YAML file per profile (~/.obpdash/<profile>/state.yaml) so a session
survives between CLI invocations.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

import httpx
import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Local-storage keys
LOGGED_OUT_FLAG = "logged_out"
AUTHENTICATED_FLAG = "obp_authenticated"
LAST_USERNAME = "last_username"


class ClientCookie(BaseModel):
    """A cookie the client itself can read and write."""

    name: str
    value: str
    path: str | None = Field(default="/", description="None means the default path")
    expires: datetime
    same_site: Literal["Strict", "Lax", "None"] = "Strict"
    secure: bool = False

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires


class JarCookie(BaseModel):
    """A cookie set by a server response, including http-only ones."""

    name: str
    value: str
    domain: str = ""
    path: str = "/"


class ClientState(BaseModel):
    """Everything the client persists between page loads."""

    cookies: list[ClientCookie] = Field(default_factory=list)
    local_storage: dict[str, str] = Field(default_factory=dict)
    jar: list[JarCookie] = Field(default_factory=list)

    def get_cookie(self, name: str, now: datetime | None = None) -> str | None:
        """Return the value of the first live cookie with this name."""
        for cookie in self.cookies:
            if cookie.name == name and not cookie.is_expired(now):
                return cookie.value
        return None

    def set_cookie(self, cookie: ClientCookie) -> None:
        """Add a cookie, replacing any existing one with the same name and path."""
        self.remove_cookie(cookie.name, cookie.path)
        self.cookies.append(cookie)

    def remove_cookie(self, name: str, path: str | None = "/") -> None:
        self.cookies = [
            c for c in self.cookies if not (c.name == name and c.path == path)
        ]

    def flag(self, key: str) -> bool:
        return self.local_storage.get(key) == "true"

    def set_flag(self, key: str, value: bool) -> None:
        if value:
            self.local_storage[key] = "true"
        else:
            self.local_storage.pop(key, None)


class ClientStateStore:
    """Loads and saves ClientState as YAML.

    The loaded state is kept in memory on ``state``; callers mutate it and
    call ``save()``. Reads never raise: an unreadable file yields an empty
    state. Writes raise ``OSError`` or ``yaml.YAMLError`` so callers decide
    whether a failed write matters.
    """

    def __init__(self, path: Path):
        self.path = path
        self.state = self.load()

    def load(self) -> ClientState:
        """Load client state from disk.

        Returns:
            ClientState: The stored state, or an empty one if missing or unreadable
        """
        if not self.path.exists():
            logger.debug(f"Client state file not found: {self.path}")
            return ClientState()

        try:
            with open(self.path) as f:
                raw_data = yaml.safe_load(f)
            return ClientState.model_validate(raw_data if isinstance(raw_data, dict) else {})
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.warning(f"Failed to load client state from {self.path}: {e}")
            return ClientState()

    def save(self) -> None:
        """Write the in-memory state to disk.

        Raises:
            OSError: If unable to write the state file
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(
                self.state.model_dump(mode="json"),
                f,
                default_flow_style=False,
                sort_keys=False,
            )
        self.path.chmod(0o600)
        logger.debug(f"Saved client state to {self.path}")


def restore_jar(state: ClientState, cookies: httpx.Cookies) -> None:
    """Load persisted server cookies into an httpx cookie jar."""
    for cookie in state.jar:
        cookies.set(cookie.name, cookie.value, domain=cookie.domain, path=cookie.path)


def capture_jar(state: ClientState, cookies: httpx.Cookies) -> None:
    """Replace the persisted server cookies with the jar's current contents."""
    state.jar = [
        JarCookie(
            name=c.name,
            value=c.value or "",
            domain=c.domain,
            path=c.path,
        )
        for c in cookies.jar
    ]
