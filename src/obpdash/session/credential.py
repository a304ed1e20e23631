"""Credential variants and the session record.

A session is held either by a bearer token we can read, or by an http-only
cookie the client cannot read but the server honors. The second case is an
explicit variant rather than a placeholder token string, so no code path can
mistake it for a real credential and put it in an Authorization header.
"""

from dataclasses import dataclass
from typing import Literal

EstablishedVia = Literal["memory", "cookie", "probe", "none"]


@dataclass(frozen=True)
class NoCredential:
    """Nothing is held; the next request must try to establish trust."""

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class BearerToken:
    """A DirectLogin token readable by the client."""

    token: str

    def __bool__(self) -> bool:
        return bool(self.token)

    def __repr__(self) -> str:
        return f"BearerToken(token={self.token[:5]!r}...)"


@dataclass(frozen=True)
class CookieDelegated:
    """Trust is delegated to an http-only cookie the server set."""

    def __bool__(self) -> bool:
        return True


Credential = NoCredential | BearerToken | CookieDelegated

NO_CREDENTIAL = NoCredential()
COOKIE_DELEGATED = CookieDelegated()


@dataclass(frozen=True)
class Session:
    """The authenticated identity context for the current client."""

    credential: Credential = NO_CREDENTIAL
    established_via: EstablishedVia = "none"

    def __post_init__(self) -> None:
        if self.established_via == "probe" and not isinstance(
            self.credential, CookieDelegated
        ):
            raise ValueError("A probe-established session must be cookie-delegated")
        if self.established_via == "none" and self.credential:
            raise ValueError("A credential needs to say how it was established")

    @property
    def bearer_token(self) -> str | None:
        """The token to send in an Authorization header, if any."""
        if isinstance(self.credential, BearerToken) and self.credential.token:
            return self.credential.token
        return None

    @property
    def is_cookie_delegated(self) -> bool:
        return isinstance(self.credential, CookieDelegated)


EMPTY_SESSION = Session()
