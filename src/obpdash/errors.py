"""Error taxonomy for the obpdash session and sync core.

Authentication failures bubble to the top and force a session reset.
Request and configuration errors are surfaced with enough detail for
diagnostics. Malformed upstream data is never raised; the transformers
degrade it to safe defaults instead.
"""


class BankingError(Exception):
    """Base class for every error raised by obpdash."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


class AuthenticationError(BankingError):
    """The upstream rejected our credentials and recovery did not succeed."""

    def __init__(self, message: str = "Not authenticated", body: str | None = None):
        super().__init__(message, status=401)
        self.body = body


class ConfigurationError(BankingError):
    """Required endpoint configuration is missing. Never retried."""


class RequestError(BankingError):
    """A non-2xx response other than 401, or a transport failure."""

    def __init__(
        self, message: str, status: int | None = None, body: str | None = None
    ):
        super().__init__(message, status=status)
        self.body = body

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (HTTP {self.status})"


class SyncError(BankingError):
    """The sync pipeline could not produce a usable result."""


class NoBanksAvailableError(SyncError):
    def __init__(self) -> None:
        super().__init__("No banks available")


class InvalidAccountDataError(SyncError):
    def __init__(self) -> None:
        super().__init__("Failed to fetch valid account data")
