"""Shared pytest fixtures for obpdash tests.

This module provides settings isolation, a fake upstream banking API served
through ``httpx.MockTransport``, and a factory for session contexts wired to
that fake.
"""

import json
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

from obpdash.config import (
    ApiConfig,
    ObpDashSettings,
    SessionConfig,
    SyncConfig,
    clear_settings_cache,
    set_current_profile,
)
from obpdash.context import SessionContext
from obpdash.utils.client_state import ClientStateStore

DASHBOARD_URL = "http://dashboard.test"
VALID_TOKEN = "tok-1234567890"


class FakeObp:
    """In-memory stand-in for the dashboard's /api proxy routes.

    ``session_valid`` plays the server's http-only cookie: while it is True,
    requests without an Authorization header are accepted.
    """

    def __init__(self) -> None:
        self.session_valid = False
        self.valid_tokens = {VALID_TOKEN}
        self.password = "secret"
        self.issued_token = VALID_TOKEN
        self.logout_status = 200
        self.banks: Any = [{"id": "rbs", "short_name": "RBS"}]
        self.accounts: Any = [
            {
                "id": "a1",
                "label": "Main",
                "bank_id": "rbs",
                "balance": {"amount": "100.00", "currency": "USD"},
                "views_available": [{"id": "owner"}],
            }
        ]
        # account id -> payload, or an int status code to fail with
        self.transactions: dict[str, Any] = {}
        # path -> status code forced for every request to it
        self.failures: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def authorized(self, request: httpx.Request) -> bool:
        auth = request.headers.get("authorization")
        if auth:
            return any(auth == f'DirectLogin token="{t}"' for t in self.valid_tokens)
        return self.session_valid

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.failures:
            return httpx.Response(self.failures[path], json={"message": "forced failure"})

        if path == "/api/auth/login":
            body = json.loads(request.content or b"{}")
            if body.get("password") != self.password:
                return httpx.Response(401, json={"message": "Invalid credentials"})
            self.session_valid = True
            return httpx.Response(200, json={"token": self.issued_token})

        if path == "/api/auth/logout":
            if self.logout_status < 400:
                self.session_valid = False
            return httpx.Response(self.logout_status, json={"success": True})

        if path == "/api/test-connection":
            return httpx.Response(
                200,
                json={"success": True, "authenticated": self.authorized(request)},
            )

        if not self.authorized(request):
            return httpx.Response(401, json={"error": "Not authenticated"})

        if path == "/api/banks":
            return httpx.Response(200, json=self.banks)

        if path.startswith("/api/accounts/"):
            return httpx.Response(200, json=self.accounts)

        if path.startswith("/api/transactions/"):
            account_id = path.split("/")[4]
            payload = self.transactions.get(account_id, [])
            if isinstance(payload, int):
                return httpx.Response(payload, json={"message": "upstream error"})
            return httpx.Response(200, json=payload)

        return httpx.Response(404, json={"message": f"No route for {path}"})


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Reset cached settings and drop ambient configuration variables."""
    for key in list(os.environ):
        if key.upper().startswith("OBPDASH_"):
            monkeypatch.delenv(key, raising=False)
    for key in ("API_BASE_URL", "OBP_CONSUMER_KEY", "OBP_API_VERSION"):
        monkeypatch.delenv(key, raising=False)

    clear_settings_cache()
    set_current_profile("default")
    yield
    clear_settings_cache()
    set_current_profile("default")


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state.yaml"


@pytest.fixture
def obp_settings(state_path: Path) -> ObpDashSettings:
    """Client-mode settings pointed at the fake dashboard."""
    return ObpDashSettings(
        api=ApiConfig(mode="client", dashboard_url=DASHBOARD_URL),
        session=SessionConfig(state_path=state_path),
        sync=SyncConfig(retry_cooldown_seconds=0),
    )


@pytest.fixture
def fake_obp() -> FakeObp:
    return FakeObp()


@pytest.fixture
def make_context(
    obp_settings: ObpDashSettings, fake_obp: FakeObp, state_path: Path
) -> Callable[..., SessionContext]:
    """Build a SessionContext backed by the fake upstream.

    Each call reloads client state from disk, like a fresh application load.
    """

    def factory(settings: ObpDashSettings | None = None) -> SessionContext:
        return SessionContext(
            settings or obp_settings,
            transport=httpx.MockTransport(fake_obp.handler),
            client_state=ClientStateStore(state_path),
        )

    return factory


@pytest.fixture
def valid_token() -> str:
    return VALID_TOKEN
