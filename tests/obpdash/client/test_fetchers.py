"""Tests for the server-side and client-side fetchers and the API facade."""

import asyncio
import json

import httpx
import pytest
from pytest_mock import MockerFixture

from obpdash.client.fetchers import (
    ClientSideFetcher,
    ServerSideFetcher,
    build_fetcher,
    error_message,
)
from obpdash.config import ApiConfig, ObpDashSettings
from obpdash.errors import AuthenticationError, ConfigurationError, RequestError

SERVER = "https://obp.test"
DASHBOARD = "http://dashboard.test"


def _exchange(fetcher, handler, username: str = "alice", password: str = "pw") -> str:
    async def scenario() -> str:
        async with httpx.AsyncClient(
            base_url=fetcher.base_url, transport=httpx.MockTransport(handler)
        ) as http:
            return await fetcher.exchange_credentials(http, username, password)

    return asyncio.run(scenario())


@pytest.mark.unit
class TestEndpointLayouts:
    """Each fetcher knows where the resources live."""

    def test_server_side_paths(self) -> None:
        fetcher = ServerSideFetcher(SERVER, "v5.1.0", "ck")

        assert fetcher.banks_path() == "/obp/v5.1.0/banks"
        assert fetcher.accounts_path("rbs") == "/obp/v5.1.0/banks/rbs/accounts"
        assert (
            fetcher.transactions_path("rbs", "a1", "owner")
            == "/obp/v5.1.0/banks/rbs/accounts/a1/owner/transactions"
        )
        assert fetcher.probe_request() == ("/obp/v5.1.0/users/current", {})
        assert fetcher.fallback_probe_request() == ("/obp/v5.1.0/banks", {})

    def test_client_side_paths(self) -> None:
        fetcher = ClientSideFetcher(DASHBOARD)

        assert fetcher.banks_path() == "/api/banks"
        assert fetcher.accounts_path("rbs") == "/api/accounts/rbs"
        assert fetcher.transactions_path("rbs", "a1", "owner") == (
            "/api/transactions/rbs/a1/owner"
        )
        assert fetcher.probe_request() == ("/api/test-connection", {"client": "true"})
        assert fetcher.refresh_request() == (
            "/api/test-connection",
            {"client": "true", "refresh": "true"},
        )

    def test_authorization_header(self) -> None:
        fetcher = ClientSideFetcher(DASHBOARD)
        assert fetcher.authorization_header("abc") == 'DirectLogin token="abc"'

    def test_client_probe_requires_both_flags(self) -> None:
        fetcher = ClientSideFetcher(DASHBOARD)
        ok = httpx.Response(200, json={"success": True, "authenticated": True})
        anonymous = httpx.Response(200, json={"success": True, "authenticated": False})
        failed = httpx.Response(500, json={"success": True, "authenticated": True})

        assert fetcher.probe_accepts(ok)
        assert not fetcher.probe_accepts(anonymous)
        assert not fetcher.probe_accepts(failed)


@pytest.mark.unit
class TestBuildFetcher:
    """The fetcher is chosen once from the configured mode."""

    def test_server_mode(self) -> None:
        settings = ObpDashSettings(
            api=ApiConfig(mode="server", base_url=SERVER, consumer_key="ck")
        )
        fetcher = build_fetcher(settings)
        assert isinstance(fetcher, ServerSideFetcher)
        assert fetcher.base_url == SERVER

    def test_client_mode(self) -> None:
        settings = ObpDashSettings(api=ApiConfig(mode="client", dashboard_url=DASHBOARD))
        assert isinstance(build_fetcher(settings), ClientSideFetcher)

    def test_missing_url(self) -> None:
        with pytest.raises(ConfigurationError):
            build_fetcher(ObpDashSettings(api=ApiConfig(mode="server")))

    @pytest.mark.parametrize("mode", ["server", "client"])
    def test_missing_url_checked_without_endpoint_validation(
        self, mode: str, mocker: MockerFixture
    ) -> None:
        mocker.patch.object(ObpDashSettings, "validate_required_endpoints")
        with pytest.raises(ConfigurationError, match="not configured"):
            build_fetcher(ObpDashSettings(api=ApiConfig(mode=mode)))


@pytest.mark.unit
class TestCredentialExchange:
    """Login through either layout."""

    def test_client_side_login(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/auth/login"
            assert json.loads(request.content) == {"username": "alice", "password": "pw"}
            return httpx.Response(200, json={"token": "tok-abc"})

        assert _exchange(ClientSideFetcher(DASHBOARD), handler) == "tok-abc"

    def test_server_side_direct_login_header(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/my/logins/direct"
            assert request.headers["authorization"] == (
                'DirectLogin username="alice",password="pw",consumer_key="ck"'
            )
            return httpx.Response(201, json={"token": "tok-direct"})

        fetcher = ServerSideFetcher(SERVER, "v5.1.0", "ck")
        assert _exchange(fetcher, handler) == "tok-direct"

    def test_server_side_requires_consumer_key(self) -> None:
        fetcher = ServerSideFetcher(SERVER, "v5.1.0", None)
        with pytest.raises(ConfigurationError):
            _exchange(fetcher, lambda request: httpx.Response(200))

    def test_rejected_credentials(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Invalid credentials"})

        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            _exchange(ClientSideFetcher(DASHBOARD), handler)

    def test_server_error_is_request_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, json={"error": "Bad gateway"})

        with pytest.raises(RequestError) as exc_info:
            _exchange(ClientSideFetcher(DASHBOARD), handler)
        assert exc_info.value.status == 502

    def test_missing_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True})

        with pytest.raises(RequestError, match="No token"):
            _exchange(ClientSideFetcher(DASHBOARD), handler)

    def test_error_message_fallback(self) -> None:
        assert error_message(httpx.Response(500, text="oops"), "default") == "default"
        assert error_message(httpx.Response(400, json={"error": "bad"}), "x") == "bad"


@pytest.mark.unit
class TestRemoteLogout:
    """Ending the remote session."""

    def test_client_side_logout_posts(self) -> None:
        seen: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"success": True})

        async def scenario() -> None:
            async with httpx.AsyncClient(
                base_url=DASHBOARD, transport=httpx.MockTransport(handler)
            ) as http:
                await ClientSideFetcher(DASHBOARD).end_remote_session(http)

        asyncio.run(scenario())
        assert seen == [("POST", "/api/auth/logout")]

    def test_client_side_logout_failure(self) -> None:
        async def scenario() -> None:
            async with httpx.AsyncClient(
                base_url=DASHBOARD,
                transport=httpx.MockTransport(lambda request: httpx.Response(500)),
            ) as http:
                await ClientSideFetcher(DASHBOARD).end_remote_session(http)

        with pytest.raises(RequestError):
            asyncio.run(scenario())

    def test_server_side_logout_is_local(self) -> None:
        async def scenario() -> None:
            async with httpx.AsyncClient(
                base_url=SERVER,
                transport=httpx.MockTransport(lambda request: httpx.Response(500)),
            ) as http:
                await ServerSideFetcher(SERVER, "v5.1.0", "ck").end_remote_session(http)

        asyncio.run(scenario())
