"""
Tests for the Hover record API client
"""

import json

import httpx
import pytest

from hover_ddns.errors import (
    AuthenticationError,
    DomainNotFoundError,
    InvalidAddressError,
    NotAuthenticatedError,
    RecordMissingError,
    RemoteRequestError,
)
from hover_ddns.hover import Authenticated, Cookie, HoverClient, Unauthenticated, validate_address
from hover_ddns.hover.client import _set_cookies
from hover_ddns.types import RecordType


class FakeHoverAPI:
    """In-memory stand-in for www.hover.com, recording every request"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.signin_status = 200
        self.session_cookies = ["hover_session=sess123; Path=/; HttpOnly"]
        self.login_status = 200
        self.auth_cookies = [
            "hoverauth=; Path=/; Expires=Thu, 01 Jan 1970 00:00:00 GMT",
            "hoverauth=auth456; Path=/; HttpOnly",
        ]
        self.domains_body: dict = {
            "succeeded": True,
            "domains": [
                {"id": "dom-other", "domain_name": "other.org"},
                {"id": "dom1", "domain_name": "example.com"},
            ],
        }
        self.records_body: dict = {
            "succeeded": True,
            "domains": [
                {
                    "entries": [
                        {"id": "r0", "name": "www", "type": "A", "content": "203.0.113.1"},
                        {"id": "r1", "name": "host", "type": "A", "content": "203.0.113.5"},
                        {"id": "r2", "name": "host", "type": "AAAA", "content": "2001:db8::5"},
                    ]
                }
            ],
        }
        self.domains_status = 200
        self.delete_status = 200
        self.create_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/signin":
            return httpx.Response(
                self.signin_status,
                headers=[("set-cookie", c) for c in self.session_cookies],
            )
        if request.method == "POST" and path == "/api/login":
            return httpx.Response(
                self.login_status,
                headers=[("set-cookie", c) for c in self.auth_cookies],
                json={"succeeded": self.login_status == 200},
            )
        if request.method == "GET" and path == "/api/domains/":
            return httpx.Response(self.domains_status, json=self.domains_body)
        if request.method == "GET" and path.endswith("/dns"):
            return httpx.Response(200, json=self.records_body)
        if request.method == "DELETE" and path.startswith("/api/dns/"):
            return httpx.Response(self.delete_status, json={"succeeded": True})
        if request.method == "POST" and path.endswith("/dns"):
            return httpx.Response(self.create_status, json={"succeeded": True})
        return httpx.Response(404)

    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def mutations(self) -> list[tuple[str, str]]:
        return [call for call in self.calls() if call[0] in ("POST", "DELETE") and call[1] != "/api/login"]


@pytest.fixture
def api():
    return FakeHoverAPI()


@pytest.fixture
async def client(api):
    hover_client = HoverClient(transport=httpx.MockTransport(api.handler))
    yield hover_client
    await hover_client.close()


@pytest.fixture
async def logged_in(client, api):
    await client.login("user", "secret")
    api.requests.clear()
    return client


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_collects_both_cookies(self, client, api):
        state = await client.login("user", "secret")

        assert isinstance(state, Authenticated)
        assert state.session.session_cookie.value == "sess123"
        # The empty hoverauth cookie must be ignored
        assert state.session.auth_cookie.value == "auth456"
        assert client.state is state

        assert api.calls() == [("GET", "/signin"), ("POST", "/api/login")]
        login_request = api.requests[1]
        assert json.loads(login_request.content) == {"username": "user", "password": "secret"}
        assert login_request.headers["content-type"] == "application/json"
        assert login_request.headers["cookie"] == "hover_session=sess123"

    @pytest.mark.asyncio
    async def test_second_login_does_not_authenticate_again(self, client, api):
        first = await client.login("user", "secret")
        second = await client.login("user", "secret")

        assert first is second
        assert api.calls().count(("POST", "/api/login")) == 1

    @pytest.mark.asyncio
    async def test_signin_page_error(self, client, api):
        api.signin_status = 503

        with pytest.raises(AuthenticationError, match="503"):
            await client.login("user", "secret")
        assert isinstance(client.state, Unauthenticated)

    @pytest.mark.asyncio
    async def test_missing_session_cookie(self, client, api):
        api.session_cookies = ["unrelated=1"]

        with pytest.raises(AuthenticationError, match="hover_session"):
            await client.login("user", "secret")
        assert api.calls() == [("GET", "/signin")]

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, client, api):
        api.login_status = 401

        with pytest.raises(AuthenticationError, match="401"):
            await client.login("user", "wrong")

    @pytest.mark.asyncio
    async def test_only_empty_auth_cookie(self, client, api):
        api.auth_cookies = ["hoverauth=; Path=/"]

        with pytest.raises(AuthenticationError, match="hoverauth"):
            await client.login("user", "secret")
        assert isinstance(client.state, Unauthenticated)

    @pytest.mark.asyncio
    async def test_cookie_attributes_and_quoting(self, client, api):
        api.session_cookies = [
            "tracking=abc; Path=/",
            'hover_session="sess789"; Path=/; Secure; HttpOnly; Expires=Thu, 01 Jan 2099 00:00:00 GMT',
        ]

        state = await client.login("user", "secret")

        assert state.session.session_cookie.value == "sess789"
        assert api.requests[1].headers["cookie"] == "hover_session=sess789"

    @pytest.mark.asyncio
    async def test_network_failure_is_authentication_error(self):
        def broken(request):
            raise httpx.ConnectError("connection refused", request=request)

        hover_client = HoverClient(transport=httpx.MockTransport(broken))
        with pytest.raises(AuthenticationError):
            await hover_client.login("user", "secret")
        await hover_client.close()


class TestLookups:
    @pytest.mark.asyncio
    async def test_requires_login(self, client, api):
        with pytest.raises(NotAuthenticatedError):
            await client.get_domain_id("example.com")
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_authenticated_requests_carry_both_cookies(self, logged_in, api):
        await logged_in.get_domain_id("example.com")

        cookie_header = api.requests[0].headers["cookie"]
        assert "hover_session=sess123" in cookie_header
        assert "hoverauth=auth456" in cookie_header

    @pytest.mark.asyncio
    async def test_get_domain_id(self, logged_in):
        assert await logged_in.get_domain_id("example.com") == "dom1"

    @pytest.mark.asyncio
    async def test_domain_not_found(self, logged_in):
        with pytest.raises(DomainNotFoundError, match="missing.net"):
            await logged_in.get_domain_id("missing.net")

    @pytest.mark.asyncio
    async def test_domain_list_not_succeeded(self, logged_in, api):
        api.domains_body = {"succeeded": False}

        with pytest.raises(RemoteRequestError, match="Domain request failed"):
            await logged_in.get_domain_id("example.com")

    @pytest.mark.asyncio
    async def test_malformed_domain_list(self, logged_in, api):
        api.domains_body = {"unexpected": []}

        with pytest.raises(RemoteRequestError):
            await logged_in.get_domain_id("example.com")

    @pytest.mark.asyncio
    async def test_non_success_status_carries_code(self, logged_in, api):
        api.domains_status = 500

        with pytest.raises(RemoteRequestError) as exc_info:
            await logged_in.get_domain_id("example.com")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_get_record_id_by_name_and_type(self, logged_in, api):
        assert await logged_in.get_record_id("dom1", "host", RecordType.A) == "r1"
        assert await logged_in.get_record_id("dom1", "host", RecordType.AAAA) == "r2"
        assert api.requests[0].url.path == "/api/domains/dom1/dns"

    @pytest.mark.asyncio
    async def test_absent_record_is_none_not_error(self, logged_in):
        assert await logged_in.get_record_id("dom1", "new-host", RecordType.A) is None

    @pytest.mark.asyncio
    async def test_duplicate_records_last_match_wins(self, logged_in, api):
        """Several entries with the same name and type resolve to the last one listed"""
        api.records_body = {
            "succeeded": True,
            "domains": [
                {
                    "entries": [
                        {"id": "first", "name": "host", "type": "A", "content": "203.0.113.1"},
                        {"id": "second", "name": "host", "type": "A", "content": "203.0.113.2"},
                    ]
                }
            ],
        }

        assert await logged_in.get_record_id("dom1", "host", RecordType.A) == "second"

    @pytest.mark.asyncio
    async def test_record_list_not_succeeded(self, logged_in, api):
        api.records_body = {"succeeded": False, "domains": []}

        with pytest.raises(RemoteRequestError, match="Records request failed"):
            await logged_in.get_record_id("dom1", "host", RecordType.A)


class TestUpsert:
    @pytest.mark.asyncio
    async def test_existing_record_deleted_before_create(self, logged_in, api):
        replaced = await logged_in.upsert("dom1", "host", "203.0.113.9", RecordType.A)

        assert replaced == "r1"
        assert api.calls() == [
            ("GET", "/api/domains/dom1/dns"),
            ("DELETE", "/api/dns/r1"),
            ("POST", "/api/domains/dom1/dns"),
        ]
        assert json.loads(api.requests[-1].content) == {
            "name": "host",
            "type": "A",
            "content": "203.0.113.9",
            "ttl": 3600,
        }

    @pytest.mark.asyncio
    async def test_absent_record_is_created_without_delete(self, logged_in, api):
        replaced = await logged_in.upsert("dom1", "fresh", "2001:db8::9", RecordType.AAAA)

        assert replaced is None
        assert api.mutations() == [("POST", "/api/domains/dom1/dns")]
        assert json.loads(api.requests[-1].content)["type"] == "AAAA"

    @pytest.mark.asyncio
    async def test_failed_delete_skips_create(self, logged_in, api):
        api.delete_status = 500

        with pytest.raises(RemoteRequestError) as exc_info:
            await logged_in.upsert("dom1", "host", "203.0.113.9", RecordType.A)
        assert not isinstance(exc_info.value, RecordMissingError)
        assert api.mutations() == [("DELETE", "/api/dns/r1")]

    @pytest.mark.asyncio
    async def test_create_failure_after_delete_reports_missing_record(self, logged_in, api):
        api.create_status = 422

        with pytest.raises(RecordMissingError) as exc_info:
            await logged_in.upsert("dom1", "host", "203.0.113.9", RecordType.A)
        assert exc_info.value.record_id == "r1"
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_create_failure_without_delete_is_plain_error(self, logged_in, api):
        api.create_status = 422

        with pytest.raises(RemoteRequestError) as exc_info:
            await logged_in.upsert("dom1", "fresh", "203.0.113.9", RecordType.A)
        assert not isinstance(exc_info.value, RecordMissingError)

    @pytest.mark.asyncio
    async def test_mismatched_address_rejected_before_any_request(self, logged_in, api):
        with pytest.raises(InvalidAddressError):
            await logged_in.upsert("dom1", "host", "2001:db8::1", RecordType.A)
        with pytest.raises(InvalidAddressError):
            await logged_in.upsert("dom1", "host", "203.0.113.9", RecordType.AAAA)
        assert api.requests == []


def test_validate_address():
    assert validate_address("203.0.113.9", RecordType.A) == "203.0.113.9"
    assert validate_address(" 2001:DB8::1 ", RecordType.AAAA) == "2001:db8::1"

    for bad in ("203.0.113", "203.0.113.256", "not-an-ip", "01.2.3.4"):
        with pytest.raises(InvalidAddressError):
            validate_address(bad, RecordType.A)


def test_set_cookies_keeps_duplicates_in_order():
    response = httpx.Response(
        200,
        headers=[
            ("set-cookie", "hoverauth=; Path=/; Expires=Thu, 01 Jan 1970 00:00:00 GMT"),
            ("set-cookie", "hoverauth=auth456; Path=/; HttpOnly"),
            ("set-cookie", "hover_session=sess123"),
        ],
    )

    assert _set_cookies(response) == [
        Cookie("hoverauth", ""),
        Cookie("hoverauth", "auth456"),
        Cookie("hover_session", "sess123"),
    ]
