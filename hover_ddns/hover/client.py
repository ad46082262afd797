"""
Client for the Hover DNS management API.

Hover has no token-based API. The client logs in the way the web UI does, by
collecting a session cookie from the sign-in page and trading the credentials
for an auth cookie, and then sends both cookies with every request. Records
cannot be edited in place, so an update is a delete followed by a create.
"""

from http.cookies import CookieError, SimpleCookie
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..errors import (
    AuthenticationError,
    DomainNotFoundError,
    InvalidAddressError,
    NotAuthenticatedError,
    RecordMissingError,
    RemoteRequestError,
)
from ..logger import logger
from ..types import IPAddressT, RecordType
from .types import (
    Authenticated,
    Cookie,
    CreateRecord,
    DomainEnvelope,
    HoverSession,
    RecordEnvelope,
    SessionState,
    Unauthenticated,
)

M = TypeVar("M", bound=BaseModel)

HOVER_BASE_URL = "https://www.hover.com"
SIGNIN_PATH = "/signin"
AUTH_PATH = "/api/login"
DOMAINS_PATH = "/api/domains/"

SESSION_COOKIE_NAME = "hover_session"
AUTH_COOKIE_NAME = "hoverauth"


def validate_address(value: str | IPAddressT, record_type: RecordType) -> str:
    """
    Check that ``value`` is an address of the kind ``record_type`` holds and
    return its canonical text form.

    Raises:
        InvalidAddressError: the value is not an address, or not of that family
    """
    try:
        address = ip_address(str(value).strip())
    except ValueError:
        raise InvalidAddressError(f"'{value}' is not a valid IP address")

    expected = IPv4Address if record_type is RecordType.A else IPv6Address
    if not isinstance(address, expected):
        raise InvalidAddressError(
            f"Not updating {record_type.value} record with invalid address '{value}'"
        )
    return str(address)


def _set_cookies(response: httpx.Response) -> list[Cookie]:
    """
    All cookies set by a response, in header order, duplicates included.

    Headers are parsed one by one because `response.cookies` keeps only one
    cookie per name, and Hover sets the auth cookie twice.
    """
    cookies = []
    for header in response.headers.get_list("set-cookie"):
        parsed = SimpleCookie()
        try:
            parsed.load(header)
        except CookieError as e:
            logger.debug(f"Ignoring malformed Set-Cookie header: {e}")
            continue
        cookies.extend(Cookie(name, morsel.value) for name, morsel in parsed.items())
    return cookies


class HoverClient:
    """
    One client per run. The state moves from Unauthenticated to Authenticated
    once, on login, and never back.
    """

    def __init__(
        self,
        base_url: str = HOVER_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            limits=httpx.Limits(keepalive_expiry=30.0),
            transport=transport,
        )
        self._state: SessionState = Unauthenticated()

    @property
    def state(self) -> SessionState:
        return self._state

    async def __aenter__(self) -> "HoverClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def login(self, username: str, password: str) -> Authenticated:
        """
        Perform the two-step cookie login.

        Raises:
            AuthenticationError: either request failed or no usable cookie came back
        """
        if isinstance(self._state, Authenticated):
            return self._state

        try:
            signin_response = await self._client.get(SIGNIN_PATH)
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Sign-in page request failed: {e}") from e
        if not signin_response.is_success:
            raise AuthenticationError(
                f"Received session status code {signin_response.status_code}"
            )

        session_cookie = next(
            (c for c in _set_cookies(signin_response) if c.name == SESSION_COOKIE_NAME),
            None,
        )
        if session_cookie is None:
            raise AuthenticationError(f"Didn't receive a {SESSION_COOKIE_NAME} cookie")
        logger.debug(f"Got session cookie {session_cookie.name}")

        try:
            auth_response = await self._client.post(
                AUTH_PATH,
                json={"username": username, "password": password},
                headers={"Cookie": f"{session_cookie.name}={session_cookie.value}"},
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Login request failed: {e}") from e
        if not auth_response.is_success:
            logger.debug(auth_response.text)
            raise AuthenticationError(
                f"Received status code {auth_response.status_code}"
            )

        # The login response sets the auth cookie twice, the first time empty
        auth_cookie = next(
            (
                c
                for c in _set_cookies(auth_response)
                if c.name == AUTH_COOKIE_NAME and c.value
            ),
            None,
        )
        if auth_cookie is None:
            raise AuthenticationError(f"Didn't receive a {AUTH_COOKIE_NAME} cookie")

        self._state = Authenticated(HoverSession(session_cookie, auth_cookie))
        logger.info(f"Logged in to Hover as {username}")
        return self._state

    def _session(self) -> HoverSession:
        if not isinstance(self._state, Authenticated):
            raise NotAuthenticatedError("Hover client used before login")
        return self._state.session

    async def _send_request(
        self,
        method: str,
        path: str,
        json: dict | None = None,
    ) -> httpx.Response:
        headers = {"Cookie": self._session().cookie_header()}
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteRequestError(f"{method} {path} failed: {e}") from e

        logger.debug(f"{method} {path} -> {response.status_code} {response.text}")
        if not response.is_success:
            raise RemoteRequestError(
                f"Received status code {response.status_code} for {method} {path}",
                response.status_code,
            )
        return response

    @staticmethod
    def _parse(model: type[M], response: httpx.Response) -> M:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            raise RemoteRequestError(
                f"Unexpected response body from {response.request.url.path}: {e}",
                response.status_code,
            ) from e

    async def get_domain_id(self, domain_name: str) -> str:
        """
        Raises:
            RemoteRequestError: the listing failed or reported ``succeeded: false``
            DomainNotFoundError: the account has no such domain
        """
        response = await self._send_request("GET", DOMAINS_PATH)
        envelope = self._parse(DomainEnvelope, response)
        if not envelope.succeeded:
            raise RemoteRequestError("Domain request failed", response.status_code)

        for domain in envelope.domains:
            if domain.domain_name == domain_name:
                return domain.id

        raise DomainNotFoundError(
            f"Could not find domain '{domain_name}' in list of domains"
        )

    async def get_record_id(
        self, domain_id: str, host_name: str, record_type: RecordType
    ) -> str | None:
        """
        Find the record for ``host_name`` of the given type.

        Returns None when no such record exists. If several entries match,
        the last one in the server's order is returned.
        """
        response = await self._send_request("GET", f"{DOMAINS_PATH}{domain_id}/dns")
        envelope = self._parse(RecordEnvelope, response)
        if not envelope.succeeded or len(envelope.domains) != 1:
            raise RemoteRequestError("Records request failed", response.status_code)

        record_id = None
        for record in envelope.domains[0].entries:
            logger.debug(f"Record: {record.name} {record.type} {record.content}")
            if record.name == host_name and record.type == record_type.value:
                record_id = record.id
        return record_id

    async def delete_record(self, record_id: str):
        await self._send_request("DELETE", f"/api/dns/{record_id}")

    async def create_record(
        self,
        domain_id: str,
        host_name: str,
        value: str | IPAddressT,
        record_type: RecordType,
    ):
        body = CreateRecord(
            name=host_name,
            type=record_type.value,
            content=validate_address(value, record_type),
        )
        logger.debug(f"Creating record: {body.model_dump_json()}")
        await self._send_request(
            "POST", f"{DOMAINS_PATH}{domain_id}/dns", json=body.model_dump()
        )

    async def upsert(
        self,
        domain_id: str,
        host_name: str,
        value: str | IPAddressT,
        record_type: RecordType,
    ) -> str | None:
        """
        Replace the record for ``host_name`` with one pointing at ``value``.

        An existing record is deleted first and then created anew; between
        the two calls the name has no record of this type. Returns the id of
        the deleted record, or None if there was none.

        Raises:
            InvalidAddressError: ``value`` does not fit ``record_type`` (nothing is sent)
            RecordMissingError: the old record was deleted but the create failed
            RemoteRequestError: any other request failure
        """
        content = validate_address(value, record_type)

        record_id = await self.get_record_id(domain_id, host_name, record_type)
        if record_id is not None:
            logger.info(f"Found existing record ID {record_id}, deleting...")
            await self.delete_record(record_id)

        logger.info(
            f"Creating new record of type '{record_type.value}' and IP '{content}'..."
        )
        try:
            await self.create_record(domain_id, host_name, content, record_type)
        except RemoteRequestError as e:
            if record_id is None:
                raise
            raise RecordMissingError(
                f"Deleted record {record_id} for '{host_name}' but could not "
                f"create its replacement: {e}",
                record_id,
                e.status_code,
            ) from e
        return record_id
