"""
Ring OAuth password grant with two-factor escalation.

Ring answers a password grant for a 2FA-enabled account with HTTP 412. The
grant is then repeated with the one-time code carried in request headers.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

import httpx

from ring_exporter.clients.ring_api import RingSession
from ring_exporter.core.config import ApiConfig
from ring_exporter.models import Credential
from ring_exporter.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth.ring.com/oauth/token"
CLIENT_ID = "ring_official_android"
SCOPE = "client"

TWO_FACTOR_REQUIRED_STATUS = 412
TWO_FACTOR_SUPPORT_HEADER = "2fa-support"
TWO_FACTOR_CODE_HEADER = "2fa-code"


class AuthError(Exception):
    """Base class for failures while acquiring an authorized session."""


class NoCredentialNoAuthenticator(AuthError):
    """No stored token exists and the caller cannot prompt for one."""


class GrantRejected(AuthError):
    """The token endpoint refused the password grant."""

    def __init__(self, message: str, *, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TwoFactorGrantRejected(GrantRejected):
    """The grant carrying the 2FA code was refused."""


class TransportError(AuthError):
    """Network-level failure talking to the token endpoint."""


class Authenticator(Protocol):
    """Interactive source of account credentials."""

    def prompt_credentials(self) -> Tuple[str, str]:
        ...

    def prompt_2fa_code(self) -> str:
        ...


class TwoFactorTransport(httpx.AsyncBaseTransport):
    """Decorate a transport so every request carries the 2FA code."""

    def __init__(
        self, code: str, inner: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._code = code
        self._inner = inner or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        request.headers[TWO_FACTOR_SUPPORT_HEADER] = "true"
        request.headers[TWO_FACTOR_CODE_HEADER] = self._code
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self._inner.aclose()


async def _password_grant(
    username: str,
    password: str,
    *,
    transport: httpx.AsyncBaseTransport | None,
    timeout: float,
) -> httpx.Response:
    payload = {
        "grant_type": "password",
        "username": username,
        "password": password,
        "client_id": CLIENT_ID,
        "scope": SCOPE,
    }
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            return await client.post(
                TOKEN_URL,
                data=payload,
                headers={"Accept": "application/json"},
            )
    except httpx.HTTPError as exc:
        raise TransportError(f"Token request failed: {exc}") from exc


def _credential_from(response: httpx.Response, error_cls: type[GrantRejected]) -> Credential:
    try:
        return Credential.from_token_payload(response.json())
    except (ValueError, KeyError, TypeError) as exc:
        raise error_cls(
            "Incomplete token payload returned from Ring.",
            status_code=response.status_code,
            body=response.text,
        ) from exc


async def request_token(
    authenticator: Authenticator,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = 10.0,
) -> Credential:
    """Run the password grant, escalating to 2FA when Ring asks for it."""
    username, password = authenticator.prompt_credentials()

    response = await _password_grant(
        username, password, transport=transport, timeout=timeout
    )
    if response.is_success:
        logger.info("Password-only auth worked")
        return _credential_from(response, GrantRejected)

    if response.status_code != TWO_FACTOR_REQUIRED_STATUS:
        raise GrantRejected(
            f"Password grant rejected with status {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )

    logger.info("Ring indicates 2FA code needed")
    try:
        code = authenticator.prompt_2fa_code()
    except Exception as exc:
        raise AuthError(f"Failure prompting for 2FA: {exc}") from exc

    response = await _password_grant(
        username,
        password,
        transport=TwoFactorTransport(code, inner=transport),
        timeout=timeout,
    )
    if not response.is_success:
        raise TwoFactorGrantRejected(
            f"2FA grant rejected with status {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )
    return _credential_from(response, TwoFactorGrantRejected)


async def open_authorized_session(
    api_config: ApiConfig,
    credential_store: CredentialStore,
    authenticator: Optional[Authenticator] = None,
    *,
    token_transport: httpx.AsyncBaseTransport | None = None,
    api_transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = 10.0,
) -> RingSession:
    """Return a session for the stored token, authorizing a new one if needed.

    A stored token is used without checking it; an invalid one shows up as
    failures on later API calls. Without a stored token an ``authenticator``
    is required. A fresh token is written to ``credential_store`` once.
    """
    if credential_store is None:
        raise ValueError("A credential store is required.")

    credential = credential_store.fetch_credential()
    if credential is None:
        if authenticator is None:
            raise NoCredentialNoAuthenticator(
                "No token found and no authenticator was provided."
            )
        logger.info("No previously stored token found. Will need to authorize")
        credential = await request_token(
            authenticator, transport=token_transport, timeout=timeout
        )
        credential_store.store_credential(credential)

    logger.info("Token acquired")
    return RingSession.build(
        credential, api_config, transport=api_transport, timeout=timeout
    )


__all__ = [
    "AuthError",
    "Authenticator",
    "GrantRejected",
    "NoCredentialNoAuthenticator",
    "TransportError",
    "TwoFactorGrantRejected",
    "TwoFactorTransport",
    "open_authorized_session",
    "request_token",
]
