"""
Authorized Ring client API session.

Obtain instances through ``open_authorized_session``; the session's HTTP client
attaches the bearer credential to every request it issues.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ring_exporter.core.config import ApiConfig
from ring_exporter.models import (
    Chime,
    Credential,
    DevicesResponse,
    Ding,
    HealthResponse,
    SessionResponse,
)

logger = logging.getLogger(__name__)

API_VERSION = "9"
BASE_URL = "https://api.ring.com"

URI_SESSION = "/clients_api/session"
URI_RING_DEVICES = "/clients_api/ring_devices"
URI_CHIME = "/clients_api/chimes/{device_id}"
URI_DOORBOT = "/clients_api/doorbots/{device_id}"
URI_HEALTH = "/health"
URI_HISTORY = "/history"

ModelT = TypeVar("ModelT", bound=BaseModel)


class RingApiError(Exception):
    """Raised when a Ring API call fails or returns an undecodable body."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BearerAuth(httpx.Auth):
    """Attach the stored credential to each outgoing request."""

    def __init__(self, credential: Credential) -> None:
        self._header = credential.authorization_header

    def auth_flow(self, request: httpx.Request):
        request.headers["Authorization"] = self._header
        yield request


class RingSession:
    """Read access to the Ring device APIs for one authorized account."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_config: ApiConfig,
    ) -> None:
        self._client = client
        self._config = api_config

    @classmethod
    def build(
        cls,
        credential: Credential,
        api_config: ApiConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> "RingSession":
        client = httpx.AsyncClient(
            base_url=BASE_URL,
            auth=BearerAuth(credential),
            params={"api_version": API_VERSION},
            timeout=timeout,
            transport=transport,
        )
        return cls(client, api_config)

    async def __aenter__(self) -> "RingSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, uri: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, uri, **kwargs)
        except httpx.HTTPError as exc:
            raise RingApiError(f"{method} {uri} failed: {exc}") from exc

        if not response.is_success:
            raise RingApiError(
                f"API request failed {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise RingApiError(f"{method} {uri} returned invalid JSON") from exc

    async def _get_model(self, uri: str, model: Type[ModelT]) -> ModelT:
        payload = await self._request("GET", uri)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise RingApiError(f"Unexpected payload from {uri}: {exc}") from exc

    async def get_session_info(self) -> SessionResponse:
        """Register this client and return the account profile."""
        form: Dict[str, str] = {
            "device[hardware_id]": self._config.hardware_id,
            "device[os]": "android",
            "device[app_brand]": "ring",
            "device[metadata][device_model]": "",
            "device[metadata][device_name]": "",
            "device[metadata][resolution]": "",
            "device[metadata][app_version]": "",
            "device[metadata][app_instalation_date]": "",
            "device[metadata][manufacturer]": "",
            "device[metadata][device_type]": "desktop",
            "device[metadata][architecture]": "",
            "device[metadata][language]": "en",
        }
        payload = await self._request("POST", URI_SESSION, data=form)
        try:
            return SessionResponse.model_validate(payload)
        except ValidationError as exc:
            raise RingApiError(f"Unexpected session payload: {exc}") from exc

    async def get_devices(self) -> DevicesResponse:
        return await self._get_model(URI_RING_DEVICES, DevicesResponse)

    async def get_doorbot_health(self, device_id: int) -> HealthResponse:
        uri = URI_DOORBOT.format(device_id=device_id) + URI_HEALTH
        return await self._get_model(uri, HealthResponse)

    async def get_chime_health(self, chime: Chime | int) -> HealthResponse:
        device_id = chime.id if isinstance(chime, Chime) else chime
        uri = URI_CHIME.format(device_id=device_id) + URI_HEALTH
        return await self._get_model(uri, HealthResponse)

    async def get_doorbot_history(self, device_id: int) -> List[Ding]:
        """Most recent dings for a doorbot or stickup cam."""
        uri = URI_DOORBOT.format(device_id=device_id) + URI_HISTORY
        payload = await self._request("GET", uri)
        if not isinstance(payload, list):
            raise RingApiError(
                f"Unexpected history payload: expected a list, got {type(payload).__name__}"
            )
        # Non-object records decode to a blank ding that the ledger skips.
        return [
            Ding.model_validate(item) if isinstance(item, dict) else Ding()
            for item in payload
        ]


__all__ = [
    "API_VERSION",
    "BASE_URL",
    "BearerAuth",
    "RingApiError",
    "RingSession",
]
