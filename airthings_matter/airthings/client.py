"""
Airthings consumer API client.

Authenticates with OAuth2 client credentials and reads the current
values of every device on the account.

Endpoints:
    POST {auth_url}                                   → access token
    GET  {api_url}/accounts                           → account ids
    GET  {api_url}/accounts/{id}/devices              → device listing
    GET  {api_url}/accounts/{id}/sensors?unit=metric  → latest readings (paged)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Union

import aiohttp

from .models import AirthingsDevice, DeviceSnapshot, SensorUnits

logger = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://accounts-api.airthings.com/v1/token"
DEFAULT_API_URL = "https://consumer-api.airthings.com/v1"
DEFAULT_SCOPE = "read:device:current_values"

# Refresh the token this many seconds before it expires
TOKEN_EXPIRY_MARGIN = 60.0


class AirthingsApiError(Exception):
    """Error talking to the Airthings API."""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        super().__init__(f"[{status}] {message}" if status is not None else message)


class SensorSource(Protocol):
    """Anything that can list devices and their latest readings."""

    async def get_devices(self) -> List[AirthingsDevice]:
        ...

    async def get_sensors(
        self, units: Union[SensorUnits, str] = SensorUnits.METRIC
    ) -> List[DeviceSnapshot]:
        ...


@dataclass
class AirthingsClientConfig:
    """Configuration for the Airthings API client."""
    client_id: str
    client_secret: str
    auth_url: str = DEFAULT_AUTH_URL
    api_url: str = DEFAULT_API_URL
    scope: str = DEFAULT_SCOPE
    timeout: float = 30.0


class AirthingsClient:
    """
    Client for the Airthings consumer API.

    Implements ``SensorSource``. The HTTP session, access token and account
    id are created lazily and cached.
    """

    def __init__(self, config: AirthingsClientConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None
        self._token: Optional[str] = None
        self._token_expires: float = 0.0
        self._account_id: Optional[str] = None

    async def __aenter__(self) -> "AirthingsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _authenticate(self) -> str:
        """Get a valid access token, requesting a new one when needed."""
        if self._token and time.time() < self._token_expires:
            return self._token

        session = await self._get_session()
        payload = {
            "grant_type": "client_credentials",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "scope": [self.config.scope],
        }

        try:
            async with session.post(self.config.auth_url, json=payload) as resp:
                if resp.status != 200:
                    raise AirthingsApiError(resp.status, await resp.text())
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AirthingsApiError(None, f"Authentication failed: {e}") from e

        token = data.get("access_token")
        if not token:
            raise AirthingsApiError(None, "No access token in response")

        expires_in = float(data.get("expires_in", 3600))
        self._token = token
        self._token_expires = time.time() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0.0)
        logger.debug(f"Obtained Airthings access token (expires in {expires_in:.0f}s)")
        return token

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send an authenticated GET request and decode the JSON body."""
        token = await self._authenticate()
        session = await self._get_session()
        url = f"{self.config.api_url}{path}"

        logger.debug(f"GET {url} {params or ''}")

        try:
            async with session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            ) as resp:
                if resp.status == 401:
                    # Force re-authentication on the next call
                    self._token = None
                if resp.status != 200:
                    raise AirthingsApiError(resp.status, await resp.text())
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AirthingsApiError(None, f"Request to {path} failed: {e}") from e

    async def get_account_id(self) -> str:
        """Get the id of the first account the credentials can access."""
        if self._account_id:
            return self._account_id

        data = await self._get("/accounts")
        accounts = data.get("accounts", [])
        if not accounts:
            raise AirthingsApiError(None, "No accounts available for these credentials")

        self._account_id = accounts[0]["id"]
        return self._account_id

    async def get_devices(self) -> List[AirthingsDevice]:
        """List all devices on the account."""
        account_id = await self.get_account_id()
        data = await self._get(f"/accounts/{account_id}/devices")
        return [AirthingsDevice.from_dict(d) for d in data.get("devices", [])]

    async def get_sensors(
        self, units: Union[SensorUnits, str] = SensorUnits.METRIC
    ) -> List[DeviceSnapshot]:
        """
        Get the latest readings of every device.

        Follows ``hasNext`` pagination until the last page.
        """
        account_id = await self.get_account_id()
        unit = units.value if isinstance(units, SensorUnits) else units

        snapshots: List[DeviceSnapshot] = []
        page = 1
        while True:
            data = await self._get(
                f"/accounts/{account_id}/sensors",
                params={"unit": unit, "pageNumber": page},
            )
            snapshots.extend(DeviceSnapshot.from_dict(r) for r in data.get("results", []))
            if not data.get("hasNext"):
                break
            page += 1

        return snapshots
