"""
Tests for the Airthings consumer API client, against a local aiohttp server.
"""

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from airthings_matter.airthings.client import AirthingsApiError, AirthingsClient, AirthingsClientConfig
from airthings_matter.airthings.models import SensorUnits


class FakeAirthingsApi:
    """Minimal stand-in for the token and consumer endpoints."""

    def __init__(self):
        self.token_requests = []
        self.sensor_queries = []
        self.fail_sensors_with = None
        self.app = web.Application()
        self.app.router.add_post("/v1/token", self.token)
        self.app.router.add_get("/v1/accounts", self.accounts)
        self.app.router.add_get("/v1/accounts/{account}/devices", self.devices)
        self.app.router.add_get("/v1/accounts/{account}/sensors", self.sensors)

    def _authorized(self, request):
        expected = f"Bearer token-{len(self.token_requests)}"
        if request.headers.get("Authorization") != expected:
            raise web.HTTPUnauthorized(text="bad token")

    async def token(self, request):
        self.token_requests.append(await request.json())
        return web.json_response({
            "access_token": f"token-{len(self.token_requests)}",
            "expires_in": 10800,
        })

    async def accounts(self, request):
        self._authorized(request)
        return web.json_response({"accounts": [{"id": "acc-1", "name": "Home"}]})

    async def devices(self, request):
        self._authorized(request)
        assert request.match_info["account"] == "acc-1"
        return web.json_response({"devices": [
            {
                "serialNumber": "2960000001",
                "name": "Living Room",
                "type": "VIEW_PLUS",
                "sensors": ["co2", "temp", "humidity"],
                "home": "Home",
            },
        ]})

    async def sensors(self, request):
        self._authorized(request)
        if self.fail_sensors_with:
            raise self.fail_sensors_with

        self.sensor_queries.append(dict(request.query))
        page = int(request.query["pageNumber"])
        serial = f"296000000{page}"
        return web.json_response({
            "results": [{
                "serialNumber": serial,
                "recorded": "2024-01-01T12:00:00",
                "batteryPercentage": 80,
                "sensors": [
                    {"sensorType": "co2", "value": 700 + page, "unit": "ppm"},
                    {"sensorType": "temp", "value": 21.5, "unit": "c"},
                ],
            }],
            "hasNext": page < 2,
            "totalPages": 2,
        })


@pytest_asyncio.fixture
async def api():
    fake = FakeAirthingsApi()
    server = test_utils.TestServer(fake.app)
    await server.start_server()
    fake.server = server
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def client(api):
    config = AirthingsClientConfig(
        client_id="id",
        client_secret="secret",
        auth_url=str(api.server.make_url("/v1/token")),
        api_url=str(api.server.make_url("/v1")),
    )
    async with AirthingsClient(config) as client:
        yield client


class TestAirthingsClient:
    """Tests for AirthingsClient."""

    @pytest.mark.asyncio
    async def test_token_request(self, api, client):
        await client.get_account_id()

        assert api.token_requests == [{
            "grant_type": "client_credentials",
            "client_id": "id",
            "client_secret": "secret",
            "scope": ["read:device:current_values"],
        }]

    @pytest.mark.asyncio
    async def test_token_is_reused(self, api, client):
        await client.get_devices()
        await client.get_sensors()
        assert len(api.token_requests) == 1

    @pytest.mark.asyncio
    async def test_get_devices(self, client):
        devices = await client.get_devices()

        assert len(devices) == 1
        assert devices[0].serial_number == "2960000001"
        assert devices[0].device_type == "VIEW_PLUS"
        assert devices[0].sensors == ["co2", "temp", "humidity"]

    @pytest.mark.asyncio
    async def test_get_sensors_follows_pages(self, api, client):
        snapshots = await client.get_sensors(SensorUnits.METRIC)

        assert [s.serial_number for s in snapshots] == ["2960000001", "2960000002"]
        assert snapshots[1].value("co2") == 702
        assert snapshots[0].battery_percentage == 80
        assert snapshots[0].recorded
        assert [q["pageNumber"] for q in api.sensor_queries] == ["1", "2"]
        assert api.sensor_queries[0]["unit"] == "metric"

    @pytest.mark.asyncio
    async def test_server_error(self, api, client):
        api.fail_sensors_with = web.HTTPInternalServerError(text="boom")

        with pytest.raises(AirthingsApiError) as exc_info:
            await client.get_sensors()

        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_unauthorized_clears_token(self, api, client):
        await client.get_account_id()
        api.fail_sensors_with = web.HTTPUnauthorized(text="expired")

        with pytest.raises(AirthingsApiError) as exc_info:
            await client.get_sensors()
        assert exc_info.value.status == 401

        api.fail_sensors_with = None
        snapshots = await client.get_sensors()
        assert len(snapshots) == 2
        assert len(api.token_requests) == 2

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        config = AirthingsClientConfig(
            client_id="id",
            client_secret="secret",
            auth_url="http://127.0.0.1:9/v1/token",
            timeout=2.0,
        )
        async with AirthingsClient(config) as client:
            with pytest.raises(AirthingsApiError) as exc_info:
                await client.get_devices()
        assert exc_info.value.status is None
