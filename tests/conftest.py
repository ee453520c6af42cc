"""
Shared fixtures for the Airthings Matter tests.
"""

import asyncio
from typing import List, Optional

import pytest

from airthings_matter.airthings.models import AirthingsDevice, DeviceSnapshot, SensorReading, SensorUnits


def make_snapshot(
    serial_number: str = "2930000001",
    recorded: bool = True,
    battery: Optional[int] = None,
    **readings,
) -> DeviceSnapshot:
    """Build a snapshot from keyword readings, e.g. ``co2=800, temp=21.5``."""
    return DeviceSnapshot(
        serial_number=serial_number,
        recorded=recorded,
        battery_percentage=battery,
        sensors=[SensorReading(sensor_type, value) for sensor_type, value in readings.items()],
    )


class FakeSource:
    """
    In-memory sensor source.

    ``gate`` holds ``get_sensors`` until set; ``error`` makes it fail.
    """

    def __init__(self, devices: Optional[List[AirthingsDevice]] = None, snapshots: Optional[List[DeviceSnapshot]] = None):
        self.devices = devices or []
        self.snapshots = snapshots or []
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.device_calls = 0
        self.sensor_calls = 0
        self.requested_units = []
        self.closed = False

    async def get_devices(self) -> List[AirthingsDevice]:
        self.device_calls += 1
        return list(self.devices)

    async def get_sensors(self, units=SensorUnits.METRIC) -> List[DeviceSnapshot]:
        self.sensor_calls += 1
        self.requested_units.append(units)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.snapshots)

    async def close(self) -> None:
        self.closed = True


class ManualClock:
    """Injectable sleep that only returns when ``tick()`` is called."""

    def __init__(self):
        self.sleeps: List[float] = []
        self._waiters: List[asyncio.Future] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        await future

    def tick(self) -> None:
        waiters, self._waiters = self._waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(None)


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def view_plus():
    return AirthingsDevice(
        serial_number="2960000001",
        name="Living Room",
        device_type="VIEW_PLUS",
        sensors=["battery", "co2", "humidity", "pm1", "pm25", "pressure", "radonShortTermAvg", "temp", "voc"],
    )


@pytest.fixture
def wave_mini():
    return AirthingsDevice(
        serial_number="2920000002",
        name="Bedroom",
        device_type="WAVE_MINI",
        sensors=["humidity", "temp", "voc"],
    )
