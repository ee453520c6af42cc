"""
Tests for the platform lifecycle.
"""

import logging

import pytest

from airthings_matter import (
    AirthingsPlatform,
    MissingCredentialsError,
    PlatformConfig,
    PlatformStateError,
    initialize_plugin,
)
from airthings_matter.airthings.client import AirthingsApiError, AirthingsClient
from airthings_matter.airthings.models import AirthingsDevice, SensorUnits
from airthings_matter.matter.host import MemoryHost
from airthings_matter.matter.models import AirQuality, ClusterType, DeviceRole, MatterDeviceType
from airthings_matter.registry import DuplicateDeviceError
from airthings_matter.scheduler import SchedulerState

from conftest import FakeSource, ManualClock, make_snapshot, settle


def make_platform(source, clock=None, **config):
    config.setdefault("unregister_timeout", 0)
    host = MemoryHost(version="1.2.0", host_version="3.1.0")
    platform = AirthingsPlatform(
        host,
        PlatformConfig(**config),
        source=source,
        sleep=clock.sleep if clock else None,
    )
    return platform, host


class TestConstruction:
    """Tests for building the platform."""

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("AIRTHINGS_CLIENT_ID", raising=False)
        monkeypatch.delenv("AIRTHINGS_CLIENT_SECRET", raising=False)

        with pytest.raises(MissingCredentialsError):
            AirthingsPlatform(MemoryHost(), PlatformConfig())

    def test_credentials_from_environment(self, monkeypatch):
        monkeypatch.setenv("AIRTHINGS_CLIENT_ID", "id")
        monkeypatch.setenv("AIRTHINGS_CLIENT_SECRET", "secret")

        platform = initialize_plugin(MemoryHost(), PlatformConfig())

        assert isinstance(platform.source, AirthingsClient)
        assert platform.source.config.client_id == "id"

    def test_injected_source_needs_no_credentials(self, monkeypatch):
        monkeypatch.delenv("AIRTHINGS_CLIENT_ID", raising=False)
        platform, _ = make_platform(FakeSource())
        assert platform.scheduler.interval == 120

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            make_platform(FakeSource(), refresh_interval=-1)


class TestOnStart:
    """Tests for startup enumeration."""

    @pytest.mark.asyncio
    async def test_bridges_recorded_devices(self, view_plus, wave_mini):
        source = FakeSource(
            devices=[view_plus, wave_mini],
            snapshots=[
                make_snapshot(view_plus.serial_number, battery=90, temp=21.0, humidity=45.0, co2=1100, pm25=5),
                make_snapshot(wave_mini.serial_number, battery=60, temp=19.0, humidity=50.0, voc=120),
            ],
        )
        platform, host = make_platform(source)

        descriptors = await platform.on_start("test")

        assert [d.serial_number for d in descriptors] == [view_plus.serial_number, wave_mini.serial_number]
        assert len(host.registered_devices) == 2
        assert len(platform.registry) == 2

        view = platform.registry.lookup(view_plus.serial_number)
        info = view.handle.get_attribute(ClusterType.BRIDGED_DEVICE_BASIC_INFORMATION, "productName")
        assert info == "View Plus"
        assert view.handle.get_attribute(ClusterType.POWER_SOURCE, "batPercentRemaining") == 180
        assert view.get_child(DeviceRole.AIR_QUALITY).get_attribute(
            ClusterType.AIR_QUALITY, "airQuality"
        ) == AirQuality.POOR

        mini = platform.registry.lookup(wave_mini.serial_number)
        air = mini.get_child(DeviceRole.AIR_QUALITY)
        assert air.has_cluster(ClusterType.TVOC_CONCENTRATION)
        assert not air.has_cluster(ClusterType.CARBON_DIOXIDE_CONCENTRATION)

    @pytest.mark.asyncio
    async def test_skips_devices_without_readings(self, view_plus, wave_mini, caplog):
        hub = AirthingsDevice("2800000003", "Hub", "HUB")
        source = FakeSource(
            devices=[view_plus, wave_mini, hub],
            snapshots=[
                make_snapshot(view_plus.serial_number, temp=21.0),
                make_snapshot(wave_mini.serial_number, recorded=False),
            ],
        )
        platform, host = make_platform(source)

        with caplog.at_level(logging.WARNING):
            descriptors = await platform.on_start()

        assert [d.serial_number for d in descriptors] == [view_plus.serial_number]
        assert wave_mini.serial_number not in platform.registry
        assert hub.serial_number not in platform.registry
        assert "No active sensors found for device Bedroom" in caplog.text
        assert "No active sensors found for device Hub" in caplog.text

    @pytest.mark.asyncio
    async def test_white_and_black_lists(self, view_plus, wave_mini):
        snapshots = [
            make_snapshot(view_plus.serial_number, temp=21.0),
            make_snapshot(wave_mini.serial_number, temp=19.0),
        ]

        platform, _ = make_platform(FakeSource([view_plus, wave_mini], snapshots), white_list=["Bedroom"])
        await platform.on_start()
        assert [r.serial_number for r in platform.registry.all()] == [wave_mini.serial_number]

        platform, _ = make_platform(FakeSource([view_plus, wave_mini], snapshots), black_list=[wave_mini.serial_number])
        await platform.on_start()
        assert [r.serial_number for r in platform.registry.all()] == [view_plus.serial_number]

    @pytest.mark.asyncio
    async def test_battery_less_device(self, view_plus):
        source = FakeSource([view_plus], [make_snapshot(view_plus.serial_number, temp=21.0)])
        platform, _ = make_platform(source)

        descriptors = await platform.on_start()

        assert MatterDeviceType.POWER_SOURCE not in descriptors[0].device_types
        record = platform.registry.lookup(view_plus.serial_number)
        assert not record.handle.has_cluster(ClusterType.POWER_SOURCE)
        assert not record.capabilities.battery

    @pytest.mark.asyncio
    async def test_duplicate_device_fails_loudly(self, view_plus):
        source = FakeSource([view_plus, view_plus], [make_snapshot(view_plus.serial_number, temp=21.0)])
        platform, host = make_platform(source)

        with pytest.raises(DuplicateDeviceError):
            await platform.on_start()

        assert len(host.registered_devices) == 1

    @pytest.mark.asyncio
    async def test_start_twice(self):
        platform, _ = make_platform(FakeSource())
        await platform.on_start()
        with pytest.raises(PlatformStateError):
            await platform.on_start()

    @pytest.mark.asyncio
    async def test_start_retryable_after_fetch_failure(self, view_plus):
        source = FakeSource([view_plus], [make_snapshot(view_plus.serial_number, temp=21.0)])
        source.error = AirthingsApiError(503, "unavailable")
        platform, host = make_platform(source)

        with pytest.raises(AirthingsApiError):
            await platform.on_start()
        assert host.registered_devices == []

        source.error = None
        descriptors = await platform.on_start()

        assert [d.serial_number for d in descriptors] == [view_plus.serial_number]

    @pytest.mark.asyncio
    async def test_readings_always_requested_in_metric(self, view_plus):
        """A legacy ``units`` key cannot switch the API to imperial values."""
        clock = ManualClock()
        source = FakeSource([view_plus], [make_snapshot(view_plus.serial_number, temp=21.0)])
        config = PlatformConfig.from_dict({"units": "imperial", "unregisterTimeout": 0})
        platform = AirthingsPlatform(MemoryHost(), config, source=source, sleep=clock.sleep)

        await platform.on_start()
        await platform.on_configure()
        await settle()
        await platform.on_shutdown()

        assert source.requested_units == [SensorUnits.METRIC, SensorUnits.METRIC]
        temperature = platform.registry.lookup(view_plus.serial_number).get_child(DeviceRole.TEMPERATURE)
        assert temperature.get_attribute(ClusterType.TEMPERATURE_MEASUREMENT, "measuredValue") == 2100

    @pytest.mark.asyncio
    async def test_disabled_channel_ignored_in_verdict(self, view_plus):
        source = FakeSource([view_plus], [make_snapshot(view_plus.serial_number, co2=1500, humidity=45.0)])
        platform, _ = make_platform(source, co2_air_quality_disabled=True)

        descriptors = await platform.on_start()

        assert descriptors[0].air_quality == AirQuality.GOOD
        # The raw value is still published
        air = platform.registry.lookup(view_plus.serial_number).get_child(DeviceRole.AIR_QUALITY)
        assert air.get_attribute(ClusterType.CARBON_DIOXIDE_CONCENTRATION, "measuredValue") == 1500


class TestLifecycle:
    """Tests for configure and shutdown."""

    @pytest.mark.asyncio
    async def test_configure_before_start(self):
        platform, _ = make_platform(FakeSource())
        with pytest.raises(PlatformStateError):
            await platform.on_configure()

    @pytest.mark.asyncio
    async def test_end_to_end(self, view_plus):
        clock = ManualClock()
        source = FakeSource([view_plus], [make_snapshot(view_plus.serial_number, temp=21.0, co2=600)])
        platform, _ = make_platform(source, clock, refresh_interval=60)

        await platform.on_start()
        await platform.on_configure()
        await settle()

        assert platform.scheduler.state == SchedulerState.SCHEDULED
        assert clock.sleeps == [60]

        source.snapshots = [make_snapshot(view_plus.serial_number, co2=1200)]
        clock.tick()
        await settle()

        record = platform.registry.lookup(view_plus.serial_number)
        assert record.get_child(DeviceRole.TEMPERATURE).get_attribute(
            ClusterType.TEMPERATURE_MEASUREMENT, "measuredValue"
        ) == 2100
        assert record.get_child(DeviceRole.AIR_QUALITY).get_attribute(
            ClusterType.AIR_QUALITY, "airQuality"
        ) == AirQuality.POOR

        await platform.on_shutdown("test")
        assert platform.scheduler.state == SchedulerState.STOPPED

    @pytest.mark.asyncio
    async def test_shutdown_keeps_devices_by_default(self, view_plus):
        source = FakeSource([view_plus], [make_snapshot(view_plus.serial_number, temp=21.0)])
        platform, host = make_platform(source, ManualClock())

        await platform.on_start()
        await platform.on_configure()
        await platform.on_shutdown()

        assert len(host.registered_devices) == 1
        assert len(platform.registry) == 1

    @pytest.mark.asyncio
    async def test_shutdown_unregisters_when_configured(self, view_plus):
        source = FakeSource([view_plus], [make_snapshot(view_plus.serial_number, temp=21.0)])
        platform, host = make_platform(source, ManualClock(), unregister_on_shutdown=True)

        await platform.on_start()
        await platform.on_configure()
        await platform.on_shutdown()

        assert host.registered_devices == []
        assert len(platform.registry) == 0

    @pytest.mark.asyncio
    async def test_shutdown_closes_owned_client(self, monkeypatch):
        monkeypatch.setenv("AIRTHINGS_CLIENT_ID", "id")
        monkeypatch.setenv("AIRTHINGS_CLIENT_SECRET", "secret")
        platform = AirthingsPlatform(MemoryHost(), PlatformConfig())

        closed = []

        async def close():
            closed.append(True)

        monkeypatch.setattr(platform.source, "close", close)
        await platform.on_shutdown()
        await platform.on_shutdown()

        assert closed == [True]
