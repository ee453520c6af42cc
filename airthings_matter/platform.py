"""
Airthings bridge platform.

Lifecycle glue between the host framework and the bridge core:

    on_start      enumerate devices, build initial state, register with host
    on_configure  start the refresh scheduler
    on_shutdown   stop the scheduler, optionally unregister all devices
"""

import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Optional

from .airquality import AirQualityClassifier
from .airthings.client import AirthingsClient, AirthingsClientConfig, SensorSource
from .airthings.models import SensorUnits
from .config import PlatformConfig
from .matter.host import BridgeHost
from .matter.mapping import DeviceDescriptor, DeviceMapper, build_endpoint
from .registry.devices import DeviceRegistry, DuplicateDeviceError
from .scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


class PlatformStateError(RuntimeError):
    """A lifecycle hook was called out of order."""


class AirthingsPlatform:
    """
    Bridges Airthings devices to a Matter host.

    Without an explicit ``source`` the platform builds an ``AirthingsClient``
    from the configured credentials, and refuses to construct when they
    are missing (``MissingCredentialsError``).
    """

    def __init__(
        self,
        host: BridgeHost,
        config: Optional[PlatformConfig] = None,
        source: Optional[SensorSource] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.host = host
        self.config = config or PlatformConfig()

        if self.config.debug:
            logging.getLogger("airthings_matter").setLevel(logging.DEBUG)

        errors = self.config.validate()
        if errors:
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        self._owns_source = source is None
        if source is None:
            client_id, client_secret = self.config.credentials()
            source = AirthingsClient(AirthingsClientConfig(client_id, client_secret))
        self.source = source

        self.classifier = AirQualityClassifier(self.config.disabled_channels())
        self.mapper = DeviceMapper(
            self.classifier,
            version=host.version,
            host_version=host.host_version,
        )
        self.registry = DeviceRegistry()
        self.scheduler = RefreshScheduler(
            source,
            self.registry,
            classifier=self.classifier,
            interval=self.config.refresh_interval,
            sleep=sleep,
        )

        self._started = False
        self._shut_down = False
        logger.info("Airthings platform initialized")

    async def on_start(self, reason: Optional[str] = None) -> List[DeviceDescriptor]:
        """
        Enumerate devices and register them with the host.

        Devices without a recorded reading are skipped with a warning.

        Returns:
            Descriptors of the devices that were bridged
        """
        logger.info(f"Starting Airthings platform{f': {reason}' if reason else ''}")

        if self._started:
            raise PlatformStateError("on_start called twice")

        # The converters expect metric readings
        devices = await self.source.get_devices()
        snapshots = {s.serial_number: s for s in await self.source.get_sensors(SensorUnits.METRIC)}
        self._started = True

        bridged: List[DeviceDescriptor] = []
        for device in devices:
            if not self.config.is_selected(device.serial_number, device.name):
                logger.info(f"Skipping device {device.name} ({device.serial_number}): not selected")
                continue

            snapshot = snapshots.get(device.serial_number)
            if snapshot is None or not snapshot.recorded:
                logger.warning(f"No active sensors found for device {device.name} ({device.serial_number})!")
                continue

            # Check before touching the host: a device is registered there exactly once
            if device.serial_number in self.registry:
                raise DuplicateDeviceError(device.serial_number)

            snapshot = replace(snapshot, name=device.name, device_type=device.device_type)
            descriptor = self.mapper.build_initial_state(snapshot, self.mapper.capabilities_for(device))

            handle, children = build_endpoint(self.host, descriptor, debug=self.config.debug)
            await self.host.register_device(handle)
            self.registry.register(device.serial_number, handle, children, descriptor.capabilities)

            logger.info(
                f"Bridged {descriptor.name} ({descriptor.serial_number}, {descriptor.type_label}): "
                f"air quality {descriptor.air_quality.name}"
            )
            bridged.append(descriptor)

        logger.info(f"Bridged {len(bridged)} of {len(devices)} Airthings device(s)")
        return bridged

    async def on_configure(self) -> None:
        """Start periodic refresh; the first poll runs immediately."""
        if not self._started:
            raise PlatformStateError("on_configure called before on_start")
        await self.scheduler.start()

    async def on_shutdown(self, reason: Optional[str] = None) -> None:
        """Stop refreshing and optionally unregister every device."""
        if self._shut_down:
            return
        self._shut_down = True

        await self.scheduler.stop()
        logger.info(f"Shutting down Airthings platform{f': {reason}' if reason else ''}")

        if self.config.unregister_on_shutdown:
            await self.host.unregister_all_devices(self.config.unregister_timeout)
            self.registry.clear()

        if self._owns_source:
            await self.source.close()


def initialize_plugin(host: BridgeHost, config: PlatformConfig) -> AirthingsPlatform:
    """Plugin entry point used by the host framework."""
    return AirthingsPlatform(host, config)
