"""
Periodic sensor refresh.

Polls the sensor source on a fixed interval and republishes the readings
of every registered device to its host handles.

States:
    IDLE → POLLING            start()
    POLLING → SCHEDULED       cycle finished (success or failure)
    SCHEDULED → POLLING       timer fired
    any → STOPPED             stop()

Cycles never overlap: the next timer is only armed after the previous
cycle has finished. Stopping cancels a pending timer but lets an
in-flight fetch complete; its results are discarded write by write.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from .airquality import AirQualityClassifier
from .airthings.client import SensorSource
from .airthings.models import DeviceSnapshot, SensorType, SensorUnits
from .matter.host import DeviceHandle
from .matter.mapping import AIR_QUALITY_MEASUREMENTS, HUMIDITY_MEASUREMENT, TEMPERATURE_MEASUREMENT
from .matter.models import ClusterType, DeviceRole
from .registry.devices import BridgedDeviceRecord, DeviceRegistry
from .units import battery_to_matter

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 120.0


class SchedulerState(str, Enum):
    """State of the refresh scheduler."""
    IDLE = "idle"
    POLLING = "polling"
    SCHEDULED = "scheduled"
    STOPPED = "stopped"


class RefreshScheduler:
    """
    Keeps bridged devices in sync with the Airthings API.

    ``sleep`` is injectable so tests can drive the timer without waiting
    on the wall clock.
    """

    def __init__(
        self,
        source: SensorSource,
        registry: DeviceRegistry,
        classifier: Optional[AirQualityClassifier] = None,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval}")

        self.source = source
        self.registry = registry
        self.classifier = classifier or AirQualityClassifier()
        self.interval = interval
        self._sleep = sleep or asyncio.sleep

        self._state = SchedulerState.IDLE
        self._stopped = False
        self._task: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.Future] = None

        self.cycles = 0
        self.last_error: Optional[BaseException] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    async def start(self) -> None:
        """Start polling. The first cycle runs immediately."""
        if self._state != SchedulerState.IDLE:
            raise RuntimeError(f"Cannot start scheduler in state {self._state.value}")

        self._state = SchedulerState.POLLING
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Sensor refresh started (every {self.interval:.0f}s)")

    async def stop(self, wait: bool = False) -> None:
        """
        Stop polling.

        Args:
            wait: Also wait for an in-flight cycle to finish
        """
        if self._stopped:
            return

        self._stopped = True
        self._state = SchedulerState.STOPPED

        if self._timer and not self._timer.done():
            self._timer.cancel()

        logger.info("Sensor refresh stopped")

        if wait:
            await self.join()

    async def join(self) -> None:
        """
        Wait for the polling loop to exit.

        Cancelling the caller propagates to the caller only; the loop keeps
        running until stop().
        """
        if self._task is None:
            return
        await asyncio.shield(self._task)

    async def _run_loop(self) -> None:
        """Poll, then wait one interval, until stopped."""
        while not self._stopped:
            self._state = SchedulerState.POLLING
            try:
                await self.refresh_once()
            except Exception as e:
                self.last_error = e
                logger.exception(f"Sensor refresh cycle failed: {e}")

            if self._stopped:
                break

            self._state = SchedulerState.SCHEDULED
            self._timer = asyncio.ensure_future(self._sleep(self.interval))
            try:
                await self._timer
            except asyncio.CancelledError:
                if self._stopped:
                    break
                raise
            finally:
                self._timer = None

    async def refresh_once(self) -> int:
        """
        Run one fetch-and-apply cycle.

        Returns:
            Number of registered devices that were refreshed
        """
        try:
            snapshots = await self.source.get_sensors(SensorUnits.METRIC)
        except Exception as e:
            self.last_error = e
            self.cycles += 1
            logger.error(f"Failed to fetch sensors, retrying in {self.interval:.0f}s: {e}")
            return 0

        refreshed = 0
        for snapshot in snapshots:
            if self._stopped:
                logger.debug("Refresh stopped, discarding remaining results")
                break

            record = self.registry.lookup(snapshot.serial_number)
            if record is None:
                continue

            await self.apply(record, snapshot)
            refreshed += 1

        self.last_error = None
        self.cycles += 1
        logger.debug(f"Refreshed {refreshed} of {len(snapshots)} device(s)")
        return refreshed

    async def apply(self, record: BridgedDeviceRecord, snapshot: DeviceSnapshot) -> List[str]:
        """
        Publish one snapshot to a device's handles.

        Readings absent from the snapshot leave the published value alone.
        The air quality verdict is recomputed and written every time.

        Returns:
            ``cluster.attribute@role`` of every write that went through
        """
        logger.debug(f"Refreshing sensors for {snapshot.serial_number}: {snapshot.to_dict()}")
        written: List[str] = []

        async def write(role: Optional[str], cluster_id: ClusterType, attribute: str, value: Any) -> None:
            handle = record.handle if role is None else record.get_child(role)
            if await self._write(handle, cluster_id, attribute, value):
                written.append(f"{cluster_id.name}.{attribute}@{role or 'root'}")

        battery = battery_to_matter(snapshot.battery_percentage)
        if battery is not None and record.capabilities.battery:
            await write(None, ClusterType.POWER_SOURCE, "batPercentRemaining", battery)

        temperature = TEMPERATURE_MEASUREMENT.convert(snapshot.value(SensorType.TEMP.value))
        if temperature is not None:
            await write(DeviceRole.TEMPERATURE, TEMPERATURE_MEASUREMENT.cluster_id, "measuredValue", temperature)

        humidity = HUMIDITY_MEASUREMENT.convert(snapshot.value(SensorType.HUMIDITY.value))
        if humidity is not None:
            await write(DeviceRole.HUMIDITY, HUMIDITY_MEASUREMENT.cluster_id, "measuredValue", humidity)

        await write(DeviceRole.AIR_QUALITY, ClusterType.AIR_QUALITY, "airQuality", self.classifier(snapshot))

        for measurement in AIR_QUALITY_MEASUREMENTS:
            if not record.capabilities.supports(measurement.capability):
                continue
            value = measurement.convert(snapshot.value(measurement.sensor_type))
            if value is not None:
                await write(DeviceRole.AIR_QUALITY, measurement.cluster_id, "measuredValue", value)

        return written

    async def _write(
        self,
        handle: Optional[DeviceHandle],
        cluster_id: ClusterType,
        attribute: str,
        value: Any,
    ) -> bool:
        """Write one attribute. Failures are logged, never raised."""
        # Checked before every write: stop() may land while a cycle is in flight
        if self._stopped or handle is None:
            return False

        try:
            await handle.set_attribute(cluster_id, attribute, value)
        except Exception as e:
            logger.warning(f"Failed to set {cluster_id.name}.{attribute} on {handle.name}: {e}")
            return False
        return True
