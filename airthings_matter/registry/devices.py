"""
Device Registry - Tracks the devices bridged to the host.

Maps Airthings serial numbers to the host's device handles. Records are
added once during startup enumeration and removed only on shutdown; the
refresh path only reads.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from ..matter.host import DeviceHandle
from ..matter.mapping import CapabilitySet

logger = logging.getLogger(__name__)


class DuplicateDeviceError(KeyError):
    """A serial number was registered twice."""

    def __init__(self, serial_number: str):
        self.serial_number = serial_number
        super().__init__(f"Device {serial_number} is already registered")


@dataclass
class BridgedDeviceRecord:
    """A bridged device and its host handles."""
    serial_number: str
    handle: DeviceHandle
    children: Dict[str, DeviceHandle] = field(default_factory=dict)
    capabilities: CapabilitySet = field(default_factory=CapabilitySet.full)

    def get_child(self, role: str) -> Optional[DeviceHandle]:
        return self.children.get(role)


class DeviceRegistry:
    """
    In-memory registry of bridged devices, keyed by serial number.

    Handles belong to the host; the registry only references them.
    """

    def __init__(self):
        self._devices: Dict[str, BridgedDeviceRecord] = {}

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, serial_number: str) -> bool:
        return serial_number in self._devices

    def __iter__(self) -> Iterator[BridgedDeviceRecord]:
        return iter(list(self._devices.values()))

    def register(
        self,
        serial_number: str,
        handle: DeviceHandle,
        children: Optional[Dict[str, DeviceHandle]] = None,
        capabilities: Optional[CapabilitySet] = None,
    ) -> BridgedDeviceRecord:
        """
        Register a bridged device.

        Raises:
            DuplicateDeviceError: If the serial number is already registered
        """
        if serial_number in self._devices:
            raise DuplicateDeviceError(serial_number)

        record = BridgedDeviceRecord(
            serial_number=serial_number,
            handle=handle,
            children=dict(children or {}),
            capabilities=capabilities or CapabilitySet.full(),
        )
        self._devices[serial_number] = record
        logger.debug(f"Registry: added {serial_number} ({len(self._devices)} total)")
        return record

    def lookup(self, serial_number: str) -> Optional[BridgedDeviceRecord]:
        """Get a record by serial number; None for unknown serials."""
        return self._devices.get(serial_number)

    def all(self) -> List[BridgedDeviceRecord]:
        """Get all records."""
        return list(self._devices.values())

    def remove(self, serial_number: str) -> Optional[BridgedDeviceRecord]:
        """Remove a record. Only used at shutdown."""
        record = self._devices.pop(serial_number, None)
        if record:
            logger.debug(f"Registry: removed {serial_number}")
        return record

    def clear(self) -> None:
        """Remove every record."""
        for serial_number in list(self._devices):
            self.remove(serial_number)
