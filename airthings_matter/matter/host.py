"""
Matter bridge host interface.

The host framework owns the device objects; the bridge only holds handles
to them and talks to them through the small capability interface below.

``MemoryHost`` is an in-process implementation that keeps attribute state
in dictionaries. It backs the CLI's dry-run mode and the tests.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .models import CLUSTER_NAMES, ClusterType, MatterDeviceType

logger = logging.getLogger(__name__)


class AttributeWriteError(Exception):
    """An attribute write was rejected by a device handle."""


class DeviceHandle(Protocol):
    """Capability interface of a host-owned device or child device."""

    name: str

    def add_cluster(self, cluster_id: ClusterType, attributes: Dict[str, Any]) -> None:
        ...

    def add_child(self, role: str, device_type: MatterDeviceType) -> "DeviceHandle":
        ...

    def get_child(self, role: str) -> Optional["DeviceHandle"]:
        ...

    def get_attribute(self, cluster_id: ClusterType, attribute: str) -> Any:
        ...

    async def set_attribute(self, cluster_id: ClusterType, attribute: str, value: Any) -> None:
        ...


class BridgeHost(Protocol):
    """The bridging framework the platform registers devices with."""

    version: str
    host_version: str

    def create_root_device(
        self,
        unique_key: str,
        device_types: Iterable[MatterDeviceType],
        debug: bool = False,
    ) -> DeviceHandle:
        ...

    async def register_device(self, handle: DeviceHandle) -> None:
        ...

    async def unregister_all_devices(self, timeout: float = 0.5) -> None:
        ...


@dataclass
class AttributeWrite:
    """A recorded attribute write on a memory endpoint."""
    endpoint: str
    cluster_id: ClusterType
    attribute: str
    value: Any


@dataclass
class MemoryEndpoint:
    """
    In-memory device endpoint.

    Clusters hold plain attribute dictionaries; children are keyed by role.
    """
    name: str
    device_types: List[MatterDeviceType]
    clusters: Dict[ClusterType, Dict[str, Any]] = field(default_factory=dict)
    children: Dict[str, "MemoryEndpoint"] = field(default_factory=dict)
    debug: bool = False
    writes: List[AttributeWrite] = field(default_factory=list, repr=False)

    def add_cluster(self, cluster_id: ClusterType, attributes: Dict[str, Any]) -> None:
        self.clusters.setdefault(cluster_id, {}).update(attributes)

    def add_child(self, role: str, device_type: MatterDeviceType) -> "MemoryEndpoint":
        if role in self.children:
            raise ValueError(f"Child {role!r} already exists on {self.name}")
        child = MemoryEndpoint(
            name=f"{self.name}/{role}",
            device_types=[device_type],
            debug=self.debug,
            writes=self.writes,
        )
        self.children[role] = child
        return child

    def get_child(self, role: str) -> Optional["MemoryEndpoint"]:
        return self.children.get(role)

    def has_cluster(self, cluster_id: ClusterType) -> bool:
        return cluster_id in self.clusters

    def get_attribute(self, cluster_id: ClusterType, attribute: str) -> Any:
        return self.clusters.get(cluster_id, {}).get(attribute)

    async def set_attribute(self, cluster_id: ClusterType, attribute: str, value: Any) -> None:
        cluster = self.clusters.get(cluster_id)
        if cluster is None:
            raise AttributeWriteError(
                f"{self.name} has no {CLUSTER_NAMES.get(cluster_id, hex(cluster_id))} cluster"
            )

        old_value = cluster.get(attribute)
        cluster[attribute] = value
        self.writes.append(AttributeWrite(self.name, cluster_id, attribute, value))

        if self.debug or old_value != value:
            logger.debug(
                f"{self.name}: {CLUSTER_NAMES.get(cluster_id, hex(cluster_id))}.{attribute} "
                f"{old_value} → {value}"
            )


class MemoryHost:
    """
    In-process bridge host.

    Enforces the host contract: each device is registered exactly once,
    and only registered devices count as bridged.
    """

    def __init__(self, version: str = "1.0.0", host_version: str = "1.0.0"):
        self.version = version
        self.host_version = host_version
        self._devices: Dict[str, MemoryEndpoint] = {}
        self._registered: Dict[str, MemoryEndpoint] = {}

    @property
    def registered_devices(self) -> List[MemoryEndpoint]:
        return list(self._registered.values())

    def create_root_device(
        self,
        unique_key: str,
        device_types: Iterable[MatterDeviceType],
        debug: bool = False,
    ) -> MemoryEndpoint:
        endpoint = MemoryEndpoint(name=unique_key, device_types=list(device_types), debug=debug)
        self._devices[unique_key] = endpoint
        return endpoint

    async def register_device(self, handle: MemoryEndpoint) -> None:
        if handle.name in self._registered:
            raise ValueError(f"Device {handle.name} is already registered")
        self._registered[handle.name] = handle
        logger.info(f"Registered device {handle.name}")

    async def unregister_all_devices(self, timeout: float = 0.5) -> None:
        count = len(self._registered)
        self._registered.clear()
        # Give the host a moment to propagate removals, like a real bridge would
        await asyncio.sleep(timeout)
        logger.info(f"Unregistered {count} device(s)")

    def get_device(self, unique_key: str) -> Optional[MemoryEndpoint]:
        return self._registered.get(unique_key)

    def writes(self) -> List[Tuple[str, ClusterType, str, Any]]:
        """All attribute writes across registered devices, in order per device."""
        result = []
        for endpoint in self._registered.values():
            result.extend((w.endpoint, w.cluster_id, w.attribute, w.value) for w in endpoint.writes)
        return result
