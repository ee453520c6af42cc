"""
Matter side of the Airthings bridge.

Architecture:
    Airthings snapshot → Mapping → Device descriptor → Host handles

Key Components:
- models: Matter device types, clusters and enums
- host: Capability interface of host-owned devices, in-memory host
- mapping: Snapshot → device tree mapping, capability sets
"""

from .models import (
    AirQuality,
    ClusterType,
    DeviceRole,
    MatterDeviceType,
    MeasurementMedium,
    MeasurementUnit,
)
from .host import (
    AttributeWriteError,
    BridgeHost,
    DeviceHandle,
    MemoryEndpoint,
    MemoryHost,
)

__all__ = [
    "AirQuality",
    "ClusterType",
    "DeviceRole",
    "MatterDeviceType",
    "MeasurementMedium",
    "MeasurementUnit",
    "AttributeWriteError",
    "BridgeHost",
    "DeviceHandle",
    "MemoryEndpoint",
    "MemoryHost",
]
