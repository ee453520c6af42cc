"""Device registry module."""
from .devices import (
    BridgedDeviceRecord,
    DeviceRegistry,
    DuplicateDeviceError,
)

__all__ = [
    "BridgedDeviceRecord",
    "DeviceRegistry",
    "DuplicateDeviceError",
]
