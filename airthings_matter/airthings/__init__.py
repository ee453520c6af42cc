"""Airthings consumer API access."""
from .models import (
    AirthingsDevice,
    DeviceSnapshot,
    SensorReading,
    SensorType,
    SensorUnits,
)
from .client import (
    AirthingsApiError,
    AirthingsClient,
    AirthingsClientConfig,
    SensorSource,
)

__all__ = [
    "AirthingsDevice",
    "DeviceSnapshot",
    "SensorReading",
    "SensorType",
    "SensorUnits",
    "AirthingsApiError",
    "AirthingsClient",
    "AirthingsClientConfig",
    "SensorSource",
]
