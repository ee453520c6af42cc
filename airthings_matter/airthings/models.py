"""
Airthings consumer API data models.

Defines the upstream types returned by the sensor data source.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class SensorUnits(str, Enum):
    """Unit system requested from the sensors endpoint."""
    METRIC = "metric"
    IMPERIAL = "imperial"


class SensorType(str, Enum):
    """Sensor types reported by the Airthings consumer API."""
    TEMP = "temp"
    HUMIDITY = "humidity"
    CO2 = "co2"
    PM1 = "pm1"
    PM25 = "pm25"
    RADON_SHORT_TERM_AVG = "radonShortTermAvg"
    VOC = "voc"
    PRESSURE = "pressure"
    LIGHT = "light"
    SOUND_LEVEL_A = "soundLevelA"


@dataclass(frozen=True)
class SensorReading:
    """A single reading of one sensor type."""
    sensor_type: str
    value: float
    unit: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SensorReading":
        return cls(
            sensor_type=data["sensorType"],
            value=data["value"],
            unit=data.get("unit"),
        )


@dataclass
class AirthingsDevice:
    """A device registered on the Airthings account."""
    serial_number: str
    name: str
    device_type: str
    sensors: List[str] = field(default_factory=list)
    home: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AirthingsDevice":
        return cls(
            serial_number=data["serialNumber"],
            name=data.get("name") or data["serialNumber"],
            device_type=data.get("type", "UNKNOWN"),
            sensors=list(data.get("sensors", [])),
            home=data.get("home"),
        )


@dataclass
class DeviceSnapshot:
    """
    One poll's full reading set for one device.

    Produced fresh on every poll. ``name`` and ``device_type`` are not part
    of the sensors payload; they are filled in from the device listing.
    """
    serial_number: str
    recorded: bool = False
    battery_percentage: Optional[int] = None
    sensors: List[SensorReading] = field(default_factory=list)
    name: str = ""
    device_type: str = ""

    def get(self, sensor_type: str) -> Optional[SensorReading]:
        """Get the reading of a sensor type, if reported."""
        for reading in self.sensors:
            if reading.sensor_type == sensor_type:
                return reading
        return None

    def value(self, sensor_type: str) -> Optional[float]:
        """
        Get the value of a sensor type.

        Returns None for absent readings and for NaN values, so callers
        never mistake "unknown" for a real measurement.
        """
        reading = self.get(sensor_type)
        if reading is None or reading.value is None:
            return None
        if isinstance(reading.value, float) and math.isnan(reading.value):
            return None
        return reading.value

    @property
    def sensor_types(self) -> List[str]:
        return [r.sensor_type for r in self.sensors]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeviceSnapshot":
        """Deserialize one entry of the sensors endpoint ``results``."""
        readings: List[SensorReading] = []
        seen = set()
        for sensor_data in data.get("sensors", []):
            reading = SensorReading.from_dict(sensor_data)
            # sensorType is unique per snapshot; keep the first
            if reading.sensor_type in seen:
                continue
            seen.add(reading.sensor_type)
            readings.append(reading)

        return cls(
            serial_number=data["serialNumber"],
            recorded=bool(data.get("recorded", False)),
            battery_percentage=data.get("batteryPercentage"),
            sensors=readings,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the sensors endpoint shape."""
        return {
            "serialNumber": self.serial_number,
            "recorded": self.recorded,
            "batteryPercentage": self.battery_percentage,
            "sensors": [
                {"sensorType": r.sensor_type, "value": r.value, "unit": r.unit}
                for r in self.sensors
            ],
        }
