"""
Air quality classification.

Turns a device snapshot into a single qualitative verdict. Each recognized
pollutant channel is rated on its own three-tier scale and the worst
rating wins. Channels without a reading contribute nothing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Collection, Dict, Optional

from .airthings.models import DeviceSnapshot, SensorType
from .matter.models import AirQuality


class AirQualityChannel(str, Enum):
    """Pollutant channels that take part in the verdict."""
    CO2 = "co2"
    HUMIDITY = "humidity"
    PM25 = "pm25"
    RADON = "radon"
    VOC = "voc"


@dataclass(frozen=True)
class Thresholds:
    """
    Ascending thresholds for a single channel.

    Values at or above ``poor`` are Poor, at or above ``fair`` are Fair,
    anything lower is Good.
    """
    fair: float
    poor: float

    def rate(self, value: float) -> AirQuality:
        if value >= self.poor:
            return AirQuality.POOR
        if value >= self.fair:
            return AirQuality.FAIR
        return AirQuality.GOOD


def rate_humidity(value: float) -> AirQuality:
    """
    Rate relative humidity (%).

    Humidity is two-sided: both dry and damp air are bad.
    [30, 60) is Good, [25, 30) and [60, 70) are Fair, the rest is Poor.
    """
    if value < 25 or value >= 70:
        return AirQuality.POOR
    if value < 30 or value >= 60:
        return AirQuality.FAIR
    return AirQuality.GOOD


CO2_THRESHOLDS = Thresholds(fair=800, poor=1000)        # ppm
PM25_THRESHOLDS = Thresholds(fair=10, poor=25)          # µg/m³
RADON_THRESHOLDS = Thresholds(fair=100, poor=150)       # Bq/m³
VOC_THRESHOLDS = Thresholds(fair=250, poor=2000)        # ppb


# Channel → (sensor type, rating function), in evaluation order
CHANNELS: Dict[AirQualityChannel, tuple] = {
    AirQualityChannel.CO2: (SensorType.CO2.value, CO2_THRESHOLDS.rate),
    AirQualityChannel.HUMIDITY: (SensorType.HUMIDITY.value, rate_humidity),
    AirQualityChannel.PM25: (SensorType.PM25.value, PM25_THRESHOLDS.rate),
    AirQualityChannel.RADON: (SensorType.RADON_SHORT_TERM_AVG.value, RADON_THRESHOLDS.rate),
    AirQualityChannel.VOC: (SensorType.VOC.value, VOC_THRESHOLDS.rate),
}


def rate_channel(channel: AirQualityChannel, snapshot: DeviceSnapshot) -> Optional[AirQuality]:
    """Rate one channel of a snapshot, or None if it has no usable reading."""
    sensor_type, rate = CHANNELS[channel]
    value = snapshot.value(sensor_type)
    if value is None:
        return None
    return rate(value)


def classify(
    snapshot: DeviceSnapshot,
    disabled: Collection[AirQualityChannel] = (),
) -> AirQuality:
    """
    Classify a snapshot into an air quality verdict.

    Args:
        snapshot: Latest readings of one device
        disabled: Channels excluded from the verdict

    Returns:
        The worst per-channel rating, or UNKNOWN if no channel was rated
    """
    verdict = AirQuality.UNKNOWN

    for channel in CHANNELS:
        if channel in disabled:
            continue
        rating = rate_channel(channel, snapshot)
        if rating is not None:
            verdict = max(verdict, rating)

    return verdict


class AirQualityClassifier:
    """Classifier bound to a fixed set of disabled channels."""

    def __init__(self, disabled: Collection[AirQualityChannel] = ()):
        self.disabled = frozenset(disabled)

    def __call__(self, snapshot: DeviceSnapshot) -> AirQuality:
        return classify(snapshot, self.disabled)

    def classify(self, snapshot: DeviceSnapshot) -> AirQuality:
        return classify(snapshot, self.disabled)
