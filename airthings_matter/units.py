"""
Unit conversion from Airthings readings to Matter attribute encodings.

All functions map None to None: an unknown reading stays unknown and is
never replaced by zero.
"""

from typing import Optional

# ppb → µg/m³ for the reference compound assumed by the TVOC cluster
VOC_PPB_TO_UGM3 = 2.2727


def temperature_to_matter(celsius: Optional[float]) -> Optional[int]:
    """°C → hundredths of a degree (truncated)."""
    if celsius is None:
        return None
    return int(celsius * 100)


def humidity_to_matter(percent: Optional[float]) -> Optional[int]:
    """Relative humidity % → hundredths of a percent (truncated)."""
    if percent is None:
        return None
    return int(percent * 100)


def battery_to_matter(percent: Optional[float]) -> Optional[int]:
    """Battery % → PowerSource half-percent units (0-200)."""
    if percent is None:
        return None
    return int(percent * 2)


def voc_to_matter(ppb: Optional[float]) -> Optional[int]:
    """TVOC ppb → µg/m³, rounded to the nearest integer."""
    if ppb is None:
        return None
    return round(ppb * VOC_PPB_TO_UGM3)


def passthrough(value: Optional[float]) -> Optional[float]:
    """CO₂ (ppm), PM1/PM2.5 (µg/m³) and radon (Bq/m³) are already in Matter units."""
    return value


co2_to_matter = passthrough
pm1_to_matter = passthrough
pm25_to_matter = passthrough
radon_to_matter = passthrough
