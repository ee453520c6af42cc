"""
Airthings Matter Bridge

Polls the Airthings cloud API and republishes each device's readings as
Matter temperature, humidity and air quality sensors.

Example:
    >>> from airthings_matter import AirthingsPlatform, PlatformConfig
    >>> from airthings_matter.matter import MemoryHost
    >>> platform = AirthingsPlatform(MemoryHost(), PlatformConfig.load())
    >>> await platform.on_start()
    >>> await platform.on_configure()
"""

__version__ = "1.0.0"

from .airquality import AirQualityChannel, AirQualityClassifier, classify
from .config import MissingCredentialsError, PlatformConfig
from .platform import AirthingsPlatform, PlatformStateError, initialize_plugin
from .registry import DeviceRegistry, DuplicateDeviceError
from .scheduler import RefreshScheduler, SchedulerState

__all__ = [
    "__version__",
    "AirQualityChannel",
    "AirQualityClassifier",
    "classify",
    "MissingCredentialsError",
    "PlatformConfig",
    "AirthingsPlatform",
    "PlatformStateError",
    "initialize_plugin",
    "DeviceRegistry",
    "DuplicateDeviceError",
    "RefreshScheduler",
    "SchedulerState",
]
