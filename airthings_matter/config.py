"""
Configuration management for the Airthings bridge.

Handles:
- Airthings API credentials (config file or environment)
- Refresh cadence and shutdown behaviour
- Device selection (white/black lists)
- Air quality channels excluded from the verdict

Stored as YAML. Keys may be written in snake_case or in the camelCase
used by bridge plugin configs (``refreshInterval``, ``clientId``, ...).
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

import yaml

from .airquality import AirQualityChannel

logger = logging.getLogger(__name__)

CLIENT_ID_ENV = "AIRTHINGS_CLIENT_ID"
CLIENT_SECRET_ENV = "AIRTHINGS_CLIENT_SECRET"

DEFAULT_CONFIG_PATH = Path.home() / ".airthings-matter" / "config.yaml"

# camelCase plugin keys → field names
ALIASES = {
    "clientId": "client_id",
    "clientSecret": "client_secret",
    "refreshInterval": "refresh_interval",
    "unregisterOnShutdown": "unregister_on_shutdown",
    "unregisterTimeout": "unregister_timeout",
    "whiteList": "white_list",
    "blackList": "black_list",
    "co2AirQualityDisabled": "co2_air_quality_disabled",
    "humidityAirQualityDisabled": "humidity_air_quality_disabled",
    "pm25AirQualityDisabled": "pm25_air_quality_disabled",
    "radonAirQualityDisabled": "radon_air_quality_disabled",
    "vocAirQualityDisabled": "voc_air_quality_disabled",
}


class MissingCredentialsError(ValueError):
    """Airthings client id or secret is not configured."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(
            f"Missing Airthings credentials ({', '.join(missing)}); "
            f"set {CLIENT_ID_ENV} and {CLIENT_SECRET_ENV} or configure them"
        )


@dataclass
class PlatformConfig:
    """
    Bridge platform configuration.

    Stored at ~/.airthings-matter/config.yaml by default.
    """
    # Credentials (fall back to the environment)
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    # Refresh
    refresh_interval: float = 120.0

    # Lifecycle
    unregister_on_shutdown: bool = False
    unregister_timeout: float = 0.5
    debug: bool = False

    # Device selection, by serial number or name
    white_list: List[str] = field(default_factory=list)
    black_list: List[str] = field(default_factory=list)

    # Channels excluded from the air quality verdict
    co2_air_quality_disabled: bool = False
    humidity_air_quality_disabled: bool = False
    pm25_air_quality_disabled: bool = False
    radon_air_quality_disabled: bool = False
    voc_air_quality_disabled: bool = False

    def credentials(self) -> Tuple[str, str]:
        """
        Resolve the API credentials.

        Explicit config values win over the environment.

        Raises:
            MissingCredentialsError: If either credential is missing
        """
        client_id = self.client_id or os.environ.get(CLIENT_ID_ENV)
        client_secret = self.client_secret or os.environ.get(CLIENT_SECRET_ENV)

        missing = []
        if not client_id:
            missing.append(CLIENT_ID_ENV)
        if not client_secret:
            missing.append(CLIENT_SECRET_ENV)
        if missing:
            raise MissingCredentialsError(missing)

        return client_id, client_secret

    def disabled_channels(self) -> Set[AirQualityChannel]:
        """Channels excluded from classification."""
        flags = {
            AirQualityChannel.CO2: self.co2_air_quality_disabled,
            AirQualityChannel.HUMIDITY: self.humidity_air_quality_disabled,
            AirQualityChannel.PM25: self.pm25_air_quality_disabled,
            AirQualityChannel.RADON: self.radon_air_quality_disabled,
            AirQualityChannel.VOC: self.voc_air_quality_disabled,
        }
        return {channel for channel, disabled in flags.items() if disabled}

    def is_selected(self, serial_number: str, name: str) -> bool:
        """Check a device against the white and black lists."""
        keys = {serial_number, name}
        if self.white_list and not keys & set(self.white_list):
            return False
        if keys & set(self.black_list):
            return False
        return True

    def validate(self) -> List[str]:
        """Validate the configuration and return any errors."""
        errors = []
        if self.refresh_interval <= 0:
            errors.append("refresh_interval must be positive")
        if self.unregister_timeout < 0:
            errors.append("unregister_timeout cannot be negative")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlatformConfig":
        # Filter to only known fields to handle config evolution
        known_fields = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = ALIASES.get(key, key)
            if name in known_fields:
                kwargs[name] = value
            else:
                logger.debug(f"Ignoring unknown config key: {key}")
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "PlatformConfig":
        """
        Load configuration from YAML.

        A missing file yields the defaults (credentials then come from the
        environment).
        """
        path = Path(path) if path else DEFAULT_CONFIG_PATH

        if not path.exists():
            logger.debug(f"No config at {path}, using defaults")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        if not data:
            return cls()

        config = cls.from_dict(data)
        logger.debug(f"Configuration loaded from {path}")
        return config

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Save configuration to YAML, without the credentials."""
        path = Path(path) if path else DEFAULT_CONFIG_PATH
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.to_dict()
        data.pop("client_id")
        data.pop("client_secret")

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.debug(f"Configuration saved to {path}")
        return path
