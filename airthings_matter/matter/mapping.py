"""
Airthings Device → Matter Device Mapping.

Maps an Airthings device snapshot onto the bridged Matter device tree:

    Bridged node (BasicInformation, PowerSource if battery powered)
    ├── Temperature  (TemperatureMeasurement)
    ├── Humidity     (RelativeHumidityMeasurement)
    └── AirQuality   (AirQuality + one cluster per supported channel)

Which channels the AirQuality child carries is decided by a
``CapabilitySet``, so every device variant goes through the same mapper.
"""

import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..airquality import AirQualityClassifier
from ..airthings.models import AirthingsDevice, DeviceSnapshot, SensorType
from ..units import (
    battery_to_matter,
    co2_to_matter,
    humidity_to_matter,
    pm1_to_matter,
    pm25_to_matter,
    radon_to_matter,
    temperature_to_matter,
    voc_to_matter,
)
from .host import BridgeHost, DeviceHandle
from .models import (
    AirQuality,
    ClusterType,
    DeviceRole,
    MatterDeviceType,
    MeasurementMedium,
    MeasurementUnit,
    VENDOR_ID,
    VENDOR_NAME,
)


@dataclass(frozen=True)
class Measurement:
    """How one Airthings sensor type is published on the AirQuality child."""
    capability: str
    sensor_type: str
    cluster_id: ClusterType
    convert: Callable[[Optional[float]], Any]
    unit: Optional[MeasurementUnit] = None


# =============================================================================
# MEASUREMENT TABLE
# =============================================================================

# Publication order on the AirQuality child
AIR_QUALITY_MEASUREMENTS: List[Measurement] = [
    Measurement("temperature", SensorType.TEMP.value,
                ClusterType.TEMPERATURE_MEASUREMENT, temperature_to_matter),
    Measurement("humidity", SensorType.HUMIDITY.value,
                ClusterType.RELATIVE_HUMIDITY_MEASUREMENT, humidity_to_matter),
    Measurement("co2", SensorType.CO2.value,
                ClusterType.CARBON_DIOXIDE_CONCENTRATION, co2_to_matter, MeasurementUnit.PPM),
    Measurement("pm1", SensorType.PM1.value,
                ClusterType.PM1_CONCENTRATION, pm1_to_matter, MeasurementUnit.UGM3),
    Measurement("pm25", SensorType.PM25.value,
                ClusterType.PM25_CONCENTRATION, pm25_to_matter, MeasurementUnit.UGM3),
    Measurement("radon", SensorType.RADON_SHORT_TERM_AVG.value,
                ClusterType.RADON_CONCENTRATION, radon_to_matter, MeasurementUnit.BQM3),
    Measurement("voc", SensorType.VOC.value,
                ClusterType.TVOC_CONCENTRATION, voc_to_matter, MeasurementUnit.UGM3),
]

TEMPERATURE_MEASUREMENT = AIR_QUALITY_MEASUREMENTS[0]
HUMIDITY_MEASUREMENT = AIR_QUALITY_MEASUREMENTS[1]

SENSOR_TYPE_TO_CAPABILITY = {m.sensor_type: m.capability for m in AIR_QUALITY_MEASUREMENTS}


@dataclass(frozen=True)
class CapabilitySet:
    """
    Channels a device variant publishes.

    The measurement flags gate the clusters on the AirQuality child;
    ``battery`` gates the PowerSource cluster on the root.
    """
    temperature: bool = True
    humidity: bool = True
    co2: bool = True
    pm1: bool = True
    pm25: bool = True
    radon: bool = True
    voc: bool = True
    battery: bool = True

    @classmethod
    def full(cls) -> "CapabilitySet":
        return cls()

    @classmethod
    def from_sensor_types(cls, sensor_types: Iterable[str], battery: bool = True) -> "CapabilitySet":
        """Build from the sensor types a device advertises."""
        advertised = {SENSOR_TYPE_TO_CAPABILITY[s] for s in sensor_types if s in SENSOR_TYPE_TO_CAPABILITY}
        flags = {m.capability: m.capability in advertised for m in AIR_QUALITY_MEASUREMENTS}
        return cls(battery=battery, **flags)

    def supports(self, capability: str) -> bool:
        return getattr(self, capability, False)

    def with_battery(self, battery: bool) -> "CapabilitySet":
        return replace(self, battery=battery)

    def enabled(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]


@dataclass
class ClusterDescriptor:
    """A cluster with its initial attribute values."""
    cluster_id: ClusterType
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChildDescriptor:
    """A child device under the bridged root."""
    role: str
    device_type: MatterDeviceType
    clusters: List[ClusterDescriptor] = field(default_factory=list)

    def get_cluster(self, cluster_id: ClusterType) -> Optional[ClusterDescriptor]:
        for cluster in self.clusters:
            if cluster.cluster_id == cluster_id:
                return cluster
        return None


@dataclass
class DeviceDescriptor:
    """Initial state of one bridged device, ready to be created on a host."""
    serial_number: str
    name: str
    type_label: str
    capabilities: CapabilitySet
    device_types: List[MatterDeviceType] = field(default_factory=list)
    clusters: List[ClusterDescriptor] = field(default_factory=list)
    children: List[ChildDescriptor] = field(default_factory=list)
    air_quality: AirQuality = AirQuality.UNKNOWN

    @property
    def unique_key(self) -> str:
        return f"{VENDOR_NAME}-{self.serial_number}"

    @property
    def has_battery(self) -> bool:
        return self.capabilities.battery

    def get_cluster(self, cluster_id: ClusterType) -> Optional[ClusterDescriptor]:
        for cluster in self.clusters:
            if cluster.cluster_id == cluster_id:
                return cluster
        return None

    def get_child(self, role: str) -> Optional[ChildDescriptor]:
        for child in self.children:
            if child.role == role:
                return child
        return None


def type_label(device_type: str) -> str:
    """``VIEW_PLUS`` → ``View Plus``."""
    words = device_type.replace("_", " ").lower()
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), words)


def version_number(version: str) -> int:
    """``1.2.3`` → ``123``; versions without digits map to 0."""
    digits = re.sub(r"\D", "", version)
    return int(digits) if digits else 0


def measurement_cluster(measurement: Measurement, value: Any) -> ClusterDescriptor:
    """Cluster descriptor for a measurement with its initial value."""
    attributes: Dict[str, Any] = {"measuredValue": value}
    if measurement.unit is not None:
        attributes["measurementUnit"] = measurement.unit
        attributes["measurementMedium"] = MeasurementMedium.AIR
    return ClusterDescriptor(measurement.cluster_id, attributes)


class DeviceMapper:
    """
    Maps Airthings snapshots to Matter device descriptors.

    Stateless apart from the classifier and the version strings stamped
    into the basic information cluster.
    """

    def __init__(
        self,
        classifier: Optional[AirQualityClassifier] = None,
        version: str = "1.0.0",
        host_version: str = "1.0.0",
    ):
        self.classifier = classifier or AirQualityClassifier()
        self.version = version
        self.host_version = host_version

    def capabilities_for(self, device: Optional[AirthingsDevice]) -> CapabilitySet:
        """Capability set of a device, from the sensors it advertises."""
        if device is None or not device.sensors:
            return CapabilitySet.full()
        return CapabilitySet.from_sensor_types(device.sensors)

    def build_initial_state(
        self,
        snapshot: DeviceSnapshot,
        capabilities: Optional[CapabilitySet] = None,
    ) -> DeviceDescriptor:
        """
        Build the device tree and initial attribute values for a snapshot.

        Readings missing from the snapshot become None ("no value"), never 0.
        """
        battery = battery_to_matter(snapshot.battery_percentage)
        capabilities = (capabilities or CapabilitySet.full()).with_battery(battery is not None)
        verdict = self.classifier(snapshot)

        device_types = [MatterDeviceType.BRIDGED_NODE]
        if capabilities.battery:
            device_types.append(MatterDeviceType.POWER_SOURCE)

        descriptor = DeviceDescriptor(
            serial_number=snapshot.serial_number,
            name=snapshot.name or snapshot.serial_number,
            type_label=type_label(snapshot.device_type or "unknown"),
            capabilities=capabilities,
            device_types=device_types,
            air_quality=verdict,
        )

        descriptor.clusters.append(self._basic_information(descriptor))
        if capabilities.battery:
            descriptor.clusters.append(ClusterDescriptor(
                ClusterType.POWER_SOURCE,
                {
                    "description": "Primary battery",
                    "batPercentRemaining": battery,
                    "batReplaceability": "userReplaceable",
                },
            ))

        temperature = temperature_to_matter(snapshot.value(SensorType.TEMP.value))
        humidity = humidity_to_matter(snapshot.value(SensorType.HUMIDITY.value))

        descriptor.children.append(ChildDescriptor(
            DeviceRole.TEMPERATURE,
            MatterDeviceType.TEMPERATURE_SENSOR,
            [measurement_cluster(TEMPERATURE_MEASUREMENT, temperature)],
        ))
        descriptor.children.append(ChildDescriptor(
            DeviceRole.HUMIDITY,
            MatterDeviceType.HUMIDITY_SENSOR,
            [measurement_cluster(HUMIDITY_MEASUREMENT, humidity)],
        ))

        air_quality = ChildDescriptor(
            DeviceRole.AIR_QUALITY,
            MatterDeviceType.AIR_QUALITY_SENSOR,
            [ClusterDescriptor(ClusterType.AIR_QUALITY, {"airQuality": verdict})],
        )
        for measurement in AIR_QUALITY_MEASUREMENTS:
            if not capabilities.supports(measurement.capability):
                continue
            value = measurement.convert(snapshot.value(measurement.sensor_type))
            air_quality.clusters.append(measurement_cluster(measurement, value))
        descriptor.children.append(air_quality)

        return descriptor

    def _basic_information(self, descriptor: DeviceDescriptor) -> ClusterDescriptor:
        return ClusterDescriptor(
            ClusterType.BRIDGED_DEVICE_BASIC_INFORMATION,
            {
                "nodeLabel": descriptor.name,
                "serialNumber": descriptor.serial_number,
                "uniqueId": descriptor.unique_key,
                "vendorId": VENDOR_ID,
                "vendorName": VENDOR_NAME,
                "productName": descriptor.type_label,
                "softwareVersion": version_number(self.version),
                "softwareVersionString": self.version,
                "hardwareVersion": version_number(self.host_version),
                "hardwareVersionString": self.host_version,
                "reachable": True,
            },
        )


def build_endpoint(
    host: BridgeHost,
    descriptor: DeviceDescriptor,
    debug: bool = False,
) -> Tuple[DeviceHandle, Dict[str, DeviceHandle]]:
    """
    Create the device tree of a descriptor on a host.

    Returns:
        (root handle, child handles by role)
    """
    root = host.create_root_device(descriptor.unique_key, descriptor.device_types, debug=debug)
    for cluster in descriptor.clusters:
        root.add_cluster(cluster.cluster_id, dict(cluster.attributes))

    children: Dict[str, DeviceHandle] = {}
    for child_descriptor in descriptor.children:
        child = root.add_child(child_descriptor.role, child_descriptor.device_type)
        for cluster in child_descriptor.clusters:
            child.add_cluster(cluster.cluster_id, dict(cluster.attributes))
        children[child_descriptor.role] = child

    return root, children
