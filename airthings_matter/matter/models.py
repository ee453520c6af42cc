"""
Matter device models and identifiers.

Device type, cluster and enum values used by the bridged Airthings devices.

See: Matter Application Cluster Specification
"""

from enum import IntEnum


class MatterDeviceType(IntEnum):
    """Matter device type IDs used by bridged sensors."""
    POWER_SOURCE = 0x0011
    BRIDGED_NODE = 0x0013
    AIR_QUALITY_SENSOR = 0x002C
    TEMPERATURE_SENSOR = 0x0302
    HUMIDITY_SENSOR = 0x0307


class ClusterType(IntEnum):
    """Matter cluster IDs."""
    # General
    BRIDGED_DEVICE_BASIC_INFORMATION = 0x0039
    POWER_SOURCE = 0x002F

    # Measurement
    TEMPERATURE_MEASUREMENT = 0x0402
    RELATIVE_HUMIDITY_MEASUREMENT = 0x0405

    # Air quality
    AIR_QUALITY = 0x005B
    CARBON_DIOXIDE_CONCENTRATION = 0x040D
    PM25_CONCENTRATION = 0x042A
    PM1_CONCENTRATION = 0x042C
    TVOC_CONCENTRATION = 0x042E
    RADON_CONCENTRATION = 0x042F


CLUSTER_NAMES = {
    ClusterType.BRIDGED_DEVICE_BASIC_INFORMATION: "BridgedDeviceBasicInformation",
    ClusterType.POWER_SOURCE: "PowerSource",
    ClusterType.TEMPERATURE_MEASUREMENT: "TemperatureMeasurement",
    ClusterType.RELATIVE_HUMIDITY_MEASUREMENT: "RelativeHumidityMeasurement",
    ClusterType.AIR_QUALITY: "AirQuality",
    ClusterType.CARBON_DIOXIDE_CONCENTRATION: "CarbonDioxideConcentrationMeasurement",
    ClusterType.PM25_CONCENTRATION: "Pm25ConcentrationMeasurement",
    ClusterType.PM1_CONCENTRATION: "Pm1ConcentrationMeasurement",
    ClusterType.TVOC_CONCENTRATION: "TotalVolatileOrganicCompoundsConcentrationMeasurement",
    ClusterType.RADON_CONCENTRATION: "RadonConcentrationMeasurement",
}


class AirQuality(IntEnum):
    """
    Qualitative air quality verdict.

    Values follow the Matter AirQualityEnum, so higher is worse and the
    verdict can be written to the AirQuality cluster unchanged.
    """
    UNKNOWN = 0
    GOOD = 1
    FAIR = 2
    POOR = 4
    EXTREMELY_POOR = 6


class MeasurementUnit(IntEnum):
    """ConcentrationMeasurement MeasurementUnitEnum."""
    PPM = 0
    PPB = 1
    PPT = 2
    MGM3 = 3
    UGM3 = 4
    NGM3 = 5
    PM3 = 6
    BQM3 = 7


class MeasurementMedium(IntEnum):
    """ConcentrationMeasurement MeasurementMediumEnum."""
    AIR = 0
    WATER = 1
    SOIL = 2


class DeviceRole:
    """Labels of the child devices under each bridged root."""
    TEMPERATURE = "Temperature"
    HUMIDITY = "Humidity"
    AIR_QUALITY = "AirQuality"

    ALL = (TEMPERATURE, HUMIDITY, AIR_QUALITY)


# Vendor identity used for every bridged device (0xFFF1 is a test vendor id)
VENDOR_ID = 0xFFF1
VENDOR_NAME = "Airthings"
