"""
Airthings Matter CLI - Run the bridge and inspect Airthings devices.
"""

import asyncio
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .airquality import AirQualityClassifier
from .airthings.client import AirthingsApiError, AirthingsClient, AirthingsClientConfig
from .airthings.models import SensorUnits
from .config import MissingCredentialsError, PlatformConfig
from .matter.host import MemoryHost
from .matter.mapping import AIR_QUALITY_MEASUREMENTS
from .matter.models import AirQuality
from .platform import AirthingsPlatform
from .units import battery_to_matter

console = Console()

VERDICT_STYLES = {
    AirQuality.UNKNOWN: "dim",
    AirQuality.GOOD: "green",
    AirQuality.FAIR: "yellow",
    AirQuality.POOR: "red",
    AirQuality.EXTREMELY_POOR: "bold red",
}


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()]
    )


def load_config(path: Optional[str]) -> PlatformConfig:
    config = PlatformConfig.load(path)
    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        sys.exit(1)
    return config


def make_client(config: PlatformConfig) -> AirthingsClient:
    try:
        client_id, client_secret = config.credentials()
    except MissingCredentialsError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)
    return AirthingsClient(AirthingsClientConfig(client_id, client_secret))


def verdict_text(verdict: AirQuality) -> str:
    style = VERDICT_STYLES.get(verdict, "")
    return f"[{style}]{verdict.name.replace('_', ' ').title()}[/{style}]"


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.version_option(__version__)
@click.pass_context
def main(ctx, verbose):
    """🌬️  Airthings → Matter bridge"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose)


@main.command()
@click.option('--config', '-c', 'config_path', type=click.Path(), help='Config file (YAML)')
@click.option('--interval', '-i', type=click.FloatRange(min=0, min_open=True), help='Refresh interval in seconds')
def run(config_path: Optional[str], interval: Optional[float]):
    """Run the bridge against an in-memory host until interrupted."""
    config = load_config(config_path)
    if interval is not None:
        config.refresh_interval = interval

    host = MemoryHost(version=__version__, host_version=__version__)
    try:
        platform = AirthingsPlatform(host, config)
    except MissingCredentialsError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    async def _run():
        try:
            descriptors = await platform.on_start("cli")

            table = Table(title="Bridged devices")
            table.add_column("Serial", style="cyan")
            table.add_column("Name")
            table.add_column("Type")
            table.add_column("Air quality")
            for descriptor in descriptors:
                table.add_row(
                    descriptor.serial_number,
                    descriptor.name,
                    descriptor.type_label,
                    verdict_text(descriptor.air_quality),
                )
            console.print(table)
            console.print(f"[dim]Refreshing every {config.refresh_interval:.0f}s, Ctrl+C to stop[/dim]")

            await platform.on_configure()
            await platform.scheduler.join()
        finally:
            await platform.on_shutdown("cli exit")

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
    except AirthingsApiError as e:
        console.print(f"[red]✗ Airthings API error: {e}[/red]")
        sys.exit(1)


@main.command()
@click.option('--config', '-c', 'config_path', type=click.Path(), help='Config file (YAML)')
def devices(config_path: Optional[str]):
    """List Airthings devices with their current air quality."""
    config = load_config(config_path)
    classifier = AirQualityClassifier(config.disabled_channels())

    async def _devices():
        async with make_client(config) as client:
            device_list = await client.get_devices()
            snapshots = {s.serial_number: s for s in await client.get_sensors(SensorUnits.METRIC)}

        table = Table()
        table.add_column("Serial", style="cyan")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Battery", justify="right")
        table.add_column("Air quality")
        table.add_column("Bridged")

        for device in device_list:
            snapshot = snapshots.get(device.serial_number)
            recorded = snapshot is not None and snapshot.recorded
            battery = snapshot.battery_percentage if snapshot else None
            verdict = classifier(snapshot) if snapshot else AirQuality.UNKNOWN
            selected = config.is_selected(device.serial_number, device.name)
            table.add_row(
                device.serial_number,
                device.name,
                device.device_type,
                f"{battery}%" if battery is not None else "-",
                verdict_text(verdict),
                "[green]✓[/green]" if recorded and selected else "[dim]✗[/dim]",
            )

        console.print(table)

    try:
        asyncio.run(_devices())
    except AirthingsApiError as e:
        console.print(f"[red]✗ Airthings API error: {e}[/red]")
        sys.exit(1)


@main.command()
@click.option('--config', '-c', 'config_path', type=click.Path(), help='Config file (YAML)')
@click.option('--serial', '-s', help='Only show this device')
def sensors(config_path: Optional[str], serial: Optional[str]):
    """Show the latest readings and their Matter encodings."""
    config = load_config(config_path)

    async def _sensors():
        async with make_client(config) as client:
            snapshots = await client.get_sensors(SensorUnits.METRIC)

        if serial:
            snapshots = [s for s in snapshots if s.serial_number == serial]
            if not snapshots:
                console.print(f"[red]✗ Device not found: {serial}[/red]")
                return

        measurements = {m.sensor_type: m for m in AIR_QUALITY_MEASUREMENTS}

        for snapshot in snapshots:
            table = Table(title=f"{snapshot.serial_number}{'' if snapshot.recorded else ' (no recording)'}")
            table.add_column("Sensor")
            table.add_column("Value", justify="right")
            table.add_column("Unit", style="dim")
            table.add_column("Matter", justify="right", style="cyan")

            if snapshot.battery_percentage is not None:
                table.add_row(
                    "battery",
                    str(snapshot.battery_percentage),
                    "%",
                    str(battery_to_matter(snapshot.battery_percentage)),
                )

            for reading in snapshot.sensors:
                measurement = measurements.get(reading.sensor_type)
                matter_value = measurement.convert(snapshot.value(reading.sensor_type)) if measurement else None
                table.add_row(
                    reading.sensor_type,
                    str(reading.value),
                    reading.unit or "",
                    "-" if matter_value is None else str(matter_value),
                )

            console.print(table)

    try:
        asyncio.run(_sensors())
    except AirthingsApiError as e:
        console.print(f"[red]✗ Airthings API error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
