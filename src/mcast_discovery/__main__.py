"""CLI entry point for mcast-discovery."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click

from .announcer import ServiceAnnouncer
from .config import Config
from .discoverer import ServiceDiscoverer
from .logging_config import configure_logging
from .models.service import Service


@click.group()
@click.option(
    "--config-file", "-c",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="Path to a JSON configuration file.",
    envvar="MCAST_DISCOVERY_CONFIG_FILE"
)
@click.option(
    "--log-level", "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None, # Falls back to the Config value
    help="Override the logging level (e.g., DEBUG, INFO)."
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Override logging format."
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str], log_format: Optional[str]) -> None:
    """mcast-discovery - announce and discover services over UDP multicast."""
    try:
        if config_file:
            cfg = Config.from_file(Path(config_file))
        else:
            # Environment variables (and .env file if present)
            cfg = Config()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if log_level:
        cfg.logging.level = log_level.upper()
    if log_format:
        cfg.logging.format = log_format.lower()

    configure_logging(cfg.logging)
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


def _run_until_interrupted(component) -> None:
    async def run():
        async with component:
            await asyncio.Event().wait() # Until Ctrl+C

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user.", err=True)
        sys.exit(130)


@cli.command()
@click.argument("service_name")
@click.argument("service_port", type=click.IntRange(1, 65535))
@click.option("--interval", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds between announcements.")
@click.pass_context
def announce(ctx: click.Context, service_name: str, service_port: int, interval: Optional[float]) -> None:
    """Announces SERVICE_NAME listening on SERVICE_PORT until interrupted."""
    config: Config = ctx.obj["config"]
    config.announcer.service_name = service_name
    config.announcer.service_port = service_port
    if interval is not None:
        config.announcer.interval_seconds = interval

    _run_until_interrupted(ServiceAnnouncer.from_config(config))


@cli.command()
@click.argument("service_name")
@click.option("--max-idle", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds before a silent service is dropped.")
@click.option("--max-services", type=click.IntRange(min=1), default=None, help="Maximum number of services to hold.")
@click.pass_context
def discover(ctx: click.Context, service_name: str, max_idle: Optional[float], max_services: Optional[int]) -> None:
    """Prints the set of SERVICE_NAME instances each time it changes."""
    config: Config = ctx.obj["config"]
    config.discoverer.listen_for_service = service_name
    if max_idle is not None:
        config.discoverer.max_idle_seconds = max_idle
    if max_services is not None:
        config.discoverer.max_services = max_services

    def print_services(services: tuple[Service, ...]) -> None:
        click.echo(f"--- {len(services)} service(s) ---")
        for service in services:
            click.echo(f"  {service}")

    _run_until_interrupted(ServiceDiscoverer.from_config(config, print_services))


@cli.command()
def version() -> None:
    """Show version information."""
    from . import __version__
    click.echo(f"mcast-discovery v{__version__}")


@cli.command()
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config = ctx.obj["config"]
    click.echo(json.dumps(config.model_dump(mode="json"), indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
