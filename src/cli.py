"""
Command-line interface for heart-monitor.

Provides commands to run the monitor and to inspect how labels and values
are handled without connecting to anything.

Usage:
    heart-monitor run              # Run gateway + poller + health endpoint
    heart-monitor parse 1.5k ❤️42  # Show parsed label values
    heart-monitor tiers            # Show the configured tier table
    heart-monitor evaluate 150 650 # Dry-run values for one message
"""

import asyncio
import signal

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Heart Monitor - threshold alerts for heart counts on game bot messages."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--no-gateway", is_flag=True, help="Disable the gateway feed")
@click.option("--no-poll", is_flag=True, help="Disable the REST poller")
def run(metrics: bool, no_gateway: bool, no_poll: bool) -> None:
    """Run the monitor until interrupted."""
    from src.services.monitor_service import MonitorService

    settings = get_settings()
    if (not no_gateway or not no_poll) and not settings.discord_configured:
        raise click.UsageError(
            "BOT_TOKEN, CHANNEL_ID and GAME_BOT_ID must be set "
            "(or pass --no-gateway --no-poll)"
        )

    async def run_monitor():
        monitor = MonitorService(
            settings=settings,
            enable_gateway=not no_gateway,
            enable_poll=not no_poll,
        )

        if metrics:
            get_metrics().start_server()

        # Handle shutdown signals
        loop = asyncio.get_event_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(monitor.stop()))

        await monitor.start()

    asyncio.run(run_monitor())


@main.command()
@click.argument("labels", nargs=-1, required=True)
def parse(labels: tuple[str, ...]) -> None:
    """Parse button labels the way the extractor does."""
    from src.extraction.labels import parse_label

    for label in labels:
        value = parse_label(label)
        shown = str(value) if value is not None else click.style("(ignored)", fg="yellow")
        click.echo(f"{label!r} -> {shown}")


@main.command()
def tiers() -> None:
    """Show the configured tier table."""
    from src.alerts.config import AlertConfig

    config = AlertConfig()

    click.echo("\nTiers:")
    click.echo("-" * 60)
    for tier in config.tiers:
        click.echo(
            f"  {tier.name:<12} {tier.describe():<18} "
            f"-> {tier.audience} (priority {tier.priority})"
        )
    click.echo("-" * 60)

    expiry = (
        f"{config.expiry_window_seconds:.0f}s"
        if config.expiry_window_seconds is not None
        else "disabled"
    )
    click.echo(f"  store capacity: {config.store_capacity}")
    click.echo(f"  expiry window:  {expiry}")


@main.command()
@click.argument("values", nargs=-1, type=int, required=True)
@click.option("--message-id", default="dry-run", help="Synthetic message id")
def evaluate(values: tuple[int, ...], message_id: str) -> None:
    """Dry-run a sequence of values for one message (no notifications)."""
    from src.alerts.config import AlertConfig
    from src.alerts.evaluator import ThresholdEvaluator

    evaluator = ThresholdEvaluator.from_config(AlertConfig())

    for value in values:
        duplicates_before = evaluator.stats.duplicates
        fired = evaluator.evaluate(message_id, value)

        if fired:
            names = ", ".join(
                f"{f.tier.name} -> {f.audience} (priority {f.tier.priority})" for f in fired
            )
            click.echo(click.style(f"  {value}: FIRE {names}", fg="green"))
        elif evaluator.stats.duplicates > duplicates_before:
            click.echo(f"  {value}: unchanged")
        else:
            click.echo(f"  {value}: no alert")
