"""Command line interface for SunSigns Fetcher."""

import asyncio
import json
from datetime import datetime
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ConfigManager, config_manager
from .models.horoscope import (
    PERIODS,
    ZODIAC_SIGNS,
    CacheCleared,
    FetchFailed,
    FetchSucceeded,
    split_cache_key,
)
from .services.context import FetchContext, run_forever
from .utils.error_handling import create_user_friendly_error
from .utils.clock import to_local_naive
from .utils.logging import setup_logging


def parse_now(value: Optional[str]) -> Optional[datetime]:
    """Parse the --now option (YYYY-MM-DD or YYYY-MM-DDTHH:MM)."""
    if not value:
        return None
    try:
        return to_local_naive(datetime.fromisoformat(value))
    except ValueError:
        raise click.BadParameter(f"'{value}' is not an ISO date (YYYY-MM-DD[THH:MM])")


def format_age(seconds: float) -> str:
    """Format an age in seconds as e.g. '2h 05m'."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours >= 24:
        return f"{hours // 24}d {hours % 24}h"
    return f"{hours}h {minutes:02d}m"


def print_event(console: Console, event) -> None:
    """Print one outbound event."""
    if isinstance(event, FetchSucceeded):
        source = "cache" if event.from_cache else "source"
        console.print(
            f"[green]✓[/green] [bold]{event.category.capitalize()}[/bold] "
            f"{event.period} [dim]({source})[/dim]"
        )
        console.print(f"  {event.text}")
    elif isinstance(event, FetchFailed):
        console.print(
            f"[red]✗[/red] [bold]{event.category.capitalize()}[/bold] "
            f"{event.period}: {event.error_message}"
        )
    elif isinstance(event, CacheCleared):
        console.print("[yellow]Cache cleared.[/yellow]")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config", "-c", type=click.Path(exists=True), help="Path to configuration file"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option(
    "--now",
    "now",
    type=str,
    default=None,
    help="Simulate the current time (YYYY-MM-DD or YYYY-MM-DDTHH:MM)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool, now: Optional[str]):
    """SunSigns Fetcher - cached, queued horoscope fetching.

    Fetches daily, weekly, monthly and yearly horoscopes, keeps them in a
    local cache and refreshes them on a schedule.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = Console()

    try:
        manager = ConfigManager(config) if config else config_manager
        ctx.obj["config"] = manager.config
        ctx.obj["config_path"] = manager.config_path

        log_cfg = ctx.obj["config"].logging
        setup_logging("DEBUG" if verbose else log_cfg.level, log_cfg.file)

        ctx.obj["now"] = parse_now(now)

    except click.BadParameter:
        raise
    except Exception as e:
        error_msg = create_user_friendly_error(e)
        click.echo(f"Error initializing SunSigns Fetcher: {error_msg}", err=True)
        if verbose:
            click.echo(f"Details: {str(e)}", err=True)
        ctx.exit(1)


def build_context(ctx: click.Context) -> FetchContext:
    """Create the fetch context from CLI state."""
    context = FetchContext(ctx.obj["config"])
    if ctx.obj.get("now"):
        context.set_simulated_clock(ctx.obj["now"])
    return context


@cli.command()
@click.pass_context
def run(ctx: click.Context):
    """Run the fetcher with its schedule until interrupted.

    Refreshes every configured horoscope on start, then on the configured
    interval, and rolls tomorrow's text into daily at midnight.
    """
    console = ctx.obj["console"]
    config = ctx.obj["config"]

    try:
        context = build_context(ctx)
        context.subscribe(lambda event: print_event(console, event))

        console.print(
            f"[bold cyan]SunSigns Fetcher[/bold cyan] watching "
            f"{', '.join(config.horoscope.categories)} "
            f"({', '.join(config.horoscope.tracked_periods())})"
        )
        console.print("[dim]Press Ctrl+C to stop.[/dim]")

        asyncio.run(run_forever(context))

    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
    except Exception as e:
        error_msg = create_user_friendly_error(e)
        click.echo(f"Error running fetcher: {error_msg}", err=True)
        if ctx.obj["verbose"]:
            click.echo(f"Details: {str(e)}", err=True)
        ctx.exit(1)


@cli.command()
@click.argument("signs", nargs=-1, type=click.Choice(ZODIAC_SIGNS, case_sensitive=False))
@click.option(
    "--period",
    "-p",
    "periods",
    multiple=True,
    type=click.Choice(PERIODS, case_sensitive=False),
    help="Period to fetch (repeatable, defaults to configured periods)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.pass_context
def fetch(ctx: click.Context, signs: Tuple[str, ...], periods: Tuple[str, ...], output_format: str):
    """Fetch horoscopes once and print them.

    SIGNS: Zodiac signs to fetch (defaults to configured signs)
    """
    console = ctx.obj["console"]
    config = ctx.obj["config"]

    categories: List[str] = list(signs) or list(config.horoscope.categories)
    selected_periods: List[str] = list(periods) or list(config.horoscope.periods)

    try:
        context = build_context(ctx)
        events = []
        context.subscribe(events.append)

        async def fetch_once():
            async with context:
                context.request_refresh(categories, selected_periods)
                await context.drain()

        asyncio.run(fetch_once())

        if output_format == "json":
            click.echo(json.dumps([e.model_dump() for e in events], indent=2))
        else:
            for event in events:
                print_event(console, event)

        if any(isinstance(e, FetchFailed) for e in events):
            ctx.exit(1)

    except click.exceptions.Exit:
        raise
    except Exception as e:
        error_msg = create_user_friendly_error(e)
        click.echo(f"Error fetching horoscopes: {error_msg}", err=True)
        if ctx.obj["verbose"]:
            click.echo(f"Details: {str(e)}", err=True)
        ctx.exit(1)


# === Cache management commands ===


@cli.group()
def cache():
    """Cache management commands.

    Inspect, clear and roll over the local horoscope cache.
    """
    pass


@cache.command("status")
@click.pass_context
def cache_status(ctx: click.Context):
    """Show cache status and entries."""
    console = ctx.obj["console"]
    config = ctx.obj["config"]

    try:
        context = build_context(ctx)
        context.load()
        store = context.store
        now = context.clock.now()

        stats = store.stats()

        console.print("[bold cyan]Cache Status[/bold cyan]")
        console.print()
        console.print(f"[dim]File:[/dim] {stats['cache_path']}")
        if stats["file_size_bytes"] > 0:
            console.print(f"[dim]Size:[/dim] {stats['file_size_bytes'] / 1024:.1f} KB")
        else:
            console.print("[dim]Size:[/dim] Empty (not written yet)")
        console.print(f"[dim]Entries:[/dim] {stats['entries']}")
        console.print()

        if not stats["entries"]:
            return

        table = Table(show_header=True, header_style="bold blue")
        table.add_column("Sign", style="cyan")
        table.add_column("Period")
        table.add_column("Fetched")
        table.add_column("Age", justify="right")
        table.add_column("Fresh", justify="center")

        for key, entry in sorted(store.snapshot().items()):
            category, period = split_cache_key(key)
            fresh = entry.is_fresh(now, config.cache.max_age(period))
            table.add_row(
                category,
                period,
                entry.fetched_at.strftime("%Y-%m-%d %H:%M"),
                format_age(entry.age(now).total_seconds()),
                "[green]yes[/green]" if fresh else "[red]no[/red]",
            )

        console.print(table)

    except Exception as e:
        error_msg = create_user_friendly_error(e)
        click.echo(f"Error getting cache status: {error_msg}", err=True)
        if ctx.obj["verbose"]:
            click.echo(f"Details: {str(e)}", err=True)


@cache.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def cache_clear(ctx: click.Context, yes: bool):
    """Clear all cached horoscopes."""
    if not yes:
        if not click.confirm("This will delete all cached horoscopes. Continue?"):
            click.echo("Cancelled.")
            return

    try:
        context = build_context(ctx)
        context.load()
        context.clear_cache()
        click.echo("Cache cleared successfully.")

    except Exception as e:
        error_msg = create_user_friendly_error(e)
        click.echo(f"Error clearing cache: {error_msg}", err=True)


@cache.command("rollover")
@click.option(
    "--fetch/--no-fetch",
    "do_fetch",
    default=True,
    help="Also fetch the periods queued by the rollover",
)
@click.pass_context
def cache_rollover(ctx: click.Context, do_fetch: bool):
    """Run the midnight rollover now.

    Moves each sign's tomorrow horoscope into the daily slot and refreshes
    the periods whose cycle starts today.
    """
    console = ctx.obj["console"]

    try:
        context = build_context(ctx)
        context.subscribe(lambda event: print_event(console, event))

        async def rollover():
            async with context:
                queued = context.simulate_midnight()
                console.print(f"[dim]Queued {len(queued)} refreshes after rollover.[/dim]")
                if do_fetch:
                    await context.drain()

        if do_fetch:
            asyncio.run(rollover())
        else:
            context.simulate_midnight()

        click.echo("Midnight rollover completed.")

    except Exception as e:
        error_msg = create_user_friendly_error(e)
        click.echo(f"Error during rollover: {error_msg}", err=True)
        if ctx.obj["verbose"]:
            click.echo(f"Details: {str(e)}", err=True)
        ctx.exit(1)


# === Configuration commands ===


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Show current configuration."""
    try:
        config = ctx.obj["config"]

        click.echo(f"Configuration file: {ctx.obj['config_path']}")
        click.echo()
        click.echo("Horoscopes:")
        click.echo(f"  Signs: {', '.join(config.horoscope.categories)}")
        click.echo(f"  Periods: {', '.join(config.horoscope.tracked_periods())}")
        click.echo()
        click.echo("Source:")
        click.echo(f"  Provider: {config.source.provider}")
        if config.source.provider == "sunsigns":
            click.echo(f"  URL: {config.source.base_url}")
        else:
            click.echo(f"  URL: {config.source.api_url}")
        click.echo()
        click.echo("Fetching:")
        click.echo(f"  Workers: {config.fetch.pool_size}")
        click.echo(f"  Attempts per request: {config.fetch.max_retries}")
        click.echo(f"  Retry delay: {config.fetch.retry_delay_seconds:g}s")
        click.echo(f"  Request timeout: {config.fetch.request_timeout_seconds:g}s")
        click.echo(f"  Cooldown between requests: {config.fetch.cooldown_seconds:g}s")
        click.echo()
        click.echo("Cache:")
        click.echo(f"  File: {config.paths.cache_file}")
        click.echo(f"  Freshness window: {config.cache.duration_hours:g}h")
        for period, hours in sorted(config.cache.period_hours.items()):
            click.echo(f"    {period}: {hours:g}h")
        click.echo()
        click.echo("Schedule:")
        click.echo(f"  Bulk refresh every: {config.schedule.refresh_interval_hours:g}h")
        click.echo(f"  Midnight rollover: {config.schedule.daily_rollover}")

    except Exception as e:
        error_msg = create_user_friendly_error(e)
        click.echo(f"Error showing configuration: {error_msg}", err=True)


def main():
    """Entry point for the CLI application."""
    cli()


if __name__ == "__main__":
    main()
