"""CLI commands for nftbot."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from nftbot.config import load_config, save_default_config
from nftbot.config.schema import Config
from nftbot.db.database import Database
from nftbot.exceptions import InvalidScheduleError
from nftbot.scheduler.recurrence import RecurrenceCalculator
from nftbot.scheduler.store import ScheduleStore
from nftbot.scheduler.types import ScheduleType
from nftbot.utils.logging import setup_logging

app = typer.Typer(
    name="nftbot",
    help="nftbot: scheduled NFT sales thank-yous and promo threads",
)
schedule_app = typer.Typer(help="Manage persisted schedules")
app.add_typer(schedule_app, name="schedule")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Config file path")
DryRunOption = typer.Option(False, "--dry-run", help="Log what would happen without writing or posting")


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    setup_logging(debug)


def _database(config: Config) -> Database:
    return Database(config.database.url, echo=config.database.echo, pool_size=config.database.pool_size)


def _with_runtime(config: Config, action):
    """Build a runtime, run ``action(runtime)`` and always close it."""
    from nftbot.bot import BotRuntime

    async def _run():
        runtime = BotRuntime.from_config(config)
        try:
            return await action(runtime)
        finally:
            await runtime.aclose()

    return asyncio.run(_run())


def _with_store(config: Config, action):
    async def _run():
        database = _database(config)
        try:
            return await action(ScheduleStore(database, RecurrenceCalculator()))
        finally:
            await database.close()

    return asyncio.run(_run())


@app.command()
def onboard(config_path: Optional[Path] = ConfigOption) -> None:
    """Write a default configuration file."""
    path = save_default_config(config_path)

    console.print(f"[green]Config created at:[/green] {path}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit config to add your database URL, API keys and wallets")
    console.print("2. Run: nftbot migrate")
    console.print('3. Run: nftbot schedule add thank "0 * * * *"')
    console.print("4. Run: nftbot run")


@app.command()
def status(config_path: Optional[Path] = ConfigOption) -> None:
    """Show current configuration."""
    config = load_config(config_path)

    table = Table(title="nftbot Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Bot", "Enabled" if config.bot.enabled else "Disabled")
    table.add_row("Database", config.database.url.split("@")[-1])
    table.add_row("Model", config.llm.model)
    table.add_row("Max Tokens", str(config.llm.max_tokens))
    api_key = config.llm.api_key
    table.add_row("LLM API Key", f"...{api_key[-8:]}" if api_key else "[red]Not configured[/red]")
    table.add_row("Twitter", "Configured" if config.has_twitter_credentials() else "[red]Not configured[/red]")
    table.add_row("Wallets", ", ".join(config.wallets.addresses))
    table.add_row("Lock Backend", config.scheduler.lock_backend)
    table.add_row("Min Interval", f"{config.scheduler.min_interval_seconds}s")

    console.print(table)


@app.command()
def run(config_path: Optional[Path] = ConfigOption) -> None:
    """Start the scheduler and run until interrupted."""
    config = load_config(config_path)
    if config.bot.debug:
        setup_logging(True)
    if not config.bot.enabled:
        console.print("[yellow]Bot is disabled (bot.enabled = false)[/yellow]")
        return

    async def _serve(runtime) -> int:
        return await runtime.supervisor().serve()

    code = _with_runtime(config, _serve)
    raise typer.Exit(code)


@app.command()
def check(config_path: Optional[Path] = ConfigOption) -> None:
    """Test connections to the database and every external API."""
    config = load_config(config_path)

    async def _check(runtime):
        return await runtime.check_connections()

    results = _with_runtime(config, _check)

    table = Table(title="Connection Check")
    table.add_column("Service", style="cyan")
    table.add_column("Status")
    table.add_column("Detail", style="dim")
    for result in results:
        table.add_row(result.service, "[green]OK[/green]" if result.ok else "[red]FAILED[/red]", result.detail)
    console.print(table)

    if not all(result.ok for result in results):
        raise typer.Exit(1)


@app.command()
def migrate(config_path: Optional[Path] = ConfigOption) -> None:
    """Create the database tables."""
    config = load_config(config_path)

    async def _migrate() -> None:
        database = _database(config)
        try:
            await database.create_schema()
        finally:
            await database.close()

    asyncio.run(_migrate())
    console.print("[green]Database schema is up to date[/green]")


@app.command()
def sync(config_path: Optional[Path] = ConfigOption, dry_run: bool = DryRunOption) -> None:
    """Sync tokens and sales from objkt.com."""
    config = load_config(config_path)

    async def _sync(runtime):
        return await runtime.sync.run(dry_run)

    summary = _with_runtime(config, _sync)
    console.print(f"[green]Synced {summary.total} item(s)[/green]")


@app.command()
def thank(config_path: Optional[Path] = ConfigOption, dry_run: bool = DryRunOption) -> None:
    """Post thank-you tweets for unprocessed sales."""
    config = load_config(config_path)

    async def _thank(runtime) -> None:
        await runtime.thank_you.run(dry_run)

    _with_runtime(config, _thank)


@app.command()
def shill(config_path: Optional[Path] = ConfigOption, dry_run: bool = DryRunOption) -> None:
    """Post the promotional thread for the most recent tokens."""
    config = load_config(config_path)

    async def _shill(runtime) -> None:
        await runtime.shill.run(dry_run)

    _with_runtime(config, _shill)


@app.command("mark-processed")
def mark_processed(config_path: Optional[Path] = ConfigOption) -> None:
    """Mark every sale as processed without tweeting."""
    from nftbot.jobs.thank_you import mark_all_sales_processed

    config = load_config(config_path)

    async def _mark() -> int:
        database = _database(config)
        try:
            return await mark_all_sales_processed(database)
        finally:
            await database.close()

    count = asyncio.run(_mark())
    console.print(f"[green]Marked {count} sale(s) as processed[/green]")


@schedule_app.command("add")
def schedule_add(
    type: str = typer.Argument(..., help="Schedule type: thank or shill"),
    cron_pattern: str = typer.Argument(..., help='Cron pattern, e.g. "0 * * * *"'),
    timezone: str = typer.Argument("UTC", help="IANA timezone"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Add a schedule."""
    valid_types = [t.value for t in ScheduleType]
    if type not in valid_types:
        console.print(f"[red]Error:[/red] Type must be one of: {', '.join(valid_types)}")
        raise typer.Exit(1)

    config = load_config(config_path)
    try:
        schedule = _with_store(config, lambda store: store.add(type, cron_pattern, timezone))
    except InvalidScheduleError as e:
        console.print(f"[red]Failed to add schedule:[/red] {e.reason}")
        raise typer.Exit(1)

    console.print(f"[green]Schedule added (ID: {schedule.id})[/green]")
    console.print(f"   Type: {schedule.type}")
    console.print(f"   Pattern: {schedule.cron_pattern}")
    console.print(f"   Timezone: {schedule.timezone}")
    console.print(f"   Next run: {schedule.next_run_at.isoformat() if schedule.next_run_at else 'N/A'}")


@schedule_app.command("list")
def schedule_list(config_path: Optional[Path] = ConfigOption) -> None:
    """List all schedules."""
    config = load_config(config_path)
    schedules = _with_store(config, lambda store: store.list_all())

    if not schedules:
        console.print("No schedules found")
        return

    table = Table(title="Schedules")
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Type")
    table.add_column("Pattern")
    table.add_column("TZ")
    table.add_column("Last run")
    table.add_column("Next run")
    for s in schedules:
        table.add_row(
            str(s.id),
            "[green]enabled[/green]" if s.enabled else "[yellow]disabled[/yellow]",
            s.type,
            s.cron_pattern,
            s.timezone,
            s.last_run_at.isoformat() if s.last_run_at else "Never",
            s.next_run_at.isoformat() if s.next_run_at else "N/A",
        )
    console.print(table)


def _report(found: bool, schedule_id: int, message: str) -> None:
    if found:
        console.print(f"[green]Schedule ID {schedule_id} {message}[/green]")
    else:
        console.print(f"[yellow]Schedule ID {schedule_id} not found[/yellow]")


@schedule_app.command("enable")
def schedule_enable(schedule_id: int = typer.Argument(...), config_path: Optional[Path] = ConfigOption) -> None:
    """Enable a schedule (takes effect on the next start)."""
    config = load_config(config_path)
    _report(_with_store(config, lambda store: store.set_enabled(schedule_id, True)), schedule_id, "enabled")


@schedule_app.command("disable")
def schedule_disable(schedule_id: int = typer.Argument(...), config_path: Optional[Path] = ConfigOption) -> None:
    """Disable a schedule (takes effect on the next start)."""
    config = load_config(config_path)
    _report(_with_store(config, lambda store: store.set_enabled(schedule_id, False)), schedule_id, "disabled")


@schedule_app.command("remove")
def schedule_remove(schedule_id: int = typer.Argument(...), config_path: Optional[Path] = ConfigOption) -> None:
    """Delete a schedule."""
    config = load_config(config_path)
    _report(_with_store(config, lambda store: store.remove(schedule_id)), schedule_id, "removed")
