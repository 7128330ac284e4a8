"""SaveBackup CLI - Main commands."""
import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

from ..core.config import (
    BackendKind,
    BackupConfig,
    BuzzheavierSettings,
    DEFAULT_CONFIG_FILE,
    JSONConfigStore
)
from ..core.exceptions import ConfigError
from ..core.orchestrator import CheckResult, CheckStatus

app = typer.Typer(
    name="savebackup",
    help="Watch a game save folder and upload new saves",
    add_completion=False
)
console = Console()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def configure_logging(verbose: bool) -> None:
    """Route savebackup logs through rich."""
    from savebackup import setup_logging

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )
    setup_logging(level)


def load_config(path: Path) -> Optional[BackupConfig]:
    """Load config, exiting with an error message if it is unreadable."""
    try:
        return JSONConfigStore(path).load()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)


def require_config(path: Path) -> BackupConfig:
    config = load_config(path)
    if config is None:
        console.print(f"[yellow]No configuration at {path}. Run 'savebackup setup' first.[/yellow]")
        raise typer.Exit(1)
    return config


def prompt_service(default: BackendKind) -> BackendKind:
    choices = "/".join(kind.value for kind in BackendKind)
    while True:
        answer = typer.prompt(f"Cloud service ({choices})", default=default.value)
        try:
            return BackendKind(answer.strip().lower())
        except ValueError:
            console.print(f"[red]Unknown service: {answer}[/red]")


def prompt_interval(default: float) -> float:
    while True:
        interval = typer.prompt("Check interval in minutes", default=default, type=float)
        if interval > 0:
            return interval
        console.print("[red]Interval must be greater than 0[/red]")


def prompt_config(existing: Optional[BackupConfig] = None) -> BackupConfig:
    """Interactively build a configuration."""
    config = existing or BackupConfig()
    config.backend = prompt_service(config.backend)

    if config.backend == BackendKind.SIMPLE_OBJECT_STORE:
        current = config.buzzheavier
        anonymous = typer.confirm("Upload to Buzzheavier anonymously?", default=current.anonymous)
        account_id = None
        location_id = None
        if not anonymous:
            account_id = typer.prompt("Buzzheavier account ID", default=current.account_id or None)
            location_id = typer.prompt(
                "Location ID (blank for root)",
                default=current.location_id or "",
                show_default=False
            ) or None
        config.buzzheavier = BuzzheavierSettings(
            endpoint=current.endpoint,
            public_base_url=current.public_base_url,
            anonymous=anonymous,
            account_id=account_id,
            location_id=location_id
        )

    config.check_interval_minutes = prompt_interval(config.check_interval_minutes)
    config.discord_webhook = typer.prompt(
        "Discord webhook URL (blank to disable)",
        default=config.discord_webhook or "",
        show_default=False
    ) or None
    config.name_prefix = typer.prompt(
        "File name prefix (blank for none)",
        default=config.name_prefix or "",
        show_default=False
    ) or None
    return config.validate()


def print_result(result: CheckResult) -> None:
    if result.status == CheckStatus.UPLOADED:
        console.print(f"[green]Uploaded:[/green] {result.file_name}")
        console.print(f"Link: {result.url}")
    elif result.status == CheckStatus.UNCHANGED:
        console.print("[dim]No changes detected[/dim]")
    elif result.status == CheckStatus.NO_CANDIDATE:
        console.print("[yellow]No new saves found[/yellow]")
    else:
        console.print(f"[red]Backup failed: {result.error}[/red]")


def print_settings(config: BackupConfig, save_dir: Path) -> None:
    table = Table(title="Save Backup")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Service", config.backend.label)
    table.add_row("Save folder", str(save_dir))
    table.add_row("Interval", f"{config.check_interval_minutes:g} min")
    table.add_row("Discord", "enabled" if config.discord_webhook else "disabled")
    table.add_row("Prefix", config.name_prefix or "-")
    console.print(table)


@app.command()
def setup(
    config_path: Path = typer.Option(DEFAULT_CONFIG_FILE, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Create or update the configuration."""
    configure_logging(verbose)
    store = JSONConfigStore(config_path)
    config = prompt_config(load_config(config_path))
    try:
        store.save(config)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Configuration saved to {store.path}[/green]")


@app.command()
def check(
    config_path: Path = typer.Option(DEFAULT_CONFIG_FILE, "--config", "-c", help="Config file path"),
    save_dir: Path = typer.Option(None, "--save-dir", "-s", help="Override save folder"),
    since: float = typer.Option(None, "--since", help="Only consider saves from the last N minutes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Upload the latest save now."""
    from savebackup import BackupMonitor

    configure_logging(verbose)
    config = require_config(config_path)
    session_start = time.time() - since * 60 if since is not None else 0.0

    async def do_check() -> CheckResult:
        async with BackupMonitor(config, save_dir=save_dir, session_start=session_start) as monitor:
            return await monitor.check()

    result = run_async(do_check())
    print_result(result)
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def watch(
    config_path: Path = typer.Option(DEFAULT_CONFIG_FILE, "--config", "-c", help="Config file path"),
    save_dir: Path = typer.Option(None, "--save-dir", "-s", help="Override save folder"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Watch the save folder and upload saves made during this session."""
    from savebackup import BackupMonitor

    configure_logging(verbose)
    config = load_config(config_path)
    if config is None:
        console.print("[yellow]No configuration found, starting setup[/yellow]")
        config = prompt_config()
        try:
            JSONConfigStore(config_path).save(config)
        except ConfigError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    async def do_watch():
        async with BackupMonitor(config, save_dir=save_dir) as monitor:
            print_settings(config, monitor.context.save_dir)
            console.print("[cyan]Watching for new saves. Press Ctrl+C to stop.[/cyan]")
            await monitor.run(on_result=print_result)

    try:
        run_async(do_watch())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")


@app.command()
def upload(
    file_path: Path = typer.Argument(..., help="Local file to upload", exists=True, dir_okay=False),
    config_path: Path = typer.Option(DEFAULT_CONFIG_FILE, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Upload a file through the configured service."""
    from savebackup import BackupMonitor
    from savebackup.core.upload.models import UploadProgress

    configure_logging(verbose)
    config = require_config(config_path)

    async def do_upload() -> CheckResult:
        async with BackupMonitor(config, save_dir=file_path.parent) as monitor:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                task = progress.add_task(f"Uploading {file_path.name}", total=100)

                def on_progress(p: UploadProgress):
                    progress.update(task, completed=p.percentage)

                result = await monitor.upload_file(file_path, progress_callback=on_progress)
                if result.ok:
                    progress.update(task, completed=100)
                return result

    result = run_async(do_upload())
    print_result(result)
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def resolve(
    url: str = typer.Argument(..., help="Share link returned by an upload"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_FILE, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Print the direct download link for a share link."""
    from savebackup import LinkResolver
    from savebackup.core.http import create_session

    configure_logging(verbose)
    config = load_config(config_path) or BackupConfig()

    async def do_resolve() -> str:
        async with create_session(timeout=config.timeout.to_aiohttp_timeout()) as session:
            async with LinkResolver(session) as resolver:
                return await resolver.resolve(url)

    console.print(run_async(do_resolve()))


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
