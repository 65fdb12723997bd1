#!/usr/bin/env python3
"""
NewsDesk - News Ingestion Pipeline
==================================

Main application entry point with CLI interface for management and operations.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py sweep                     # Fetch every active source now
    python main.py refresh-source 3          # Fetch a single source now
    python main.py retention                 # Apply retention rules now
    python main.py serve                     # Run the scheduler service
"""

import sys
import asyncio
import logging
import signal
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from newsdesk.config.settings import get_settings
from newsdesk.database.schema import DatabaseSchema
from newsdesk.database.connection import get_db_manager
from newsdesk.database.models import ContentKind, SourceType, Subscription, User
from newsdesk.processing.pipeline import IngestionPipeline
from newsdesk.scheduler.sweep_scheduler import SweepScheduler
from newsdesk.services.manual_refresh_service import ManualRefreshService
from newsdesk.storage.source_repository import SourceRepository
from newsdesk.storage.subscription_repository import SubscriptionRepository
from newsdesk.storage.translation_repository import SystemSettingsRepository
from newsdesk.utils.logging import configure_application_logging
from newsdesk.utils.exceptions import NewsDeskError

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(debug: bool) -> None:
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """NewsDesk - scheduled news feed ingestion."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    try:
        _setup_logging(debug)
    except NewsDeskError as e:
        console.print(f"[bold red]❌ Configuration error: {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking NewsDesk Configuration[/bold blue]")

    settings = get_settings()

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    table.add_row("Database", "✅ Valid", f"{settings.database.path} (pool {settings.database.pool_size})")
    table.add_row(
        "Schedule", "✅ Valid",
        f"sweep '{settings.schedule.sweep_cron}', retention '{settings.schedule.retention_cron}' "
        f"({settings.schedule.timezone})"
    )
    table.add_row(
        "Retention", "✅ Valid",
        f"{settings.retention.per_source_cap} per source, "
        f"{settings.retention.orphan_max_age_days} days unsubscribed"
    )

    has_key = settings.has_translation_credentials()
    table.add_row(
        "Translation",
        "✅ Valid" if has_key else "⚠️ No API key",
        f"{settings.translation.model} -> {settings.translation.target_language}"
    )
    table.add_row("Logging", "✅ Valid", f"{settings.logging.level.value} -> {settings.logging.file_path}")

    console.print(table)

    if not has_key:
        console.print("[yellow]Titles will be stored untranslated until an API key is configured[/yellow]")
    console.print("[bold green]✅ Configuration loaded[/bold green]")


@cli.command()
def init_db():
    """Initialize database schema."""
    console.print("[bold blue]🗄️ Initializing NewsDesk Database[/bold blue]")

    try:
        settings = get_settings()
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        info = get_db_manager(settings.database.path).get_database_info()

        info_table = Table(title="Database Information")
        info_table.add_column("Table", style="cyan")
        info_table.add_column("Rows", justify="right")
        for table_name, count in info['table_counts'].items():
            info_table.add_row(table_name, str(count))

        console.print("[bold green]✅ Database initialized successfully![/bold green]")
        console.print(info_table)

    except NewsDeskError as e:
        console.print(f"[bold red]❌ Database initialization error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('name')
@click.argument('url')
@click.option('--media', is_flag=True, help='Keep images and video in article bodies')
@click.option('--api', 'is_api', is_flag=True, help='Source is fetched through an API (not implemented)')
@click.option('--category', help='Free-form category')
@click.option('--default', 'is_default', is_flag=True, help='Offer the source to every user')
@click.option('--preview/--no-preview', default=True, help='Fetch the feed once before registering')
def add_source(name, url, media, is_api, category, is_default, preview):
    """Register a news source."""
    settings = get_settings()
    service = ManualRefreshService(get_db_manager(settings.database.path), settings)
    content_type = ContentKind.MEDIA if media else ContentKind.TEXT

    try:
        if preview and not is_api:
            summary = asyncio.run(service.preview_feed(url, content_type))
            if not summary.success:
                console.print(f"[bold red]❌ Feed could not be fetched: {summary.error_message}[/bold red]")
                sys.exit(1)
            console.print(f"[green]Feed OK: {summary.item_count} items ({summary.invalid_count} invalid)[/green]")
            for item in summary.sample_items:
                console.print(f"  • {item['title']}")

        source_id = service.register_source(
            name,
            url,
            content_type=content_type,
            source_type=SourceType.API if is_api else SourceType.RSS,
            category=category,
            is_default=is_default,
        )
        console.print(f"[bold green]✅ Source {source_id} registered: {name}[/bold green]")

    except NewsDeskError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)


@cli.command()
def list_sources():
    """List registered sources."""
    settings = get_settings()
    sources = SourceRepository(get_db_manager(settings.database.path)).list_sources()

    table = Table(title="News Sources")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Content")
    table.add_column("Default")
    table.add_column("Active")
    table.add_column("URL")

    for source in sources:
        table.add_row(
            str(source.id),
            source.name,
            source.source_type.value,
            source.content_type.value,
            "yes" if source.is_default else "",
            "✅" if source.is_active else "❌",
            source.url,
        )
    console.print(table)


@cli.command()
@click.argument('email')
@click.option('--auto-translate', is_flag=True, help='Enable account-level auto-translate')
def add_user(email, auto_translate):
    """Create a user account."""
    settings = get_settings()
    repo = SubscriptionRepository(get_db_manager(settings.database.path))
    try:
        user_id = repo.create_user(User(email=email, auto_translate=auto_translate))
        console.print(f"[bold green]✅ User {user_id} created: {email}[/bold green]")
    except NewsDeskError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('user_id', type=int)
@click.argument('source_id', type=int)
@click.option('--auto-translate/--no-auto-translate', default=None, help='Subscription-level preference')
@click.option('--disabled', is_flag=True, help='Store the subscription as disabled')
def subscribe(user_id, source_id, auto_translate, disabled):
    """Subscribe a user to a source (updates an existing subscription)."""
    settings = get_settings()
    repo = SubscriptionRepository(get_db_manager(settings.database.path))
    try:
        subscription_id = repo.subscribe(Subscription(
            user_id=user_id,
            source_id=source_id,
            enabled=not disabled,
            auto_translate=auto_translate,
        ))
        console.print(f"[bold green]✅ Subscription {subscription_id} saved[/bold green]")
    except NewsDeskError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('state', type=click.Choice(['on', 'off']))
@click.option('--user', 'user_id', type=int, help='Set the account-level flag of this user instead')
def set_auto_translate(state, user_id):
    """Turn the global (or a user's) auto-translate flag on or off."""
    settings = get_settings()
    db = get_db_manager(settings.database.path)
    enabled = state == 'on'

    if user_id is None:
        SystemSettingsRepository(db).set_auto_translate(enabled)
        console.print(f"[bold green]✅ Global auto-translate {state}[/bold green]")
    elif SubscriptionRepository(db).set_user_auto_translate(user_id, enabled):
        console.print(f"[bold green]✅ Auto-translate {state} for user {user_id}[/bold green]")
    else:
        console.print(f"[bold red]❌ User {user_id} not found[/bold red]")
        sys.exit(1)


@cli.command()
def sweep():
    """Fetch every active source now."""
    console.print("[bold blue]📰 Running ingestion sweep[/bold blue]")
    settings = get_settings()
    service = ManualRefreshService(get_db_manager(settings.database.path), settings)

    try:
        result = asyncio.run(service.refresh_all())
    except NewsDeskError as e:
        console.print(f"[bold red]❌ Sweep failed: {e}[/bold red]")
        sys.exit(1)

    console.print(
        f"[bold green]✅ Created {result['createdCount']} articles, "
        f"{result['errorCount']} errors[/bold green]"
    )


@cli.command()
@click.argument('source_id', type=int)
def refresh_source(source_id):
    """Fetch a single source now."""
    settings = get_settings()
    service = ManualRefreshService(get_db_manager(settings.database.path), settings)

    try:
        result = asyncio.run(service.refresh_source(source_id))
    except NewsDeskError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    console.print(
        f"[bold green]✅ {result['sourceName']}: created {result['createdCount']} articles, "
        f"{result['errorCount']} errors[/bold green]"
    )


@cli.command()
def retention():
    """Apply the retention rules now."""
    console.print("[bold blue]🧹 Running retention sweep[/bold blue]")
    settings = get_settings()
    db = get_db_manager(settings.database.path)

    initial_info = db.get_database_info()
    result = IngestionPipeline(db, settings).retention.run_retention_sweep()
    final_info = db.get_database_info()

    console.print(
        f"Deleted {result.capped_deleted} articles over the per-source cap and "
        f"{result.orphan_deleted} expired articles"
    )
    console.print(
        f"Database size: {initial_info['database_size_mb']:.2f} MB -> "
        f"{final_info['database_size_mb']:.2f} MB"
    )
    if result.errors:
        console.print(f"[bold red]❌ {result.errors} retention rules failed, see logs[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--run', 'run_key', help='Execute this job immediately')
def jobs(run_key):
    """Show scheduled jobs, or run one manually."""
    settings = get_settings()
    scheduler = SweepScheduler(IngestionPipeline(get_db_manager(settings.database.path), settings), settings)

    if run_key:
        try:
            outcome = asyncio.run(scheduler.run_job_manually(run_key))
        except NewsDeskError as e:
            console.print(f"[bold red]❌ {e}[/bold red]")
            sys.exit(1)
        console.print(
            f"[bold green]✅ {run_key} finished in {outcome['duration']:.2f}s: "
            f"{outcome['result']}[/bold green]"
        )
        return

    scheduler.start()
    table = Table(title=f"Scheduled Jobs ({settings.schedule.timezone})")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Schedule")
    table.add_column("Next run")

    for key, status in scheduler.get_jobs_status().items():
        table.add_row(key, status['name'], status['schedule'], status['nextRun'] or "-")
    console.print(table)


@cli.command()
def serve():
    """Run the scheduler service until interrupted."""
    settings = get_settings()
    db = get_db_manager(settings.database.path)
    scheduler = SweepScheduler(IngestionPipeline(db, settings), settings)

    async def _serve():
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, scheduler.stop)
        await scheduler.run_forever()

    console.print("[bold blue]⏰ Starting NewsDesk scheduler (Ctrl+C to stop)[/bold blue]")
    try:
        asyncio.run(_serve())
    finally:
        db.close_all_connections()
    console.print("[bold green]✅ Scheduler stopped[/bold green]")


if __name__ == '__main__':
    cli()
