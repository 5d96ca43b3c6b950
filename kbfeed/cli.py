"""
kbfeed Command Line
===================

Usage:
    kbfeed --help                     # Show all commands
    kbfeed check-config               # Validate configuration
    kbfeed init-db                    # Create the dedup table
    kbfeed run                        # One ingest pass, then exit
    kbfeed run --dry-run              # List new entries without submitting
    kbfeed status                     # Ingest records per feed
    kbfeed status --feed blog         # Ingest records of one feed
"""

import sys
import logging

import click
from rich.console import Console
from rich.table import Table

from .config.settings import load_settings, resolve_config_path, KbFeedSettings
from .database.connection import DatabaseConnection
from .storage.ingest_repository import IngestRepository
from .processing.pipeline import IngestPipeline
from .utils.logging import configure_application_logging
from .utils.process_lock import lock_for_database
from .utils.exceptions import KbFeedError

console = Console()
logger = logging.getLogger(__name__)


def _load(ctx) -> KbFeedSettings:
    """Load settings and configure logging, exiting on configuration errors."""
    try:
        settings = load_settings(ctx.obj.get('config_path'))
    except KbFeedError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get('debug') else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return settings


@click.group(invoke_without_command=True)
@click.option('--config', '-c', help='Configuration file path (default: $KBFEED_CONFIG or ./config.yml)')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config, debug):
    """kbfeed - ingest RSS/Atom feeds into an Open WebUI knowledge base."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option('--dry-run', is_flag=True, help='Report new entries without fetching, writing or submitting')
@click.pass_context
def run(ctx, dry_run):
    """Run one ingest pass over all configured feeds."""
    settings = _load(ctx)

    lock = lock_for_database(settings.db_file)
    if not lock.acquire():
        holder = lock.get_lock_holder_pid()
        console.print(
            f"[bold yellow]⏳ Another run is in progress"
            f"{f' (PID {holder})' if holder else ''}, exiting[/bold yellow]"
        )
        sys.exit(0)

    try:
        with DatabaseConnection(settings.db_file) as db:
            repository = IngestRepository(db)
            repository.ensure_schema()

            pipeline = IngestPipeline(settings, repository)
            stats = pipeline.run(dry_run=dry_run)
    except KbFeedError as e:
        logger.error(f"Ingest run aborted: {e}", exc_info=True)
        console.print(f"[bold red]❌ Ingest run aborted: {e}[/bold red]")
        sys.exit(1)
    finally:
        lock.release()

    title = "Dry Run (new entries)" if dry_run else "Ingest Run"
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Feeds processed", str(stats.feeds_processed))
    table.add_row("Feeds failed", str(stats.feeds_failed))
    table.add_row("Entries seen", str(stats.entries_seen))
    table.add_row("New" if dry_run else "Submitted", str(stats.entries_submitted))
    table.add_row("Already ingested / filtered", str(stats.entries_skipped))
    table.add_row("Failed", str(stats.entries_failed))
    for kind, count in sorted(stats.failures_by_kind.items()):
        table.add_row(f"  {kind}", str(count))
    console.print(table)


@cli.command()
@click.pass_context
def init_db(ctx):
    """Create the dedup table if it does not exist."""
    console.print("[bold blue]🗄️ Initializing kbfeed Database[/bold blue]")
    settings = _load(ctx)

    try:
        with DatabaseConnection(settings.db_file) as db:
            repository = IngestRepository(db)
            created = repository.schema.create_tables()

            if not repository.verify_schema():
                console.print("[bold red]❌ Database schema verification failed[/bold red]")
                sys.exit(1)
    except KbFeedError as e:
        console.print(f"[bold red]❌ Database initialization error: {e}[/bold red]")
        sys.exit(1)

    if created:
        console.print(f"[bold green]✅ Database initialized at {settings.db_file}[/bold green]")
    else:
        console.print(f"[green]✅ Database already initialized at {settings.db_file}[/green]")


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate the configuration file and environment variables."""
    path = resolve_config_path(ctx.obj.get('config_path'))
    console.print(f"[bold blue]🔧 Checking kbfeed configuration: {path}[/bold blue]")
    settings = _load(ctx)

    table = Table(title="Configured Feeds")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Mode")
    table.add_column("Markdown")
    table.add_column("Knowledge Base")

    for feed in settings.rss:
        table.add_row(
            feed.id,
            feed.name,
            "follow link" if feed.follow_link else "synthesize",
            "yes" if feed.follow_link and feed.convert_html_to_markdown else "-",
            feed.knowledge_base_id,
        )

    console.print(table)
    console.print(f"Database: {settings.db_file}")
    console.print(f"Content directory: {settings.content_dir}")
    console.print(f"Knowledge service: {settings.open_webui.api_endpoint}")
    console.print("[bold green]✅ Configuration is valid[/bold green]")


@cli.command()
@click.option('--feed', 'feed_id', help='List the ingest records of one feed')
@click.pass_context
def status(ctx, feed_id):
    """Show how many entries have been ingested per feed."""
    settings = _load(ctx)

    feed = None
    if feed_id:
        feed = settings.get_feed(feed_id)
        if feed is None:
            console.print(f"[bold red]❌ Unknown feed id: {feed_id}[/bold red]")
            sys.exit(1)

    try:
        with DatabaseConnection(settings.db_file) as db:
            repository = IngestRepository(db)
            if not repository.schema.table_exists():
                console.print("[yellow]No ingest records yet (database not initialized)[/yellow]")
                return

            if feed is not None:
                table = Table(title=f"Ingest Records: {feed.name}")
                table.add_column("GUID", style="cyan")
                table.add_column("Hash", style="green")
                for record in repository.list_records(feed.id):
                    table.add_row(record.guid, record.content_hash[:12])
            else:
                table = Table(title="Ingest Records")
                table.add_column("Feed", style="cyan")
                table.add_column("Records", style="green")
                for configured in settings.rss:
                    table.add_row(configured.id, str(repository.count_records(configured.id)))
                table.add_row("[bold]total[/bold]", str(repository.count_records()))
    except KbFeedError as e:
        console.print(f"[bold red]❌ Database error: {e}[/bold red]")
        sys.exit(1)

    console.print(table)


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
