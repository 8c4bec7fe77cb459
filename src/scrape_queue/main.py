"""CLI entrypoint for scrape-queue."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from scrape_queue import __version__
from scrape_queue.http.fetcher import FetchError
from scrape_queue.logging_setup import setup_logging
from scrape_queue.queue.controllers import (
    TASK_KINDS,
    CrawlCommand,
    EnqueueCommand,
    ListCommand,
    QueueCliController,
    StatusCommand,
)
from scrape_queue.queue.errors import QueueError
from scrape_queue.queue.models import FetchErrorPolicy

click.rich_click.USE_MARKDOWN = True
QUEUE_CONTROLLER = QueueCliController()


@click.group()
@click.version_option(version=__version__, prog_name="scrape-queue")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Console log level.",
)
def scrape_queue(log_level: str) -> None:
    """Persistent, self-expanding scraping queue."""

    setup_logging(log_level.upper())


@scrape_queue.command("crawl")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--seed-url",
    default=None,
    help="Catalog URL seeded when the queue is empty. Defaults to SCRAPE_QUEUE_SEED_URL.",
)
@click.option(
    "--max-tasks",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after executing this many commands; the rest stay pending.",
)
@click.option(
    "--on-fetch-error",
    type=click.Choice([policy.value for policy in FetchErrorPolicy]),
    default=None,
    help=(
        "`abort` stops the crawl and keeps the command pending; "
        "`skip` logs the failure and completes the command. "
        "Defaults to SCRAPE_QUEUE_ON_FETCH_ERROR."
    ),
)
def crawl(
    db_path: Path | None,
    seed_url: str | None,
    max_tasks: int | None,
    on_fetch_error: str | None,
) -> None:
    """Seed the queue if it is empty, then drain it until no command is pending."""

    with _cli_errors():
        lines = QUEUE_CONTROLLER.crawl(
            CrawlCommand(
                db_path=db_path,
                seed_url=seed_url,
                max_tasks=max_tasks,
                on_fetch_error=on_fetch_error,
            ),
            echo=click.echo,
        )
    _emit_lines(lines)


@scrape_queue.command("enqueue")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--kind", type=click.Choice(TASK_KINDS), required=True, help="Task variant.")
@click.option("--url", required=True, help="Target URL or local file path.")
@click.option(
    "--page",
    type=click.IntRange(min=1),
    default=None,
    help="Page cursor for collection_page tasks.",
)
def enqueue(db_path: Path | None, kind: str, url: str, page: int | None) -> None:
    """Add one pending command to the queue."""

    with _cli_errors():
        lines = QUEUE_CONTROLLER.enqueue(
            EnqueueCommand(db_path=db_path, kind=kind, url=url, page=page),
        )
    _emit_lines(lines)


@scrape_queue.command("status")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def status(db_path: Path | None) -> None:
    """Show pending and done counts."""

    with _cli_errors():
        lines = QUEUE_CONTROLLER.status(StatusCommand(db_path=db_path))
    _emit_lines(lines)


@scrape_queue.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--status",
    "status_filter",
    type=click.Choice(["pending", "done"]),
    default=None,
    help="Only show commands in this status.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Max number of commands to print.",
)
def list_commands(db_path: Path | None, status_filter: str | None, limit: int) -> None:
    """List queued commands in dequeue order."""

    with _cli_errors():
        lines = QUEUE_CONTROLLER.list_records(
            ListCommand(db_path=db_path, status=status_filter, limit=limit),
        )
    _emit_lines(lines)


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (QueueError, FetchError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    scrape_queue()
