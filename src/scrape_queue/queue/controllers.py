"""Controllers for queue CLI commands."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path

from scrape_queue.config import Settings
from scrape_queue.http.fetcher import ContentFetcher
from scrape_queue.queue.models import CommandRecordView, FetchErrorPolicy, ScrapeResult, TaskStatus
from scrape_queue.queue.repository import CommandQueueRepository
from scrape_queue.queue.tasks import CatalogTask, CollectionPageTask, ItemTask, ScrapeTask
from scrape_queue.queue.worker import DrainWorker, seed_if_empty

TASK_KINDS = (CatalogTask.kind, CollectionPageTask.kind, ItemTask.kind)


@dataclass(slots=True)
class CrawlCommand:
    """CLI input for seed-and-drain."""

    db_path: Path | None
    seed_url: str | None = None
    max_tasks: int | None = None
    on_fetch_error: str | None = None


@dataclass(slots=True)
class EnqueueCommand:
    """CLI input for manual enqueue of one task."""

    db_path: Path | None
    kind: str
    url: str
    page: int | None = None


@dataclass(slots=True)
class StatusCommand:
    """CLI input for queue counters."""

    db_path: Path | None


@dataclass(slots=True)
class ListCommand:
    """CLI input for record listing."""

    db_path: Path | None
    status: str | None
    limit: int


class QueueCliController:
    """Coordinates queue, worker, and inspection CLI operations."""

    def crawl(self, command: CrawlCommand, *, echo: Callable[[str], None]) -> list[str]:
        settings = _crawl_settings(command)
        settings.validate()

        lines: list[str] = []
        with (
            _repository(settings) as repository,
            ContentFetcher(
                timeout_seconds=settings.fetch.timeout_seconds,
                max_retries=settings.fetch.max_retries,
                user_agent=settings.fetch.user_agent,
            ) as fetcher,
        ):
            if seed_if_empty(repository, CatalogTask(settings.profile.seed_url)):
                echo(f"Queue seeded: {settings.profile.seed_url}")
            else:
                echo(f"Resuming: pending={repository.count_pending()}")

            worker = DrainWorker(
                repository=repository,
                fetcher=fetcher,
                profile=settings.profile,
                fetch_error_policy=settings.fetch.on_error,
                on_result=lambda result: echo(_format_result(result)),
            )
            summary = worker.drain(max_tasks=command.max_tasks)
            pending = repository.count_pending()

        lines.append(
            "Drain summary: "
            f"executed={summary.executed} discovered={summary.discovered} "
            f"results={summary.results} skipped_fetches={summary.skipped_fetches} "
            f"pending={pending}",
        )
        if summary.kinds:
            by_kind = " ".join(f"{kind}={count}" for kind, count in sorted(summary.kinds.items()))
            lines.append(f"Executed by kind: {by_kind}")
        if summary.stopped:
            lines.append("Drain stopped early; run crawl again to resume.")
        return lines

    def enqueue(self, command: EnqueueCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        task = _build_task(command, page_param=settings.profile.page_param)
        with _repository(settings) as repository:
            task_id = repository.enqueue(task)
        return [f"Command enqueued: id={task_id} kind={task.kind} target={task.target}"]

    def status(self, command: StatusCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            counts = repository.count_by_status()
        return [
            f"Queue: {settings.db_path}",
            f"pending={counts[TaskStatus.PENDING]} done={counts[TaskStatus.DONE]}",
        ]

    def list_records(self, command: ListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        status = TaskStatus[command.status.upper()] if command.status else None
        with _repository(settings) as repository:
            records = repository.list_records(status=status, limit=command.limit)
        if not records:
            return ["No commands."]
        return [_format_record(record) for record in records]


def _crawl_settings(command: CrawlCommand) -> Settings:
    settings = Settings.from_env(db_path=command.db_path)
    if command.seed_url:
        settings = replace(settings, profile=replace(settings.profile, seed_url=command.seed_url))
    if command.on_fetch_error:
        settings = replace(
            settings,
            fetch=replace(settings.fetch, on_error=FetchErrorPolicy(command.on_fetch_error)),
        )
    return settings


def _build_task(command: EnqueueCommand, *, page_param: str) -> ScrapeTask:
    if command.kind == CollectionPageTask.kind:
        return CollectionPageTask(command.url, page=command.page or 1, page_param=page_param)
    if command.page is not None:
        raise ValueError(f"--page only applies to {CollectionPageTask.kind} tasks.")
    if command.kind == CatalogTask.kind:
        return CatalogTask(command.url)
    if command.kind == ItemTask.kind:
        return ItemTask(command.url)
    raise ValueError(f"Unsupported task kind: {command.kind!r}")


def _format_result(result: ScrapeResult) -> str:
    line = f"Item parsed: {result.title} ({result.url})"
    if result.excerpt:
        line += f"\n  {result.excerpt}"
    return line


def _format_record(record: CommandRecordView) -> str:
    target = record.fields.get("url", "")
    page = record.fields.get("page")
    suffix = f" page={page}" if page is not None else ""
    return (
        f"{record.id:>6} {record.status.name.lower():<7} {record.kind:<15} "
        f"{target}{suffix} created={record.created_at.isoformat()}"
    )


@contextmanager
def _repository(settings: Settings) -> Iterator[CommandQueueRepository]:
    repository = CommandQueueRepository(
        db_path=settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()
