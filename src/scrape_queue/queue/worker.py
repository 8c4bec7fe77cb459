"""Drain loop that executes queued scraping commands until none remain."""

from __future__ import annotations

import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from scrape_queue.config import ScrapeProfile
from scrape_queue.http.fetcher import Fetcher, FetchError
from scrape_queue.queue.models import DrainSummary, FetchErrorPolicy, ScrapeResult
from scrape_queue.queue.repository import CommandQueueRepository
from scrape_queue.queue.tasks import ScrapeTask

logger = logging.getLogger(__name__)

ResultHandler = Callable[[ScrapeResult], None]


def seed_if_empty(repository: CommandQueueRepository, task: ScrapeTask) -> bool:
    """Enqueue ``task`` only when nothing is pending; True if it was seeded."""

    if not repository.is_empty():
        return False
    repository.enqueue(task)
    logger.info("Queue seeded with %s", task)
    return True


class _DrainContext:
    """Capabilities handed to each task while the worker drains."""

    def __init__(self, worker: DrainWorker, summary: DrainSummary) -> None:
        self._worker = worker
        self._summary = summary

    @property
    def profile(self) -> ScrapeProfile:
        return self._worker.profile

    def fetch(self, target: str) -> str:
        try:
            return self._worker.fetcher.fetch(target)
        except FetchError as error:
            if self._worker.fetch_error_policy is FetchErrorPolicy.ABORT:
                raise
            self._summary.skipped_fetches += 1
            logger.warning("Skipping unreachable target %s: %s", target, error.reason)
            return ""

    def enqueue(self, task: ScrapeTask) -> int:
        task_id = self._worker.repository.enqueue(task)
        self._summary.discovered += 1
        return task_id

    def complete(self, task: ScrapeTask) -> bool:
        return self._worker.repository.complete_task(task)

    def emit(self, result: ScrapeResult) -> None:
        self._summary.results += 1
        if self._worker.on_result is not None:
            self._worker.on_result(result)
            return
        logger.info("Item parsed: %s (%s)", result.title, result.url)


class DrainWorker:
    """Consumes pending commands one at a time, oldest first."""

    def __init__(
        self,
        *,
        repository: CommandQueueRepository,
        fetcher: Fetcher,
        profile: ScrapeProfile,
        fetch_error_policy: FetchErrorPolicy = FetchErrorPolicy.ABORT,
        on_result: ResultHandler | None = None,
    ) -> None:
        self.repository = repository
        self.fetcher = fetcher
        self.profile = profile
        self.fetch_error_policy = fetch_error_policy
        self.on_result = on_result
        self._stop_requested = False

    def drain(self, *, max_tasks: int | None = None) -> DrainSummary:
        """Execute pending commands until the frontier is exhausted.

        Emptiness is re-checked before every command because executing one
        may enqueue more. Task errors propagate and leave the failing
        command pending.

        Args:
            max_tasks: Stop after executing this many commands (None = unlimited).
        """

        summary = DrainSummary()
        context = _DrainContext(self, summary)
        self._stop_requested = False
        with self._signal_handlers():
            while not self.repository.is_empty():
                if self._stop_requested or (
                    max_tasks is not None and summary.executed >= max_tasks
                ):
                    summary.stopped = True
                    break

                task = self.repository.dequeue_next()
                self._execute(task, context)
                summary.executed += 1
                summary.kinds[task.kind] = summary.kinds.get(task.kind, 0) + 1

        logger.info(
            "Drain finished: executed=%d discovered=%d results=%d skipped_fetches=%d stopped=%s",
            summary.executed,
            summary.discovered,
            summary.results,
            summary.skipped_fetches,
            summary.stopped,
        )
        return summary

    def request_stop(self) -> None:
        """Finish the current command, then stop draining."""

        self._stop_requested = True

    def _execute(self, task: ScrapeTask, context: _DrainContext) -> None:
        logger.debug("Executing command id=%s %s", task.id, task)
        try:
            task.execute(context)
        except Exception:
            logger.error(
                "Command id=%s kind=%s target=%s failed; it stays pending",
                task.id,
                task.kind,
                task.target,
            )
            raise

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if not hasattr(signal, "SIGINT"):
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            try:
                name = signal.Signals(signum).name
            except ValueError:
                name = str(signum)
            logger.warning("Received %s; stopping after the current command", name)
            self.request_stop()

        try:
            signal.signal(signal.SIGINT, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield
            return

        try:
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            signal.signal(signal.SIGINT, original_sigint)
            yield
            return

        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
