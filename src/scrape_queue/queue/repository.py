"""Persistent queue repository for scraping commands."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from scrape_queue.queue.codec import decode_payload, decode_task, encode_task
from scrape_queue.queue.errors import (
    CommandNotFoundError,
    EmptyQueueError,
    StoreError,
    TaskSerializationError,
)
from scrape_queue.queue.models import CommandRecordView, TaskStatus
from scrape_queue.queue.tasks import ScrapeTask
from scrape_queue.storage.alembic_runner import upgrade_head
from scrape_queue.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from scrape_queue.storage.sqlmodel_models import CommandRecord

logger = logging.getLogger(__name__)


class CommandQueueRepository:
    """Queue persistence facade backed by SQLModel + SQLite.

    Each public call runs in its own session and commits before returning,
    so an enqueue is visible to the very next ``is_empty``/``dequeue_next``.
    """

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(
            db_path=db_path,
            busy_timeout_ms=sqlite_busy_timeout_ms,
        )

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def __enter__(self) -> CommandQueueRepository:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def init_schema(self) -> None:
        """Run schema migrations."""

        try:
            upgrade_head(self.db_path)
        except SQLAlchemyError as error:
            raise StoreError(f"Cannot initialize queue store {self.db_path}: {error}") from error

    def is_empty(self) -> bool:
        """True when no pending command remains."""

        return self.count_pending() == 0

    def count_pending(self) -> int:
        with self._session() as session:
            return session.exec(
                select(func.count())
                .select_from(CommandRecord)
                .where(CommandRecord.status == TaskStatus.PENDING.value),
            ).one()

    def enqueue(self, task: ScrapeTask) -> int:
        """Persist a new pending command and bind its id to ``task``."""

        if task.id is not None:
            raise ValueError(f"Task is already enqueued with id={task.id}")
        if task.status is not TaskStatus.PENDING:
            raise ValueError(f"Only pending tasks can be enqueued, got {task.status.name}")

        payload = encode_task(task)
        with self._session() as session:
            row = CommandRecord(
                kind=task.kind,
                command=payload,
                status=TaskStatus.PENDING.value,
                created_at=utc_now(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            record_id = row.id
        if record_id is None:
            raise StoreError("SQLite did not return an id for the enqueued command")
        task.assign_id(record_id)

        logger.debug("Command enqueued id=%s kind=%s target=%s", record_id, task.kind, task.target)
        return record_id

    def dequeue_next(self) -> ScrapeTask:
        """Return the oldest pending command as its concrete task variant."""

        with self._session() as session:
            row = session.exec(
                select(CommandRecord)
                .where(CommandRecord.status == TaskStatus.PENDING.value)
                .order_by(col(CommandRecord.id).asc())
                .limit(1),
            ).one_or_none()
            if row is None:
                raise EmptyQueueError("No pending commands")
            record_id = row.id
            blob = row.command

        if record_id is None:
            raise StoreError("Pending command row without id")
        try:
            task = decode_task(blob)
        except TaskSerializationError:
            logger.error("Cannot decode command id=%s; it stays pending", record_id)
            raise
        task.assign_id(record_id)
        logger.debug("Command dequeued id=%s kind=%s", record_id, task.kind)
        return task

    def complete_task(self, task: ScrapeTask) -> bool:
        """Mark the command done; False if it was already done."""

        if task.id is None:
            raise ValueError("Cannot complete a task that was never enqueued")

        with self._session() as session:
            result = session.exec(
                sa_update(CommandRecord)
                .where(
                    col(CommandRecord.id) == task.id,
                    col(CommandRecord.status) == TaskStatus.PENDING.value,
                )
                .values(
                    status=TaskStatus.DONE.value,
                    completed_at=to_db_datetime(utc_now()),
                ),
            )
            if result.rowcount == 1:
                session.commit()
                logger.debug("Command completed id=%s", task.id)
                return True

            session.rollback()
            if session.get(CommandRecord, task.id) is None:
                raise CommandNotFoundError(f"Command not found: {task.id}")
            return False

    def count_by_status(self) -> dict[TaskStatus, int]:
        counts = dict.fromkeys(TaskStatus, 0)
        with self._session() as session:
            rows = session.exec(
                select(CommandRecord.status, func.count()).group_by(CommandRecord.status),
            ).all()
        for status, total in rows:
            counts[TaskStatus(status)] = int(total)
        return counts

    def list_records(
        self,
        *,
        status: TaskStatus | None = None,
        limit: int = 50,
    ) -> list[CommandRecordView]:
        """List commands in queue order, optionally filtered by status."""

        with self._session() as session:
            statement = select(CommandRecord).order_by(col(CommandRecord.id).asc()).limit(limit)
            if status is not None:
                statement = statement.where(CommandRecord.status == status.value)
            rows = session.exec(statement).all()
        return [_to_record_view(row) for row in rows]

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as error:
            raise StoreError(f"Queue store failure ({self.db_path}): {error}") from error


def _to_record_view(row: CommandRecord) -> CommandRecordView:
    try:
        fields = decode_payload(row.command)["fields"]
    except TaskSerializationError as error:
        fields = {"error": str(error)}
    return CommandRecordView(
        id=row.id or 0,
        kind=row.kind,
        status=TaskStatus(row.status),
        fields=fields,
        created_at=to_utc_aware_datetime(row.created_at),
        completed_at=(
            to_utc_aware_datetime(row.completed_at) if row.completed_at is not None else None
        ),
    )
