from __future__ import annotations

from pathlib import Path

import allure
import pytest
from sqlalchemy import text

from scrape_queue.queue.errors import (
    CommandNotFoundError,
    EmptyQueueError,
    TaskSerializationError,
)
from scrape_queue.queue.models import TaskStatus
from scrape_queue.queue.repository import CommandQueueRepository
from scrape_queue.queue.tasks import CatalogTask, CollectionPageTask, ItemTask

from .fakes import SITE

pytestmark = [
    allure.epic("Command Queue"),
    allure.feature("Durable Queue Store"),
]


def test_new_queue_is_empty(repository: CommandQueueRepository) -> None:
    assert repository.is_empty()
    assert repository.count_pending() == 0


def test_enqueue_assigns_increasing_ids(repository: CommandQueueRepository) -> None:
    first = ItemTask(f"{SITE}/title/1/")
    second = ItemTask(f"{SITE}/title/2/")

    first_id = repository.enqueue(first)
    second_id = repository.enqueue(second)

    assert first.id == first_id
    assert second.id == second_id
    assert second_id > first_id
    assert not repository.is_empty()
    assert repository.count_pending() == 2


def test_enqueue_rejects_already_persisted_task(repository: CommandQueueRepository) -> None:
    task = ItemTask(f"{SITE}/title/1/")
    repository.enqueue(task)

    with pytest.raises(ValueError, match="already enqueued"):
        repository.enqueue(task)


def test_dequeue_on_empty_queue_raises(repository: CommandQueueRepository) -> None:
    with pytest.raises(EmptyQueueError):
        repository.dequeue_next()


def test_dequeue_restores_variant_with_id(repository: CommandQueueRepository) -> None:
    original = CollectionPageTask(f"{SITE}/genre/drama", page=3)
    task_id = repository.enqueue(original)

    dequeued = repository.dequeue_next()

    assert isinstance(dequeued, CollectionPageTask)
    assert dequeued.id == task_id
    assert dequeued.page == 3
    assert dequeued.status is TaskStatus.PENDING


def test_dequeue_is_fifo_across_interleaved_enqueues(repository: CommandQueueRepository) -> None:
    ids = [repository.enqueue(ItemTask(f"{SITE}/title/{n}/")) for n in range(3)]

    seen: list[int] = []
    for round_no in range(3):
        task = repository.dequeue_next()
        seen.append(task.id)
        repository.enqueue(ItemTask(f"{SITE}/late/{round_no}/"))
        repository.complete_task(task)

    assert seen == ids
    late = repository.dequeue_next()
    assert late.url == f"{SITE}/late/0/"


def test_dequeue_without_completion_returns_same_record(
    repository: CommandQueueRepository,
) -> None:
    task_id = repository.enqueue(ItemTask(f"{SITE}/title/1/"))

    assert repository.dequeue_next().id == task_id
    assert repository.dequeue_next().id == task_id


def test_complete_task_is_idempotent(repository: CommandQueueRepository) -> None:
    repository.enqueue(ItemTask(f"{SITE}/title/1/"))
    task = repository.dequeue_next()

    assert repository.complete_task(task) is True
    assert repository.complete_task(task) is False

    assert repository.is_empty()
    assert repository.count_by_status() == {TaskStatus.PENDING: 0, TaskStatus.DONE: 1}
    (record,) = repository.list_records(status=TaskStatus.DONE)
    assert record.completed_at is not None


def test_complete_task_requires_persisted_task(repository: CommandQueueRepository) -> None:
    with pytest.raises(ValueError, match="never enqueued"):
        repository.complete_task(ItemTask(f"{SITE}/title/1/"))


def test_complete_task_rejects_unknown_id(repository: CommandQueueRepository) -> None:
    ghost = ItemTask(f"{SITE}/title/1/")
    ghost.assign_id(999)

    with pytest.raises(CommandNotFoundError, match="999"):
        repository.complete_task(ghost)


def test_list_records_filters_and_orders(repository: CommandQueueRepository) -> None:
    repository.enqueue(CatalogTask(f"{SITE}/catalog"))
    repository.enqueue(CollectionPageTask(f"{SITE}/genre/drama", page=2))
    repository.complete_task(repository.dequeue_next())

    pending = repository.list_records(status=TaskStatus.PENDING)
    everything = repository.list_records()

    assert [record.kind for record in pending] == ["collection_page"]
    assert pending[0].fields == {
        "url": f"{SITE}/genre/drama",
        "page": 2,
        "page_param": "page",
    }
    assert [record.kind for record in everything] == ["catalog", "collection_page"]
    assert everything[0].status is TaskStatus.DONE
    assert everything[0].created_at.tzinfo is not None


def test_pending_records_survive_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "resume.db"
    with CommandQueueRepository(db_path) as first:
        first.init_schema()
        first.enqueue(CatalogTask(f"{SITE}/catalog"))
        first.enqueue(ItemTask(f"{SITE}/title/1/"))
        first.complete_task(first.dequeue_next())

    with CommandQueueRepository(db_path) as second:
        second.init_schema()
        assert second.count_pending() == 1
        task = second.dequeue_next()

    assert isinstance(task, ItemTask)
    assert task.url == f"{SITE}/title/1/"


def test_undecodable_payload_fails_loudly_and_stays_pending(
    repository: CommandQueueRepository,
    caplog: pytest.LogCaptureFixture,
) -> None:
    task_id = repository.enqueue(ItemTask(f"{SITE}/title/1/"))
    with repository.engine.begin() as connection:
        connection.execute(
            text("UPDATE commands SET command = :blob WHERE id = :id"),
            {"blob": b'{"v": 1, "kind": "legacy", "fields": {}}', "id": task_id},
        )

    with pytest.raises(TaskSerializationError, match="legacy"):
        repository.dequeue_next()

    assert repository.count_pending() == 1
    assert f"Cannot decode command id={task_id}" in caplog.text
    (record,) = repository.list_records()
    assert record.kind == "item"
