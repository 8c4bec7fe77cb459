"""Tagged-union payload encoding for persisted tasks."""

from __future__ import annotations

import json
from typing import Any

from scrape_queue.queue.errors import TaskSerializationError
from scrape_queue.queue.tasks import TASK_REGISTRY, ScrapeTask

PAYLOAD_VERSION = 1


def encode_task(task: ScrapeTask) -> bytes:
    """Serialize a task as ``{"v", "kind", "fields"}`` JSON bytes."""

    if TASK_REGISTRY.get(task.kind) is not type(task):
        raise TaskSerializationError(
            f"Task class {type(task).__name__} is not registered for kind {task.kind!r}",
        )
    document = {"v": PAYLOAD_VERSION, "kind": task.kind, "fields": task.fields()}
    return json.dumps(document, ensure_ascii=False, sort_keys=True).encode("utf-8")


def decode_payload(blob: bytes) -> dict[str, Any]:
    """Parse and shape-check a payload without instantiating the task."""

    try:
        document = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise TaskSerializationError(f"Malformed task payload: {error}") from error

    if not isinstance(document, dict):
        raise TaskSerializationError("Task payload must be a JSON object.")
    if document.get("v") != PAYLOAD_VERSION:
        raise TaskSerializationError(f"Unsupported task payload version: {document.get('v')!r}")
    if not isinstance(document.get("kind"), str):
        raise TaskSerializationError("Task payload is missing its kind tag.")
    if not isinstance(document.get("fields"), dict):
        raise TaskSerializationError("Task payload fields must be a JSON object.")
    return document


def decode_task(blob: bytes) -> ScrapeTask:
    """Rebuild the concrete task variant from its stored payload."""

    document = decode_payload(blob)
    kind = document["kind"]
    task_cls = TASK_REGISTRY.get(kind)
    if task_cls is None:
        raise TaskSerializationError(f"Unknown task kind: {kind!r}")
    try:
        return task_cls.from_fields(document["fields"])
    except (TypeError, ValueError) as error:
        raise TaskSerializationError(f"Invalid fields for task kind {kind!r}: {error}") from error
