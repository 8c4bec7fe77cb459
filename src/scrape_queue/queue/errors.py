"""Queue error taxonomy."""

from __future__ import annotations


class QueueError(RuntimeError):
    """Base class for command queue failures."""


class EmptyQueueError(QueueError):
    """Raised when dequeuing while no pending command exists."""


class TaskSerializationError(QueueError):
    """Raised when a stored payload cannot be turned back into a task."""


class StoreError(QueueError):
    """Raised when the underlying SQLite store fails."""


class CommandNotFoundError(QueueError):
    """Raised when a command id has no stored record."""


class TaskStateError(QueueError):
    """Raised on an illegal task lifecycle transition."""
