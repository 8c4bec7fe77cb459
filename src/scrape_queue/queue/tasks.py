"""Scraping task variants executed by the drain worker."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, TypeVar

from scrape_queue.http.html_extractor import extract_text
from scrape_queue.http.links import find_links, find_title, has_marker, is_remote, with_page_param
from scrape_queue.queue.errors import TaskStateError
from scrape_queue.queue.models import ScrapeResult, TaskStatus

if TYPE_CHECKING:
    from scrape_queue.config import ScrapeProfile

logger = logging.getLogger(__name__)

TASK_REGISTRY: dict[str, type[ScrapeTask]] = {}

_TaskT = TypeVar("_TaskT", bound="type[ScrapeTask]")


class TaskContext(Protocol):
    """Capabilities a task receives for one execution."""

    @property
    def profile(self) -> ScrapeProfile: ...

    def fetch(self, target: str) -> str: ...

    def enqueue(self, task: ScrapeTask) -> int: ...

    def complete(self, task: ScrapeTask) -> bool: ...

    def emit(self, result: ScrapeResult) -> None: ...


def register_task(cls: _TaskT) -> _TaskT:
    """Class decorator adding a task variant to the decode dispatch table."""

    kind = cls.kind
    existing = TASK_REGISTRY.get(kind)
    if existing is not None and existing is not cls:
        raise ValueError(f"Task kind already registered: {kind!r} -> {existing.__name__}")
    TASK_REGISTRY[kind] = cls
    return cls


class ScrapeTask(ABC):
    """One queued scraping step: fetch the target, parse it, complete."""

    kind: ClassVar[str]

    def __init__(self, url: str) -> None:
        if not url:
            raise ValueError("url is required")
        self.url = url
        self.status = TaskStatus.PENDING
        self._id: int | None = None

    @property
    def id(self) -> int | None:
        return self._id

    def assign_id(self, task_id: int) -> None:
        """Bind the store-assigned id; an id never changes once set."""

        if self._id is not None and self._id != task_id:
            raise TaskStateError(f"Task id already assigned: {self._id} (got {task_id})")
        self._id = task_id

    @property
    def target(self) -> str:
        return self.url

    def fields(self) -> dict[str, Any]:
        """Variant payload persisted alongside the kind tag."""

        return {"url": self.url}

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> ScrapeTask:
        return cls(**fields)

    def execute(self, context: TaskContext) -> None:
        if self.status is TaskStatus.DONE:
            raise TaskStateError(f"Task {self._id} ({self.kind}) is already done")
        content = self.fetch(context)
        self.parse(content, context)
        self.complete(context)

    def fetch(self, context: TaskContext) -> str:
        return context.fetch(self.target)

    @abstractmethod
    def parse(self, content: str, context: TaskContext) -> None:
        """Inspect fetched content and enqueue follow-up tasks."""

    def complete(self, context: TaskContext) -> None:
        self.status = TaskStatus.DONE
        context.complete(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScrapeTask):
            return NotImplemented
        return self.kind == other.kind and self.fields() == other.fields()

    def __hash__(self) -> int:
        return hash((self.kind, tuple(sorted(self.fields().items()))))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id}, target={self.target!r})"


@register_task
class CatalogTask(ScrapeTask):
    """Root listing that links to paginated collections."""

    kind = "catalog"

    def parse(self, content: str, context: TaskContext) -> None:
        profile = context.profile
        links = find_links(
            content,
            profile.collection_link_pattern,
            base_url=self.target,
            limit=profile.max_links_per_page,
        )
        logger.info("Collections found: %d at %s", len(links), self.target)
        for link in links:
            context.enqueue(CollectionPageTask(link, page_param=profile.page_param))


@register_task
class CollectionPageTask(ScrapeTask):
    """One page of a paginated collection.

    Enqueues an item task per listed link and, while the page carries the
    next-page marker, one more page of itself with the cursor advanced.
    Local file targets have a single page: the cursor is not applied and the
    marker is ignored.
    """

    kind = "collection_page"

    def __init__(self, url: str, page: int = 1, page_param: str = "page") -> None:
        super().__init__(url)
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if not page_param:
            raise ValueError("page_param is required")
        self.page = page
        self.page_param = page_param

    @property
    def target(self) -> str:
        if not is_remote(self.url):
            return self.url
        return with_page_param(self.url, self.page_param, self.page)

    def fields(self) -> dict[str, Any]:
        return {"url": self.url, "page": self.page, "page_param": self.page_param}

    def next_page(self) -> CollectionPageTask:
        return CollectionPageTask(self.url, page=self.page + 1, page_param=self.page_param)

    def parse(self, content: str, context: TaskContext) -> None:
        profile = context.profile
        links = find_links(
            content,
            profile.item_link_pattern,
            base_url=self.target,
            limit=profile.max_links_per_page,
        )
        logger.info("Items found: %d at %s", len(links), self.target)
        for link in links:
            context.enqueue(ItemTask(link))

        if not has_marker(content, profile.next_page_pattern):
            return
        if not is_remote(self.url):
            logger.info("Next-page marker ignored for local target %s", self.target)
            return
        context.enqueue(self.next_page())


@register_task
class ItemTask(ScrapeTask):
    """Leaf page producing a titled result."""

    kind = "item"

    def parse(self, content: str, context: TaskContext) -> None:
        profile = context.profile
        title = find_title(content, profile.title_pattern)
        if title is None:
            logger.info("No title at %s", self.target)
            return

        excerpt = ""
        if profile.excerpt_max_chars > 0:
            extracted = extract_text(content, url=self.target, max_chars=profile.excerpt_max_chars)
            excerpt = extracted.text
        context.emit(ScrapeResult(task_id=self.id, url=self.target, title=title, excerpt=excerpt))
