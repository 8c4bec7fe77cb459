"""Test doubles and canned pages for queue tests."""

from __future__ import annotations

from scrape_queue.http.fetcher import FetchError
from scrape_queue.queue.models import ScrapeResult

SITE = "https://catalog.example"


class StaticFetcher:
    """In-memory fetcher serving canned pages keyed by exact target."""

    def __init__(self, pages: dict[str, str], *, failing: set[str] | None = None) -> None:
        self.pages = dict(pages)
        self.failing = set(failing or ())
        self.requests: list[str] = []

    def fetch(self, target: str) -> str:
        self.requests.append(target)
        if target in self.failing:
            raise FetchError(target, "connection refused")
        if target not in self.pages:
            raise FetchError(target, "HTTP 404")
        return self.pages[target]


class RecordingContext:
    """TaskContext that records calls instead of touching a store."""

    def __init__(self, profile, pages: dict[str, str] | None = None) -> None:
        self.profile = profile
        self.fetcher = StaticFetcher(pages or {})
        self.enqueued = []
        self.completed = []
        self.results: list[ScrapeResult] = []
        self.calls: list[str] = []

    def fetch(self, target: str) -> str:
        self.calls.append("fetch")
        return self.fetcher.fetch(target)

    def enqueue(self, task) -> int:
        self.calls.append("enqueue")
        self.enqueued.append(task)
        return len(self.enqueued)

    def complete(self, task) -> bool:
        self.calls.append("complete")
        self.completed.append(task)
        return True

    def emit(self, result: ScrapeResult) -> None:
        self.calls.append("emit")
        self.results.append(result)


def catalog_page(*links: str) -> str:
    anchors = "\n".join(f'<li><a class="collection" href="{link}">{link}</a></li>' for link in links)
    return f"<html><body><ul>{anchors}</ul></body></html>"


def collection_page(*links: str, has_next: bool = False) -> str:
    anchors = "\n".join(f'<li><a class="item" href="{link}">{link}</a></li>' for link in links)
    next_link = '<a class="next" href="?page=next">Next &#187;</a>' if has_next else ""
    return f"<html><body><ul>{anchors}</ul>{next_link}</body></html>"


def item_page(title: str) -> str:
    return f"<html><head><title>{title}</title></head><body><h1>{title}</h1></body></html>"
