"""Shared test fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from scrape_queue.config import ScrapeProfile
from scrape_queue.queue.repository import CommandQueueRepository

from .fakes import SITE


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[CommandQueueRepository]:
    repository = CommandQueueRepository(tmp_path / "queue.db")
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@pytest.fixture()
def profile() -> ScrapeProfile:
    """Extraction rules matching the canned pages in tests.fakes."""

    return ScrapeProfile(
        seed_url=f"{SITE}/catalog",
        collection_link_pattern=r'<a class="collection" href="([^"]+)"',
        item_link_pattern=r'<a class="item" href="([^"]+)"',
        next_page_pattern=r'<a class="next"',
        title_pattern=r"<h1[^>]*>(.*?)</h1>",
        excerpt_max_chars=0,
    )


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
