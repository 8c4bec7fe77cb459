"""Runtime configuration for the scrape queue."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from scrape_queue.queue.models import FetchErrorPolicy

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ScrapeQueue/0.1)"
DEFAULT_SEED_URL = "https://www.imdb.com/feature/genre/"
DEFAULT_COLLECTION_LINK_PATTERN = r'href="(https://www\.imdb\.com/search/title\?genres=.*?)"'
DEFAULT_ITEM_LINK_PATTERN = r'href="(/title/.*?/)\?ref_=adv_li_tt"'
DEFAULT_NEXT_PAGE_PATTERN = r"Next &#187;</a>"
DEFAULT_TITLE_PATTERN = r"<h1[^>]*>(.*?)</h1>"


@dataclass(slots=True)
class FetchSettings:
    """Content fetch settings."""

    timeout_seconds: float = 30.0
    max_retries: int = 0
    user_agent: str = DEFAULT_USER_AGENT
    on_error: FetchErrorPolicy = FetchErrorPolicy.ABORT


@dataclass(slots=True)
class ScrapeProfile:
    """Site-specific extraction rules shared by every task variant.

    Link and title patterns must expose the wanted value as capture group 1.
    """

    seed_url: str = DEFAULT_SEED_URL
    collection_link_pattern: str = DEFAULT_COLLECTION_LINK_PATTERN
    item_link_pattern: str = DEFAULT_ITEM_LINK_PATTERN
    next_page_pattern: str = DEFAULT_NEXT_PAGE_PATTERN
    title_pattern: str = DEFAULT_TITLE_PATTERN
    page_param: str = "page"
    max_links_per_page: int = 0
    excerpt_max_chars: int = 280


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(".scrape_queue.db")
    sqlite_busy_timeout_ms: int = 5_000
    fetch: FetchSettings = field(default_factory=FetchSettings)
    profile: ScrapeProfile = field(default_factory=ScrapeProfile)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults for local runs."""

        return cls(
            db_path=db_path or Path(os.getenv("SCRAPE_QUEUE_DB_PATH", ".scrape_queue.db")),
            sqlite_busy_timeout_ms=int(os.getenv("SCRAPE_QUEUE_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            fetch=FetchSettings(
                timeout_seconds=float(os.getenv("SCRAPE_QUEUE_FETCH_TIMEOUT_SECONDS", "30")),
                max_retries=int(os.getenv("SCRAPE_QUEUE_FETCH_MAX_RETRIES", "0")),
                user_agent=os.getenv("SCRAPE_QUEUE_USER_AGENT", DEFAULT_USER_AGENT),
                on_error=_env_policy("SCRAPE_QUEUE_ON_FETCH_ERROR", FetchErrorPolicy.ABORT),
            ),
            profile=ScrapeProfile(
                seed_url=os.getenv("SCRAPE_QUEUE_SEED_URL", DEFAULT_SEED_URL),
                collection_link_pattern=os.getenv(
                    "SCRAPE_QUEUE_COLLECTION_LINK_PATTERN",
                    DEFAULT_COLLECTION_LINK_PATTERN,
                ),
                item_link_pattern=os.getenv(
                    "SCRAPE_QUEUE_ITEM_LINK_PATTERN",
                    DEFAULT_ITEM_LINK_PATTERN,
                ),
                next_page_pattern=os.getenv(
                    "SCRAPE_QUEUE_NEXT_PAGE_PATTERN",
                    DEFAULT_NEXT_PAGE_PATTERN,
                ),
                title_pattern=os.getenv("SCRAPE_QUEUE_TITLE_PATTERN", DEFAULT_TITLE_PATTERN),
                page_param=os.getenv("SCRAPE_QUEUE_PAGE_PARAM", "page"),
                max_links_per_page=int(os.getenv("SCRAPE_QUEUE_MAX_LINKS_PER_PAGE", "0")),
                excerpt_max_chars=int(os.getenv("SCRAPE_QUEUE_EXCERPT_MAX_CHARS", "280")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the queue cannot run with."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("SCRAPE_QUEUE_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.fetch.timeout_seconds <= 0:
            raise ValueError("SCRAPE_QUEUE_FETCH_TIMEOUT_SECONDS must be > 0.")
        if self.fetch.max_retries < 0:
            raise ValueError("SCRAPE_QUEUE_FETCH_MAX_RETRIES must be >= 0.")

        profile = self.profile
        if not profile.seed_url.strip():
            raise ValueError("SCRAPE_QUEUE_SEED_URL must not be empty.")
        if not profile.page_param.strip():
            raise ValueError("SCRAPE_QUEUE_PAGE_PARAM must not be empty.")
        if profile.max_links_per_page < 0:
            raise ValueError("SCRAPE_QUEUE_MAX_LINKS_PER_PAGE must be >= 0.")
        if profile.excerpt_max_chars < 0:
            raise ValueError("SCRAPE_QUEUE_EXCERPT_MAX_CHARS must be >= 0.")

        _validate_pattern(
            "SCRAPE_QUEUE_COLLECTION_LINK_PATTERN",
            profile.collection_link_pattern,
            needs_group=True,
        )
        _validate_pattern(
            "SCRAPE_QUEUE_ITEM_LINK_PATTERN",
            profile.item_link_pattern,
            needs_group=True,
        )
        _validate_pattern("SCRAPE_QUEUE_TITLE_PATTERN", profile.title_pattern, needs_group=True)
        _validate_pattern(
            "SCRAPE_QUEUE_NEXT_PAGE_PATTERN",
            profile.next_page_pattern,
            needs_group=False,
        )


def _validate_pattern(name: str, value: str, *, needs_group: bool) -> None:
    if not value:
        raise ValueError(f"{name} must not be empty.")
    try:
        compiled = re.compile(value)
    except re.error as error:
        raise ValueError(f"Invalid regular expression in {name}: {error}") from error
    if needs_group and compiled.groups < 1:
        raise ValueError(f"{name} must contain at least one capture group.")


def _env_policy(name: str, default: FetchErrorPolicy) -> FetchErrorPolicy:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    try:
        return FetchErrorPolicy(normalized)
    except ValueError as error:
        allowed = ", ".join(policy.value for policy in FetchErrorPolicy)
        raise ValueError(f"Invalid value for {name}: {value!r} (expected one of {allowed})") from error
