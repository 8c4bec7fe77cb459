from __future__ import annotations

from pathlib import Path

import allure
import pytest

from scrape_queue.config import FetchSettings, ScrapeProfile, Settings
from scrape_queue.queue.models import FetchErrorPolicy

pytestmark = [
    allure.epic("Command Queue"),
    allure.feature("Configuration"),
]


def test_defaults_are_valid() -> None:
    settings = Settings()

    settings.validate()
    assert settings.fetch.on_error is FetchErrorPolicy.ABORT
    assert settings.profile.page_param == "page"


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SCRAPE_QUEUE_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("SCRAPE_QUEUE_ON_FETCH_ERROR", " SKIP ")
    monkeypatch.setenv("SCRAPE_QUEUE_SEED_URL", "https://books.example/")
    monkeypatch.setenv("SCRAPE_QUEUE_MAX_LINKS_PER_PAGE", "5")
    monkeypatch.setenv("SCRAPE_QUEUE_FETCH_TIMEOUT_SECONDS", "2.5")

    settings = Settings.from_env()

    assert settings.db_path == tmp_path / "env.db"
    assert settings.fetch.on_error is FetchErrorPolicy.SKIP
    assert settings.fetch.timeout_seconds == 2.5
    assert settings.profile.seed_url == "https://books.example/"
    assert settings.profile.max_links_per_page == 5


def test_explicit_db_path_wins_over_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SCRAPE_QUEUE_DB_PATH", str(tmp_path / "env.db"))

    assert Settings.from_env(db_path=tmp_path / "cli.db").db_path == tmp_path / "cli.db"


def test_from_env_rejects_unknown_fetch_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCRAPE_QUEUE_ON_FETCH_ERROR", "retry")

    with pytest.raises(ValueError, match="SCRAPE_QUEUE_ON_FETCH_ERROR"):
        Settings.from_env()


def test_validate_rejects_link_pattern_without_group() -> None:
    settings = Settings(profile=ScrapeProfile(item_link_pattern=r'href="/title/[^"]+"'))

    with pytest.raises(ValueError, match="ITEM_LINK_PATTERN must contain at least one capture"):
        settings.validate()


def test_validate_rejects_invalid_regex() -> None:
    settings = Settings(profile=ScrapeProfile(title_pattern="<h1>(.*</h1>"))

    with pytest.raises(ValueError, match="Invalid regular expression in SCRAPE_QUEUE_TITLE_PATTERN"):
        settings.validate()


def test_validate_rejects_empty_next_page_marker() -> None:
    settings = Settings(profile=ScrapeProfile(next_page_pattern=""))

    with pytest.raises(ValueError, match="NEXT_PAGE_PATTERN must not be empty"):
        settings.validate()


def test_validate_rejects_non_positive_fetch_timeout() -> None:
    settings = Settings(fetch=FetchSettings(timeout_seconds=0))

    with pytest.raises(ValueError, match="FETCH_TIMEOUT_SECONDS"):
        settings.validate()


def test_validate_rejects_negative_link_limit() -> None:
    settings = Settings(profile=ScrapeProfile(max_links_per_page=-1))

    with pytest.raises(ValueError, match="MAX_LINKS_PER_PAGE"):
        settings.validate()
