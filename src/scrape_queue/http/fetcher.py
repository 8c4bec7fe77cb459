"""Content fetcher for HTTP URLs and local files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ScrapeQueue/0.1)"

_HTTP_SCHEMES = frozenset({"http", "https"})


class FetchError(RuntimeError):
    """Raised when a target cannot be retrieved."""

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {target}: {reason}")
        self.target = target
        self.reason = reason


class Fetcher(Protocol):
    def fetch(self, target: str) -> str: ...


class ContentFetcher:
    """Fetch raw page content over HTTP(S) or from the local filesystem.

    Targets with an ``http``/``https`` scheme go through a shared ``httpx``
    client; ``file://`` URLs and plain paths are read from disk. Every
    failure surfaces as ``FetchError``; retry policy is left to the caller.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = 0,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base_headers = {"User-Agent": user_agent}
        if headers:
            base_headers.update(headers)
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=min(10.0, timeout_seconds)),
            headers=base_headers,
            transport=transport or httpx.HTTPTransport(retries=max_retries),
            follow_redirects=True,
        )

    def fetch(self, target: str) -> str:
        scheme = urlsplit(target).scheme.lower()
        if scheme in _HTTP_SCHEMES:
            return self._fetch_http(target)
        return self._fetch_file(target)

    def _fetch_http(self, url: str) -> str:
        try:
            response = self._client.get(url)
        except httpx.TimeoutException as error:
            logger.warning("Timeout fetching %s", url)
            raise FetchError(url, "timeout") from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error fetching %s: %s", url, error)
            raise FetchError(url, str(error)) from error

        if not response.is_success:
            raise FetchError(url, f"HTTP {response.status_code}")
        logger.debug("Downloaded %s (%d bytes)", url, len(response.content))
        return response.text

    def _fetch_file(self, target: str) -> str:
        parts = urlsplit(target)
        path = Path(url2pathname(parts.path)) if parts.scheme == "file" else Path(target)
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as error:
            raise FetchError(target, str(error)) from error
        logger.debug("Read %s (%d chars)", path, len(content))
        return content

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ContentFetcher:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
