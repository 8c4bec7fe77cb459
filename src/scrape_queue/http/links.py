"""Regex-driven link, marker and title extraction from raw HTML."""

from __future__ import annotations

import html
import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")


def find_links(
    content: str,
    pattern: str,
    *,
    base_url: str | None = None,
    limit: int = 0,
) -> list[str]:
    """Return unique links captured by group 1 of ``pattern``, in page order.

    Captured values are HTML-unescaped and resolved against ``base_url``.
    ``limit`` of 0 means no limit.
    """

    if not content:
        return []

    links: list[str] = []
    seen: set[str] = set()
    for match in re.finditer(pattern, content):
        raw = match.group(1)
        if not raw:
            continue
        link = html.unescape(raw.strip())
        if base_url:
            link = urljoin(base_url, link)
        if link in seen:
            continue
        seen.add(link)
        links.append(link)
        if limit and len(links) >= limit:
            break
    return links


def has_marker(content: str, pattern: str) -> bool:
    if not content:
        return False
    return re.search(pattern, content) is not None


def find_title(content: str, pattern: str) -> str | None:
    """Extract a plain-text title from group 1 of the first ``pattern`` match."""

    if not content:
        return None
    match = re.search(pattern, content, flags=re.DOTALL)
    if match is None:
        return None
    text = html.unescape(_TAG_RE.sub("", match.group(1)))
    text = _SPACE_RE.sub(" ", text).strip()
    return text or None


def with_page_param(url: str, param: str, page: int) -> str:
    """Return ``url`` with query parameter ``param`` set to ``page``."""

    parts = urlsplit(url)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key != param
    ]
    query.append((param, str(page)))
    return urlunsplit(parts._replace(query=urlencode(query)))


def is_remote(url: str) -> bool:
    """True for http(s) URLs; anything else is a local file target."""

    return urlsplit(url).scheme.lower() in {"http", "https"}
