"""Console logging configuration for the CLI."""

from __future__ import annotations

import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore", "alembic", "trafilatura")


class _ConsoleNoiseFilter(logging.Filter):
    """Keep scrape_queue logs; let third-party loggers through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("scrape_queue"):
            return True
        if record.name.startswith(_NOISY_LOGGERS):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(level: int | str = logging.INFO) -> None:
    """Install a single stderr handler on the root logger.

    Safe to call more than once: previously installed handlers are replaced.
    """

    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ),
    )
    handler.addFilter(_ConsoleNoiseFilter())
    root.addHandler(handler)

    logging.captureWarnings(True)
