"""Persistent, self-expanding scraping command queue."""

__version__ = "0.1.0"
