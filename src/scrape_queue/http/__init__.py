"""Fetch and parse collaborators used by scraping tasks."""
