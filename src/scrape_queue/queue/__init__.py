"""Durable command queue for scraping tasks.

Tasks are persisted as tagged JSON payloads in a single SQLite table and
drained by one sequential worker. Executing a task may enqueue more tasks,
so the frontier is discovered while it is being consumed. A crash between
dequeue and completion leaves the record pending, which makes delivery
at-least-once: the next drain re-runs that task from scratch.
"""
