"""Session stand-in used when no database URL is configured."""

import logging

logger = logging.getLogger(__name__)

_warned = set()


def _warn_once(operation: str) -> None:
    """Warn the first time a given operation is skipped in this process."""
    if operation in _warned:
        return
    _warned.add(operation)
    logger.warning("Database operation '%s' skipped: no database configured.", operation)


class EmptyResult:
    """Query result with no rows."""

    def scalars(self):
        return self

    def all(self):
        return []

    def first(self):
        return None

    def scalar_one_or_none(self):
        return None

    def scalar_one(self):
        # Aggregates over an empty table
        return 0


class NoOpSession:
    """Accepts every session call and persists nothing.

    Reads behave as if the database were empty.
    """

    async def execute(self, *args, **kwargs):
        _warn_once("execute")
        return EmptyResult()

    def add(self, instance):
        _warn_once("add")

    async def flush(self):
        _warn_once("flush")

    async def commit(self):
        _warn_once("commit")

    async def rollback(self):
        _warn_once("rollback")

    async def refresh(self, instance):
        _warn_once("refresh")

    async def close(self):
        pass
