"""Database access helpers for CLI commands.

Creates a SqliteSaver from a --db path and runs its coroutines.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from threadsave import RetentionPolicy, SqliteSaver


def run_async(coro: Any) -> Any:
    """Run an async coroutine from sync CLI context."""
    return asyncio.run(coro)


def open_saver(db: str, *, retention_days: int | None = None, must_exist: bool = True) -> SqliteSaver:
    """Build a SqliteSaver for a database path.

    Connection and schema setup happen on first use inside ``run_async``.
    """
    if must_exist and db != ":memory:" and not Path(db).exists():
        raise FileNotFoundError(db)
    retention = RetentionPolicy(days=retention_days) if retention_days is not None else None
    return SqliteSaver(db, retention=retention)


async def collect(aiter: Any) -> list[Any]:
    """Drain an async iterator into a list."""
    return [item async for item in aiter]
