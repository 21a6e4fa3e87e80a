"""Schema setup for checkpoint databases.

Creates the ``checkpoints`` and ``writes`` tables and upgrades tables
written before ``created_at`` existed.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from threadsave._utils import NOW_EPOCH, normalize_sql

logger = logging.getLogger(__name__)


async def ensure_schema(conn: Any) -> None:
    """Create tables and indexes if missing, then add ``created_at`` where absent.

    Safe to call repeatedly and from several processes at once.
    """
    await conn.execute(_CREATE_CHECKPOINTS)
    await conn.execute(_CREATE_WRITES)
    for table in ("checkpoints", "writes"):
        await _add_created_at_if_missing(conn, table)
    await _create_indexes(conn)
    await conn.commit()


# === SQL Definitions ===

_CREATE_CHECKPOINTS = normalize_sql("""
CREATE TABLE IF NOT EXISTS checkpoints (
    thread_id TEXT NOT NULL,
    checkpoint_ns TEXT NOT NULL DEFAULT '',
    checkpoint_id TEXT NOT NULL,
    parent_checkpoint_id TEXT,
    type TEXT,
    checkpoint BLOB,
    metadata BLOB,
    created_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER)),
    PRIMARY KEY (thread_id, checkpoint_ns, checkpoint_id)
)
""")

_CREATE_WRITES = normalize_sql("""
CREATE TABLE IF NOT EXISTS writes (
    thread_id TEXT NOT NULL,
    checkpoint_ns TEXT NOT NULL DEFAULT '',
    checkpoint_id TEXT NOT NULL,
    task_id TEXT NOT NULL,
    idx INTEGER NOT NULL,
    channel TEXT NOT NULL,
    type TEXT,
    value BLOB,
    created_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER)),
    PRIMARY KEY (thread_id, checkpoint_ns, checkpoint_id, task_id, idx)
)
""")


async def _create_indexes(conn: Any) -> None:
    """Indexes for retention scans."""
    await conn.execute("CREATE INDEX IF NOT EXISTS idx_checkpoints_created ON checkpoints(created_at)")
    await conn.execute("CREATE INDEX IF NOT EXISTS idx_writes_created ON writes(created_at)")


async def _add_created_at_if_missing(conn: Any, table: str) -> None:
    """Add ``created_at`` to a table from an older deployment.

    SQLite can't add a column with a non-constant default, so the column is
    added nullable. Rows without a ``created_at`` are stamped with the
    current time on every call.
    """
    cursor = await conn.execute(f"PRAGMA table_info({table})")
    existing = {row[1] for row in await cursor.fetchall()}
    await cursor.close()
    if "created_at" not in existing:
        logger.info("Adding created_at column to %s", table)
        try:
            await conn.execute(f"ALTER TABLE {table} ADD COLUMN created_at INTEGER")
        except sqlite3.OperationalError as exc:
            # Another process added it between our PRAGMA and ALTER
            if "duplicate column" not in str(exc).lower():
                raise
            logger.warning("created_at already present on %s: %s", table, exc)
    await conn.execute(f"UPDATE {table} SET created_at = {NOW_EPOCH} WHERE created_at IS NULL")
