"""SQLite-based checkpoint saver using aiosqlite."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import aiosqlite

from threadsave._assemble import row_to_tuple
from threadsave._queries import (
    DELETE_OLD_CHECKPOINTS,
    DELETE_OLD_WRITES,
    DELETE_THREAD_CHECKPOINTS,
    DELETE_THREAD_WRITES,
    UPSERT_CHECKPOINT,
    UPSERT_WRITE,
    build_get_query,
    build_list_query,
)
from threadsave._schema import ensure_schema
from threadsave.base import BaseCheckpointSaver, RetentionPolicy, require_config
from threadsave.exceptions import CleanupError, InvalidConfigError, SerializationError
from threadsave.serializers import Serializer
from threadsave.types import (
    WRITES_IDX_MAP,
    Checkpoint,
    CheckpointConfig,
    CheckpointMetadata,
    CheckpointTuple,
    CleanupResult,
    copy_checkpoint,
)

logger = logging.getLogger(__name__)


class SqliteSaver(BaseCheckpointSaver):
    """SQLite-based checkpoint persistence.

    Best for: local development, single-server deployments, tests.

    Args:
        path: Path to SQLite database file (or ":memory:").
        serializer: Payload serializer (default: JSON).
        retention: Retention window used by ``cleanup()`` (default: 30 days).

    Example::

        async with SqliteSaver("./checkpoints.db") as saver:
            config = await saver.put(CheckpointConfig("thread-1"), checkpoint, {"source": "input", "step": -1, "parents": {}})
            await saver.put_writes(config, [("messages", "hi")], task_id="task-1")
            latest = await saver.get_tuple(CheckpointConfig("thread-1"))
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        serializer: Serializer | None = None,
        retention: RetentionPolicy | None = None,
    ):
        super().__init__(serializer=serializer, retention=retention)
        self._path = os.fspath(path)
        self._db: Any = None
        self._setup_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open the connection and create tables if they don't exist.

        Runs once; later calls return immediately.
        """
        async with self._setup_lock:
            if self._db is not None:
                return
            db = await aiosqlite.connect(self._path)
            try:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA journal_mode=WAL")
                await ensure_schema(db)
            except BaseException:
                await db.close()
                raise
            self._db = db
            logger.debug("Checkpoint database ready at %s", self._path)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def _ensure_db(self) -> None:
        """Lazy-initialize on first use."""
        if self._db is None:
            await self.initialize()

    @asynccontextmanager
    async def _transaction(self):
        """Commit the statements issued inside the block, or roll all of them back.

        The connection is shared, so transactions are serialized: a commit or
        rollback only ever covers the statements of its own block.
        """
        async with self._write_lock:
            try:
                yield self._db
            except BaseException:
                await self._db.rollback()
                raise
            else:
                await self._db.commit()

    # === Read ===

    async def get_tuple(self, config: CheckpointConfig) -> CheckpointTuple | None:
        """Get a checkpoint with its pending writes and sends.

        Without ``config.checkpoint_id`` the newest checkpoint for the
        thread and namespace is returned, and its id is set on the
        returned ``config``.
        """
        config = require_config(config)
        await self._ensure_db()

        sql, params = build_get_query(config.thread_id, config.namespace, config.checkpoint_id)
        cursor = await self._db.execute(sql, params)
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            return None
        return row_to_tuple(row, self.serde, checkpoint_ns=config.namespace)

    async def list(
        self,
        config: CheckpointConfig | None,
        *,
        filter: dict[str, Any] | None = None,
        before: CheckpointConfig | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        """Yield checkpoints newest first.

        Args:
            config: Thread (and optionally namespace) to list. None lists
                every thread; ``checkpoint_ns=None`` lists every namespace.
            filter: Metadata equality filter. Keys outside ``source``,
                ``step`` and ``parents`` are ignored.
            before: Only checkpoints with an id lower than ``before.checkpoint_id``.
            limit: Maximum number of checkpoints.

        The query runs once; rows are decoded as they are yielded.
        """
        await self._ensure_db()

        sql, params = build_list_query(
            thread_id=config.thread_id if config is not None else None,
            checkpoint_ns=config.checkpoint_ns if config is not None else None,
            before=before.checkpoint_id if before is not None else None,
            limit=limit,
            filter=filter,
        )
        cursor = await self._db.execute(sql, params)
        rows = await cursor.fetchall()
        await cursor.close()
        logger.debug("Listed %d checkpoints", len(rows))

        for row in rows:
            yield row_to_tuple(row, self.serde)

    # === Write ===

    async def put(
        self,
        config: CheckpointConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: dict[str, Any] | None = None,
    ) -> CheckpointConfig:
        """Insert or replace a checkpoint.

        ``config.checkpoint_id`` (if any) is recorded as the parent.
        Returns the config addressing the stored checkpoint.
        """
        config = require_config(config)
        checkpoint_id = checkpoint.get("id")
        if not checkpoint_id:
            raise ValueError("Checkpoint has no 'id'")

        checkpoint_type, checkpoint_blob = self.serde.dumps_typed(copy_checkpoint(checkpoint))
        metadata_type, metadata_blob = self.serde.dumps_typed(metadata)
        if checkpoint_type != metadata_type:
            raise SerializationError(
                f"Failed to serialize checkpoint and metadata to the same type ({checkpoint_type!r} != {metadata_type!r})."
            )

        await self._ensure_db()
        async with self._transaction() as db:
            await db.execute(
                UPSERT_CHECKPOINT,
                (
                    config.thread_id,
                    config.namespace,
                    checkpoint_id,
                    config.checkpoint_id or None,
                    checkpoint_type,
                    checkpoint_blob,
                    metadata_blob,
                ),
            )
        logger.debug("Saved checkpoint %s (thread=%s, parent=%s)", checkpoint_id, config.thread_id, config.checkpoint_id)

        return CheckpointConfig(thread_id=config.thread_id, checkpoint_ns=config.namespace, checkpoint_id=checkpoint_id)

    async def put_writes(self, config: CheckpointConfig, writes: Sequence[tuple[str, Any]], task_id: str) -> None:
        """Store a task's writes as one batch.

        Control channels get their fixed index from ``WRITES_IDX_MAP``;
        other writes are indexed by position. Resubmitting the same
        ``(task_id, idx)`` replaces the earlier value.
        """
        config = require_config(config, checkpoint_id=True)

        rows = []
        for idx, (channel, value) in enumerate(writes):
            value_type, value_blob = self.serde.dumps_typed(value)
            rows.append(
                (
                    config.thread_id,
                    config.namespace,
                    config.checkpoint_id,
                    task_id,
                    WRITES_IDX_MAP.get(channel, idx),
                    channel,
                    value_type,
                    value_blob,
                )
            )

        await self._ensure_db()
        if not rows:
            return
        async with self._transaction() as db:
            await db.executemany(UPSERT_WRITE, rows)
        logger.debug("Saved %d writes for task %s on checkpoint %s", len(rows), task_id, config.checkpoint_id)

    async def delete_thread(self, thread_id: str) -> None:
        """Delete all checkpoints and writes for a thread."""
        if not thread_id:
            raise InvalidConfigError("thread_id")
        await self._ensure_db()

        async with self._transaction() as db:
            checkpoints = await db.execute(DELETE_THREAD_CHECKPOINTS, (thread_id,))
            writes = await db.execute(DELETE_THREAD_WRITES, (thread_id,))
        logger.info("Deleted thread %s (%d checkpoints, %d writes)", thread_id, checkpoints.rowcount, writes.rowcount)

    async def cleanup(self, *, now: float | None = None) -> CleanupResult:
        """Delete checkpoints and writes older than the retention window.

        Both tables are pruned with the same cutoff in one transaction.
        Any failure is raised as CleanupError.

        Args:
            now: Reference time in epoch seconds (default: current time).
        """
        await self._ensure_db()
        cutoff = self.retention.cutoff(now)

        deleted_writes = deleted_checkpoints = 0
        try:
            async with self._transaction() as db:
                cursor = await db.execute(DELETE_OLD_WRITES, (cutoff,))
                deleted_writes = cursor.rowcount
                cursor = await db.execute(DELETE_OLD_CHECKPOINTS, (cutoff,))
                deleted_checkpoints = cursor.rowcount
        except Exception as exc:
            logger.error(
                "Failed to clean up records older than %d days (%d writes deleted before failure, rolled back): %s",
                self.retention.days,
                deleted_writes,
                exc,
            )
            raise CleanupError(f"Cleanup failed: {exc}") from exc

        if deleted_checkpoints or deleted_writes:
            logger.info(
                "Cleanup completed: deleted %d checkpoints and %d writes older than %d days",
                deleted_checkpoints,
                deleted_writes,
                self.retention.days,
            )
        return CleanupResult(deleted_checkpoints=deleted_checkpoints, deleted_writes=deleted_writes)
