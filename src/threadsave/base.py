"""Checkpoint saver base class and retention policy."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any

from threadsave.exceptions import InvalidConfigError
from threadsave.serializers import JsonSerializer, Serializer
from threadsave.types import Checkpoint, CheckpointConfig, CheckpointMetadata, CheckpointTuple, CleanupResult

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_RETENTION_DAYS = 30


@dataclass(frozen=True)
class RetentionPolicy:
    """How long checkpoints and writes are kept.

    Attributes:
        days: Rows created more than this many days ago are removed by
            ``cleanup()``. Defaults to 30.
    """

    days: int = DEFAULT_RETENTION_DAYS

    def __post_init__(self) -> None:
        if isinstance(self.days, bool) or not isinstance(self.days, int):
            raise TypeError(f"retention days must be an int, got {type(self.days).__name__}")
        if self.days <= 0:
            raise ValueError(f"retention days must be positive, got {self.days}")

    def cutoff(self, now: float | None = None) -> int:
        """Epoch seconds before which rows are expired."""
        if now is None:
            now = time.time()
        return int(now) - self.days * SECONDS_PER_DAY


class BaseCheckpointSaver(ABC):
    """Base class for checkpoint persistence.

    A checkpoint is written once per step by ``put``. Writes produced by
    tasks during that step are attached with ``put_writes`` and returned
    with the checkpoint by ``get_tuple`` and ``list``.
    """

    def __init__(self, *, serializer: Serializer | None = None, retention: RetentionPolicy | None = None):
        self.serde = serializer or JsonSerializer()
        self.retention = retention or RetentionPolicy()

    # === Read Operations ===

    @abstractmethod
    async def get_tuple(self, config: CheckpointConfig) -> CheckpointTuple | None:
        """Get a checkpoint by id, or the thread's latest when no id is given."""
        ...

    async def get(self, config: CheckpointConfig) -> Checkpoint | None:
        """Get just the checkpoint value."""
        value = await self.get_tuple(config)
        return value.checkpoint if value else None

    @abstractmethod
    def list(
        self,
        config: CheckpointConfig | None,
        *,
        filter: dict[str, Any] | None = None,
        before: CheckpointConfig | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        """Yield checkpoints newest first."""
        ...

    # === Write Operations ===

    @abstractmethod
    async def put(
        self,
        config: CheckpointConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: dict[str, Any] | None = None,
    ) -> CheckpointConfig:
        """Store a checkpoint. ``config.checkpoint_id`` becomes its parent."""
        ...

    @abstractmethod
    async def put_writes(self, config: CheckpointConfig, writes: Sequence[tuple[str, Any]], task_id: str) -> None:
        """Store one task's writes against ``config.checkpoint_id``."""
        ...

    @abstractmethod
    async def delete_thread(self, thread_id: str) -> None:
        """Remove every checkpoint and write for a thread."""
        ...

    @abstractmethod
    async def cleanup(self, *, now: float | None = None) -> CleanupResult:
        """Remove rows older than the retention window.

        Returns the number of rows deleted from each table.
        """
        ...

    # === Lifecycle ===

    async def initialize(self) -> None:  # noqa: B027
        """Initialize the saver (create tables, etc.)."""

    async def close(self) -> None:  # noqa: B027
        """Clean up resources (close connections, etc.)."""

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def require_config(config: CheckpointConfig | None, *, checkpoint_id: bool = False) -> CheckpointConfig:
    """Check the fields a call needs before anything reaches the backend."""
    if config is None:
        raise InvalidConfigError()
    if not config.thread_id:
        raise InvalidConfigError("thread_id")
    if checkpoint_id and not config.checkpoint_id:
        raise InvalidConfigError("checkpoint_id")
    return config
