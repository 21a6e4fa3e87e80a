"""Persist graph checkpoints and pending writes in SQLite.

Provides the ``BaseCheckpointSaver`` ABC, the ``SqliteSaver``
implementation, serializers and the checkpoint types they exchange.
"""

from threadsave.base import BaseCheckpointSaver, RetentionPolicy
from threadsave.exceptions import (
    CheckpointerError,
    CleanupError,
    InvalidConfigError,
    SerializationError,
    UnsupportedPayloadError,
)
from threadsave.serializers import JsonSerializer, PickleSerializer, Serializer
from threadsave.sqlite import SqliteSaver
from threadsave.types import (
    ERROR,
    INTERRUPT,
    METADATA_FILTER_KEYS,
    RESUME,
    SCHEDULED,
    TASKS,
    WRITES_IDX_MAP,
    Checkpoint,
    CheckpointConfig,
    CheckpointMetadata,
    CheckpointTuple,
    CleanupResult,
    PendingWrite,
    copy_checkpoint,
    empty_checkpoint,
)

__all__ = [
    "BaseCheckpointSaver",
    "Checkpoint",
    "CheckpointConfig",
    "CheckpointMetadata",
    "CheckpointTuple",
    "CheckpointerError",
    "CleanupError",
    "CleanupResult",
    "ERROR",
    "INTERRUPT",
    "InvalidConfigError",
    "JsonSerializer",
    "METADATA_FILTER_KEYS",
    "PendingWrite",
    "PickleSerializer",
    "RESUME",
    "RetentionPolicy",
    "SCHEDULED",
    "Serializer",
    "SerializationError",
    "SqliteSaver",
    "TASKS",
    "UnsupportedPayloadError",
    "WRITES_IDX_MAP",
    "copy_checkpoint",
    "empty_checkpoint",
]
