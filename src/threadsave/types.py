"""Checkpoint types shared by savers, the query builder and the CLI."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, TypedDict

# Reserved channels. Writes on TASKS recorded against a parent checkpoint
# surface as the child's pending sends.
TASKS = "__pregel_tasks"
ERROR = "__error__"
SCHEDULED = "__scheduled__"
INTERRUPT = "__interrupt__"
RESUME = "__resume__"

# Fixed indices for control channels. Negative so they never collide with
# the sequential 0..n-1 indices of ordinary writes.
WRITES_IDX_MAP: dict[str, int] = {ERROR: -1, SCHEDULED: -2, INTERRUPT: -3, RESUME: -4}

PendingWrite = tuple[str, str, Any]
"""(task_id, channel, value) as returned on a CheckpointTuple."""


class Checkpoint(TypedDict, total=False):
    """Snapshot of graph state at one step."""

    v: int
    id: str
    ts: str
    channel_values: dict[str, Any]
    channel_versions: dict[str, Any]
    versions_seen: dict[str, dict[str, Any]]
    pending_sends: list[Any]


class CheckpointMetadata(TypedDict, total=False):
    """Why a checkpoint was written.

    Attributes:
        source: "input", "loop", "update" or "fork".
        step: Step number; -1 for the input checkpoint.
        parents: Map of namespace to parent checkpoint id.
    """

    source: Literal["input", "loop", "update", "fork"]
    step: int
    parents: dict[str, str]


# Keys accepted by ``list(filter=...)``. Anything else is dropped before it
# reaches the SQL text.
METADATA_FILTER_KEYS: frozenset[str] = frozenset({"source", "step", "parents"})

_metadata_keys = CheckpointMetadata.__required_keys__ | CheckpointMetadata.__optional_keys__
if METADATA_FILTER_KEYS != _metadata_keys:
    raise TypeError(
        f"METADATA_FILTER_KEYS {sorted(METADATA_FILTER_KEYS)} is out of sync with "
        f"CheckpointMetadata {sorted(_metadata_keys)}. Update METADATA_FILTER_KEYS."
    )
del _metadata_keys


@dataclass(frozen=True)
class CheckpointConfig:
    """Address of a checkpoint (or of a thread's latest checkpoint).

    Attributes:
        thread_id: Conversation/run identity.
        checkpoint_ns: Sub-graph namespace. None means "" for lookups and
            writes, and "any namespace" for listing.
        checkpoint_id: Exact checkpoint. None means latest for lookups.
            On ``put`` it is the parent of the checkpoint being written.
    """

    thread_id: str
    checkpoint_ns: str | None = None
    checkpoint_id: str | None = None

    @property
    def namespace(self) -> str:
        return self.checkpoint_ns or ""

    def to_dict(self) -> dict[str, Any]:
        """Caller-facing ``{"configurable": {...}}`` shape."""
        configurable: dict[str, Any] = {"thread_id": self.thread_id, "checkpoint_ns": self.namespace}
        if self.checkpoint_id is not None:
            configurable["checkpoint_id"] = self.checkpoint_id
        return {"configurable": configurable}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckpointConfig:
        """Build from a ``{"configurable": {...}}`` mapping."""
        configurable = data.get("configurable") or {}
        return cls(
            thread_id=configurable.get("thread_id", ""),
            checkpoint_ns=configurable.get("checkpoint_ns"),
            checkpoint_id=configurable.get("checkpoint_id"),
        )


@dataclass
class CheckpointTuple:
    """A checkpoint with everything needed to resume from it."""

    config: CheckpointConfig
    checkpoint: Checkpoint
    metadata: CheckpointMetadata
    parent_config: CheckpointConfig | None = None
    pending_writes: list[PendingWrite] = field(default_factory=list)
    pending_sends: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly dict (values are passed through as-is)."""
        return {
            "config": self.config.to_dict(),
            "checkpoint": self.checkpoint,
            "metadata": self.metadata,
            "parent_config": self.parent_config.to_dict() if self.parent_config else None,
            "pending_writes": [list(w) for w in self.pending_writes],
            "pending_sends": self.pending_sends,
        }


@dataclass(frozen=True)
class CleanupResult:
    """Row counts removed by one retention pass."""

    deleted_checkpoints: int
    deleted_writes: int

    def to_dict(self) -> dict[str, int]:
        return {"deleted_checkpoints": self.deleted_checkpoints, "deleted_writes": self.deleted_writes}


def copy_checkpoint(checkpoint: Checkpoint) -> Checkpoint:
    """Copy a checkpoint so later mutation by the caller can't leak into storage.

    Only keys present on the input are copied; nothing is defaulted.
    """
    copied = Checkpoint(**checkpoint)
    for key in ("channel_values", "channel_versions"):
        if key in copied:
            copied[key] = dict(copied[key])  # type: ignore[literal-required]
    if "versions_seen" in copied:
        copied["versions_seen"] = {k: dict(v) for k, v in copied["versions_seen"].items()}
    if "pending_sends" in copied:
        copied["pending_sends"] = copy.copy(copied["pending_sends"])
    return copied


def empty_checkpoint(checkpoint_id: str | None = None) -> Checkpoint:
    """A fresh checkpoint with no channel values."""
    return Checkpoint(
        v=1,
        id=checkpoint_id or str(uuid.uuid4()),
        ts=datetime.now(timezone.utc).isoformat(),
        channel_values={},
        channel_versions={},
        versions_seen={},
    )
