"""Turn checkpoint rows into CheckpointTuple objects."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from threadsave._utils import from_hex, to_bytes
from threadsave.serializers import Serializer
from threadsave.types import CheckpointConfig, CheckpointTuple, PendingWrite

# Payloads written without a tag predate typed serialization
DEFAULT_TYPE = "json"


def row_to_tuple(row: Mapping[str, Any], serde: Serializer, *, checkpoint_ns: str | None = None) -> CheckpointTuple:
    """Decode one row from ``_queries`` into a CheckpointTuple.

    Args:
        row: Row keyed by the names in ``_queries.CHECKPOINT_COLS``.
        serde: Serializer used for every payload, selected per payload tag.
        checkpoint_ns: Namespace to report in the configs. Defaults to the
            row's own namespace.

    The returned config always carries the row's checkpoint id, so a
    latest-checkpoint lookup tells the caller which checkpoint it got.
    """
    type_tag = row["type"] or DEFAULT_TYPE
    ns = row["checkpoint_ns"] if checkpoint_ns is None else checkpoint_ns

    checkpoint = serde.loads_typed(type_tag, to_bytes(row["checkpoint"]))
    metadata = serde.loads_typed(type_tag, to_bytes(row["metadata"]))

    parent_id = row["parent_checkpoint_id"]
    parent_config = (
        CheckpointConfig(thread_id=row["thread_id"], checkpoint_ns=ns, checkpoint_id=parent_id) if parent_id else None
    )

    return CheckpointTuple(
        config=CheckpointConfig(thread_id=row["thread_id"], checkpoint_ns=ns, checkpoint_id=row["checkpoint_id"]),
        checkpoint=checkpoint,
        metadata=metadata,
        parent_config=parent_config,
        pending_writes=decode_pending_writes(row["pending_writes"], serde),
        pending_sends=decode_pending_sends(row["pending_sends"], serde),
    )


def decode_pending_writes(raw: str | None, serde: Serializer) -> list[PendingWrite]:
    """Decode writes in the order the backend aggregated them.

    Each write is decoded with its own type tag.
    """
    return [
        (write["task_id"], write["channel"], serde.loads_typed(write.get("type") or DEFAULT_TYPE, from_hex(write.get("value"))))
        for write in _load_array(raw)
    ]


def decode_pending_sends(raw: str | None, serde: Serializer) -> list[Any]:
    """Decode the parent's TASKS writes in ``idx`` order."""
    sends = sorted(_load_array(raw), key=lambda send: send["idx"])
    return [serde.loads_typed(send.get("type") or DEFAULT_TYPE, from_hex(send.get("value"))) for send in sends]


def _load_array(raw: str | None) -> list[dict[str, Any]]:
    if not raw:
        return []
    return json.loads(raw)
