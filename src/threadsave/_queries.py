"""SQL construction for checkpoint reads.

Every read returns the checkpoint columns plus two correlated aggregates:

- ``pending_writes``: writes recorded against the checkpoint itself.
- ``pending_sends``: writes on the TASKS channel recorded against the
  checkpoint's parent.

Both are JSON arrays. Blob values are hex-encoded inside the aggregate so
binary payloads survive it.
"""

from __future__ import annotations

import json
from typing import Any

from threadsave._utils import NOW_EPOCH, normalize_sql
from threadsave.types import METADATA_FILTER_KEYS, TASKS

# Explicit column list; _assemble reads rows by these names
CHECKPOINT_COLS = (
    "thread_id",
    "checkpoint_ns",
    "checkpoint_id",
    "parent_checkpoint_id",
    "type",
    "checkpoint",
    "metadata",
    "pending_writes",
    "pending_sends",
)

# One bound parameter: the TASKS channel name
_SELECT = normalize_sql("""
SELECT
    thread_id,
    checkpoint_ns,
    checkpoint_id,
    parent_checkpoint_id,
    type,
    checkpoint,
    metadata,
    (
        SELECT json_group_array(
            json_object(
                'task_id', pw.task_id,
                'channel', pw.channel,
                'type', pw.type,
                'value', hex(pw.value)
            )
        )
        FROM writes AS pw
        WHERE pw.thread_id = checkpoints.thread_id
            AND pw.checkpoint_ns = checkpoints.checkpoint_ns
            AND pw.checkpoint_id = checkpoints.checkpoint_id
    ) AS pending_writes,
    (
        SELECT json_group_array(
            json_object(
                'idx', ps.idx,
                'type', ps.type,
                'value', hex(ps.value)
            )
        )
        FROM writes AS ps
        WHERE ps.thread_id = checkpoints.thread_id
            AND ps.checkpoint_ns = checkpoints.checkpoint_ns
            AND ps.checkpoint_id = checkpoints.parent_checkpoint_id
            AND ps.channel = ?
    ) AS pending_sends
FROM checkpoints
""")

_GET_BY_ID = f"{_SELECT} WHERE thread_id = ? AND checkpoint_ns = ? AND checkpoint_id = ?"
_GET_LATEST = f"{_SELECT} WHERE thread_id = ? AND checkpoint_ns = ? ORDER BY checkpoint_id DESC LIMIT 1"

# Compare JSON values on both sides so strings, numbers and objects all
# match the way they were written. Non-JSON metadata never matches.
_METADATA_PREDICATE = (
    "(CASE WHEN json_valid(CAST(metadata AS TEXT)) "
    "THEN json_extract(CAST(metadata AS TEXT), '$.{key}') END) = json_extract(?, '$')"
)


def build_get_query(thread_id: str, checkpoint_ns: str, checkpoint_id: str | None) -> tuple[str, list[Any]]:
    """Point lookup: exact id, or the thread's latest checkpoint when id is None."""
    if checkpoint_id:
        return _GET_BY_ID, [TASKS, thread_id, checkpoint_ns, checkpoint_id]
    return _GET_LATEST, [TASKS, thread_id, checkpoint_ns]


def sanitize_filter(filter: dict[str, Any] | None) -> dict[str, Any]:
    """Keep only whitelisted metadata keys with a value."""
    if not filter:
        return {}
    return {key: value for key, value in filter.items() if key in METADATA_FILTER_KEYS and value is not None}


def build_list_query(
    *,
    thread_id: str | None = None,
    checkpoint_ns: str | None = None,
    before: str | None = None,
    limit: int | str | None = None,
    filter: dict[str, Any] | None = None,
) -> tuple[str, list[Any]]:
    """Listing query, newest first.

    Only predicates with an input are added. ``limit`` is coerced with
    ``int()`` and inlined; every other value is a bound parameter.
    """
    conditions: list[str] = []
    params: list[Any] = [TASKS]

    if thread_id:
        conditions.append("thread_id = ?")
        params.append(thread_id)
    if checkpoint_ns is not None:
        conditions.append("checkpoint_ns = ?")
        params.append(checkpoint_ns)
    if before is not None:
        conditions.append("checkpoint_id < ?")
        params.append(before)

    for key, value in sanitize_filter(filter).items():
        # key is whitelisted, so interpolating it into the JSON path is safe
        conditions.append(_METADATA_PREDICATE.format(key=key))
        params.append(json.dumps(value, separators=(",", ":")))

    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    sql = f"{_SELECT}{where} ORDER BY checkpoint_id DESC"
    if limit:
        sql += f" LIMIT {int(limit)}"
    return sql, params


# created_at is set explicitly: tables upgraded from older deployments have no column default
UPSERT_CHECKPOINT = normalize_sql(f"""
INSERT OR REPLACE INTO checkpoints
    (thread_id, checkpoint_ns, checkpoint_id, parent_checkpoint_id, type, checkpoint, metadata, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, {NOW_EPOCH})
""")

UPSERT_WRITE = normalize_sql(f"""
INSERT OR REPLACE INTO writes
    (thread_id, checkpoint_ns, checkpoint_id, task_id, idx, channel, type, value, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, {NOW_EPOCH})
""")

DELETE_THREAD_CHECKPOINTS = "DELETE FROM checkpoints WHERE thread_id = ?"
DELETE_THREAD_WRITES = "DELETE FROM writes WHERE thread_id = ?"

DELETE_OLD_CHECKPOINTS = "DELETE FROM checkpoints WHERE created_at < ?"
DELETE_OLD_WRITES = "DELETE FROM writes WHERE created_at < ?"
