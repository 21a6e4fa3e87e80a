"""Shared fixtures and builders for saver tests."""

import pytest

from threadsave import CheckpointConfig, SqliteSaver


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "checkpoints.db")


@pytest.fixture
async def saver(db_path):
    """Create a fresh SqliteSaver for each test."""
    s = SqliteSaver(db_path)
    await s.initialize()
    yield s
    await s.close()


def make_checkpoint(checkpoint_id, *, ts="2024-04-19T17:19:07.952Z", value="someValue1", version=1):
    """Helper to create a Checkpoint with defaults."""
    return {
        "v": 1,
        "id": checkpoint_id,
        "ts": ts,
        "channel_values": {"someKey1": value},
        "channel_versions": {"someKey2": version},
        "versions_seen": {"someKey3": {"someKey4": version}},
    }


def make_metadata(source="update", step=-1, parents=None):
    return {"source": source, "step": step, "parents": parents or {}}


def thread(thread_id="1", checkpoint_ns="", checkpoint_id=None):
    return CheckpointConfig(thread_id=thread_id, checkpoint_ns=checkpoint_ns, checkpoint_id=checkpoint_id)
