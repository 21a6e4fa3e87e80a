"""Tests for read-query construction."""

import pytest

from threadsave import TASKS
from threadsave._queries import build_get_query, build_list_query, sanitize_filter


class TestGetQuery:
    def test_exact_id(self):
        sql, params = build_get_query("t1", "", "cp-1")
        assert sql.endswith("WHERE thread_id = ? AND checkpoint_ns = ? AND checkpoint_id = ?")
        assert params == [TASKS, "t1", "", "cp-1"]

    def test_latest(self):
        sql, params = build_get_query("t1", "ns", None)
        assert sql.endswith("ORDER BY checkpoint_id DESC LIMIT 1")
        assert params == [TASKS, "t1", "ns"]

    def test_projection_has_correlated_aggregates(self):
        sql, _ = build_get_query("t1", "", None)
        assert "AS pending_writes" in sql
        assert "AS pending_sends" in sql
        assert "ps.checkpoint_id = checkpoints.parent_checkpoint_id" in sql
        assert "pw.checkpoint_id = checkpoints.checkpoint_id" in sql

    def test_tasks_channel_is_bound(self):
        sql, _ = build_get_query("t1", "", None)
        assert TASKS not in sql
        assert "ps.channel = ?" in sql

    def test_single_line(self):
        sql, _ = build_get_query("t1", "", "cp-1")
        assert "\n" not in sql


class TestSanitizeFilter:
    def test_none(self):
        assert sanitize_filter(None) == {}

    def test_keeps_known_keys(self):
        assert sanitize_filter({"source": "loop", "step": 1, "parents": {}}) == {"source": "loop", "step": 1, "parents": {}}

    def test_drops_unknown_keys(self):
        assert sanitize_filter({"source": "loop", "writes": {}, "other": 1}) == {"source": "loop"}

    def test_drops_none_values(self):
        assert sanitize_filter({"source": None, "step": 0}) == {"step": 0}


class TestListQuery:
    def test_no_inputs(self):
        sql, params = build_list_query()
        assert "WHERE" not in sql.split("FROM checkpoints")[-1]
        assert sql.endswith("ORDER BY checkpoint_id DESC")
        assert params == [TASKS]

    def test_all_inputs(self):
        sql, params = build_list_query(thread_id="t1", checkpoint_ns="", before="cp-9", limit=5, filter={"source": "update"})
        tail = sql.split("FROM checkpoints")[-1]
        assert "thread_id = ? AND checkpoint_ns = ? AND checkpoint_id < ?" in tail
        assert "json_extract(CAST(metadata AS TEXT), '$.source')" in tail
        assert tail.endswith("ORDER BY checkpoint_id DESC LIMIT 5")
        assert params == [TASKS, "t1", "", "cp-9", '"update"']

    def test_empty_namespace_is_a_predicate(self):
        """"" is the root namespace, None means any namespace."""
        sql, params = build_list_query(thread_id="t1", checkpoint_ns="")
        assert "checkpoint_ns = ?" in sql
        sql, params = build_list_query(thread_id="t1", checkpoint_ns=None)
        assert "checkpoint_ns = ?" not in sql

    def test_filter_params_are_compact_json(self):
        _, params = build_list_query(filter={"step": -1, "parents": {"": "cp-1"}})
        assert params[1:] == ["-1", '{"":"cp-1"}']

    def test_filter_values_never_in_sql(self):
        sql, params = build_list_query(filter={"source": "x' OR 1=1 --"})
        assert "OR 1=1" not in sql
        assert params[-1] == "\"x' OR 1=1 --\""

    def test_unknown_keys_never_in_sql(self):
        sql, params = build_list_query(filter={"source') OR 1=1 --": "x"})
        assert "OR 1=1" not in sql
        assert params == [TASKS]

    @pytest.mark.parametrize("limit", [None, 0])
    def test_no_limit(self, limit):
        sql, _ = build_list_query(limit=limit)
        assert "LIMIT" not in sql

    def test_limit_is_coerced(self):
        sql, params = build_list_query(limit="3")
        assert sql.endswith("LIMIT 3")
        assert "3" not in params

    def test_bad_limit_raises(self):
        with pytest.raises(ValueError):
            build_list_query(limit="3; DROP TABLE checkpoints")
