"""Tests for payload serializers."""

import pytest

from threadsave import JsonSerializer, PickleSerializer, SerializationError, Serializer


class TestJsonSerializer:
    def test_roundtrip_dict(self):
        s = JsonSerializer()
        data = {"key": "value", "nested": [1, 2, 3]}
        assert s.deserialize(s.serialize(data)) == data

    def test_roundtrip_none(self):
        s = JsonSerializer()
        assert s.deserialize(s.serialize(None)) is None

    def test_empty_bytes_is_none(self):
        assert JsonSerializer().deserialize(b"") is None

    def test_non_serializable_raises_by_default(self):
        """Non-JSON types raise TypeError by default (strict mode)."""
        s = JsonSerializer()
        from datetime import datetime, timezone

        data = {"ts": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        with pytest.raises(TypeError):
            s.serialize(data)

    def test_lossy_mode_uses_str(self):
        """With lossy=True, non-JSON types fall back to str()."""
        s = JsonSerializer(lossy=True)
        from datetime import datetime, timezone

        data = {"ts": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        result = s.deserialize(s.serialize(data))
        assert isinstance(result["ts"], str)


class TestTypedApi:
    def test_dumps_typed_tags_payload(self):
        tag, data = JsonSerializer().dumps_typed({"a": 1})
        assert tag == "json"
        assert data == b'{"a": 1}'

    def test_loads_typed_roundtrip(self):
        s = JsonSerializer()
        assert s.loads_typed(*s.dumps_typed([1, "two"])) == [1, "two"]

    def test_loads_typed_accepts_text(self):
        assert JsonSerializer().loads_typed("json", '{"a": 1}') == {"a": 1}

    def test_loads_typed_wrong_tag(self):
        with pytest.raises(SerializationError, match="'pickle'"):
            JsonSerializer().loads_typed("pickle", b"\x80")

    def test_pickle_reads_json_tag(self):
        s = PickleSerializer(allow_pickle=True)
        assert s.loads_typed("json", b'{"a": [1, 2]}') == {"a": [1, 2]}
        assert s.loads_typed(*s.dumps_typed({1, 2})) == {1, 2}

    def test_unknown_tag(self):
        with pytest.raises(SerializationError, match="'msgpack'"):
            PickleSerializer(allow_pickle=True).loads_typed("msgpack", b"\x81")

    def test_custom_serializer(self):
        class Upper(Serializer):
            type_tag = "upper"

            def serialize(self, value):
                return value.upper().encode()

            def deserialize(self, data):
                return data.decode().lower()

        s = Upper()
        assert s.dumps_typed("abc") == ("upper", b"ABC")
        assert s.loads_typed("upper", b"ABC") == "abc"
        assert s.loads_typed("json", b'"ABC"') == "ABC"


class TestPickleSerializer:
    def test_requires_explicit_opt_in(self):
        with pytest.raises(ValueError, match="allow_pickle=True"):
            PickleSerializer()

    def test_roundtrip(self):
        s = PickleSerializer(allow_pickle=True)
        data = {"key": [1, 2, 3], "set": {4, 5}}
        result = s.deserialize(s.serialize(data))
        assert result == data

    def test_typed_roundtrip(self):
        s = PickleSerializer(allow_pickle=True)
        tag, data = s.dumps_typed(b"\x00\xff")
        assert tag == "pickle"
        assert s.loads_typed(tag, data) == b"\x00\xff"
