"""Serializers for checkpoint, metadata and write payloads.

Every payload is stored as ``(type_tag, bytes)``. The saver threads the tag
through unchanged; only the serializer interprets the bytes.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from threadsave.exceptions import SerializationError


class Serializer(ABC):
    """Base class for payload serialization.

    Subclasses set ``type_tag`` and implement ``serialize``/``deserialize``.
    Savers call the typed wrappers so the tag is stored next to the bytes.
    """

    type_tag: str

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Convert value to bytes for storage."""
        ...

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Convert bytes back to value."""
        ...

    def dumps_typed(self, value: Any) -> tuple[str, bytes]:
        return self.type_tag, self.serialize(value)

    def loads_typed(self, type_tag: str, data: bytes | str) -> Any:
        """Decode with the decoder the tag names.

        Every serializer reads its own tag and ``"json"``. Other tags raise
        SerializationError; pickle payloads are only read by a serializer
        that opted into pickle.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        if type_tag == self.type_tag:
            return self.deserialize(data)
        if type_tag == JsonSerializer.type_tag:
            return _JSON.deserialize(data)
        raise SerializationError(f"{type(self).__name__} cannot decode payloads tagged {type_tag!r} (expected {self.type_tag!r})")


class JsonSerializer(Serializer):
    """JSON serializer (default). Safe, human-readable, filterable in SQL.

    By default, raises TypeError on non-JSON-serializable types.
    Pass ``lossy=True`` to fall back to ``str()`` for unsupported types.
    """

    type_tag = "json"

    def __init__(self, *, lossy: bool = False):
        self._default = str if lossy else None

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value, default=self._default).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        if not data:
            return None
        return json.loads(data.decode("utf-8"))


class PickleSerializer(Serializer):
    """Pickle serializer for complex Python objects.

    WARNING: Pickle can execute arbitrary code on deserialization.
    Requires explicit ``allow_pickle=True`` to construct. Metadata filters
    in ``list`` only match JSON-encoded metadata.
    """

    type_tag = "pickle"

    def __init__(self, *, allow_pickle: bool = False):
        if not allow_pickle:
            raise ValueError(
                "PickleSerializer requires explicit allow_pickle=True. "
                "Pickle can execute arbitrary code on deserialization. "
                "Only use with trusted data sources."
            )

    def serialize(self, value: Any) -> bytes:
        import pickle

        return pickle.dumps(value)

    def deserialize(self, data: bytes) -> Any:
        import pickle

        return pickle.loads(data)  # noqa: S301


_JSON = JsonSerializer()
