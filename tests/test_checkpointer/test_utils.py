"""Tests for SQL and payload helpers."""

import base64

import pytest

from threadsave import UnsupportedPayloadError
from threadsave._utils import from_hex, normalize_sql, to_bytes


class TestNormalizeSql:
    def test_collapses_whitespace(self):
        assert normalize_sql("""
            SELECT a,
                   b
            FROM   t
        """) == "SELECT a, b FROM t"

    def test_already_normal(self):
        assert normalize_sql("SELECT 1") == "SELECT 1"


class TestToBytes:
    def test_bytes(self):
        assert to_bytes(b"abc") == b"abc"

    def test_bytearray_and_memoryview(self):
        assert to_bytes(bytearray(b"abc")) == b"abc"
        assert to_bytes(memoryview(b"abc")) == b"abc"

    def test_list_of_byte_values(self):
        assert to_bytes([0, 127, 255]) == b"\x00\x7f\xff"

    def test_list_out_of_range(self):
        with pytest.raises(UnsupportedPayloadError, match="list"):
            to_bytes([0, 256])

    def test_list_of_bools_rejected(self):
        with pytest.raises(UnsupportedPayloadError):
            to_bytes([True, False])

    def test_base64_text(self):
        assert to_bytes(base64.b64encode(b"\x00payload").decode()) == b"\x00payload"

    def test_invalid_base64_text(self):
        with pytest.raises(UnsupportedPayloadError, match="str"):
            to_bytes("not base64!")

    @pytest.mark.parametrize("value", [None, 3.5, {"a": 1}])
    def test_unsupported_shapes(self, value):
        with pytest.raises(UnsupportedPayloadError):
            to_bytes(value)

    def test_unsupported_is_type_error(self):
        with pytest.raises(TypeError):
            to_bytes(object())


class TestFromHex:
    def test_decodes(self):
        assert from_hex("00ff") == b"\x00\xff"

    def test_null_is_empty(self):
        assert from_hex(None) == b""

    def test_invalid(self):
        with pytest.raises(UnsupportedPayloadError):
            from_hex("xyz")

    def test_non_string(self):
        with pytest.raises(UnsupportedPayloadError):
            from_hex(12)
