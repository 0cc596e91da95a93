"""AMF0 decoding, with AMF3 values reachable through the AMF0 switch marker."""

from __future__ import annotations

import struct
from typing import Any, BinaryIO

from livecast.amf.core import (
    AMF0,
    AMF0_ACMPLUS_OBJECT_MARKER,
    AMF0_BOOLEAN_FALSE,
    AMF0_BOOLEAN_MARKER,
    AMF0_BOOLEAN_TRUE,
    AMF0_DATE_MARKER,
    AMF0_ECMA_ARRAY_MARKER,
    AMF0_LONG_STRING_MARKER,
    AMF0_MOVIECLIP_MARKER,
    AMF0_NULL_MARKER,
    AMF0_NUMBER_MARKER,
    AMF0_OBJECT_END_MARKER,
    AMF0_OBJECT_MARKER,
    AMF0_RECORDSET_MARKER,
    AMF0_REFERENCE_MARKER,
    AMF0_STRICT_ARRAY_MARKER,
    AMF0_STRING_MARKER,
    AMF0_TYPED_OBJECT_MARKER,
    AMF0_UNDEFINED_MARKER,
    AMF0_UNSUPPORTED_MARKER,
    AMF0_XML_DOCUMENT_MARKER,
    AMF3,
    AmfError,
    TypedObject,
    assert_marker,
    read_byte,
    read_bytes,
    read_marker,
)
from livecast.amf.decoder3 import Amf3Decoder

_UNSUPPORTED_TYPES = {
    AMF0_MOVIECLIP_MARKER: "movieclip",
    AMF0_REFERENCE_MARKER: "reference",
    AMF0_RECORDSET_MARKER: "recordset",
}


def _read_uint(stream: BinaryIO, size: int, fmt: str) -> int:
    return struct.unpack(fmt, read_bytes(stream, size))[0]


class Decoder(Amf3Decoder):
    """Stateful AMF decoder handling both AMF0 and AMF3."""

    def __init__(self) -> None:
        super().__init__()
        self.ref_cache: list[Any] = []

    def decode(self, stream: BinaryIO, version: int) -> Any:
        """Decode one value in the given AMF version."""
        if version == AMF0:
            return self.decode_amf0(stream)
        if version == AMF3:
            return self.decode_amf3(stream)
        raise AmfError(f"decode amf: unsupported version {version}")

    def decode_batch(self, stream: BinaryIO, version: int) -> list[Any]:
        """Decode values until one can no longer be read; return those read."""
        if version not in (AMF0, AMF3):
            raise AmfError(f"decode amf: unsupported version {version}")
        values: list[Any] = []
        while True:
            try:
                values.append(self.decode(stream, version))
            except AmfError:
                return values

    def decode_amf0(self, stream: BinaryIO) -> Any:
        """Read a marker and decode the AMF0 value it introduces."""
        marker = read_marker(stream)
        if marker in _UNSUPPORTED_TYPES:
            raise AmfError(f"decode amf0: unsupported type {_UNSUPPORTED_TYPES[marker]}")
        if marker == AMF0_ACMPLUS_OBJECT_MARKER:
            return self.decode_amf3(stream)
        handlers = {
            AMF0_NUMBER_MARKER: self.decode_amf0_number,
            AMF0_BOOLEAN_MARKER: self.decode_amf0_boolean,
            AMF0_STRING_MARKER: self.decode_amf0_string,
            AMF0_OBJECT_MARKER: self.decode_amf0_object,
            AMF0_NULL_MARKER: self.decode_amf0_null,
            AMF0_UNDEFINED_MARKER: self.decode_amf0_undefined,
            AMF0_ECMA_ARRAY_MARKER: self.decode_amf0_ecma_array,
            AMF0_STRICT_ARRAY_MARKER: self.decode_amf0_strict_array,
            AMF0_DATE_MARKER: self.decode_amf0_date,
            AMF0_LONG_STRING_MARKER: self.decode_amf0_long_string,
            AMF0_UNSUPPORTED_MARKER: self.decode_amf0_unsupported,
            AMF0_XML_DOCUMENT_MARKER: self.decode_amf0_xml_document,
            AMF0_TYPED_OBJECT_MARKER: self.decode_amf0_typed_object,
        }
        handler = handlers.get(marker)
        if handler is None:
            raise AmfError(f"decode amf0: unsupported type {marker}")
        return handler(stream, False)

    def decode_amf0_number(self, stream: BinaryIO, decode_marker: bool) -> float:
        """Decode an 8-byte big-endian double."""
        assert_marker(stream, decode_marker, AMF0_NUMBER_MARKER)
        try:
            return struct.unpack(">d", read_bytes(stream, 8))[0]
        except AmfError as exc:
            raise AmfError(f"amf0 decode: unable to read number: {exc}") from exc

    def decode_amf0_boolean(self, stream: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(stream, decode_marker, AMF0_BOOLEAN_MARKER)
        value = read_byte(stream)
        if value == AMF0_BOOLEAN_FALSE:
            return False
        if value == AMF0_BOOLEAN_TRUE:
            return True
        raise AmfError(f"decode amf0: unexpected value {value} for boolean")

    def decode_amf0_string(self, stream: BinaryIO, decode_marker: bool) -> str:
        """Decode a string with a 2-byte length prefix."""
        assert_marker(stream, decode_marker, AMF0_STRING_MARKER)
        try:
            length = _read_uint(stream, 2, ">H")
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode string length: {exc}") from exc
        try:
            raw = read_bytes(stream, length)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode string value: {exc}") from exc
        return raw.decode("utf-8", errors="replace")

    def decode_amf0_object(self, stream: BinaryIO, decode_marker: bool) -> dict[str, Any]:
        """Decode key/value pairs up to an empty key and the object end marker."""
        assert_marker(stream, decode_marker, AMF0_OBJECT_MARKER)
        result: dict[str, Any] = {}
        self.ref_cache.append(result)
        while True:
            key = self.decode_amf0_string(stream, False)
            if not key:
                try:
                    assert_marker(stream, True, AMF0_OBJECT_END_MARKER)
                except AmfError as exc:
                    raise AmfError(f"decode amf0: expected object end marker: {exc}") from exc
                return result
            try:
                result[key] = self.decode_amf0(stream)
            except AmfError as exc:
                raise AmfError(f"decode amf0: unable to decode object value: {exc}") from exc

    def decode_amf0_null(self, stream: BinaryIO, decode_marker: bool) -> None:
        assert_marker(stream, decode_marker, AMF0_NULL_MARKER)
        return None

    def decode_amf0_undefined(self, stream: BinaryIO, decode_marker: bool) -> None:
        assert_marker(stream, decode_marker, AMF0_UNDEFINED_MARKER)
        return None

    def decode_amf0_ecma_array(self, stream: BinaryIO, decode_marker: bool) -> dict[str, Any]:
        """Decode an associative array; the declared length is not trusted."""
        assert_marker(stream, decode_marker, AMF0_ECMA_ARRAY_MARKER)
        try:
            read_bytes(stream, 4)
            return self.decode_amf0_object(stream, False)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode ecma array object: {exc}") from exc

    def decode_amf0_strict_array(self, stream: BinaryIO, decode_marker: bool) -> list[Any]:
        assert_marker(stream, decode_marker, AMF0_STRICT_ARRAY_MARKER)
        try:
            length = _read_uint(stream, 4, ">I")
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode strict array length: {exc}") from exc
        result: list[Any] = []
        self.ref_cache.append(result)
        for _ in range(length):
            try:
                result.append(self.decode_amf0(stream))
            except AmfError as exc:
                raise AmfError(f"decode amf0: unable to decode strict array object: {exc}") from exc
        return result

    def decode_amf0_date(self, stream: BinaryIO, decode_marker: bool) -> float:
        """Decode a date as its millisecond number, skipping the time-zone field."""
        assert_marker(stream, decode_marker, AMF0_DATE_MARKER)
        try:
            result = self.decode_amf0_number(stream, False)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode float in date: {exc}") from exc
        try:
            read_bytes(stream, 2)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to read 2 trail bytes in date: {exc}") from exc
        return result

    def decode_amf0_long_string(self, stream: BinaryIO, decode_marker: bool) -> str:
        """Decode a string with a 4-byte length prefix."""
        assert_marker(stream, decode_marker, AMF0_LONG_STRING_MARKER)
        try:
            length = _read_uint(stream, 4, ">I")
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode long string length: {exc}") from exc
        try:
            raw = read_bytes(stream, length)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode long string value: {exc}") from exc
        return raw.decode("utf-8", errors="replace")

    def decode_amf0_unsupported(self, stream: BinaryIO, decode_marker: bool) -> None:
        assert_marker(stream, decode_marker, AMF0_UNSUPPORTED_MARKER)
        return None

    def decode_amf0_xml_document(self, stream: BinaryIO, decode_marker: bool) -> str:
        assert_marker(stream, decode_marker, AMF0_XML_DOCUMENT_MARKER)
        return self.decode_amf0_long_string(stream, False)

    def decode_amf0_typed_object(self, stream: BinaryIO, decode_marker: bool) -> TypedObject:
        """Decode a class name followed by an object body."""
        assert_marker(stream, decode_marker, AMF0_TYPED_OBJECT_MARKER)
        result = TypedObject()
        self.ref_cache.append(result)
        try:
            result.type = self.decode_amf0_string(stream, False)
        except AmfError as exc:
            raise AmfError(f"decode amf0: typed object unable to determine type: {exc}") from exc
        try:
            result.object = self.decode_amf0_object(stream, False)
        except AmfError as exc:
            raise AmfError(f"decode amf0: typed object unable to determine object: {exc}") from exc
        return result