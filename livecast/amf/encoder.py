"""AMF0 and AMF3 encoding."""

from __future__ import annotations

import datetime
import struct
from collections.abc import Mapping, Sequence
from typing import Any, BinaryIO

from livecast.amf.core import (
    AMF0,
    AMF0_ACMPLUS_OBJECT_MARKER,
    AMF0_BOOLEAN_FALSE,
    AMF0_BOOLEAN_MARKER,
    AMF0_BOOLEAN_TRUE,
    AMF0_ECMA_ARRAY_MARKER,
    AMF0_LONG_STRING_MARKER,
    AMF0_NULL_MARKER,
    AMF0_NUMBER_MARKER,
    AMF0_OBJECT_END_MARKER,
    AMF0_OBJECT_MARKER,
    AMF0_STRICT_ARRAY_MARKER,
    AMF0_STRING_MARKER,
    AMF0_STRING_MAX,
    AMF0_UNDEFINED_MARKER,
    AMF0_UNSUPPORTED_MARKER,
    AMF3,
    AMF3_ARRAY_MARKER,
    AMF3_BYTEARRAY_MARKER,
    AMF3_DATE_MARKER,
    AMF3_DOUBLE_MARKER,
    AMF3_FALSE_MARKER,
    AMF3_INTEGER_MARKER,
    AMF3_INTEGER_MAX,
    AMF3_NULL_MARKER,
    AMF3_OBJECT_MARKER,
    AMF3_STRING_MARKER,
    AMF3_TRUE_MARKER,
    AMF3_UNDEFINED_MARKER,
    AmfError,
    Trait,
    TypedObject,
    write_marker,
)

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def _write(stream: BinaryIO, data: bytes) -> int:
    stream.write(data)
    return len(data)


def _marker(stream: BinaryIO, encode_marker: bool, marker: int) -> int:
    if encode_marker:
        write_marker(stream, marker)
        return 1
    return 0


def _as_object(value: Mapping, version: str) -> dict[str, Any]:
    if not all(isinstance(key, str) for key in value):
        raise AmfError(f"encode {version}: unable to create object from map")
    return dict(value)


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple, bytes, bytearray)) or (
        isinstance(value, Sequence) and not isinstance(value, str)
    )


class Encoder:
    """Stateless AMF encoder; every method returns the number of bytes written."""

    def encode(self, stream: BinaryIO, value: Any, version: int) -> int:
        """Encode ``value`` in the given AMF version."""
        if version == AMF0:
            return self.encode_amf0(stream, value)
        if version == AMF3:
            return self.encode_amf3(stream, value)
        raise AmfError(f"encode amf: unsupported version {version}")

    def encode_batch(self, stream: BinaryIO, version: int, *args: Any) -> int:
        """Encode each argument in turn."""
        return sum(self.encode(stream, value, version) for value in args)

    # AMF0

    def encode_amf0(self, stream: BinaryIO, value: Any) -> int:
        """Encode a Python value, choosing the AMF0 type from its kind."""
        if value is None:
            return self.encode_amf0_null(stream, True)
        if isinstance(value, str):
            if len(value.encode("utf-8")) <= AMF0_STRING_MAX:
                return self.encode_amf0_string(stream, value, True)
            return self.encode_amf0_long_string(stream, value, True)
        if isinstance(value, bool):
            return self.encode_amf0_boolean(stream, value, True)
        if isinstance(value, (int, float)):
            return self.encode_amf0_number(stream, float(value), True)
        if isinstance(value, TypedObject):
            raise AmfError("encode amf0: unsupported type typed object")
        if isinstance(value, Mapping):
            return self.encode_amf0_object(stream, _as_object(value, "amf0"), True)
        if _is_array(value):
            return self.encode_amf0_strict_array(stream, list(value), True)
        raise AmfError(f"encode amf0: unsupported type {type(value).__name__}")

    def encode_amf0_number(self, stream: BinaryIO, value: float, encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF0_NUMBER_MARKER)
        return n + _write(stream, struct.pack(">d", value))

    def encode_amf0_boolean(self, stream: BinaryIO, value: bool, encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF0_BOOLEAN_MARKER)
        flag = AMF0_BOOLEAN_TRUE if value else AMF0_BOOLEAN_FALSE
        return n + _write(stream, bytes((flag,)))

    def encode_amf0_string(self, stream: BinaryIO, value: str, encode_marker: bool) -> int:
        raw = value.encode("utf-8")
        if len(raw) > AMF0_STRING_MAX:
            raise AmfError(f"encode amf0: string of {len(raw)} bytes is too long")
        n = _marker(stream, encode_marker, AMF0_STRING_MARKER)
        n += _write(stream, struct.pack(">H", len(raw)))
        return n + _write(stream, raw)

    def encode_amf0_object(self, stream: BinaryIO, value: Mapping[str, Any], encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF0_OBJECT_MARKER)
        for key, item in value.items():
            try:
                n += self.encode_amf0_string(stream, key, False)
            except AmfError as exc:
                raise AmfError(f"encode amf0: unable to encode object key: {exc}") from exc
            try:
                n += self.encode_amf0(stream, item)
            except AmfError as exc:
                raise AmfError(f"encode amf0: unable to encode object value: {exc}") from exc
        n += self.encode_amf0_string(stream, "", False)
        write_marker(stream, AMF0_OBJECT_END_MARKER)
        return n + 1

    def encode_amf0_null(self, stream: BinaryIO, encode_marker: bool) -> int:
        return _marker(stream, encode_marker, AMF0_NULL_MARKER)

    def encode_amf0_undefined(self, stream: BinaryIO, encode_marker: bool) -> int:
        return _marker(stream, encode_marker, AMF0_UNDEFINED_MARKER)

    def encode_amf0_ecma_array(self, stream: BinaryIO, value: Mapping[str, Any], encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF0_ECMA_ARRAY_MARKER)
        n += _write(stream, struct.pack(">I", len(value)))
        try:
            return n + self.encode_amf0_object(stream, value, False)
        except AmfError as exc:
            raise AmfError(f"encode amf0: unable to encode ecma array object: {exc}") from exc

    def encode_amf0_strict_array(self, stream: BinaryIO, value: Sequence[Any], encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF0_STRICT_ARRAY_MARKER)
        n += _write(stream, struct.pack(">I", len(value)))
        for item in value:
            try:
                n += self.encode_amf0(stream, item)
            except AmfError as exc:
                raise AmfError(f"encode amf0: unable to encode strict array element: {exc}") from exc
        return n

    def encode_amf0_long_string(self, stream: BinaryIO, value: str, encode_marker: bool) -> int:
        raw = value.encode("utf-8")
        n = _marker(stream, encode_marker, AMF0_LONG_STRING_MARKER)
        n += _write(stream, struct.pack(">I", len(raw)))
        return n + _write(stream, raw)

    def encode_amf0_unsupported(self, stream: BinaryIO, encode_marker: bool) -> int:
        return _marker(stream, encode_marker, AMF0_UNSUPPORTED_MARKER)

    def encode_amf0_amf3_marker(self, stream: BinaryIO) -> int:
        """Write the marker that switches an AMF0 stream to AMF3."""
        write_marker(stream, AMF0_ACMPLUS_OBJECT_MARKER)
        return 1

    # AMF3

    def encode_amf3(self, stream: BinaryIO, value: Any) -> int:
        """Encode a Python value, choosing the AMF3 type from its kind."""
        if value is None:
            return self.encode_amf3_null(stream, True)
        if isinstance(value, str):
            return self.encode_amf3_string(stream, value, True)
        if isinstance(value, bool):
            if value:
                return self.encode_amf3_true(stream, True)
            return self.encode_amf3_false(stream, True)
        if isinstance(value, int):
            if 0 <= value <= AMF3_INTEGER_MAX:
                return self.encode_amf3_integer(stream, value, True)
            return self.encode_amf3_double(stream, float(value), True)
        if isinstance(value, float):
            return self.encode_amf3_double(stream, value, True)
        if isinstance(value, datetime.datetime):
            return self.encode_amf3_date(stream, value, True)
        if isinstance(value, TypedObject):
            return self.encode_amf3_object(stream, value, True)
        if isinstance(value, Mapping):
            typed = TypedObject(object=_as_object(value, "amf3"))
            return self.encode_amf3_object(stream, typed, True)
        if _is_array(value):
            return self.encode_amf3_array(stream, list(value), True)
        raise AmfError(f"encode amf3: unsupported type {type(value).__name__}")

    def encode_amf3_undefined(self, stream: BinaryIO, encode_marker: bool) -> int:
        return _marker(stream, encode_marker, AMF3_UNDEFINED_MARKER)

    def encode_amf3_null(self, stream: BinaryIO, encode_marker: bool) -> int:
        return _marker(stream, encode_marker, AMF3_NULL_MARKER)

    def encode_amf3_false(self, stream: BinaryIO, encode_marker: bool) -> int:
        return _marker(stream, encode_marker, AMF3_FALSE_MARKER)

    def encode_amf3_true(self, stream: BinaryIO, encode_marker: bool) -> int:
        return _marker(stream, encode_marker, AMF3_TRUE_MARKER)

    def encode_amf3_integer(self, stream: BinaryIO, value: int, encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF3_INTEGER_MARKER)
        return n + self._encode_u29(stream, value)

    def encode_amf3_double(self, stream: BinaryIO, value: float, encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF3_DOUBLE_MARKER)
        return n + _write(stream, struct.pack(">d", value))

    def encode_amf3_string(self, stream: BinaryIO, value: str, encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF3_STRING_MARKER)
        return n + self._encode_utf8(stream, value)

    def encode_amf3_date(self, stream: BinaryIO, value: datetime.datetime, encode_marker: bool) -> int:
        """Encode a date at whole-second precision; naive values are taken as UTC."""
        n = _marker(stream, encode_marker, AMF3_DATE_MARKER)
        write_marker(stream, 0x01)
        n += 1
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        seconds = (value - _EPOCH) // datetime.timedelta(seconds=1)
        return n + _write(stream, struct.pack(">d", float(seconds) * 1000.0))

    def encode_amf3_array(self, stream: BinaryIO, value: Sequence[Any], encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF3_ARRAY_MARKER)
        try:
            n += self._encode_u29(stream, (len(value) << 1) | 0x01)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode u29 for array: {exc}") from exc
        n += self._encode_utf8(stream, "")
        for item in value:
            try:
                n += self.encode_amf3(stream, item)
            except AmfError as exc:
                raise AmfError(f"amf3 encode: cannot encode array element: {exc}") from exc
        return n

    def encode_amf3_object(self, stream: BinaryIO, value: TypedObject, encode_marker: bool) -> int:
        """Encode a sealed object whose properties are written in sorted order."""
        n = _marker(stream, encode_marker, AMF3_OBJECT_MARKER)
        trait = Trait(type=value.type, properties=sorted(value.object))
        u29 = 0x03 | (len(trait.properties) << 4)
        try:
            n += self._encode_u29(stream, u29)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode trait header for object: {exc}") from exc
        n += self._encode_utf8(stream, trait.type)
        for prop in trait.properties:
            n += self._encode_utf8(stream, prop)
        for prop in trait.properties:
            try:
                n += self.encode_amf3(stream, value.object[prop])
            except AmfError as exc:
                raise AmfError(f"amf3 encode: cannot encode sealed object value: {exc}") from exc
        return n

    def encode_amf3_byte_array(self, stream: BinaryIO, value: bytes, encode_marker: bool) -> int:
        n = _marker(stream, encode_marker, AMF3_BYTEARRAY_MARKER)
        try:
            n += self._encode_u29(stream, (len(value) << 1) | 1)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode u29 for bytearray: {exc}") from exc
        return n + _write(stream, bytes(value))

    def _encode_utf8(self, stream: BinaryIO, value: str) -> int:
        raw = value.encode("utf-8")
        try:
            n = self._encode_u29(stream, (len(raw) << 1) | 0x01)
        except AmfError as exc:
            raise AmfError(f"amf3 encode: cannot encode u29 for string: {exc}") from exc
        return n + _write(stream, raw)

    def _encode_u29(self, stream: BinaryIO, value: int) -> int:
        if value < 0 or value > 0x1FFFFFFF:
            raise AmfError(f"amf3 encode: cannot encode u29 with value {value} (out of range)")
        if value <= 0x7F:
            data = bytes((value,))
        elif value <= 0x3FFF:
            data = bytes(((value >> 7) | 0x80, value & 0x7F))
        elif value <= 0x1FFFFF:
            data = bytes(((value >> 14) | 0x80, ((value >> 7) & 0x7F) | 0x80, value & 0x7F))
        else:
            data = bytes(
                (
                    (value >> 22) | 0x80,
                    ((value >> 15) & 0x7F) | 0x80,
                    ((value >> 8) & 0x7F) | 0x80,
                    value & 0xFF,
                )
            )
        return _write(stream, data)