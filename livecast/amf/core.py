"""AMF markers, shared value types and low-level stream helpers."""

from __future__ import annotations

import dataclasses
import datetime
import json
from dataclasses import dataclass, field
from typing import Any, BinaryIO

AMF0 = 0x00
AMF3 = 0x03

AMF0_NUMBER_MARKER = 0x00
AMF0_BOOLEAN_MARKER = 0x01
AMF0_STRING_MARKER = 0x02
AMF0_OBJECT_MARKER = 0x03
AMF0_MOVIECLIP_MARKER = 0x04
AMF0_NULL_MARKER = 0x05
AMF0_UNDEFINED_MARKER = 0x06
AMF0_REFERENCE_MARKER = 0x07
AMF0_ECMA_ARRAY_MARKER = 0x08
AMF0_OBJECT_END_MARKER = 0x09
AMF0_STRICT_ARRAY_MARKER = 0x0A
AMF0_DATE_MARKER = 0x0B
AMF0_LONG_STRING_MARKER = 0x0C
AMF0_UNSUPPORTED_MARKER = 0x0D
AMF0_RECORDSET_MARKER = 0x0E
AMF0_XML_DOCUMENT_MARKER = 0x0F
AMF0_TYPED_OBJECT_MARKER = 0x10
AMF0_ACMPLUS_OBJECT_MARKER = 0x11

AMF0_BOOLEAN_FALSE = 0x00
AMF0_BOOLEAN_TRUE = 0x01
AMF0_STRING_MAX = 65535
AMF3_INTEGER_MAX = 536870911

AMF3_UNDEFINED_MARKER = 0x00
AMF3_NULL_MARKER = 0x01
AMF3_FALSE_MARKER = 0x02
AMF3_TRUE_MARKER = 0x03
AMF3_INTEGER_MARKER = 0x04
AMF3_DOUBLE_MARKER = 0x05
AMF3_STRING_MARKER = 0x06
AMF3_XMLDOC_MARKER = 0x07
AMF3_DATE_MARKER = 0x08
AMF3_ARRAY_MARKER = 0x09
AMF3_OBJECT_MARKER = 0x0A
AMF3_XMLSTRING_MARKER = 0x0B
AMF3_BYTEARRAY_MARKER = 0x0C


class AmfError(Exception):
    """Raised when AMF data cannot be encoded or decoded."""


@dataclass
class TypedObject:
    """An object carrying a class name alongside its properties."""

    type: str = ""
    object: dict[str, Any] = field(default_factory=dict)


@dataclass
class Trait:
    """AMF3 class description: name, flags and sealed property names."""

    type: str = ""
    externalizable: bool = False
    dynamic: bool = False
    properties: list[str] = field(default_factory=list)


def read_bytes(stream: BinaryIO, n: int) -> bytes:
    """Read exactly ``n`` bytes or raise AmfError."""
    data = stream.read(n) or b""
    if len(data) != n:
        raise AmfError(f"decode read bytes failed: expected {n} got {len(data)}")
    return data


def read_byte(stream: BinaryIO) -> int:
    return read_bytes(stream, 1)[0]


def read_marker(stream: BinaryIO) -> int:
    return read_byte(stream)


def write_marker(stream: BinaryIO, marker: int) -> None:
    stream.write(bytes((marker,)))


def assert_marker(stream: BinaryIO, check_marker: bool, marker: int) -> None:
    """When ``check_marker`` is set, read one byte and require it to be ``marker``."""
    if not check_marker:
        return
    got = read_marker(stream)
    if got != marker:
        raise AmfError(f"decode assert marker failed: expected {marker} got {got}")


def dump_bytes(label: str, data: bytes, size: int) -> None:
    """Print the first ``size`` bytes of ``data`` in hex."""
    if size > len(data):
        raise ValueError(f"size {size} exceeds data length {len(data)}")
    print(f"Dumping {label} ({size} bytes):")
    print("".join(f"0x{b:02x} " for b in data[:size]))


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    raise TypeError(f"cannot serialise {type(value).__name__}")


def dump(label: str, value: Any) -> None:
    """Print ``value`` as indented JSON."""
    try:
        text = json.dumps(value, indent=2, default=_json_default)
    except (TypeError, ValueError) as exc:
        raise AmfError(f"Error dumping {label}: {exc}") from exc
    print(f"Dumping {label}:\n{text}")