"""AMF3 decoding, including the Flex externalizable message types."""

from __future__ import annotations

import datetime
import struct
from typing import Any, BinaryIO, Callable

from livecast.amf.core import (
    AMF3_ARRAY_MARKER,
    AMF3_BYTEARRAY_MARKER,
    AMF3_DATE_MARKER,
    AMF3_DOUBLE_MARKER,
    AMF3_FALSE_MARKER,
    AMF3_INTEGER_MARKER,
    AMF3_NULL_MARKER,
    AMF3_OBJECT_MARKER,
    AMF3_STRING_MARKER,
    AMF3_TRUE_MARKER,
    AMF3_UNDEFINED_MARKER,
    AMF3_XMLDOC_MARKER,
    AMF3_XMLSTRING_MARKER,
    AmfError,
    Trait,
    assert_marker,
    read_byte,
    read_bytes,
    read_marker,
)

ExternalHandler = Callable[["Amf3Decoder", BinaryIO], Any]

_ABSTRACT_FIELDS = (
    ("body", "clientId", "destination", "headers", "messageId", "timeStamp", "timeToLive"),
    ("clientIdBytes", "messageIdBytes"),
)
_ASYNC_FIELDS = (("correlationId", "correlationIdBytes"),)
_ARRAY_COLLECTION = "flex.messaging.io.ArrayCollection"


def _lookup(table: list, index: int, what: str) -> Any:
    if index >= len(table):
        raise AmfError(f"amf3 decode: bad {what} reference {index} (have {len(table)})")
    return table[index]


def _read_double(stream: BinaryIO) -> float:
    try:
        return struct.unpack(">d", read_bytes(stream, 8))[0]
    except AmfError as exc:
        raise AmfError(f"amf3 decode: unable to read double: {exc}") from exc


class Amf3Decoder:
    """Stateful AMF3 decoder keeping the string, object and trait reference tables."""

    def __init__(self) -> None:
        self.string_refs: list[str] = []
        self.object_refs: list[Any] = []
        self.trait_refs: list[Trait] = []
        self.external_handlers: dict[str, ExternalHandler] = {}

    def register_external_handler(self, name: str, handler: ExternalHandler) -> None:
        """Register ``handler(decoder, stream)`` for an externalizable class name."""
        self.external_handlers[name] = handler

    def decode_amf3(self, stream: BinaryIO) -> Any:
        """Read a marker and decode the value it introduces."""
        marker = read_marker(stream)
        handlers = {
            AMF3_UNDEFINED_MARKER: self.decode_amf3_undefined,
            AMF3_NULL_MARKER: self.decode_amf3_null,
            AMF3_FALSE_MARKER: self.decode_amf3_false,
            AMF3_TRUE_MARKER: self.decode_amf3_true,
            AMF3_INTEGER_MARKER: self.decode_amf3_integer,
            AMF3_DOUBLE_MARKER: self.decode_amf3_double,
            AMF3_STRING_MARKER: self.decode_amf3_string,
            AMF3_XMLDOC_MARKER: self.decode_amf3_xml,
            AMF3_DATE_MARKER: self.decode_amf3_date,
            AMF3_ARRAY_MARKER: self.decode_amf3_array,
            AMF3_OBJECT_MARKER: self.decode_amf3_object,
            AMF3_XMLSTRING_MARKER: self.decode_amf3_xml,
            AMF3_BYTEARRAY_MARKER: self.decode_amf3_byte_array,
        }
        handler = handlers.get(marker)
        if handler is None:
            raise AmfError(f"decode amf3: unsupported type {marker}")
        return handler(stream, False)

    def decode_amf3_undefined(self, stream: BinaryIO, decode_marker: bool) -> None:
        assert_marker(stream, decode_marker, AMF3_UNDEFINED_MARKER)
        return None

    def decode_amf3_null(self, stream: BinaryIO, decode_marker: bool) -> None:
        assert_marker(stream, decode_marker, AMF3_NULL_MARKER)
        return None

    def decode_amf3_false(self, stream: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(stream, decode_marker, AMF3_FALSE_MARKER)
        return False

    def decode_amf3_true(self, stream: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(stream, decode_marker, AMF3_TRUE_MARKER)
        return True

    def decode_amf3_integer(self, stream: BinaryIO, decode_marker: bool) -> int:
        """Decode a 29-bit signed integer."""
        assert_marker(stream, decode_marker, AMF3_INTEGER_MARKER)
        u29 = self.decode_u29(stream)
        if u29 > 0xFFFFFFF:
            return u29 - 0x20000000
        return u29

    def decode_amf3_double(self, stream: BinaryIO, decode_marker: bool) -> float:
        assert_marker(stream, decode_marker, AMF3_DOUBLE_MARKER)
        return _read_double(stream)

    def decode_amf3_string(self, stream: BinaryIO, decode_marker: bool) -> str:
        assert_marker(stream, decode_marker, AMF3_STRING_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(stream)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode string reference and length: {exc}") from exc
        if is_ref:
            return _lookup(self.string_refs, ref_val, "string")
        try:
            raw = read_bytes(stream, ref_val)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read string: {exc}") from exc
        result = raw.decode("utf-8", errors="replace")
        if result:
            self.string_refs.append(result)
        return result

    def decode_amf3_date(self, stream: BinaryIO, decode_marker: bool) -> datetime.datetime:
        """Decode a date; sub-second precision is discarded."""
        assert_marker(stream, decode_marker, AMF3_DATE_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(stream)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode date reference and length: {exc}") from exc
        if is_ref:
            res = _lookup(self.object_refs, ref_val, "object")
            if not isinstance(res, datetime.datetime):
                raise AmfError("amf3 decode: unable to extract time from date object references")
            return res
        millis = _read_double(stream)
        result = datetime.datetime.fromtimestamp(int(millis / 1000), tz=datetime.timezone.utc)
        self.object_refs.append(result)
        return result

    def decode_amf3_array(self, stream: BinaryIO, decode_marker: bool) -> list[Any]:
        """Decode a dense array; associative parts are rejected."""
        assert_marker(stream, decode_marker, AMF3_ARRAY_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(stream)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode array reference and length: {exc}") from exc
        if is_ref:
            res = _lookup(self.object_refs, ref_val >> 1, "object")
            if not isinstance(res, list):
                raise AmfError("amf3 decode: unable to extract array from object references")
            return res
        try:
            key = self.decode_amf3_string(stream, False)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read key for array: {exc}") from exc
        if key:
            raise AmfError("amf3 decode: array key is not empty, can't handle associative array")
        result = []
        for _ in range(ref_val):
            try:
                result.append(self.decode_amf3(stream))
            except AmfError as exc:
                raise AmfError(f"amf3 decode: array element could not be decoded: {exc}") from exc
        self.object_refs.append(result)
        return result

    def decode_amf3_object(self, stream: BinaryIO, decode_marker: bool) -> Any:
        """Decode an object: sealed, dynamic or externalizable."""
        assert_marker(stream, decode_marker, AMF3_OBJECT_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(stream)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode object reference and length: {exc}") from exc
        if is_ref:
            return _lookup(self.object_refs, ref_val >> 1, "object")

        if ref_val & 0x01 == 0:
            trait = _lookup(self.trait_refs, ref_val >> 1, "trait")
        else:
            trait = self._decode_trait(stream, ref_val)
            self.trait_refs.append(trait)

        slot = len(self.object_refs)
        self.object_refs.append(None)

        if trait.externalizable:
            result = self._decode_externalizable(stream, trait)
            self.object_refs[slot] = result
            return result

        obj: dict[str, Any] = {}
        for key in trait.properties:
            try:
                obj[key] = self.decode_amf3(stream)
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to decode object property: {exc}") from exc

        if trait.dynamic:
            while True:
                try:
                    key = self.decode_amf3_string(stream, False)
                except AmfError as exc:
                    raise AmfError(f"amf3 decode: unable to decode dynamic key: {exc}") from exc
                if not key:
                    break
                try:
                    obj[key] = self.decode_amf3(stream)
                except AmfError as exc:
                    raise AmfError(f"amf3 decode: unable to decode dynamic value: {exc}") from exc

        self.object_refs[slot] = obj
        return obj

    def _decode_trait(self, stream: BinaryIO, ref_val: int) -> Trait:
        trait = Trait(
            externalizable=(ref_val & 0x02) != 0,
            dynamic=(ref_val & 0x04) != 0,
        )
        try:
            trait.type = self.decode_amf3_string(stream, False)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read trait type for object: {exc}") from exc
        for _ in range(ref_val >> 3):
            try:
                trait.properties.append(self.decode_amf3_string(stream, False))
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to read trait property for object: {exc}") from exc
        return trait

    def _decode_externalizable(self, stream: BinaryIO, trait: Trait) -> Any:
        if trait.type == "DSA":
            try:
                return self._decode_async_message(stream)
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to decode dsa: {exc}") from exc
        if trait.type == "DSK":
            try:
                return self._decode_acknowledge_message(stream)
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to decode dsk: {exc}") from exc
        if trait.type == _ARRAY_COLLECTION:
            try:
                result = self.decode_amf3(stream)
            except AmfError as exc:
                raise AmfError(
                    f"amf3 decode: unable to decode ac: cannot decode child of array collection: {exc}"
                ) from exc
            self.object_refs.append(result)
            return result
        handler = self.external_handlers.get(trait.type)
        if handler is None:
            raise AmfError(f"amf3 decode: unable to decode external type {trait.type}, no handler")
        try:
            return handler(self, stream)
        except AmfError as exc:
            raise AmfError(
                f"amf3 decode: unable to call external decoder for type {trait.type}: {exc}"
            ) from exc

    def decode_amf3_xml(self, stream: BinaryIO, decode_marker: bool) -> str:
        """Decode an XML document or XML string."""
        if decode_marker:
            marker = read_marker(stream)
            if marker not in (AMF3_XMLDOC_MARKER, AMF3_XMLSTRING_MARKER):
                raise AmfError(
                    f"decode assert marker failed: expected {AMF3_XMLDOC_MARKER} "
                    f"or {AMF3_XMLSTRING_MARKER}, got {marker}"
                )
        try:
            is_ref, ref_val = self._decode_reference_int(stream)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode xml reference and length: {exc}") from exc
        if is_ref:
            res = _lookup(self.object_refs, ref_val, "object")
            if not isinstance(res, str):
                raise AmfError("amf3 decode: cannot coerce object reference into xml string")
            return res
        try:
            raw = read_bytes(stream, ref_val)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read xml string: {exc}") from exc
        result = raw.decode("utf-8", errors="replace")
        if result:
            self.object_refs.append(result)
        return result

    def decode_amf3_byte_array(self, stream: BinaryIO, decode_marker: bool) -> bytes:
        assert_marker(stream, decode_marker, AMF3_BYTEARRAY_MARKER)
        try:
            is_ref, ref_val = self._decode_reference_int(stream)
        except AmfError as exc:
            raise AmfError(
                f"amf3 decode: unable to decode byte array reference and length: {exc}"
            ) from exc
        if is_ref:
            res = _lookup(self.object_refs, ref_val, "object")
            if not isinstance(res, (bytes, bytearray)):
                raise AmfError("amf3 decode: unable to convert object ref to bytes")
            return bytes(res)
        try:
            result = read_bytes(stream, ref_val)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read bytearray: {exc}") from exc
        self.object_refs.append(result)
        return result

    def decode_u29(self, stream: BinaryIO) -> int:
        """Decode a variable-length 29-bit unsigned integer."""
        result = 0
        for _ in range(3):
            b = read_byte(stream)
            result = (result << 7) + (b & 0x7F)
            if b & 0x80 == 0:
                return result
        return (result << 8) + read_byte(stream)

    def _decode_reference_int(self, stream: BinaryIO) -> tuple[bool, int]:
        try:
            u29 = self.decode_u29(stream)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode reference int: {exc}") from exc
        return u29 & 0x01 == 0, u29 >> 1

    def _decode_abstract_message(self, stream: BinaryIO) -> dict[str, Any]:
        result: dict[str, Any] = {}
        try:
            self._decode_external(stream, result, *_ABSTRACT_FIELDS)
        except AmfError as exc:
            raise AmfError(f"unable to decode abstract external: {exc}") from exc
        return result

    def _decode_async_message(self, stream: BinaryIO) -> dict[str, Any]:
        try:
            result = self._decode_abstract_message(stream)
        except AmfError as exc:
            raise AmfError(f"unable to decode abstract for async: {exc}") from exc
        try:
            self._decode_external(stream, result, *_ASYNC_FIELDS)
        except AmfError as exc:
            raise AmfError(f"unable to decode async external: {exc}") from exc
        return result

    def _decode_acknowledge_message(self, stream: BinaryIO) -> dict[str, Any]:
        try:
            result = self._decode_async_message(stream)
        except AmfError as exc:
            raise AmfError(f"unable to decode async for ack: {exc}") from exc
        try:
            self._decode_external(stream, result)
        except AmfError as exc:
            raise AmfError(f"unable to decode ack external: {exc}") from exc
        return result

    def _decode_external(
        self, stream: BinaryIO, obj: dict[str, Any], *field_sets: tuple[str, ...]
    ) -> None:
        flag_set = _read_flags(stream)
        for i, flags in enumerate(flag_set):
            field_names = field_sets[i] if i < len(field_sets) else ()
            reserved = len(field_names)
            for p, name in enumerate(field_names):
                if flags & (1 << p):
                    try:
                        obj[name] = self.decode_amf3(stream)
                    except AmfError as exc:
                        raise AmfError(
                            f"unable to decode external field {name} {i} {p} ({flag_set}): {exc}"
                        ) from exc
            if flags >> reserved:
                for j in range(reserved, 6):
                    if (flags >> j) & 0x01:
                        try:
                            obj[f"extra_{i}_{j}"] = self.decode_amf3(stream)
                        except AmfError as exc:
                            raise AmfError(
                                f"unable to decode post-external field {i} {j} ({flag_set}): {exc}"
                            ) from exc


def _read_flags(stream: BinaryIO) -> list[int]:
    result = []
    while True:
        try:
            flag = read_byte(stream)
        except AmfError as exc:
            raise AmfError(f"unable to read flags: {exc}") from exc
        result.append(flag)
        if flag & 0x80 == 0:
            return result