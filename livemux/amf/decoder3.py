"""AMF3 decoding, including the Flex externalizable message types."""

from __future__ import annotations

import datetime as _dt
import struct
from typing import Any, BinaryIO

from livemux.amf.core import (
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
    ExternalHandler,
    Trait,
    assert_marker,
    read_byte,
    read_bytes,
    read_marker,
)

_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)

_ABSTRACT_FIELDS = (
    ("body", "clientId", "destination", "headers", "messageId", "timeStamp", "timeToLive"),
    ("clientIdBytes", "messageIdBytes"),
)
_ASYNC_FIELDS = (("correlationId", "correlationIdBytes"),)

_ARRAY_COLLECTION = "flex.messaging.io.ArrayCollection"


def _reference(table: list, index: int, what: str) -> Any:
    try:
        return table[index]
    except IndexError:
        raise AmfError(
            f"amf3 decode: bad {what} reference {index} (have {len(table)})"
        ) from None


def _read_flags(reader: BinaryIO) -> list[int]:
    flags = []
    while True:
        try:
            flag = read_byte(reader)
        except AmfError as exc:
            raise AmfError(f"unable to read flags: {exc}") from exc
        flags.append(flag)
        if not flag & 0x80:
            return flags


class Amf3Decoder:
    """Reads AMF3 values, keeping the string, object and trait reference tables."""

    def __init__(self) -> None:
        self._string_refs: list[str] = []
        self._object_refs: list[Any] = []
        self._trait_refs: list[Trait] = []
        self._external_handlers: dict[str, ExternalHandler] = {}

    def register_external_handler(self, name: str, handler: ExternalHandler) -> None:
        """Use ``handler(decoder, reader)`` to decode externalizable objects of type ``name``."""
        self._external_handlers[name] = handler

    def decode_amf3(self, reader: BinaryIO) -> Any:
        """Decode one AMF3 value, choosing the type from its marker."""
        marker = read_marker(reader)
        routes = {
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
        route = routes.get(marker)
        if route is None:
            raise AmfError(f"decode amf3: unsupported type {marker}")
        return route(reader, False)

    def decode_amf3_undefined(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF3_UNDEFINED_MARKER)
        return None

    def decode_amf3_null(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF3_NULL_MARKER)
        return None

    def decode_amf3_false(self, reader: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(reader, decode_marker, AMF3_FALSE_MARKER)
        return False

    def decode_amf3_true(self, reader: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(reader, decode_marker, AMF3_TRUE_MARKER)
        return True

    def decode_amf3_integer(self, reader: BinaryIO, decode_marker: bool) -> int:
        """Decode a 29-bit signed integer."""
        assert_marker(reader, decode_marker, AMF3_INTEGER_MARKER)
        u29 = self.decode_u29(reader)
        if u29 > 0xFFFFFFF:
            return u29 - 0x20000000
        return u29

    def decode_amf3_double(self, reader: BinaryIO, decode_marker: bool) -> float:
        assert_marker(reader, decode_marker, AMF3_DOUBLE_MARKER)
        try:
            data = read_bytes(reader, 8)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read double: {exc}") from exc
        return struct.unpack(">d", data)[0]

    def decode_amf3_string(self, reader: BinaryIO, decode_marker: bool) -> str:
        assert_marker(reader, decode_marker, AMF3_STRING_MARKER)
        is_ref, ref_val = self.decode_reference_int(reader)
        if is_ref:
            return _reference(self._string_refs, ref_val, "string")
        try:
            data = read_bytes(reader, ref_val)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read string: {exc}") from exc
        result = data.decode("utf-8")
        if result:
            self._string_refs.append(result)
        return result

    def decode_amf3_date(self, reader: BinaryIO, decode_marker: bool) -> _dt.datetime:
        """Decode a date as a UTC datetime truncated to whole seconds."""
        assert_marker(reader, decode_marker, AMF3_DATE_MARKER)
        is_ref, ref_val = self.decode_reference_int(reader)
        if is_ref:
            result = _reference(self._object_refs, ref_val, "date")
            if not isinstance(result, _dt.datetime):
                raise AmfError(
                    "amf3 decode: unable to extract time from date object references"
                )
            return result
        try:
            millis = struct.unpack(">d", read_bytes(reader, 8))[0]
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read double: {exc}") from exc
        result = _EPOCH + _dt.timedelta(seconds=int(millis / 1000))
        self._object_refs.append(result)
        return result

    def decode_amf3_array(self, reader: BinaryIO, decode_marker: bool) -> list:
        """Decode a dense array; associative arrays are rejected."""
        assert_marker(reader, decode_marker, AMF3_ARRAY_MARKER)
        is_ref, ref_val = self.decode_reference_int(reader)
        if is_ref:
            result = _reference(self._object_refs, ref_val >> 1, "array")
            if not isinstance(result, list):
                raise AmfError(
                    "amf3 decode: unable to extract array from object references"
                )
            return result
        key = self.decode_amf3_string(reader, False)
        if key:
            raise AmfError(
                "amf3 decode: array key is not empty, can't handle associative array"
            )
        result = []
        for _ in range(ref_val):
            try:
                result.append(self.decode_amf3(reader))
            except AmfError as exc:
                raise AmfError(
                    f"amf3 decode: array element could not be decoded: {exc}"
                ) from exc
        self._object_refs.append(result)
        return result

    def decode_amf3_object(self, reader: BinaryIO, decode_marker: bool) -> Any:
        """Decode an object, delegating externalizable types to their decoders."""
        assert_marker(reader, decode_marker, AMF3_OBJECT_MARKER)
        is_ref, ref_val = self.decode_reference_int(reader)
        if is_ref:
            return _reference(self._object_refs, ref_val >> 1, "object")

        if ref_val & 0x01 == 0:
            trait = _reference(self._trait_refs, ref_val >> 1, "trait")
        else:
            trait = Trait(
                externalizable=bool(ref_val & 0x02),
                dynamic=bool(ref_val & 0x04),
            )
            trait.type = self.decode_amf3_string(reader, False)
            for _ in range(ref_val >> 3):
                trait.properties.append(self.decode_amf3_string(reader, False))
            self._trait_refs.append(trait)

        self._object_refs.append(None)

        if trait.externalizable:
            return self._decode_externalizable(reader, trait.type)

        obj: dict[str, Any] = {}
        for key in trait.properties:
            try:
                obj[key] = self.decode_amf3(reader)
            except AmfError as exc:
                raise AmfError(
                    f"amf3 decode: unable to decode object property: {exc}"
                ) from exc

        if trait.dynamic:
            while True:
                key = self.decode_amf3_string(reader, False)
                if not key:
                    break
                try:
                    obj[key] = self.decode_amf3(reader)
                except AmfError as exc:
                    raise AmfError(
                        f"amf3 decode: unable to decode dynamic value: {exc}"
                    ) from exc
        return obj

    def _decode_externalizable(self, reader: BinaryIO, type_name: str) -> Any:
        if type_name == "DSA":
            return self._decode_async_message(reader)
        if type_name == "DSK":
            return self._decode_acknowledge_message(reader)
        if type_name == _ARRAY_COLLECTION:
            try:
                result = self.decode_amf3(reader)
            except AmfError as exc:
                raise AmfError(f"amf3 decode: unable to decode ac: {exc}") from exc
            self._object_refs.append(result)
            return result
        handler = self._external_handlers.get(type_name)
        if handler is None:
            raise AmfError(
                f"amf3 decode: unable to decode external type {type_name}, no handler"
            )
        return handler(self, reader)

    def decode_amf3_xml(self, reader: BinaryIO, decode_marker: bool) -> str:
        """Decode an XML document or XML string as text."""
        if decode_marker:
            marker = read_marker(reader)
            if marker not in (AMF3_XMLDOC_MARKER, AMF3_XMLSTRING_MARKER):
                raise AmfError(
                    "decode assert marker failed: expected "
                    f"{AMF3_XMLDOC_MARKER} or {AMF3_XMLSTRING_MARKER}, got {marker}"
                )
        is_ref, ref_val = self.decode_reference_int(reader)
        if is_ref:
            result = _reference(self._object_refs, ref_val, "xml")
            if not isinstance(result, str):
                raise AmfError("amf3 decode: cannot coerce object reference into xml string")
            return result
        try:
            data = read_bytes(reader, ref_val)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read xml string: {exc}") from exc
        result = data.decode("utf-8")
        if result:
            self._object_refs.append(result)
        return result

    def decode_amf3_byte_array(self, reader: BinaryIO, decode_marker: bool) -> bytes:
        assert_marker(reader, decode_marker, AMF3_BYTEARRAY_MARKER)
        is_ref, ref_val = self.decode_reference_int(reader)
        if is_ref:
            result = _reference(self._object_refs, ref_val, "byte array")
            if not isinstance(result, bytes):
                raise AmfError("amf3 decode: unable to convert object ref to bytes")
            return result
        try:
            result = read_bytes(reader, ref_val)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to read bytearray: {exc}") from exc
        self._object_refs.append(result)
        return result

    def decode_u29(self, reader: BinaryIO) -> int:
        """Decode a variable-length unsigned 29-bit integer."""
        result = 0
        for _ in range(3):
            b = read_byte(reader)
            result = (result << 7) + (b & 0x7F)
            if not b & 0x80:
                return result
        return (result << 8) + read_byte(reader)

    def decode_reference_int(self, reader: BinaryIO) -> tuple[bool, int]:
        """Return ``(is_reference, value)`` from a U29 whose low bit flags a literal."""
        try:
            u29 = self.decode_u29(reader)
        except AmfError as exc:
            raise AmfError(f"amf3 decode: unable to decode reference int: {exc}") from exc
        return u29 & 0x01 == 0, u29 >> 1

    def _decode_abstract_message(self, reader: BinaryIO) -> dict:
        result: dict[str, Any] = {}
        self._decode_external(reader, result, *_ABSTRACT_FIELDS)
        return result

    def _decode_async_message(self, reader: BinaryIO) -> dict:
        result = self._decode_abstract_message(reader)
        self._decode_external(reader, result, *_ASYNC_FIELDS)
        return result

    def _decode_acknowledge_message(self, reader: BinaryIO) -> dict:
        result = self._decode_async_message(reader)
        self._decode_external(reader, result)
        return result

    def _decode_external(
        self, reader: BinaryIO, obj: dict, *field_sets: tuple[str, ...]
    ) -> None:
        flag_set = _read_flags(reader)
        for i, flags in enumerate(flag_set):
            field_names = field_sets[i] if i < len(field_sets) else ()
            reserved = len(field_names)
            for position, name in enumerate(field_names):
                if flags & (1 << position):
                    try:
                        obj[name] = self.decode_amf3(reader)
                    except AmfError as exc:
                        raise AmfError(
                            f"unable to decode external field {name} {i} {position}: {exc}"
                        ) from exc
            if flags >> reserved:
                for j in range(reserved, 6):
                    if (flags >> j) & 0x01:
                        try:
                            obj[f"extra_{i}_{j}"] = self.decode_amf3(reader)
                        except AmfError as exc:
                            raise AmfError(
                                f"unable to decode post-external field {i} {j}: {exc}"
                            ) from exc