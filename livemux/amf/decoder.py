"""AMF0 decoding and version-dispatching entry points."""

from __future__ import annotations

import struct
from typing import Any, BinaryIO

from livemux.amf.core import (
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
    AmfError,
    TypedObject,
    Version,
    assert_marker,
    read_byte,
    read_bytes,
    read_marker,
)
from livemux.amf.decoder3 import Amf3Decoder

_UNSUPPORTED_AMF0 = {
    AMF0_MOVIECLIP_MARKER: "movieclip",
    AMF0_REFERENCE_MARKER: "reference",
    AMF0_RECORDSET_MARKER: "recordset",
}


def _read(reader: BinaryIO, n: int, what: str) -> bytes:
    try:
        return read_bytes(reader, n)
    except AmfError as exc:
        raise AmfError(f"decode amf0: unable to {what}: {exc}") from exc


def _text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise AmfError(f"decode amf0: invalid utf-8 string: {exc}") from exc


class _Prepended:
    """A reader that yields some already-read bytes before the rest of a stream."""

    def __init__(self, head: bytes, reader: BinaryIO) -> None:
        self._head = head
        self._reader = reader

    def read(self, n: int = -1) -> bytes:
        if n is None or n < 0:
            data = self._head + (self._reader.read() or b"")
            self._head = b""
            return data
        data = self._head[:n]
        self._head = self._head[n:]
        if len(data) < n:
            data += self._reader.read(n - len(data)) or b""
        return data


class Decoder(Amf3Decoder):
    """Reads AMF0 and AMF3 values from binary readers."""

    def __init__(self) -> None:
        super().__init__()
        self._ref_cache: list[Any] = []

    def decode(self, reader: BinaryIO, version: int) -> Any:
        """Decode one value using the given AMF version."""
        if version == Version.AMF0:
            return self.decode_amf0(reader)
        if version == Version.AMF3:
            return self.decode_amf3(reader)
        raise AmfError(f"decode amf: unsupported version {int(version)}")

    def decode_batch(self, reader: BinaryIO, version: int) -> list:
        """Decode values until the reader is exhausted.

        Data that ends in the middle of a value raises AmfError.
        """
        values = []
        while True:
            head = reader.read(1)
            if not head:
                return values
            values.append(self.decode(_Prepended(head, reader), version))

    def decode_amf0(self, reader: BinaryIO) -> Any:
        """Decode one AMF0 value, choosing the type from its marker."""
        marker = read_marker(reader)
        if marker in _UNSUPPORTED_AMF0:
            raise AmfError(f"decode amf0: unsupported type {_UNSUPPORTED_AMF0[marker]}")
        if marker == AMF0_ACMPLUS_OBJECT_MARKER:
            return self.decode_amf3(reader)
        routes = {
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
        route = routes.get(marker)
        if route is None:
            raise AmfError(f"decode amf0: unsupported type {marker}")
        return route(reader, False)

    def decode_amf0_number(self, reader: BinaryIO, decode_marker: bool) -> float:
        """Decode a big-endian 64-bit float."""
        assert_marker(reader, decode_marker, AMF0_NUMBER_MARKER)
        return struct.unpack(">d", _read(reader, 8, "read number"))[0]

    def decode_amf0_boolean(self, reader: BinaryIO, decode_marker: bool) -> bool:
        assert_marker(reader, decode_marker, AMF0_BOOLEAN_MARKER)
        b = read_byte(reader)
        if b == AMF0_BOOLEAN_FALSE:
            return False
        if b == AMF0_BOOLEAN_TRUE:
            return True
        raise AmfError(f"decode amf0: unexpected value {b} for boolean")

    def decode_amf0_string(self, reader: BinaryIO, decode_marker: bool) -> str:
        """Decode a string with a 16-bit length prefix."""
        assert_marker(reader, decode_marker, AMF0_STRING_MARKER)
        (length,) = struct.unpack(">H", _read(reader, 2, "decode string length"))
        return _text(_read(reader, length, "decode string value"))

    def decode_amf0_object(self, reader: BinaryIO, decode_marker: bool) -> dict:
        """Decode key/value pairs up to the empty key and end marker."""
        assert_marker(reader, decode_marker, AMF0_OBJECT_MARKER)
        result: dict[str, Any] = {}
        self._ref_cache.append(result)
        while True:
            key = self.decode_amf0_string(reader, False)
            if not key:
                try:
                    assert_marker(reader, True, AMF0_OBJECT_END_MARKER)
                except AmfError as exc:
                    raise AmfError(
                        f"decode amf0: expected object end marker: {exc}"
                    ) from exc
                return result
            try:
                result[key] = self.decode_amf0(reader)
            except AmfError as exc:
                raise AmfError(
                    f"decode amf0: unable to decode object value: {exc}"
                ) from exc

    def decode_amf0_null(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF0_NULL_MARKER)
        return None

    def decode_amf0_undefined(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF0_UNDEFINED_MARKER)
        return None

    def decode_amf0_ecma_array(self, reader: BinaryIO, decode_marker: bool) -> dict:
        """Decode an associative array; its length prefix is read and ignored."""
        assert_marker(reader, decode_marker, AMF0_ECMA_ARRAY_MARKER)
        _read(reader, 4, "decode ecma array length")
        try:
            return self.decode_amf0_object(reader, False)
        except AmfError as exc:
            raise AmfError(
                f"decode amf0: unable to decode ecma array object: {exc}"
            ) from exc

    def decode_amf0_strict_array(self, reader: BinaryIO, decode_marker: bool) -> list:
        assert_marker(reader, decode_marker, AMF0_STRICT_ARRAY_MARKER)
        (length,) = struct.unpack(">I", _read(reader, 4, "decode strict array length"))
        result: list[Any] = []
        self._ref_cache.append(result)
        for _ in range(length):
            try:
                result.append(self.decode_amf0(reader))
            except AmfError as exc:
                raise AmfError(
                    f"decode amf0: unable to decode strict array object: {exc}"
                ) from exc
        return result

    def decode_amf0_date(self, reader: BinaryIO, decode_marker: bool) -> float:
        """Decode a date as its raw millisecond number, skipping the time zone."""
        assert_marker(reader, decode_marker, AMF0_DATE_MARKER)
        try:
            result = self.decode_amf0_number(reader, False)
        except AmfError as exc:
            raise AmfError(f"decode amf0: unable to decode float in date: {exc}") from exc
        _read(reader, 2, "read 2 trail bytes in date")
        return result

    def decode_amf0_long_string(self, reader: BinaryIO, decode_marker: bool) -> str:
        """Decode a string with a 32-bit length prefix."""
        assert_marker(reader, decode_marker, AMF0_LONG_STRING_MARKER)
        (length,) = struct.unpack(">I", _read(reader, 4, "decode long string length"))
        return _text(_read(reader, length, "decode long string value"))

    def decode_amf0_unsupported(self, reader: BinaryIO, decode_marker: bool) -> None:
        assert_marker(reader, decode_marker, AMF0_UNSUPPORTED_MARKER)
        return None

    def decode_amf0_xml_document(self, reader: BinaryIO, decode_marker: bool) -> str:
        assert_marker(reader, decode_marker, AMF0_XML_DOCUMENT_MARKER)
        return self.decode_amf0_long_string(reader, False)

    def decode_amf0_typed_object(
        self, reader: BinaryIO, decode_marker: bool
    ) -> TypedObject:
        """Decode a class name followed by an object."""
        assert_marker(reader, decode_marker, AMF0_TYPED_OBJECT_MARKER)
        result = TypedObject()
        self._ref_cache.append(result)
        try:
            result.type = self.decode_amf0_string(reader, False)
        except AmfError as exc:
            raise AmfError(
                f"decode amf0: typed object unable to determine type: {exc}"
            ) from exc
        try:
            result.object = self.decode_amf0_object(reader, False)
        except AmfError as exc:
            raise AmfError(
                f"decode amf0: typed object unable to determine object: {exc}"
            ) from exc
        return result