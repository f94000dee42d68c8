"""AMF0 encoding and version-dispatching entry points."""

from __future__ import annotations

import struct
from typing import Any, BinaryIO, Mapping, Sequence

from livemux.amf.core import (
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
    AmfError,
    TypedObject,
    Version,
    write_bytes,
    write_marker,
)
from livemux.amf.encoder3 import Amf3Encoder


class Encoder(Amf3Encoder):
    """Writes values in AMF0 or AMF3 form; methods return the bytes written."""

    def encode(self, writer: BinaryIO, value: Any, version: int) -> int:
        """Encode ``value`` using the given AMF version."""
        if version == Version.AMF0:
            return self.encode_amf0(writer, value)
        if version == Version.AMF3:
            return self.encode_amf3(writer, value)
        raise AmfError(f"encode amf: unsupported version {int(version)}")

    def encode_batch(self, writer: BinaryIO, version: int, *args: Any) -> int:
        """Encode each value in turn; return the total number of bytes written."""
        return sum(self.encode(writer, value, version) for value in args)

    def encode_amf0(self, writer: BinaryIO, value: Any) -> int:
        """Encode ``value`` choosing the AMF0 type from its Python type."""
        if value is None:
            return self.encode_amf0_null(writer, True)
        if isinstance(value, str):
            if len(value.encode("utf-8")) <= AMF0_STRING_MAX:
                return self.encode_amf0_string(writer, value, True)
            return self.encode_amf0_long_string(writer, value, True)
        if isinstance(value, bool):
            return self.encode_amf0_boolean(writer, value, True)
        if isinstance(value, (int, float)):
            return self.encode_amf0_number(writer, float(value), True)
        if isinstance(value, (list, tuple, bytes, bytearray)):
            return self.encode_amf0_strict_array(writer, list(value), True)
        if isinstance(value, Mapping):
            if not all(isinstance(key, str) for key in value):
                raise AmfError("encode amf0: unable to create object from map")
            return self.encode_amf0_object(writer, value, True)
        if isinstance(value, TypedObject):
            raise AmfError("encode amf0: unsupported type typed object")
        raise AmfError(f"encode amf0: unsupported type {type(value).__name__}")

    @staticmethod
    def _marker0(writer: BinaryIO, marker: int, encode_marker: bool) -> int:
        if encode_marker:
            write_marker(writer, marker)
            return 1
        return 0

    def encode_amf0_number(self, writer: BinaryIO, value: float, encode_marker: bool) -> int:
        n = self._marker0(writer, AMF0_NUMBER_MARKER, encode_marker)
        write_bytes(writer, struct.pack(">d", float(value)))
        return n + 8

    def encode_amf0_boolean(self, writer: BinaryIO, value: bool, encode_marker: bool) -> int:
        n = self._marker0(writer, AMF0_BOOLEAN_MARKER, encode_marker)
        flag = AMF0_BOOLEAN_TRUE if value else AMF0_BOOLEAN_FALSE
        return n + write_bytes(writer, bytes((flag,)))

    def encode_amf0_string(self, writer: BinaryIO, value: str, encode_marker: bool) -> int:
        """Encode a short string; the 16-bit length wraps like the wire field does."""
        n = self._marker0(writer, AMF0_STRING_MARKER, encode_marker)
        data = value.encode("utf-8")
        write_bytes(writer, struct.pack(">H", len(data) & 0xFFFF))
        return n + 2 + write_bytes(writer, data)

    def encode_amf0_object(
        self, writer: BinaryIO, value: Mapping[str, Any], encode_marker: bool
    ) -> int:
        n = self._marker0(writer, AMF0_OBJECT_MARKER, encode_marker)
        for key, item in value.items():
            n += self.encode_amf0_string(writer, key, False)
            try:
                n += self.encode_amf0(writer, item)
            except AmfError as exc:
                raise AmfError(f"encode amf0: unable to encode object value: {exc}") from exc
        n += self.encode_amf0_string(writer, "", False)
        write_marker(writer, AMF0_OBJECT_END_MARKER)
        return n + 1

    def encode_amf0_null(self, writer: BinaryIO, encode_marker: bool) -> int:
        return self._marker0(writer, AMF0_NULL_MARKER, encode_marker)

    def encode_amf0_undefined(self, writer: BinaryIO, encode_marker: bool) -> int:
        return self._marker0(writer, AMF0_UNDEFINED_MARKER, encode_marker)

    def encode_amf0_ecma_array(
        self, writer: BinaryIO, value: Mapping[str, Any], encode_marker: bool
    ) -> int:
        n = self._marker0(writer, AMF0_ECMA_ARRAY_MARKER, encode_marker)
        write_bytes(writer, struct.pack(">I", len(value) & 0xFFFFFFFF))
        n += 4
        try:
            return n + self.encode_amf0_object(writer, value, False)
        except AmfError as exc:
            raise AmfError(f"encode amf0: unable to encode ecma array object: {exc}") from exc

    def encode_amf0_strict_array(
        self, writer: BinaryIO, value: Sequence[Any], encode_marker: bool
    ) -> int:
        n = self._marker0(writer, AMF0_STRICT_ARRAY_MARKER, encode_marker)
        write_bytes(writer, struct.pack(">I", len(value) & 0xFFFFFFFF))
        n += 4
        for item in value:
            try:
                n += self.encode_amf0(writer, item)
            except AmfError as exc:
                raise AmfError(
                    f"encode amf0: unable to encode strict array element: {exc}"
                ) from exc
        return n

    def encode_amf0_long_string(self, writer: BinaryIO, value: str, encode_marker: bool) -> int:
        n = self._marker0(writer, AMF0_LONG_STRING_MARKER, encode_marker)
        data = value.encode("utf-8")
        write_bytes(writer, struct.pack(">I", len(data) & 0xFFFFFFFF))
        return n + 4 + write_bytes(writer, data)

    def encode_amf0_unsupported(self, writer: BinaryIO, encode_marker: bool) -> int:
        return self._marker0(writer, AMF0_UNSUPPORTED_MARKER, encode_marker)

    def encode_amf0_amf3_marker(self, writer: BinaryIO) -> None:
        """Write the marker that switches an AMF0 stream to AMF3."""
        write_marker(writer, AMF0_ACMPLUS_OBJECT_MARKER)