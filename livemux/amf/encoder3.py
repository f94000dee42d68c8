"""AMF3 encoding."""

from __future__ import annotations

import datetime as _dt
import struct
from typing import Any, BinaryIO, Sequence

from livemux.amf.core import (
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
    TypedObject,
    write_byte,
    write_bytes,
    write_marker,
)

_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)


class Amf3Encoder:
    """Writes values in AMF3 form; each method returns the number of bytes written."""

    def encode_amf3(self, writer: BinaryIO, value: Any) -> int:
        """Encode ``value`` choosing the AMF3 type from its Python type."""
        if value is None:
            return self.encode_amf3_null(writer, True)
        if isinstance(value, bool):
            if value:
                return self.encode_amf3_true(writer, True)
            return self.encode_amf3_false(writer, True)
        if isinstance(value, int):
            if 0 <= value <= AMF3_INTEGER_MAX:
                return self.encode_amf3_integer(writer, value, True)
            return self.encode_amf3_double(writer, float(value), True)
        if isinstance(value, float):
            return self.encode_amf3_double(writer, value, True)
        if isinstance(value, str):
            return self.encode_amf3_string(writer, value, True)
        if isinstance(value, (list, tuple, bytes, bytearray)):
            return self.encode_amf3_array(writer, list(value), True)
        if isinstance(value, dict):
            if not all(isinstance(key, str) for key in value):
                raise AmfError("encode amf3: unable to create object from map")
            return self.encode_amf3_object(writer, TypedObject(object=value), True)
        if isinstance(value, _dt.datetime):
            return self.encode_amf3_date(writer, value, True)
        if isinstance(value, TypedObject):
            return self.encode_amf3_object(writer, value, True)
        raise AmfError(f"encode amf3: unsupported type {type(value).__name__}")

    @staticmethod
    def _marker(writer: BinaryIO, marker: int, encode_marker: bool) -> int:
        if encode_marker:
            write_marker(writer, marker)
            return 1
        return 0

    def encode_amf3_undefined(self, writer: BinaryIO, encode_marker: bool) -> int:
        return self._marker(writer, AMF3_UNDEFINED_MARKER, encode_marker)

    def encode_amf3_null(self, writer: BinaryIO, encode_marker: bool) -> int:
        return self._marker(writer, AMF3_NULL_MARKER, encode_marker)

    def encode_amf3_false(self, writer: BinaryIO, encode_marker: bool) -> int:
        return self._marker(writer, AMF3_FALSE_MARKER, encode_marker)

    def encode_amf3_true(self, writer: BinaryIO, encode_marker: bool) -> int:
        return self._marker(writer, AMF3_TRUE_MARKER, encode_marker)

    def encode_amf3_integer(self, writer: BinaryIO, value: int, encode_marker: bool) -> int:
        n = self._marker(writer, AMF3_INTEGER_MARKER, encode_marker)
        return n + self._encode_uint29(writer, value)

    def encode_amf3_double(self, writer: BinaryIO, value: float, encode_marker: bool) -> int:
        n = self._marker(writer, AMF3_DOUBLE_MARKER, encode_marker)
        write_bytes(writer, struct.pack(">d", value))
        return n + 8

    def encode_amf3_string(self, writer: BinaryIO, value: str, encode_marker: bool) -> int:
        n = self._marker(writer, AMF3_STRING_MARKER, encode_marker)
        return n + self._encode_utf8(writer, value)

    def encode_amf3_date(
        self, writer: BinaryIO, value: _dt.datetime, encode_marker: bool
    ) -> int:
        """Encode a date as whole seconds since the epoch, in milliseconds.

        Naive datetimes are taken to be UTC.
        """
        n = self._marker(writer, AMF3_DATE_MARKER, encode_marker)
        write_marker(writer, 0x01)
        n += 1
        if value.tzinfo is None:
            value = value.replace(tzinfo=_dt.timezone.utc)
        seconds = (value - _EPOCH) // _dt.timedelta(seconds=1)
        write_bytes(writer, struct.pack(">d", float(seconds) * 1000.0))
        return n + 8

    def encode_amf3_array(
        self, writer: BinaryIO, value: Sequence[Any], encode_marker: bool
    ) -> int:
        n = self._marker(writer, AMF3_ARRAY_MARKER, encode_marker)
        n += self._encode_uint29(writer, (len(value) << 1) | 0x01)
        n += self._encode_utf8(writer, "")
        for item in value:
            n += self.encode_amf3(writer, item)
        return n

    def encode_amf3_object(
        self, writer: BinaryIO, value: TypedObject, encode_marker: bool
    ) -> int:
        """Encode a sealed object whose properties are written in sorted order."""
        n = self._marker(writer, AMF3_OBJECT_MARKER, encode_marker)
        properties = sorted(value.object)
        header = 0x03 | (len(properties) << 4)
        n += self._encode_uint29(writer, header)
        n += self._encode_utf8(writer, value.type)
        for prop in properties:
            n += self._encode_utf8(writer, prop)
        for prop in properties:
            n += self.encode_amf3(writer, value.object[prop])
        return n

    def encode_amf3_byte_array(
        self, writer: BinaryIO, value: bytes, encode_marker: bool
    ) -> int:
        n = self._marker(writer, AMF3_BYTEARRAY_MARKER, encode_marker)
        n += self._encode_uint29(writer, (len(value) << 1) | 1)
        return n + write_bytes(writer, bytes(value))

    def _encode_utf8(self, writer: BinaryIO, value: str) -> int:
        data = value.encode("utf-8")
        n = self._encode_uint29(writer, (len(data) << 1) | 0x01)
        return n + write_bytes(writer, data)

    @staticmethod
    def _encode_uint29(writer: BinaryIO, value: int) -> int:
        if value < 0:
            raise AmfError(f"amf3 encode: cannot encode u29 with value {value} (out of range)")
        if value <= 0x7F:
            write_byte(writer, value)
            return 1
        if value <= 0x3FFF:
            data = bytes(((value >> 7) | 0x80, value & 0x7F))
        elif value <= 0x1FFFFF:
            data = bytes(
                (((value >> 14) | 0x80), ((value >> 7) & 0x7F) | 0x80, value & 0x7F)
            )
        elif value <= 0x1FFFFFFF:
            data = bytes(
                (
                    (value >> 22) | 0x80,
                    ((value >> 15) & 0x7F) | 0x80,
                    ((value >> 8) & 0x7F) | 0x80,
                    value & 0xFF,
                )
            )
        else:
            raise AmfError(f"amf3 encode: cannot encode u29 with value {value} (out of range)")
        return write_bytes(writer, data)