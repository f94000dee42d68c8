"""Shared AMF definitions: markers, value types and byte-level helpers."""

from __future__ import annotations

import base64
import datetime as _dt
import json
from dataclasses import asdict, dataclass, field, is_dataclass
from enum import IntEnum
from typing import Any, BinaryIO, Callable


class AmfError(ValueError):
    """Raised when AMF data cannot be encoded or decoded."""


class Version(IntEnum):
    """AMF encoding version."""

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

ExternalHandler = Callable[[Any, BinaryIO], Any]


@dataclass
class TypedObject:
    """An object carrying a class name alongside its properties."""

    type: str = ""
    object: dict = field(default_factory=dict)


@dataclass
class Trait:
    """AMF3 class description shared between objects of the same type."""

    type: str = ""
    externalizable: bool = False
    dynamic: bool = False
    properties: list = field(default_factory=list)


def read_bytes(reader: BinaryIO, n: int) -> bytes:
    """Read exactly ``n`` bytes or raise AmfError."""
    data = reader.read(n)
    if data is None:
        data = b""
    if n > 0 and not data:
        raise AmfError(f"decode read bytes failed: unexpected end of data (wanted {n})")
    if len(data) != n:
        raise AmfError(f"decode read bytes failed: expected {n} got {len(data)}")
    return bytes(data)


def read_byte(reader: BinaryIO) -> int:
    """Read a single byte as an integer."""
    return read_bytes(reader, 1)[0]


def write_bytes(writer: BinaryIO, data: bytes) -> int:
    """Write ``data`` and return the number of bytes written."""
    written = writer.write(data)
    return len(data) if written is None else written


def write_byte(writer: BinaryIO, b: int) -> None:
    """Write one byte."""
    write_bytes(writer, bytes((b & 0xFF,)))


def read_marker(reader: BinaryIO) -> int:
    """Read a type marker."""
    return read_byte(reader)


def write_marker(writer: BinaryIO, marker: int) -> None:
    """Write a type marker."""
    write_byte(writer, marker)


def assert_marker(reader: BinaryIO, check_marker: bool, marker: int) -> None:
    """Read a marker and check it, when ``check_marker`` is set."""
    if not check_marker:
        return
    got = read_marker(reader)
    if got != marker:
        raise AmfError(f"decode assert marker failed: expected {marker} got {got}")


def dump_bytes(label: str, buf: bytes, size: int) -> None:
    """Print the first ``size`` bytes of ``buf`` in hex."""
    if size > len(buf):
        raise ValueError(f"size {size} exceeds buffer length {len(buf)}")
    print(f"Dumping {label} ({size} bytes):")
    print("".join(f"0x{b:02x} " for b in buf[:size]))


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (_dt.datetime, _dt.date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"unsupported type {type(value).__name__}")


def dump(label: str, value: Any) -> None:
    """Print ``value`` as indented JSON."""
    try:
        text = json.dumps(value, indent=2, sort_keys=True, default=_json_default)
    except (TypeError, ValueError) as exc:
        raise AmfError(f"Error dumping {label}: {exc}") from exc
    print(f"Dumping {label}:\n{text}")