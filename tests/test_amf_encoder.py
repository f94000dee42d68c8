import io
import struct

import pytest

from livemux.amf.core import AmfError, TypedObject, Version
from livemux.amf.encoder import Encoder


def _encode0(value):
    buf = io.BytesIO()
    n = Encoder().encode_amf0(buf, value)
    return n, buf.getvalue()


def test_encode_number():
    n, data = _encode0(1.2)
    assert n == 9
    assert data == bytes([0x00, 0x3F, 0xF3, 0x33, 0x33, 0x33, 0x33, 0x33, 0x33])


def test_encode_boolean_true():
    n, data = _encode0(True)
    assert n == 2
    assert data == bytes([0x01, 0x01])


def test_encode_boolean_false():
    n, data = _encode0(False)
    assert n == 2
    assert data == bytes([0x01, 0x00])


def test_encode_string():
    n, data = _encode0("foo")
    assert n == 6
    assert data == bytes([0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F])


def test_encode_object():
    n, data = _encode0({"foo": "bar"})
    assert n == 15
    assert data == bytes(
        [0x03, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x02, 0x00, 0x03, 0x62, 0x61, 0x72, 0x00, 0x00, 0x09]
    )


def test_encode_ecma_array():
    buf = io.BytesIO()
    Encoder().encode_amf0_ecma_array(buf, {"foo": "bar"}, True)
    assert buf.getvalue() == bytes(
        [0x08, 0x00, 0x00, 0x00, 0x01, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x02, 0x00, 0x03,
         0x62, 0x61, 0x72, 0x00, 0x00, 0x09]
    )


def test_encode_strict_array():
    buf = io.BytesIO()
    Encoder().encode_amf0_strict_array(buf, [5.0, "foo", None], True)
    assert buf.getvalue() == bytes(
        [0x0A, 0x00, 0x00, 0x00, 0x03, 0x00, 0x40, 0x14, 0x00, 0x00, 0x00, 0x00, 0x00,
         0x00, 0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x05]
    )


def test_encode_list_dispatches_to_strict_array():
    n, data = _encode0([5, "foo", None])
    assert data[0] == 0x0A
    assert n == len(data) == 21


def test_encode_null():
    n, data = _encode0(None)
    assert n == 1
    assert data == bytes([0x05])


def test_encode_long_string():
    chunk = b"12345678"
    n, data = _encode0((chunk * 65536).decode("ascii"))
    stream = io.BytesIO(data)
    assert stream.read(1) == b"\x0c"
    (length,) = struct.unpack(">I", stream.read(4))
    assert length == 65536 * 8
    body = stream.read()
    assert len(body) == 65536 * 8
    assert all(body[i:i + 8] == chunk for i in range(0, len(body), 8))
    assert n == 1 + 4 + 65536 * 8


def test_integer_encoded_as_number():
    _, data = _encode0(5)
    assert data == bytes([0x00, 0x40, 0x14, 0, 0, 0, 0, 0, 0])


def test_undefined_and_unsupported_markers():
    buf = io.BytesIO()
    enc = Encoder()
    assert enc.encode_amf0_undefined(buf, True) == 1
    assert enc.encode_amf0_unsupported(buf, True) == 1
    assert enc.encode_amf0_null(buf, False) == 0
    assert buf.getvalue() == bytes([0x06, 0x0D])


def test_amf3_marker():
    buf = io.BytesIO()
    Encoder().encode_amf0_amf3_marker(buf)
    assert buf.getvalue() == bytes([0x11])


def test_string_without_marker():
    buf = io.BytesIO()
    n = Encoder().encode_amf0_string(buf, "", False)
    assert n == 2
    assert buf.getvalue() == b"\x00\x00"


def test_typed_object_rejected():
    with pytest.raises(AmfError, match="typed object"):
        _encode0(TypedObject(type="x"))


def test_non_string_keys_rejected():
    with pytest.raises(AmfError, match="unable to create object from map"):
        _encode0({1: "a"})


def test_unsupported_type_rejected():
    with pytest.raises(AmfError, match="unsupported type"):
        _encode0(object())


def test_nested_unsupported_value_rejected():
    with pytest.raises(AmfError, match="object value"):
        _encode0({"a": object()})


def test_encode_dispatches_by_version():
    enc = Encoder()
    buf0 = io.BytesIO()
    enc.encode(buf0, "foo", Version.AMF0)
    buf3 = io.BytesIO()
    enc.encode(buf3, "foo", 3)
    assert buf0.getvalue() == bytes([0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F])
    assert buf3.getvalue() == bytes([0x06, 0x07, 0x66, 0x6F, 0x6F])


def test_encode_unsupported_version():
    with pytest.raises(AmfError, match="unsupported version 2"):
        Encoder().encode(io.BytesIO(), "foo", 2)


def test_encode_batch():
    buf = io.BytesIO()
    n = Encoder().encode_batch(buf, Version.AMF0, True, None, "foo")
    assert buf.getvalue() == bytes([0x01, 0x01, 0x05, 0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F])
    assert n == len(buf.getvalue())