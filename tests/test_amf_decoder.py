import datetime as dt
import io

import pytest

from livemux.amf.core import AmfError, TypedObject
from livemux.amf.decoder import Decoder
from livemux.amf.encoder import Encoder


def encode_and_decode(value, version):
    buf = io.BytesIO()
    Encoder().encode(buf, value, version)
    buf.seek(0)
    return Decoder().decode(buf, version)


@pytest.mark.parametrize("value", [3.14159, 124567890.0, -34.2])
def test_amf0_number_round_trip(value):
    assert encode_and_decode(value, 0) == value


@pytest.mark.parametrize("value", ["a pup!", "日本語"])
def test_amf0_string_round_trip(value):
    assert encode_and_decode(value, 0) == value


@pytest.mark.parametrize("value", [True, False])
def test_amf0_boolean_round_trip(value):
    assert encode_and_decode(value, 0) is value


def test_amf0_null_round_trip():
    assert encode_and_decode(None, 0) is None


def test_amf0_object_round_trip():
    obj = {"dog": "alfie", "coffee": True, "drugs": False, "pi": 3.14159}
    assert encode_and_decode(obj, 0) == obj


def test_amf0_array_round_trip():
    arr = (1.0, 2.0, 3.0, 4.0, 5.0)
    assert encode_and_decode(arr, 0) == list(arr)


@pytest.mark.parametrize("value", [0, 1245, 123456])
def test_amf3_integer_round_trip(value):
    assert encode_and_decode(value, 3) == value


@pytest.mark.parametrize("value", [3.14159, 1234567890.0, -12345.0])
def test_amf3_double_round_trip(value):
    assert encode_and_decode(value, 3) == value


@pytest.mark.parametrize("value", [True, False])
def test_amf3_boolean_round_trip(value):
    assert encode_and_decode(value, 3) is value


def test_amf3_null_round_trip():
    assert encode_and_decode(None, 3) is None


def test_amf3_date_round_trip():
    now = dt.datetime.now(dt.timezone.utc).replace(microsecond=0)
    earlier = dt.datetime(1983, 9, 4, 12, 4, 8, tzinfo=dt.timezone.utc)
    assert encode_and_decode(now, 3) == now
    assert encode_and_decode(earlier, 3) == earlier


def test_amf3_array_round_trip():
    arr = ["amf", 2.0, -34.95, True, False]
    assert encode_and_decode(arr, 3) == arr


def test_amf3_byte_array_round_trip():
    expect = bytes([0x01, 0x02, 0x03, 0x04, 0x05, 0x00])
    buf = io.BytesIO()
    Encoder().encode_amf3_byte_array(buf, expect, True)
    buf.seek(0)
    assert Decoder().decode_amf3_byte_array(buf, True) == expect


def check_three_ways(data, method, expect):
    dec = Decoder()
    buf = io.BytesIO(data)
    assert dec.decode_amf0(buf) == expect
    buf.seek(0)
    assert getattr(dec, method)(buf, True) == expect
    buf.seek(1)
    assert getattr(dec, method)(buf, False) == expect


def test_decode_number():
    check_three_ways(
        bytes([0x00, 0x3F, 0xF3, 0x33, 0x33, 0x33, 0x33, 0x33, 0x33]),
        "decode_amf0_number",
        1.2,
    )


def test_decode_boolean_true():
    check_three_ways(bytes([0x01, 0x01]), "decode_amf0_boolean", True)


def test_decode_boolean_false():
    check_three_ways(bytes([0x01, 0x00]), "decode_amf0_boolean", False)


def test_decode_string():
    check_three_ways(
        bytes([0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F]), "decode_amf0_string", "foo"
    )


def test_decode_object():
    data = bytes(
        [0x03, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x02, 0x00, 0x03, 0x62, 0x61, 0x72, 0x00, 0x00, 0x09]
    )
    check_three_ways(data, "decode_amf0_object", {"foo": "bar"})


def test_decode_null():
    dec = Decoder()
    buf = io.BytesIO(bytes([0x05]))
    assert dec.decode_amf0(buf) is None
    buf.seek(0)
    assert dec.decode_amf0_null(buf, True) is None
    assert buf.tell() == 1


def test_decode_undefined():
    dec = Decoder()
    buf = io.BytesIO(bytes([0x06]))
    assert dec.decode_amf0(buf) is None
    buf.seek(0)
    assert dec.decode_amf0_undefined(buf, True) is None
    assert buf.tell() == 1


def test_decode_ecma_array():
    data = bytes(
        [0x08, 0x00, 0x00, 0x00, 0x01, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x02, 0x00, 0x03,
         0x62, 0x61, 0x72, 0x00, 0x00, 0x09]
    )
    check_three_ways(data, "decode_amf0_ecma_array", {"foo": "bar"})


def test_decode_strict_array():
    data = bytes(
        [0x0A, 0x00, 0x00, 0x00, 0x03, 0x00, 0x40, 0x14, 0x00, 0x00, 0x00, 0x00, 0x00,
         0x00, 0x02, 0x00, 0x03, 0x66, 0x6F, 0x6F, 0x05]
    )
    check_three_ways(data, "decode_amf0_strict_array", [5.0, "foo", None])


def test_decode_date():
    data = bytes([0x0B, 0x40, 0x14, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00])
    check_three_ways(data, "decode_amf0_date", 5.0)


def test_decode_long_string():
    data = bytes([0x0C, 0x00, 0x00, 0x00, 0x03, 0x66, 0x6F, 0x6F])
    check_three_ways(data, "decode_amf0_long_string", "foo")


def test_decode_unsupported():
    dec = Decoder()
    buf = io.BytesIO(bytes([0x0D]))
    assert dec.decode_amf0(buf) is None
    buf.seek(0)
    assert dec.decode_amf0_unsupported(buf, True) is None
    assert buf.tell() == 1


def test_decode_xml_document():
    data = bytes([0x0F, 0x00, 0x00, 0x00, 0x03, 0x66, 0x6F, 0x6F])
    check_three_ways(data, "decode_amf0_xml_document", "foo")


def test_decode_typed_object():
    data = bytes([0x10, 0x00, 0x0F]) + b"org.amf.ASClass" + bytes(
        [0x00, 0x03]) + b"baz" + bytes([0x05, 0x00, 0x03]) + b"foo" + bytes(
        [0x02, 0x00, 0x03]) + b"bar" + bytes([0x00, 0x00, 0x09])
    expect = TypedObject(type="org.amf.ASClass", object={"baz": None, "foo": "bar"})
    check_three_ways(data, "decode_amf0_typed_object", expect)


def test_invalid_boolean_value_raises():
    with pytest.raises(AmfError):
        Decoder().decode_amf0(io.BytesIO(bytes([0x01, 0x02])))


@pytest.mark.parametrize("marker", [0x04, 0x07, 0x0E, 0x7F])
def test_unsupported_markers_raise(marker):
    with pytest.raises(AmfError):
        Decoder().decode_amf0(io.BytesIO(bytes([marker, 0x00, 0x00])))


def test_wrong_marker_raises():
    with pytest.raises(AmfError):
        Decoder().decode_amf0_string(io.BytesIO(bytes([0x00, 0x00, 0x00])), True)


def test_truncated_object_raises():
    with pytest.raises(AmfError):
        Decoder().decode_amf0(io.BytesIO(bytes([0x03, 0x00, 0x03, 0x66, 0x6F])))


def test_unsupported_version_raises():
    with pytest.raises(AmfError):
        Decoder().decode(io.BytesIO(bytes([0x05])), 2)


def test_amf3_switch_marker():
    assert Decoder().decode_amf0(io.BytesIO(bytes([0x11, 0x06, 0x07]) + b"foo")) == "foo"


def test_decode_batch_round_trip():
    values = ["connect", 1.0, {"app": "live"}, None]
    buf = io.BytesIO()
    Encoder().encode_batch(buf, 0, *values)
    buf.seek(0)
    assert Decoder().decode_batch(buf, 0) == values


def test_decode_batch_empty():
    assert Decoder().decode_batch(io.BytesIO(b""), 0) == []


def test_decode_batch_truncated_raises():
    buf = io.BytesIO()
    Encoder().encode_batch(buf, 0, "connect", 1.0)
    data = buf.getvalue()[:-3]
    with pytest.raises(AmfError):
        Decoder().decode_batch(io.BytesIO(data), 0)