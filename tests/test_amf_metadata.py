import io

import pytest

from livemux.amf.core import AmfError
from livemux.amf.decoder import Decoder
from livemux.amf.encoder import Encoder
from livemux.amf.metadata import (
    ADD,
    DEL,
    ON_METADATA,
    SET_DATA_FRAME,
    SET_DATA_FRAME_BYTES,
    metadata_reform,
)


def payload(*values):
    buf = io.BytesIO()
    Encoder().encode_batch(buf, 0, *values)
    return buf.getvalue()


def decode_all(data):
    return Decoder().decode_batch(io.BytesIO(data), 0)


def test_set_data_frame_wire_bytes():
    assert SET_DATA_FRAME_BYTES == b"\x02\x00\x0d" + SET_DATA_FRAME.encode()


def test_add_prefixes_metadata():
    data = payload(ON_METADATA, {"width": 640.0})
    result = metadata_reform(data, ADD)
    assert result == SET_DATA_FRAME_BYTES + data
    assert decode_all(result) == [SET_DATA_FRAME, ON_METADATA, {"width": 640.0}]


def test_add_keeps_already_prefixed():
    data = payload(SET_DATA_FRAME, ON_METADATA, {"width": 640.0})
    assert metadata_reform(data, ADD) == data


def test_del_strips_prefix():
    data = payload(ON_METADATA, {"height": 480.0})
    assert metadata_reform(SET_DATA_FRAME_BYTES + data, DEL) == data


def test_del_keeps_unprefixed():
    data = payload(ON_METADATA, {"height": 480.0})
    assert metadata_reform(data, DEL) == data


def test_add_then_del_round_trip():
    data = payload(ON_METADATA, {"framerate": 30.0, "stereo": True})
    assert metadata_reform(metadata_reform(data, ADD), DEL) == data


@pytest.mark.parametrize("flag", [ADD, DEL])
def test_non_string_first_value_raises(flag):
    with pytest.raises(AmfError):
        metadata_reform(payload(1.0, ON_METADATA), flag)


def test_invalid_flag_raises():
    with pytest.raises(AmfError, match="invalid flag"):
        metadata_reform(payload(ON_METADATA), 1)


@pytest.mark.parametrize("flag", [ADD, DEL])
def test_empty_data_raises(flag):
    with pytest.raises(AmfError):
        metadata_reform(b"", flag)