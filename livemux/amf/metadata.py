"""Adding and removing the @setDataFrame prefix of script data."""

from __future__ import annotations

import io

from livemux.amf.core import AmfError, Version
from livemux.amf.decoder import Decoder
from livemux.amf.encoder import Encoder

ADD = 0x0
DEL = 0x3

SET_DATA_FRAME = "@setDataFrame"
ON_METADATA = "onMetaData"


def _encoded_set_data_frame() -> bytes:
    buf = io.BytesIO()
    Encoder().encode(buf, SET_DATA_FRAME, Version.AMF0)
    return buf.getvalue()


SET_DATA_FRAME_BYTES = _encoded_set_data_frame()


def metadata_reform(data: bytes, flag: int) -> bytes:
    """Prefix (ADD) or strip (DEL) the encoded @setDataFrame string of script data."""
    if flag not in (ADD, DEL):
        raise AmfError(f"invalid flag:{flag}")
    data = bytes(data)
    first = Decoder().decode(io.BytesIO(data), Version.AMF0)
    if flag == ADD:
        if not isinstance(first, str):
            raise AmfError("setFrameFrame error")
        if first != SET_DATA_FRAME:
            return SET_DATA_FRAME_BYTES + data
        return data
    if not isinstance(first, str):
        raise AmfError("metadata error")
    if first == SET_DATA_FRAME:
        return data[len(SET_DATA_FRAME_BYTES):]
    return data