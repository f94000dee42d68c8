import io

import pytest

from livemux.av import Packet
from livemux.flv.tag import Tag
from livemux.ts.crc32 import gen_crc32
from livemux.ts.muxer import TS_PACKET_LEN, Muxer


class _RecordingWriter:
    def __init__(self):
        self.buf = b""
        self.count = 0

    def write(self, data):
        self.count += 1
        self.buf = data
        return len(data)


AUDIO_DATA = bytes([
    0xaf, 0x01, 0x21, 0x19, 0xd3, 0x40, 0x7d, 0x0b, 0x6d, 0x44, 0xae, 0x81,
    0x08, 0x00, 0x89, 0xa0, 0x3e, 0x85, 0xb6, 0x92, 0x57, 0x04, 0x80, 0x00, 0x5b, 0xb7,
    0x78, 0x00, 0x84, 0x00, 0x00, 0x00, 0x00, 0x00, 0x38, 0x30, 0x00, 0x06, 0x00, 0x38,
])


def _video_header(flags=0x17, composition=b"\x00\x00\x00"):
    tag = Tag()
    tag.parse_media_tag_header(bytes((flags, 0x01)) + composition, True)
    return tag


def _payloads(stream):
    out = b""
    for start in range(0, len(stream), TS_PACKET_LEN):
        pkt = stream[start:start + TS_PACKET_LEN]
        offset = 5 + pkt[4] if pkt[3] & 0x20 else 4
        out += pkt[offset:]
    return out


def test_ts_encoder_audio_packet():
    muxer = Muxer()
    w = _RecordingWriter()
    muxer.mux(Packet(is_video=False, data=AUDIO_DATA), w)
    assert w.count == 1
    expected = (
        bytes([0x47, 0x41, 0x01, 0x31, 0x81, 0x00])
        + b"\xff" * 128
        + bytes([0x00, 0x00, 0x01, 0xc0, 0x00, 0x30,
                 0x80, 0x80, 0x05, 0x21, 0x00, 0x01, 0x00, 0x01])
        + AUDIO_DATA
    )
    assert w.buf == expected


def test_mux_without_writer_counts_packets():
    assert Muxer().mux(Packet(data=AUDIO_DATA), None) == 1


def test_video_keyframe_roundtrip():
    payload = bytes(i % 251 for i in range(400))
    out = io.BytesIO()
    count = Muxer().mux(Packet(is_video=True, timestamp=40, header=_video_header(), data=payload), out)
    stream = out.getvalue()
    assert len(stream) == count * TS_PACKET_LEN
    assert all(stream[k] == 0x47 for k in range(0, len(stream), TS_PACKET_LEN))
    assert stream[1] == 0x41 and stream[2] == 0x00
    assert stream[3] & 0x20 and stream[4] == 7 and stream[5] == 0x50
    assert stream[TS_PACKET_LEN + 1] == 0x01
    pes = _payloads(stream)
    assert pes[:4] == bytes((0x00, 0x00, 0x01, 0xE0))
    assert pes[7] == 0x80 and pes[8] == 5
    assert pes[14:] == payload


def test_video_composition_time_adds_dts():
    payload = b"\x65" * 30
    out = io.BytesIO()
    header = _video_header(flags=0x27, composition=b"\x00\x00\x28")
    Muxer().mux(Packet(is_video=True, timestamp=0, header=header, data=payload), out)
    pes = _payloads(out.getvalue())
    assert pes[7] == 0xC0
    assert pes[8] == 10
    assert pes[19:] == payload


def test_continuity_counter_increments():
    muxer = Muxer()
    out = io.BytesIO()
    muxer.mux(Packet(data=AUDIO_DATA), out)
    muxer.mux(Packet(data=AUDIO_DATA), out)
    stream = out.getvalue()
    assert stream[3] & 0x0F == 1
    assert stream[TS_PACKET_LEN + 3] & 0x0F == 2


def test_video_without_header_is_rejected():
    with pytest.raises(ValueError):
        Muxer().mux(Packet(is_video=True, data=b"\x00" * 10), io.BytesIO())


def test_pat_layout_and_crc():
    pat = Muxer().pat()
    assert len(pat) == TS_PACKET_LEN
    assert pat[:5] == bytes((0x47, 0x40, 0x00, 0x10, 0x00))
    assert gen_crc32(pat[5:5 + 12 + 4]) == 0
    assert pat[21:] == b"\xff" * (TS_PACKET_LEN - 21)


def test_pat_counter_wraps():
    muxer = Muxer()
    counters = [muxer.pat()[3] & 0x0F for _ in range(17)]
    assert counters == list(range(16)) + [0]


@pytest.mark.parametrize("has_video,prog_len", [(True, 10), (False, 5)])
def test_pmt_crc(has_video, prog_len):
    pmt = Muxer().pmt(10, has_video)
    assert len(pmt) == TS_PACKET_LEN
    assert pmt[:5] == bytes((0x47, 0x50, 0x01, 0x10, 0x00))
    assert pmt[7] == prog_len + 13
    assert gen_crc32(pmt[5:5 + 12 + prog_len + 4]) == 0


def test_pmt_stream_types():
    muxer = Muxer()
    with_video = muxer.pmt(10, True)
    assert with_video[17] == 0x1B and with_video[22] == 0x0F
    mp3_video = muxer.pmt(2, True)
    assert mp3_video[22] == 0x04
    audio_only = muxer.pmt(14, False)
    assert audio_only[14] == 0x01
    assert audio_only[17] == 0x04
    assert mp3_video[3] & 0x0F == 1