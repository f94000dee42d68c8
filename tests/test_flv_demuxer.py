import pytest

from livemux import av
from livemux.flv.demuxer import AvcEndSequence, Demuxer
from livemux.flv.tag import Tag


def test_demux_strips_video_header():
    payload = b"\x00\x00\x00\x02\x65\x23"
    packet = av.Packet(is_video=True, data=b"\x17\x01\x00\x00\x00" + payload)
    result = Demuxer().demux(packet)
    assert result is packet
    assert packet.data == payload
    assert isinstance(packet.header, Tag)
    assert packet.header.is_key_frame() is True
    assert packet.header.codec_id() == av.VIDEO_H264


def test_demux_strips_aac_header():
    packet = av.Packet(is_audio=True, data=b"\xaf\x00\x12\x10")
    Demuxer().demux(packet)
    assert packet.data == b"\x12\x10"
    assert packet.header.aac_packet_type() == av.AAC_SEQHDR


def test_demux_header_keeps_data():
    data = b"\x27\x01\x00\x00\x00\x11"
    packet = av.Packet(is_video=True, data=data)
    Demuxer().demux_header(packet)
    assert packet.data == data
    assert packet.header.is_key_frame() is False


def test_end_of_sequence_raises():
    packet = av.Packet(is_video=True, data=b"\x17\x02\x00\x00\x00")
    with pytest.raises(AvcEndSequence, match="avc end sequence"):
        Demuxer().demux(packet)
    assert packet.header is None


def test_short_packet_raises():
    with pytest.raises(ValueError):
        Demuxer().demux(av.Packet(is_video=True, data=b"\x17\x01"))