"""Splitting FLV media tag headers off packet data."""

from __future__ import annotations

from livemux.av import VIDEO_H264, Packet
from livemux.flv.tag import Tag


class AvcEndSequence(Exception):
    """Raised when a packet is an AVC end-of-sequence tag."""

    def __init__(self) -> None:
        super().__init__("avc end sequence")


class Demuxer:
    """Parses tag headers of packets in place."""

    def demux_header(self, packet: Packet) -> Packet:
        """Attach the parsed header to ``packet`` and leave its data as is."""
        tag = Tag()
        tag.parse_media_tag_header(packet.data, packet.is_video)
        packet.header = tag
        return packet

    def demux(self, packet: Packet) -> Packet:
        """Attach the parsed header to ``packet`` and strip it from the data."""
        tag = Tag()
        n = tag.parse_media_tag_header(packet.data, packet.is_video)
        if tag.codec_id() == VIDEO_H264 and packet.data[0] == 0x17 and packet.data[1] == 0x02:
            raise AvcEndSequence()
        packet.header = tag
        packet.data = packet.data[n:]
        return packet