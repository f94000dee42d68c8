"""FLV audio and video tag header parsing."""

from __future__ import annotations

from livemux.av import AVC_SEQHDR, FRAME_INTER, FRAME_KEY, SOUND_AAC


class Tag:
    """Media header fields of one FLV audio or video tag."""

    def __init__(self) -> None:
        self._sound_format = 0
        self._sound_rate = 0
        self._sound_size = 0
        self._sound_type = 0
        self._aac_packet_type = 0
        self._frame_type = 0
        self._codec_id = 0
        self._avc_packet_type = 0
        self._composition_time = 0

    def sound_format(self) -> int:
        return self._sound_format

    def aac_packet_type(self) -> int:
        return self._aac_packet_type

    def is_key_frame(self) -> bool:
        return self._frame_type == FRAME_KEY

    def is_seq(self) -> bool:
        """Return whether this is an AVC sequence header on a key frame."""
        return self._frame_type == FRAME_KEY and self._avc_packet_type == AVC_SEQHDR

    def codec_id(self) -> int:
        return self._codec_id

    def composition_time(self) -> int:
        return self._composition_time

    def parse_media_tag_header(self, data: bytes, is_video: bool) -> int:
        """Parse the header at the start of ``data``; return its length in bytes."""
        if is_video:
            return self._parse_video_header(data)
        return self._parse_audio_header(data)

    def _parse_audio_header(self, data: bytes) -> int:
        if len(data) < 1:
            raise ValueError(f"invalid audiodata len={len(data)}")
        flags = data[0]
        self._sound_format = flags >> 4
        self._sound_rate = (flags >> 2) & 0x3
        self._sound_size = (flags >> 1) & 0x1
        self._sound_type = flags & 0x1
        if self._sound_format != SOUND_AAC:
            return 1
        if len(data) < 2:
            raise ValueError(f"invalid audiodata len={len(data)}")
        self._aac_packet_type = data[1]
        return 2

    def _parse_video_header(self, data: bytes) -> int:
        if len(data) < 5:
            raise ValueError(f"invalid videodata len={len(data)}")
        flags = data[0]
        self._frame_type = flags >> 4
        self._codec_id = flags & 0xF
        if self._frame_type not in (FRAME_INTER, FRAME_KEY):
            return 1
        self._avc_packet_type = data[1]
        self._composition_time = int.from_bytes(data[2:5], "big")
        return 5