"""AAC sequence header parsing and ADTS framing."""

from __future__ import annotations

from typing import BinaryIO

from livemux.av import AAC_RAW, AAC_SEQHDR

AAC_RATES = (96000, 88200, 64000, 48000, 44100, 32000, 24000, 22050, 16000, 12000, 11025, 8000, 7350)

ADTS_HEADER_LEN = 7


class AacParser:
    """Reads the AudioSpecificConfig and wraps raw AAC frames in ADTS headers."""

    def __init__(self) -> None:
        self._has_specific = False
        self._object_type = 0
        self._sample_rate_index = 0
        self._channel = 0

    def _specific_info(self, data: bytes) -> None:
        if len(data) < 2:
            raise ValueError("audio mpegspecific error")
        self._has_specific = True
        self._object_type = data[0] >> 3
        self._sample_rate_index = ((data[0] & 0x07) << 1) | (data[1] >> 7)
        self._channel = (data[1] >> 3) & 0x0F

    def _adts(self, data: bytes, writer: BinaryIO) -> None:
        if not data or not self._has_specific:
            raise ValueError("audiodata  invalid")
        frame_len = (len(data) + ADTS_HEADER_LEN) & 0xFFFF
        header = bytes(
            (
                0xFF,
                0xF1,
                ((((self._object_type - 1) & 0xFF) << 6) | (self._sample_rate_index << 2)) & 0xFF,
                ((((self._channel << 2) & 0xFF) << 4) & 0xFF)
                | (((frame_len << 3) & 0xFFFF) >> 14),
                ((frame_len << 5) & 0xFFFF) >> 8,
                (((((frame_len << 13) & 0xFFFF) >> 13) << 5) & 0xFF) | 0x1F,
                0xFC,
            )
        )
        writer.write(header)
        writer.write(bytes(data))

    def sample_rate(self) -> int:
        """Return the configured sample rate, or 44100 for an unknown index."""
        if self._sample_rate_index < len(AAC_RATES):
            return AAC_RATES[self._sample_rate_index]
        return 44100

    def parse(self, data: bytes, packet_type: int, writer: BinaryIO) -> None:
        """Read a sequence header, or write a raw frame to ``writer`` as ADTS."""
        if packet_type == AAC_SEQHDR:
            self._specific_info(data)
        elif packet_type == AAC_RAW:
            self._adts(data, writer)