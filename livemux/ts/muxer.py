"""Packing audio and video packets into MPEG transport stream packets."""

from __future__ import annotations

from typing import BinaryIO

from livemux.av import Packet, VideoPacketHeader
from livemux.ts.crc32 import gen_crc32

TS_DEFAULT_DATA_LEN = 184
TS_PACKET_LEN = 188
H264_DEFAULT_HZ = 90

VIDEO_PID = 0x100
AUDIO_PID = 0x101
VIDEO_SID = 0xE0
AUDIO_SID = 0xC0


def _pes_timestamp(fb: int, ts: int) -> bytes:
    if ts > 0x1FFFFFFFF:
        ts -= 0x1FFFFFFFF
    middle = (((ts >> 15) & 0x7FFF) << 1) | 1
    low = ((ts & 0x7FFF) << 1) | 1
    return bytes(
        (
            ((fb << 4) | (((ts >> 30) & 0x07) << 1) | 1) & 0xFF,
            (middle >> 8) & 0xFF,
            middle & 0xFF,
            (low >> 8) & 0xFF,
            low & 0xFF,
        )
    )


def _pes_header(packet: Packet, data_len: int, pts: int, dts: int) -> bytes:
    sid = VIDEO_SID if packet.is_video else AUDIO_SID
    flag = 0x80
    header_size = 5
    with_dts = packet.is_video and pts != dts
    if with_dts:
        flag |= 0x40
        header_size += 5
    size = data_len + header_size + 3
    if size > 0xFFFF:
        size = 0
    out = bytearray((0x00, 0x00, 0x01, sid))
    out += size.to_bytes(2, "big")
    out += bytes((0x80, flag, header_size))
    out += _pes_timestamp(flag >> 6, pts)
    if with_dts:
        out += _pes_timestamp(1, dts)
    return bytes(out)


def _pcr(pcr: int) -> bytes:
    return bytes(
        (
            (pcr >> 25) & 0xFF,
            (pcr >> 17) & 0xFF,
            (pcr >> 9) & 0xFF,
            (pcr >> 1) & 0xFF,
            ((pcr & 0x1) << 7) | 0x7E,
            0x00,
        )
    )


def _fill_adaptation(buf: bytearray, start: int, remain: int) -> None:
    if remain == 0:
        return
    buf[start] = remain - 1
    if remain > 1:
        buf[start + 1] = 0x00
        buf[start + 2:] = b"\xff" * (len(buf) - start - 2)


class Muxer:
    """Keeps continuity counters and produces TS packets, PAT and PMT tables."""

    def __init__(self) -> None:
        self._video_cc = 0
        self._audio_cc = 0
        self._pat_cc = 0
        self._pmt_cc = 0

    def mux(self, packet: Packet, writer: BinaryIO | None) -> int:
        """Write ``packet`` as 188-byte TS packets to ``writer``; return how many were made."""
        data = bytes(packet.data)
        dts = packet.timestamp * H264_DEFAULT_HZ
        pts = dts
        pid = AUDIO_PID
        header = None
        if packet.is_video:
            pid = VIDEO_PID
            header = packet.header
            if not isinstance(header, VideoPacketHeader):
                raise ValueError("video packet without a video header")
            pts = dts + header.composition_time() * H264_DEFAULT_HZ

        pes_left = _pes_header(packet, len(data), pts, dts)
        remaining = len(data) + len(pes_left)
        written = 0
        first = True
        count = 0

        while remaining > 0:
            if packet.is_video:
                self._video_cc = (self._video_cc + 1) & 0x0F
                cc = self._video_cc
            else:
                self._audio_cc = (self._audio_cc + 1) & 0x0F
                cc = self._audio_cc

            buf = bytearray(TS_PACKET_LEN)
            buf[0] = 0x47
            buf[1] = ((pid >> 8) & 0xFF) | (0x40 if first else 0)
            buf[2] = pid & 0xFF
            buf[3] = 0x10 | cc
            i = 4

            if first and header is not None and header.is_key_frame():
                buf[3] |= 0x20
                buf[4] = 7
                buf[5] = 0x50
                buf[6:12] = _pcr(dts)
                i = 12

            used = i - 4 if first else 0
            if remaining >= TS_DEFAULT_DATA_LEN:
                data_len = TS_DEFAULT_DATA_LEN - used
            else:
                buf[3] |= 0x20
                data_len = remaining
                remain = TS_DEFAULT_DATA_LEN - data_len - used
                if remain < 0:
                    raise ValueError("packet data does not fit the transport stream packet")
                _fill_adaptation(buf, i, remain)
                i += remain

            if first and i < TS_PACKET_LEN and pes_left:
                take = min(TS_PACKET_LEN - i, len(pes_left))
                buf[i:i + take] = pes_left[:take]
                i += take
                remaining -= take
                data_len -= take
                pes_left = pes_left[take:]

            if i < TS_PACKET_LEN:
                data_len = min(TS_PACKET_LEN - i, data_len)
                chunk = data[written:written + data_len]
                buf[i:i + len(chunk)] = chunk
                written += data_len
                remaining -= data_len

            if writer is not None:
                writer.write(bytes(buf))
            count += 1
            first = False

        return count

    def pat(self) -> bytes:
        """Return the next Program Association Table packet."""
        if self._pat_cc > 0xF:
            self._pat_cc = 0
        ts_header = bytes((0x47, 0x40, 0x00, 0x10 | (self._pat_cc & 0x0F), 0x00))
        self._pat_cc += 1
        pat_header = bytes(
            (0x00, 0xB0, 0x0D, 0x00, 0x01, 0xC1, 0x00, 0x00, 0x00, 0x01, 0xF0, 0x01)
        )
        body = ts_header + pat_header + gen_crc32(pat_header).to_bytes(4, "big")
        return body + b"\xff" * (TS_PACKET_LEN - len(body))

    def pmt(self, sound_format: int, has_video: bool) -> bytes:
        """Return the next Program Map Table packet for the given streams."""
        pmt_header = bytearray(
            (0x02, 0xB0, 0xFF, 0x00, 0x01, 0xC1, 0x00, 0x00, 0xE1, 0x00, 0xF0, 0x00)
        )
        if not has_video:
            pmt_header[9] = 0x01
            prog_info = bytearray((0x0F, 0xE1, 0x01, 0xF0, 0x00))
        else:
            prog_info = bytearray(
                (0x1B, 0xE1, 0x00, 0xF0, 0x00, 0x0F, 0xE1, 0x01, 0xF0, 0x00)
            )
        pmt_header[2] = len(prog_info) + 9 + 4

        if self._pmt_cc > 0xF:
            self._pmt_cc = 0
        ts_header = bytes((0x47, 0x50, 0x01, 0x10 | (self._pmt_cc & 0x0F), 0x00))
        self._pmt_cc += 1

        if sound_format in (2, 14):
            if has_video:
                prog_info[5] = 0x04
            else:
                prog_info[0] = 0x04

        section = bytes(pmt_header + prog_info)
        body = ts_header + section + gen_crc32(section).to_bytes(4, "big")
        return body + b"\xff" * (TS_PACKET_LEN - len(body))