"""The MPEG-2 CRC-32 used by transport stream tables."""

from __future__ import annotations

_POLY = 0x04C11DB7
_MASK = 0xFFFFFFFF


def _make_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        crc = i << 24
        for _ in range(8):
            crc = ((crc << 1) ^ _POLY) if crc & 0x80000000 else (crc << 1)
            crc &= _MASK
        table.append(crc)
    return tuple(table)


_TABLE = _make_table()


def gen_crc32(data: bytes) -> int:
    """Return the CRC-32/MPEG-2 of ``data`` (initial value 0xFFFFFFFF, no final xor)."""
    crc = _MASK
    for byte in bytes(data):
        crc = ((crc << 8) & _MASK) ^ _TABLE[((crc >> 24) ^ byte) & 0xFF]
    return crc