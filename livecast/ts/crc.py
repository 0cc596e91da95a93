"""The CRC-32 used by MPEG-TS program tables."""

from __future__ import annotations

_POLY = 0x04C11DB7


def _make_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        crc = i << 24
        for _ in range(8):
            crc = ((crc << 1) ^ _POLY) if crc & 0x80000000 else (crc << 1)
            crc &= 0xFFFFFFFF
        table.append(crc)
    return tuple(table)


_TABLE = _make_table()


def gen_crc32(data: bytes) -> int:
    """MSB-first CRC-32 with initial value 0xFFFFFFFF and no final xor."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = ((crc << 8) & 0xFFFFFFFF) ^ _TABLE[((crc >> 24) ^ byte) & 0xFF]
    return crc