"""Checksums carried by LSP data messages."""

from __future__ import annotations

import struct

_MASK16 = 0xFFFF
_MASK32 = 0xFFFFFFFF


def int_to_checksum(value: int) -> int:
    """Return the 16-bit word sum of an integer taken as an unsigned 32-bit value."""
    word = value & _MASK32
    return ((word & _MASK16) + (word >> 16)) & _MASK16


def bytes_checksum(value: bytes) -> int:
    """Return the 32-bit sum of the little-endian 16-bit words of ``value``.

    An odd trailing byte is padded with a zero byte.
    """
    data = bytes(value)
    if len(data) % 2:
        data += b"\x00"
    return sum(word for (word,) in struct.iter_unpack("<H", data)) & _MASK32


def calculate_checksum(conn_id: int, seq_num: int, size: int, payload: bytes) -> int:
    """Return the 16-bit one's complement checksum of a data message's fields."""
    total = (
        int_to_checksum(conn_id)
        + int_to_checksum(seq_num)
        + int_to_checksum(size)
        + bytes_checksum(payload)
    ) & _MASK32
    while total > _MASK16:
        total = (total >> 16) + (total & _MASK16)
    return ~total & _MASK16