"""Unsigned LEB128 varints as used by the run-length table."""

from __future__ import annotations

from typing import Tuple

__all__ = ["VarintError", "encode_uvarint", "decode_uvarint"]

# A 64-bit value never needs more than ten 7-bit groups.
MAX_VARINT_LEN = 10


class VarintError(ValueError):
    """Raised for truncated or overflowing varints."""


def encode_uvarint(value: int) -> bytes:
    if value < 0:
        raise VarintError("negative varint is not supported")
    if value >= 1 << 64:
        raise VarintError("varint overflows 64 bits")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_uvarint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a varint starting at ``offset``.

    Returns ``(value, used)`` where ``used`` is the number of bytes consumed
    (always at least one).  Bytes after the terminating group are left
    untouched.
    """
    value = 0
    shift = 0
    for i in range(offset, len(data)):
        byte = data[i]
        used = i - offset + 1
        if used == MAX_VARINT_LEN and byte > 1:
            raise VarintError("varint overflows 64 bits")
        if byte < 0x80:
            return value | (byte << shift), used
        value |= (byte & 0x7F) << shift
        shift += 7
    raise VarintError("truncated varint")
