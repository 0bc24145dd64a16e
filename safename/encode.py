"""Encoding of names with a caller-chosen table.

The encoder never picks a table on its own: the caller names one and gets
either a payload (:func:`encode_bytes`) or a complete encoded name
(:func:`encode`) that :mod:`safename.core` decodes back to the input.
"""

from __future__ import annotations

from collections import Counter
from typing import Union

from . import huffman, scsu
from .core import _b64_encode
from .errors import EncodeError, UnsupportedError
from .tables import MAX_LENGTH, NUM_TABLES, Table, selector_char, static_encoder
from .varint import encode_uvarint

__all__ = ["encode", "encode_bytes"]

Name = Union[str, bytes]


def _name_bytes(name: Name) -> bytes:
    if isinstance(name, str):
        return name.encode("utf-8", "surrogateescape")
    if isinstance(name, (bytes, bytearray, memoryview)):
        return bytes(name)
    raise TypeError("name must be str or bytes-like")


def _name_text(name: Name) -> str:
    if isinstance(name, str):
        return name
    try:
        return bytes(name).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EncodeError(f"SCSU tables need valid UTF-8: {exc}") from exc


def _encode_scsu(name: Name) -> bytes:
    try:
        return scsu.compress(_name_text(name))
    except scsu.SCSUError as exc:
        raise EncodeError(f"cannot SCSU-compress name: {exc}") from exc


def _encode_rle(data: bytes) -> bytes:
    symbol = data[:1] or b"\x00"
    if data.count(symbol) != len(data):
        raise EncodeError("run-length table needs a single repeated byte")
    return encode_uvarint(len(data)) + symbol


def _encode_custom(data: bytes) -> bytes:
    counts = [0] * 256
    for byte, count in Counter(data).items():
        counts[byte] = count
    try:
        scratch = huffman.build_table(counts)
        return scratch.write_table() + scratch.compress_1x(data)
    except huffman.HuffmanError as exc:
        raise EncodeError(f"cannot build custom table: {exc}") from exc


def _encode_static(table_id: int, data: bytes) -> bytes:
    scratch = static_encoder(table_id)
    if scratch is None:
        raise UnsupportedError(table_id)
    if len(data) > MAX_LENGTH:
        raise EncodeError(f"stream for table {table_id} exceeds {MAX_LENGTH} bytes")
    if not scratch.can_encode(data):
        raise EncodeError(f"table {table_id} has no code for some bytes of the name")
    return scratch.compress_1x(data)


def encode_bytes(table_id: int, name: Name) -> bytes:
    """Return the payload that encodes ``name`` with table ``table_id``.

    Parameters
    ----------
    table_id : int
        One of the ids in :class:`safename.tables.Table`.
    name : str or bytes
        The name.  Text is converted with UTF-8 and ``surrogateescape``.

    Raises
    ------
    UnsupportedError
        For ``RESERVED`` and ids without an encoder.
    EncodeError
        When the table cannot represent ``name`` (too long, not a single
        repeated byte for ``RLE``, fewer than two distinct bytes or a byte
        above ``0x80`` for ``CUSTOM``, invalid UTF-8 for the SCSU tables).
    """
    data = _name_bytes(name)
    if len(data) > MAX_LENGTH:
        raise EncodeError(f"name is longer than {MAX_LENGTH} bytes")

    if table_id == Table.UNCOMPRESSED:
        return data
    if table_id == Table.SCSU_PLAIN:
        return _encode_scsu(name)
    if table_id == Table.SCSU:
        return _encode_static(table_id, _encode_scsu(name))
    if table_id == Table.RLE:
        return _encode_rle(data)
    if table_id == Table.CUSTOM:
        return _encode_custom(data)
    if table_id == Table.RESERVED:
        raise UnsupportedError(table_id)
    return _encode_static(table_id, data)


def encode(table_id: int, name: Name) -> str:
    """Return ``name`` as an encoded name using table ``table_id``."""
    if not 0 <= table_id < NUM_TABLES:
        raise UnsupportedError(table_id)
    payload = encode_bytes(table_id, name)
    return selector_char(table_id) + _b64_encode(payload)
