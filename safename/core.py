"""Decoding of encoded names.

An encoded name is one selector character followed by an unpadded URL-safe
Base-64 payload.  :func:`decode` strips the selector, decodes the Base-64
text and hands ``(table_id, payload)`` to :func:`decode_bytes`, which picks
the strategy for the table:

* ``UNCOMPRESSED`` returns the payload bytes;
* ``SCSU_PLAIN`` decompresses an SCSU stream (:mod:`safename.scsu`);
* ``RLE`` expands a ``(count, byte)`` pair;
* ``CUSTOM`` reads a Huffman table from the payload and decodes the stream
  that follows it;
* static ids decode a Huffman stream with a built-in dictionary.  Table
  ``SCSU`` additionally runs the result through the SCSU decompressor;
* ``RESERVED`` and ids without a decoder raise :class:`UnsupportedError`.

Every other failure is reported as :class:`CorruptedError`.  Errors from the
codecs never escape with their own type.

Names are returned as ``str``.  Byte-oriented tables decode with UTF-8 and
the ``surrogateescape`` error handler, like :func:`os.fsdecode`, so
``name.encode("utf-8", "surrogateescape")`` gives back the exact bytes.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import threading
from enum import Enum
from typing import Callable, Dict, Union

from . import huffman, scsu
from .errors import CorruptedError, FilenameError, UnsupportedError
from .tables import MAX_LENGTH, Table, selector_table, static_decoder
from .varint import VarintError, decode_uvarint

__all__ = ["Decoder", "Strategy", "resolve_strategy", "decode", "decode_bytes"]

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class Strategy(Enum):
    """How a payload is decoded; ``UNKNOWN`` covers every unassigned id."""

    UNCOMPRESSED = "uncompressed"
    RESERVED = "reserved"
    SCSU_PLAIN = "scsu-plain"
    RLE = "rle"
    CUSTOM = "custom"
    STATIC = "static"
    UNKNOWN = "unknown"


_SENTINELS: Dict[int, Strategy] = {
    Table.UNCOMPRESSED: Strategy.UNCOMPRESSED,
    Table.RESERVED: Strategy.RESERVED,
    Table.SCSU_PLAIN: Strategy.SCSU_PLAIN,
    Table.RLE: Strategy.RLE,
    Table.CUSTOM: Strategy.CUSTOM,
}


def resolve_strategy(table_id: int) -> Strategy:
    strategy = _SENTINELS.get(table_id)
    if strategy is not None:
        return strategy
    if static_decoder(table_id) is not None:
        return Strategy.STATIC
    return Strategy.UNKNOWN


# -----------------------------------------------------------------------------
# Base-64 transport
#
_URLSAFE_BODY = re.compile(r"[A-Za-z0-9_-]*")


def _b64_encode(data: bytes) -> str:
    """Encode ``data`` as URL-safe Base-64 with the ``=`` padding stripped."""
    encoded = base64.urlsafe_b64encode(data).decode("ascii")
    return encoded.rstrip("=")


def _b64_decode(data: str) -> bytes:
    """Decode URL-safe Base-64 text, with or without padding.

    Unlike :func:`base64.urlsafe_b64decode` this rejects characters outside
    the URL-safe alphabet (``+`` and ``/`` included) instead of skipping them.

    Raises
    ------
    binascii.Error
        For bad characters, an impossible length or misplaced padding.
    """
    body = data.rstrip("=")
    padding = len(data) - len(body)
    if not _URLSAFE_BODY.fullmatch(body):
        raise binascii.Error("invalid character in base64 payload")
    if len(body) % 4 == 1:
        raise binascii.Error("invalid base64 payload length")
    missing = -len(body) % 4
    if padding and padding != missing:
        raise binascii.Error("incorrect base64 padding")
    return base64.urlsafe_b64decode(body + "=" * missing)


def _fsdecode(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


def _scsu_text(data: bytes) -> str:
    try:
        return scsu.decompress(data, max_chars=MAX_LENGTH)
    except scsu.SCSUError as exc:
        raise CorruptedError(f"bad SCSU stream: {exc}") from exc


class Decoder:
    """Decode encoded names.

    All tables except ``CUSTOM`` are decoded without touching shared state.
    ``CUSTOM`` payloads carry their own Huffman table, which is parsed into
    a scratch table owned by this decoder; the lock serializes those calls.
    Create several decoders if custom-table throughput under contention
    matters.
    """

    def __init__(self) -> None:
        self._scratch = huffman.Scratch()
        self._lock = threading.Lock()
        self._handlers: Dict[Strategy, Callable[[int, bytes], str]] = {
            Strategy.UNCOMPRESSED: self._decode_uncompressed,
            Strategy.RESERVED: self._decode_unsupported,
            Strategy.SCSU_PLAIN: self._decode_scsu_plain,
            Strategy.RLE: self._decode_rle,
            Strategy.CUSTOM: self._decode_custom,
            Strategy.STATIC: self._decode_static,
            Strategy.UNKNOWN: self._decode_unsupported,
        }

    def decode(self, encoded: str) -> str:
        """Decode an encoded name (selector character plus Base-64 payload).

        Raises
        ------
        CorruptedError
            If the name is empty, the selector is unknown, the payload is
            not valid Base-64 or is malformed for its table.
        UnsupportedError
            If the selector names a table this version cannot decode.
        """
        if not encoded:
            raise CorruptedError("empty name")
        table_id = selector_table(encoded[0])
        if table_id is None:
            logger.debug("rejecting %r: unknown selector", encoded)
            raise CorruptedError(f"unknown selector {encoded[0]!r}")
        try:
            payload = _b64_decode(encoded[1:])
        except binascii.Error as exc:
            logger.debug("rejecting %r: %s", encoded, exc)
            raise CorruptedError(f"bad base64 payload: {exc}") from exc
        return self.decode_bytes(table_id, payload)

    def decode_bytes(self, table_id: int, payload: BytesLike) -> str:
        """Decode a payload whose table id is already known.

        Parameters
        ----------
        table_id : int
            The table id, ``0 <= table_id``.  Ids past the selector alphabet
            are treated as tables from a future version.
        payload : bytes-like
            The raw payload (no selector, no Base-64).
        """
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise TypeError("payload must be bytes-like")
        if table_id < 0:
            raise CorruptedError(f"negative table id {table_id}")
        strategy = resolve_strategy(table_id)
        try:
            return self._handlers[strategy](table_id, bytes(payload))
        except FilenameError as exc:
            logger.debug("table %d (%s): %s", table_id, strategy.value, exc)
            raise

    # ---- strategies ----
    def _decode_uncompressed(self, table_id: int, payload: bytes) -> str:
        return _fsdecode(payload)

    def _decode_unsupported(self, table_id: int, payload: bytes) -> str:
        raise UnsupportedError(table_id)

    def _decode_scsu_plain(self, table_id: int, payload: bytes) -> str:
        return _scsu_text(payload)

    def _decode_rle(self, table_id: int, payload: bytes) -> str:
        if len(payload) < 2:
            raise CorruptedError("run-length payload too short")
        try:
            count, _ = decode_uvarint(payload[:-1])
        except VarintError as exc:
            raise CorruptedError(f"bad run-length count: {exc}") from exc
        if count > MAX_LENGTH:
            raise CorruptedError(f"run length {count} exceeds {MAX_LENGTH}")
        return _fsdecode(payload[-1:] * count)

    def _decode_custom(self, table_id: int, payload: bytes) -> str:
        with self._lock:
            try:
                _, body = huffman.read_table(payload, self._scratch)
            except huffman.HuffmanError as exc:
                raise CorruptedError(f"bad custom table: {exc}") from exc
            self._scratch.max_decoded_size = MAX_LENGTH
            try:
                name = self._scratch.decompress_1x(body)
            except huffman.HuffmanError as exc:
                raise CorruptedError(f"bad custom stream: {exc}") from exc
        return _fsdecode(name)

    def _decode_static(self, table_id: int, payload: bytes) -> str:
        decoder = static_decoder(table_id)
        try:
            name = decoder.decompress_1x(payload, MAX_LENGTH)
        except huffman.HuffmanError as exc:
            raise CorruptedError(f"bad stream for table {table_id}: {exc}") from exc
        if table_id == Table.SCSU:
            return _scsu_text(name)
        return _fsdecode(name)


_default_decoder = Decoder()


def decode(encoded: str) -> str:
    """Decode ``encoded`` with the process-wide :class:`Decoder`."""
    return _default_decoder.decode(encoded)


def decode_bytes(table_id: int, payload: BytesLike) -> str:
    """Decode a raw ``(table_id, payload)`` pair with the process-wide :class:`Decoder`."""
    return _default_decoder.decode_bytes(table_id, payload)
