"""Canonical prefix-code (Huffman) coding in the huff0 wire format.

The format is the one Zstandard uses for literal blocks:

Table header
    One header byte ``h``.  If ``h >= 128`` the next ``h - 127`` symbol
    weights follow directly, packed two per byte with the first weight in the
    high nibble.  Otherwise the weights are FSE-compressed in the next ``h``
    bytes.  The weight of the final symbol is never stored; it is implied by
    the requirement that the code be complete.

Single stream ("1X")
    Codes are written forward and read backward.  The last byte carries an
    end-marker bit (its highest set bit), and decoding starts just below it.
    The first symbol of the output is the first one read.

A symbol with weight ``w > 0`` gets a code of ``table_log + 1 - w`` bits.
Decoding peeks ``table_log`` bits and looks the value up in a table with one
entry per possible peek.

Two decoder flavours share the format:

* :class:`Scratch` is mutable.  :func:`read_table` loads a table parsed from
  a payload into it, after which :meth:`Scratch.decompress_1x` decodes with
  it.  A scratch object is reused from call to call, so it must not be shared
  between threads without a lock.
* :class:`Decoder` is immutable and built once from a scratch table with
  :meth:`Scratch.decoder`.  It is safe to share between threads.

The encoder half (:func:`build_table`, :meth:`Scratch.write_table`,
:meth:`Scratch.compress_1x`) only writes directly stored weights.
"""

from __future__ import annotations

import heapq
from typing import List, Optional, Sequence, Tuple

__all__ = [
    "HuffmanError",
    "MaxDecodedSizeExceeded",
    "Scratch",
    "Decoder",
    "read_table",
    "build_table",
    "TABLE_LOG_MAX",
]

# Longest code, in bits, huff0 accepts.
TABLE_LOG_MAX = 11

# Output limit used when a Scratch is not given one explicitly.
BLOCK_SIZE_MAX = 1 << 17

# Weights may be FSE-compressed with at most this accuracy.
_WEIGHTS_ACCURACY_LOG_MAX = 6
_MAX_SYMBOL_VALUE = 255


class HuffmanError(ValueError):
    """Raised for malformed tables or streams."""


class MaxDecodedSizeExceeded(HuffmanError):
    """Raised when a stream decodes to more bytes than allowed."""


# -----------------------------------------------------------------------------
# Bit readers
#
class _ForwardBitReader:
    """Read little-endian bit fields from the start of a buffer.

    Bits past the end of the buffer read as zero; callers check
    :attr:`bytes_used` afterwards.
    """

    def __init__(self, data: bytes) -> None:
        self._value = int.from_bytes(data, "little")
        self.bits_read = 0

    def peek(self, count: int) -> int:
        return (self._value >> self.bits_read) & ((1 << count) - 1)

    def skip(self, count: int) -> None:
        self.bits_read += count

    def read(self, count: int) -> int:
        value = self.peek(count)
        self.bits_read += count
        return value

    @property
    def bytes_used(self) -> int:
        return (self.bits_read + 7) >> 3


class _ReverseBitReader:
    """Read bit fields from the end of a buffer towards its start.

    The highest set bit of the last byte marks the end of the stream.  Reads
    that run past the first bit are padded with zeros and leave
    :attr:`remaining` negative.
    """

    def __init__(self, data: bytes) -> None:
        if not data:
            raise HuffmanError("empty bitstream")
        last = data[-1]
        if last == 0:
            raise HuffmanError("corrupt stream: did not find end of stream")
        self._value = int.from_bytes(data, "little")
        self.remaining = (len(data) - 1) * 8 + last.bit_length() - 1

    def peek(self, count: int) -> int:
        start = self.remaining - count
        mask = (1 << count) - 1
        if start >= 0:
            return (self._value >> start) & mask
        return (self._value << -start) & mask

    def skip(self, count: int) -> None:
        self.remaining -= count

    def read(self, count: int) -> int:
        if not count:
            return 0
        value = self.peek(count)
        self.remaining -= count
        return value

    @property
    def overflowed(self) -> bool:
        return self.remaining < 0


# -----------------------------------------------------------------------------
# FSE-compressed weights
#
def _read_ncount(data: bytes, max_symbol: int, max_log: int) -> Tuple[List[int], int, int]:
    """Parse an FSE table description.

    Returns the normalized counts (``-1`` marks a "less than one"
    probability), the accuracy log and the number of bytes consumed.
    """
    if not data:
        raise HuffmanError("missing FSE table description")
    reader = _ForwardBitReader(data)
    accuracy_log = reader.read(4) + 5
    if accuracy_log > max_log:
        raise HuffmanError(f"FSE accuracy log {accuracy_log} exceeds {max_log}")

    remaining = (1 << accuracy_log) + 1
    threshold = 1 << accuracy_log
    nbits = accuracy_log + 1
    norm: List[int] = []
    previous_zero = False

    while remaining > 1 and len(norm) <= max_symbol:
        if previous_zero:
            # Runs of zero probabilities use 2-bit repeat flags.
            upto = len(norm)
            flag = reader.read(2)
            while flag == 3:
                upto += 3
                flag = reader.read(2)
            upto += flag
            if upto > max_symbol:
                raise HuffmanError("FSE zero run past the last symbol")
            norm.extend([0] * (upto - len(norm)))

        largest = (2 * threshold - 1) - remaining
        low = reader.peek(nbits - 1)
        if low < largest:
            count = low
            reader.skip(nbits - 1)
        else:
            count = reader.peek(nbits)
            if count >= threshold:
                count -= largest
            reader.skip(nbits)

        count -= 1
        remaining -= abs(count)
        if remaining < 1:
            raise HuffmanError("FSE probabilities overflow the table")
        norm.append(count)
        previous_zero = count == 0
        while remaining < threshold:
            nbits -= 1
            threshold >>= 1

    if remaining != 1:
        raise HuffmanError("FSE probabilities do not fill the table")
    return norm, accuracy_log, reader.bytes_used


def _build_fse_table(norm: Sequence[int], accuracy_log: int) -> List[Tuple[int, int, int]]:
    """Build ``(symbol, nbits, base)`` decoding states for ``norm``."""
    size = 1 << accuracy_log
    mask = size - 1
    high = size - 1
    symbols = [0] * size
    next_state = [0] * len(norm)

    for symbol, count in enumerate(norm):
        if count == -1:
            symbols[high] = symbol
            high -= 1
            next_state[symbol] = 1
        else:
            next_state[symbol] = count

    step = (size >> 1) + (size >> 3) + 3
    position = 0
    for symbol, count in enumerate(norm):
        for _ in range(count):
            symbols[position] = symbol
            position = (position + step) & mask
            while position > high:
                position = (position + step) & mask
    if position != 0:
        raise HuffmanError("FSE symbol spread is inconsistent")

    table = []
    for state in range(size):
        symbol = symbols[state]
        current = next_state[symbol]
        next_state[symbol] += 1
        nbits = accuracy_log - (current.bit_length() - 1)
        table.append((symbol, nbits, (current << nbits) - size))
    return table


def _decode_fse_weights(data: bytes) -> List[int]:
    norm, accuracy_log, used = _read_ncount(data, _MAX_SYMBOL_VALUE, _WEIGHTS_ACCURACY_LOG_MAX)
    if used >= len(data):
        raise HuffmanError("FSE weights have no bitstream")
    table = _build_fse_table(norm, accuracy_log)

    reader = _ReverseBitReader(data[used:])
    states = [reader.read(accuracy_log), reader.read(accuracy_log)]
    if reader.overflowed:
        raise HuffmanError("FSE bitstream too short")

    # Two interleaved states; when the stream runs dry the other state
    # still holds one final symbol.
    weights: List[int] = []
    turn = 0
    while True:
        if len(weights) > _MAX_SYMBOL_VALUE - 2:
            raise HuffmanError("too many FSE-compressed weights")
        symbol, nbits, base = table[states[turn]]
        weights.append(symbol)
        states[turn] = base + reader.read(nbits)
        if reader.overflowed:
            weights.append(table[states[1 - turn]][0])
            return weights
        turn = 1 - turn


# -----------------------------------------------------------------------------
# Tables
#
def _read_weights(data: bytes) -> Tuple[List[int], int]:
    if not data:
        raise HuffmanError("missing table header")
    header = data[0]
    if header >= 128:
        count = header - 127
        size = (count + 1) // 2
        if len(data) < 1 + size:
            raise HuffmanError("truncated table header")
        weights = []
        for i in range(count):
            byte = data[1 + i // 2]
            weights.append(byte >> 4 if i % 2 == 0 else byte & 0x0F)
        return weights, 1 + size
    if header == 0 or len(data) < 1 + header:
        raise HuffmanError("truncated table header")
    return _decode_fse_weights(data[1:1 + header]), 1 + header


def _complete_weights(weights: Sequence[int]) -> Tuple[List[int], int]:
    """Append the implied last weight and return ``(weights, table_log)``."""
    if not weights or len(weights) > _MAX_SYMBOL_VALUE:
        raise HuffmanError("invalid number of weights")
    total = 0
    for weight in weights:
        if weight > TABLE_LOG_MAX:
            raise HuffmanError(f"weight {weight} exceeds {TABLE_LOG_MAX}")
        if weight:
            total += 1 << (weight - 1)
    if total == 0:
        raise HuffmanError("table has no symbols")
    table_log = total.bit_length()
    if table_log > TABLE_LOG_MAX:
        raise HuffmanError(f"table log {table_log} exceeds {TABLE_LOG_MAX}")
    rest = (1 << table_log) - total
    if rest & (rest - 1):
        raise HuffmanError("incomplete prefix code")
    completed = list(weights)
    completed.append(rest.bit_length())
    ones = completed.count(1)
    if ones < 2 or ones & 1:
        raise HuffmanError("invalid prefix code tree")
    return completed, table_log


def _build_tables(weights: Sequence[int], table_log: int):
    """Return the decoding table and the per-symbol ``(code, nbits)`` list."""
    rank_start = [0] * (TABLE_LOG_MAX + 2)
    for weight in weights:
        rank_start[weight] += 1
    position = 0
    for weight in range(1, table_log + 1):
        count = rank_start[weight]
        rank_start[weight] = position
        position += count << (weight - 1)

    table: List[Tuple[int, int]] = [(0, 0)] * (1 << table_log)
    codes: List[Tuple[int, int]] = [(0, 0)] * len(weights)
    for symbol, weight in enumerate(weights):
        if not weight:
            continue
        span = 1 << (weight - 1)
        start = rank_start[weight]
        nbits = table_log + 1 - weight
        entry = (symbol, nbits)
        for index in range(start, start + span):
            table[index] = entry
        codes[symbol] = (start >> (weight - 1), nbits)
        rank_start[weight] += span
    return tuple(table), codes


def _decompress_1x(table: Sequence[Tuple[int, int]], table_log: int, data: bytes, max_size: int) -> bytes:
    reader = _ReverseBitReader(data)
    # Every symbol costs at least one bit and at most table_log bits.
    if reader.remaining > max_size * table_log:
        raise MaxDecodedSizeExceeded(f"stream decodes to more than {max_size} bytes")
    out = bytearray()
    while reader.remaining > 0:
        symbol, nbits = table[reader.peek(table_log)]
        reader.skip(nbits)
        out.append(symbol)
        if len(out) > max_size:
            raise MaxDecodedSizeExceeded(f"stream decodes to more than {max_size} bytes")
    if reader.overflowed:
        raise HuffmanError("stream read past its start")
    return bytes(out)


class Decoder:
    """An immutable, thread-safe prefix-code decoder."""

    __slots__ = ("table_log", "_table")

    def __init__(self, table_log: int, table: Tuple[Tuple[int, int], ...]) -> None:
        self.table_log = table_log
        self._table = table

    def decompress_1x(self, data: bytes, max_decoded_size: int) -> bytes:
        return _decompress_1x(self._table, self.table_log, data, max_decoded_size)


class Scratch:
    """Reusable table state for parsing, encoding and decoding.

    Attributes
    ----------
    max_decoded_size : int
        Output limit applied by :meth:`decompress_1x`.
    weights : tuple of int
        Weight of every symbol up to the highest one in the table.
    table_log : int
        Length in bits of the longest code.
    """

    def __init__(self) -> None:
        self.max_decoded_size = BLOCK_SIZE_MAX
        self.weights: Tuple[int, ...] = ()
        self.table_log = 0
        self._table: Tuple[Tuple[int, int], ...] = ()
        self._codes: List[Tuple[int, int]] = []

    def load_weights(self, weights: Sequence[int], table_log: int) -> None:
        self._table, self._codes = _build_tables(weights, table_log)
        self.weights = tuple(weights)
        self.table_log = table_log

    def _require_table(self) -> None:
        if not self.table_log:
            raise HuffmanError("no table loaded")

    def decompress_1x(self, data: bytes) -> bytes:
        self._require_table()
        return _decompress_1x(self._table, self.table_log, data, self.max_decoded_size)

    def decoder(self) -> Decoder:
        """Freeze the current table into a shareable :class:`Decoder`."""
        self._require_table()
        return Decoder(self.table_log, self._table)

    def can_encode(self, data: bytes) -> bool:
        codes = self._codes
        return all(b < len(codes) and codes[b][1] for b in data)

    def compress_1x(self, data: bytes) -> bytes:
        """Encode ``data`` as a single stream with the current table."""
        self._require_table()
        codes = self._codes
        acc = 0
        nbits = 0
        for byte in reversed(data):
            if byte >= len(codes) or not codes[byte][1]:
                raise HuffmanError(f"symbol 0x{byte:02x} is not in the table")
            code, length = codes[byte]
            acc |= code << nbits
            nbits += length
        acc |= 1 << nbits
        nbits += 1
        return acc.to_bytes((nbits + 7) >> 3, "little")

    def write_table(self) -> bytes:
        """Serialize the table with directly stored weights."""
        self._require_table()
        count = len(self.weights) - 1
        if count > 128:
            raise HuffmanError("symbols above 128 need FSE-compressed weights")
        out = bytearray([127 + count])
        for i in range(0, count, 2):
            high = self.weights[i]
            low = self.weights[i + 1] if i + 1 < count else 0
            out.append((high << 4) | low)
        return bytes(out)


def read_table(data: bytes, scratch: Optional[Scratch] = None) -> Tuple[Scratch, bytes]:
    """Parse a table header at the start of ``data``.

    Parameters
    ----------
    data : bytes
        A table header followed by anything else (usually a 1X stream).
    scratch : Scratch, optional
        Object to load the table into.  A new one is created if omitted.

    Returns
    -------
    tuple
        The loaded scratch object and the bytes following the header.
    """
    weights, used = _read_weights(data)
    weights, table_log = _complete_weights(weights)
    if scratch is None:
        scratch = Scratch()
    scratch.load_weights(weights, table_log)
    return scratch, data[used:]


def _code_lengths(counts: Sequence[int]) -> List[int]:
    lengths = [0] * len(counts)
    heap = [(count, symbol, (symbol,)) for symbol, count in enumerate(counts) if count]
    heapq.heapify(heap)
    while len(heap) > 1:
        count_a, tie_a, group_a = heapq.heappop(heap)
        count_b, tie_b, group_b = heapq.heappop(heap)
        for symbol in group_a + group_b:
            lengths[symbol] += 1
        heapq.heappush(heap, (count_a + count_b, min(tie_a, tie_b), group_a + group_b))
    return lengths


def build_table(counts: Sequence[int], scratch: Optional[Scratch] = None) -> Scratch:
    """Build a length-limited canonical code from symbol ``counts``.

    ``counts[s]`` is the frequency of byte ``s``; at least two symbols must
    have a non-zero count.
    """
    if len(counts) > _MAX_SYMBOL_VALUE + 1:
        raise HuffmanError("too many symbols")
    used = [i for i, count in enumerate(counts) if count]
    if len(used) < 2:
        raise HuffmanError("at least two distinct symbols are required")
    counts = list(counts[:used[-1] + 1])
    lengths = _code_lengths(counts)
    while max(lengths) > TABLE_LOG_MAX:
        # Flatten the distribution until the longest code fits.
        counts = [(count + 1) // 2 for count in counts]
        lengths = _code_lengths(counts)
    table_log = max(lengths)
    weights = [table_log + 1 - length if length else 0 for length in lengths]
    if scratch is None:
        scratch = Scratch()
    scratch.load_weights(weights, table_log)
    return scratch
