"""Standard Compression Scheme for Unicode (SCSU).

SCSU (Unicode Technical Standard #6) represents text as a byte stream in
which most characters of a small alphabet cost a single byte.  The decoder
keeps two pieces of state:

* a *mode*: single-byte mode, where bytes ``0x80-0xFF`` index the active
  dynamic window and ASCII passes through, or Unicode mode, where pairs of
  bytes are big-endian UTF-16 code units;
* eight *dynamic windows*, each a 128 code point block that tag bytes can
  select or redefine.  Eight static windows are available for quoting.

Only :func:`decompress` is needed to read names.  :func:`compress` produces
a valid but deliberately simple stream (pass-through ASCII, window switching,
window definition and a fall back to Unicode mode).  It does not search for
the shortest encoding.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

__all__ = ["SCSUError", "compress", "decompress"]


class SCSUError(ValueError):
    """Raised for malformed or oversized SCSU streams."""


STATIC_WINDOWS = (0x0000, 0x0080, 0x0100, 0x0300, 0x2000, 0x2080, 0x2100, 0x3000)
DYNAMIC_WINDOWS = (0x0080, 0x00C0, 0x0400, 0x0600, 0x0900, 0x3040, 0x30A0, 0xFF00)

# Single-byte mode tags.
SQ0 = 0x01  # SQ0..SQ7: quote one character from window n
SDX = 0x0B  # define extended window
SRS = 0x0C  # reserved
SQU = 0x0E  # quote one UTF-16 unit
SCU = 0x0F  # switch to Unicode mode
SC0 = 0x10  # SC0..SC7: change active window
SD0 = 0x18  # SD0..SD7: define and activate window

# Unicode mode tags.
UC0 = 0xE0  # UC0..UC7: change window, back to single-byte mode
UD0 = 0xE8  # UD0..UD7: define window, back to single-byte mode
UQU = 0xF0  # quote one UTF-16 unit
UDX = 0xF1  # define extended window, back to single-byte mode
URS = 0xF2  # reserved

_PASS_THROUGH_CONTROLS = frozenset((0x00, 0x09, 0x0A, 0x0D))

_SPECIAL_OFFSETS = {
    0xF9: 0x00C0,
    0xFA: 0x0250,
    0xFB: 0x0370,
    0xFC: 0x0530,
    0xFD: 0x3040,
    0xFE: 0x30A0,
    0xFF: 0xFF60,
}


def _window_offset(index: int) -> int:
    """Map the byte following an SDn/UDn tag to a window start."""
    if 0x01 <= index <= 0x67:
        return index << 7
    if 0x68 <= index <= 0xA7:
        return (index << 7) + 0xAC00
    offset = _SPECIAL_OFFSETS.get(index)
    if offset is None:
        raise SCSUError(f"reserved window offset 0x{index:02x}")
    return offset


def _offset_index(cp: int) -> Optional[int]:
    """Inverse of :func:`_window_offset` for the block containing ``cp``."""
    if 0x80 <= cp < 0x3400:
        return cp >> 7
    if 0xE000 <= cp <= 0xFFFF:
        return (cp - 0xAC00) >> 7
    return None


def _extended_window(hi: int, lo: int) -> "tuple[int, int]":
    window = hi >> 5
    offset = 0x10000 + ((((hi & 0x1F) << 8) | lo) << 7)
    return window, offset


def _is_surrogate(cp: int) -> bool:
    return 0xD800 <= cp <= 0xDFFF


def decompress(data: bytes, max_chars: Optional[int] = None) -> str:
    """Decode an SCSU byte stream into text.

    Parameters
    ----------
    data : bytes
        The compressed stream.  An empty stream decodes to ``""``.
    max_chars : int, optional
        Refuse to produce more than this many characters.

    Returns
    -------
    str
        The decoded text.

    Raises
    ------
    SCSUError
        On reserved tags or window offsets, truncated tags, unpaired UTF-16
        surrogates or output beyond ``max_chars``.
    """
    out: List[int] = []
    dynamic = list(DYNAMIC_WINDOWS)
    active = 0
    unicode_mode = False
    pos = 0
    size = len(data)

    def need(count: int) -> bytes:
        nonlocal pos
        if pos + count > size:
            raise SCSUError("truncated stream")
        chunk = data[pos:pos + count]
        pos += count
        return chunk

    def emit(cp: int) -> None:
        # Pair a low surrogate with a pending high surrogate.
        if 0xDC00 <= cp <= 0xDFFF and out and 0xD800 <= out[-1] <= 0xDBFF:
            high = out.pop()
            cp = 0x10000 + ((high - 0xD800) << 10) + (cp - 0xDC00)
        elif out and 0xD800 <= out[-1] <= 0xDBFF:
            raise SCSUError("unpaired high surrogate")
        elif 0xDC00 <= cp <= 0xDFFF:
            raise SCSUError("unpaired low surrogate")
        out.append(cp)
        if max_chars is not None and len(out) > max_chars:
            raise SCSUError(f"decoded text exceeds {max_chars} characters")

    while pos < size:
        tag = data[pos]
        pos += 1
        if not unicode_mode:
            if tag >= 0x80:
                emit(dynamic[active] + tag - 0x80)
            elif tag >= 0x20 or tag in _PASS_THROUGH_CONTROLS:
                emit(tag)
            elif SQ0 <= tag < SQ0 + 8:
                window = tag - SQ0
                (quoted,) = need(1)
                if quoted < 0x80:
                    emit(STATIC_WINDOWS[window] + quoted)
                else:
                    emit(dynamic[window] + quoted - 0x80)
            elif SC0 <= tag < SC0 + 8:
                active = tag - SC0
            elif SD0 <= tag < SD0 + 8:
                active = tag - SD0
                (index,) = need(1)
                dynamic[active] = _window_offset(index)
            elif tag == SDX:
                hi, lo = need(2)
                active, dynamic[active] = _extended_window(hi, lo)
            elif tag == SQU:
                hi, lo = need(2)
                emit((hi << 8) | lo)
            elif tag == SCU:
                unicode_mode = True
            else:
                raise SCSUError(f"reserved tag 0x{tag:02x}")
        else:
            if UC0 <= tag < UC0 + 8:
                active = tag - UC0
                unicode_mode = False
            elif UD0 <= tag < UD0 + 8:
                active = tag - UD0
                (index,) = need(1)
                dynamic[active] = _window_offset(index)
                unicode_mode = False
            elif tag == UQU:
                hi, lo = need(2)
                emit((hi << 8) | lo)
            elif tag == UDX:
                hi, lo = need(2)
                active, dynamic[active] = _extended_window(hi, lo)
                unicode_mode = False
            elif tag == URS:
                raise SCSUError(f"reserved tag 0x{tag:02x}")
            else:
                (lo,) = need(1)
                emit((tag << 8) | lo)

    if out and _is_surrogate(out[-1]):
        raise SCSUError("unpaired high surrogate")
    return "".join(map(chr, out))


def _put_units(out: bytearray, cp: int) -> None:
    """Write ``cp`` as UTF-16 units in Unicode mode."""
    if cp >= 0x10000:
        cp -= 0x10000
        units: Sequence[int] = (0xD800 + (cp >> 10), 0xDC00 + (cp & 0x3FF))
    else:
        units = (cp,)
    for unit in units:
        hi = unit >> 8
        if UC0 <= hi <= URS:
            out.append(UQU)
        out.append(hi)
        out.append(unit & 0xFF)


def _find_window(dynamic: Sequence[int], cp: int) -> Optional[int]:
    for window, base in enumerate(dynamic):
        if base <= cp < base + 0x80:
            return window
    return None


def compress(text: str) -> bytes:
    """Encode ``text`` as an SCSU stream.

    Raises
    ------
    SCSUError
        If ``text`` contains a lone surrogate (for example one produced by
        the ``surrogateescape`` error handler), which SCSU cannot carry.
    """
    chars = [ord(c) for c in text]
    out = bytearray()
    dynamic = list(DYNAMIC_WINDOWS)
    active = 0
    next_window = 1
    unicode_mode = False

    for i, cp in enumerate(chars):
        if _is_surrogate(cp):
            raise SCSUError(f"lone surrogate U+{cp:04X} at position {i}")
        if unicode_mode:
            if (0x20 <= cp < 0x80) or _find_window(dynamic, cp) is not None:
                out.append(UC0 + active)
                unicode_mode = False
            else:
                _put_units(out, cp)
                continue

        if 0x20 <= cp < 0x80 or cp in _PASS_THROUGH_CONTROLS:
            out.append(cp)
            continue
        base = dynamic[active]
        if base <= cp < base + 0x80:
            out.append(cp - base + 0x80)
            continue
        window = _find_window(dynamic, cp)
        if window is not None:
            base = dynamic[window]
            following = chars[i + 1] if i + 1 < len(chars) else None
            if following is not None and base <= following < base + 0x80:
                out.append(SC0 + window)
                active = window
            else:
                out.append(SQ0 + window)
            out.append(cp - base + 0x80)
            continue
        if cp < 0x80:
            out.append(SQ0)
            out.append(cp)
            continue

        index = _offset_index(cp)
        if index is not None or cp >= 0x10000:
            window = next_window
            next_window = (next_window + 1) % 8
            if cp >= 0x10000:
                block = (cp - 0x10000) >> 7
                out.append(SDX)
                out.append((window << 5) | (block >> 8))
                out.append(block & 0xFF)
                dynamic[window] = 0x10000 + (block << 7)
            else:
                out.append(SD0 + window)
                out.append(index)
                dynamic[window] = _window_offset(index)
            active = window
            out.append(cp - dynamic[window] + 0x80)
            continue

        out.append(SCU)
        unicode_mode = True
        _put_units(out, cp)

    return bytes(out)
