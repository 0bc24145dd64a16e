"""Decode filesystem-safe encoded names.

Some names cannot be stored verbatim on every filesystem: they are too long,
contain reserved characters or use bytes the target cannot represent.  An
encoded name replaces such a name with a short string drawn only from the
characters ``A-Z``, ``a-z``, ``0-9``, ``-`` and ``_``.

The first character of an encoded name is a *selector* choosing one of 64
tables; the rest is the payload in URL-safe Base-64 without padding.  The
tables range from "no compression" through run-length coding and SCSU (the
Standard Compression Scheme for Unicode) to Huffman coding, either with a
built-in dictionary or with a table carried in the payload itself.  See
:mod:`safename.tables` for the full list.

Decoding fails in one of two ways.  :class:`CorruptedError` means the name is
damaged and cannot be recovered.  :class:`UnsupportedError` means the name
selects a table this version does not know, which usually means it was
written by a newer version.

Example
-------

::

    from safename import decode, encode, Table

    decode("AaGVsbG8udHh0")             # 'hello.txt'
    name = encode(Table.LOWER, "holiday photos")
    assert decode(name) == "holiday photos"

Decoding is thread-safe.  Names are returned as ``str``; byte sequences that
are not valid UTF-8 come back with surrogate escapes, exactly as
:func:`os.fsdecode` would return them.
"""

from .core import Decoder, Strategy, decode, decode_bytes, resolve_strategy
from .encode import encode, encode_bytes
from .errors import CorruptedError, EncodeError, FilenameError, UnsupportedError
from .tables import MAX_LENGTH, Table

__all__ = [
    "Decoder",
    "Strategy",
    "decode",
    "decode_bytes",
    "resolve_strategy",
    "encode",
    "encode_bytes",
    "FilenameError",
    "CorruptedError",
    "UnsupportedError",
    "EncodeError",
    "MAX_LENGTH",
    "Table",
]
