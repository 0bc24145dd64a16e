"""Table identifiers, the selector alphabet and the static dictionaries.

Everything in this module is built once, when it is first imported, and is
read-only afterwards.  Python's import lock guarantees that threads racing
on the first import all see the finished tables.

Table ids
---------
Each encoded name starts with a selector character.  The selector alphabet
is the URL-safe Base-64 alphabet, so there are 64 table ids; the character at
position ``i`` selects table ``i``:

====  ================  ==================================================
id    name              payload
====  ================  ==================================================
0     ``UNCOMPRESSED``  the name bytes verbatim
1     ``SCSU``          Huffman stream whose output is an SCSU stream
2     ``SCSU_PLAIN``    SCSU stream
3     ``RLE``           varint count followed by the byte to repeat
4-7   static            Huffman stream using a built-in dictionary
8-61  (free)            no dictionary yet; reserved for future codecs
62    ``CUSTOM``        Huffman table header followed by a Huffman stream
63    ``RESERVED``      no assigned meaning
====  ================  ==================================================
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Dict, Iterable, Optional, Tuple

from . import huffman, scsu

__all__ = [
    "MAX_LENGTH",
    "NUM_TABLES",
    "SELECTOR_ALPHABET",
    "Table",
    "selector_table",
    "selector_char",
    "static_decoder",
    "static_encoder",
]

logger = logging.getLogger(__name__)

# Longest name, in bytes, any table may produce.
MAX_LENGTH = 256

SELECTOR_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
NUM_TABLES = len(SELECTOR_ALPHABET)


class Table(IntEnum):
    UNCOMPRESSED = 0
    SCSU = 1
    SCSU_PLAIN = 2
    RLE = 3
    LOWER = 4
    MIXED = 5
    HEX = 6
    UTF8 = 7
    CUSTOM = 62
    RESERVED = 63


# Training samples for the static dictionaries.  Changing any of them changes
# the wire format of the matching table id.
LOWER_SAMPLES = (
    "readme.txt",
    "index.html",
    "config.yaml",
    "main.py",
    "notes-2024-01-15.md",
    "photo_0001.jpg",
    "backup.tar.gz",
    "invoice_march.pdf",
    "package-lock.json",
    "thumbnail.png",
    "setup.cfg",
    "changelog",
    "license",
    "video_final.mp4",
    "requirements.txt",
    "docker-compose.yml",
    "meeting notes.docx",
    "budget_2023.xlsx",
    "font-awesome.min.css",
    "app.bundle.js",
    "holiday photos",
    "music",
    "downloads",
    "archive.zip",
    "test_results.csv",
)

MIXED_SAMPLES = (
    "IMG_20240115_093012.JPG",
    "Quarterly Report Q3.docx",
    "MyDocument (1).pdf",
    "README.md",
    "DSC01234.ARW",
    "Screenshot 2024-02-01 at 10.15.32.png",
    "ProjectPlan_v2.xlsx",
    "Annual Budget FY2024.xlsx",
    "Desktop",
    "Program Files",
    "Makefile",
    "LICENSE",
    "CamelCaseClass.java",
    "Meeting Minutes - Board.pdf",
    "VID_20230704_181500.MOV",
    "New Folder (2)",
    "Tax Return 2022 FINAL.pdf",
    "AppData",
    "PhotoLibrary.photoslibrary",
    "Invoice #4711.pdf",
)

HEX_SAMPLES = (
    "d41d8cd98f00b204e9800998ecf8427e",
    "3f2504e0-4f89-11d3-9a0c-0305e82c3301",
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855",
    "a94a8fe5ccb19ba61c4c0873d391e987982fbbd3.bin",
    "0123456789abcdef",
    "7c9e6679-7425-40de-944b-e07fc1f90ae7",
    "deadbeef.cache",
    "5d41402abc4b2a76b9719d911017c592",
    "b1946ac92492d2347c6235b4d2611184.tmp",
    "6f1ed002ab5595859014ebf0951522d9",
)

UTF8_SAMPLES = (
    "café.txt",
    "résumé.pdf",
    "Übersicht.xlsx",
    "naïve façade.md",
    "Ærøskøbing.jpg",
    "señor_niño.doc",
    "Łódź.png",
    "crème brûlée.jpg",
    "Straße Ölmühle.txt",
    "Fotos für Oma",
    "Ελληνικά.txt",
    "Русский текст.doc",
    "Ünïcödé Nämé.mp3",
    "São Paulo.pdf",
    "smörgåsbord.odt",
)

SCSU_SAMPLES = (
    "日本語のファイル.txt",
    "ファイル名",
    "写真フォルダ",
    "中文文件名.pdf",
    "新建文件夹",
    "한국어 문서.hwp",
    "사진",
    "Русский.doc",
    "Документы",
    "ελληνικά.txt",
    "עברית.txt",
    "العربية.pdf",
    "हिन्दी.txt",
    "ภาษาไทย.doc",
    "Tiếng Việt.txt",
)


def _train(samples: Iterable[bytes]) -> huffman.Scratch:
    # Every byte stays encodable; the samples only skew the code lengths.
    counts = [1] * 256
    for sample in samples:
        for byte in sample:
            counts[byte] += 64
    return huffman.build_table(counts)


def _build_static_tables() -> Tuple[Tuple[Optional[huffman.Scratch], ...], Tuple[Optional[huffman.Decoder], ...]]:
    profiles: Dict[int, Iterable[bytes]] = {
        Table.SCSU: (scsu.compress(s) for s in SCSU_SAMPLES),
        Table.LOWER: (s.encode("utf-8") for s in LOWER_SAMPLES),
        Table.MIXED: (s.encode("utf-8") for s in MIXED_SAMPLES),
        Table.HEX: (s.encode("utf-8") for s in HEX_SAMPLES),
        Table.UTF8: (s.encode("utf-8") for s in UTF8_SAMPLES),
    }
    encoders: list = [None] * NUM_TABLES
    decoders: list = [None] * NUM_TABLES
    for table_id, samples in profiles.items():
        scratch = _train(samples)
        encoders[table_id] = scratch
        decoders[table_id] = scratch.decoder()
    logger.debug("built %d static tables", len(profiles))
    return tuple(encoders), tuple(decoders)


def _build_decode_map() -> bytes:
    # 0 means "not a selector"; otherwise the value is table id + 1.
    decode_map = bytearray(256)
    for table_id, char in enumerate(SELECTOR_ALPHABET):
        decode_map[ord(char)] = table_id + 1
    return bytes(decode_map)


_DECODE_MAP = _build_decode_map()
_STATIC_ENCODERS, _STATIC_DECODERS = _build_static_tables()


def selector_table(char: str) -> Optional[int]:
    """Return the table id selected by ``char``, or ``None``."""
    code = ord(char)
    if code > 0xFF:
        return None
    value = _DECODE_MAP[code]
    return value - 1 if value else None


def selector_char(table_id: int) -> str:
    return SELECTOR_ALPHABET[table_id]


def static_decoder(table_id: int) -> Optional[huffman.Decoder]:
    """Return the shared decoder for a static table id, if this build has one."""
    if 0 <= table_id < NUM_TABLES:
        return _STATIC_DECODERS[table_id]
    return None


def static_encoder(table_id: int) -> Optional[huffman.Scratch]:
    if 0 <= table_id < NUM_TABLES:
        return _STATIC_ENCODERS[table_id]
    return None
