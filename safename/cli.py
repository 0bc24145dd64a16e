"""Command line entry point.

Decode or encode names from a shell::

    python -m safename decode AaGVsbG8udHh0
    python -m safename encode --table 4 "report final.txt"
"""

from __future__ import annotations

import argparse
import logging
import sys

from .core import decode
from .encode import encode
from .errors import CorruptedError, FilenameError, UnsupportedError


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="safename",
        description="Decode and encode filesystem-safe encoded names.",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log why names are rejected.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    dec = sub.add_parser("decode", help="Decode encoded names.")
    dec.add_argument("names", nargs="+", help="Encoded names to decode.")

    enc = sub.add_parser("encode", help="Encode names with a given table.")
    enc.add_argument(
        "--table",
        "-t",
        type=int,
        required=True,
        help="Table id to encode with (0-63).",
    )
    enc.add_argument("names", nargs="+", help="Names to encode.")

    return p


def _error_kind(exc: FilenameError) -> str:
    if isinstance(exc, CorruptedError):
        return "corrupted"
    if isinstance(exc, UnsupportedError):
        return "unsupported"
    return "error"


def _write_name(name: str) -> None:
    # Names may carry surrogate escapes; write back their original bytes.
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is None:
        sys.stdout.write(name + "\n")
        return
    sys.stdout.flush()
    buffer.write(name.encode("utf-8", "surrogateescape") + b"\n")
    buffer.flush()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    convert = decode if args.command == "decode" else lambda name: encode(args.table, name)
    failed = 0
    for name in args.names:
        try:
            _write_name(convert(name))
        except FilenameError as exc:
            failed += 1
            print(f"{name}: {_error_kind(exc)}: {exc}", file=sys.stderr)
    return 1 if failed else 0
