"""File name handling and checksums used by the command line tool."""

from __future__ import annotations

import zlib

OUT_SUFFIX = ".out"

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


def crc32(data: bytes, crc: int = 0) -> int:
    """Continue the CRC-32 (reflected, polynomial 0xEDB88320) of ``crc`` over ``data``."""
    return zlib.crc32(data, crc) & 0xFFFFFFFF


def has_suffix(filename: str, suffix: str) -> bool:
    """Tell whether ``filename`` ends with ``suffix``."""
    return filename.endswith(suffix)


def add_suffix(filename: str, suffix: str) -> str:
    """Return the name of the compressed file for ``filename``."""
    return filename + suffix


def remove_suffix(filename: str, suffix: str) -> str:
    """Return the name of the decompressed file for ``filename``.

    Without the expected suffix, ``.out`` is appended instead.
    """
    if suffix and filename.endswith(suffix):
        return filename[: -len(suffix)]
    if not suffix:
        return filename
    return filename + OUT_SUFFIX


def str_casestart(a: str, b: str) -> bool:
    """Tell whether ``a`` starts with ``b``, ignoring ASCII letter case."""
    return a.translate(_ASCII_LOWER).startswith(b.translate(_ASCII_LOWER))