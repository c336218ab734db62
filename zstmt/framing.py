"""Frame magic numbers and the skippable frame header that prefixes each chunk."""

from __future__ import annotations

import struct

from .errors import ErrorCode, ZstdMTError

ZSTD_MAGICNUMBER_V01 = 0x1EB52FFD
ZSTD_MAGICNUMBER_MIN = 0xFD2FB522
ZSTD_MAGICNUMBER_MAX = 0xFD2FB528
MAGIC_SKIPPABLE = 0x184D2A50

HEADER_SIZE = 12
"""Skippable magic, user data length (always 4), compressed frame size."""

_USER_DATA_SIZE = 4
_HEADER = struct.Struct("<III")
_LE32 = struct.Struct("<I")
_U32_MAX = 0xFFFFFFFF


def _read_le32(data: bytes) -> int | None:
    if len(data) < 4:
        return None
    return _LE32.unpack_from(data)[0]


def is_zstd_magic(data: bytes) -> bool:
    """Tell whether the first four bytes are a zstd frame magic number."""
    magic = _read_le32(data)
    if magic is None:
        return False
    if magic == ZSTD_MAGICNUMBER_V01:
        return True
    return ZSTD_MAGICNUMBER_MIN <= magic <= ZSTD_MAGICNUMBER_MAX


def is_skippable(data: bytes) -> bool:
    """Tell whether the first four bytes are the skippable frame magic."""
    return _read_le32(data) == MAGIC_SKIPPABLE


def skippable_header(size: int) -> bytes:
    """Build the 12 byte header announcing a compressed frame of ``size`` bytes."""
    if not 0 <= size <= _U32_MAX:
        raise ValueError(f"frame size out of range: {size}")
    return _HEADER.pack(MAGIC_SKIPPABLE, _USER_DATA_SIZE, size)


def parse_skippable_header(data: bytes) -> int:
    """Return the compressed frame size announced by a 12 byte header."""
    if len(data) != HEADER_SIZE:
        raise ZstdMTError(ErrorCode.READ_FAIL)
    if not is_skippable(data):
        raise ZstdMTError(ErrorCode.DATA_ERROR)
    return _HEADER.unpack(data)[2]