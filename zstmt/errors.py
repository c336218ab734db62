"""Error codes and the exception raised by the multi-threaded zstd codec."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Failure categories reported by compression and decompression."""

    NO_ERROR = 0
    MEMORY_ALLOCATION = 1
    READ_FAIL = 2
    WRITE_FAIL = 3
    DATA_ERROR = 4
    FRAME_COMPRESS = 5
    FRAME_DECOMPRESS = 6
    COMPRESSION_PARAMETER_UNSUPPORTED = 7
    COMPRESSION_LIBRARY = 8
    CANCELED = 9
    MAX_CODE = 10


_UNSPECIFIED = "Unspecified zstmt error code"

_MESSAGES = {
    ErrorCode.NO_ERROR: "No error detected",
    ErrorCode.MEMORY_ALLOCATION: "Allocation error : not enough memory",
    ErrorCode.READ_FAIL: "Read failure",
    ErrorCode.WRITE_FAIL: "Write failure",
    ErrorCode.DATA_ERROR: "Malformed input",
    ErrorCode.FRAME_COMPRESS: "Could not compress frame at once",
    ErrorCode.FRAME_DECOMPRESS: "Could not decompress frame at once",
    ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED: "Compression parameter is out of bound",
    ErrorCode.COMPRESSION_LIBRARY: "Compression library reports failure",
}


def error_string(code: ErrorCode | int) -> str:
    """Return the human readable message for an error code."""
    try:
        key = ErrorCode(code)
    except ValueError:
        return _UNSPECIFIED
    return _MESSAGES.get(key, _UNSPECIFIED)


class ZstdMTError(Exception):
    """Raised when compression or decompression fails.

    ``detail`` carries the message of the underlying compression library,
    which takes precedence over the generic message of ``code``.
    """

    def __init__(self, code: ErrorCode | int, detail: str | None = None) -> None:
        try:
            self.code: ErrorCode | int = ErrorCode(code)
        except ValueError:
            self.code = code
        self.detail = detail
        super().__init__(detail if detail else error_string(code))