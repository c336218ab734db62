"""Detection of the input layout and sequential reading of size-prefixed frames."""

from __future__ import annotations

import threading
from enum import Enum
from typing import BinaryIO, Iterator

from .errors import ErrorCode, ZstdMTError
from .framing import HEADER_SIZE, is_skippable, is_zstd_magic, parse_skippable_header

HEAD_SIZE = 16
"""Number of bytes inspected to tell the stream layout apart."""

_ZSTDMT_PREFIX = 9
_HEADER_REST = HEADER_SIZE - (HEAD_SIZE - _ZSTDMT_PREFIX)


class StreamType(Enum):
    """Layout of a compressed input stream."""

    SINGLE_THREAD = "single"
    MULTI_THREAD = "multi"


def detect_stream_type(head: bytes) -> StreamType:
    """Classify a stream from its first (up to 16) bytes.

    A plain zstd stream is decoded sequentially; a stream that begins with a
    skippable header followed by a zstd frame, or with a 9 byte empty zstd
    frame followed by a skippable header, consists of independent frames.
    """
    if len(head) < HEAD_SIZE:
        if not is_zstd_magic(head):
            raise ZstdMTError(ErrorCode.DATA_ERROR)
        return StreamType.SINGLE_THREAD
    if is_skippable(head) and is_zstd_magic(head[HEADER_SIZE:]):
        return StreamType.MULTI_THREAD
    if is_zstd_magic(head) and is_skippable(head[_ZSTDMT_PREFIX:]):
        return StreamType.MULTI_THREAD
    if is_zstd_magic(head):
        return StreamType.SINGLE_THREAD
    raise ZstdMTError(ErrorCode.DATA_ERROR)


def _read_full(reader: BinaryIO, size: int) -> bytes:
    parts = []
    remaining = size
    while remaining > 0:
        try:
            chunk = reader.read(remaining)
        except OSError as exc:
            raise ZstdMTError(ErrorCode.READ_FAIL) from exc
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


class FrameReader:
    """Read numbered zstd frames from a multi-frame stream.

    ``head`` holds the 16 bytes already consumed while detecting the layout.
    :meth:`read_frame` is safe to call from several threads at once.
    """

    def __init__(self, reader: BinaryIO, head: bytes) -> None:
        self._reader = reader
        self._head = bytes(head)
        self._lock = threading.Lock()
        self.insize = 0
        self.frames = 0

    def __iter__(self) -> Iterator[tuple[int, bytes]]:
        while (frame := self.read_frame()) is not None:
            yield frame

    def read_frame(self) -> tuple[int, bytes] | None:
        """Return ``(frame_number, zstd_frame)`` or ``None`` at end of input."""
        with self._lock:
            if self.frames == 0:
                payload = self._read_first()
            else:
                header = _read_full(self._reader, HEADER_SIZE)
                if not header:
                    return None
                size = parse_skippable_header(header)
                self.insize += HEADER_SIZE
                payload = self._read_payload(size)
            number = self.frames
            self.frames += 1
            return number, payload

    def _read_first(self) -> bytes:
        head = self._head
        if len(head) != HEAD_SIZE:
            raise ZstdMTError(ErrorCode.DATA_ERROR)
        self.insize += HEAD_SIZE

        if is_skippable(head):
            size = parse_skippable_header(head[:HEADER_SIZE])
            start = head[HEADER_SIZE:]
            if size < len(start):
                raise ZstdMTError(ErrorCode.DATA_ERROR)
            return start + self._read_payload(size - len(start))

        rest = _read_full(self._reader, _HEADER_REST)
        if len(rest) != _HEADER_REST:
            raise ZstdMTError(ErrorCode.DATA_ERROR)
        self.insize += _HEADER_REST
        size = parse_skippable_header(head[_ZSTDMT_PREFIX:] + rest)
        return self._read_payload(size)

    def _read_payload(self, size: int) -> bytes:
        data = _read_full(self._reader, size)
        if len(data) != size:
            raise ZstdMTError(ErrorCode.DATA_ERROR)
        self.insize += len(data)
        return data