"""Multi-threaded zstd compression into independently decodable, size-prefixed frames."""

from __future__ import annotations

import io
import threading
from typing import BinaryIO

import zstandard

from .errors import ErrorCode, ZstdMTError
from .framing import skippable_header

THREAD_MAX = 128
LEVEL_MIN = 1
LEVEL_MAX = 22
LEVEL_DEFAULT = 3

# zstd window log per compression level; the input chunk is twice the window.
_WINDOW_LOG = (
    19, 19, 20, 20, 20,
    21, 21, 21, 21, 21,
    22, 22, 22, 22, 22,
    23, 23, 23, 23, 25,
    26, 27,
)


def default_input_size(level: int) -> int:
    """Return the chunk size used for ``level`` when none is given."""
    if not LEVEL_MIN <= level <= LEVEL_MAX:
        raise ZstdMTError(ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED)
    index = min(level, len(_WINDOW_LOG) - 1)
    return 1 << (_WINDOW_LOG[index] + 1)


def _read_full(reader: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, stopping early only at end of input."""
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


class Compressor:
    """Compress a stream chunk by chunk with a pool of worker threads.

    Each chunk becomes one zstd frame preceded by a 12 byte skippable
    header holding its compressed size; frames are written in input order.
    After :meth:`compress`, ``insize``, ``outsize`` and ``frames`` hold the
    statistics of the run.
    """

    def __init__(self, threads: int = 1, level: int = LEVEL_DEFAULT, inputsize: int = 0) -> None:
        if not 1 <= threads <= THREAD_MAX:
            raise ZstdMTError(ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED)
        if not LEVEL_MIN <= level <= LEVEL_MAX:
            raise ZstdMTError(ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED)
        if inputsize < 0:
            raise ZstdMTError(ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED)
        self.threads = threads
        self.level = level
        self.inputsize = inputsize or default_input_size(level)
        self.insize = 0
        self.outsize = 0
        self.frames = 0
        self._read_count = 0
        self._pending: dict[int, bytes] = {}
        self._read_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._failed = threading.Event()

    def compress(self, reader: BinaryIO, writer: BinaryIO) -> int:
        """Compress everything from ``reader`` into ``writer``; return bytes written."""
        self.insize = 0
        self.outsize = 0
        self.frames = 0
        self._read_count = 0
        self._pending = {}
        self._failed = threading.Event()
        errors: list[Exception] = []

        def run() -> None:
            try:
                self._work(reader, writer)
            except Exception as exc:
                errors.append(exc)
                self._failed.set()

        if self.threads == 1:
            run()
        else:
            workers = [threading.Thread(target=run) for _ in range(self.threads)]
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.join()

        self._pending.clear()
        if errors:
            raise errors[0]
        return self.outsize

    def _work(self, reader: BinaryIO, writer: BinaryIO) -> None:
        compressor = zstandard.ZstdCompressor(level=self.level)
        while not self._failed.is_set():
            with self._read_lock:
                if self._failed.is_set():
                    return
                chunk = _read_full(reader, self.inputsize)
                if not chunk and self._read_count > 0:
                    return
                frame = self._read_count
                self._read_count += 1
                self.insize += len(chunk)

            try:
                payload = compressor.compress(chunk)
            except zstandard.ZstdError as exc:
                raise ZstdMTError(ErrorCode.COMPRESSION_LIBRARY, str(exc)) from exc
            block = skippable_header(len(payload)) + payload

            with self._write_lock:
                self._pending[frame] = block
                while self.frames in self._pending:
                    out = self._pending.pop(self.frames)
                    try:
                        writer.write(out)
                    except OSError as exc:
                        raise ZstdMTError(ErrorCode.WRITE_FAIL) from exc
                    self.outsize += len(out)
                    self.frames += 1


def compress_bytes(data: bytes, threads: int = 1, level: int = LEVEL_DEFAULT) -> bytes:
    """Compress ``data`` in memory and return the framed stream."""
    out = io.BytesIO()
    Compressor(threads, level).compress(io.BytesIO(data), out)
    return out.getvalue()