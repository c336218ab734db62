"""Multi-threaded zstd decompression of framed and plain zstd streams."""

from __future__ import annotations

import io
import struct
import threading
from typing import BinaryIO

import zstandard

from .errors import ErrorCode, ZstdMTError
from .framereader import HEAD_SIZE, FrameReader, StreamType, detect_stream_type

THREAD_MAX = 128
DEFAULT_INPUT_SIZE = 1024 * 512

_EMPTY_FRAME_SIZE = 9
_SKIPPABLE_MASK = 0xFFFFFFF0
_SKIPPABLE_BASE = 0x184D2A50
_SKIPPABLE_HEADER = 8
_PROBE_SIZE = 8
_LE32 = struct.Struct("<I")


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


def _feed(obj, data: bytes) -> bytes:
    try:
        return obj.decompress(data)
    except zstandard.ZstdError as exc:
        raise ZstdMTError(ErrorCode.COMPRESSION_LIBRARY, str(exc)) from exc


def _decode_frame(dctx: zstandard.ZstdDecompressor, payload: bytes) -> bytes:
    obj = dctx.decompressobj()
    out = _feed(obj, payload)
    if not obj.eof:
        raise ZstdMTError(ErrorCode.COMPRESSION_LIBRARY, "incomplete zstd frame")
    return out


class Decompressor:
    """Decompress a zstd stream, using worker threads for framed input.

    Streams made of size-prefixed frames are decoded in parallel with the
    frames written in input order; plain zstd streams, or any stream when
    only one thread is requested, are decoded sequentially. After
    :meth:`decompress`, ``insize``, ``outsize`` and ``frames`` hold the
    statistics of the run; ``frames`` counts frames decoded in parallel.
    """

    def __init__(self, threads: int = 1, inputsize: int = 0) -> None:
        if not 1 <= threads <= THREAD_MAX:
            raise ZstdMTError(ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED)
        if inputsize < 0:
            raise ZstdMTError(ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED)
        self.threads = threads
        self.inputsize = inputsize or DEFAULT_INPUT_SIZE
        self.insize = 0
        self.outsize = 0
        self.frames = 0

    def decompress(self, reader: BinaryIO, writer: BinaryIO) -> int:
        """Decompress everything from ``reader`` into ``writer``; return bytes written."""
        self.insize = 0
        self.outsize = 0
        self.frames = 0

        head = _read_full(reader, HEAD_SIZE)
        kind = detect_stream_type(head)
        if len(head) == _EMPTY_FRAME_SIZE:
            return 0
        if self.threads == 1:
            kind = StreamType.SINGLE_THREAD

        if kind is StreamType.SINGLE_THREAD:
            self._decode_sequential(reader, writer, head)
        else:
            self._decode_frames(reader, writer, head)
        return self.outsize

    def _emit(self, writer: BinaryIO, data: bytes) -> None:
        if not data:
            return
        try:
            writer.write(data)
        except OSError as exc:
            raise ZstdMTError(ErrorCode.WRITE_FAIL) from exc
        self.outsize += len(data)

    def _read_chunk(self, reader: BinaryIO) -> bytes:
        try:
            return reader.read(self.inputsize)
        except OSError as exc:
            raise ZstdMTError(ErrorCode.READ_FAIL) from exc

    def _decode_sequential(self, reader: BinaryIO, writer: BinaryIO, head: bytes) -> None:
        dctx = zstandard.ZstdDecompressor()
        frame = None
        skip = 0
        carry = b""
        data = head
        self.insize += len(head)

        while True:
            data = carry + data
            carry = b""
            while data:
                if skip:
                    used = min(skip, len(data))
                    data = data[used:]
                    skip -= used
                elif frame is not None:
                    self._emit(writer, _feed(frame, data))
                    if frame.eof:
                        data = bytes(frame.unused_data)
                        frame = None
                    else:
                        data = b""
                elif len(data) < _PROBE_SIZE:
                    carry = data
                    data = b""
                elif _LE32.unpack_from(data)[0] & _SKIPPABLE_MASK == _SKIPPABLE_BASE:
                    skip = _SKIPPABLE_HEADER + _LE32.unpack_from(data, 4)[0]
                else:
                    frame = dctx.decompressobj()
            data = self._read_chunk(reader)
            if not data:
                break
            self.insize += len(data)

        if carry and not skip:
            self._emit(writer, _feed(dctx.decompressobj(), carry))

    def _decode_frames(self, reader: BinaryIO, writer: BinaryIO, head: bytes) -> None:
        source = FrameReader(reader, head)
        pending: dict[int, bytes] = {}
        write_lock = threading.Lock()
        failed = threading.Event()
        errors: list[Exception] = []

        def work() -> None:
            dctx = zstandard.ZstdDecompressor()
            while not failed.is_set():
                item = source.read_frame()
                if item is None:
                    return
                number, payload = item
                data = _decode_frame(dctx, payload)
                with write_lock:
                    pending[number] = data
                    while self.frames in pending:
                        self._emit(writer, pending.pop(self.frames))
                        self.frames += 1

        def run() -> None:
            try:
                work()
            except Exception as exc:
                errors.append(exc)
                failed.set()

        workers = [threading.Thread(target=run) for _ in range(self.threads)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        self.insize = source.insize
        pending.clear()
        if errors:
            raise errors[0]


def decompress_bytes(data: bytes, threads: int = 1) -> bytes:
    """Decompress ``data`` in memory and return the original bytes."""
    out = io.BytesIO()
    Decompressor(threads).decompress(io.BytesIO(data), out)
    return out.getvalue()