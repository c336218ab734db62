import io
import os

import pytest
import zstandard

from zstmt.compress import Compressor, compress_bytes
from zstmt.decompress import Decompressor, decompress_bytes
from zstmt.errors import ErrorCode, ZstdMTError
from zstmt.framing import skippable_header


def _sample(size=50_000):
    return (b"lorem ipsum dolor sit amet " * (size // 27 + 1))[:size] + os.urandom(512)


def _chunked(data, inputsize, threads=1):
    out = io.BytesIO()
    comp = Compressor(threads, 3, inputsize)
    comp.compress(io.BytesIO(data), out)
    return comp, out.getvalue()


@pytest.mark.parametrize("threads", [1, 2, 4])
def test_roundtrip_framed(threads):
    data = _sample()
    assert decompress_bytes(compress_bytes(data), threads) == data


@pytest.mark.parametrize("threads", [1, 3, 8])
def test_roundtrip_many_frames(threads):
    data = _sample(20_000)
    comp, stream = _chunked(data, 1000, threads=2)
    dec = Decompressor(threads)
    out = io.BytesIO()
    written = dec.decompress(io.BytesIO(stream), out)
    assert out.getvalue() == data
    assert written == len(data)
    assert dec.outsize == len(data)
    if threads > 1:
        assert dec.frames == comp.frames
        assert dec.insize == len(stream)


@pytest.mark.parametrize("threads", [1, 2])
def test_plain_zstd_stream(threads):
    data = _sample()
    stream = zstandard.ZstdCompressor(level=5).compress(data)
    assert decompress_bytes(stream, threads) == data


def test_concatenated_plain_frames():
    first, second = _sample(3000), _sample(4000)
    cctx = zstandard.ZstdCompressor()
    stream = cctx.compress(first) + cctx.compress(second)
    assert decompress_bytes(stream, 2) == first + second


@pytest.mark.parametrize("threads", [1, 2])
def test_zstdmt_style_prefix(threads):
    data = _sample(8000)
    empty = zstandard.ZstdCompressor().compress(b"")
    _, framed = _chunked(data, 2000)
    assert decompress_bytes(empty + framed, threads) == data


def test_empty_frame_gives_empty_output():
    empty = zstandard.ZstdCompressor().compress(b"")
    assert decompress_bytes(empty, 2) == b""


@pytest.mark.parametrize("threads", [1, 2])
def test_empty_input_compressed_roundtrip(threads):
    assert decompress_bytes(compress_bytes(b""), threads) == b""


@pytest.mark.parametrize("stream", [b"", b"short", b"this is plainly not zstd data"])
def test_invalid_input_is_data_error(stream):
    with pytest.raises(ZstdMTError) as info:
        decompress_bytes(stream, 2)
    assert info.value.code == ErrorCode.DATA_ERROR


def test_truncated_framed_stream_is_data_error():
    data = _sample(10_000)
    _, stream = _chunked(data, 2000)
    with pytest.raises(ZstdMTError) as info:
        decompress_bytes(stream[:-5], 2)
    assert info.value.code == ErrorCode.DATA_ERROR


def test_corrupt_frame_reports_library_failure():
    good = zstandard.ZstdCompressor().compress(b"hello")
    bad = b"\x00" * 8
    stream = skippable_header(len(good)) + good + skippable_header(len(bad)) + bad
    with pytest.raises(ZstdMTError) as info:
        decompress_bytes(stream, 2)
    assert info.value.code == ErrorCode.COMPRESSION_LIBRARY


@pytest.mark.parametrize("threads", [0, 129])
def test_thread_count_out_of_range(threads):
    with pytest.raises(ZstdMTError) as info:
        Decompressor(threads)
    assert info.value.code == ErrorCode.COMPRESSION_PARAMETER_UNSUPPORTED


def test_small_input_size_single_thread():
    data = _sample(30_000)
    stream = compress_bytes(data)
    out = io.BytesIO()
    Decompressor(1, 7).decompress(io.BytesIO(stream), out)
    assert out.getvalue() == data