# zstmt

Multi-threaded Zstandard compression for files and streams.

The input is cut into chunks, and the chunks are compressed in parallel.
Each compressed chunk is written as its own Zstandard frame. A 12-byte
skippable frame in front of each one records its compressed size, so
decompression can also run in parallel. Any zstd decoder can read the output.

The decompressor accepts three kinds of input:

- its own framed output,
- pzstd-style input, where a skippable header comes before each frame,
- plain zstd streams, which it decodes one after another.

## Installation

```
pip install .
```

This installs three commands: `zstd-mt`, `unzstd-mt` and `zstdcat-mt`.

## Command line

`zstd-mt` works much like gzip:

```
zstd-mt file.txt            # compress to file.txt.zst, remove file.txt
zstd-mt -k -9 file.txt      # keep the input, use level 9
zstd-mt -d file.txt.zst     # decompress to file.txt
zstd-mt -c file.txt > out   # write to standard output
zstd-mt -o out.zst file.txt # write to the named file
zstd-mt -T 4 -b 8 big.bin   # 4 threads, 8 MiB input chunks
zstd-mt -l file.txt.zst     # list compressed/uncompressed size and ratio
zstd-mt -l -v file.txt.zst  # also show method, CRC32 and file date
zstd-mt -t file.txt.zst     # test integrity
zstd-mt -h                  # all options
```

Options:

- **Compression level**: 1 to 22, default 3, given as `-1` … `-22`.
- **Threads**: `-T N`. The default is the number of CPUs, and the most allowed is 128.
- **Suffix**: `-S X` sets the suffix for compressed files. The default is `.zst`.
- **Decompressed name**: when decompressing a file that lacks the suffix, the output name is the input name with `.out` appended.
- **Repeated runs**: `-i N` runs over the files N times, up to 1000. It cannot be combined with standard input.
- **Timings**: `-B` prints timings, sizes and memory use to standard error.
- **Listing without CRC32**: `-C` turns off the CRC32 in verbose listing.
- **Quiet**: `-q` suppresses messages.

With no file, or with `-`, the command reads standard input. It will not
write output to a terminal unless you pass `-f`. When an output file
already exists, it asks before overwriting, unless you pass `-f`.

When a file is compressed or decompressed to a new file, the new file gets
the permissions and times of the input. The input file is then removed,
unless you pass `-k`, `-c`, `-l` or `-t`.

The command exits with one of these codes:

- 0 on success,
- 1 when compression or decompression failed,
- 2 when a file could not be opened or was not overwritten.

The command name also sets the default action:

- `unzstd-mt`, or any name starting with `unzstd-mt`, decompresses.
- `zstdcat-mt`, or any name starting with `zstdcat-mt`, decompresses to standard output.

## Library

```python
from zstmt.compress import Compressor, compress_bytes
from zstmt.decompress import Decompressor, decompress_bytes

packed = compress_bytes(b"hello " * 10000, threads=4, level=3)
assert decompress_bytes(packed, threads=4) == b"hello " * 10000
```

For streams:

- `Compressor(threads, level, inputsize).compress(reader, writer)` compresses
  from a binary file-like object with a `read(size)` method to one with a
  `write(data)` method.
- `Decompressor(threads, inputsize).decompress(reader, writer)` does the same
  for decompression.
- Both return the number of bytes written.
- Afterwards, `insize`, `outsize` and `frames` hold the statistics of the run.
- An `inputsize` of 0 chooses a chunk size from the level, using
  `zstmt.compress.default_input_size(level)`.

Failures raise `zstmt.errors.ZstdMTError`. Its `code` is a
`zstmt.errors.ErrorCode`, and `zstmt.errors.error_string(code)` gives the
matching message.

Lower-level helpers:

- `zstmt.framing` builds and parses the skippable headers.
- `zstmt.framereader.detect_stream_type` and `FrameReader` classify the input
  and read it frame by frame.

## Limitations

Only Zstandard is supported. Directories are not processed, and the tool has
no recursive mode. The `-L` option prints only a short licence notice.