"""Multi-threaded Zstandard compression and decompression with skippable-frame framing, plus a gzip-like command line tool."""

__version__ = "0.8.0"