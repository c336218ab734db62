"""Names, defaults and operating modes of the zstd command line tool."""

from __future__ import annotations

from enum import IntEnum

from .compress import LEVEL_DEFAULT, LEVEL_MAX, LEVEL_MIN, THREAD_MAX
from .naming import str_casestart

METHOD = "zstd"
PROGNAME = "zstd-mt"
UNZIP = "unzstd-mt"
ZCAT = "zstdcat-mt"
SUFFIX = ".zst"
VERSION = "v1.5.6"

LEVEL_DEF = LEVEL_DEFAULT

__all__ = [
    "METHOD",
    "PROGNAME",
    "UNZIP",
    "ZCAT",
    "SUFFIX",
    "VERSION",
    "LEVEL_DEF",
    "LEVEL_MIN",
    "LEVEL_MAX",
    "THREAD_MAX",
    "Mode",
    "default_mode",
]


class Mode(IntEnum):
    """What the tool does with its input."""

    COMPRESS = 1
    DECOMPRESS = 2
    LIST = 3
    TEST = 4


def default_mode(progname: str) -> tuple[Mode, bool]:
    """Return the default mode for the name the tool was started as.

    The second value tells whether output is forced to standard output
    (which also implies forcing), as when started under the ``cat`` name.
    """
    name = progname.replace("\\", "/").rpartition("/")[2]
    if str_casestart(name, UNZIP):
        return Mode.DECOMPRESS, False
    if str_casestart(name, ZCAT):
        return Mode.DECOMPRESS, True
    return Mode.COMPRESS, False