"""Command line tool that compresses and decompresses files with multi-threaded zstd."""

from __future__ import annotations

import contextlib
import getopt
import os
import re
import stat
import sys
import time
from dataclasses import dataclass, field
from typing import Any, BinaryIO, NoReturn

from .compress import Compressor
from .decompress import Decompressor
from .errors import ZstdMTError
from .naming import add_suffix, crc32, has_suffix, remove_suffix
from .platform_info import DEVNULL, PATH_SEPARATOR, cpu_count, is_console
from .settings import (
    LEVEL_DEF,
    LEVEL_MAX,
    LEVEL_MIN,
    METHOD,
    PROGNAME,
    SUFFIX,
    THREAD_MAX,
    UNZIP,
    VERSION,
    ZCAT,
    Mode,
    default_mode,
)

try:
    import resource
except ImportError:  # not available on every platform
    resource = None  # type: ignore[assignment]

MAX_ITERATIONS = 1000

E_OK = 0
E_ERROR = 1
E_WARNING = 2

_OPTSTRING = "1234567890cdzfo:hklLqrS:tvVT:b:i:BC"
_INT = re.compile(r"\s*([+-]?\d+)")


class _Exit(Exception):
    """Stops the tool with the given exit code."""

    def __init__(self, code: int) -> None:
        super().__init__(code)
        self.code = code


def _atoi(text: str) -> int:
    match = _INT.match(text)
    return int(match.group(1)) if match else 0


def _binary(stream: Any) -> Any:
    return getattr(stream, "buffer", stream)


def _secs(value: float) -> str:
    whole = int(value)
    return f"{whole}.{int((value - whole) * 1000)}"


def _ratio(compressed: int, uncompressed: int) -> float:
    if uncompressed:
        return 100 - compressed * 100 / uncompressed
    return float("-inf") if compressed else float("nan")


class _Source:
    """Reader that counts the bytes handed out."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.count = 0

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        self.count += len(data)
        return data


class _Sink:
    """Writer that counts the bytes written and optionally keeps a CRC-32."""

    def __init__(self, stream: BinaryIO, crc: int, checksum: bool) -> None:
        self._stream = stream
        self._checksum = checksum
        self.crc = crc
        self.count = 0

    def write(self, data: bytes) -> int:
        if self._checksum:
            self.crc = crc32(data, self.crc)
        self._stream.write(data)
        self.count += len(data)
        return len(data)


@dataclass
class _Options:
    mode: Mode = Mode.COMPRESS
    iterations: int = 1
    stdout: bool = False
    level: int = LEVEL_DEF
    force: bool = False
    keep: bool = False
    threads: int = field(default_factory=cpu_count)
    verbose: int = 1
    bufsize: int = 0
    timings: bool = False
    nocrc: bool = False
    filename: str | None = None
    suffix: str = SUFFIX


class _Tool:
    def __init__(self, argv0: str) -> None:
        self.progname = argv0.rpartition(PATH_SEPARATOR)[2] or argv0
        self.opts = _Options()
        self.stdin = _binary(sys.stdin)
        self.stdout = _binary(sys.stdout)
        self.fin: Any = None
        self.fout: Any = None
        self.global_fout = False
        self.exit_code = E_OK
        self.errmsg: str | None = None
        self.mtime = 0.0
        self.crc = 0
        self.bytes_read = 0
        self.bytes_written = 0
        self._start = time.monotonic()
        self._headline_done = False
        self._first_file = True
        self._owned: list[Any] = []

    # messages ---------------------------------------------------------

    @staticmethod
    def _err(msg: str, end: str = "\n") -> None:
        print(msg, end=end, file=sys.stderr)

    def panic(self, msg: str) -> NoReturn:
        if self.opts.verbose:
            self._err(msg)
        raise _Exit(1)

    def version(self, quit_after: bool) -> None:
        print(f" {self.progname} using libzstdmt v0.8, using {METHOD} {VERSION}")
        if quit_after:
            raise _Exit(0)

    def license(self) -> NoReturn:
        self.version(False)
        print("\n Distributed under a BSD-style license.\n")
        raise _Exit(0)

    def usage(self) -> NoReturn:
        print(
            f"\n Usage: {PROGNAME} [OPTION]... [FILE]..."
            "\n Compress or uncompress FILEs (by default, compress FILES in-place)."
            "\n"
            "\n Standard Options:"
            f"\n  -#    Set compression level to # ({LEVEL_MIN}-{LEVEL_MAX}, default:{LEVEL_DEF})."
            "\n  -c    Force write to standard output."
            "\n  -d    Use decompress mode."
            "\n  -z    Use compress mode."
            "\n  -f    Force overwriting files and/or compression."
            "\n  -o F  Write output to file `F`, stdout is used for `-`."
            "\n  -h    Display a help screen and quit."
            "\n  -k    Keep input files after compression or decompression."
            "\n  -l    List information for the specified compressed files."
            "\n  -L    Display License and quit."
            "\n  -q    Be quiet: suppress all messages."
            f"\n  -S X  Use suffix 'X' for compressed files. Default: \"{SUFFIX}\""
            "\n  -t    Test the integrity of each file leaving any files intact."
            "\n  -v    Be more verbose."
            "\n  -V    Show version information and quit."
            "\n"
            "\n Additional Options:"
            "\n  -T N  Set number of (de)compression threads (def: #cores)."
            "\n  -b N  Set input chunksize to N MiB (default: auto)."
            "\n  -i N  Set number of iterations for testing (default: 1)."
            "\n  -B    Print timings and memory usage to stderr."
            "\n  -C    Disable crc32 calculation in verbose listing mode."
            "\n"
            f"\n If invoked as '{PROGNAME}', default action is to compress."
            f"\n             as '{UNZIP}',  default action is to decompress."
            f"\n             as '{ZCAT}', then: force decompress to stdout."
            "\n"
            "\n With no FILE, or when FILE is -, read standard input."
            "\n"
        )
        raise _Exit(0)

    def headline(self) -> None:
        o = self.opts
        if o.timings and o.verbose and o.mode <= Mode.DECOMPRESS:
            self._err("Level;Threads;InSize;OutSize;Frames")

    # option handling --------------------------------------------------

    def _apply_options(self, pairs: list[tuple[str, str]]) -> None:
        o = self.opts
        levelnumbers = 0
        for opt, arg in pairs:
            flag = opt[1:]
            if flag.isdigit():
                o.level = (o.level * 10 if levelnumbers else 0) + int(flag)
                levelnumbers += 1
                continue
            match flag:
                case "c":
                    o.stdout = True
                    o.keep = True
                case "d":
                    o.mode = Mode.DECOMPRESS
                case "z":
                    o.mode = Mode.COMPRESS
                case "f":
                    o.force = True
                case "o":
                    o.filename = arg
                case "h":
                    self.usage()
                case "k":
                    o.keep = True
                case "l":
                    o.mode = Mode.LIST
                    o.keep = True
                case "L":
                    self.license()
                case "q":
                    o.verbose = 0
                case "S":
                    o.suffix = arg
                case "t":
                    o.mode = Mode.TEST
                    o.keep = True
                case "v":
                    o.verbose += 1
                case "V":
                    self.version(True)
                case "T":
                    o.threads = _atoi(arg)
                case "b":
                    o.bufsize = _atoi(arg)
                case "i":
                    o.iterations = _atoi(arg)
                case "B":
                    o.timings = True
                case "C":
                    o.nocrc = True
                case _:
                    self.usage()

    def _open(self, path: str, mode: str) -> Any:
        try:
            handle = open(path, mode)
        except OSError:
            return None
        return handle

    def close(self) -> None:
        for handle in self._owned:
            with contextlib.suppress(OSError):
                handle.close()
        self._owned.clear()
        with contextlib.suppress(Exception):
            sys.stdout.flush()
            self.stdout.flush()

    # main flow --------------------------------------------------------

    def run(self, args: list[str]) -> int:
        if not args:
            self.usage()
        o = self.opts
        o.mode, to_stdout = default_mode(self.progname)
        if to_stdout:
            o.stdout = True
            o.force = True

        try:
            pairs, files = getopt.gnu_getopt(args, _OPTSTRING)
        except getopt.GetoptError as exc:
            self._err(f"{self.progname}: {exc.msg}")
            self.usage()
        self._apply_options(pairs)

        if not LEVEL_MIN <= o.level <= LEVEL_MAX:
            self.usage()
        o.threads = min(max(o.threads, 1), THREAD_MAX)
        o.iterations = min(max(o.iterations, 1), MAX_ITERATIONS)
        if o.bufsize > 0:
            o.bufsize *= 1024 * 1024

        if not files:
            self.fin = self.stdin

        if o.stdout:
            self.fout = self.stdout
            self.global_fout = True

        if o.filename is not None:
            if self.global_fout:
                self.panic("Can not use -o FILE together with -c :(")
            if o.filename == "-":
                self.fout = self.stdout
            else:
                self.errmsg = self.check_overwrite(o.filename)
                if not self.errmsg:
                    self.fout = self._open(o.filename, "wb")
                    if self.fout is not None:
                        self._owned.append(self.fout)
                if self.fout is None:
                    self.panic("Opening output file failed!")
            self.global_fout = True

        if o.mode in (Mode.LIST, Mode.TEST):
            self.fout = self._open(DEVNULL, "wb")
            if self.fout is None:
                self.panic("Opening dummy output failed!")
            self._owned.append(self.fout)
            self.global_fout = True

        if o.timings and o.verbose and o.mode in (Mode.LIST, Mode.TEST):
            self._start = time.monotonic()

        if not files:
            if o.iterations != 1:
                self.panic("You can not use stdin together with the -i option.")
            self.treat_stdin()
        else:
            for _ in range(o.iterations):
                for name in files:
                    self.treat_file(name)

        if o.timings and o.verbose:
            self._print_resources()
        return self.exit_code

    def _print_resources(self) -> None:
        real = time.monotonic() - self._start
        user = system = 0.0
        maxrss = 0
        if resource is not None:
            usage = resource.getrusage(resource.RUSAGE_SELF)
            user, system, maxrss = usage.ru_utime, usage.ru_stime, usage.ru_maxrss
        self._err("Real;User;Sys;MaxMem")
        self._err(f"{_secs(real)};{_secs(user)};{_secs(system)};{maxrss}")

    # work -------------------------------------------------------------

    def _begin(self, mode: Mode) -> None:
        o = self.opts
        if not self._headline_done:
            self.headline()
            self._headline_done = True
        if o.timings and o.verbose and o.mode == mode:
            self._start = time.monotonic()

    def _wrap(self, fin: BinaryIO, fout: BinaryIO) -> tuple[_Source, _Sink]:
        o = self.opts
        checksum = o.mode == Mode.LIST and o.verbose > 1 and not o.nocrc
        return _Source(fin), _Sink(fout, self.crc, checksum)

    def _account(self, source: _Source, sink: _Sink) -> None:
        self.bytes_read += source.count
        self.bytes_written += sink.count
        self.crc = sink.crc

    def _stats(self, mode: Mode, ctx: Compressor | Decompressor) -> None:
        o = self.opts
        if o.timings and o.verbose and o.mode == mode:
            self._err(f"{o.level};{o.threads};{ctx.insize};{ctx.outsize};{ctx.frames}")

    def do_compress(self, fin: BinaryIO, fout: BinaryIO) -> str | None:
        o = self.opts
        self._begin(Mode.COMPRESS)
        try:
            cctx = Compressor(o.threads, o.level, o.bufsize)
        except ZstdMTError:
            return "Allocating compression context failed!"
        source, sink = self._wrap(fin, fout)
        try:
            cctx.compress(source, sink)
        except ZstdMTError as exc:
            return str(exc)
        finally:
            self._account(source, sink)
        self._stats(Mode.COMPRESS, cctx)
        return None

    def do_decompress(self, fin: BinaryIO, fout: BinaryIO) -> str | None:
        o = self.opts
        self._begin(Mode.DECOMPRESS)
        try:
            dctx = Decompressor(o.threads, o.bufsize)
        except ZstdMTError:
            return "Allocating decompression context failed!"
        source, sink = self._wrap(fin, fout)
        try:
            dctx.decompress(source, sink)
        except ZstdMTError as exc:
            return str(exc)
        finally:
            self._account(source, sink)
        self._stats(Mode.DECOMPRESS, dctx)
        return None

    def _run_codec(self, fin: BinaryIO, fout: BinaryIO) -> str | None:
        if self.opts.mode == Mode.COMPRESS:
            return self.do_compress(fin, fout)
        return self.do_decompress(fin, fout)

    # reporting --------------------------------------------------------

    def print_listmode(self, headline: bool, filename: str) -> None:
        o = self.opts
        if headline and o.verbose > 1:
            print(f"{'method':>8} {'crc32':>8} {'date':>10} {'time':>8} "
                  f"{'compressed':>20} {'uncompressed':>20} {'ratio':>7} uncompressed_name")
        elif headline:
            print(f"{'compressed':>20} {'uncompressed':>20} {'ratio':>7} uncompressed_name")

        ratio = _ratio(self.bytes_read, self.bytes_written)
        if self.errmsg:
            if o.verbose == 1:
                print(f"{'-':>20} {'-':>20} {'-':>7} {filename}")
            elif o.verbose > 1:
                print(f"{'-':>8} {'-':>8} {'-':>10} {'-':>8} {'-':>20} {'-':>20} {'-':>7} {filename}")
        elif o.verbose == 1:
            print(f"{self.bytes_read:>20} {self.bytes_written:>20} {ratio:6.2f}% {filename}")
        elif o.verbose > 1:
            date = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.mtime))
            print(f"{METHOD:>8} {self.crc:08x} {date:>12} {self.bytes_read:>20} "
                  f"{self.bytes_written:>20} {ratio:6.2f}% {filename}")

    def print_testmode(self, filename: str) -> None:
        print(f"{PROGNAME}: {filename}: {self.errmsg or 'OK'}")

    # checks -----------------------------------------------------------

    def check_stdout(self) -> None:
        o = self.opts
        if o.mode >= Mode.LIST:
            return
        if is_console(self.fout) and not o.force:
            self.panic("Data not written to terminal. Use -f to force!")

    def check_infile(self, filename: str) -> str | None:
        try:
            st = os.stat(filename)
        except OSError as exc:
            return exc.strerror or str(exc)
        if stat.S_ISDIR(st.st_mode):
            return "Is a directory"
        if stat.S_ISREG(st.st_mode):
            self.mtime = st.st_mtime
            return None
        return "Is not regular file"

    def check_overwrite(self, filename: str) -> str | None:
        o = self.opts
        if o.force:
            return None
        try:
            os.stat(filename)
        except FileNotFoundError:
            return None
        except OSError as exc:
            return exc.strerror or str(exc)

        if self.fin is self.stdin or self.fout is self.stdout:
            self.panic("Can not read user input, cause you're piping data.")

        yes: bool | None = None
        while yes is None:
            print(f"{self.progname}: '{filename}' already exists. Overwrite (y/N) ? ",
                  end="", flush=True)
            line = sys.stdin.readline()
            if not line:
                yes = False
                break
            if line[0] in "yY":
                yes = True
            elif line[0] in "nN":
                yes = False

        if not yes and o.verbose:
            return "Not overwriting."
        with contextlib.suppress(OSError):
            os.remove(filename)
        return None

    # per input --------------------------------------------------------

    def treat_stdin(self) -> None:
        o = self.opts
        filename = "(stdin)"
        if self.fout is None:
            self.fout = self.stdout
            self.check_stdout()

        self.errmsg = self._run_codec(self.fin, self.fout)
        if self.errmsg:
            self._err(f"{self.progname}: stdin: {self.errmsg}")
            self.exit_code = E_ERROR

        if o.mode == Mode.LIST:
            self.print_listmode(True, filename)
        if o.mode == Mode.TEST and o.verbose > 1:
            self.print_testmode(filename)

    def treat_file(self, filename: str) -> None:
        o = self.opts
        self.bytes_read = self.bytes_written = 0
        self.errmsg = None
        self.crc = 0
        fin_stat = None
        opened_in = None

        if filename == "-":
            self.fin = self.stdin
        else:
            self.errmsg = self.check_infile(filename)
            if self.errmsg:
                if o.verbose:
                    self._err(f"{self.progname}: {filename}: {self.errmsg}")
                return
            opened_in = self._open(filename, "rb")
            self.fin = opened_in
            if opened_in is not None:
                fin_stat = os.fstat(opened_in.fileno())

        try:
            self._process_file(filename, opened_in, fin_stat)
        finally:
            if opened_in is not None:
                opened_in.close()

    def _process_file(self, filename: str, opened_in: Any, fin_stat: os.stat_result | None) -> None:
        o = self.opts
        fn2: str | None = None
        local_fout: Any = None

        if self.global_fout:
            local_fout = self.fout
            self.check_stdout()
        else:
            if o.mode == Mode.COMPRESS:
                if has_suffix(filename, o.suffix) and not o.force:
                    self._err(f"{filename} already has {o.suffix} suffix -- unchanged")
                    return
                fn2 = add_suffix(filename, o.suffix)
            elif o.mode == Mode.DECOMPRESS:
                fn2 = remove_suffix(filename, o.suffix)
            if fn2 is not None:
                self.errmsg = self.check_overwrite(fn2)
                if not self.errmsg:
                    local_fout = self._open(fn2, "wb")

        if not self.errmsg and self.fin is None:
            self.errmsg = "Opening source file failed."
        if not self.errmsg and local_fout is None:
            self.errmsg = "Opening destination file failed."

        if self.errmsg:
            self._err(f"{self.progname}: {filename}: {self.errmsg}")
            self.exit_code = E_WARNING
            if not self.global_fout and local_fout is not None:
                local_fout.close()
            return

        self.errmsg = self._run_codec(self.fin, local_fout)
        if self.errmsg:
            self._err(f"{self.progname}: {filename}: {self.errmsg}")
            self.exit_code = E_ERROR

        if opened_in is not None:
            try:
                opened_in.close()
            except OSError:
                if o.verbose:
                    self._err("Closing infile failed.", end="")

        if not self.global_fout and local_fout is not self.stdout:
            try:
                local_fout.flush()
                local_fout.close()
            except OSError:
                if o.verbose:
                    self._err("Closing outfile failed.", end="")
            if fin_stat is not None and fn2 is not None:
                with contextlib.suppress(OSError):
                    os.chmod(fn2, stat.S_IMODE(fin_stat.st_mode))
                with contextlib.suppress(OSError):
                    os.utime(fn2, (fin_stat.st_atime, fin_stat.st_mtime))

        if o.mode == Mode.LIST:
            self.print_listmode(self._first_file, filename)
        if o.mode == Mode.TEST and o.verbose > 1:
            self.print_testmode(filename)

        if not self.errmsg and not o.keep and filename != "-":
            with contextlib.suppress(OSError):
                os.remove(filename)

        if self.errmsg and not self.global_fout:
            self._err(self.errmsg, end="")
            if fn2 is not None:
                with contextlib.suppress(OSError):
                    os.remove(fn2)

        self._first_file = False


def main(argv: list[str] | None = None) -> int:
    """Run the tool; ``argv`` includes the program name. Return the exit code."""
    args = list(sys.argv if argv is None else argv)
    tool = _Tool(args[0] if args else PROGNAME)
    try:
        return tool.run(args[1:])
    except _Exit as stop:
        return stop.code
    finally:
        tool.close()