import io
import sys
import zlib

import pytest

from zstmt.cli import main
from zstmt.compress import compress_bytes
from zstmt.decompress import decompress_bytes

DATA = b"zstmt command line sample text " * 3000


@pytest.fixture
def sample(tmp_path):
    path = tmp_path / "sample.txt"
    path.write_bytes(DATA)
    return path


@pytest.fixture
def packed(tmp_path):
    path = tmp_path / "sample.txt.zst"
    path.write_bytes(compress_bytes(DATA, threads=2))
    return path


def test_compress_then_decompress_in_place(sample):
    assert main(["zstd-mt", "-q", "-T", "2", str(sample)]) == 0
    target = sample.with_name("sample.txt.zst")
    assert not sample.exists()
    assert decompress_bytes(target.read_bytes()) == DATA

    assert main(["zstd-mt", "-d", "-q", str(target)]) == 0
    assert sample.read_bytes() == DATA
    assert not target.exists()


def test_keep_leaves_input(sample):
    assert main(["zstd-mt", "-k", "-19", str(sample)]) == 0
    assert sample.read_bytes() == DATA
    assert decompress_bytes(sample.with_name("sample.txt.zst").read_bytes()) == DATA


def test_stdout_option_writes_compressed_stream(sample, capsysbinary):
    assert main(["zstd-mt", "-c", str(sample)]) == 0
    out = capsysbinary.readouterr().out
    assert decompress_bytes(out) == DATA
    assert sample.exists()


def test_cat_name_decompresses_to_stdout(packed, capsysbinary):
    assert main(["zstdcat-mt", str(packed)]) == 0
    assert capsysbinary.readouterr().out == DATA


def test_unzip_name_decompresses_by_default(packed):
    assert main(["unzstd-mt", str(packed)]) == 0
    assert packed.with_name("sample.txt").read_bytes() == DATA


def test_decompress_without_suffix_appends_out(tmp_path):
    blob = tmp_path / "blob"
    blob.write_bytes(compress_bytes(DATA))
    assert main(["zstd-mt", "-d", "-k", str(blob)]) == 0
    assert (tmp_path / "blob.out").read_bytes() == DATA


def test_custom_suffix(sample):
    assert main(["zstd-mt", "-k", "-S", ".pack", str(sample)]) == 0
    target = sample.with_name("sample.txt.pack")
    assert decompress_bytes(target.read_bytes()) == DATA


def test_already_suffixed_input_is_unchanged(tmp_path, capsys):
    path = tmp_path / "data.zst"
    path.write_bytes(DATA)
    assert main(["zstd-mt", str(path)]) == 0
    assert "already has .zst suffix -- unchanged" in capsys.readouterr().err
    assert path.read_bytes() == DATA
    assert not (tmp_path / "data.zst.zst").exists()


def test_output_file_option(sample, tmp_path):
    out = tmp_path / "result.bin"
    assert main(["zstd-mt", "-k", "-o", str(out), str(sample)]) == 0
    assert decompress_bytes(out.read_bytes()) == DATA


def test_output_file_with_stdout_is_rejected(sample, tmp_path, capsys):
    out = tmp_path / "result.bin"
    assert main(["zstd-mt", "-c", "-o", str(out), str(sample)]) == 1
    assert "Can not use -o FILE together with -c" in capsys.readouterr().err


@pytest.mark.parametrize("level", ["-0", "-23"])
def test_level_out_of_range_shows_usage(sample, level, capsys):
    assert main(["zstd-mt", level, str(sample)]) == 0
    assert "Usage: zstd-mt" in capsys.readouterr().out
    assert sample.read_bytes() == DATA
    assert not sample.with_name("sample.txt.zst").exists()


def test_no_arguments_shows_usage(capsys):
    assert main(["zstd-mt"]) == 0
    assert "Usage: zstd-mt" in capsys.readouterr().out


def test_version(capsys):
    assert main(["zstd-mt", "-V"]) == 0
    out = capsys.readouterr().out
    assert "zstd-mt using libzstdmt" in out
    assert "zstd" in out


def test_test_mode_reports_ok(packed, capsys):
    assert main(["zstd-mt", "-t", "-v", "-v", str(packed)]) == 0
    assert f"zstd-mt: {packed}: OK" in capsys.readouterr().out
    assert packed.exists()


def test_test_mode_detects_corruption(tmp_path, capsys):
    bad = tmp_path / "bad.zst"
    bad.write_bytes(b"this is not a compressed stream at all")
    assert main(["zstd-mt", "-t", str(bad)]) == 1
    assert "Malformed input" in capsys.readouterr().err
    assert bad.exists()


def test_list_mode_reports_sizes(packed, capsys):
    assert main(["zstd-mt", "-l", str(packed)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["compressed", "uncompressed", "ratio", "uncompressed_name"]
    fields = lines[1].split()
    assert int(fields[0]) == packed.stat().st_size
    assert int(fields[1]) == len(DATA)
    assert fields[-1] == str(packed)


def test_verbose_list_mode_reports_crc(packed, capsys):
    assert main(["zstd-mt", "-l", "-v", str(packed)]) == 0
    fields = capsys.readouterr().out.splitlines()[1].split()
    assert fields[0] == "zstd"
    assert fields[1] == format(zlib.crc32(DATA), "08x")


def test_verbose_list_without_crc(packed, capsys):
    assert main(["zstd-mt", "-l", "-v", "-C", str(packed)]) == 0
    fields = capsys.readouterr().out.splitlines()[1].split()
    assert fields[1] == "00000000"


def test_existing_target_declined(sample, monkeypatch, capsys):
    target = sample.with_name("sample.txt.zst")
    target.write_bytes(b"keep me")
    monkeypatch.setattr(sys, "stdin", io.StringIO("n\n"))
    assert main(["zstd-mt", str(sample)]) == 2
    assert "Not overwriting." in capsys.readouterr().err
    assert target.read_bytes() == b"keep me"
    assert sample.exists()


def test_existing_target_accepted(sample, monkeypatch):
    target = sample.with_name("sample.txt.zst")
    target.write_bytes(b"old")
    monkeypatch.setattr(sys, "stdin", io.StringIO("y\n"))
    assert main(["zstd-mt", str(sample)]) == 0
    assert decompress_bytes(target.read_bytes()) == DATA


def test_force_overwrites_without_asking(sample):
    target = sample.with_name("sample.txt.zst")
    target.write_bytes(b"old")
    assert main(["zstd-mt", "-f", "-k", str(sample)]) == 0
    assert decompress_bytes(target.read_bytes()) == DATA


def test_stdin_to_stdout(monkeypatch, capsysbinary):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(DATA)))
    assert main(["zstd-mt", "-z"]) == 0
    assert decompress_bytes(capsysbinary.readouterr().out) == DATA


def test_stdin_with_iterations_is_rejected(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(DATA)))
    assert main(["zstd-mt", "-i", "2"]) == 1
    assert "You can not use stdin together with the -i option." in capsys.readouterr().err


def test_timings_are_printed(sample, capsys):
    assert main(["zstd-mt", "-B", "-k", "-T", "1", str(sample)]) == 0
    err = capsys.readouterr().err.splitlines()
    assert err[0] == "Level;Threads;InSize;OutSize;Frames"
    stats = err[1].split(";")
    assert stats[:3] == ["3", "1", str(len(DATA))]
    assert int(stats[3]) == sample.with_name("sample.txt.zst").stat().st_size
    assert "Real;User;Sys;MaxMem" in err


def test_directory_input_is_reported(tmp_path, capsys):
    assert main(["zstd-mt", str(tmp_path)]) == 0
    assert "Is a directory" in capsys.readouterr().err


def test_missing_input_is_reported(tmp_path, capsys):
    missing = tmp_path / "missing"
    assert main(["zstd-mt", str(missing)]) == 0
    assert str(missing) in capsys.readouterr().err