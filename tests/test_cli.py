import struct

import pytest

from cbfkit.cli import main, read_file


def build_cbf(strings):
    buf = bytearray(0x410)
    magic = b"CBF-TRANSLATOR-VERSION:04.00"
    buf[: len(magic)] = magic
    buf[0x401] = 3
    buf += struct.pack("<i", 6)
    cff_pos = len(buf)
    buf += struct.pack("<Hi", 0x10, 0)
    encoded = [s.encode("latin-1") + b"\0" for s in strings]
    pos = 4 * len(encoded)
    for e in encoded:
        buf += struct.pack("<i", pos)
        pos += len(e)
    for e in encoded:
        buf += e
    ctf_pos = len(buf)
    struct.pack_into("<i", buf, cff_pos + 2, ctf_pos - cff_pos)
    buf += struct.pack("<Hii", 0x30, 1, 10)
    buf += struct.pack("<i", 4)
    buf += struct.pack("<Hi", 0x10, len(strings))
    return bytes(buf)


@pytest.fixture
def cbf(tmp_path):
    path = tmp_path / "sample.cbf"
    path.write_bytes(build_cbf(["Hello", "World"]))
    return path


def test_cff_is_rejected(capsys):
    assert read_file("input.cff", None, False) is None
    assert "Only CBF" in capsys.readouterr().err


def test_dump_strings(tmp_path, cbf):
    csv = tmp_path / "out.csv"
    assert read_file(str(cbf), str(csv), True) is None
    assert csv.read_text().splitlines()[1] == '1,""""World""""'


def test_no_ecus(cbf, capsys):
    assert read_file(str(cbf), None, False) is None
    assert "No ECU" in capsys.readouterr().err


def test_truncated_file(tmp_path, capsys):
    path = tmp_path / "bad.cbf"
    path.write_bytes(b"CBF")
    assert read_file(str(path), None, False) is None
    assert "ERROR PROCESSING" in capsys.readouterr().out


def test_main_invalid_arg_count(capsys):
    assert main(["a", "b"]) == 1
    out = capsys.readouterr().out
    assert "Invalid number of args: 2" in out
    assert "Usage:" in out


def test_main_invalid_operation(capsys):
    assert main(["x.cbf", "-bogus", "y.csv"]) == 1
    assert "String operation is not valid" in capsys.readouterr().out


def test_main_dump_and_load(tmp_path, cbf):
    csv = tmp_path / "s.csv"
    assert main([str(cbf), "-dump_strings", str(csv)]) == 0
    assert csv.exists()
    assert main([str(cbf), "-load_strings", str(tmp_path / "missing.csv")]) == 1


def test_main_missing_input(tmp_path):
    assert main([str(tmp_path / "missing.cbf")]) == 1