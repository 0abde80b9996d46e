import struct

import pytest

from cbfkit.ctf import (
    FILE_HEADER,
    STUB_HEADER_SIZE,
    CFFHeader,
    CTFHeader,
    CTFLanguage,
    check_stub_header,
)
from cbfkit.reader import BinaryReader, CaesarError

HEADER_SIZE = 16
CTF_ADDR = 0x480
LANG_ADDR = 0x500
STRINGS = ["alpha", "beta", "gamma"]


def _put(buf, pos, data):
    buf[pos:pos + len(data)] = data


def _stub(magic=3, prefix=FILE_HEADER):
    buf = bytearray(STUB_HEADER_SIZE)
    _put(buf, 0, prefix)
    buf[0x401] = magic
    return buf


def _build_file():
    buf = bytearray(0x600)
    table = HEADER_SIZE + STUB_HEADER_SIZE + 4
    data_pos = table + 4 * len(STRINGS)
    for i, text in enumerate(STRINGS):
        _put(buf, table + 4 * i, struct.pack("<i", data_pos - table))
        encoded = text.encode("iso8859_10") + b"\0"
        _put(buf, data_pos, encoded)
        data_pos += len(encoded)

    # language entry: qualifier and string count
    lang = struct.pack("<H", 0b10001) + struct.pack("<i", 10) + struct.pack("<i", len(STRINGS))
    _put(buf, LANG_ADDR, lang + b"English\0")

    # CTF header: qualifier, language count, language table offset
    flags = (1 << 1) | (1 << 4) | (1 << 5)
    ctf = struct.pack("<H", flags) + struct.pack("<i", 14) + struct.pack("<i", 1) + struct.pack("<i", 20)
    ctf += b"CTF_Q\0"
    ctf += struct.pack("<i", LANG_ADDR - (CTF_ADDR + 20))
    _put(buf, CTF_ADDR, ctf)
    return bytes(buf)


def _language():
    return CTFLanguage.from_reader(BinaryReader(_build_file()), LANG_ADDR, HEADER_SIZE)


def test_good_stub_header_has_no_warnings():
    assert check_stub_header(bytes(_stub())) == []


def test_bad_stub_header_warns_about_version_and_magic():
    warnings = check_stub_header(bytes(_stub(magic=7, prefix=b"OTHER")))
    assert len(warnings) == 2
    assert "(7)" in warnings[1]


def test_short_stub_header_raises():
    with pytest.raises(CaesarError):
        check_stub_header(FILE_HEADER)


def test_cff_header_fields_and_strings():
    flags = (1 << 9) | 1
    data = bytes(_stub()) + struct.pack("<i", 64) + struct.pack("<H", flags)
    data += struct.pack("<i", 42) + struct.pack("<i", 10) + b"4.0\0"
    header = CFFHeader.from_reader(BinaryReader(data))
    assert header.base_addr == STUB_HEADER_SIZE + 4
    assert header.cff_header_size == 64
    assert header.caesar_version == 42
    assert header.gpd_version == 0
    assert header.cbf_version_string == "4.0"
    assert header.xml_string == ""


def test_cff_header_truncated_raises():
    with pytest.raises(CaesarError):
        CFFHeader.from_reader(BinaryReader(bytes(_stub())))


def test_language_reads_qualifier_and_strings():
    lang = _language()
    assert lang.qualifier == "English"
    assert lang.string_count == len(STRINGS)
    assert lang.strings == STRINGS


def test_get_string_bounds():
    lang = _language()
    assert lang.get_string(0) == STRINGS[0]
    assert lang.get_string(-1) is None
    assert lang.get_string(len(STRINGS)) is None


def test_ctf_header_reads_languages():
    header = CTFHeader.from_reader(BinaryReader(_build_file()), CTF_ADDR, HEADER_SIZE)
    assert header.qualifier == "CTF_Q"
    assert header.language_count == 1
    assert header.get_language(0).strings == STRINGS


def test_dump_format(tmp_path):
    path = tmp_path / "strings.csv"
    _language().dump_language_table(path)
    lines = path.read_text(encoding="utf-8").split("\n")
    assert lines[0] == '0,""""alpha""""'
    assert len([line for line in lines if line]) == len(STRINGS)


def test_dump_then_load_round_trip(tmp_path):
    path = tmp_path / "strings.csv"
    lang = _language()
    lang.dump_language_table(path)
    lang.strings = ["x"] * len(STRINGS)
    lang.load_language_table(path)
    assert lang.strings == STRINGS


def test_load_replaces_only_listed_entries(tmp_path):
    path = tmp_path / "strings.csv"
    path.write_text('1,"""delta"""\nnot a row\n', encoding="utf-8")
    lang = _language()
    lang.load_language_table(path)
    assert lang.strings == ["alpha", "delta", "gamma"]


def test_load_out_of_range_index_raises(tmp_path):
    path = tmp_path / "strings.csv"
    path.write_text('9,"""zzz"""\n', encoding="utf-8")
    with pytest.raises(CaesarError):
        _language().load_language_table(path)


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        _language().load_language_table(tmp_path / "missing.csv")