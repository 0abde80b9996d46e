import struct

import pytest

from cbfkit.ctf import CTFLanguage
from cbfkit.dtc import DTC
from cbfkit.reader import BinaryReader, CaesarError


@pytest.fixture
def lang():
    return CTFLanguage(strings=["Sensor fault", "See manual"])


def _blob(prefix=b""):
    body = struct.pack("<Hiii", 0b111, 14, 0, 1) + b"P0100\0"
    return prefix + body


def test_reads_all_fields(lang):
    dtc = DTC.from_reader(BinaryReader(_blob()), 0, 7, lang)
    assert dtc.qualifier == "P0100"
    assert dtc.description == "Sensor fault"
    assert dtc.reference == "See manual"
    assert dtc.pool_idx == 7
    assert dtc.base_addr == 0


def test_string_offset_is_relative_to_base(lang):
    dtc = DTC.from_reader(BinaryReader(_blob(b"\0" * 5)), 5, 0, lang)
    assert dtc.qualifier == "P0100"
    assert dtc.base_addr == 5


def test_xrefs_start_unset_and_envs_empty(lang):
    dtc = DTC.from_reader(BinaryReader(_blob()), 0, 0, lang)
    assert (dtc.xrefs_start, dtc.xrefs_count) == (-1, -1)
    assert dtc.envs == []


def test_no_flags_gives_empty_fields(lang):
    dtc = DTC.from_reader(BinaryReader(struct.pack("<H", 0)), 0, 3, lang)
    assert dtc.qualifier == ""
    assert dtc.description is None
    assert dtc.reference is None


def test_unknown_string_index_is_none(lang):
    blob = struct.pack("<Hii", 0b110, 99, -1)
    dtc = DTC.from_reader(BinaryReader(blob), 0, 0, lang)
    assert dtc.description is None
    assert dtc.reference is None


def test_truncated_flags_raise(lang):
    with pytest.raises(CaesarError):
        DTC.from_reader(BinaryReader(b""), 0, 0, lang)