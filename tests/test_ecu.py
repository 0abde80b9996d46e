import struct
from types import SimpleNamespace

import pytest

from cbfkit.ecu import ECU, Block, read_pool
from cbfkit.reader import BinaryReader, BitFlags, CaesarError


class _Lang:
    def get_string(self, idx):
        return None if idx < 0 else f"str{idx}"


_HEADER = SimpleNamespace(string_pool_size=0, cff_header_size=0)
_DATA_OFFSET = 0x414


def test_block_reads_flagged_fields():
    reader = BinaryReader(struct.pack("<4i", 8, 2, 10, 20))
    block = Block.from_reader(reader, BitFlags(0xF), 100)
    assert block == Block(block_offset=108, entry_count=2, entry_size=10, block_size=20)


def test_block_without_flags_is_relative_offset():
    reader = BinaryReader(b"")
    block = Block.from_reader(reader, BitFlags(0), 100)
    assert block == Block(block_offset=100)
    assert reader.pos == 0


def test_read_pool_slices_entries():
    reader = BinaryReader(bytes(range(10)))
    pool = read_pool(reader, Block(block_offset=2, entry_count=2, entry_size=3))
    assert pool == bytes(range(2, 8))


def test_read_pool_empty_block():
    assert read_pool(BinaryReader(b""), Block(block_offset=5000)) == b""


def _ecu_file():
    data = bytearray(0x424 + 17)
    flags = 1 | (0xF << 17)
    head = struct.pack("<IHi", flags, 0, 0) + struct.pack("<5i", 30, 0, 1, 10, 0) + b"ECU1\0"
    data[0:len(head)] = head
    data[_DATA_OFFSET:_DATA_OFFSET + 10] = struct.pack("<iiH", 16, 17, 0)
    variant = struct.pack("<IIi", 1, 0, 12) + b"VAR1\0"
    data[0x424:0x424 + len(variant)] = variant
    return bytes(data)


def test_ecu_with_one_variant():
    ecu = ECU.from_reader(BinaryReader(_ecu_file()), _Lang(), _HEADER, 0)
    assert ecu.qualifier == "ECU1"
    assert ecu.name is None
    assert ecu.ecu_variant.block_offset == _DATA_OFFSET
    assert [v.qualifier for v in ecu.variants] == ["VAR1"]
    assert ecu.interfaces == []
    assert ecu.global_services == []
    assert ecu.global_dtcs == []


def test_truncated_ecu_raises():
    with pytest.raises(CaesarError):
        ECU.from_reader(BinaryReader(b"\0" * 4), _Lang(), _HEADER, 0)