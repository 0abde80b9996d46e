"""Little-endian binary reading and the bit-flag field scheme used by CBF files."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum

_TEXT_ENCODING = "iso8859_10"


class CaesarError(Exception):
    """Raised when a CBF file cannot be read or understood."""


class Primitive(Enum):
    """Fixed-size little-endian values that a bit-flagged field may hold."""

    I8 = "<b"
    U8 = "<B"
    I16 = "<h"
    U16 = "<H"
    I32 = "<i"
    U32 = "<I"
    F32 = "<f"

    @property
    def size(self) -> int:
        return struct.calcsize(self.value)


class BinaryReader:
    """A seekable little-endian reader over an in-memory buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.pos = 0

    def __len__(self) -> int:
        return len(self._data)

    def seek(self, pos: int) -> None:
        self.pos = pos

    def read_bytes(self, count: int) -> bytes:
        if count < 0 or self.pos < 0 or self.pos + count > len(self._data):
            raise CaesarError(
                f"cannot read {count} bytes at offset {self.pos} "
                f"(buffer holds {len(self._data)})"
            )
        chunk = self._data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def read(self, kind: Primitive) -> int | float:
        (value,) = struct.unpack(kind.value, self.read_bytes(kind.size))
        return value

    def read_i8(self) -> int:
        return self.read(Primitive.I8)

    def read_u8(self) -> int:
        return self.read(Primitive.U8)

    def read_i16(self) -> int:
        return self.read(Primitive.I16)

    def read_u16(self) -> int:
        return self.read(Primitive.U16)

    def read_i32(self) -> int:
        return self.read(Primitive.I32)

    def read_u32(self) -> int:
        return self.read(Primitive.U32)

    def read_f32(self) -> float:
        return self.read(Primitive.F32)

    def read_cstr_bytes(self) -> bytes:
        """Read up to a NUL byte, consuming the terminator but not returning it."""
        if self.pos < 0 or self.pos >= len(self._data):
            raise CaesarError(f"no string at offset {self.pos}")
        end = self._data.find(b"\0", self.pos)
        if end < 0:
            raise CaesarError(f"unterminated string at offset {self.pos}")
        chunk = self._data[self.pos:end]
        self.pos = end + 1
        return chunk


class BitFlags:
    """A field-presence mask consumed one bit at a time, lowest bit first."""

    __slots__ = ("value",)

    def __init__(self, value: int = 0) -> None:
        self.value = value

    def take(self) -> bool:
        """Report whether the lowest bit is set, then shift it out."""
        is_set = bool(self.value & 1)
        self.value >>= 1
        return is_set

    def __repr__(self) -> str:
        return f"BitFlags({self.value:#x})"


def decode_string(data: bytes) -> str:
    """Decode text stored in a CBF file."""
    return data.decode(_TEXT_ENCODING, errors="replace")


def read_primitive(flags: BitFlags, reader: BinaryReader, kind: Primitive, default):
    """Read a value if its flag is set; otherwise, or if it cannot be read, give the default."""
    if not flags.take():
        return default
    try:
        return reader.read(kind)
    except CaesarError:
        return default


def read_bitflag_string(flags: BitFlags, reader: BinaryReader, base_addr: int) -> str:
    """Read a string referenced by an offset from ``base_addr``, if its flag is set."""
    if not flags.take():
        return ""
    offset = reader.read_i32()
    saved = reader.pos
    reader.seek(offset + base_addr)
    try:
        text = decode_string(reader.read_cstr_bytes())
    except CaesarError:
        text = ""
    reader.seek(saved)
    return text


def read_bitflag_dump(flags: BitFlags, reader: BinaryReader, dump_size: int, base_addr: int) -> bytes:
    """Read a block of ``dump_size`` bytes referenced by an offset, if its flag is set."""
    if not flags.take():
        return b""
    offset = reader.read_i32()
    saved = reader.pos
    reader.seek(offset + base_addr)
    try:
        dump = reader.read_bytes(dump_size)
    except CaesarError:
        dump = b""
    reader.seek(saved)
    return dump


def read_bitflag_dump_as_string(flags: BitFlags, reader: BinaryReader, dump_size: int, base_addr: int) -> str:
    """Like :func:`read_bitflag_dump`, decoding the bytes as text."""
    return decode_string(read_bitflag_dump(flags, reader, dump_size, base_addr))


@dataclass
class PoolTuple:
    """A (count, offset) pair locating a table of entries."""

    count: int = 0
    offset: int = 0

    @classmethod
    def from_reader(
        cls,
        reader: BinaryReader,
        flags: BitFlags,
        count_kind: Primitive = Primitive.I32,
        offset_kind: Primitive = Primitive.I32,
    ) -> "PoolTuple":
        count = read_primitive(flags, reader, count_kind, 0)
        offset = read_primitive(flags, reader, offset_kind, 0)
        return cls(count=int(count), offset=int(offset))