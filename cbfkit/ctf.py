"""CBF stub header, CFF header and CTF language tables."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .reader import (
    BinaryReader,
    BitFlags,
    CaesarError,
    Primitive,
    decode_string,
    read_bitflag_string,
    read_primitive,
)

STUB_HEADER_SIZE = 0x410
FILE_HEADER = b"CBF-TRANSLATOR-VERSION:04.00"
_MAGIC_OFFSET = 0x401
_EXPECTED_MAGIC = 3
_INDEX = re.compile(r"\+?[0-9]+")


def check_stub_header(header: bytes) -> list[str]:
    """Check the stub header, print and return any warnings about it."""
    if len(header) < STUB_HEADER_SIZE:
        raise CaesarError(f"stub header needs {STUB_HEADER_SIZE} bytes, got {len(header)}")
    warnings = []
    if not header[:STUB_HEADER_SIZE].startswith(FILE_HEADER):
        warnings.append("WARNING. Unknown CBF version (Not 4.00.xx)")
    magic = header[_MAGIC_OFFSET]
    if magic != _EXPECTED_MAGIC:
        warnings.append(f"WARNING. CBF Magic unrecognized ({magic})")
    for message in warnings:
        print(message, file=sys.stderr)
    return warnings


@dataclass
class CFFHeader:
    caesar_version: int = 0
    gpd_version: int = 0
    ecu_count: int = 0
    ecu_offset: int = 0
    ctf_offset: int = 0
    string_pool_size: int = 0
    dsc_offset: int = 0
    dsc_count: int = 0
    dsc_entry_size: int = 0
    cbf_version_string: str = ""
    gpd_version_string: str = ""
    xml_string: str = ""
    cff_header_size: int = 0
    base_addr: int = 0
    dsc_block_offset: int = 0
    dsc_block_size: int = 0
    dsc_pool: bytes = b""

    @classmethod
    def from_reader(cls, reader: BinaryReader) -> "CFFHeader":
        reader.seek(STUB_HEADER_SIZE)
        cff_header_size = reader.read_i32()
        base_addr = reader.pos
        flags = BitFlags(reader.read_u16())

        def i32() -> int:
            return read_primitive(flags, reader, Primitive.I32, 0)

        def text() -> str:
            return read_bitflag_string(flags, reader, base_addr)

        return cls(
            base_addr=base_addr,
            cff_header_size=cff_header_size,
            caesar_version=i32(),
            gpd_version=i32(),
            ecu_count=i32(),
            ecu_offset=i32(),
            ctf_offset=i32(),
            string_pool_size=i32(),
            dsc_offset=i32(),
            dsc_count=i32(),
            dsc_entry_size=i32(),
            cbf_version_string=text(),
            gpd_version_string=text(),
            xml_string=text(),
        )


@dataclass
class CTFLanguage:
    qualifier: str = ""
    language_index: int = 0
    string_pool_size: int = 0
    offset_string_pool_base: int = 0
    string_count: int = 0
    strings: list[str] = field(default_factory=list)
    base_addr: int = 0

    @classmethod
    def from_reader(cls, reader: BinaryReader, base_addr: int, header_size: int) -> "CTFLanguage":
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u16())
        language = cls(
            base_addr=base_addr,
            qualifier=read_bitflag_string(flags, reader, base_addr),
            language_index=read_primitive(flags, reader, Primitive.I16, 0),
            string_pool_size=read_primitive(flags, reader, Primitive.I32, 0),
            offset_string_pool_base=read_primitive(flags, reader, Primitive.I32, 0),
            string_count=read_primitive(flags, reader, Primitive.I32, 0),
        )
        language._load_strings(reader, header_size)
        return language

    def _load_strings(self, reader: BinaryReader, header_size: int) -> None:
        table_offset = header_size + STUB_HEADER_SIZE + 4
        strings = []
        for i in range(self.string_count):
            reader.seek(table_offset + i * 4)
            string_offset = reader.read_i32()
            reader.seek(table_offset + string_offset)
            strings.append(decode_string(reader.read_cstr_bytes()))
        self.strings = strings

    def get_string(self, idx: int) -> str | None:
        """Return the string at ``idx``, or None when there is none."""
        if idx < 0 or idx >= len(self.strings):
            return None
        return self.strings[idx]

    def dump_language_table(self, path) -> None:
        """Write the string table as a CSV of index and quoted text."""
        with open(path, "w", encoding="utf-8", newline="") as out:
            for idx, text in enumerate(self.strings):
                out.write(f'{idx},""""{text}""""\n')

    def load_language_table(self, path) -> None:
        """Replace strings from a CSV in the form written by :meth:`dump_language_table`."""
        content = Path(path).read_text(encoding="utf-8")
        updates = []
        for line in content.split("\n"):
            parts = line.split(',"')
            if not _INDEX.fullmatch(parts[0]):
                continue
            idx = int(parts[0])
            if len(parts) < 2:
                raise CaesarError(f"string table line has no text: {line!r}")
            updates.append((idx, parts[1].replace('"', "")))
        for idx, _ in updates:
            if idx >= len(self.strings):
                raise CaesarError(f"string index {idx} out of range ({len(self.strings)} strings)")
        for idx, text in updates:
            self.strings[idx] = text


@dataclass
class CTFHeader:
    unk1: int = 0
    qualifier: str = ""
    unk3: int = 0
    unk4: int = 0
    language_count: int = 0
    language_table_offset: int = 0
    unk7: str = ""
    base_addr: int = 0
    languages: list[CTFLanguage] = field(default_factory=list)

    @classmethod
    def from_reader(cls, reader: BinaryReader, base_addr: int, header_size: int) -> "CTFHeader":
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u16())
        header = cls(
            base_addr=base_addr,
            unk1=read_primitive(flags, reader, Primitive.I32, 0),
            qualifier=read_bitflag_string(flags, reader, base_addr),
            unk3=read_primitive(flags, reader, Primitive.I16, 0),
            unk4=read_primitive(flags, reader, Primitive.I32, 0),
            language_count=read_primitive(flags, reader, Primitive.I32, 0),
            language_table_offset=read_primitive(flags, reader, Primitive.I32, 0),
            unk7=read_bitflag_string(flags, reader, base_addr),
        )
        table = header.language_table_offset + base_addr
        for i in range(header.language_count):
            reader.seek(table + i * 4)
            entry_addr = reader.read_i32() + table
            header.languages.append(CTFLanguage.from_reader(reader, entry_addr, header_size))
        return header

    def get_language(self, idx: int) -> CTFLanguage:
        return self.languages[idx]