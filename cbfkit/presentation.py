"""Presentations: how a parameter's raw bits are shown to a user."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .ctf import CTFLanguage
from .reader import BinaryReader, BitFlags, CaesarError, Primitive, read_bitflag_string, read_primitive
from .scale import Scale


class FormatKind(Enum):
    BOOL = "Bool"
    IDENTICAL = "Identical"
    BINARY = "Binary"
    TABLE = "Table"
    LINEAR = "Linear"
    HEX_DUMP = "HexDump"
    STRING = "String"


@dataclass(frozen=True)
class TableData:
    """One named range of an enumeration table."""

    name: str
    start: float
    end: float


@dataclass(frozen=True)
class DataFormat:
    """How to interpret a parameter; only the fields its kind uses are set."""

    kind: FormatKind
    pos_name: str | None = None
    neg_name: str | None = None
    table: tuple[TableData, ...] = ()
    multiplier: float | None = None
    offset: float | None = None
    encoding: str | None = None


_IDENTICAL = DataFormat(FormatKind.IDENTICAL)


@dataclass
class Presentation:
    qualifier: str = ""
    description: str | None = None
    scale_table_offset: int = 0
    scale_count: int = 0
    unk5: int = 0
    unk6: int = 0
    unk7: int = 0
    unk8: int = 0
    unk9: int = 0
    unka: int = 0
    unkb: int = 0
    unkc: int = 0
    unkd: int = 0
    unke: int = 0
    unkf: int = 0
    display_unit: str | None = None
    unk11: int = 0
    unk12: int = 0
    unk13: int = 0
    unk14: int = 0
    unk15: int = 0
    description2: str | None = None
    unk17: int = 0
    unk18: int = 0
    unk19: int = 0
    type_length_1a: int = 0
    unk1b: int = 0
    type_1c: int = 0
    unk1d: int = 0
    enumtype_1e: int = 0
    unk1f: int = 0
    unk20: int = 0
    type_length_bytes_maybe: int = 0
    unk22: int = 0
    unk23: int = 0
    unk24: int = 0
    unk25: int = 0
    unk26: int = 0
    base_addr: int = 0
    presentation_idx: int = 0
    scale_list: list[Scale] = field(default_factory=list)

    @classmethod
    def from_reader(
        cls, reader: BinaryReader, base_addr: int, presentation_idx: int, lang: CTFLanguage
    ) -> "Presentation":
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u32())
        flags_ext = BitFlags(reader.read_u16())

        def rd(kind: Primitive, default: int, bits: BitFlags = flags) -> int:
            return read_primitive(bits, reader, kind, default)

        def text_idx() -> str | None:
            return lang.get_string(rd(Primitive.I32, -1))

        I8, I16, I32 = Primitive.I8, Primitive.I16, Primitive.I32
        pres = cls(
            base_addr=base_addr,
            presentation_idx=presentation_idx,
            qualifier=read_bitflag_string(flags, reader, base_addr),
            description=text_idx(),
            scale_table_offset=rd(I32, -1),
            scale_count=rd(I32, 0),
            unk5=rd(I32, -1),
            unk6=rd(I32, 0),
            unk7=rd(I32, 0),
            unk8=rd(I32, 0),
            unk9=rd(I32, 0),
            unka=rd(I32, 0),
            unkb=rd(I32, 0),
            unkc=rd(I32, 0),
            unkd=rd(I16, 0),
            unke=rd(I16, 0),
            unkf=rd(I16, 0),
            display_unit=text_idx(),
            unk11=rd(I32, 0),
            unk12=rd(I32, 0),
            unk13=rd(I32, 0),
            unk14=rd(I32, -1),
            unk15=rd(I32, 0),
            description2=text_idx(),
            unk17=rd(I32, -1),
            unk18=rd(I32, 0),
            unk19=rd(I32, -1),
            type_length_1a=rd(I32, -1),
            unk1b=rd(I8, -1),
            type_1c=rd(I8, -1),
            unk1d=rd(I8, 0),
            enumtype_1e=rd(I8, 0),
            unk1f=rd(I8, 0),
            unk20=rd(I32, 0),
            type_length_bytes_maybe=rd(I32, 0, flags_ext),
            unk22=rd(I32, -1, flags_ext),
            unk23=rd(I16, 0, flags_ext),
            unk24=rd(I32, 0, flags_ext),
            unk25=rd(I32, 0, flags_ext),
            unk26=rd(I32, 0, flags_ext),
        )

        if pres.scale_count > 0:
            table_base = base_addr + pres.scale_table_offset
            for i in range(pres.scale_count):
                reader.seek(table_base + i * 4)
                entry_offset = reader.read_i32()
                pres.scale_list.append(Scale.from_reader(reader, entry_offset + table_base, lang))
        return pres

    def data_type(self) -> int:
        """The raw data type code the presentation implies."""
        if self.unk14 != -1:
            return 17
        if self.scale_table_offset != -1:
            return 20
        if -1 in (self.unk5, self.unk17, self.unk19, self.unk22) and any(
            v != -1 for v in (self.unk5, self.unk17, self.unk19, self.unk22)
        ) or any(v != -1 for v in (self.unk5, self.unk17, self.unk19, self.unk22)):
            return 18
        if self.unk1b != -1:
            if self.unk1b == 6:
                return 17
            if self.unk1b == 7:
                return 22
            if self.unk1b in (8, 5):
                return 6
            return -1
        if self.type_length_1a == -1 or self.type_1c != -1:
            print("Type length and type must be valid", file=sys.stderr)
        return 5 if self.enumtype_1e in (1, 2) else 2

    def create(self, prep: Any) -> DataFormat | None:
        """Work out the data format for ``prep``, or None when it cannot be shown."""
        size = prep.size_in_bits
        is_enum = (self.enumtype_1e == 0 and self.type_1c == 1) or len(self.scale_list) > 1

        if size == 1 or (is_enum and len(self.scale_list) == 2):
            if not self.scale_list:
                return DataFormat(FormatKind.BOOL)
            if is_enum:
                if len(self.scale_list) < 2:
                    raise CaesarError(f"enumeration {self.qualifier} has only one state")
                return DataFormat(
                    FormatKind.BOOL,
                    pos_name=self.scale_list[1].enum_description,
                    neg_name=self.scale_list[0].enum_description,
                )
            return _IDENTICAL

        if is_enum and self.scale_count >= 1:
            is_binary_str = all(
                (s.enum_description or "").startswith("b") for s in self.scale_list
            )
            if 0 <= size <= 16 and self.scale_count == 2 ** size and is_binary_str:
                print(f"Found Binary table with {self.scale_count} entries! {self.qualifier}")
                return DataFormat(FormatKind.BINARY)
            return DataFormat(
                FormatKind.TABLE,
                table=tuple(
                    TableData(
                        name=s.enum_description if s.enum_description is not None else "MISSING ENUM",
                        start=float(s.enum_lower_bound),
                        end=float(s.enum_upper_bound),
                    )
                    for s in self.scale_list
                ),
            )

        d_type = self.data_type()
        if d_type == 6:
            return _IDENTICAL
        if d_type == 20:
            if not self.scale_list:
                print(
                    f"Warning. Scale type {self.qualifier} has no scale list. Assuming identical",
                    file=sys.stderr,
                )
                return _IDENTICAL
            first = self.scale_list[0]
            return DataFormat(
                FormatKind.LINEAR, multiplier=first.multiply_factor, offset=first.add_const_offset
            )
        if d_type == 18:
            return DataFormat(FormatKind.HEX_DUMP)
        if d_type == 17:
            return DataFormat(FormatKind.STRING, encoding="utf8")
        return None