"""Scale entries of a presentation: enum bounds and linear conversion factors."""

from __future__ import annotations

from dataclasses import dataclass

from .ctf import CTFLanguage
from .reader import BinaryReader, BitFlags, Primitive, read_primitive


@dataclass
class Scale:
    """One row of a presentation's scale table."""

    enum_lower_bound: int = 0
    enum_upper_bound: int = 0
    prep_lower_bound: int = 0
    prep_upper_bound: int = 0
    multiply_factor: float = 0.0
    add_const_offset: float = 0.0
    si_count: int = 0
    offset_si: int = 0
    us_count: int = 0
    offset_us: int = 0
    enum_description: str | None = None
    unkc: int = 0
    base_addr: int = 0

    @classmethod
    def from_reader(cls, reader: BinaryReader, base_addr: int, lang: CTFLanguage) -> "Scale":
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u16())

        def i32(default: int = 0) -> int:
            return read_primitive(flags, reader, Primitive.I32, default)

        def f32() -> float:
            return read_primitive(flags, reader, Primitive.F32, 0.0)

        return cls(
            base_addr=base_addr,
            enum_lower_bound=i32(),
            enum_upper_bound=i32(),
            prep_lower_bound=i32(),
            prep_upper_bound=i32(),
            multiply_factor=f32(),
            add_const_offset=f32(),
            si_count=i32(),
            offset_si=i32(),
            us_count=i32(),
            offset_us=i32(),
            enum_description=lang.get_string(i32(-1)),
            unkc=i32(),
        )