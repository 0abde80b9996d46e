"""Variant patterns: vendor identifiers that select an ECU variant."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .reader import (
    BinaryReader,
    BitFlags,
    Primitive,
    read_bitflag_dump,
    read_bitflag_string,
    read_primitive,
)

_log = logging.getLogger(__name__)


class ECUType(Enum):
    KWP = "KWP"
    """The ECU speaks KWP2000."""
    UDS = "UDS"
    """The ECU speaks UDS."""
    UNK = "UNK"
    """Not known."""


@dataclass
class VariantPattern:
    unk_buffer_size: int = 0
    unk_buffer: bytes = b""
    unk3: int = 0
    unk4: int = 0
    unk5: int = 0
    vendor_name: str = ""
    kwp_vendor_id: int = 0
    unk8: int = 0
    unk9: int = 0
    unk10: int = 0
    unk11: int = 0
    unk12: int = 0
    unk13: int = 0
    unk14: int = 0
    unk15: int = 0
    unk16: bytes = b""
    unk17: int = 0
    unk18: int = 0
    unk19: int = 0
    unk20: int = 0
    unk21: str = ""
    unk22: int = 0
    unk23: int = 0
    uds_vendor_id: int = 0
    pattern_type: int = 0
    variant_id: ECUType = ECUType.UNK
    base_addr: int = 0

    @classmethod
    def from_reader(cls, reader: BinaryReader, base_addr: int) -> "VariantPattern":
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u32())

        def rd(kind: Primitive) -> int:
            return read_primitive(flags, reader, kind, 0)

        buffer_size = rd(Primitive.I32)
        _log.debug("Processing Variant Pattern - Base address: 0x%08X", base_addr)
        I16, I32, U8 = Primitive.I16, Primitive.I32, Primitive.U8
        pattern = cls(
            base_addr=base_addr,
            unk_buffer_size=buffer_size,
            unk_buffer=read_bitflag_dump(flags, reader, buffer_size, base_addr),
            unk3=rd(I32),
            unk4=rd(I32),
            unk5=rd(I32),
            vendor_name=read_bitflag_string(flags, reader, base_addr),
            kwp_vendor_id=rd(I16),
            unk8=rd(I16),
            unk9=rd(I16),
            unk10=rd(I16),
            unk11=rd(U8),
            unk12=rd(U8),
            unk13=rd(U8),
            unk14=rd(U8),
            unk15=rd(U8),
            unk16=read_bitflag_dump(flags, reader, 5, base_addr),
            unk17=rd(U8),
            unk18=rd(U8),
            unk19=rd(U8),
            unk20=rd(U8),
            unk21=read_bitflag_string(flags, reader, base_addr),
            unk22=rd(I32),
            unk23=rd(I32),
            uds_vendor_id=rd(I32),
            pattern_type=rd(I32),
        )
        pattern.variant_id = ECUType.KWP if pattern.uds_vendor_id == 0 else ECUType.UDS
        return pattern

    def vendor_id(self) -> int:
        """The vendor ID for the ECU's protocol, or 0 when the protocol is unknown."""
        if self.variant_id is ECUType.KWP:
            return self.kwp_vendor_id
        if self.variant_id is ECUType.UDS:
            return self.uds_vendor_id
        return 0