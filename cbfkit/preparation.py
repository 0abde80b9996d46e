"""Preparations: where a parameter sits in a request or response, and how wide it is."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from .ctf import CTFLanguage
from .presentation import Presentation
from .reader import (
    BinaryReader,
    BitFlags,
    CaesarError,
    Primitive,
    read_bitflag_dump,
    read_bitflag_string,
    read_primitive,
)

_log = logging.getLogger(__name__)

INT_SIZE_MAP = (0x00, 0x01, 0x04, 0x08, 0x10, 0x20, 0x40)


class InferredDataType(Enum):
    UNASSIGNED = auto()
    INTEGER = auto()
    NATIVE_INFO_POOL = auto()
    NATIVE_PRESENTATION = auto()
    UNHANDLED_ITT = auto()
    UNHANDLED_SP17 = auto()
    UNHANDLED = auto()
    BIT_DUMP = auto()
    EXTENDED_BIT_DUMP = auto()


def _warn(message: str) -> None:
    print(message, file=sys.stderr)


@dataclass
class Preparation:
    """A parameter of a diagnostic service."""

    qualifier: str = ""
    name: str | None = None
    unk1: int = 0
    unk2: int = 0
    alternative_bit_width: int = 0
    itt_offset: int = 0
    info_pool_idx: int = 0
    pres_pool_idx: int = 0
    field_1e: int = 0
    system_param: int = 0
    dump_mode: int = 0
    dump_size: int = 0
    dump: bytes = b""
    field_type: InferredDataType = InferredDataType.UNASSIGNED
    bit_pos: int = 0
    mode_cfg: int = 0
    size_in_bits: int = 0
    presentation: Presentation | None = None

    @classmethod
    def from_reader(
        cls,
        reader: BinaryReader,
        lang: CTFLanguage,
        base_addr: int,
        bit_pos: int,
        mode_cfg: int,
        parent_ecu: Any,
        parent_service: Any,
    ) -> "Preparation":
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u32())

        def rd(kind: Primitive, default: int) -> int:
            return read_primitive(flags, reader, kind, default)

        I8, I16, I32 = Primitive.I8, Primitive.I16, Primitive.I32
        prep = cls(
            bit_pos=bit_pos,
            mode_cfg=mode_cfg,
            qualifier=read_bitflag_string(flags, reader, base_addr),
            name=lang.get_string(rd(I32, -1)),
            unk1=rd(I8, 0),
            unk2=rd(I8, 0),
            alternative_bit_width=rd(I32, 0),
            itt_offset=rd(I32, 0),
            info_pool_idx=rd(I32, 0),
            pres_pool_idx=rd(I32, 0),
            field_1e=rd(I32, 0),
            system_param=rd(I16, -1),
            dump_mode=rd(I16, 0),
            dump_size=rd(I32, 0),
        )
        prep.dump = read_bitflag_dump(flags, reader, prep.dump_size, base_addr)
        prep.size_in_bits = prep._compute_size_in_bits(parent_ecu, parent_service)
        return prep

    def _presentation_from(self, pool: list[Presentation]) -> Presentation:
        if not 0 <= self.pres_pool_idx < len(pool):
            raise CaesarError(
                f"presentation index {self.pres_pool_idx} out of range for {self.qualifier}"
            )
        return pool[self.pres_pool_idx]

    def _compute_size_in_bits(self, parent_ecu: Any, parent_service: Any) -> int:
        mode_e = self.mode_cfg & 0xF000
        mode_h = self.mode_cfg & 0x0FF0
        mode_l = self.mode_cfg & 0x000F

        if self.mode_cfg & 0xF00 == 0x300:
            if mode_l > 6:
                raise CaesarError("impl_type <= 6. This data type does not exist!")
            if mode_h == 0x320:
                self.field_type = InferredDataType.INTEGER
                return INT_SIZE_MAP[mode_l]
            if mode_h == 0x330:
                self.field_type = InferredDataType.BIT_DUMP
                return self.alternative_bit_width
            if mode_h == 0x340:
                self.field_type = InferredDataType.UNHANDLED_ITT
                _warn("Warning - mode_h 0x340 is not implemented! - Data will be missing")
            else:
                _warn(f"Warning - mode_h is unrecognized value? 0x{mode_h:04X}")
            return 0

        if self.system_param == -1:
            if mode_e == 0x8000:
                pool = parent_ecu.global_internal_presentations
            elif mode_e == 0x2000:
                pool = parent_ecu.global_presentations
            else:
                raise CaesarError(
                    f"Unknown system type for {self.qualifier}. mode_cfg: {self.mode_cfg:04X} "
                    f"mode_e: {mode_e:04X} mode_h: {mode_h:04X} mode_l: {mode_l:04X}"
                )
            self.field_type = InferredDataType.NATIVE_PRESENTATION
            pres = self._presentation_from(pool)
            size = pres.type_length_1a if pres.type_length_1a > 0 else pres.type_length_bytes_maybe
            if pres.type_1c == 0:
                size *= 8
            self.presentation = pres
            return size

        if mode_h == 0x410:
            reduced = self.system_param - 0x10
            if reduced == 0:
                remaining = (parent_service.byte_count() & 0xFF) - self.bit_pos // 8
                if remaining < 0:
                    raise CaesarError(f"parameter {self.qualifier} starts past the request")
                self.field_type = InferredDataType.EXTENDED_BIT_DUMP
                return remaining * 8
            if reduced == 17:
                referenced = next(
                    (s for s in parent_ecu.global_services
                     if s.qualifier == parent_service.input_ref_name),
                    None,
                )
                if referenced is None:
                    _warn(f"Warning - 0x410 '{self.qualifier}' has no matching parent diag service")
                    return 0
                has_request_data = referenced.byte_count() > 0
                internal_type = referenced.data_class_service_type_shifted
                if internal_type & 0xC and has_request_data:
                    internal_type = 0x10000000 if internal_type & 4 else 0x20000000
                self.field_type = InferredDataType.UNHANDLED_SP17
                if internal_type & 0x10000:
                    return parent_service.byte_count()
                return parent_service.byte_count() * 8
            raise CaesarError(f"invalid system parameter for {self.qualifier}")

        if mode_h == 0x420:
            if mode_l > 6:
                raise CaesarError(f"impl type <= 6 (Doesn't exist) for {self.qualifier}")
            self.field_type = InferredDataType.INTEGER
            return INT_SIZE_MAP[mode_l]

        if mode_h == 0x430:
            self.field_type = InferredDataType.BIT_DUMP
            return self.alternative_bit_width

        self.field_type = InferredDataType.UNHANDLED
        raise CaesarError(f"Unhandled param type {mode_h} for {self.qualifier}")