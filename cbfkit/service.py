"""Diagnostic services: requests, their parameters and communication parameters."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .com_param import ComParameter
from .ctf import CTFLanguage
from .preparation import Preparation
from .reader import (
    BinaryReader,
    BitFlags,
    CaesarError,
    PoolTuple,
    Primitive,
    read_bitflag_string,
    read_primitive,
)

_PREP_ENTRY_SIZE = 10
_OUT_PRES_ENTRY_SIZE = 8


class ServiceType(Enum):
    DATA = 5
    DOWNLOAD = 7
    DIAGNOSTIC_FUNCTION = 10
    DIAGNOSTIC_JOB = 19
    SESSION = 21
    STORED_DATA = 22
    ROUTINE = 23
    IO_CONTROL = 24
    UNKNOWN = 25

    @classmethod
    def from_raw(cls, value: int) -> "ServiceType":
        """Map a raw service class, warning about values not seen before."""
        if value in (26, 27):
            return cls.UNKNOWN
        if value != cls.UNKNOWN.value:
            try:
                return cls(value)
            except ValueError:
                pass
        print(f"Unknown service type {value:02X}", file=sys.stderr)
        return cls.UNKNOWN


def _to_i32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


@dataclass
class Service:
    qualifier: str = ""
    name: str | None = None
    description: str | None = None
    data_class_service_type: int = 0
    data_class_service_type_shifted: int = 0
    service_type: ServiceType = ServiceType.UNKNOWN
    is_executable: bool = False
    client_access_level: int = 0
    security_access_level: int = 0
    t_com_param: PoolTuple = field(default_factory=PoolTuple)
    q: PoolTuple = field(default_factory=PoolTuple)
    r: PoolTuple = field(default_factory=PoolTuple)
    input_ref_name: str = ""
    u_prep: PoolTuple = field(default_factory=PoolTuple)
    v: PoolTuple = field(default_factory=PoolTuple)
    request_bytes: PoolTuple = field(default_factory=PoolTuple)
    w_out_pres: PoolTuple = field(default_factory=PoolTuple)
    field50: int = 0
    negative_response_name: str = ""
    unk_str3: str = ""
    unk_str4: str = ""
    p: PoolTuple = field(default_factory=PoolTuple)
    diag_service_code: PoolTuple = field(default_factory=PoolTuple)
    s: PoolTuple = field(default_factory=PoolTuple)
    x: PoolTuple = field(default_factory=PoolTuple)
    y: PoolTuple = field(default_factory=PoolTuple)
    z: PoolTuple = field(default_factory=PoolTuple)
    req_bytes: bytes = b""
    base_addr: int = 0
    pool_idx: int = 0
    com_params: list[ComParameter] = field(default_factory=list)
    input_preparations: list[Preparation] = field(default_factory=list)
    output_preparations: list[Preparation] = field(default_factory=list)

    @classmethod
    def from_reader(
        cls,
        reader: BinaryReader,
        base_addr: int,
        pool_idx: int,
        lang: CTFLanguage,
        parent: Any,
    ) -> "Service":
        """Read a service; ``parent`` is the ECU holding interfaces, presentations and services."""
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u32())
        flags_ext = BitFlags(reader.read_u32())

        def u16() -> int:
            return read_primitive(flags, reader, Primitive.U16, 0)

        def text() -> str:
            return read_bitflag_string(flags, reader, base_addr)

        def pool(count_kind: Primitive = Primitive.I32, bits: BitFlags = flags) -> PoolTuple:
            return PoolTuple.from_reader(reader, bits, count_kind, Primitive.I32)

        service = cls(
            base_addr=base_addr,
            pool_idx=pool_idx,
            qualifier=text(),
            name=lang.get_string(read_primitive(flags, reader, Primitive.I32, -1)),
            description=lang.get_string(read_primitive(flags, reader, Primitive.I32, -1)),
            data_class_service_type=u16(),
            is_executable=u16() > 0,
            client_access_level=u16(),
            security_access_level=u16(),
            t_com_param=pool(),
            q=pool(),
            r=pool(),
            input_ref_name=text(),
            u_prep=pool(),
            v=pool(),
            request_bytes=pool(Primitive.I16),
            w_out_pres=pool(),
            field50=u16(),
            negative_response_name=text(),
            unk_str3=text(),
            unk_str4=text(),
            p=pool(),
            diag_service_code=pool(),
            s=pool(Primitive.I16),
        )
        service.service_type = ServiceType.from_raw(service.data_class_service_type)
        service.x = pool(bits=flags_ext)
        service.y = pool(bits=flags_ext)
        service.z = pool(bits=flags_ext)

        dcst = service.data_class_service_type
        if not 1 <= dcst <= 32:
            raise CaesarError(
                f"service {service.qualifier!r} has invalid data class type {dcst}"
            )
        service.data_class_service_type_shifted = _to_i32(1 << (dcst - 1))

        if service.request_bytes.count > 0:
            reader.seek(base_addr + service.request_bytes.offset)
            service.req_bytes = reader.read_bytes(service.request_bytes.count)

        prep_base = base_addr + service.u_prep.offset
        service.input_preparations = service._read_preparations(
            reader, lang, prep_base, service.u_prep.count, parent
        )

        out_base = base_addr + service.w_out_pres.offset
        for i in range(service.w_out_pres.count):
            reader.seek(out_base + i * _OUT_PRES_ENTRY_SIZE)
            count = reader.read_i32()
            offset = reader.read_i32()
            service.output_preparations.extend(
                service._read_preparations(reader, lang, out_base + offset, count, parent)
            )

        cp_base = base_addr + service.t_com_param.offset
        for i in range(service.t_com_param.count):
            reader.seek(cp_base + i * 4)
            cp_offset = reader.read_i32()
            service.com_params.append(
                ComParameter.from_reader(reader, cp_base + cp_offset, parent.interfaces)
            )
        return service

    def _read_preparations(
        self, reader: BinaryReader, lang: CTFLanguage, table: int, count: int, parent: Any
    ) -> list[Preparation]:
        preps = []
        for i in range(count):
            reader.seek(table + i * _PREP_ENTRY_SIZE)
            entry_offset = reader.read_i32()
            bit_pos = reader.read_i32()
            mode = reader.read_u16()
            preps.append(
                Preparation.from_reader(
                    reader, lang, table + entry_offset, bit_pos, mode, parent, self
                )
            )
        return preps

    def byte_count(self) -> int:
        """The number of request bytes the service sends."""
        return self.request_bytes.count