"""ECU interfaces and interface sub-types, with their communication parameter names."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .com_param import ComParameter
from .ctf import CTFLanguage
from .reader import (
    BinaryReader,
    BitFlags,
    Primitive,
    decode_string,
    read_bitflag_string,
    read_primitive,
)

_log = logging.getLogger(__name__)


@dataclass
class ECUInterface:
    """A physical interface of an ECU and the names of its communication parameters."""

    qualifier: str = ""
    name: str | None = None
    desc: str | None = None
    version_string: str = ""
    version: int = 0
    com_param_count: int = 0
    com_param_list_offset: int = 0
    unk6: int = 0
    com_params: list[str] = field(default_factory=list)
    base_addr: int = 0

    @classmethod
    def from_reader(cls, reader: BinaryReader, base_addr: int, lang: CTFLanguage) -> "ECUInterface":
        reader.seek(base_addr)
        _log.debug("Processing ECU Interface - Base address: 0x%08X", base_addr)
        flags = BitFlags(reader.read_u32())

        iface = cls(
            base_addr=base_addr,
            qualifier=read_bitflag_string(flags, reader, base_addr),
            name=lang.get_string(read_primitive(flags, reader, Primitive.I32, -1)),
            desc=lang.get_string(read_primitive(flags, reader, Primitive.I32, -1)),
            version_string=read_bitflag_string(flags, reader, base_addr),
            version=read_primitive(flags, reader, Primitive.I32, 0),
            com_param_count=read_primitive(flags, reader, Primitive.I32, 0),
            com_param_list_offset=read_primitive(flags, reader, Primitive.I32, 0),
            unk6=read_primitive(flags, reader, Primitive.I16, 0),
        )

        table = iface.com_param_list_offset + base_addr
        for i in range(iface.com_param_count):
            reader.seek(table + i * 4)
            reader.seek(reader.read_i32() + table)
            iface.com_params.append(decode_string(reader.read_cstr_bytes()))
        return iface


class ParamName(Enum):
    """Communication parameter names known to appear in CBF files."""

    CP_BAUDRATE = "CP_BAUDRATE"
    CP_GLOBAL_REQUEST_CANIDENTIFIER = "CP_GLOBAL_REQUEST_CANIDENTIFIER"
    CP_FUNCTIONAL_REQUEST_CANIDENTIFIER = "CP_FUNCTIONAL_REQUEST_CANIDENTIFIER"
    CP_REQUEST_CANIDENTIFIER = "CP_REQUEST_CANIDENTIFIER"
    CP_RESPONSE_CANIDENTIFIER = "CP_RESPONSE_CANIDENTIFIER"
    CP_PARTNUMBERID = "CP_PARTNUMBERID"
    CP_PARTBLOCK = "CP_PARTBLOCK"
    CP_HWVERSIONID = "CP_HWVERSIONID"
    CP_SWVERSIONID = "CP_SWVERSIONID"
    CP_SWVERSIONBLOCK = "CP_SWVERSIONBLOCK"
    CP_SUPPLIERID = "CP_SUPPLIERID"
    CP_SWSUPPLIERBLOCK = "CP_SWSUPPLIERBLOCK"
    CP_ADDRESSMODE = "CP_ADDRESSMODE"
    CP_ADDRESSEXTENSION = "CP_ADDRESSEXTENSION"
    CP_ROE_RESPONSE_CANIDENTIFIER = "CP_ROE_RESPONSE_CANIDENTIFIER"
    CP_USE_TIMING_RECEIVED_FROM_ECU = "CP_USE_TIMING_RECEIVED_FROM_ECU"
    CP_STMIN_SUG = "CP_STMIN_SUG"
    CP_BLOCKSIZE_SUG = "CP_BLOCKSIZE_SUG"
    CP_P2_TIMEOUT = "CP_P2_TIMEOUT"
    CP_S3_TP_PHYS_TIMER = "CP_S3_TP_PHYS_TIMER"
    CP_S3_TP_FUNC_TIMER = "CP_S3_TP_FUNC_TIMER"
    CP_BR_SUG = "CP_BR_SUG"
    CP_CAN_TRANSMIT = "CP_CAN_TRANSMIT"
    CP_BS_MAX = "CP_BS_MAX"
    CP_CS_MAX = "CP_CS_MAX"
    CPI_ROUTINECOUNTER = "CPI_ROUTINECOUNTER"
    CP_REQREPCOUNT = "CP_REQREPCOUNT"
    CP_P2_EXT_TIMEOUT_7F_78 = "CP_P2_EXT_TIMEOUT_7F_78"
    CP_P2_EXT_TIMEOUT_7F_21 = "CP_P2_EXT_TIMEOUT_7F_21"
    CP_UNKNOWN = "CP_UNKNOWN"


@dataclass
class InterfaceSubType:
    """A protocol variant of an interface; variants attach communication parameters to it."""

    qualifier: str = ""
    name: str | None = None
    description: str | None = None
    unk3: int = 0
    unk4: int = 0
    unk5: int = 0
    unk6: int = 0
    unk7: int = 0
    unk8: int = 0
    unk9: int = 0
    unk10: int = 0
    base_addr: int = 0
    idx: int = 0
    comm_params: list[ComParameter] = field(default_factory=list)

    @classmethod
    def from_reader(
        cls, reader: BinaryReader, base_addr: int, idx: int, lang: CTFLanguage
    ) -> "InterfaceSubType":
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u32())

        def rd(kind: Primitive, default: int = 0) -> int:
            return read_primitive(flags, reader, kind, default)

        subtype = cls(
            base_addr=base_addr,
            idx=idx,
            qualifier=read_bitflag_string(flags, reader, base_addr),
            name=lang.get_string(rd(Primitive.I32, -1)),
            description=lang.get_string(rd(Primitive.I32, -1)),
            unk3=rd(Primitive.I16),
            unk4=rd(Primitive.I16),
            unk5=rd(Primitive.I32),
            unk6=rd(Primitive.I32),
            unk7=rd(Primitive.I32),
            unk8=rd(Primitive.I8),
            unk9=rd(Primitive.I8),
            unk10=rd(Primitive.I8),
        )
        _log.debug("%r", subtype)
        return subtype

    def get_cp_by_name(self, name: str) -> int | None:
        """The unsigned 32-bit value of the first parameter called ``name``, if any."""
        for param in self.comm_params:
            if param.param_name == name:
                return param.param_value & 0xFFFFFFFF
        return None