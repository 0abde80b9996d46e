"""Communication parameters attached to ECU interfaces."""

from __future__ import annotations

import logging
import struct
import sys
from dataclasses import dataclass
from typing import Any, Sequence

from .reader import (
    BinaryReader,
    BitFlags,
    CaesarError,
    Primitive,
    read_bitflag_dump,
    read_primitive,
)

_log = logging.getLogger(__name__)

MISSING_KEY = "CP_MISSING_KEY"


@dataclass
class ComParameter:
    """A named communication parameter value such as a baud rate or CAN ID."""

    param_idx: int = 0
    parent_iface_idx: int = 0
    sub_iface_idx: int = 0
    unk5: int = 0
    unk_ctf: int = 0
    phrase: int = 0
    dump_size: int = 0
    dump: bytes = b""
    param_value: int = 0
    param_name: str = ""
    base_addr: int = 0

    @classmethod
    def from_reader(
        cls, reader: BinaryReader, base_addr: int, parents: Sequence[Any]
    ) -> "ComParameter":
        """Read a parameter; ``parents`` are the ECU's interfaces, which name it."""
        _log.debug("Processing COM Parameter - Base address: 0x%08X", base_addr)
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u16())

        def i16() -> int:
            return read_primitive(flags, reader, Primitive.I16, 0)

        def i32() -> int:
            return read_primitive(flags, reader, Primitive.I32, 0)

        param = cls(
            base_addr=base_addr,
            param_idx=i16(),
            parent_iface_idx=i16(),
            sub_iface_idx=i16(),
            unk5=i16(),
            unk_ctf=i32(),
            phrase=i16(),
            dump_size=i32(),
        )
        param.dump = read_bitflag_dump(flags, reader, param.dump_size, base_addr)

        if param.dump_size == 4:
            if len(param.dump) < 4:
                raise CaesarError(
                    f"communication parameter at 0x{base_addr:08X} has an unreadable value"
                )
            (param.param_value,) = struct.unpack("<i", param.dump[:4])

        if not 0 <= param.parent_iface_idx < len(parents):
            raise CaesarError(
                f"communication parameter refers to missing interface {param.parent_iface_idx}"
            )
        parent = parents[param.parent_iface_idx]

        if 0 <= param.param_idx < len(parent.com_params):
            param.param_name = parent.com_params[param.param_idx]
        else:
            param.param_name = MISSING_KEY
            print(
                "Warning. Communication parameter has no parent!. "
                f"Value: {param.param_value}, parent: {parent.qualifier}",
                file=sys.stderr,
            )
        _log.debug("%r", param)
        return param