"""Diagnostic trouble code entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .ctf import CTFLanguage
from .reader import BinaryReader, BitFlags, Primitive, read_bitflag_string, read_primitive

_log = logging.getLogger(__name__)


@dataclass
class DTC:
    """A trouble code; its cross references and environment services are filled in by the variant."""

    qualifier: str = ""
    description: str | None = None
    reference: str | None = None
    xrefs_start: int = 0
    xrefs_count: int = 0
    base_addr: int = 0
    pool_idx: int = 0
    envs: list[Any] = field(default_factory=list)

    @classmethod
    def from_reader(
        cls, reader: BinaryReader, base_addr: int, pool_idx: int, lang: CTFLanguage
    ) -> "DTC":
        _log.debug("Processing DTC - Base address: 0x%08X", base_addr)
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u16())
        return cls(
            pool_idx=pool_idx,
            base_addr=base_addr,
            qualifier=read_bitflag_string(flags, reader, base_addr),
            description=lang.get_string(read_primitive(flags, reader, Primitive.I32, -1)),
            reference=lang.get_string(read_primitive(flags, reader, Primitive.I32, -1)),
            xrefs_start=-1,
            xrefs_count=-1,
        )