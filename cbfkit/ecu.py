"""ECUs: interfaces, global pools and variants read from a CBF container."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .ctf import CTFLanguage
from .dtc import DTC
from .interface import ECUInterface, InterfaceSubType
from .presentation import Presentation
from .reader import BinaryReader, BitFlags, Primitive, read_bitflag_string, read_primitive
from .service import Service
from .variant import ECUVariant

_log = logging.getLogger(__name__)

_STUB_HEADER_SIZE = 0x410

T = TypeVar("T")


@dataclass
class Block:
    """A table of fixed-size entries in the data buffer."""

    block_offset: int = 0
    entry_count: int = 0
    entry_size: int = 0
    block_size: int = 0

    @classmethod
    def from_reader(cls, reader: BinaryReader, flags: BitFlags, relative_offset: int) -> "Block":
        def i32() -> int:
            return read_primitive(flags, reader, Primitive.I32, 0)

        return cls(
            block_offset=i32() + relative_offset,
            entry_count=i32(),
            entry_size=i32(),
            block_size=i32(),
        )


def read_pool(reader: BinaryReader, block: Block) -> bytes:
    """The raw bytes of a block's entry table."""
    size = block.entry_count * block.entry_size
    if size == 0:
        return b""
    reader.seek(block.block_offset)
    return reader.read_bytes(size)


def _read_entries(
    reader: BinaryReader, block: Block, build: Callable[[BinaryReader, int], T]
) -> list[T]:
    table = BinaryReader(read_pool(reader, block))
    return [build(table, i) for i in range(block.entry_count)]


@dataclass
class ECU:
    qualifier: str = ""
    name: str | None = None
    description: str | None = None
    xml_version: str = ""
    iface_block_count: int = 0
    iface_table_offset: int = 0
    sub_iface_count: int = 0
    sub_iface_offset: int = 0
    class_name: str = ""
    unk7: str = ""
    unk8: str = ""
    ignition_required: bool = False
    unk2: int = 0
    unk_block_count: int = 0
    unk_block_offset: int = 0
    sgml_source: int = 0
    unk6_relative_offset: int = 0
    ecu_variant: Block = field(default_factory=Block)
    diag_job: Block = field(default_factory=Block)
    dtc: Block = field(default_factory=Block)
    env: Block = field(default_factory=Block)
    vc_domain: Block = field(default_factory=Block)
    presentations: Block = field(default_factory=Block)
    internal_presentations: Block = field(default_factory=Block)
    unk: Block = field(default_factory=Block)
    unk39: int = 0
    base_addr: int = 0
    interfaces: list[ECUInterface] = field(default_factory=list)
    interface_sub_types: list[InterfaceSubType] = field(default_factory=list)
    global_dtcs: list[DTC] = field(default_factory=list)
    global_presentations: list[Presentation] = field(default_factory=list)
    global_internal_presentations: list[Presentation] = field(default_factory=list)
    global_env_ctxs: list[Service] = field(default_factory=list)
    global_services: list[Service] = field(default_factory=list)
    variants: list[ECUVariant] = field(default_factory=list)

    @classmethod
    def from_reader(
        cls, reader: BinaryReader, lang: CTFLanguage, header: Any, base_addr: int
    ) -> "ECU":
        """Read the ECU at ``base_addr``; ``header`` is the container's CFF header."""
        reader.seek(base_addr)
        flags = BitFlags(reader.read_u32())
        flags_ext = BitFlags(reader.read_u16())
        reader.read_i32()

        _log.debug("Processing ECU - Base address: 0x%08X", base_addr)

        def text() -> str:
            return read_bitflag_string(flags, reader, base_addr)

        def rd(kind: Primitive, default: int = 0, bits: BitFlags = flags) -> int:
            return read_primitive(bits, reader, kind, default)

        ecu = cls(
            base_addr=base_addr,
            qualifier=text(),
            name=lang.get_string(rd(Primitive.I32, -1)),
            description=lang.get_string(rd(Primitive.I32, -1)),
            xml_version=text(),
            iface_block_count=rd(Primitive.I32),
            iface_table_offset=rd(Primitive.I32),
            sub_iface_count=rd(Primitive.I32),
            sub_iface_offset=rd(Primitive.I32),
            class_name=text(),
            unk7=text(),
            unk8=text(),
        )

        data_offset = header.string_pool_size + _STUB_HEADER_SIZE + header.cff_header_size + 4

        ecu.ignition_required = rd(Primitive.I16) > 0
        ecu.unk2 = rd(Primitive.I16)
        ecu.unk_block_count = rd(Primitive.I16)
        ecu.unk_block_offset = rd(Primitive.I32)
        ecu.sgml_source = rd(Primitive.I16)
        ecu.unk6_relative_offset = rd(Primitive.I32)

        ecu.ecu_variant = Block.from_reader(reader, flags, data_offset)
        ecu.diag_job = Block.from_reader(reader, flags, data_offset)
        ecu.dtc = Block.from_reader(reader, flags, data_offset)
        ecu.env = Block(
            block_offset=rd(Primitive.I32) + data_offset,
            entry_count=rd(Primitive.I32),
            entry_size=rd(Primitive.I32),
        )
        ecu.env.block_size = rd(Primitive.I32, bits=flags_ext)

        ecu.vc_domain = Block.from_reader(reader, flags_ext, data_offset)
        ecu.presentations = Block.from_reader(reader, flags_ext, data_offset)
        ecu.internal_presentations = Block.from_reader(reader, flags_ext, data_offset)
        ecu.unk = Block.from_reader(reader, flags_ext, data_offset)
        ecu.unk39 = rd(Primitive.I32, bits=flags_ext)

        iface_table = base_addr + ecu.iface_table_offset
        for i in range(ecu.iface_block_count):
            reader.seek(iface_table + i * 4)
            offset = reader.read_i32()
            ecu.interfaces.append(ECUInterface.from_reader(reader, iface_table + offset, lang))

        sub_table = base_addr + ecu.sub_iface_offset
        for i in range(ecu.sub_iface_count):
            reader.seek(sub_table + i * 4)
            offset = reader.read_i32()
            ecu.interface_sub_types.append(
                InterfaceSubType.from_reader(reader, sub_table + offset, i, lang)
            )

        ecu.global_presentations = ecu._read_presentations(reader, lang, ecu.presentations)
        ecu.global_internal_presentations = ecu._read_presentations(
            reader, lang, ecu.internal_presentations
        )
        ecu.global_env_ctxs = ecu._read_env_ctxs(reader, lang)
        ecu.global_services = ecu._read_diag_jobs(reader, lang)
        ecu.global_dtcs = ecu._read_dtcs(reader, lang)
        ecu.variants = ecu._read_variants(reader, lang)

        ecu.global_env_ctxs.clear()
        ecu.global_services.clear()
        ecu.global_dtcs.clear()
        return ecu

    @staticmethod
    def _read_presentations(
        reader: BinaryReader, lang: CTFLanguage, block: Block
    ) -> list[Presentation]:
        def build(table: BinaryReader, i: int) -> Presentation:
            offset = table.read_i32()
            table.read_i32()
            return Presentation.from_reader(reader, offset + block.block_offset, i, lang)

        return _read_entries(reader, block, build)

    def _read_env_ctxs(self, reader: BinaryReader, lang: CTFLanguage) -> list[Service]:
        block = self.env

        def build(table: BinaryReader, i: int) -> Service:
            offset = table.read_i32()
            table.read_i32()
            return Service.from_reader(reader, offset + block.block_offset, i, lang, self)

        return _read_entries(reader, block, build)

    def _read_diag_jobs(self, reader: BinaryReader, lang: CTFLanguage) -> list[Service]:
        block = self.diag_job

        def build(table: BinaryReader, i: int) -> Service:
            offset = table.read_i32()
            table.read_i32()
            table.read_i32()
            table.read_u16()
            return Service.from_reader(reader, offset + block.block_offset, i, lang, self)

        return _read_entries(reader, block, build)

    def _read_dtcs(self, reader: BinaryReader, lang: CTFLanguage) -> list[DTC]:
        block = self.dtc

        def build(table: BinaryReader, i: int) -> DTC:
            offset = table.read_i32()
            table.read_i32()
            table.read_i32()
            return DTC.from_reader(reader, offset + block.block_offset, i, lang)

        return _read_entries(reader, block, build)

    def _read_variants(self, reader: BinaryReader, lang: CTFLanguage) -> list[ECUVariant]:
        block = self.ecu_variant

        def build(table: BinaryReader, i: int) -> ECUVariant:
            offset = table.read_i32()
            size = table.read_i32()
            table.read_u16()
            return ECUVariant.from_reader(reader, self, lang, offset + block.block_offset, size)

        return _read_entries(reader, block, build)