"""ECU variants: the services, trouble codes and patterns of one ECU variant."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Sequence

from .com_param import ComParameter
from .ctf import CTFLanguage
from .dtc import DTC
from .reader import (
    BinaryReader,
    BitFlags,
    CaesarError,
    PoolTuple,
    Primitive,
    read_bitflag_string,
    read_primitive,
)
from .service import Service
from .variant_pattern import VariantPattern

_log = logging.getLogger(__name__)


class _DTCPoolBounds(NamedTuple):
    actual_index: int
    xref_start: int
    xref_count: int

    @classmethod
    def read(cls, reader: BinaryReader) -> "_DTCPoolBounds":
        return cls(reader.read_i32(), reader.read_i32(), reader.read_i32())


def _with_xrefs(dtc: DTC, bounds: _DTCPoolBounds) -> DTC:
    return dataclasses.replace(
        dtc,
        xrefs_start=bounds.xref_start,
        xrefs_count=bounds.xref_count,
        envs=list(dtc.envs),
    )


@dataclass
class ECUVariant:
    """One variant of an ECU, resolved against the ECU's global pools."""

    base_addr: int = 0
    qualifier: str = ""
    name: str | None = None
    description: str | None = None
    unk_str1: str = ""
    unk_str2: str = ""
    unk1: int = 0
    matching_parent: PoolTuple = field(default_factory=PoolTuple)
    subsection_b: PoolTuple = field(default_factory=PoolTuple)
    com_params: PoolTuple = field(default_factory=PoolTuple)
    diag_service_code: PoolTuple = field(default_factory=PoolTuple)
    diag_services: PoolTuple = field(default_factory=PoolTuple)
    dtc: PoolTuple = field(default_factory=PoolTuple)
    environment_ctx: PoolTuple = field(default_factory=PoolTuple)
    xref: PoolTuple = field(default_factory=PoolTuple)
    vc_domain: PoolTuple = field(default_factory=PoolTuple)
    negative_response_name: str = ""
    unk_byte: int = 0
    variant_patterns: list[VariantPattern] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    dtcs: list[DTC] = field(default_factory=list)
    xref_list: list[int] = field(default_factory=list)

    @classmethod
    def from_reader(
        cls,
        reader: BinaryReader,
        parent_ecu: Any,
        lang: CTFLanguage,
        base_addr: int,
        block_size: int,
    ) -> "ECUVariant":
        """Read the variant block at ``base_addr``; communication parameters are attached to ``parent_ecu``."""
        _log.debug("Processing ECU Variant - Base address: 0x%08X", base_addr)
        reader.seek(base_addr)
        block = BinaryReader(reader.read_bytes(block_size))

        flags = BitFlags(block.read_u32())
        block.read_u32()

        def text() -> str:
            return read_bitflag_string(flags, block, 0)

        def pool() -> PoolTuple:
            return PoolTuple.from_reader(block, flags)

        variant = cls(
            base_addr=base_addr,
            qualifier=text(),
            name=lang.get_string(read_primitive(flags, block, Primitive.I32, -1)),
            description=lang.get_string(read_primitive(flags, block, Primitive.I32, -1)),
            unk_str1=text(),
            unk_str2=text(),
            unk1=read_primitive(flags, block, Primitive.I32, 0),
            matching_parent=pool(),
            subsection_b=pool(),
            com_params=pool(),
            diag_service_code=pool(),
            diag_services=pool(),
            dtc=pool(),
            environment_ctx=pool(),
            xref=pool(),
            vc_domain=pool(),
            negative_response_name=text(),
            unk_byte=read_primitive(flags, block, Primitive.U8, 0),
        )

        block.seek(variant.diag_services.offset)
        service_indices = [block.read_i32() for _ in range(variant.diag_services.count)]

        block.seek(variant.dtc.offset)
        dtc_bounds = [_DTCPoolBounds.read(block) for _ in range(variant.dtc.count)]

        block.seek(variant.environment_ctx.offset)
        env_offsets: list[int] = []
        for _ in range(variant.environment_ctx.count):
            try:
                env_offsets.append(block.read_i32())
            except CaesarError:
                break

        variant.services = cls._resolve_services(service_indices, parent_ecu.global_services)
        variant.variant_patterns = variant._read_variant_patterns(reader)
        variant.dtcs = cls._resolve_dtcs(dtc_bounds, parent_ecu.global_dtcs)
        variant._read_xrefs(reader)
        variant._attach_com_params(reader, parent_ecu)
        variant._attach_env_ctxs(env_offsets, parent_ecu.global_env_ctxs)
        return variant

    @staticmethod
    def _resolve_services(indices: Sequence[int], global_services: Sequence[Service]) -> list[Service]:
        by_idx = {s.pool_idx: s for s in global_services}
        return [by_idx[idx] if idx in by_idx else Service() for idx in indices]

    def _read_variant_patterns(self, reader: BinaryReader) -> list[VariantPattern]:
        table = self.base_addr + self.matching_parent.offset
        patterns = []
        for i in range(self.matching_parent.count):
            reader.seek(table + i * 4)
            offset = reader.read_i32()
            patterns.append(VariantPattern.from_reader(reader, offset + table))
        return patterns

    @staticmethod
    def _resolve_dtcs(bounds: Sequence[_DTCPoolBounds], global_dtcs: Sequence[DTC]) -> list[DTC]:
        found: list[DTC | None] = [None] * len(bounds)
        for dtc in global_dtcs:
            for i, b in enumerate(bounds):
                if dtc.pool_idx == b.actual_index:
                    found[i] = _with_xrefs(dtc, b)

        ordered = sorted(bounds, key=lambda b: b.actual_index)
        lowest = 0
        for i, b in enumerate(ordered):
            if found[i] is not None:
                continue
            for idx in range(lowest, len(global_dtcs)):
                if global_dtcs[idx].pool_idx == b.actual_index:
                    found[i] = _with_xrefs(global_dtcs[idx], b)
                    lowest = idx
                    break
        return [d for d in found if d is not None]

    def _read_xrefs(self, reader: BinaryReader) -> None:
        reader.seek(self.base_addr + self.xref.offset)
        self.xref_list = [reader.read_i32() for _ in range(self.xref.count)]

    def _attach_com_params(self, reader: BinaryReader, parent: Any) -> None:
        base = self.base_addr + self.com_params.offset
        reader.seek(base)
        offsets = [reader.read_i32() + base for _ in range(self.com_params.count)]
        for offset in offsets:
            param = ComParameter.from_reader(reader, offset, parent.interfaces)
            target = param.parent_iface_idx if param.parent_iface_idx > 0 else param.sub_iface_idx
            if 0 <= target < len(parent.interface_sub_types):
                parent.interface_sub_types[target].comm_params.append(param)

    def _attach_env_ctxs(self, offsets: Sequence[int], global_envs: Sequence[Service]) -> None:
        matched: list[Service | None] = [None] * len(offsets)
        extra: list[Service] = []
        for i, offset in enumerate(offsets):
            if i == offset:
                if i >= len(global_envs):
                    raise CaesarError(f"environment context {i} is missing in variant {self.qualifier}")
                extra.append(global_envs[i])
        for env in global_envs:
            for i, offset in enumerate(offsets):
                if env.pool_idx == offset:
                    matched[i] = env
        candidates = [c for c in matched if c is not None] + extra

        if not candidates:
            return
        for dtc in self.dtcs:
            for idx in range(dtc.xrefs_start, dtc.xrefs_start + dtc.xrefs_count):
                if not 0 <= idx < len(self.xref_list):
                    raise CaesarError(
                        f"cross reference {idx} out of range for {dtc.qualifier} in {self.qualifier}"
                    )
                xref = self.xref_list[idx]
                match = next((s for s in candidates if s.pool_idx == xref), None)
                if match is not None:
                    dtc.envs.append(match)