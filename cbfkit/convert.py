"""Conversion of parsed ECUs into the OVD JSON schema."""

from __future__ import annotations

import copy
import dataclasses
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Sequence

from .ecu import ECU
from .interface import InterfaceSubType
from .preparation import Preparation
from .reader import CaesarError
from .service import Service, ServiceType

_log = logging.getLogger(__name__)

_DOWNLOAD_TYPES = (ServiceType.DATA, ServiceType.STORED_DATA)
_FUNCTION_TYPES = (ServiceType.DIAGNOSTIC_FUNCTION, ServiceType.ROUTINE)


def _jsonable(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict) and not isinstance(obj, type):
        return to_dict()
    if isinstance(obj, Enum):
        return obj.value if isinstance(obj.value, str) else obj.name
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _dataclass_dict(obj)
    if isinstance(obj, (bytes, bytearray)):
        return list(obj)
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj


def _dataclass_dict(obj: Any) -> dict[str, Any]:
    return {f.name: _jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}


class ServerType(Enum):
    UDS = "UDS"
    KWP2000 = "KWP2000"


class LinWakeUpType(Enum):
    FIVE_BAUD_INIT = "FiveBaudInit"


@dataclass
class IsoTpSettings:
    TAG: ClassVar[str] = "ISOTP"

    blocksize: int = 8
    st_min: int = 20
    ext_isotp_addr: bool = False
    ext_can_addr: bool = False


@dataclass
class LinSettings:
    TAG: ClassVar[str] = "LIN"

    max_segment_size: int = 254
    wake_up_method: LinWakeUpType = LinWakeUpType.FIVE_BAUD_INIT


@dataclass
class Connection:
    baud: int
    send_id: int
    recv_id: int
    global_send_id: int | None
    connection_type: IsoTpSettings | LinSettings
    server_type: ServerType

    def to_dict(self) -> dict[str, Any]:
        return {
            "baud": self.baud,
            "send_id": self.send_id,
            "recv_id": self.recv_id,
            "global_send_id": self.global_send_id,
            "connection_type": {self.connection_type.TAG: _dataclass_dict(self.connection_type)},
            "server_type": self.server_type.value,
        }


@dataclass
class Parameter:
    name: str = ""
    unit: str = ""
    start_bit: int = 0
    length_bits: int = 0
    byte_order: str = "BigEndian"
    data_format: Any = None
    valid_bounds: Any = None


@dataclass
class EcuDtc:
    error_name: str = ""
    summary: str = ""
    description: str = ""
    envs: list[Parameter] = field(default_factory=list)


@dataclass
class DiagService:
    name: str = ""
    description: str = ""
    payload: bytes = b""
    input_params: list[Parameter] = field(default_factory=list)
    output_params: list[Parameter] = field(default_factory=list)


@dataclass
class VariantPatternEntry:
    vendor: str = ""
    vendor_id: int = 0


@dataclass
class VariantDefinition:
    name: str = ""
    description: str = ""
    patterns: list[VariantPatternEntry] = field(default_factory=list)
    errors: list[EcuDtc] = field(default_factory=list)
    adjustments: list[DiagService] = field(default_factory=list)
    actuations: list[DiagService] = field(default_factory=list)
    functions: list[DiagService] = field(default_factory=list)
    downloads: list[DiagService] = field(default_factory=list)


@dataclass
class OvdEcu:
    name: str = ""
    description: str = ""
    variants: list[VariantDefinition] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _dataclass_dict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def build_connection(subtype: InterfaceSubType) -> Connection:
    """Describe how to reach an ECU over one interface sub-type."""
    cp = subtype.get_cp_by_name
    if "CAN" in subtype.qualifier:
        send_id = cp("CP_REQUEST_CANIDENTIFIER") or 0
        recv_id = cp("CP_RESPONSE_CANIDENTIFIER") or 0
        st_min = cp("CP_STMIN_SUG")
        return Connection(
            baud=cp("CP_BAUDRATE") or 0,
            send_id=send_id,
            recv_id=recv_id,
            global_send_id=cp("CP_GLOBAL_REQUEST_CANIDENTIFIER"),
            connection_type=IsoTpSettings(
                blocksize=8,
                st_min=20 if st_min is None else st_min,
                ext_isotp_addr=False,
                ext_can_addr=send_id > 0x7FF or recv_id > 0x7FF,
            ),
            server_type=ServerType.UDS if "UDS" in subtype.qualifier else ServerType.KWP2000,
        )

    _log.debug("%r", subtype)
    send_id = cp("CP_REQTARGETBYTE")
    if send_id is None:
        raise CaesarError("No LIN Request ID on interface!?")
    recv_id = cp("CP_RESPONSEMASTER")
    if recv_id is None:
        raise CaesarError("No LIN Response ID on interface!?")
    segment = cp("CP_SEGMENTSIZE")
    return Connection(
        baud=10400,
        send_id=send_id,
        recv_id=recv_id,
        global_send_id=cp("CP_TESTERPRESENTADDRESS"),
        connection_type=LinSettings(
            max_segment_size=254 if segment is None else segment,
            wake_up_method=LinWakeUpType.FIVE_BAUD_INIT,
        ),
        server_type=ServerType.KWP2000,
    )


def build_parameter(prep: Preparation, presentation: Any, name: str) -> Parameter | None:
    """A parameter for ``prep``, or None when its presentation has no data format."""
    data_format = presentation.create(prep)
    if data_format is None:
        return None
    return Parameter(
        name=name,
        unit=presentation.display_unit or "",
        start_bit=prep.bit_pos,
        length_bits=prep.size_in_bits,
        data_format=data_format,
    )


def delete_input_params(
    payload: bytes, params: Sequence[Parameter], dumps: Sequence[bytes]
) -> list[Parameter]:
    """Drop one-byte input parameters whose value is already fixed in the payload."""
    kept = []
    for param, dump in zip(params, dumps):
        if param.length_bits == 8:
            idx = param.start_bit // 8
            if idx < len(payload) and dump and payload[idx] == dump[0]:
                continue
        kept.append(param)
    return kept


def merge_downloads(services: Sequence[DiagService]) -> list[DiagService]:
    """Merge download services sharing a payload into one service listing every output."""
    groups: dict[bytes, list[DiagService]] = {}
    for service in services:
        groups.setdefault(bytes(service.payload), []).append(service)

    merged: list[DiagService] = []
    for payload, group in groups.items():
        if len(group) == 1:
            merged.append(group[0])
            continue
        if len(payload) < 2:
            raise CaesarError(f"download payload {payload.hex()} is too short to merge")
        root = copy.deepcopy(group[0])
        if root.output_params:
            root.output_params[0].name = root.description
        root.name = f"DT_{payload[0]:02X}_{payload[1]:02X}"
        root.description = f"Data download {payload[0]:02X} {payload[1]:02X}"
        for other in group[1:]:
            if len(other.output_params) == 1:
                param = copy.deepcopy(other.output_params[0])
                param.name = other.description
                root.output_params.append(param)
            else:
                merged.append(other)
        root.output_params.sort(key=lambda p: p.start_bit)
        merged.append(root)
    return merged


def _convert_service(service: Service) -> DiagService:
    inputs: list[Parameter] = []
    dumps: list[bytes] = []
    for prep in service.input_preparations:
        pres = prep.presentation
        if pres is None:
            continue
        name = pres.description if pres.description is not None else prep.qualifier
        param = build_parameter(prep, pres, name)
        if param is not None:
            inputs.append(param)
            dumps.append(bytes(prep.dump))

    outputs: list[Parameter] = []
    for prep in service.output_preparations:
        pres = prep.presentation
        if pres is None:
            continue
        name = pres.description if pres.description is not None else prep.qualifier
        param = build_parameter(prep, pres, name)
        if param is not None:
            outputs.append(param)

    payload = bytes(service.req_bytes)
    return DiagService(
        name=service.qualifier,
        description=service.name or "",
        payload=payload,
        input_params=delete_input_params(payload, inputs, dumps),
        output_params=outputs,
    )


def _convert_dtc(dtc: Any) -> EcuDtc:
    error = EcuDtc(
        description=dtc.description or "",
        error_name=dtc.qualifier,
        summary=dtc.reference or "",
    )
    for env in dtc.envs:
        if not env.output_preparations:
            continue
        prep = env.output_preparations[0]
        if prep.presentation is None:
            continue
        name = env.name if env.name is not None else prep.qualifier
        param = build_parameter(prep, prep.presentation, name)
        if param is not None:
            error.envs.append(param)
    return error


def convert_ecu(ecu: ECU) -> OvdEcu:
    """Build the OVD description of an ECU and all its variants."""
    ovd = OvdEcu(
        name=ecu.qualifier,
        description=ecu.name or "",
        connections=[build_connection(s) for s in ecu.interface_sub_types],
    )
    for variant in ecu.variants:
        if variant.qualifier == ecu.qualifier:
            continue
        definition = VariantDefinition(
            name=variant.qualifier,
            description=variant.name or "",
            patterns=[
                VariantPatternEntry(vendor=p.vendor_name, vendor_id=p.vendor_id() & 0xFFFFFFFF)
                for p in variant.variant_patterns
            ],
            errors=[_convert_dtc(d) for d in variant.dtcs],
        )
        for service in variant.services:
            converted = _convert_service(service)
            if not converted.payload:
                continue
            if service.service_type in _DOWNLOAD_TYPES:
                definition.downloads.append(converted)
            elif service.service_type in _FUNCTION_TYPES:
                definition.functions.append(converted)
        _log.info(
            "Data: %d, Functions: %d", len(definition.downloads), len(definition.functions)
        )
        definition.downloads = merge_downloads(definition.downloads)
        ovd.variants.append(definition)
    return ovd