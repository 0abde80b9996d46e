import json

import pytest

from cbfkit.com_param import ComParameter
from cbfkit.convert import (
    DiagService,
    IsoTpSettings,
    LinSettings,
    Parameter,
    ServerType,
    build_connection,
    build_parameter,
    convert_ecu,
    delete_input_params,
    merge_downloads,
)
from cbfkit.dtc import DTC
from cbfkit.ecu import ECU
from cbfkit.interface import InterfaceSubType
from cbfkit.preparation import Preparation
from cbfkit.reader import CaesarError
from cbfkit.service import Service, ServiceType
from cbfkit.variant import ECUVariant
from cbfkit.variant_pattern import ECUType, VariantPattern


class FakePresentation:
    def __init__(self, fmt="IDENTICAL", description=None, unit=None):
        self.fmt = fmt
        self.description = description
        self.display_unit = unit

    def create(self, prep):
        return self.fmt


def subtype(qualifier, **params):
    return InterfaceSubType(
        qualifier=qualifier,
        comm_params=[ComParameter(param_name=k, param_value=v) for k, v in params.items()],
    )


def test_can_connection():
    conn = build_connection(
        subtype(
            "HSCAN_UDS",
            CP_BAUDRATE=500000,
            CP_REQUEST_CANIDENTIFIER=0x7E0,
            CP_RESPONSE_CANIDENTIFIER=0x7E8,
        )
    )
    assert conn.baud == 500000
    assert conn.send_id == 0x7E0
    assert conn.global_send_id is None
    assert conn.server_type is ServerType.UDS
    assert conn.connection_type == IsoTpSettings(8, 20, False, False)


def test_can_connection_extended_ids_kwp():
    conn = build_connection(subtype("CAN_KWP", CP_REQUEST_CANIDENTIFIER=0x18DA10F1, CP_STMIN_SUG=5))
    assert conn.server_type is ServerType.KWP2000
    assert conn.connection_type.ext_can_addr is True
    assert conn.connection_type.st_min == 5


def test_lin_connection():
    conn = build_connection(subtype("KLINE", CP_REQTARGETBYTE=0x10, CP_RESPONSEMASTER=0xF1))
    assert conn.baud == 10400
    assert conn.send_id == 0x10
    assert conn.recv_id == 0xF1
    assert isinstance(conn.connection_type, LinSettings)
    assert conn.connection_type.max_segment_size == 254
    assert conn.to_dict()["connection_type"]["LIN"]["wake_up_method"] == "FiveBaudInit"


def test_lin_connection_missing_id():
    with pytest.raises(CaesarError):
        build_connection(subtype("KLINE", CP_RESPONSEMASTER=0xF1))


def test_build_parameter():
    prep = Preparation(qualifier="q", bit_pos=16, size_in_bits=8)
    param = build_parameter(prep, FakePresentation(unit="km/h"), "Speed")
    assert (param.name, param.unit, param.start_bit, param.length_bits) == ("Speed", "km/h", 16, 8)
    assert build_parameter(prep, FakePresentation(fmt=None), "x") is None


def test_delete_input_params():
    params = [Parameter(name="a", start_bit=8, length_bits=8), Parameter(name="b", start_bit=16, length_bits=16)]
    kept = delete_input_params(b"\x22\xf1\x00", params, [b"\xf1", b"\x00"])
    assert [p.name for p in kept] == ["b"]
    kept = delete_input_params(b"\x22\xf2", params, [b"\xf1", b"\x00"])
    assert [p.name for p in kept] == ["a", "b"]


def test_merge_downloads():
    a = DiagService(name="sa", description="A", payload=b"\x21\x05",
                    output_params=[Parameter(name="pa", start_bit=16)])
    b = DiagService(name="sb", description="B", payload=b"\x21\x05",
                    output_params=[Parameter(name="pb", start_bit=8)])
    c = DiagService(name="sc", description="C", payload=b"\x21\x06",
                    output_params=[Parameter(name="pc")])
    merged = merge_downloads([a, b, c])
    assert len(merged) == 2
    root = next(s for s in merged if s.payload == b"\x21\x05")
    assert root.name == "DT_21_05"
    assert root.description == "Data download 21 05"
    assert [p.name for p in root.output_params] == ["B", "A"]
    assert a.output_params[0].name == "pa"


def make_ecu():
    prep = Preparation(qualifier="p", bit_pos=16, size_in_bits=8,
                       presentation=FakePresentation(description="Temp"))
    data = Service(qualifier="DT_x", name="Read x", req_bytes=b"\x21\x05",
                   service_type=ServiceType.DATA, output_preparations=[prep])
    routine = Service(qualifier="RT", name="Routine", req_bytes=b"\x31\x01",
                      service_type=ServiceType.ROUTINE)
    init = Service(qualifier="INIT", service_type=ServiceType.DATA)
    env = Service(name="Env", output_preparations=[prep])
    dtc = DTC(qualifier="P0001", description="Fault", envs=[env])
    pattern = VariantPattern(vendor_name="Acme", kwp_vendor_id=5, variant_id=ECUType.KWP)
    variant = ECUVariant(qualifier="V1", name="Variant one", services=[data, routine, init],
                         dtcs=[dtc], variant_patterns=[pattern])
    base = ECUVariant(qualifier="ECU1")
    return ECU(qualifier="ECU1", name="Engine", variants=[base, variant],
               interface_sub_types=[subtype("CAN_UDS", CP_BAUDRATE=500000)])


def test_convert_ecu():
    ovd = convert_ecu(make_ecu())
    assert ovd.name == "ECU1"
    assert len(ovd.variants) == 1
    v = ovd.variants[0]
    assert v.name == "V1"
    assert [s.name for s in v.downloads] == ["DT_x"]
    assert [s.name for s in v.functions] == ["RT"]
    assert v.downloads[0].output_params[0].name == "Temp"
    assert v.patterns[0].vendor == "Acme" and v.patterns[0].vendor_id == 5
    assert v.errors[0].error_name == "P0001"
    assert v.errors[0].envs[0].name == "Env"


def test_to_json_round_trip():
    ovd = convert_ecu(make_ecu())
    doc = json.loads(ovd.to_json())
    assert doc == ovd.to_dict()
    assert doc["variants"][0]["downloads"][0]["payload"] == [0x21, 0x05]
    assert doc["connections"][0]["server_type"] == "UDS"
    assert "ISOTP" in doc["connections"][0]["connection_type"]