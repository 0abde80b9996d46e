import struct

from cbfkit.com_param import ComParameter
from cbfkit.ctf import CTFLanguage
from cbfkit.interface import ECUInterface, InterfaceSubType, ParamName
from cbfkit.reader import BinaryReader


def _interface_blob(prefix: bytes = b"") -> bytes:
    base = len(prefix)
    body = struct.pack("<I", 0x61)          # qualifier, count, list offset
    body += struct.pack("<i", 16)           # qualifier offset
    body += struct.pack("<i", 2)            # com param count
    body += struct.pack("<i", 24)           # list offset
    assert len(body) == 16
    body += b"CAN_UDS\0"                    # 16..24
    body += struct.pack("<ii", 8, 20)       # 24..32, relative to 24
    body += b"CP_BAUDRATE\0"                # 32..44
    body += b"CP_STMIN_SUG\0"               # 44..57
    return prefix + body, base


def test_ecu_interface_reads_qualifier_and_params():
    blob, base = _interface_blob()
    iface = ECUInterface.from_reader(BinaryReader(blob), base, CTFLanguage())
    assert iface.qualifier == "CAN_UDS"
    assert iface.com_params == ["CP_BAUDRATE", "CP_STMIN_SUG"]
    assert iface.com_param_count == 2
    assert iface.name is None
    assert iface.version == 0


def test_ecu_interface_independent_of_base_address():
    blob, base = _interface_blob()
    shifted, shifted_base = _interface_blob(b"\xAA" * 40)
    a = ECUInterface.from_reader(BinaryReader(blob), base, CTFLanguage())
    b = ECUInterface.from_reader(BinaryReader(shifted), shifted_base, CTFLanguage())
    assert a.com_params == b.com_params
    assert a.qualifier == b.qualifier
    assert b.base_addr == 40


def test_interface_subtype_reads_name_from_language():
    body = struct.pack("<I", 0x3)
    body += struct.pack("<i", 12)
    body += struct.pack("<i", 1)
    body += b"CAN_KWP\0"
    lang = CTFLanguage(strings=["zero", "one"])
    sub = InterfaceSubType.from_reader(BinaryReader(body), 0, 4, lang)
    assert sub.qualifier == "CAN_KWP"
    assert sub.name == "one"
    assert sub.description is None
    assert sub.idx == 4
    assert sub.comm_params == []


def test_get_cp_by_name():
    sub = InterfaceSubType(
        comm_params=[
            ComParameter(param_name="CP_BAUDRATE", param_value=500000),
            ComParameter(param_name="CP_BAUDRATE", param_value=1),
            ComParameter(param_name="CP_NEG", param_value=-1),
        ]
    )
    assert sub.get_cp_by_name("CP_BAUDRATE") == 500000
    assert sub.get_cp_by_name("CP_NEG") == 0xFFFFFFFF
    assert sub.get_cp_by_name("CP_REQUEST_CANIDENTIFIER") is None


def test_param_name_values_match_names():
    assert all(p.value == p.name for p in ParamName)
    assert ParamName("CP_STMIN_SUG") is ParamName.CP_STMIN_SUG