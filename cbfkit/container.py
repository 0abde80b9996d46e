"""The top-level CBF container: file headers, the string table and the ECUs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import BinaryIO, Union

from .ctf import CFFHeader, CTFHeader, check_stub_header
from .ecu import ECU
from .reader import BinaryReader, CaesarError

STUB_HEADER_SIZE = 0x410

Source = Union[str, "os.PathLike[str]", BinaryIO]


@dataclass
class Container:
    """A parsed CBF file."""

    cff_header: CFFHeader
    ctf_header: CTFHeader
    ecus: list[ECU] = field(default_factory=list)

    @classmethod
    def from_reader(cls, reader: BinaryReader) -> "Container":
        """Read the stub, CFF and CTF headers; ECUs are read by :meth:`read_ecus`."""
        reader.seek(0)
        check_stub_header(reader.read_bytes(STUB_HEADER_SIZE))

        cff_header_size = reader.read_i32()
        reader.read_bytes(cff_header_size)

        cff_header = CFFHeader.from_reader(reader)
        ctf_offset = cff_header.base_addr + cff_header.ctf_offset
        ctf_header = CTFHeader.from_reader(reader, ctf_offset, cff_header.cff_header_size)
        return cls(cff_header=cff_header, ctf_header=ctf_header)

    def read_ecus(self, reader: BinaryReader) -> list[ECU]:
        """Read every ECU listed in the CFF header, replacing any read before."""
        self.ecus = []
        table = self.cff_header.ecu_offset + self.cff_header.base_addr
        for i in range(self.cff_header.ecu_count):
            reader.seek(table + i * 4)
            offset = reader.read_i32()
            lang = self.ctf_header.get_language(0)
            self.ecus.append(ECU.from_reader(reader, lang, self.cff_header, table + offset))
        return self.ecus

    def dump_strings(self, path: str | os.PathLike[str]) -> bool:
        """Write the first language's string table as CSV; return whether it worked."""
        try:
            self.ctf_header.get_language(0).dump_language_table(path)
        except (OSError, IndexError):
            return False
        return True

    def load_strings(self, path: str | os.PathLike[str]) -> None:
        """Replace strings of the first language with those in a CSV file."""
        try:
            self.ctf_header.get_language(0).load_language_table(path)
        except (OSError, IndexError, ValueError) as exc:
            raise CaesarError("String load failed") from exc


def read_cbf(source: Source) -> Container:
    """Parse a whole CBF file, ECUs included, from a path or a binary file object."""
    if hasattr(source, "read"):
        data = source.read()  # type: ignore[union-attr]
    else:
        with open(source, "rb") as handle:  # type: ignore[arg-type]
            data = handle.read()
    reader = BinaryReader(bytes(data))
    container = Container.from_reader(reader)
    container.read_ecus(reader)
    return container