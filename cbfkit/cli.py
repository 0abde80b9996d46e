"""Command line: convert a CBF file to OVD JSON, or dump and load its strings."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

from .container import Container
from .convert import convert_ecu
from .reader import BinaryReader, CaesarError

USAGE = (
    "Usage:\n"
    "cbfkit <INPUT.CBF>\n"
    "cbfkit <INPUT.CBF> -dump_strings <STRINGS.csv>\n"
    "cbfkit <INPUT.CBF> -load_strings <STRINGS.csv>"
)


def _help(error: str) -> int:
    print(f"Error: {error}")
    print(USAGE)
    return 1


def read_file(path: str, strings_path: str | None, dump: bool) -> Path | None:
    """Process one CBF file; return the JSON file written, if any."""
    if path.endswith(".cff"):
        print("Cannot be used with CFF. Only CBF!", file=sys.stderr)
        return None

    data = Path(path).read_bytes()
    print(f"Have {len(data)} bytes")
    reader = BinaryReader(data)
    try:
        container = Container.from_reader(reader)
    except CaesarError as exc:
        print(f"ERROR PROCESSING {exc}")
        return None

    if strings_path is not None:
        if dump:
            if container.dump_strings(strings_path):
                print("String dump complete. Have a nice day")
            else:
                print("String dump failed", file=sys.stderr)
            return None
        container.load_strings(strings_path)
        print("String loading complete.")

    try:
        container.read_ecus(reader)
    except CaesarError as exc:
        print(f"Error decoding ECUS! {exc}", file=sys.stderr)
        return None
    if not container.ecus:
        print("No ECU found in file", file=sys.stderr)
        return None

    ecu = container.ecus[0]
    print(f"Converting ECU {ecu.qualifier}")
    ovd = convert_ecu(ecu)
    for v in ovd.variants:
        print(f"Data: {len(v.downloads)}, Functions: {len(v.functions)}")
    print("Writing to file")
    out = Path(f"{ovd.name}.json")
    out.write_text(ovd.to_json())
    print(f"ECU decoding complete. Output file is {out}. Have a nice day!")
    return out


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        if len(args) == 3:
            if args[1] == "-dump_strings":
                read_file(args[0], args[2], True)
            elif args[1] == "-load_strings":
                read_file(args[0], args[2], False)
            else:
                return _help(f"String operation is not valid: {args[1]}")
        elif len(args) == 1:
            read_file(args[0], None, False)
        else:
            return _help(f"Invalid number of args: {len(args)}")
    except (OSError, CaesarError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())