# cbfkit

Reads CBF diagnostic container files and converts the ECU they describe
into a JSON definition. The definition holds the ECU's connections (ISO-TP
over CAN, or KWP2000 over LIN), and for each variant its variant patterns,
DTCs with their environment parameters, diagnostic functions and data
downloads.

## Install

```
pip install .
```

## Command line

Convert a CBF file. The first ECU in the file is converted and written to
`<ECU name>.json` in the current directory:

```
cbfkit INPUT.CBF
```

Dump the file's string table to a CSV file, one line per string in the form
`index,""""text""""`:

```
cbfkit INPUT.CBF -dump_strings STRINGS.csv
```

After editing that file (for example to translate it), load it back in place
of the file's own strings and then convert:

```
cbfkit INPUT.CBF -load_strings STRINGS.csv
```

Files whose name ends in `.cff` are refused. The command returns 1 on a
usage error or when the input cannot be read.

## Library use

```python
from cbfkit.container import read_cbf
from cbfkit.convert import convert_ecu

with open("INPUT.CBF", "rb") as source:
    container = read_cbf(source)

ovd = convert_ecu(container.ecus[0])
print(ovd.to_json())
```

`read_cbf` accepts a path or a binary file object and reads the headers and
every ECU.

To read in steps, wrap the file's bytes in `cbfkit.reader.BinaryReader` and
call `Container.from_reader`. It parses the headers and string table without
reading the ECUs. `Container.load_strings` can then replace strings from a
CSV file, and `Container.dump_strings` writes them out; it returns whether
the write worked. `Container.read_ecus` reads the ECUs afterwards:

```python
from pathlib import Path
from cbfkit.container import Container
from cbfkit.reader import BinaryReader

reader = BinaryReader(Path("INPUT.CBF").read_bytes())
container = Container.from_reader(reader)
container.load_strings("STRINGS.csv")
ecus = container.read_ecus(reader)
```

`cbfkit.convert` builds the output model (`OvdEcu`, `VariantDefinition`,
`DiagService`, `EcuDtc`, `Parameter`, `Connection`). Its helpers
`build_connection`, `delete_input_params` and `merge_downloads` can also be
used alone. `OvdEcu.to_dict` and `OvdEcu.to_json` serialise the result.

Parsing problems raise `cbfkit.reader.CaesarError`.

## What it does not do

cbfkit only reads files. It does not talk to ECUs or to diagnostic adapters,
and it sends nothing over CAN, ISO-TP or LIN. The connection settings in the
JSON only describe how an ECU would be reached. It does not read CFF files
and does not write CBF files.

## Tests

```
pip install .[test]
pytest
```