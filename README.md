# hapgen

`hapgen` reads a HomeKit system metadata file (`system.json`) and writes the
source files of a HomeKit Accessory Protocol library from it:

- `src/accessory/category.rs`: the accessory category enum, ordered by
  identifier;
- `src/hap_type.rs`: the `HapType` enum with the short UUID of every
  characteristic and service;
- `src/characteristic/generated/`: one file per characteristic, plus `mod.rs`;
- `src/service/generated/`: one file per service, plus `mod.rs`;
- `src/accessory/generated/`: one accessory file per service that can be
  generated without manual adjustment, plus `mod.rs`;
- `examples/`: one example program per generated accessory (none for
  humidifier-dehumidifier).

Every generated library file starts with the line
`// this file is auto-generated by hapgen`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

Run the generator from the root of the target repository:

```
hapgen
```

By default it reads `codegen/gen/system.json` below the root and writes below
`src/` and `examples/`. Options:

- `--root DIR`: the directory the sources are written below (default `.`);
- `--metadata FILE`: the metadata JSON file (default
  `<root>/codegen/gen/system.json`).

The three `generated/` directories are removed and recreated on every run.
In `examples/`, files maintained by hand (such as `lightbulb.rs`,
`callbacks.rs` or `bridged_accessories.rs`) are kept; every other file there
is deleted before the new examples are written.

On a missing or malformed metadata file, or a value that cannot be rendered,
the command prints `hapgen: <reason>` to standard error and exits with
status 1.

## Library use

```python
from hapgen.metadata import load_metadata
from hapgen.templates import render_categories, render_hap_type
from hapgen.generator import generate, is_idiomatic

metadata = load_metadata("codegen/gen/system.json")
print(render_categories(metadata))

is_idiomatic("Lightbulb")      # False: its accessory is written by hand
is_idiomatic("Outlet")         # True

written = generate("codegen/gen/system.json", "path/to/repository")
# written is the list of paths of every file generated
```

- `hapgen.metadata` holds the data model (`HomeKitCategory`,
  `HapCharacteristic`, `HapService`, `HapProperty`,
  `AssistantCharacteristic`, `RenderMetadata`) and `parse_metadata` /
  `load_metadata`. Malformed metadata raises `ValueError`. The
  `accessory-information`, `fanv2` and `smart-speaker` services must be
  present; their descriptions are corrected to "Accessory Information",
  "Fan v2" and "Smart Speaker".
- `hapgen.templates` renders single files: `render_categories`,
  `render_hap_type`, `render_characteristic`, `render_service`,
  `render_accessory`, `render_example` and the `render_*_mod` indexes.
  `create_environment()` returns the Jinja2 environment with every template
  and helper registered.
- `hapgen.naming` holds the naming helpers the templates use, for example:

```python
from hapgen.naming import pascal_case, snake_case, perms

pascal_case("Wi-Fi Satellite")   # "WiFiSatellite"
snake_case("Fan v2")             # "fan_v2"
perms(3)                         # Events and PairedRead entries
```

An unknown characteristic format or unit raises `hapgen.naming.RenderError`.

## What it does not do

`hapgen` only writes source text. It does not compile or check the files it
produces, and it provides no accessory server, pairing, or configuration
storage of its own; those belong to the library the generated files are part
of.