"""Name, type and value helpers used when rendering generated source files."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any


class RenderError(Exception):
    """Raised when a value cannot be rendered into generated code."""


_RUST_TYPES = {
    "bool": "bool",
    "uint8": "u8",
    "uint16": "u16",
    "uint32": "u32",
    "uint64": "u64",
    "int": "i32",
    "int32": "i32",
    "float": "f32",
    "string": "String",
    "tlv8": "Vec<u8>",
    "data": "Vec<u8>",
}

_FORMAT_VARIANTS = {
    "bool": "Format::Bool",
    "uint8": "Format::UInt8",
    "uint16": "Format::UInt16",
    "uint32": "Format::UInt32",
    "uint64": "Format::UInt64",
    "int": "Format::Int32",
    "int32": "Format::Int32",
    "float": "Format::Float",
    "string": "Format::String",
    "tlv8": "Format::Tlv8",
    "data": "Format::Data",
}

_UNIT_VARIANTS = {
    "celsius": "Unit::Celsius",
    # Fahrenheit values are reported in Celsius on the wire.
    "fahrenheit": "Unit::Celsius",
    "percentage": "Unit::Percentage",
    "arcdegrees": "Unit::ArcDegrees",
    "lux": "Unit::Lux",
    "seconds": "Unit::Seconds",
    "ppm": "Unit::PartsPerMillion",
    "micrograms/m^3": "Unit::MicrogramsPerCubicMeter",
}

_SENSOR_NAMES = frozenset(
    {
        "air quality sensor",
        "carbon dioxide sensor",
        "carbon monoxide sensor",
        "contact sensor",
        "humidity sensor",
        "leak sensor",
        "light sensor",
        "motion sensor",
        "occupancy sensor",
        "smoke sensor",
        "temperature sensor",
    }
)

_CATEGORY_OVERRIDES = {
    "doorbell": "AccessoryCategory::VideoDoorbell",
    "fan v2": "AccessoryCategory::Fan",
    "heater-cooler": "AccessoryCategory::AirHeater /* or AccessoryCategory::AirConditioner */",
    "humidifier-dehumidifier": "AccessoryCategory::AirHumidifier /* or AccessoryCategory::AirDehumidifier */",
    "irrigation-system": "AccessoryCategory::Sprinkler",
    "smart speaker": "AccessoryCategory::Speaker",
    "stateful programmable switch": "AccessoryCategory::ProgrammableSwitch",
    "stateless programmable switch": "AccessoryCategory::ProgrammableSwitch",
    "wi-fi satellite": "AccessoryCategory::WiFiRouter",
}

# Property bits that map to permissions. Bit 3 (broadcast) is Bluetooth-only and
# bit 4 (additional authorization) always needs a custom app, so both are left out.
_PERMS = (
    (1 << 0, "\n\t\t\t\tPerm::Events,"),
    (1 << 1, "\n\t\t\t\tPerm::PairedRead,"),
    (1 << 2, "\n\t\t\t\tPerm::PairedWrite,"),
    (1 << 5, "\n\t\t\t\tPerm::TimedWrite,"),
    (1 << 6, "\n\t\t\t\tPerm::Hidden,"),
    (1 << 7, "\n\t\t\t\tPerm::WriteResponse,"),
)


def _capitalize_first(word: str) -> str:
    if not word:
        raise RenderError("cannot capitalize an empty word")
    return word[0].upper()[0] + word[1:]


def pascal_case(name: str) -> str:
    """Turn a description such as ``"Heater-Cooler"`` into a type name."""
    words = name.replace("-", " ").lower().split(" ")
    joined = "".join(_capitalize_first(word) for word in words)
    return joined.replace(" ", "").replace(".", "_")


def snake_case(name: str) -> str:
    """Turn a description into a lower-case identifier joined by underscores."""
    return name.replace(" ", "_").replace(".", "_").replace("-", "_").lower()


def file_name(name: str) -> str:
    """Turn a description into a file stem; hyphens are kept."""
    if not isinstance(name, str):
        return ""
    return name.replace(" ", "_").replace(".", "_").lower()


def trim(name: str) -> str:
    """Drop spaces and replace dots with underscores."""
    if not isinstance(name, str):
        return ""
    return name.replace(" ", "").replace(".", "_")


def shorten_uuid(uuid: str) -> str:
    """Strip leading zeros from a short UUID."""
    if not isinstance(uuid, str):
        return ""
    return uuid.lstrip("0")


def _lookup(table: Mapping[str, str], key: Any, what: str) -> str:
    if not isinstance(key, str):
        return ""
    try:
        return table[key]
    except KeyError:
        raise RenderError(f"Unknown Characteristic {what}") from None


def rust_type(fmt: str) -> str:
    """Value type used for a characteristic format."""
    return _lookup(_RUST_TYPES, fmt, "format")


def format_variant(fmt: str) -> str:
    """``Format`` variant for a characteristic format."""
    return _lookup(_FORMAT_VARIANTS, fmt, "format")


def unit_variant(unit: str) -> str:
    """``Unit`` variant for a characteristic unit."""
    return _lookup(_UNIT_VARIANTS, unit, "unit")


def category_variant(name: str) -> str:
    """``AccessoryCategory`` variant best suited to a service name."""
    lowered = name.lower()
    if lowered in _SENSOR_NAMES:
        return "AccessoryCategory::Sensor"
    if lowered in _CATEGORY_OVERRIDES:
        return _CATEGORY_OVERRIDES[lowered]
    return f"AccessoryCategory::{pascal_case(name)}"


def perms(properties: int) -> str:
    """Permission list entries for a characteristic properties bitmap."""
    return "".join(text for bit, text in _PERMS if properties & bit == bit)


def float_suffix(fmt: str) -> str:
    """Cast suffix needed for literals of float characteristics."""
    if not isinstance(fmt, str):
        raise RenderError("characteristic format must be a string")
    if fmt != "float":
        return ""
    return f" as {_RUST_TYPES[fmt]}"


def _value_text(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False).replace('"', "")


def _pairs(values: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Key/value-text pairs in key order."""
    return [(key, _value_text(value)) for key, value in sorted(values.items())]


def _variant_name(key: str) -> str:
    def part(word: str) -> str:
        if len(word) == 1 and word.isnumeric():
            return f"Num{word}"
        return _capitalize_first(word)

    return "".join(part(word) for word in key.lower().split("_"))


def _value_list(entries: Iterable[tuple[str, str]]) -> str:
    body = "".join(f"\t\t\t\t{value}, // {comment}\n" for value, comment in entries)
    return f"vec![\n{body}\t\t\t]"


def _value_enum(entries: Iterable[tuple[str, str]]) -> str:
    body = "".join(f"\t{_variant_name(name)} = {value},\n" for name, value in entries)
    return f"\npub enum Value {{\n{body}}}\n"


def in_values(values: Mapping[str, Any]) -> str:
    """Valid-values list for a name-to-value map, ordered by value."""
    pairs = sorted(_pairs(values), key=lambda pair: pair[1])
    return _value_list((value, key) for key, value in pairs)


def out_values(values: Mapping[str, Any]) -> str:
    """Valid-values list for a value-to-name map, ordered by value."""
    pairs = sorted(_pairs(values), key=lambda pair: pair[0])
    return _value_list((key, name) for key, name in pairs)


def in_values_enum(values: Mapping[str, Any]) -> str:
    """Value enum for a name-to-value map, ordered by value."""
    pairs = sorted(_pairs(values), key=lambda pair: pair[1])
    return _value_enum(pairs)


def out_values_enum(values: Mapping[str, Any]) -> str:
    """Value enum for a value-to-name map, ordered by value."""
    pairs = sorted(_pairs(values), key=lambda pair: pair[0])
    return _value_enum((name, key) for key, name in pairs)