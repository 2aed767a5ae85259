"""Accessory metadata model and its preparation for rendering."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from os import PathLike
from typing import Any

# Services whose descriptions in the metadata need fixing before rendering.
_SERVICE_RENAMES = {
    "accessory-information": "Accessory Information",
    "fanv2": "Fan v2",
    "smart-speaker": "Smart Speaker",
}


@dataclass(frozen=True)
class HomeKitCategory:
    """An accessory category with its numeric identifier."""

    name: str
    number: int
    uuid: str


@dataclass(frozen=True)
class HapCharacteristic:
    """A characteristic definition from the metadata."""

    short_uuid: str
    name: str
    format: str
    properties: int
    min_value: Any = None
    max_value: Any = None
    step_value: Any = None
    max_length: Any = None
    units: str | None = None

    def to_context(self) -> dict[str, Any]:
        """Template context using the metadata's own key names."""
        return {
            "ShortUUID": self.short_uuid,
            "DefaultDescription": self.name,
            "Format": self.format,
            "MinValue": self.min_value,
            "MaxValue": self.max_value,
            "StepValue": self.step_value,
            "MaxLength": self.max_length,
            "Units": self.units,
            "Properties": self.properties,
        }


@dataclass(frozen=True)
class HapService:
    """A service definition with the keys of its characteristics."""

    short_uuid: str
    name: str
    required_characteristics: tuple[str, ...]
    optional_characteristics: tuple[str, ...] | None = None

    def to_context(self) -> dict[str, Any]:
        """Template context using the metadata's own key names."""
        optional = (
            list(self.optional_characteristics)
            if self.optional_characteristics is not None
            else None
        )
        return {
            "ShortUUID": self.short_uuid,
            "DefaultDescription": self.name,
            "Characteristics": {
                "Required": list(self.required_characteristics),
                "Optional": optional,
            },
        }


@dataclass(frozen=True)
class HapProperty:
    """A characteristic property and its bit position."""

    name: str
    number: int


@dataclass(frozen=True)
class AssistantCharacteristic:
    """Assistant description of the values a characteristic takes."""

    format: str
    read: str | None = None
    write: str | None = None
    read_write: str | None = None
    values: dict[str, Any] | None = None
    out_values: dict[str, Any] | None = None


@dataclass
class RenderMetadata:
    """Everything the templates need, with derived value maps."""

    categories: dict[str, HomeKitCategory]
    characteristics: dict[str, HapCharacteristic]
    services: dict[str, HapService]
    properties: dict[str, HapProperty]
    assistant_characteristics: dict[str, AssistantCharacteristic]
    characteristic_in_values: dict[str, dict[str, Any]] = field(default_factory=dict)
    characteristic_out_values: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def sorted_categories(self) -> list[HomeKitCategory]:
        """Categories ordered by identifier."""
        return sorted(self.categories.values(), key=lambda c: c.number)

    @property
    def sorted_characteristics(self) -> list[HapCharacteristic]:
        """Characteristics ordered by description."""
        return sorted(self.characteristics.values(), key=lambda c: c.name)

    @property
    def sorted_services(self) -> list[HapService]:
        """Services ordered by description."""
        return sorted(self.services.values(), key=lambda s: s.name)

    def to_context(self) -> dict[str, Any]:
        """Template context for the whole metadata set."""
        return {
            "categories": {k: _category_context(v) for k, v in self.categories.items()},
            "sorted_categories": [_category_context(c) for c in self.sorted_categories],
            "characteristics": {k: v.to_context() for k, v in self.characteristics.items()},
            "sorted_characteristics": [c.to_context() for c in self.sorted_characteristics],
            "services": {k: v.to_context() for k, v in self.services.items()},
            "sorted_services": [s.to_context() for s in self.sorted_services],
            "properties": {k: _property_context(v) for k, v in self.properties.items()},
            "assistant_characteristics": {
                k: _assistant_context(v) for k, v in self.assistant_characteristics.items()
            },
            "characteristic_in_values": {
                k: dict(v) for k, v in self.characteristic_in_values.items()
            },
            "characteristic_out_values": {
                k: dict(v) for k, v in self.characteristic_out_values.items()
            },
        }


def _category_context(category: HomeKitCategory) -> dict[str, Any]:
    return {
        "DefaultDescription": category.name,
        "Identifier": category.number,
        "UUID": category.uuid,
    }


def _property_context(prop: HapProperty) -> dict[str, Any]:
    return {"DefaultDescription": prop.name, "Position": prop.number}


def _assistant_context(entry: AssistantCharacteristic) -> dict[str, Any]:
    return {
        "Format": entry.format,
        "Read": entry.read,
        "Write": entry.write,
        "ReadWrite": entry.read_write,
        "Values": entry.values,
        "OutValues": entry.out_values,
    }


def _object(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{where} must be an object")
    return value


def _field(mapping: Mapping[str, Any], key: str, where: str) -> Any:
    try:
        return mapping[key]
    except KeyError:
        raise ValueError(f"{where} is missing {key!r}") from None


def _string(mapping: Mapping[str, Any], key: str, where: str) -> str:
    value = _field(mapping, key, where)
    if not isinstance(value, str):
        raise ValueError(f"{where}: {key!r} must be a string")
    return value


def _int(mapping: Mapping[str, Any], key: str, where: str) -> int:
    value = _field(mapping, key, where)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{where}: {key!r} must be a non-negative integer")
    return value


def _optional_string(mapping: Mapping[str, Any], key: str, where: str) -> str | None:
    value = mapping.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{where}: {key!r} must be a string")
    return value


def _optional_map(mapping: Mapping[str, Any], key: str, where: str) -> dict[str, Any] | None:
    value = mapping.get(key)
    if value is None:
        return None
    return dict(_object(value, f"{where}: {key!r}"))


def _parse_category(key: str, raw: Any) -> HomeKitCategory:
    where = f"category {key!r}"
    raw = _object(raw, where)
    return HomeKitCategory(
        name=_string(raw, "DefaultDescription", where),
        number=_int(raw, "Identifier", where),
        uuid=_string(raw, "UUID", where),
    )


def _parse_characteristic(key: str, raw: Any) -> HapCharacteristic:
    where = f"characteristic {key!r}"
    raw = _object(raw, where)
    return HapCharacteristic(
        short_uuid=_string(raw, "ShortUUID", where),
        name=_string(raw, "DefaultDescription", where),
        format=_string(raw, "Format", where),
        properties=_int(raw, "Properties", where),
        min_value=raw.get("MinValue"),
        max_value=raw.get("MaxValue"),
        step_value=raw.get("StepValue"),
        max_length=raw.get("MaxLength"),
        units=_optional_string(raw, "Units", where),
    )


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{where} must be a list of strings")
    return tuple(value)


def _parse_service(key: str, raw: Any) -> HapService:
    where = f"service {key!r}"
    raw = _object(raw, where)
    relation = _object(_field(raw, "Characteristics", where), f"{where} characteristics")
    required = _string_list(_field(relation, "Required", where), f"{where} required")
    optional_raw = relation.get("Optional")
    optional = None if optional_raw is None else _string_list(optional_raw, f"{where} optional")
    return HapService(
        short_uuid=_string(raw, "ShortUUID", where),
        name=_string(raw, "DefaultDescription", where),
        required_characteristics=required,
        optional_characteristics=optional,
    )


def _parse_property(key: str, raw: Any) -> HapProperty:
    where = f"property {key!r}"
    raw = _object(raw, where)
    return HapProperty(
        name=_string(raw, "DefaultDescription", where),
        number=_int(raw, "Position", where),
    )


def _parse_assistant(key: str, raw: Any) -> AssistantCharacteristic:
    where = f"assistant characteristic {key!r}"
    raw = _object(raw, where)
    return AssistantCharacteristic(
        format=_string(raw, "Format", where),
        read=_optional_string(raw, "Read", where),
        write=_optional_string(raw, "Write", where),
        read_write=_optional_string(raw, "ReadWrite", where),
        values=_optional_map(raw, "Values", where),
        out_values=_optional_map(raw, "OutValues", where),
    )


def _value_maps(
    assistant: Mapping[str, AssistantCharacteristic],
) -> tuple[dict[str, dict[str, Any]], dict[str, dict[str, Any]]]:
    in_values: dict[str, dict[str, Any]] = {}
    out_values: dict[str, dict[str, Any]] = {}
    for entry in assistant.values():
        if entry.values is not None and entry.out_values is None:
            if entry.read is not None:
                in_values[entry.read] = dict(entry.values)
            if entry.read_write is not None:
                in_values[entry.read_write] = dict(entry.values)
        if entry.read is not None and entry.out_values is not None:
            out_values[entry.read] = dict(entry.out_values)
        if entry.write is not None and entry.values is not None:
            in_values[entry.write] = dict(entry.values)
    return in_values, out_values


def parse_metadata(data: Mapping[str, Any]) -> RenderMetadata:
    """Build render metadata from the decoded system metadata document."""
    root = _object(data, "metadata")
    plist = _object(_field(root, "PlistDictionary", "metadata"), "PlistDictionary")
    homekit = _object(_field(plist, "HomeKit", "PlistDictionary"), "HomeKit")
    hap = _object(_field(plist, "HAP", "PlistDictionary"), "HAP")
    assistant = _object(_field(plist, "Assistant", "PlistDictionary"), "Assistant")

    categories = {
        key: _parse_category(key, raw)
        for key, raw in _object(_field(homekit, "Categories", "HomeKit"), "Categories").items()
    }
    characteristics = {
        key: _parse_characteristic(key, raw)
        for key, raw in _object(
            _field(hap, "Characteristics", "HAP"), "Characteristics"
        ).items()
    }
    services = {
        key: _parse_service(key, raw)
        for key, raw in _object(_field(hap, "Services", "HAP"), "Services").items()
    }
    properties = {
        key: _parse_property(key, raw)
        for key, raw in _object(_field(hap, "Properties", "HAP"), "Properties").items()
    }
    assistant_characteristics = {
        key: _parse_assistant(key, raw)
        for key, raw in _object(
            _field(assistant, "Characteristics", "Assistant"), "Assistant characteristics"
        ).items()
    }

    for key, name in _SERVICE_RENAMES.items():
        if key not in services:
            raise ValueError(f"metadata has no {key!r} service")
        services[key] = replace(services[key], name=name)

    in_values, out_values = _value_maps(assistant_characteristics)

    return RenderMetadata(
        categories=categories,
        characteristics=characteristics,
        services=services,
        properties=properties,
        assistant_characteristics=assistant_characteristics,
        characteristic_in_values=in_values,
        characteristic_out_values=out_values,
    )


def load_metadata(path: str | PathLike[str]) -> RenderMetadata:
    """Read a system metadata JSON file and prepare it for rendering."""
    with open(path, encoding="utf-8") as handle:
        data = json.load(handle)
    return parse_metadata(data)