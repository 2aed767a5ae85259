"""Templates for the generated source files and functions that render them."""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import jinja2

from hapgen.metadata import HapCharacteristic, HapService, RenderMetadata
from hapgen.naming import (
    category_variant,
    file_name,
    float_suffix,
    format_variant,
    in_values,
    in_values_enum,
    out_values,
    out_values_enum,
    pascal_case,
    perms,
    rust_type,
    shorten_uuid,
    snake_case,
    trim,
    unit_variant,
)

_HEADER = "// this file is auto-generated by hapgen\n"
_INDENT = "    "
_LINE_WIDTH = 120

_T = "{{ t }}"
_NAME = "{{ name }}"
_FIELD = "{{ field }}"


# ---------------------------------------------------------------------------
# Building blocks for the generated source text
# ---------------------------------------------------------------------------


def _desc(var: str) -> str:
    return "{{ %s.DefaultDescription }}" % var


def _snake(var: str) -> str:
    return "{{ %s.DefaultDescription|snake_case }}" % var


def _pascal(var: str) -> str:
    return "{{ %s.DefaultDescription|pascal_case }}" % var


def _for(var: str, seq: str, body: str) -> str:
    return "{%% for %s in %s %%}%s{%% endfor %%}" % (var, seq, body)


def _method(signature: str, body: str, *, wrap: bool | None = None) -> str:
    """One method; on a single line unless it is too long or ``wrap`` asks otherwise."""
    one_line = f"{_INDENT}{signature} {{ {body} }}"
    if wrap is None:
        wrap = len(one_line) > _LINE_WIDTH
    if not wrap:
        return one_line
    return f"{_INDENT}{signature} {{\n{_INDENT * 2}{body}\n{_INDENT}}}"


def _impl(header: str, methods: Iterable[str]) -> str:
    return header + " {\n" + "\n\n".join(methods) + "\n}\n"


def _use(root: str, entries: Sequence[str | tuple[str, Sequence[str]]], indent: str = _INDENT) -> str:
    """A ``use`` tree with one entry per line; tuples open a nested block."""
    lines = [f"use {root}::{{"]
    for entry in entries:
        if isinstance(entry, str):
            lines.append(f"{indent}{entry},")
        else:
            module, items = entry
            lines.append(f"{indent}{module}::{{")
            lines.extend(f"{indent * 2}{item}," for item in items)
            lines.append(f"{indent}}},")
    lines.append("};")
    return "\n".join(lines) + "\n"


def _field_accessors(fields: Iterable[tuple[str, str, str, str]]) -> Iterator[str]:
    """Getter and setter pairs for (name, attribute, type, getter suffix)."""
    for name, attr, type_, suffix in fields:
        yield _method(f"fn get_{name}(&self) -> {type_}", f"self.{attr}{suffix}", wrap=True)
        yield _method(f"fn set_{name}(&mut self, {attr}: {type_})", f"self.{attr} = {attr};", wrap=True)


def _lookup(item: str, trait: str, mutable: bool) -> str:
    """Find-by-type method over the collection of ``item``s."""
    mut = "mut_" if mutable else ""
    ref = "&mut " if mutable else "&"
    receiver = "&mut self" if mutable else "&self"
    return (
        f"{_INDENT}fn get_{mut}{item}({receiver}, hap_type: HapType) -> Option<{ref}dyn {trait}> {{\n"
        f"{_INDENT * 2}for {item} in self.get_{mut}{item}s() {{\n"
        f"{_INDENT * 3}if {item}.get_type() == hap_type {{\n"
        f"{_INDENT * 4}return Some({item});\n"
        f"{_INDENT * 3}}}\n"
        f"{_INDENT * 2}}}\n"
        f"{_INDENT * 2}None\n"
        f"{_INDENT}}}"
    )


def _serialize_impl(
    type_name: str,
    struct_name: str,
    fields: Sequence[tuple[str, str]],
    result: str = "Result",
    note: str | None = None,
) -> str:
    body = [f'{_INDENT * 2}let mut state = serializer.serialize_struct("{struct_name}", {len(fields)})?;']
    body.extend(f'{_INDENT * 2}state.serialize_field("{key}", &self.{getter}())?;' for key, getter in fields)
    if note:
        body.append(f"{_INDENT * 2}// {note}")
    body.append(f"{_INDENT * 2}state.end()")
    return (
        f"impl Serialize for {type_name} {{\n"
        f"{_INDENT}fn serialize<S: Serializer>(&self, serializer: S) -> {result}<S::Ok, S::Error> {{\n"
        + "\n".join(body)
        + f"\n{_INDENT}}}\n}}\n"
    )


# ---------------------------------------------------------------------------
# Categories and HAP types
# ---------------------------------------------------------------------------

_CATEGORIES = (
    _HEADER
    + "\nuse serde::{Deserialize, Serialize};\n\n"
    + "/// HAP accessory category.\n"
    + "#[derive(Debug, Copy, Clone, Serialize, Deserialize, PartialEq)]\n"
    + "pub enum AccessoryCategory {\n"
    + _for("c", "sorted_categories", "\t{{ c.DefaultDescription|pascal_case }} = {{ c.Identifier }},\n")
    + "}\n"
)


def _each_hap_type(line: str) -> str:
    """``line`` once per characteristic, then once per service; ``@`` stands for the loop variable."""
    return _for("c", "sorted_characteristics", line.replace("@", "c")) + _for(
        "s", "sorted_services", line.replace("@", "s")
    )


_HAP_TYPE = (
    _HEADER
    + "\n"
    + _use("serde", ["de::{self, Deserialize, Deserializer}", "ser::{Serialize, Serializer}"])
    + "use std::str::FromStr;\nuse uuid::Uuid;\n\nuse crate::Error;\n\n"
    + "/// HAP service and characteristic type representation.\n"
    + "#[derive(Debug, Copy, Clone, Eq, PartialEq, Hash)]\n"
    + "pub enum HapType {\n    Unknown,\n    Custom(Uuid),\n"
    + _each_hap_type("\t{{ @.DefaultDescription|pascal_case }},\n")
    + "}\n\n"
    + "impl ToString for HapType {\n"
    + "    fn to_string(&self) -> String {\n"
    + "        match self {\n"
    + '            HapType::Unknown => "unknown".into(),\n'
    + "            HapType::Custom(uuid) => uuid.to_hyphenated().to_string(),\n"
    + _each_hap_type('\t\t\tHapType::{{ @.DefaultDescription|pascal_case }} => "{{ @.ShortUUID|uuid }}".into(),\n')
    + "\t\t}\n    }\n}\n\n"
    + "impl FromStr for HapType {\n"
    + "    type Err = Error;\n\n"
    + "    fn from_str(s: &str) -> Result<Self, Self::Err> {\n"
    + "        if let Ok(uuid) = Uuid::parse_str(s) {\n"
    + "            return Ok(HapType::Custom(uuid));\n"
    + "        }\n\n"
    + "        match s {\n"
    + '            "unknown" => Ok(HapType::Unknown),\n'
    + _each_hap_type('\t\t\t"{{ @.ShortUUID|uuid }}" => Ok(HapType::{{ @.DefaultDescription|pascal_case }}),\n')
    + "\t\t\t_ => Err(Error::InvalidHapTypeString(s.to_string())),\n"
    + "\t\t}\n    }\n}\n\n"
    + "impl Default for HapType {\n"
    + "    fn default() -> HapType { HapType::Unknown }\n"
    + "}\n\n"
    + "impl<'de> Deserialize<'de> for HapType {\n"
    + "    fn deserialize<D>(deserializer: D) -> Result<HapType, D::Error>\n"
    + "    where\n"
    + "        D: Deserializer<'de>,\n"
    + "    {\n"
    + "        let s = String::deserialize(deserializer)?;\n"
    + "        let hap_type = HapType::from_str(&s).map_err(de::Error::custom)?;\n"
    + "        Ok(hap_type)\n"
    + "    }\n"
    + "}\n\n"
    + "impl Serialize for HapType {\n"
    + "    fn serialize<S: Serializer>(&self, serializer: S) -> Result<S::Ok, S::Error> {\n"
    + "        serializer.serialize_str(&self.to_string())\n"
    + "    }\n"
    + "}\n"
)


# ---------------------------------------------------------------------------
# Characteristics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Delegated:
    """A characteristic property whose getter and setter forward to the inner value."""

    name: str
    value_type: str
    param: str = ""
    fallible: bool = False
    as_json: bool = False
    awaited: bool = False

    def methods(self, trait: str) -> Iterator[str]:
        param = self.param or self.name
        keyword = "async fn" if self.awaited else "fn"
        receiver, target = ("&mut self", "&mut self.0") if self.awaited else ("&self", "&self.0")
        returns = f"Result<{self.value_type}>" if self.awaited else self.value_type
        await_suffix = ".await" if self.awaited else ""
        getter_suffix = await_suffix or (".map(|v| json!(v))" if self.as_json else "")
        yield _method(
            f"{keyword} get_{self.name}({receiver}) -> {returns}",
            f"{trait}::get_{self.name}({target}){getter_suffix}",
        )
        setter = f"{keyword} set_{self.name}(&mut self, {param}: {self.value_type})"
        if self.fallible:
            setter += " -> Result<()>"
        yield _method(setter, f"{trait}::set_{self.name}(&mut self.0, {param}){await_suffix}")


_JSON = "serde_json::Value"

_DELEGATED = (
    _Delegated("id", "u64"),
    _Delegated("type", "HapType", param="hap_type"),
    _Delegated("format", "Format"),
    _Delegated("perms", "Vec<Perm>"),
    _Delegated("description", "Option<String>"),
    _Delegated("event_notifications", "Option<bool>"),
    _Delegated("value", _JSON, fallible=True, awaited=True),
    _Delegated("unit", "Option<Unit>"),
    _Delegated("max_value", f"Option<{_JSON}>", fallible=True, as_json=True),
    _Delegated("min_value", f"Option<{_JSON}>", fallible=True, as_json=True),
    _Delegated("step_value", f"Option<{_JSON}>", fallible=True, as_json=True),
    _Delegated("max_len", "Option<u16>"),
    _Delegated("max_data_len", "Option<u32>"),
    _Delegated("valid_values", f"Option<Vec<{_JSON}>>", fallible=True),
    _Delegated("valid_values_range", f"Option<[{_JSON}; 2]>", fallible=True),
    _Delegated("ttl", "Option<u64>"),
    _Delegated("pid", "Option<u64>"),
)

_CHARACTERISTIC_IMPORTS = (
    "AsyncCharacteristicCallbacks",
    "Characteristic",
    "CharacteristicCallbacks",
    "Format",
    "HapCharacteristic",
    "HapCharacteristicSetup",
    "HapType",
    "OnReadFn",
    "OnReadFuture",
    "OnUpdateFn",
    "OnUpdateFuture",
    "Perm",
    "Unit",
)


def _characteristic_field(key: str, name: str, rendered: str) -> str:
    return "{%% if %s is present %%}\n\t\t\t%s: Some(%s),{%% endif %%}" % (key, name, rendered)


def _bounded(attr: str) -> str:
    return "{{ characteristic.%s|literal }}{{ characteristic.Format|float_suffix }}" % attr


_CHARACTERISTIC_FIELDS = (
    _characteristic_field("characteristic.Units", "unit", "{{ characteristic.Units|unit }}")
    + _characteristic_field("characteristic.MaxValue", "max_value", _bounded("MaxValue"))
    + _characteristic_field("characteristic.MinValue", "min_value", _bounded("MinValue"))
    + _characteristic_field("characteristic.StepValue", "step_value", _bounded("StepValue"))
    + _characteristic_field("characteristic.MaxLength", "max_len", _bounded("MaxLength"))
    + _characteristic_field("in_values", "valid_values", "{{ in_values|in_values }}")
    + _characteristic_field("out_values", "valid_values", "{{ out_values|out_values }}")
)


def _callbacks_impl(awaited: bool) -> str:
    trait = "AsyncCharacteristicCallbacks" if awaited else "CharacteristicCallbacks"
    suffix = "_async" if awaited else ""
    kind = "Future" if awaited else "Fn"
    methods = [
        _method(
            f"fn on_{event}{suffix}(&mut self, f: Option<impl On{bound}{kind}<{_T}>>)",
            f"{trait}::on_{event}{suffix}(&mut self.0, f)",
            wrap=awaited,
        )
        for event, bound in (("read", "Read"), ("update", "Update"))
    ]
    return _impl(f"impl {trait}<{_T}> for {_NAME}Characteristic", methods)


_CHARACTERISTIC_IMPLS = "\n".join(
    [
        "#[async_trait]\n"
        + _impl(
            f"impl HapCharacteristic for {_NAME}Characteristic",
            (method for prop in _DELEGATED for method in prop.methods("HapCharacteristic")),
        ),
        _impl(
            f"impl HapCharacteristicSetup for {_NAME}Characteristic",
            [
                _method(
                    "fn set_event_emitter(&mut self, event_emitter: Option<pointer::EventEmitter>)",
                    "HapCharacteristicSetup::set_event_emitter(&mut self.0, event_emitter)",
                )
            ],
        ),
        _callbacks_impl(awaited=False),
        _callbacks_impl(awaited=True),
    ]
)

_CHARACTERISTIC_CONSTRUCTOR = (
    f"impl {_NAME}Characteristic {{\n"
    "    /// Creates a new {{ characteristic.DefaultDescription }} characteristic.\n"
    "    pub fn new(id: u64, accessory_id: u64) -> Self {\n"
    "        #[allow(unused_mut)]\n"
    f"        let mut c = Self(Characteristic::<{_T}> {{\n"
    "            id,\n"
    "            accessory_id,\n"
    f"            hap_type: HapType::{_NAME},\n"
    "            format: {{ characteristic.Format|hap_format }},\n"
    "            perms: vec![{{ characteristic.Properties|perms }}\n"
    "            ],"
    + _CHARACTERISTIC_FIELDS
    + "\n            ..Default::default()\n"
    "        });\n\n"
    "        if let Some(ref min_value) = &c.0.min_value {\n"
    "            c.0.value = min_value.clone();\n"
    "        } else if let Some(ref valid_values) = &c.0.valid_values {\n"
    "            if valid_values.len() > 0 {\n"
    "                c.0.value = valid_values[0].clone();\n"
    "            }\n"
    "        }\n\n"
    "        c\n"
    "    }\n"
    "}\n"
)

_CHARACTERISTIC = (
    "{% set t = characteristic.Format|rust_type %}"
    "{% set name = characteristic.DefaultDescription|pascal_case %}"
    + _HEADER
    + "\nuse async_trait::async_trait;\nuse serde::Serialize;\nuse serde_json::json;\n\n"
    + _use("crate", [("characteristic", _CHARACTERISTIC_IMPORTS), "pointer", "Result"])
    + "\n/// {{ characteristic.DefaultDescription }} characteristic.\n"
    + "#[derive(Debug, Default, Serialize)]\n"
    + f"pub struct {_NAME}Characteristic(Characteristic<{_T}>);\n"
    + "{% if in_values is present %}{{ in_values|in_values_enum }}{% endif %}"
    + "{% if out_values is present %}{{ out_values|out_values_enum }}{% endif %}\n"
    + _CHARACTERISTIC_CONSTRUCTOR
    + "\n"
    + _CHARACTERISTIC_IMPLS
)


def _mod_template(kind: str) -> str:
    return _HEADER + _for("name, module", "names", f"\n/// {{{{ name }}}} {kind} definition.\npub mod {{{{ module }}}};") + "\n"


_CHARACTERISTIC_MOD = _mod_template("characteristic")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

_REQUIRED = "required_characteristics"
_OPTIONAL = "optional_characteristics"

_SERVICE_BASE_FIELDS = (
    ("Instance ID of the {{ service.DefaultDescription }} service.", "id: u64"),
    ("[`HapType`](HapType) of the {{ service.DefaultDescription }} service.", "hap_type: HapType"),
    ("When set to true, this service is not visible to user.", "hidden: bool"),
    ("When set to true, this is the primary service on the accessory.", "primary: bool"),
    (
        "An array of numbers containing the instance IDs of the services that this service links to.",
        "linked_services: Vec<u64>",
    ),
)

_SERVICE_ACCESSORS = (
    ("id", "id", "u64", ""),
    ("type", "hap_type", "HapType", ""),
    ("hidden", "hidden", "bool", ""),
    ("primary", "primary", "bool", ""),
    ("linked_services", "linked_services", "Vec<u64>", ".clone()"),
)


def _collect_characteristics(mutable: bool) -> str:
    ref = "&mut " if mutable else "&"
    name = "get_mut_characteristics" if mutable else "get_characteristics"
    receiver = "&mut self" if mutable else "&self"
    return (
        f"{_INDENT}fn {name}({receiver}) -> Vec<{ref}dyn HapCharacteristic> {{\n"
        f"{_INDENT * 2}#[allow(unused_mut)]\n"
        f"{_INDENT * 2}let mut characteristics: Vec<{ref}dyn HapCharacteristic> = vec![\n"
        + _for("r", _REQUIRED, f"\t\t\t{ref}self.{_snake('r')},\n")
        + "\t\t];\n"
        + _for(
            "r",
            _OPTIONAL,
            f"\t\tif let Some(c) = {ref}self.{_snake('r')} {{\n\t\t    characteristics.push(c);\n\t\t}}\n",
        )
        + f"\t\tcharacteristics\n{_INDENT}}}"
    )


def _characteristic_import(var: str) -> str:
    return f"\t\t{_snake(var)}::{_pascal(var)}Characteristic,\n"


_SERVICE_HEAD = (
    "\nuse serde::ser::{Serialize, SerializeStruct, Serializer};\n\n"
    "use crate::{\n    service::HapService,\n    characteristic::{\n        HapCharacteristic,\n"
    + _for("r", _REQUIRED, _characteristic_import("r"))
    + _for("r", _OPTIONAL, _characteristic_import("r"))
    + "\t},\n    HapType,\n};\n\n"
    + f"/// {_desc('service')} service.\n"
    + "#[derive(Debug, Default)]\n"
    + f"pub struct {_NAME}Service {{\n"
    + "".join(f"{_INDENT}/// {doc}\n{_INDENT}{decl},\n" for doc, decl in _SERVICE_BASE_FIELDS)
    + "\n"
    + _for(
        "r",
        _REQUIRED,
        f"\t/// {_desc('r')} characteristic (required).\n\tpub {_snake('r')}: {_pascal('r')}Characteristic,\n",
    )
    + "\n"
    + _for(
        "o",
        _OPTIONAL,
        f"\t/// {_desc('o')} characteristic (optional).\n\tpub {_snake('o')}: Option<{_pascal('o')}Characteristic>,\n",
    )
    + "}\n\n"
    + f"impl {_NAME}Service {{\n"
    + f"    /// Creates a new {_desc('service')} service.\n"
    + "    pub fn new(id: u64, accessory_id: u64) -> Self {\n"
    + "        Self {\n"
    + "            id,\n"
    + f"            hap_type: HapType::{_NAME},\n"
    + _for(
        "r",
        _REQUIRED,
        f"\t\t\t{_snake('r')}: {_pascal('r')}Characteristic::new(id + 1 + {{{{ loop.index0 }}}}, accessory_id),\n",
    )
    + _for(
        "o",
        _OPTIONAL,
        f"\t\t\t{_snake('o')}: Some({_pascal('o')}Characteristic::new(id + 1 + {{{{ loop.index0 }}}}"
        f" + {{{{ {_REQUIRED}|length }}}}, accessory_id)),\n",
    )
    + "\t\t\t..Default::default()\n        }\n    }\n}\n"
)

_SERVICE = (
    "{% set name = service.DefaultDescription|pascal_case %}"
    + _HEADER
    + _SERVICE_HEAD
    + "\n"
    + _impl(
        f"impl HapService for {_NAME}Service",
        [
            *_field_accessors(_SERVICE_ACCESSORS),
            _lookup("characteristic", "HapCharacteristic", mutable=False),
            _lookup("characteristic", "HapCharacteristic", mutable=True),
            _collect_characteristics(mutable=False),
            _collect_characteristics(mutable=True),
        ],
    )
    + "\n"
    + _serialize_impl(
        f"{_NAME}Service",
        "HapService",
        [
            ("iid", "get_id"),
            ("type", "get_type"),
            ("hidden", "get_hidden"),
            ("primary", "get_primary"),
            ("characteristics", "get_characteristics"),
        ],
        note="linked services left out for now",
    )
)

_SERVICE_MOD = _mod_template("service")


# ---------------------------------------------------------------------------
# Accessories and examples
# ---------------------------------------------------------------------------


def _service_list(mutable: bool) -> str:
    ref = "&mut " if mutable else "&"
    name = "get_mut_services" if mutable else "get_services"
    receiver = "&mut self" if mutable else "&self"
    items = "".join(f"{_INDENT * 3}{ref}self.{attr},\n" for attr in ("accessory_information", _FIELD))
    return (
        f"{_INDENT}fn {name}({receiver}) -> Vec<{ref}dyn HapService> {{\n"
        f"{_INDENT * 2}vec![\n{items}{_INDENT * 2}]\n{_INDENT}}}"
    )


_ACCESSORY_HEAD = (
    "\nuse serde::ser::{Serialize, SerializeStruct, Serializer};\n\n"
    + _use(
        "crate",
        [
            "accessory::{AccessoryInformation, HapAccessory}",
            f"service::{{HapService, accessory_information::AccessoryInformationService, {_FIELD}::{_NAME}Service}}",
            "HapType",
            "Result",
        ],
        indent="\t",
    )
    + f"\n/// {_desc('service')} accessory.\n"
    + "#[derive(Debug, Default)]\n"
    + f"pub struct {_NAME}Accessory {{\n"
    + f"    /// ID of the {_desc('service')} accessory.\n"
    + "    id: u64,\n\n"
    + "    /// Accessory Information service.\n"
    + "    pub accessory_information: AccessoryInformationService,\n"
    + f"    /// {_desc('service')} service.\n"
    + f"    pub {_FIELD}: {_NAME}Service,\n"
    + "}\n\n"
    + f"impl {_NAME}Accessory {{\n"
    + f"    /// Creates a new {_desc('service')} accessory.\n"
    + "    pub fn new(id: u64, information: AccessoryInformation) -> Result<Self> {\n"
    + "        let accessory_information = information.to_service(1, id)?;\n"
    + f"        let {_FIELD}_id = accessory_information.get_characteristics().len() as u64;\n"
    + f"        let mut {_FIELD} = {_NAME}Service::new(1 + {_FIELD}_id + 1, id);\n"
    + f"        {_FIELD}.set_primary(true);\n\n"
    + "        Ok(Self {\n"
    + "            id,\n"
    + "            accessory_information,\n"
    + f"            {_FIELD},\n"
    + "        })\n"
    + "    }\n"
    + "}\n"
)

_ACCESSORY = (
    "{% set name = service.DefaultDescription|pascal_case %}"
    "{% set field = service.DefaultDescription|snake_case %}"
    + _HEADER
    + _ACCESSORY_HEAD
    + "\n"
    + _impl(
        f"impl HapAccessory for {_NAME}Accessory",
        [
            *_field_accessors([("id", "id", "u64", "")]),
            _lookup("service", "HapService", mutable=False),
            _lookup("service", "HapService", mutable=True),
            _service_list(mutable=False),
            _service_list(mutable=True),
        ],
    )
    + "\n"
    + _serialize_impl(
        f"{_NAME}Accessory",
        "HapAccessory",
        [("aid", "get_id"), ("services", "get_services")],
        result="std::result::Result",
    )
)

_ACCESSORY_MOD = _mod_template("accessory")

_EXAMPLE_CONFIG_FIELDS = (
    ("pin", "Pin::new([1, 1, 1, 2, 2, 3, 3, 3])?"),
    ("name", '"Acme {{ service.DefaultDescription }}".into()'),
    ("device_id", "MacAddress::from([10, 20, 30, 40, 50, 60])"),
    ("category", "{{ service.DefaultDescription|category }}"),
)

_EXAMPLE = (
    "{% set name = service.DefaultDescription|pascal_case %}"
    "{% set field = service.DefaultDescription|snake_case %}"
    "use tokio;\n\n"
    + _use(
        "hap",
        [
            f"accessory::{{AccessoryCategory, AccessoryInformation, {_FIELD}::{_NAME}Accessory}}",
            "server::{IpServer, Server}",
            "storage::{FileStorage, Storage}",
            "Config",
            "MacAddress",
            "Pin",
            "Result",
        ],
    )
    + "\n#[tokio::main]\n"
    + "async fn main() -> Result<()> {\n"
    + f"    let {_FIELD} = {_NAME}Accessory::new(1, AccessoryInformation {{\n"
    + f'        name: "Acme {_desc("service")}".into(),\n'
    + "        ..Default::default()\n"
    + "    })?;\n\n"
    + "    let mut storage = FileStorage::current_dir().await?;\n\n"
    + "    let config = match storage.load_config().await {\n"
    + "        Ok(mut config) => {\n"
    + "            config.redetermine_local_ip();\n"
    + "            storage.save_config(&config).await?;\n"
    + "            config\n"
    + "        },\n"
    + "        Err(_) => {\n"
    + "            let config = Config {\n"
    + "".join(f"{_INDENT * 4}{key}: {expr},\n" for key, expr in _EXAMPLE_CONFIG_FIELDS)
    + f"{_INDENT * 4}..Default::default()\n"
    + "            };\n"
    + "            storage.save_config(&config).await?;\n"
    + "            config\n"
    + "        },\n"
    + "    };\n\n"
    + "    let server = IpServer::new(config, storage).await?;\n"
    + f"    server.add_accessory({_FIELD}).await?;\n\n"
    + "    let handle = server.run_handle();\n\n"
    + '    std::env::set_var("RUST_LOG", "hap=debug");\n'
    + "    env_logger::init();\n\n"
    + "    handle.await\n"
    + "}\n"
)

_TEMPLATES = {
    "categories": _CATEGORIES,
    "hap_type": _HAP_TYPE,
    "characteristic": _CHARACTERISTIC,
    "characteristic_mod": _CHARACTERISTIC_MOD,
    "service": _SERVICE,
    "service_mod": _SERVICE_MOD,
    "accessory": _ACCESSORY,
    "accessory_mod": _ACCESSORY_MOD,
    "example": _EXAMPLE,
}


# ---------------------------------------------------------------------------
# Environment and rendering
# ---------------------------------------------------------------------------


def _present(value: Any) -> bool:
    """Truthiness of a metadata value where zero still counts as set."""
    if isinstance(value, jinja2.Undefined) or value is None or value is False:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (str, list, tuple, dict)) and not value:
        return False
    return True


def _literal(value: Any) -> str:
    """Render a metadata value as a source literal."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def create_environment() -> jinja2.Environment:
    """Template environment with every template and name helper registered."""
    env = jinja2.Environment(
        loader=jinja2.DictLoader(_TEMPLATES),
        autoescape=False,
        keep_trailing_newline=True,
        undefined=jinja2.StrictUndefined,
    )
    env.filters.update(
        {
            "pascal_case": pascal_case,
            "snake_case": snake_case,
            "file_name": file_name,
            "trim_name": trim,
            "uuid": shorten_uuid,
            "rust_type": rust_type,
            "hap_format": format_variant,
            "unit": unit_variant,
            "category": category_variant,
            "perms": perms,
            "float_suffix": float_suffix,
            "in_values": in_values,
            "out_values": out_values,
            "in_values_enum": in_values_enum,
            "out_values_enum": out_values_enum,
            "literal": _literal,
        }
    )
    env.tests["present"] = _present
    return env


@lru_cache(maxsize=1)
def _environment() -> jinja2.Environment:
    return create_environment()


def _render(name: str, **context: Any) -> str:
    return _environment().get_template(name).render(**context)


def render_categories(metadata: RenderMetadata) -> str:
    """Source of the accessory category enum."""
    return _render("categories", **metadata.to_context())


def render_hap_type(metadata: RenderMetadata) -> str:
    """Source of the service and characteristic type enum."""
    return _render("hap_type", **metadata.to_context())


def render_characteristic(
    characteristic: HapCharacteristic,
    in_values: Mapping[str, Any] | None,
    out_values: Mapping[str, Any] | None,
) -> str:
    """Source of one characteristic definition."""
    return _render(
        "characteristic",
        characteristic=characteristic.to_context(),
        in_values=dict(in_values) if in_values is not None else None,
        out_values=dict(out_values) if out_values is not None else None,
    )


def _pairs(names: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    return [(name, module) for name, module in names]


def render_characteristic_mod(names: Iterable[tuple[str, str]]) -> str:
    """Module index for (description, module name) pairs of characteristics."""
    return _render("characteristic_mod", names=_pairs(names))


def render_service(
    service: HapService,
    required: Iterable[HapCharacteristic],
    optional: Iterable[HapCharacteristic],
) -> str:
    """Source of one service definition."""
    return _render(
        "service",
        service=service.to_context(),
        required_characteristics=[c.to_context() for c in required],
        optional_characteristics=[c.to_context() for c in optional],
    )


def render_service_mod(names: Iterable[tuple[str, str]]) -> str:
    """Module index for (description, module name) pairs of services."""
    return _render("service_mod", names=_pairs(names))


def render_accessory(service: HapService) -> str:
    """Source of the accessory built around one service."""
    return _render("accessory", service=service.to_context())


def render_accessory_mod(names: Iterable[tuple[str, str]]) -> str:
    """Module index for (description, module name) pairs of accessories."""
    return _render("accessory_mod", names=_pairs(names))


def render_example(service: HapService) -> str:
    """Example program that serves the accessory for one service."""
    return _render("example", service=service.to_context())