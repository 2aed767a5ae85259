import copy
import json

import pytest

from hapgen.metadata import (
    AssistantCharacteristic,
    HapCharacteristic,
    HapService,
    RenderMetadata,
    load_metadata,
    parse_metadata,
)


def _service(uuid, name, required, optional=None):
    relation = {"Required": required}
    if optional is not None:
        relation["Optional"] = optional
    return {"ShortUUID": uuid, "DefaultDescription": name, "Characteristics": relation}


def _document():
    return {
        "Version": 1,
        "SchemaVersion": 1,
        "PlistDictionary": {
            "Version": 1,
            "SchemaVersion": 1,
            "HomeKit": {
                "Categories": {
                    "lightbulb": {"DefaultDescription": "Lightbulb", "Identifier": 5, "UUID": "u5"},
                    "other": {"DefaultDescription": "Other", "Identifier": 1, "UUID": "u1"},
                    "bridge": {"DefaultDescription": "Bridge", "Identifier": 2, "UUID": "u2"},
                }
            },
            "HAP": {
                "Base UUID": "base",
                "Characteristics": {
                    "on": {
                        "ShortUUID": "00000025",
                        "DefaultDescription": "Power State",
                        "Format": "bool",
                        "Properties": 7,
                    },
                    "brightness": {
                        "ShortUUID": "00000008",
                        "DefaultDescription": "Brightness",
                        "Format": "int32",
                        "MinValue": 0,
                        "MaxValue": 100,
                        "StepValue": 1,
                        "Units": "percentage",
                        "Properties": 7,
                    },
                    "active": {
                        "ShortUUID": "000000B0",
                        "DefaultDescription": "Active",
                        "Format": "uint8",
                        "Properties": 3,
                    },
                },
                "Services": {
                    "lightbulb": _service("00000043", "Lightbulb", ["on"], ["brightness"]),
                    "accessory-information": _service("0000003E", "accessory-information", ["on"]),
                    "fanv2": _service("000000B7", "fanv2", ["active"]),
                    "smart-speaker": _service("00000228", "smart-speaker", ["on"]),
                },
                "Properties": {
                    "read": {"DefaultDescription": "Paired Read", "Position": 1},
                },
            },
            "Assistant": {
                "Characteristics": {
                    "Active": {
                        "Format": "uint8",
                        "ReadWrite": "active",
                        "Values": {"Inactive": 0, "Active": 1},
                    },
                    "Mode": {
                        "Format": "uint8",
                        "Read": "mode-current",
                        "OutValues": {"0": "Off", "1": "On"},
                    },
                    "Target": {
                        "Format": "uint8",
                        "Write": "mode-target",
                        "Values": {"Manual": 0, "Auto": 1},
                    },
                    "Reading": {
                        "Format": "uint8",
                        "Read": "reading",
                        "Values": {"Low": 0, "High": 1},
                    },
                }
            },
        },
    }


@pytest.fixture
def metadata():
    return parse_metadata(_document())


def test_mislabeled_services_are_renamed(metadata):
    assert metadata.services["accessory-information"].name == "Accessory Information"
    assert metadata.services["fanv2"].name == "Fan v2"
    assert metadata.services["smart-speaker"].name == "Smart Speaker"
    assert metadata.services["lightbulb"].name == "Lightbulb"


def test_sorted_categories_by_identifier(metadata):
    numbers = [c.number for c in metadata.sorted_categories]
    assert numbers == sorted(numbers)
    assert len(numbers) == len(metadata.categories)


def test_sorted_characteristics_and_services_by_name(metadata):
    names = [c.name for c in metadata.sorted_characteristics]
    assert names == sorted(names)
    service_names = [s.name for s in metadata.sorted_services]
    assert service_names == sorted(service_names)
    assert "Fan v2" in service_names


def test_characteristic_fields(metadata):
    brightness = metadata.characteristics["brightness"]
    assert brightness.min_value == 0
    assert brightness.max_value == 100
    assert brightness.units == "percentage"
    assert brightness.max_length is None
    assert metadata.characteristics["on"].units is None


def test_read_write_values_go_to_in_values(metadata):
    assert metadata.characteristic_in_values["active"] == {"Inactive": 0, "Active": 1}


def test_read_with_out_values_goes_to_out_values(metadata):
    assert metadata.characteristic_out_values["mode-current"] == {"0": "Off", "1": "On"}
    assert "mode-current" not in metadata.characteristic_in_values


def test_write_and_read_values_go_to_in_values(metadata):
    assert metadata.characteristic_in_values["mode-target"] == {"Manual": 0, "Auto": 1}
    assert metadata.characteristic_in_values["reading"] == {"Low": 0, "High": 1}
    assert "reading" not in metadata.characteristic_out_values


def test_read_and_write_with_out_values():
    doc = _document()
    doc["PlistDictionary"]["Assistant"]["Characteristics"] = {
        "Both": {
            "Format": "uint8",
            "Read": "state-current",
            "Write": "state-target",
            "Values": {"A": 0},
            "OutValues": {"0": "A"},
        }
    }
    result = parse_metadata(doc)
    assert result.characteristic_out_values == {"state-current": {"0": "A"}}
    assert result.characteristic_in_values == {"state-target": {"A": 0}}


def test_missing_renamed_service_raises():
    doc = _document()
    del doc["PlistDictionary"]["HAP"]["Services"]["fanv2"]
    with pytest.raises(ValueError):
        parse_metadata(doc)


def test_missing_required_key_raises():
    doc = _document()
    del doc["PlistDictionary"]["HAP"]["Characteristics"]["on"]["Properties"]
    with pytest.raises(ValueError):
        parse_metadata(doc)


def test_wrong_type_raises():
    doc = _document()
    doc["PlistDictionary"]["HomeKit"]["Categories"]["other"]["Identifier"] = "one"
    with pytest.raises(ValueError):
        parse_metadata(doc)


def test_input_is_not_modified():
    doc = _document()
    original = copy.deepcopy(doc)
    parse_metadata(doc)
    assert doc == original


def test_characteristic_context_round_trip():
    raw = _document()["PlistDictionary"]["HAP"]["Characteristics"]["brightness"]
    result = parse_metadata(_document()).characteristics["brightness"].to_context()
    for key, value in raw.items():
        assert result[key] == value
    assert result["MaxLength"] is None


def test_service_context(metadata):
    ctx = metadata.services["lightbulb"].to_context()
    assert ctx["DefaultDescription"] == "Lightbulb"
    assert ctx["Characteristics"] == {"Required": ["on"], "Optional": ["brightness"]}
    assert metadata.services["fanv2"].to_context()["Characteristics"]["Optional"] is None


def test_service_dataclass_context():
    service = HapService("00000049", "Switch", ("on",), None)
    assert service.to_context()["ShortUUID"] == "00000049"
    char = HapCharacteristic("00000025", "Power State", "bool", 7)
    assert char.to_context()["Properties"] == 7


def test_render_metadata_context(metadata):
    ctx = metadata.to_context()
    ids = [c["Identifier"] for c in ctx["sorted_categories"]]
    assert ids == sorted(ids)
    assert ctx["services"]["fanv2"]["DefaultDescription"] == "Fan v2"
    assert ctx["properties"]["read"] == {"DefaultDescription": "Paired Read", "Position": 1}
    assert ctx["characteristic_in_values"]["active"] == {"Inactive": 0, "Active": 1}
    assert ctx["assistant_characteristics"]["Mode"]["Read"] == "mode-current"
    assert json.loads(json.dumps(ctx)) == ctx


def test_render_metadata_built_directly():
    meta = RenderMetadata(
        categories={},
        characteristics={},
        services={},
        properties={},
        assistant_characteristics={"X": AssistantCharacteristic("uint8", read="x")},
    )
    assert meta.sorted_services == []
    assert meta.to_context()["assistant_characteristics"]["X"]["Read"] == "x"


def test_load_metadata(tmp_path):
    path = tmp_path / "system.json"
    path.write_text(json.dumps(_document()), encoding="utf-8")
    loaded = load_metadata(path)
    assert loaded == parse_metadata(_document())
    assert loaded.services["smart-speaker"].name == "Smart Speaker"


def test_load_metadata_invalid_json(tmp_path):
    path = tmp_path / "system.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        load_metadata(path)