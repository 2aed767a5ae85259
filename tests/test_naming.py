import pytest

from hapgen.naming import (
    RenderError,
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

NAMES = [
    "Accessory Information",
    "Fan v2",
    "Smart Speaker",
    "Heater-Cooler",
    "Wi-Fi Satellite",
    "PM2.5 Density",
]


def test_pascal_case_known_value():
    assert pascal_case("Accessory Information") == "AccessoryInformation"


@pytest.mark.parametrize("name", NAMES)
def test_pascal_case_shape(name):
    result = pascal_case(name)
    assert " " not in result
    assert "-" not in result
    assert "." not in result
    assert result[0].isupper()
    assert pascal_case(name.upper()) == result


def test_pascal_case_empty_word_raises():
    with pytest.raises(RenderError):
        pascal_case("double  space")


def test_snake_case_known_value():
    assert snake_case("Irrigation-System") == "irrigation_system"


@pytest.mark.parametrize("name", NAMES)
def test_snake_case_shape(name):
    result = snake_case(name)
    assert result == result.lower()
    assert not set(" .-") & set(result)
    assert len(result) == len(name)
    assert snake_case(result) == result


def test_file_name_keeps_hyphen():
    assert file_name("Heater-Cooler") == "heater-cooler"
    assert file_name("Fan v2") == snake_case("Fan v2")


def test_trim():
    assert trim("PM2.5 Density") == "PM2_5Density"
    assert trim("Smart Speaker") == "SmartSpeaker"


@pytest.mark.parametrize("uuid", ["00000043", "0000003E", "A1", "000"])
def test_shorten_uuid_invariant(uuid):
    short = shorten_uuid(uuid)
    assert not short.startswith("0")
    assert "0" * (len(uuid) - len(short)) + short == uuid


def test_rust_type_and_format():
    assert rust_type("uint8") == "u8"
    assert rust_type("int") == rust_type("int32") == "i32"
    assert rust_type("tlv8") == rust_type("data") == "Vec<u8>"
    assert format_variant("uint8") == "Format::UInt8"
    assert format_variant("int") == "Format::Int32"
    assert format_variant("string") == "Format::String"


def test_unknown_format_raises():
    with pytest.raises(RenderError, match="Unknown Characteristic format"):
        rust_type("complex")
    with pytest.raises(RenderError, match="Unknown Characteristic format"):
        format_variant("complex")


def test_units():
    assert unit_variant("celsius") == "Unit::Celsius"
    assert unit_variant("fahrenheit") == "Unit::Celsius"
    assert unit_variant("ppm") == "Unit::PartsPerMillion"
    assert unit_variant("micrograms/m^3") == "Unit::MicrogramsPerCubicMeter"
    with pytest.raises(RenderError, match="Unknown Characteristic unit"):
        unit_variant("kelvin")


def test_category_overrides():
    assert category_variant("Temperature Sensor") == "AccessoryCategory::Sensor"
    assert category_variant("Doorbell") == "AccessoryCategory::VideoDoorbell"
    assert category_variant("Fan v2") == "AccessoryCategory::Fan"
    assert category_variant("Irrigation-System") == "AccessoryCategory::Sprinkler"
    assert category_variant("Wi-Fi Satellite") == "AccessoryCategory::WiFiRouter"
    assert (
        category_variant("Stateless Programmable Switch")
        == "AccessoryCategory::ProgrammableSwitch"
    )


def test_category_default_uses_pascal_case():
    for name in ["Air Purifier", "Garage Door Opener", "Window Covering"]:
        assert category_variant(name) == "AccessoryCategory::" + pascal_case(name)


def test_perms():
    assert perms(0) == ""
    assert perms(1) == "\n\t\t\t\tPerm::Events,"
    assert perms(1 << 3) == ""
    assert perms(1 << 4) == ""
    both = perms(0b11)
    assert both == perms(1) + "\n\t\t\t\tPerm::PairedRead,"
    full = perms(0xFF)
    assert full.count("Perm::") == 6
    assert full.index("Events") < full.index("WriteResponse")


def test_float_suffix():
    assert float_suffix("float") == " as f32"
    assert float_suffix("uint8") == ""


def _entries(text):
    lines = text.split("\n")
    return [line.strip().rstrip(",").split(", // ") for line in lines[1:-1]]


def test_in_values_sorted_by_value():
    result = in_values({"ACTIVE": 1, "INACTIVE": 0})
    assert result.startswith("vec![\n")
    assert result.endswith("\t\t\t]")
    entries = _entries(result)
    assert entries == [["0", "INACTIVE"], ["1", "ACTIVE"]]


def test_in_values_strips_quotes():
    result = in_values({"A": "2", "B": "1"})
    assert '"' not in result
    assert [value for value, _ in _entries(result)] == ["1", "2"]


def test_out_values_sorted_by_key():
    result = out_values({"1": "ON", "0": "OFF"})
    entries = _entries(result)
    assert entries == [["0", "OFF"], ["1", "ON"]]


def test_in_values_enum():
    result = in_values_enum({"STATE_1": 1, "NOT_READY": 0})
    assert result.startswith("\npub enum Value {\n")
    assert result.endswith("}\n")
    body = result.split("\n")[2:-2]
    assert body[0].startswith("\t" + pascal_case("not ready") + " = 0")
    assert "Num1 = 1" in body[1]


def test_out_values_enum():
    result = out_values_enum({"0": "SWING_DISABLED", "1": "SWING_ENABLED"})
    body = result.split("\n")[2:-2]
    assert body == [
        "\t" + pascal_case("swing disabled") + " = 0,",
        "\t" + pascal_case("swing enabled") + " = 1,",
    ]


def test_enum_empty_segment_raises():
    with pytest.raises(RenderError):
        in_values_enum({"BAD__NAME": 0})