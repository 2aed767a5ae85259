"""Generate the category, type, characteristic, service, accessory and example sources."""

from __future__ import annotations

import argparse
import shutil
import sys
from collections.abc import Iterable
from os import PathLike
from pathlib import Path

from hapgen.metadata import HapCharacteristic, HapService, RenderMetadata, load_metadata
from hapgen.naming import RenderError, snake_case
from hapgen.templates import (
    render_accessory,
    render_accessory_mod,
    render_categories,
    render_characteristic,
    render_characteristic_mod,
    render_example,
    render_hap_type,
    render_service,
    render_service_mod,
)

DEFAULT_METADATA = Path("codegen/gen/system.json")

CATEGORIES_PATH = Path("src/accessory/category.rs")
HAP_TYPE_PATH = Path("src/hap_type.rs")
CHARACTERISTIC_DIR = Path("src/characteristic/generated")
SERVICE_DIR = Path("src/service/generated")
ACCESSORY_DIR = Path("src/accessory/generated")
EXAMPLES_DIR = Path("examples")

# Services whose accessories need manual adjustment and so are not generated.
NON_IDIOMATIC_SERVICES = frozenset(
    {
        "access code",
        "accessory information",
        "accessory metrics",
        "access control",
        "accessory runtime information",
        "asset update",
        "assistant",
        "audio stream management",
        "battery",
        "camera operating mode",
        "camera recording management",
        "camera stream management",
        "cloud relay",
        "data stream transport management",
        "diagnostics",
        "doorbell",
        "faucet",
        "filter maintenance",
        "heater-cooler",
        "input source",
        "irrigation-system",
        "label",
        "lightbulb",
        "lock management",
        "lock mechanism",
        "microphone",
        "nfc access service",
        "pairing",
        "power management",
        "protocol information",
        "siri",
        "siri endpoint",
        "slats",
        "speaker",
        "target control management",
        "target control",
        "television",
        "thread transport",
        "transfer transport management",
        "valve",
        "wi-fi transport",
    }
)

# Services that get an accessory but whose example needs manual adjustment.
SKIP_EXAMPLE_GENERATION = frozenset({"humidifier-dehumidifier"})

# Example files maintained by hand; they survive regeneration.
MANUALLY_GENERATED_EXAMPLES = frozenset(
    {
        "adding_accessories_dynamically.rs",
        "async_callbacks.rs",
        "bridged_accessories.rs",
        "callbacks.rs",
        "cooler.rs",
        "custom_characteristics_services_accessories.rs",
        "custom_multi_sensor.rs",
        "dehumidifier.rs",
        "faucet.rs",
        "heater.rs",
        "humidifier.rs",
        "irrigation_system.rs",
        "lightbulb.rs",
        "lock.rs",
        "setting_values_after_server_start.rs",
        "shower_head.rs",
        "storing_arbitrary_bytes.rs",
        "sprinkler.rs",
        "television.rs",
    }
)


def is_idiomatic(service_name: str) -> bool:
    """Whether an accessory can be generated for the named service."""
    return service_name.lower() not in NON_IDIOMATIC_SERVICES


def _reset_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def _clean_examples(examples: Path) -> None:
    examples.mkdir(parents=True, exist_ok=True)
    for entry in examples.iterdir():
        if entry.is_file() and entry.name not in MANUALLY_GENERATED_EXAMPLES:
            entry.unlink()


def _resolve(
    metadata: RenderMetadata, keys: Iterable[str] | None, service: HapService
) -> list[HapCharacteristic]:
    try:
        return [metadata.characteristics[key] for key in keys or ()]
    except KeyError as exc:
        raise ValueError(
            f"service {service.name!r} refers to unknown characteristic {exc.args[0]!r}"
        ) from None


class _Writer:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.written: list[Path] = []

    def __call__(self, relative: Path, text: str) -> None:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8", newline="")
        self.written.append(path)


def generate(metadata_path: str | PathLike[str], root: str | PathLike[str]) -> list[Path]:
    """Render every source file below ``root`` and return the paths written."""
    root = Path(root)
    metadata = load_metadata(metadata_path)
    write = _Writer(root)

    write(CATEGORIES_PATH, render_categories(metadata))
    write(HAP_TYPE_PATH, render_hap_type(metadata))

    _reset_dir(root / CHARACTERISTIC_DIR)
    characteristic_names: list[tuple[str, str]] = []
    for key, characteristic in metadata.characteristics.items():
        text = render_characteristic(
            characteristic,
            metadata.characteristic_in_values.get(key),
            metadata.characteristic_out_values.get(key),
        )
        module = snake_case(characteristic.name)
        write(CHARACTERISTIC_DIR / f"{module}.rs", text)
        characteristic_names.append((characteristic.name, module))
    characteristic_names.sort(key=lambda pair: pair[1])
    write(CHARACTERISTIC_DIR / "mod.rs", render_characteristic_mod(characteristic_names))

    _reset_dir(root / SERVICE_DIR)
    _reset_dir(root / ACCESSORY_DIR)
    _clean_examples(root / EXAMPLES_DIR)

    service_names: list[tuple[str, str]] = []
    accessory_names: list[tuple[str, str]] = []
    for service in metadata.sorted_services:
        required = _resolve(metadata, service.required_characteristics, service)
        optional = _resolve(metadata, service.optional_characteristics, service)
        module = snake_case(service.name)
        write(SERVICE_DIR / f"{module}.rs", render_service(service, required, optional))
        service_names.append((service.name, module))

        if is_idiomatic(service.name):
            write(ACCESSORY_DIR / f"{module}.rs", render_accessory(service))
            if service.name.lower() not in SKIP_EXAMPLE_GENERATION:
                write(EXAMPLES_DIR / f"{module}.rs", render_example(service))
            accessory_names.append((service.name, module))

    write(SERVICE_DIR / "mod.rs", render_service_mod(service_names))
    write(ACCESSORY_DIR / "mod.rs", render_accessory_mod(accessory_names))
    return write.written


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        prog="hapgen", description="Generate accessory sources from system metadata."
    )
    parser.add_argument(
        "--root", default=".", help="directory the sources are written below (default: .)"
    )
    parser.add_argument(
        "--metadata",
        default=None,
        help=f"metadata JSON file (default: <root>/{DEFAULT_METADATA.as_posix()})",
    )
    args = parser.parse_args(argv)

    root = Path(args.root)
    metadata_path = Path(args.metadata) if args.metadata else root / DEFAULT_METADATA
    try:
        generate(metadata_path, root)
    except (OSError, ValueError, RenderError) as exc:
        print(f"hapgen: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())