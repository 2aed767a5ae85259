"""Generator of HomeKit Accessory Protocol category, type, characteristic, service, accessory and example sources from system metadata."""

__version__ = "0.1.0"
__all__ = ["__version__"]