[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hapgen"
version = "0.1.0"
description = "Generate HomeKit Accessory Protocol category, type, characteristic, service, accessory and example sources from system metadata"
requires-python = ">=3.10"
keywords = ["homekit", "hap", "codegen", "templates", "accessories"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Environment :: Console",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Code Generators",
]
dependencies = [
    "jinja2",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
hapgen = "hapgen.generator:main"

[tool.hatch.build.targets.wheel]
packages = ["hapgen"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
