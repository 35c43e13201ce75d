[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bilge"
version = "0.2.0"
description = "Bit-sized unsigned integers, bitfield structs and bitfield enums, packed into a single integer."
requires-python = ">=3.10"
dependencies = []
keywords = ["bilge", "bitfield", "bits", "register", "packing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bilge"]

[tool.hatch.build.targets.sdist]
include = ["bilge", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
