[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "cbfkit"
version = "0.1.0"
description = "Reader for CBF diagnostic containers and conversion of ECU definitions to JSON"
requires-python = ">=3.10"
dependencies = []
keywords = ["cbf", "caesar", "diagnostics", "ecu", "can", "iso-tp", "kwp2000", "uds"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: File Formats",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cbfkit = "cbfkit.cli:main"

[tool.setuptools.packages.find]
include = ["cbfkit*"]

[tool.pytest.ini_options]
addopts = "-ra"
