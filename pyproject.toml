[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blockrest"
version = "0.1.0"
description = "Bitcoin chain data types and the JSON and HTTP response shapes of a block explorer REST API"
requires-python = ">=3.10"
dependencies = []
keywords = ["bitcoin", "blockchain", "rest", "explorer", "transaction", "address", "script"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Office/Business :: Financial",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["blockrest"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
