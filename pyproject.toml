[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lspkit"
version = "0.1.0"
description = "Building blocks of the Live Sequence Protocol: messages, checksums, connection state and fault-injecting UDP sockets"
requires-python = ">=3.10"
dependencies = []
keywords = ["udp", "networking", "reliable-transport", "sliding-window", "protocol", "fault-injection"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lspkit"]

[tool.pytest.ini_options]
addopts = "-ra"
