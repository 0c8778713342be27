[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "duckchat"
version = "0.1.0"
description = "A UDP chat client and a federated chat server with a small binary protocol"
requires-python = ">=3.10"
dependencies = []
keywords = ["chat", "udp", "federation", "terminal"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
duckchat-client = "duckchat.client:main"
duckchat-server = "duckchat.server:main"

[tool.hatch.build.targets.wheel]
packages = ["duckchat"]

[tool.pytest.ini_options]
addopts = "-ra"
