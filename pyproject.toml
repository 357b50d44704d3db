[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "tinyhttpd"
version = "0.1.0"
description = "A small multi-worker HTTP server that streams static files and acknowledges request bodies"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "server", "static-files", "selectors", "chunked"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinyhttpd = "tinyhttpd.server:main"

[tool.setuptools.packages.find]
include = ["tinyhttpd*"]

[tool.pytest.ini_options]
addopts = "-ra"
