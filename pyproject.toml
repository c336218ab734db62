[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zstmt"
version = "0.8.0"
description = "Multi-threaded Zstandard compression with a gzip-like command line"
requires-python = ">=3.10"
keywords = ["zstd", "zstandard", "compression", "multithreading", "skippable frames"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Compression",
]
dependencies = [
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
zstd-mt = "zstmt.cli:main"
unzstd-mt = "zstmt.cli:main"
zstdcat-mt = "zstmt.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["zstmt"]

[tool.pytest.ini_options]
addopts = "-ra"
