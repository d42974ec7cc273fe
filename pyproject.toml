[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rsrun"
version = "0.35.0"
description = "Command-line tool that compiles and runs single-file Rust scripts, with their dependencies, through Cargo."
requires-python = ">=3.11"
keywords = ["cargo", "script", "rust", "runner"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: Utilities",
]
dependencies = [
    "markdown-it-py",
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
rsrun = "rsrun.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rsrun"]

[tool.pytest.ini_options]
addopts = "-ra"
