[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "enplace"
version = "0.1.0"
description = "Recipe storage on SQLite, with tag and ingredient management and Markdown, RTF and plain-text export."
requires-python = ">=3.10"
dependencies = []
keywords = ["recipes", "cooking", "sqlite", "markdown", "rtf", "export"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["enplace"]

[tool.hatch.build.targets.sdist]
include = ["enplace", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
