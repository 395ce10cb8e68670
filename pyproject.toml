[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "svdancer"
version = "0.1.0"
description = "Structural variant detection from paired-end read mappings"
requires-python = ">=3.10"
dependencies = [
    "scipy",
]
keywords = [
    "bioinformatics",
    "genomics",
    "structural-variants",
    "paired-end",
    "sequencing",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["svdancer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
