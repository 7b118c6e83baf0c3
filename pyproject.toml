[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mapboxkit"
version = "0.1.0"
description = "Mapbox vector tile encoding and decoding, SDF glyphs, font coverage, terrain DEM tiles and tileset recipes"
requires-python = ">=3.10"
keywords = [
    "mapbox",
    "mvt",
    "vector-tiles",
    "sdf",
    "glyphs",
    "dem",
    "terrain",
    "gis",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]
dependencies = [
    "pillow>=9.2",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["mapboxkit"]

[tool.hatch.build.targets.sdist]
include = ["mapboxkit", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
