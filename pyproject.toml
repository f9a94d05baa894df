[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "deformfusion"
version = "0.1.0"
description = "Embedded deformation graph optimisation, sparse normal-equation solving and camera utilities for dense surfel mapping"
requires-python = ">=3.10"
keywords = ["slam", "deformation graph", "rgb-d", "surfel", "sparse least squares"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["deformfusion"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
