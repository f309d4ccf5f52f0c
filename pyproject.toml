[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "rforest"
version = "0.11.6"
description = "Random forest core: data tables, an abstract forest driver, binary storage and command-line option handling"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "random forest",
    "machine learning",
    "decision trees",
    "variable importance",
    "command line options",
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
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["rforest*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
