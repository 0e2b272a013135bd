[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shuttermint"
version = "0.1.0"
description = "Deterministic application state for a keyper chain: batch configs, DKG bookkeeping, voting and validator power maps"
requires-python = ">=3.10"
dependencies = []
keywords = ["keyper", "dkg", "consensus", "validators", "threshold", "state-machine"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["shuttermint"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
