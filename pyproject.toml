[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nxopus"
version = "1.2.0"
description = "Read, check and build Nintendo Switch Opus containers, their game-specific wrappers, and WAV files"
requires-python = ">=3.10"
dependencies = []
keywords = ["opus", "nintendo", "switch", "wav", "audio", "capcom", "container", "loop"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
create-capcom-opus = "nxopus.capcom_tool:main"

[tool.hatch.build.targets.wheel]
packages = ["nxopus"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
