[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ralph"
version = "0.1.0"
description = "A minimal, file-based agent loop that works through PRD stories one at a time"
requires-python = ">=3.10"
dependencies = []
keywords = ["prd", "agent", "automation", "git", "user-stories"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ralph = "ralph.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ralph"]

[tool.pytest.ini_options]
addopts = "-ra"
