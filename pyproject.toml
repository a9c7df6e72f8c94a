[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gitsage"
version = "0.1.0"
description = "Support library for commit message generation: Conventional Commits parsing and validation, layered YAML configuration, message history, response caching, retries, a circuit breaker and application errors."
requires-python = ">=3.10"
keywords = [
    "git",
    "commit",
    "commit-message",
    "conventional-commits",
    "configuration",
    "retry",
    "circuit-breaker",
    "lru-cache",
]
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
    "Topic :: Software Development :: Version Control :: Git",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "hypothesis>=6.0",
]

[tool.hatch.build.targets.wheel]
packages = ["gitsage"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
