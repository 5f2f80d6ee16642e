[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rudolph"
version = "0.1.0"
description = "Data model and services for a Santa sync server backed by a DynamoDB-style key-value table"
requires-python = ">=3.10"
dependencies = []
keywords = ["santa", "sync", "allowlist", "blocklist", "dynamodb", "macos"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rudolph"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
