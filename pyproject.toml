[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "geosentry"
version = "1.0.0"
description = "Geolocation and behavioural security toolkit: policy decisions, input validation, rate limiting, event history, sensor and network analysis, weather cross-checking."
requires-python = ">=3.10"
keywords = [
    "security",
    "geolocation",
    "rate-limiting",
    "policy",
    "validation",
    "anomaly-detection",
    "sanitization",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Security",
    "Typing :: Typed",
]
dependencies = [
    "cryptography",
    "httpx",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["geosentry"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
