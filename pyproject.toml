[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "humakit"
version = "0.1.0"
description = "Building blocks for HTTP APIs: problem-details errors, a CBOR format, multipart file checks, an SSE message producer and a terminal recording runner"
requires-python = ">=3.10"
keywords = ["http", "api", "rfc9457", "problem-details", "cbor", "multipart", "sse", "asciinema"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cbor2",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
asciinema-run = "humakit.asciinema_run:main"

[tool.hatch.build.targets.wheel]
packages = ["humakit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
