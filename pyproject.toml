[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mcpgate"
version = "0.1.0"
description = "Building blocks for an MCP gateway: domain models, YAML RBAC authorization, audit sinks and deployment providers"
requires-python = ">=3.10"
keywords = [
    "mcp",
    "model-context-protocol",
    "gateway",
    "rbac",
    "authorization",
    "audit",
    "docker",
    "oci",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Security",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyyaml>=6.0",
    "httpx>=0.27",
]

[project.optional-dependencies]
test = [
    "pytest>=8.0",
    "pytest-asyncio>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["mcpgate"]

[tool.hatch.build.targets.sdist]
include = ["mcpgate", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
no_implicit_optional = true
check_untyped_defs = true

[tool.coverage.run]
source = ["mcpgate"]
branch = true
