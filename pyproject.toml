[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "modelctx"
version = "0.1.0"
description = "Model Context Protocol building blocks: JSON-RPC messages, a tool/resource/prompt server and an asyncio client"
requires-python = ">=3.10"
keywords = ["mcp", "model context protocol", "json-rpc", "llm", "tools", "asyncio", "sse"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]
dependencies = [
    "httpx",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
modelctx-counter = "modelctx.server.counter:main"

[tool.hatch.build.targets.wheel]
packages = ["modelctx"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
