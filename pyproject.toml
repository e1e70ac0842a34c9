[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "richat-geyser"
version = "0.1.0"
description = "Protobuf encoding of Solana Geyser updates and a bounded replay channel for streaming them"
requires-python = ">=3.10"
dependencies = []
keywords = ["solana", "geyser", "protobuf", "streaming", "channel", "prometheus"]
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
    "Topic :: Internet",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
richat-config-check = "richat_geyser.config_check:main"

[tool.hatch.build.targets.wheel]
packages = ["richat_geyser"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
