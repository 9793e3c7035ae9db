[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "specialresource"
version = "0.0.1"
description = "Reconciliation logic for special resources: status conditions, finalizers, preflight validation and resource helpers for cluster objects"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kubernetes",
    "openshift",
    "operator",
    "reconciler",
    "driver-container",
    "preflight",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["specialresource"]

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
warn_redundant_casts = true
