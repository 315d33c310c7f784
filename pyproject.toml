[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sschool"
version = "0.1.0"
description = "HTTP API server for courses, modules, lessons, assignments, enrollments, submissions and comments, stored in SQLite"
requires-python = ">=3.10"
keywords = ["school", "courses", "lms", "rest", "api", "starlette", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: AsyncIO",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "starlette",
    "uvicorn",
]

[project.optional-dependencies]
test = [
    "pytest",
    "httpx",
]

[project.scripts]
sschool = "sschool.app:main"

[tool.hatch.build.targets.wheel]
packages = ["sschool"]

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
