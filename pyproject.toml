[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "taskapi"
version = "1.0.0"
description = "A small RESTful task management API with thread-safe in-memory storage and a stress-testing tool"
requires-python = ">=3.10"
dependencies = []
keywords = ["rest", "api", "tasks", "http-server", "in-memory", "stress-test"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
taskapi = "taskapi.server:main"
taskapi-stress = "taskapi.stress:main"

[tool.hatch.build.targets.wheel]
packages = ["taskapi"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
