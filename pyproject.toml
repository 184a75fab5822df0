[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "syncprims"
version = "0.1.0"
description = "Thread-safe timers, queues and a message bus, with a small HTTP server and a parallel word counter"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "concurrency",
    "threads",
    "queue",
    "timer",
    "message-bus",
    "http-server",
    "map-reduce",
    "word-count",
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
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
syncprims-httpd = "syncprims.httpd:main"
syncprims-wordcount = "syncprims.wordcount:main"

[tool.hatch.build.targets.wheel]
packages = ["syncprims"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
