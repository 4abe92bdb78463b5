[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "imserverkit"
version = "1.0.0"
description = "Building blocks for an instant-messaging server: binary packet codec, JSON message serializer, config, Redis client, thread pool and metrics endpoint."
requires-python = ">=3.10"
keywords = ["chat", "instant-messaging", "protocol", "codec", "tcp", "server"]
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
    "Topic :: Communications :: Chat",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["imserverkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
