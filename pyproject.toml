[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mindhub"
version = "0.1.0"
description = "Per-user record storage over a DynamoDB-style table, with an in-process GraphQL test client"
requires-python = ">=3.10"
dependencies = []
keywords = ["dynamodb", "store", "repository", "graphql", "wsgi", "testing"]
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
    "Topic :: Database",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mindhub"]

[tool.pytest.ini_options]
addopts = "-ra"
