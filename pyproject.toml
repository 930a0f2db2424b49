[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jobbootstrap"
version = "0.1.0"
description = "Building blocks for bootstrapping CI jobs: a logging shell, executable lookup, SSH key scanning and an output redactor."
requires-python = ">=3.10"
dependencies = []
keywords = ["ci", "build", "bootstrap", "shell", "ssh", "ssh-keyscan", "redaction", "logging"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["jobbootstrap"]

[tool.pytest.ini_options]
addopts = "-ra"
