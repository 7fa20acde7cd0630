[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nativestor"
version = "0.1.0"
description = "Local storage building blocks: TopoLVM and raw-device resource types, owner matching, CSI pod-spec helpers, and CSI controller and identity services for raw block devices"
requires-python = ">=3.10"
dependencies = []
keywords = ["storage", "lvm", "topolvm", "csi", "kubernetes", "raw-device"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nativestor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
