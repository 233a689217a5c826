[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "infsense"
version = "1.0.0"
description = "Multi-sensor time synchronization over serial or UDP, with trigger, IMU and GPS data published on ZeroMQ"
requires-python = ">=3.10"
keywords = [
    "time synchronization",
    "ptp",
    "sensor fusion",
    "imu",
    "gps",
    "camera trigger",
    "zeromq",
    "serial",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Time Synchronization",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "pyserial",
    "pyzmq",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
infsense = "infsense.synchronizer:main"

[tool.hatch.build.targets.wheel]
packages = ["infsense"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
