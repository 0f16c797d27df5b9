[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "fislurm"
version = "0.2.1"
description = "Slurm cluster helpers: hostlist and TRES parsing, job and node models, QoS limits and usage leaderboards"
requires-python = ">=3.10"
dependencies = []
keywords = ["slurm", "hpc", "cluster", "hostlist", "tres", "qos", "gres"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.setuptools.packages.find]
include = ["fislurm*"]

[tool.pytest.ini_options]
addopts = "-ra"
