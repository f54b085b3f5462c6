[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gcpprovider"
version = "0.1.0"
description = "Reconciliation logic for GCP bastions, DNS records, infrastructure validation and control plane chart values"
requires-python = ">=3.10"
dependencies = [
    "packaging",
]
keywords = ["gcp", "bastion", "dns", "firewall", "controlplane", "infrastructure"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gcpprovider"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
