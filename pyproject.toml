[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tesseract"
version = "0.1.0"
description = "Certificate Transparency building blocks: TLS field descriptions and signature types, Static CT API entry parsing, PEM root pools and issuer storage"
requires-python = ">=3.11"
keywords = [
    "certificate-transparency",
    "ct",
    "static-ct-api",
    "x509",
    "pem",
    "tls",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tesseract"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
