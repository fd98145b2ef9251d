"""Certificate Transparency building blocks: TLS field descriptions and signature types, Static CT API parsing, PEM root pools, and log and issuer storage."""

__version__ = "0.1.0"