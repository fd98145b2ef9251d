"""A pool of certificates loaded from PEM data."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from tesseract.pemutil import decode_pem

logger = logging.getLogger(__name__)

PEM_CERTIFICATE_BLOCK_TYPE = "CERTIFICATE"


def _fingerprint(cert: x509.Certificate) -> bytes:
    return hashlib.sha256(cert.public_bytes(serialization.Encoding.DER)).digest()


class PEMCertPool:
    """A duplicate-free set of certificates that keeps the order they were added in.

    Loading PEM data is strict: every certificate block must parse.
    """

    def __init__(self) -> None:
        self._by_fingerprint: dict[bytes, x509.Certificate] = {}
        self._certs: list[x509.Certificate] = []

    def add_cert(self, cert: x509.Certificate) -> None:
        """Add cert unless a certificate with the same SHA-256 fingerprint is present."""
        fingerprint = _fingerprint(cert)
        if fingerprint not in self._by_fingerprint:
            self._by_fingerprint[fingerprint] = cert
            self._certs.append(cert)

    def included(self, cert: x509.Certificate) -> bool:
        """Report whether cert is in the pool."""
        return _fingerprint(cert) in self._by_fingerprint

    def append_certs_from_pem(self, pem_certs: bytes) -> bool:
        """Add the certificates in PEM data, skipping other blocks.

        Returns True if at least one certificate was found and every
        certificate block parsed.
        """
        ok = False
        rest = bytes(pem_certs)
        while rest:
            block, rest = decode_pem(rest)
            if block is None:
                break
            if block.type != PEM_CERTIFICATE_BLOCK_TYPE or block.headers:
                continue
            try:
                cert = x509.load_der_x509_certificate(block.data)
            except ValueError as err:
                logger.warning("error parsing PEM certificate: %s", err)
                return False
            self.add_cert(cert)
            ok = True
        return ok

    def append_certs_from_pem_file(self, pem_file: str | Path) -> None:
        """Add the certificates from a file of concatenated PEM data."""
        try:
            data = Path(pem_file).read_bytes()
        except OSError as err:
            raise OSError(f"failed to load PEM certs file: {err}") from err
        if not self.append_certs_from_pem(data):
            raise ValueError("failed to parse PEM certs file")

    def subjects(self) -> list[bytes]:
        """Return the DER-encoded subjects of the certificates in the pool."""
        return [cert.subject.public_bytes() for cert in self._certs]

    def raw_certificates(self) -> list[x509.Certificate]:
        """Return the certificates in the pool, in the order they were added."""
        return list(self._certs)