"""Signature-related TLS types from RFC 5246."""

from __future__ import annotations

import dataclasses

from cryptography.hazmat.primitives.asymmetric import ec

from tesseract.tls_fields import Enum, tls_field

_HASH_NAMES = {4: "SHA256", 5: "SHA384", 6: "SHA512"}
_SIGNATURE_NAMES = {0: "Anonymous", 3: "ECDSA"}


class HashAlgorithm(Enum):
    """HashAlgorithm enumeration from RFC 5246 s7.4.1.4.1."""

    def __str__(self) -> str:
        return _HASH_NAMES.get(int(self), f"UNKNOWN({int(self)})")


class SignatureAlgorithm(Enum):
    """SignatureAlgorithm enumeration from RFC 5246 s7.4.1.4.1."""

    def __str__(self) -> str:
        return _SIGNATURE_NAMES.get(int(self), f"UNKNOWN({int(self)})")


SHA256 = HashAlgorithm(4)
SHA384 = HashAlgorithm(5)
SHA512 = HashAlgorithm(6)

ANONYMOUS = SignatureAlgorithm(0)
ECDSA = SignatureAlgorithm(3)


@dataclasses.dataclass
class SignatureAndHashAlgorithm:
    """The algorithms used for a signature (RFC 5246 s7.4.1.4.1)."""

    hash: HashAlgorithm = tls_field("maxval:255", default=HashAlgorithm(0))
    signature: SignatureAlgorithm = tls_field("maxval:255", default=ANONYMOUS)


@dataclasses.dataclass
class DigitallySigned:
    """A signature together with the algorithms that made it (RFC 5246 s4.7)."""

    algorithm: SignatureAndHashAlgorithm = dataclasses.field(
        default_factory=SignatureAndHashAlgorithm
    )
    signature: bytes = tls_field("minlen:0,maxlen:65535", default=b"")

    def __str__(self) -> str:
        return (
            f"Signature: HashAlgo={str(self.algorithm.hash)} "
            f"SignAlgo={str(self.algorithm.signature)} "
            f"Value={bytes(self.signature).hex()}"
        )


def signature_algorithm_from_pub_key(key: object) -> SignatureAlgorithm:
    """Return ECDSA for elliptic-curve public keys and Anonymous for anything else."""
    if isinstance(key, ec.EllipticCurvePublicKey):
        return ECDSA
    return ANONYMOUS