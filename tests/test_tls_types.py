import dataclasses

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from tesseract.tls_types import (
    ANONYMOUS,
    ECDSA,
    SHA256,
    SHA384,
    SHA512,
    DigitallySigned,
    HashAlgorithm,
    SignatureAlgorithm,
    SignatureAndHashAlgorithm,
    signature_algorithm_from_pub_key,
)


@pytest.mark.parametrize(
    "algo, want",
    [(SHA256, "SHA256"), (SHA384, "SHA384"), (SHA512, "SHA512"), (HashAlgorithm(99), "UNKNOWN(99)")],
)
def test_hash_algorithm_string(algo, want):
    assert str(algo) == want


@pytest.mark.parametrize(
    "algo, want",
    [(ANONYMOUS, "Anonymous"), (ECDSA, "ECDSA"), (SignatureAlgorithm(99), "UNKNOWN(99)")],
)
def test_signature_algorithm_string(algo, want):
    assert str(algo) == want


@pytest.mark.parametrize(
    "ds, want",
    [
        (
            DigitallySigned(
                algorithm=SignatureAndHashAlgorithm(hash=SHA256, signature=ECDSA),
                signature=b"\x01\x02",
            ),
            "Signature: HashAlgo=SHA256 SignAlgo=ECDSA Value=0102",
        ),
        (
            DigitallySigned(
                algorithm=SignatureAndHashAlgorithm(
                    hash=HashAlgorithm(99), signature=SignatureAlgorithm(99)
                ),
                signature=b"\x03\x04",
            ),
            "Signature: HashAlgo=UNKNOWN(99) SignAlgo=UNKNOWN(99) Value=0304",
        ),
    ],
)
def test_digitally_signed_string(ds, want):
    assert str(ds) == want


def test_signature_algorithm_from_ecdsa_key():
    public_key = ec.generate_private_key(ec.SECP256R1()).public_key()
    assert signature_algorithm_from_pub_key(public_key) == ECDSA


def test_signature_algorithm_from_other_values():
    assert signature_algorithm_from_pub_key("foo") == ANONYMOUS
    rsa_public_key = rsa.generate_private_key(public_exponent=65537, key_size=1024).public_key()
    assert signature_algorithm_from_pub_key(rsa_public_key) == ANONYMOUS


@pytest.mark.parametrize("number, want", [(4, "SHA256"), (5, "SHA384"), (6, "SHA512")])
def test_hash_algorithm_from_number(number, want):
    assert str(HashAlgorithm(number)) == want


@pytest.mark.parametrize("number, want", [(0, "Anonymous"), (3, "ECDSA")])
def test_signature_algorithm_from_number(number, want):
    assert str(SignatureAlgorithm(number)) == want


def test_field_tags():
    algorithm = SignatureAndHashAlgorithm(hash=SHA256, signature=ECDSA)
    tags = {f.name: f.metadata.get("tls") for f in dataclasses.fields(algorithm)}
    assert tags == {"hash": "maxval:255", "signature": "maxval:255"}
    ds = DigitallySigned(algorithm=algorithm, signature=b"\x01")
    ds_tags = {f.name: f.metadata.get("tls") for f in dataclasses.fields(ds)}
    assert ds_tags == {"algorithm": None, "signature": "minlen:0,maxlen:65535"}


def test_defaults():
    ds = DigitallySigned()
    assert ds.signature == b""
    assert ds.algorithm == SignatureAndHashAlgorithm(hash=HashAlgorithm(0), signature=ANONYMOUS)
    assert str(ds) == "Signature: HashAlgo=UNKNOWN(0) SignAlgo=Anonymous Value="