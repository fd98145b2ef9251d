import base64

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID

from tesseract.pemutil import (
    PEMBlock,
    certificate_from_pem,
    de_pem,
    decode_pem,
    read_possible_pem_file,
)

PEM_FAKE_CA_CERT = b"""
-----BEGIN CERTIFICATE-----
MIIDrDCCApSgAwIBAgIJALYx0qwhq2UgMA0GCSqGSIb3DQEBCwUAMHExCzAJBgNV
BAYTAkdCMQ8wDQYDVQQIDAZMb25kb24xDzANBgNVBAcMBkxvbmRvbjEPMA0GA1UE
CgwGR29vZ2xlMQwwCgYDVQQLDANFbmcxITAfBgNVBAMMGEZha2VDZXJ0aWZpY2F0
ZUF1dGhvcml0eTAeFw0xNjA3MTExMjIzMjZaFw0xNzA3MTExMjIzMjZaMHExCzAJ
BgNVBAYTAkdCMQ8wDQYDVQQIDAZMb25kb24xDzANBgNVBAcMBkxvbmRvbjEPMA0G
A1UECgwGR29vZ2xlMQwwCgYDVQQLDANFbmcxITAfBgNVBAMMGEZha2VDZXJ0aWZp
Y2F0ZUF1dGhvcml0eTCCASIwDQYJKoZIhvcNAQEBBQADggEPADCCAQoCggEBAKVB
mnotmKO1eG8VIdsMwQ6h+Cb1s7Jnhdyh5reDbdpj2tD2o/+8Q/UrnwAZbmtgS0Mg
buLLLrZl7ZvcgMPhWpavYHgODvuP6j49yWePpFccuuTzN6kv3RGdEF3l1u/UOwbZ
NENCu7u+Q0Ar47bRtWxYEjSWFNT8SXnFJowkfbMS9fY+t0FGa206Qf1847X8lmzG
zK2NSAlzRGTqTxcdCksUWhkHSjIPQS7khb2h4ZveY3w7vOyqkyoLqMckNFRCOKXR
DMT5nnxpQnF315WquxM988zHXbP9diUl49oUDlmB6CxY6AkpfSICkZWB61VvLxe5
r0rzhIskbuoUa7uQhDUCAwEAAaNHMEUwDQYDVR0OBAYEBAECAwQwDwYDVR0jBAgw
BoAEAQIDBDASBgNVHRMBAf8ECDAGAQH/AgEKMA8GA1UdDwEB/wQFAwMH/4AwDQYJ
KoZIhvcNAQELBQADggEBAJK+M+vV1DLnnk5lKug/Z7j01zSrlRFqXbr9V5uUbo0g
vvt64UnKOeqS04FasYejn1Ck4B4R3sTRB6HK0Zcakr1zmhHsappSES1A4TtPPB+B
P0yragKET4sYNnrMXKkOJSvNV1OI2euCsc5idlbUI54Bs20rSerUOsL1dqezLSSX
b7QcdGuVhfa1QVaCPO2+lh5eai179/19bj/7wuxhs3x/O/WcZGFfApOHzYH5flM+
wfV5hfRBh8fKva+rK6SqqB0sUK0jj9sTHXGKhb2sWWzEU8VxDJCR8wtB79puJ7sJ
V5yXudf8IJbFdZbOLmyotm6wTQ8+AZXqi82uR9DZAbc=
-----END CERTIFICATE-----"""


def _pem(block_type, payload, headers=None):
    encoded = base64.b64encode(payload)
    lines = [encoded[i : i + 64] for i in range(0, len(encoded), 64)]
    head = b"".join(
        f"{k}: {v}\n".encode() for k, v in (headers or {}).items()
    )
    if headers:
        head += b"\n"
    body = b"".join(line + b"\n" for line in lines)
    return (
        f"-----BEGIN {block_type}-----\n".encode() + head + body
        + f"-----END {block_type}-----\n".encode()
    )


def test_decode_pem_roundtrip():
    payload = bytes(range(200))
    block, rest = decode_pem(_pem("THING", payload) + b"tail")
    assert block == PEMBlock(type="THING", headers={}, data=payload)
    assert rest == b"tail"


def test_decode_pem_no_block():
    data = b"just some text\nwith lines\n"
    assert decode_pem(data) == (None, data)


def test_decode_pem_sequence():
    data = _pem("A", b"first") + _pem("B", b"second")
    first, rest = decode_pem(data)
    second, rest = decode_pem(rest)
    assert (first.type, first.data) == ("A", b"first")
    assert (second.type, second.data) == ("B", b"second")
    assert decode_pem(rest) == (None, rest)


def test_decode_pem_headers():
    data = _pem("X", b"payload", {"Proc-Type": "4,ENCRYPTED"})
    block, _ = decode_pem(data)
    assert block.headers == {"Proc-Type": "4,ENCRYPTED"}
    assert block.data == b"payload"


def test_decode_pem_skips_malformed_block():
    data = b"-----BEGIN BROKEN\nAAAA\n" + _pem("GOOD", b"ok")
    block, rest = decode_pem(data)
    assert (block.type, block.data) == ("GOOD", b"ok")
    assert rest == b""


def test_decode_pem_bad_base64():
    data = b"-----BEGIN X-----\n!!!!\n-----END X-----\n"
    assert decode_pem(data) == (None, data)


def test_decode_pem_mismatched_end():
    data = b"-----BEGIN X-----\nAAAA\n-----END Y-----\n"
    assert decode_pem(data) == (None, data)


def test_decode_pem_unterminated():
    data = b"-----BEGIN X-----"
    assert decode_pem(data) == (None, data)


def test_de_pem_der_passthrough():
    der = b"\x30\x03\x02\x01\x00"
    assert de_pem(der, "CERTIFICATE") == [der]


def test_de_pem_selects_block_type():
    data = _pem("CERTIFICATE", b"one") + _pem("OTHER", b"x") + _pem("CERTIFICATE", b"two")
    assert de_pem(data, "CERTIFICATE") == [b"one", b"two"]
    assert de_pem(data, "OTHER") == [b"x"]


def test_read_possible_pem_file(tmp_path):
    pem_file = tmp_path / "certs.pem"
    pem_file.write_bytes(_pem("CERTIFICATE", b"abc"))
    der_file = tmp_path / "cert.der"
    der_file.write_bytes(b"\x30\x00")
    assert read_possible_pem_file(pem_file, "CERTIFICATE") == [b"abc"]
    assert read_possible_pem_file(str(der_file), "CERTIFICATE") == [b"\x30\x00"]


def test_read_possible_pem_file_missing(tmp_path):
    with pytest.raises(OSError, match="failed to read data"):
        read_possible_pem_file(tmp_path / "absent.pem", "CERTIFICATE")


def test_certificate_from_pem():
    cert = certificate_from_pem(PEM_FAKE_CA_CERT)
    names = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    assert names[0].value == "FakeCertificateAuthority"
    assert cert.serial_number == 0xB631D2AC21AB6520
    assert cert.subject == cert.issuer


def test_certificate_from_pem_matches_der():
    block, _ = decode_pem(PEM_FAKE_CA_CERT)
    cert = certificate_from_pem(PEM_FAKE_CA_CERT + b"\n")
    assert cert == x509.load_der_x509_certificate(block.data)


def test_certificate_from_pem_trailing_data():
    with pytest.raises(ValueError, match="trailing data"):
        certificate_from_pem(PEM_FAKE_CA_CERT + b"\nextra")


def test_certificate_from_pem_no_block():
    with pytest.raises(ValueError, match="PEM block is nil"):
        certificate_from_pem(b"")


def test_certificate_from_pem_wrong_type():
    with pytest.raises(ValueError, match="not a CERTIFICATE"):
        certificate_from_pem(_pem("PRIVATE KEY", b"abc"))


def test_certificate_from_pem_bad_der():
    with pytest.raises(ValueError):
        certificate_from_pem(_pem("CERTIFICATE", b"not a certificate"))