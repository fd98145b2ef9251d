"""Reading PEM and DER encoded data."""

from __future__ import annotations

import base64
import binascii
import dataclasses
from pathlib import Path

from cryptography import x509

_BEGIN = b"-----BEGIN "
_END = b"\n-----END "
_END_OF_LINE = b"-----"


@dataclasses.dataclass
class PEMBlock:
    """One decoded PEM block."""

    type: str
    headers: dict[str, str] = dataclasses.field(default_factory=dict)
    data: bytes = b""


class _Abandon(Exception):
    """The data ended inside a block's headers."""


def _get_line(data: bytes) -> tuple[bytes, bytes]:
    """Split off the first line, without its line ending or trailing blanks."""
    i = data.find(b"\n")
    if i < 0:
        line, rest = data, b""
    else:
        line, rest = data[:i], data[i + 1 :]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line.rstrip(b" \t"), rest


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _decode_block(rest: bytes) -> tuple[PEMBlock | None, bytes]:
    """Decode a block from just after its BEGIN marker.

    Returns the block and the data after it, or None and the point from which
    to keep searching.
    """
    type_line, rest = _get_line(rest)
    if not type_line.endswith(_END_OF_LINE):
        return None, rest
    block_type = type_line[: -len(_END_OF_LINE)]

    headers: dict[str, str] = {}
    while True:
        if not rest:
            raise _Abandon
        line, following = _get_line(rest)
        key, sep, value = line.partition(b":")
        if not sep:
            break
        headers[_text(key.strip())] = _text(value.strip())
        rest = following

    if rest.startswith(_END[1:]):
        end_index, trailer_index = 0, len(_END) - 1
    else:
        end_index = rest.find(_END)
        if end_index < 0:
            return None, rest
        trailer_index = end_index + len(_END)

    trailer = rest[trailer_index:]
    trailer_len = len(block_type) + len(_END_OF_LINE)
    if len(trailer) < trailer_len:
        return None, rest
    rest_of_end_line = trailer[trailer_len:]
    trailer = trailer[:trailer_len]
    if not (trailer.startswith(block_type) and trailer.endswith(_END_OF_LINE)):
        return None, rest
    if _get_line(rest_of_end_line)[0]:
        return None, rest

    body = rest[:end_index].translate(None, b" \t\r\n")
    try:
        payload = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError):
        return None, rest

    _, after = _get_line(rest[end_index + len(_END) - 1 :])
    return PEMBlock(type=_text(block_type), headers=headers, data=payload), after


def decode_pem(data: bytes) -> tuple[PEMBlock | None, bytes]:
    """Find and decode the next PEM block in data.

    Returns the block and the data following it.  Malformed blocks are
    skipped; when no block is found, returns None and data unchanged.
    """
    data = bytes(data)
    rest = data
    while True:
        if rest.startswith(_BEGIN):
            rest = rest[len(_BEGIN) :]
        else:
            i = rest.find(b"\n" + _BEGIN)
            if i < 0:
                return None, data
            rest = rest[i + 1 + len(_BEGIN) :]
        try:
            block, rest = _decode_block(rest)
        except _Abandon:
            return None, data
        if block is not None:
            return block, rest


def de_pem(data: bytes, blockname: str) -> list[bytes]:
    """Return the contents of every block of the given type, or data itself if it holds none."""
    data = bytes(data)
    if b"BEGIN " + blockname.encode() not in data:
        return [data]
    results: list[bytes] = []
    rest = data
    while True:
        block, rest = decode_pem(rest)
        if block is None:
            return results
        if block.type == blockname:
            results.append(block.data)


def read_possible_pem_file(filename: str | Path, blockname: str) -> list[bytes]:
    """Load a file that holds either DER data or PEM blocks of the given type."""
    try:
        data = Path(filename).read_bytes()
    except OSError as err:
        raise OSError(f"{filename}: failed to read data: {err}") from err
    return de_pem(data, blockname)


def certificate_from_pem(pem_bytes: bytes) -> x509.Certificate:
    """Parse a single PEM-encoded certificate; nothing may follow it."""
    block, rest = decode_pem(pem_bytes)
    if rest:
        raise ValueError("trailing data found after PEM block")
    if block is None:
        raise ValueError("PEM block is nil")
    if block.type != "CERTIFICATE":
        raise ValueError("PEM block is not a CERTIFICATE")
    return x509.load_der_x509_certificate(block.data)