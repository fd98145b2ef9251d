"""Entry bundles and log entries in the static CT API format."""

from __future__ import annotations

import base64
import binascii
import dataclasses

ISSUERS_PREFIX = "issuer/"
ISSUERS_CONTENT_TYPE = "application/pkix-cert"

# Number of entries in a full entry bundle (a leaf tile of the hash tree).
ENTRY_BUNDLE_WIDTH = 256

MAX_INT64 = (1 << 63) - 1

X509_ENTRY = 0
PRECERT_ENTRY = 1
_ENTRY_NAMES = {X509_ENTRY: "x509_entry", PRECERT_ENTRY: "precert_entry"}

_ISSUER_KEY_HASH_SIZE = 32
_FINGERPRINT_SIZE = 32


class StaticCTError(ValueError):
    """Raised when static CT API data cannot be parsed."""


class _Truncated(Exception):
    """The data ran out before a read could complete."""


class _Cursor:
    """Reads big-endian integers and length-prefixed byte strings from a buffer."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def __len__(self) -> int:
        return len(self._data) - self._pos

    @property
    def position(self) -> int:
        return self._pos

    def skip(self, n: int) -> None:
        if n > len(self):
            raise _Truncated
        self._pos += n

    def take(self, n: int) -> bytes:
        start = self._pos
        self.skip(n)
        return self._data[start : self._pos]

    def uint(self, width: int) -> int:
        return int.from_bytes(self.take(width), "big")

    def prefixed(self, width: int) -> bytes:
        return self.take(self.uint(width))

    def skip_prefixed(self, width: int) -> None:
        self.skip(self.uint(width))


def _skip_entry_body(cursor: _Cursor, entry_type: int) -> None:
    """Skip the fields of an entry that follow its timestamp and type."""
    if entry_type == X509_ENTRY:
        cursor.skip_prefixed(3)  # certificate
        cursor.skip_prefixed(2)  # extensions
        cursor.skip_prefixed(2)  # fingerprints
    elif entry_type == PRECERT_ENTRY:
        cursor.skip(_ISSUER_KEY_HASH_SIZE)
        cursor.skip_prefixed(3)  # defanged TBS certificate
        cursor.skip_prefixed(2)  # extensions
        cursor.skip_prefixed(3)  # precertificate
        cursor.skip_prefixed(2)  # fingerprints
    else:
        raise StaticCTError(f"invalid data tile: unknown type {entry_type}")


@dataclasses.dataclass
class EntryBundle:
    """A sequence of serialised log entries, matching a leaf tile of the hash tree."""

    entries: list[bytes] = dataclasses.field(default_factory=list)


def parse_entry_bundle(raw: bytes) -> EntryBundle:
    """Split a serialised entry bundle into its entries."""
    raw = bytes(raw)
    cursor = _Cursor(raw)
    entries: list[bytes] = []
    while cursor:
        start = cursor.position
        try:
            timestamp = cursor.uint(8)
            entry_type = cursor.uint(2)
        except _Truncated:
            raise StaticCTError("invalid data tile") from None
        if timestamp > MAX_INT64:
            raise StaticCTError("invalid data tile")
        try:
            _skip_entry_body(cursor, entry_type)
        except _Truncated:
            name = _ENTRY_NAMES[entry_type]
            raise StaticCTError(f"invalid data tile {name}") from None
        entries.append(raw[start : cursor.position])
    return EntryBundle(entries=entries)


def extract_timestamp_from_bundle(eb_raw: bytes, n: int) -> int:
    """Return the timestamp of the nth entry of a serialised entry bundle.

    Only the bytes needed to reach that entry are examined.
    """
    cursor = _Cursor(bytes(eb_raw))
    index = 0
    while cursor:
        try:
            timestamp = cursor.uint(8)
            entry_type = cursor.uint(2)
        except _Truncated:
            raise StaticCTError(f"invalid data tile when reading entry {index}") from None
        if timestamp > MAX_INT64:
            raise StaticCTError(f"invalid data tile when reading entry {index}")
        if index == n:
            return timestamp
        try:
            _skip_entry_body(cursor, entry_type)
        except _Truncated:
            name = _ENTRY_NAMES[entry_type]
            raise StaticCTError(
                f"invalid data tile {name} when reading index {index}"
            ) from None
        index += 1
    raise StaticCTError(f"requested entry index {n}, but found only {index} entries")


def parse_ct_extensions(ext: str) -> int:
    """Return the leaf index held in base64-encoded CT extensions."""
    try:
        data = base64.b64decode(ext, validate=True)
    except (binascii.Error, ValueError) as err:
        raise StaticCTError(f"can't decode extensions: {err}") from err

    cursor = _Cursor(data)
    try:
        extension_type = cursor.uint(1)
    except _Truncated:
        raise StaticCTError("can't read extension type") from None
    if extension_type != 0:
        raise StaticCTError(f"wrong extension type {extension_type}, want 0")
    try:
        extension_data = _Cursor(cursor.prefixed(2))
    except _Truncated:
        raise StaticCTError("can't read extension data") from None
    try:
        leaf_index = extension_data.uint(5)
    except _Truncated:
        raise StaticCTError("can't read leaf index from extension") from None
    if extension_data or cursor:
        raise StaticCTError(f"invalid SCT extension data: {ext}")
    return leaf_index


def unmarshal_timestamp(raw: bytes) -> int:
    """Return the timestamp at the start of a serialised entry."""
    cursor = _Cursor(bytes(raw))
    try:
        timestamp = cursor.uint(8)
    except _Truncated:
        raise StaticCTError("invalid data tile: timestamp can't be extracted") from None
    if timestamp > MAX_INT64:
        raise StaticCTError(
            f"invalid data tile: timestamp {timestamp} exceeds the maximum int64"
        )
    return timestamp


@dataclasses.dataclass
class Entry:
    """A CT log entry.

    ``certificate`` holds the submitted certificate for plain entries, and the
    TBS certificate extracted from the precertificate for precert entries.
    """

    timestamp: int = 0
    is_precert: bool = False
    certificate: bytes = b""
    precertificate: bytes = b""
    issuer_key_hash: bytes = b""
    raw_fingerprints: bytes = b""
    fingerprints_chain: list[bytes] = dataclasses.field(default_factory=list)
    raw_extensions: bytes = b""
    leaf_index: int = 0


def parse_entry(raw: bytes) -> Entry:
    """Parse one serialised log entry; the data must hold nothing else."""
    cursor = _Cursor(bytes(raw))
    entry = Entry()
    try:
        entry.timestamp = cursor.uint(8)
        entry_type = cursor.uint(2)
    except _Truncated:
        raise StaticCTError("invalid data tile") from None
    if entry.timestamp > MAX_INT64:
        raise StaticCTError("invalid data tile")

    if entry_type == X509_ENTRY:
        entry.is_precert = False
        try:
            entry.certificate = cursor.prefixed(3)
            entry.raw_extensions = cursor.prefixed(2)
            entry.raw_fingerprints = cursor.prefixed(2)
        except _Truncated:
            raise StaticCTError("invalid data tile x509_entry") from None
    elif entry_type == PRECERT_ENTRY:
        entry.is_precert = True
        try:
            entry.issuer_key_hash = cursor.take(_ISSUER_KEY_HASH_SIZE)
            entry.certificate = cursor.prefixed(3)
            entry.raw_extensions = cursor.prefixed(2)
            entry.precertificate = cursor.prefixed(3)
            entry.raw_fingerprints = cursor.prefixed(2)
        except _Truncated:
            raise StaticCTError("invalid data tile precert_entry") from None
    else:
        raise StaticCTError(f"invalid data tile: unknown type {entry_type}")

    try:
        entry.leaf_index = parse_ct_extensions(
            base64.b64encode(entry.raw_extensions).decode("ascii")
        )
    except StaticCTError as err:
        raise StaticCTError(f"can't parse extensions: {err}") from err

    fingerprints = entry.raw_fingerprints
    for number, start in enumerate(range(0, len(fingerprints), _FINGERPRINT_SIZE)):
        fingerprint = fingerprints[start : start + _FINGERPRINT_SIZE]
        if len(fingerprint) < _FINGERPRINT_SIZE:
            raise StaticCTError(f"can't extract fingerprint number {number}")
        entry.fingerprints_chain.append(fingerprint)

    if cursor:
        raise StaticCTError(f"trailing {len(cursor)} bytes after entry")
    return entry