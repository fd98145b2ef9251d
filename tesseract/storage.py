"""Storage of CT log entries and issuer certificates on top of an append-only log."""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import re
import threading
from collections.abc import Callable, Sequence
from typing import Protocol

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from tesseract.staticct import ENTRY_BUNDLE_WIDTH, Entry, extract_timestamp_from_bundle

logger = logging.getLogger(__name__)

# Each key is 64 bytes long, so this takes up to 64MB.  A CT log references
# roughly 15k unique issuer certificates, so this leaves plenty of room.
MAX_CACHED_ISSUER_KEYS = 1 << 20

_SIZE = re.compile(rb"[0-9]+")


class StorageError(Exception):
    """Raised when an entry or issuer cannot be stored or read back."""


class PushbackError(StorageError):
    """Raised when too many requests are in flight and the caller should back off."""


@dataclasses.dataclass(frozen=True)
class KV:
    """A key and the value stored under it."""

    key: bytes
    value: bytes


class IssuerStorage(Protocol):
    """Stores issuer certificates under the hex encoding of their SHA-256."""

    def add_issuers_if_not_exist(self, kv: Sequence[KV]) -> None:
        """Store each value under its key unless something is stored there already."""


class LogReader(Protocol):
    """Read access to a published log."""

    def read_checkpoint(self) -> bytes:
        """Return the latest published checkpoint."""

    def read_entry_bundle(self, index: int, partial_size: int) -> bytes:
        """Return the entry bundle at index; partial_size is 0 for a full bundle."""


@dataclasses.dataclass(frozen=True)
class IndexResult:
    """The index assigned to an entry, and whether it duplicates an earlier one."""

    index: int
    is_dup: bool = False


IndexFuture = Callable[[], IndexResult]
Appender = Callable[[Entry], IndexFuture]
StoreIssuers = Callable[[Sequence[KV]], None]


def cached_store_issuers(storage: IssuerStorage) -> StoreIssuers:
    """Wrap an IssuerStorage so that keys already stored are not sent again.

    Only keys are remembered, never certificates, and at most
    MAX_CACHED_ISSUER_KEYS of them.
    """
    lock = threading.Lock()
    cached: set[bytes] = set()

    def store(kvs: Sequence[KV]) -> None:
        with lock:
            request = []
            for kv in kvs:
                if kv.key in cached:
                    logger.debug("found %r in local issuer key cache", kv.key)
                    continue
                request.append(kv)
        try:
            storage.add_issuers_if_not_exist(request)
        except Exception as err:
            raise StorageError(
                f"error storing issuer data in the underlying issuer storage: {err}"
            ) from err
        with lock:
            for kv in request:
                if len(cached) >= MAX_CACHED_ISSUER_KEYS:
                    logger.debug("local issuer cache full, will stop caching issuers")
                    return
                cached.add(kv.key)

    return store


def _checkpoint_size(raw: bytes) -> int:
    """Return the log size held on the second line of a checkpoint."""
    lines = bytes(raw).split(b"\n", 2)
    if len(lines) < 2:
        raise StorageError("invalid checkpoint - no size")
    text = lines[1]
    if not _SIZE.fullmatch(text) or int(text) >= 1 << 64:
        raise StorageError(f"invalid checkpoint - can't extract size: {text!r}")
    return int(text)


def _partial_tile_size(level: int, index: int, log_size: int) -> int:
    size_at_level = log_size >> (level * 8)
    if index < size_at_level // ENTRY_BUNDLE_WIDTH:
        return 0
    return size_at_level % ENTRY_BUNDLE_WIDTH


class CTStorage:
    """Stores CT entries in a log and issuer certificates alongside it.

    A background thread clears the count of duplicate submissions in flight
    every reset_interval seconds; call close(), or use the storage as a
    context manager, to stop it.
    """

    def __init__(
        self,
        appender: Appender,
        reader: LogReader,
        issuer_storage: IssuerStorage,
        *,
        enable_awaiter: bool = False,
        max_dedupe_in_flight: int = 0,
        poll_interval: float = 0.2,
        reset_interval: float = 1.0,
    ) -> None:
        self._store_data = appender
        self._store_issuers = cached_store_issuers(issuer_storage)
        self._reader = reader
        self._enable_awaiter = enable_awaiter
        self._max_dedupe_in_flight = max_dedupe_in_flight
        self._poll_interval = poll_interval
        self._in_flight = 0
        self._in_flight_lock = threading.Lock()
        self._closed = threading.Event()
        self._reset_thread = threading.Thread(
            target=self._reset_loop, args=(reset_interval,), daemon=True
        )
        self._reset_thread.start()

    def __enter__(self) -> CTStorage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Stop the background reset job and any waits for integration."""
        self._closed.set()
        if self._reset_thread.is_alive() and threading.current_thread() is not self._reset_thread:
            self._reset_thread.join()

    def _reset_loop(self, interval: float) -> None:
        while not self._closed.wait(interval):
            self.reset_dedupe_in_flight()

    def reset_dedupe_in_flight(self) -> None:
        """Let new duplicate submissions in again."""
        with self._in_flight_lock:
            self._in_flight = 0

    def _await_integration(self, future: IndexFuture) -> tuple[IndexResult, bytes]:
        """Wait until the entry behind future is covered by a published checkpoint."""
        try:
            idx = future()
            while True:
                try:
                    raw = self._reader.read_checkpoint()
                except FileNotFoundError:
                    raw = None
                if raw is not None and _checkpoint_size(raw) > idx.index:
                    return idx, bytes(raw)
                if self._closed.wait(self._poll_interval):
                    raise StorageError("storage closed while waiting for integration")
        except Exception as err:
            raise StorageError(
                f"error waiting for index future and its integration: {err}"
            ) from err

    def _dedupe_future(self, future: IndexFuture) -> tuple[int, int]:
        """Return the index and timestamp of the entry a duplicate refers to."""
        with self._in_flight_lock:
            if self._in_flight > self._max_dedupe_in_flight:
                raise PushbackError("too many duplicate submissions")
            self._in_flight += 1

        idx, checkpoint = self._await_integration(future)
        size = _checkpoint_size(checkpoint)

        bundle_index, entry_index = divmod(idx.index, ENTRY_BUNDLE_WIDTH)
        try:
            bundle = self._reader.read_entry_bundle(
                bundle_index, _partial_tile_size(0, bundle_index, size)
            )
        except FileNotFoundError as err:
            raise StorageError(f"leaf bundle at index {bundle_index} not found: {err}") from err
        except Exception as err:
            raise StorageError(
                f"failed to fetch entry bundle at index {bundle_index}: {err}"
            ) from err

        try:
            timestamp = extract_timestamp_from_bundle(bundle, entry_index)
        except ValueError as err:
            raise StorageError(
                f"failed to extract timestamp of entry {entry_index} "
                f"in bundle index {bundle_index}: {err}"
            ) from err
        return idx.index, timestamp

    def add(self, entry: Entry) -> tuple[int, int]:
        """Store entry; return its index and timestamp.

        For a duplicate, the index and timestamp are those of the entry
        already in the log.
        """
        future = self._store_data(entry)
        try:
            idx = future()
        except Exception as err:
            raise StorageError(f"error waiting for index future: {err}") from err

        if idx.is_dup:
            return self._dedupe_future(future)

        if self._enable_awaiter:
            idx, _ = self._await_integration(future)
        return idx.index, entry.timestamp

    def add_issuer_chain(self, chain: Sequence[x509.Certificate]) -> None:
        """Store every certificate of chain under the hex encoding of its SHA-256."""
        kvs = []
        for cert in chain:
            der = cert.public_bytes(serialization.Encoding.DER)
            kvs.append(KV(key=hashlib.sha256(der).hexdigest().encode("ascii"), value=der))
        try:
            self._store_issuers(kvs)
        except StorageError as err:
            raise StorageError(f"error storing intermediates: {err}") from err