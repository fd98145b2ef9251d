"""Issuer certificate storage in files under a directory."""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

from tesseract.file_ops import create_exclusive
from tesseract.staticct import ISSUERS_PREFIX
from tesseract.storage import KV, StorageError


class PosixIssuersStorage:
    """Stores issuer certificates as files in an "issuer" directory under root."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.dir = Path(root) / ISSUERS_PREFIX.strip("/")

    def add_issuers_if_not_exist(self, kv: Sequence[KV]) -> None:
        """Store each value in a file named by its key unless the file exists.

        An existing file with the same content counts as success.  Every pair
        is attempted; all failures are reported together in one StorageError.
        """
        errors: list[str] = []
        causes: list[BaseException] = []
        for item in kv:
            key = os.fsdecode(bytes(item.key))
            separators = {os.sep, "/"} | ({os.altsep} if os.altsep else set())
            if not key or key in (".", "..") or any(s in key for s in separators):
                errors.append(f"{key!r} is an invalid key")
                continue
            path = self.dir / key
            try:
                create_exclusive(path, bytes(item.value))
            except FileExistsError:
                try:
                    existing = path.read_bytes()
                except OSError as err:
                    errors.append(f"failed to read existing file {str(path)!r}: {err}")
                    causes.append(err)
                    continue
                if existing != bytes(item.value):
                    errors.append(f"non-idempotent write for preexisting file {str(path)!r}")
            except OSError as err:
                errors.append(f"failed to store {str(path)!r}: {err}")
                causes.append(err)
        if errors:
            raise StorageError("\n".join(errors)) from (causes[0] if causes else None)