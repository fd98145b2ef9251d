"""File operations that sync the directories they change."""

from __future__ import annotations

import errno
import logging
import os
import random

logger = logging.getLogger(__name__)

DIR_PERM = 0o755
FILE_PERM = 0o644

_MAX_TEMP_TRIES = 10000


def sync_dir(path: str | os.PathLike[str]) -> None:
    """Call fsync on the directory at path."""
    fd = os.open(os.fspath(path) or ".", os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def mkdir_all(name: str | os.PathLike[str], perm: int = DIR_PERM) -> None:
    """Create the directory name and any missing parents, syncing each parent changed."""
    name = os.fspath(name).rstrip(os.sep)
    if not name:
        return
    parent = os.path.dirname(name)
    try:
        is_dir = os.path.isdir(name) if os.path.lexists(name) else None
    except OSError as err:
        raise OSError(err.errno, f"lstat {name!r}: {err.strerror}", name) from err

    if is_dir is None:
        if parent and parent != name:
            try:
                mkdir_all(parent, perm)
            except FileExistsError:
                pass
        try:
            os.mkdir(name, perm)
        except FileExistsError:
            if not os.path.isdir(name):
                raise
            return
        sync_dir(parent or ".")
    elif not is_dir:
        raise NotADirectoryError(errno.ENOTDIR, f"{name} is not a directory", name)


def create_temp(prefix: str | os.PathLike[str], data: bytes) -> str:
    """Write data to a new file named prefix plus a random suffix; return its name.

    The data is written synchronously but the directory is not synced; the
    caller removes the file when it is no longer needed.
    """
    prefix = os.fspath(prefix)
    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_SYNC", 0)
    for _ in range(_MAX_TEMP_TRIES):
        name = prefix + str(random.randrange(1 << 31))
        try:
            fd = os.open(name, flags, FILE_PERM)
        except FileExistsError:
            continue
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        return name
    raise FileExistsError(errno.EEXIST, "createtemp: no free temporary name", prefix + "*")


def create_exclusive(name: str | os.PathLike[str], data: bytes) -> None:
    """Atomically create the file name holding data and sync its directory.

    Raises FileExistsError if something already exists at name.
    """
    name = os.fspath(name)
    directory = os.path.dirname(name)
    mkdir_all(directory, DIR_PERM)

    tmp_name = create_temp(name, data)
    try:
        os.link(tmp_name, name)
    finally:
        try:
            os.remove(tmp_name)
        except OSError as err:
            logger.warning("failed to remove temporary file %r: %s", tmp_name, err)

    sync_dir(directory or ".")