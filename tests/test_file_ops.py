import os

import pytest

from tesseract.file_ops import create_exclusive, create_temp, mkdir_all, sync_dir


def test_create_temp_writes_data(tmp_path):
    prefix = str(tmp_path / "entry")
    name = create_temp(prefix, b"payload")
    assert name.startswith(prefix)
    assert name != prefix
    with open(name, "rb") as f:
        assert f.read() == b"payload"


def test_create_temp_names_are_distinct(tmp_path):
    prefix = str(tmp_path / "entry")
    first = create_temp(prefix, b"one")
    second = create_temp(prefix, b"two")
    assert first != second


def test_create_exclusive_makes_parents(tmp_path):
    target = tmp_path / "a" / "b" / "file"
    create_exclusive(target, b"data")
    assert target.read_bytes() == b"data"
    assert sorted(os.listdir(target.parent)) == ["file"]


def test_create_exclusive_refuses_existing(tmp_path):
    target = tmp_path / "file"
    create_exclusive(target, b"first")
    with pytest.raises(FileExistsError):
        create_exclusive(target, b"second")
    assert target.read_bytes() == b"first"
    assert os.listdir(tmp_path) == ["file"]


def test_mkdir_all_nested_and_idempotent(tmp_path):
    target = tmp_path / "x" / "y" / "z"
    mkdir_all(target)
    assert target.is_dir()
    mkdir_all(str(target) + os.sep)
    assert target.is_dir()


def test_mkdir_all_existing_directory_is_left_alone(tmp_path):
    (tmp_path / "keep").write_bytes(b"kept")
    mkdir_all(tmp_path)
    assert sorted(os.listdir(tmp_path)) == ["keep"]
    assert (tmp_path / "keep").read_bytes() == b"kept"


def test_mkdir_all_rejects_file(tmp_path):
    path = tmp_path / "plain"
    path.write_bytes(b"")
    with pytest.raises(NotADirectoryError):
        mkdir_all(path)


def test_mkdir_all_applies_permissions(tmp_path):
    target = tmp_path / "perm"
    old = os.umask(0)
    try:
        mkdir_all(target, 0o700)
    finally:
        os.umask(old)
    assert target.stat().st_mode & 0o777 == 0o700


def test_sync_dir_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        sync_dir(tmp_path / "missing")