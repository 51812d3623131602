import logging
from pathlib import Path

import pytest

from routerboot.fs.guard import DIRECTORY, DIRECTORY_RECURSIVE, FILE, ProvisioningGuard


def test_rollback_removes_files_before_their_directories(tmp_path: Path):
    d = tmp_path / "run"
    d.mkdir()
    f = d / "keyring"
    f.write_text("x")

    guard = ProvisioningGuard()
    guard.track_directory(d)
    guard.track_file(f)
    guard.rollback()

    assert not f.exists()
    assert not d.exists()
    assert guard.tracked() == {}


def test_recursive_directory_is_removed_with_contents(tmp_path: Path):
    d = tmp_path / "deploy"
    (d / "log").mkdir(parents=True)
    (d / "mysqlrouter.conf").write_text("[DEFAULT]\n")

    with pytest.raises(RuntimeError):
        with ProvisioningGuard() as guard:
            guard.track_directory(d, recursive=True)
            raise RuntimeError("boom")

    assert not d.exists()


def test_commit_keeps_everything(tmp_path: Path):
    f = tmp_path / "mysqlrouter.conf"
    f.write_text("x")

    with ProvisioningGuard() as guard:
        guard.track_file(f)
        guard.commit()

    assert f.exists()


def test_untracked_and_preexisting_paths_survive(tmp_path: Path):
    existing = tmp_path / "existing.conf"
    existing.write_text("keep me")
    created = tmp_path / "created.tmp"
    created.write_text("")
    moved = tmp_path / "moved.tmp"
    moved.write_text("")

    with ProvisioningGuard() as guard:
        guard.track_file(created)
        guard.track_file(moved)
        guard.untrack(moved)

    assert existing.read_text() == "keep me"
    assert moved.exists()
    assert not created.exists()


def test_rollback_is_best_effort(tmp_path: Path, caplog):
    busy = tmp_path / "busy"
    busy.mkdir()
    (busy / "someone-elses-file").write_text("")
    created = tmp_path / "created.tmp"
    created.write_text("")

    guard = ProvisioningGuard()
    guard.track_file(created)
    guard.track_directory(busy)  # not empty: rmdir fails
    guard.track_file(tmp_path / "never-created")

    with caplog.at_level(logging.WARNING, logger="routerboot"):
        guard.rollback()

    assert busy.exists()
    assert not created.exists()
    assert "Could not remove" in caplog.text


def test_ledger_kinds(tmp_path: Path):
    guard = ProvisioningGuard()
    guard.track_file(tmp_path / "a")
    guard.track_directory(tmp_path / "b")
    guard.track_directory(tmp_path / "c", recursive=True)
    assert list(guard.tracked().values()) == [FILE, DIRECTORY, DIRECTORY_RECURSIVE]
    guard.commit()
