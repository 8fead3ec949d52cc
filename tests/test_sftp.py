import os
import stat

import pytest

from inventory_push.errors import TransferError
from inventory_push.remote.sftp import iter_tree, makedirs, put_tree

from fakes import FakeSFTP


def test_put_tree_mirrors_local_layout(tmp_path, content_dir):
    sftp = FakeSFTP(tmp_path / "remote")
    sftp.root.mkdir()

    n = put_tree(sftp, content_dir, "/var/www/site")

    assert n == 2
    dest = sftp.root / "var" / "www" / "site"
    assert (dest / "a.txt").read_text() == "alpha\n"
    assert (dest / "sub" / "b.txt").read_text() == "bravo\n"


def test_put_tree_twice_is_idempotent(tmp_path, content_dir, tree_snapshot):
    sftp = FakeSFTP(tmp_path / "remote")
    sftp.root.mkdir()

    put_tree(sftp, content_dir, "www/site")
    first = tree_snapshot(sftp.root)
    put_tree(sftp, content_dir, "www/site")
    assert tree_snapshot(sftp.root) == first


def test_put_tree_overwrites_changed_files(tmp_path, content_dir):
    sftp = FakeSFTP(tmp_path / "remote")
    sftp.root.mkdir()
    put_tree(sftp, content_dir, "site")
    (content_dir / "a.txt").write_text("changed\n")
    put_tree(sftp, content_dir, "site")
    assert (sftp.root / "site" / "a.txt").read_text() == "changed\n"


def test_put_tree_single_file(tmp_path):
    src = tmp_path / "notes.txt"
    src.write_text("hello")
    sftp = FakeSFTP(tmp_path / "remote")
    sftp.root.mkdir()

    assert put_tree(sftp, src, "drop/notes.txt") == 1
    assert (sftp.root / "drop" / "notes.txt").read_text() == "hello"


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_put_tree_keeps_mode(tmp_path, content_dir):
    script = content_dir / "run.sh"
    script.write_text("#!/bin/sh\n")
    script.chmod(0o750)
    sftp = FakeSFTP(tmp_path / "remote")
    sftp.root.mkdir()

    put_tree(sftp, content_dir, "site")
    assert stat.S_IMODE((sftp.root / "site" / "run.sh").stat().st_mode) == 0o750


def test_iter_tree_creates_parents_first(content_dir):
    entries = list(iter_tree(content_dir, "dst"))
    assert entries[0] == ("dir", None, "dst")
    seen_dirs = set()
    for kind, _src, dst in entries:
        if kind == "dir":
            seen_dirs.add(dst)
        else:
            assert dst.rsplit("/", 1)[0] in seen_dirs
    assert [e[2] for e in entries if e[0] == "file"] == ["dst/a.txt", "dst/sub/b.txt"]


def test_makedirs_is_mkdir_p(tmp_path):
    sftp = FakeSFTP(tmp_path)
    makedirs(sftp, "a/b/c")
    makedirs(sftp, "a/b/c")
    makedirs(sftp, ".")
    assert (tmp_path / "a" / "b" / "c").is_dir()


def test_makedirs_refuses_file_in_the_way(tmp_path):
    (tmp_path / "a").write_text("x")
    with pytest.raises(TransferError, match="not a directory"):
        makedirs(FakeSFTP(tmp_path), "a/b")


def test_put_failure_is_transfer_error(tmp_path, content_dir):
    class Broken(FakeSFTP):
        def put(self, localpath, remotepath, callback=None, confirm=True):
            raise OSError(28, "No space left on device")

    sftp = Broken(tmp_path / "remote")
    sftp.root.mkdir()
    with pytest.raises(TransferError, match="No space left"):
        put_tree(sftp, content_dir, "site")


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_put_tree_twice_with_read_only_file(tmp_path, content_dir, tree_snapshot):
    ro = content_dir / "ro.txt"
    ro.write_text("frozen\n")
    ro.chmod(0o444)
    sftp = FakeSFTP(tmp_path / "remote")
    sftp.root.mkdir()

    assert put_tree(sftp, content_dir, "p/site") == 3
    first = tree_snapshot(sftp.root)
    assert put_tree(sftp, content_dir, "p/site") == 3
    assert tree_snapshot(sftp.root) == first
    assert stat.S_IMODE((sftp.root / "p" / "site" / "ro.txt").stat().st_mode) == 0o444


def test_put_tree_replaces_read_only_remote_file(tmp_path):
    src = tmp_path / "x.txt"
    src.write_text("x")
    sftp = FakeSFTP(tmp_path / "remote")
    sftp.root.mkdir()
    (sftp.root / "x.txt").write_text("old")
    (sftp.root / "x.txt").chmod(0o444)

    put_tree(sftp, src, "x.txt")
    assert (sftp.root / "x.txt").read_text() == "x"
