# inventory_push/remote/sftp.py
"""
SFTP tree helpers. Remote paths are POSIX strings; relative ones resolve
against the SFTP login directory.
"""
from __future__ import annotations

import logging
import os
import posixpath
import stat
from pathlib import Path
from typing import Iterator, Tuple, Union

import paramiko

from ..errors import TransferError

log = logging.getLogger(__name__)

# ("dir", None, remote) or ("file", local, remote)
TreeEntry = Tuple[str, Union[Path, None], str]


def makedirs(sftp: paramiko.SFTPClient, remote_dir: str) -> None:
    """mkdir -p over SFTP. Existing directories are left alone."""
    norm = posixpath.normpath(remote_dir)
    if norm in (".", "/"):
        return
    cur = "/" if norm.startswith("/") else ""
    for part in norm.strip("/").split("/"):
        cur = posixpath.join(cur, part) if cur else part
        try:
            st = sftp.stat(cur)
        except FileNotFoundError:
            log.debug("mkdir %s", cur)
            sftp.mkdir(cur)
            continue
        if st.st_mode is not None and not stat.S_ISDIR(st.st_mode):
            raise TransferError(f"remote path exists and is not a directory: {cur}")


def iter_tree(local: Path, remote_path: str) -> Iterator[TreeEntry]:
    """
    Yield the directories to create and files to upload so that ``local``
    is mirrored at ``remote_path``. Parents come before children; symlinked
    directories are skipped.
    """
    local = Path(local)
    if not local.is_dir():
        yield ("dir", None, posixpath.dirname(remote_path) or ".")
        yield ("file", local, remote_path)
        return

    for dirpath, dirnames, filenames in os.walk(local):
        rel = Path(dirpath).relative_to(local)
        rdir = remote_path if rel == Path(".") else posixpath.join(remote_path, rel.as_posix())
        yield ("dir", None, rdir)

        for d in list(dirnames):
            if os.path.islink(os.path.join(dirpath, d)):
                log.warning("Skipping symlinked directory %s", os.path.join(dirpath, d))
                dirnames.remove(d)
        dirnames.sort()

        for fn in sorted(filenames):
            yield ("file", Path(dirpath) / fn, posixpath.join(rdir, fn))


def _make_writable(sftp: paramiko.SFTPClient, remote_path: str) -> None:
    # a read-only copy from an earlier push must be reopened for writing
    try:
        st = sftp.stat(remote_path)
    except FileNotFoundError:
        return
    if st.st_mode is not None and stat.S_ISREG(st.st_mode) and not st.st_mode & stat.S_IWUSR:
        sftp.chmod(remote_path, stat.S_IMODE(st.st_mode) | stat.S_IWUSR)


def put_file(sftp: paramiko.SFTPClient, local_path: Path, remote_path: str) -> None:
    # binary-safe upload, then carry the permission bits over
    try:
        _make_writable(sftp, remote_path)
        sftp.put(str(local_path), remote_path, confirm=True)
        sftp.chmod(remote_path, stat.S_IMODE(os.stat(local_path).st_mode))
    except (OSError, paramiko.SSHException) as e:
        raise TransferError(f"upload {local_path} -> {remote_path} failed: {e}") from e


def put_tree(sftp: paramiko.SFTPClient, local: Path, remote_path: str) -> int:
    """
    Mirror a local file or directory at ``remote_path``. Existing remote
    files are overwritten. Returns the number of files uploaded.
    """
    count = 0
    try:
        for kind, src, dst in iter_tree(Path(local), remote_path):
            if kind == "dir":
                makedirs(sftp, dst)
            else:
                log.debug("put %s -> %s", src, dst)
                put_file(sftp, src, dst)  # type: ignore[arg-type]
                count += 1
    except (OSError, paramiko.SSHException) as e:
        raise TransferError(f"copy {local} -> {remote_path} failed: {e}") from e
    return count
