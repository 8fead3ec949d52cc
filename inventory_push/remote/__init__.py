# inventory_push/remote/__init__.py
"""
Remote utilities: thin wrappers around Paramiko + helpers for SFTP tree copies.
Re-export the public API so editors/type-checkers can resolve symbols.
"""

from .ssh import SSHClient
from .sftp import iter_tree, makedirs, put_file, put_tree

__all__ = [
    "SSHClient",
    "iter_tree",
    "makedirs",
    "put_file",
    "put_tree",
]
