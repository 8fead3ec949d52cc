"""
Offline preflight for an inventory: checks the file, its permissions, the
content path and each server entry without opening any connection.
"""

from __future__ import annotations

import os
import stat
import sys
from pathlib import Path
from typing import List, Optional

import paramiko

from ..config import default_inventory_path, load_inventory, resolve_content
from ..errors import ConfigError


class _Report:
    def __init__(self) -> None:
        self.warnings: List[str] = []

    def ok(self, name: str, detail: str) -> None:
        print(f"[OK] {name}: {detail}")

    def warn(self, name: str, detail: str) -> None:
        self.warnings.append(name)
        print(f"[WARN] {name}: {detail}")


def run_preflight(path: Optional[Path] = None) -> int:
    rep = _Report()
    print("== inventory-push preflight ==")
    print(f"Python: {sys.version.split()[0]}")
    rep.ok("paramiko", paramiko.__version__)

    inv_path = Path(path).expanduser() if path else default_inventory_path()
    if not inv_path.is_file():
        rep.warn("Inventory", f"not found: {inv_path}")
        print("\nPreflight complete.")
        return 1
    rep.ok("Inventory", str(inv_path))

    try:
        inventory = load_inventory(inv_path)
    except ConfigError as e:
        rep.warn("Inventory", str(e))
        print("\nPreflight complete.")
        return 1
    rep.ok("Servers", ", ".join(inventory.servers))

    try:
        content = resolve_content(inventory)
        kind = "directory" if content.is_dir() else "file"
        rep.ok("Content", f"{content} ({kind})")
    except ConfigError as e:
        rep.warn("Content", str(e))

    has_password = False
    for name, target in inventory.servers.items():
        where = f"{name} ({target.user}@{target.host}:{target.ssh_port})"
        kp = target.key_path()
        if kp is not None:
            if kp.is_file():
                rep.ok(where, f"key {kp}")
            else:
                rep.warn(where, f"key-file points to a missing file: {kp}")
        elif target.password:
            has_password = True
            rep.warn(where, "plaintext password in inventory; prefer key-file or an SSH agent")
        else:
            rep.ok(where, "agent / default keys")

    if has_password and os.name == "posix":
        mode = stat.S_IMODE(inv_path.stat().st_mode)
        if mode & (stat.S_IRGRP | stat.S_IROTH):
            rep.warn("Permissions", f"{inv_path} is mode {mode:o}; run chmod 600")
        else:
            rep.ok("Permissions", f"{mode:o}")

    print("\nPreflight complete.")
    return 0 if not rep.warnings else 1
