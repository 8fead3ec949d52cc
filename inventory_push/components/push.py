# inventory_push/components/push.py
from __future__ import annotations

import logging
import posixpath
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

from ..config import DEF_SETTINGS, Inventory, ServerTarget, Settings, resolve_content
from ..errors import ConfigError, SSHConnectionError, TransferError
from ..remote.sftp import iter_tree, put_tree
from ..remote.ssh import SSHClient

log = logging.getLogger(__name__)


@dataclass
class PushResult:
    name: str
    target: str                 # user@host:port
    remote_path: str
    ok: bool
    files: int = 0
    error: str = ""
    elapsed: float = 0.0
    dry_run: bool = False


def remote_destination(path_prefix: str, content: Path) -> str:
    """
    Remote path the content lands at: ``<path-prefix>/<content name>``.
    A leading ``~/`` is dropped so the path resolves against the login dir.
    """
    prefix = path_prefix.strip()
    if prefix == "~":
        prefix = "."
    elif prefix.startswith("~/"):
        prefix = prefix[2:]
    return posixpath.normpath(posixpath.join(prefix or ".", content.name))


def select_servers(inventory: Inventory, only: Optional[Iterable[str]] = None) -> List[str]:
    names = list(inventory.servers)
    if not only:
        return names
    wanted = list(dict.fromkeys(only))
    unknown = [n for n in wanted if n not in inventory.servers]
    if unknown:
        raise ConfigError(
            f"unknown server(s): {', '.join(unknown)} (configured: {', '.join(names)})"
        )
    return [n for n in names if n in wanted]


def push_target(
    name: str,
    target: ServerTarget,
    content: Path,
    *,
    settings: Settings = DEF_SETTINGS,
    client_factory: Callable[..., Any] = SSHClient,
    dry_run: bool = False,
) -> PushResult:
    """
    Push ``content`` to one server. Connection and transfer failures are
    logged and returned in the result, never raised.
    """
    dest = remote_destination(target.path_prefix, content)
    label = f"{target.user}@{target.host}:{target.ssh_port}"
    started = time.monotonic()

    if dry_run:
        files = 0
        for kind, src, dst in iter_tree(content, dest):
            if kind == "file":
                log.info("[%s] would upload %s -> %s:%s", name, src, label, dst)
                files += 1
        return PushResult(name, label, dest, ok=True, files=files, dry_run=True)

    if target.password and not target.key_file:
        log.warning("[%s] using a plaintext password from the inventory; prefer key-file or an SSH agent", name)

    key_path = target.key_path()
    log.info("[%s] pushing %s -> %s:%s", name, content, label, dest)
    try:
        with client_factory(
            host=target.host,
            user=target.user,
            password=target.password,
            key_path=str(key_path) if key_path else None,
            port=target.ssh_port,
            timeout=settings.timeout,
            strict_host_keys=settings.strict_host_keys,
        ) as ssh:
            sftp = ssh.open_sftp()
            try:
                files = put_tree(sftp, content, dest)
            finally:
                sftp.close()
    except (SSHConnectionError, TransferError) as e:
        log.error("[%s] push failed: %s", name, e)
        return PushResult(name, label, dest, ok=False, error=str(e), elapsed=time.monotonic() - started)
    except Exception as e:
        log.exception("[%s] unexpected error during push: %s", name, e)
        return PushResult(name, label, dest, ok=False, error=f"{type(e).__name__}: {e}",
                          elapsed=time.monotonic() - started)

    elapsed = time.monotonic() - started
    log.info("[%s] pushed %d file(s) in %.1fs", name, files, elapsed)
    return PushResult(name, label, dest, ok=True, files=files, elapsed=elapsed)


def push_inventory(
    inventory: Inventory,
    *,
    only: Optional[Iterable[str]] = None,
    dry_run: bool = False,
    settings: Settings = DEF_SETTINGS,
    client_factory: Callable[..., Any] = SSHClient,
) -> List[PushResult]:
    """
    Push the inventory's content to each selected server, one after another.
    Raises ConfigError before any connection if the content path is missing.
    """
    content = resolve_content(inventory)
    names = select_servers(inventory, only)
    log.info("=== Push start: %s -> %d server(s)%s ===", content, len(names), " (dry run)" if dry_run else "")

    results: List[PushResult] = []
    for name in names:
        results.append(
            push_target(
                name,
                inventory.servers[name],
                content,
                settings=settings,
                client_factory=client_factory,
                dry_run=dry_run,
            )
        )
    return results


def summarize(results: List[PushResult]) -> str:
    lines = ["== Push summary =="]
    width = max((len(r.name) for r in results), default=0)
    for r in results:
        if r.ok:
            verb = "would copy" if r.dry_run else "copied"
            lines.append(f"[OK]   {r.name:<{width}}  {r.target}:{r.remote_path} ({verb} {r.files} file(s), {r.elapsed:.1f}s)")
        else:
            lines.append(f"[FAIL] {r.name:<{width}}  {r.target}:{r.remote_path} - {r.error}")
    ok = sum(1 for r in results if r.ok)
    lines.append(f"{ok} succeeded, {len(results) - ok} failed")
    return "\n".join(lines)
