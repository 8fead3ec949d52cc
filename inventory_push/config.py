# inventory_push/config.py
from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlsplit

import yaml

from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_INVENTORY = Path("~/.inventory.yaml")
INVENTORY_ENV = "INVENTORY_PUSH_FILE"
DEFAULT_SSH_PORT = 22
URI_SCHEMES = ("ssh", "sftp", "scp")

REQUIRED_SERVER_FIELDS = ("uri", "user", "path-prefix")
OPTIONAL_SERVER_FIELDS = ("password", "description", "port", "key-file")


# ---------------- run settings ----------------
@dataclass
class Settings:
    inventory: Optional[Path] = None
    timeout: int = 30
    strict_host_keys: bool = False
    log_file: str = ""
    verbosity: int = 1


DEF_SETTINGS = Settings()


# ---------------- inventory model ----------------
@dataclass(frozen=True)
class ServerTarget:
    uri: str
    user: str
    path_prefix: str
    password: Optional[str] = None
    description: str = ""
    port: Optional[int] = None      # wins over a port given in the uri
    key_file: Optional[str] = None

    @property
    def host(self) -> str:
        return parse_uri(self.uri)[0]

    @property
    def ssh_port(self) -> int:
        _, uri_port = parse_uri(self.uri)
        return self.port if self.port is not None else uri_port

    def key_path(self) -> Optional[Path]:
        if not self.key_file:
            return None
        return expand_local_path(self.key_file)


@dataclass(frozen=True)
class Inventory:
    content: str
    servers: Mapping[str, ServerTarget]
    source: Optional[Path] = None

    def __len__(self) -> int:
        return len(self.servers)


# ---------------- helpers ----------------
def parse_uri(uri: str, default_port: int = DEFAULT_SSH_PORT) -> Tuple[str, int]:
    """
    Split a server uri into (host, port).

    Accepts ``host``, ``host:port``, ``[v6addr]:port`` and
    ``ssh://[user@]host[:port]``. A user part in the uri is ignored; the
    inventory's ``user`` field is authoritative.
    """
    text = (uri or "").strip()
    if not text:
        raise ConfigError("uri is empty")
    if "://" not in text:
        text = "ssh://" + text
    parts = urlsplit(text)
    if parts.scheme not in URI_SCHEMES:
        raise ConfigError(f"unsupported uri scheme {parts.scheme!r} in {uri!r}")
    try:
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"invalid port in uri {uri!r}") from e
    if not parts.hostname:
        raise ConfigError(f"no host in uri {uri!r}")
    return parts.hostname, port or default_port


def expand_local_path(raw: str | os.PathLike[str]) -> Path:
    # "~", "$HOME" and "${HOME}" placeholders
    return Path(os.path.expandvars(os.path.expanduser(str(raw)))).resolve()


def default_inventory_path() -> Path:
    return Path(os.environ.get(INVENTORY_ENV) or DEFAULT_INVENTORY).expanduser()


def _text(entry: Mapping[str, Any], key: str, where: str, *, required: bool) -> Optional[str]:
    val = entry.get(key)
    if val is None or (isinstance(val, str) and not val.strip()):
        if required:
            raise ConfigError(f"{where}: missing required field '{key}'")
        return None
    if isinstance(val, bool) or not isinstance(val, (str, int, float)):
        raise ConfigError(f"{where}: field '{key}' must be a string, got {type(val).__name__}")
    return str(val)


def _port(entry: Mapping[str, Any], where: str) -> Optional[int]:
    val = entry.get("port")
    if val is None:
        return None
    if isinstance(val, bool):
        raise ConfigError(f"{where}: field 'port' must be an integer")
    try:
        port = int(val)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where}: field 'port' must be an integer, got {val!r}") from e
    if not 0 < port < 65536:
        raise ConfigError(f"{where}: port {port} out of range")
    return port


def parse_server(name: str, entry: Any) -> ServerTarget:
    where = f"server '{name}'"
    if not isinstance(entry, Mapping):
        raise ConfigError(f"{where}: expected a mapping of fields")

    unknown = set(entry) - set(REQUIRED_SERVER_FIELDS) - set(OPTIONAL_SERVER_FIELDS)
    if unknown:
        log.warning("%s: ignoring unknown field(s): %s", where, ", ".join(sorted(map(str, unknown))))

    uri = _text(entry, "uri", where, required=True)
    try:
        parse_uri(uri)  # type: ignore[arg-type]
    except ConfigError as e:
        raise ConfigError(f"{where}: {e}") from e

    return ServerTarget(
        uri=uri,  # type: ignore[arg-type]
        user=_text(entry, "user", where, required=True),  # type: ignore[arg-type]
        path_prefix=_text(entry, "path-prefix", where, required=True),  # type: ignore[arg-type]
        password=_text(entry, "password", where, required=False),
        description=_text(entry, "description", where, required=False) or "",
        port=_port(entry, where),
        key_file=_text(entry, "key-file", where, required=False),
    )


def parse_inventory(data: Any, source: Optional[Path] = None) -> Inventory:
    """Validate an already-deserialized inventory document."""
    where = str(source) if source else "inventory"
    if not isinstance(data, Mapping):
        raise ConfigError(f"{where}: top level must be a mapping with 'content' and 'servers'")

    content = _text(data, "content", where, required=True)

    raw_servers = data.get("servers")
    if raw_servers is None:
        raise ConfigError(f"{where}: missing required field 'servers'")
    if not isinstance(raw_servers, Mapping):
        raise ConfigError(f"{where}: 'servers' must be a mapping of name -> server")
    if not raw_servers:
        raise ConfigError(f"{where}: 'servers' is empty")

    servers: Dict[str, ServerTarget] = {}
    for name, entry in raw_servers.items():
        servers[str(name)] = parse_server(str(name), entry)

    return Inventory(content=content, servers=MappingProxyType(servers), source=source)  # type: ignore[arg-type]


def _warn_if_exposed(path: Path, inventory: Inventory) -> None:
    if os.name != "posix":
        return
    if not any(t.password for t in inventory.servers.values()):
        return
    mode = path.stat().st_mode
    if mode & (stat.S_IRGRP | stat.S_IROTH):
        log.warning(
            "%s holds passwords and is readable by other users (mode %o); consider chmod 600",
            path, stat.S_IMODE(mode),
        )


# ---------------- loader ----------------
def load_inventory(path: str | os.PathLike[str] | None = None) -> Inventory:
    """
    Read and validate the inventory file.

    Defaults to ``$INVENTORY_PUSH_FILE`` or ``~/.inventory.yaml``. Raises
    ConfigError when the file is missing, unreadable, not YAML, or incomplete.
    """
    p = Path(path).expanduser() if path else default_inventory_path()
    if not p.is_file():
        raise ConfigError(f"Inventory not found: {p}")
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read inventory {p}: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed YAML in {p}: {e}") from e

    inventory = parse_inventory(data, source=p)
    _warn_if_exposed(p, inventory)
    log.debug("Loaded %d server(s) from %s", len(inventory), p)
    return inventory


def resolve_content(inventory: Inventory) -> Path:
    """Expand the content placeholder and check that it exists locally."""
    path = expand_local_path(inventory.content)
    if not path.exists():
        raise ConfigError(f"content path does not exist: {path} (from {inventory.content!r})")
    if path == Path(path.anchor):
        raise ConfigError(f"content must not be the filesystem root: {path} (from {inventory.content!r})")
    return path
