# inventory_push/remote/ssh.py
from __future__ import annotations

import logging
from dataclasses import dataclass

import paramiko

from ..errors import SSHConnectionError

log = logging.getLogger(__name__)


@dataclass
class SSHClient:
    host: str
    user: str
    password: str | None = None
    key_path: str | None = None
    port: int = 22
    timeout: int = 30
    strict_host_keys: bool = False

    def __post_init__(self) -> None:
        self._ssh: paramiko.SSHClient | None = None

    @property
    def label(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"

    # Context manager
    def __enter__(self) -> "SSHClient":
        cli = paramiko.SSHClient()
        cli.load_system_host_keys()
        if self.strict_host_keys:
            cli.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            cli.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        # explicit credentials disable agent / ~/.ssh/id_* probing
        explicit = bool(self.password or self.key_path)
        log.debug("Connecting to %s (password=%s, key=%s)", self.label, bool(self.password), self.key_path)
        try:
            cli.connect(
                hostname=self.host,
                port=self.port,
                username=self.user,
                password=self.password,
                key_filename=self.key_path,
                look_for_keys=not explicit,
                allow_agent=not explicit,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
            )
        except paramiko.AuthenticationException as e:
            cli.close()
            raise SSHConnectionError(f"authentication failed for {self.label}: {e}") from e
        except (paramiko.SSHException, OSError) as e:
            cli.close()
            raise SSHConnectionError(f"cannot connect to {self.label}: {e}") from e
        self._ssh = cli
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._ssh is not None:
                self._ssh.close()
        finally:
            self._ssh = None

    def open_sftp(self) -> paramiko.SFTPClient:
        assert self._ssh is not None, "SSH not connected"
        try:
            return self._ssh.open_sftp()
        except paramiko.SSHException as e:
            raise SSHConnectionError(f"SFTP subsystem unavailable on {self.label}: {e}") from e
