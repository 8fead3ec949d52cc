# inventory_push/errors.py
"""Exception types raised by inventory-push."""


class PushError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigError(PushError):
    """The inventory file is missing, malformed, or incomplete."""


class SSHConnectionError(PushError):
    """Could not open or authenticate an SSH session to a target."""


class TransferError(PushError):
    """A copy failed part-way through a push to one target."""
