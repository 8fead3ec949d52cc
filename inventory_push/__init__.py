# inventory_push/__init__.py
"""
Push a local content tree to every server listed in ~/.inventory.yaml.
"""

from .config import Inventory, ServerTarget, load_inventory
from .errors import ConfigError, PushError, SSHConnectionError, TransferError

__all__ = [
    "Inventory",
    "ServerTarget",
    "load_inventory",
    "PushError",
    "ConfigError",
    "SSHConnectionError",
    "TransferError",
]
