# inventory_push/cli.py
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .components.push import push_inventory, summarize
from .config import DEF_SETTINGS, Settings, load_inventory
from .errors import ConfigError
from .logging_setup import setup_logging
from .tools.preflight import run_preflight

# ---------------- version ----------------
try:
    from importlib.metadata import PackageNotFoundError, version as _pkg_version
    __VERSION__ = _pkg_version("inventory-push")
except PackageNotFoundError:
    __VERSION__ = "0.0.0+dev"

COMMANDS = ("push", "check", "list")
# options whose next argv item is their value, not a command
VALUE_OPTIONS = ("-i", "--inventory", "--log-file", "--only", "--timeout")


# ---------------- generic helpers ----------------
def _settings_from_args(args: argparse.Namespace) -> Settings:
    return dataclasses.replace(
        DEF_SETTINGS,
        inventory=getattr(args, "inventory", None),
        timeout=getattr(args, "timeout", DEF_SETTINGS.timeout),
        strict_host_keys=getattr(args, "strict_host_keys", DEF_SETTINGS.strict_host_keys),
        log_file=getattr(args, "log_file", "") or "",
        verbosity=getattr(args, "verbosity", DEF_SETTINGS.verbosity),
    )


def init_logging(settings: Settings) -> None:
    setup_logging(verbosity=settings.verbosity, log_file=settings.log_file or None)


# ---------------- parser ----------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="inventory-push",
        description="Copy a local content tree to every server in ~/.inventory.yaml over SSH/SFTP.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__VERSION__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-i", "--inventory", type=Path, default=None,
                        help="Inventory YAML (default: $INVENTORY_PUSH_FILE or ~/.inventory.yaml)")
    common.add_argument("-v", "--verbose", dest="verbosity", action="count", default=1,
                        help="More logging (-vv also shows paramiko debug)")
    common.add_argument("-q", "--quiet", dest="verbosity", action="store_const", const=0,
                        help="Only warnings and errors")
    common.add_argument("--log-file", default="", help="Also log to this file (rotated at 10MB)")

    sub = p.add_subparsers(dest="cmd")

    # ---- push ----
    push = sub.add_parser("push", parents=[common], help="Push content to every configured server (default)")
    push.add_argument("--only", action="append", metavar="NAME", default=None,
                      help="Push only to this server (repeatable)")
    push.add_argument("-n", "--dry-run", action="store_true",
                      help="List what would be uploaded without connecting")
    push.add_argument("--timeout", type=int, default=DEF_SETTINGS.timeout,
                      help="SSH connect/banner/auth timeout in seconds")
    push.add_argument("--strict-host-keys", action="store_true",
                      help="Reject hosts missing from known_hosts instead of auto-adding them")

    # ---- check / list ----
    sub.add_parser("check", parents=[common], help="Validate the inventory without connecting")
    sub.add_parser("list", parents=[common], help="Show configured servers")

    return p


# ---------------- command handlers ----------------
def _do_push(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    init_logging(settings)
    try:
        inventory = load_inventory(settings.inventory)
        results = push_inventory(
            inventory,
            only=args.only,
            dry_run=args.dry_run,
            settings=settings,
        )
    except ConfigError as e:
        logging.error("Configuration error: %s", e)
        return 2

    print(summarize(results))
    return 0 if all(r.ok for r in results) else 1


def _do_check(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    init_logging(settings)
    return run_preflight(settings.inventory)


def _do_list(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    init_logging(settings)
    try:
        inventory = load_inventory(settings.inventory)
    except ConfigError as e:
        logging.error("Configuration error: %s", e)
        return 2

    print(f"content: {inventory.content}")
    for name, t in inventory.servers.items():
        auth = "key" if t.key_file else ("password" if t.password else "agent")
        line = f"- {name}: {t.user}@{t.host}:{t.ssh_port} -> {t.path_prefix} [{auth}]"
        if t.description:
            line += f"  # {t.description}"
        print(line)
    return 0


# ---------------- entrypoint ----------------
def _command_first(argv: List[str]) -> List[str]:
    """
    Move the command word to the front so shared options may precede it.
    No command at all means "push".
    """
    if argv and argv[0] in ("-h", "--help", "--version"):
        return argv
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in COMMANDS:
            return [arg, *argv[:i], *argv[i + 1:]]
        i += 2 if arg in VALUE_OPTIONS else 1
    return ["push", *argv]


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    argv = _command_first(argv)

    parser = _build_parser()
    args = parser.parse_args(argv)

    dispatch = {
        "push": _do_push,
        "check": _do_check,
        "list": _do_list,
    }
    func = dispatch.get(args.cmd)
    if func is None:
        parser.print_help()
        return 2
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
