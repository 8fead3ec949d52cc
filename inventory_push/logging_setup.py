# inventory_push/logging_setup.py
from __future__ import annotations
import logging, sys
from logging.handlers import RotatingFileHandler


def setup_logging(verbosity: int = 1, log_file: str | None = None) -> None:
    try:
        v = int(verbosity)
    except (TypeError, ValueError):
        v = 1
    if v <= 0:
        level = logging.WARNING
    elif v == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    fmt = "%(asctime)s [%(levelname)s] %(message)s"
    datefmt = "%H:%M:%S"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=3, encoding="utf-8"))

    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, handlers=handlers, force=True)

    # paramiko is chatty at INFO (banner, auth, channel open)
    logging.getLogger("paramiko").setLevel(logging.DEBUG if v >= 3 else logging.WARNING)
    if log_file:
        logging.debug("Logging to %s", log_file)
