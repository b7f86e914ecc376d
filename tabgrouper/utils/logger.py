"""Logging setup for Tab Grouper.

Every module asks for a child of the ``tabgrouper`` logger. Handlers
live on that parent only and are attached once, the first time the
command line (or an embedding host) calls :meth:`Logger.configure`.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .xdg import XDGDirectories

ROOT_LOGGER = "tabgrouper"
LOG_FILE_NAME = "tabgrouper.log"
MAX_LOG_BYTES = 2 * 1024 * 1024
LOG_BACKUPS = 3

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


class Logger:
    """Owns the handlers of the ``tabgrouper`` logger tree."""

    _configured: bool = False
    _debug_mode: bool = False
    _console: Optional[logging.Handler] = None

    @classmethod
    def configure(cls, debug: bool = False, log_dir: Optional[Path] = None) -> logging.Logger:
        """Attach the console and rotating file handlers.

        Calling it again only updates the console level.

        Args:
            debug: Show DEBUG records on the console
            log_dir: Directory for the log file (XDG cache logs dir by default)

        Returns:
            The parent ``tabgrouper`` logger
        """
        root = logging.getLogger(ROOT_LOGGER)
        cls._debug_mode = debug

        if cls._configured:
            cls._apply_console_level()
            return root

        root.setLevel(logging.DEBUG)
        root.propagate = False

        # stdout belongs to command output
        cls._console = logging.StreamHandler(sys.stderr)
        cls._console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        root.addHandler(cls._console)
        cls._apply_console_level()

        try:
            target = (log_dir or XDGDirectories.get_logs_dir()) / LOG_FILE_NAME
            file_handler = RotatingFileHandler(
                target, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
            )
        except OSError as e:
            root.warning(f"File logging disabled: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            root.addHandler(file_handler)

        cls._configured = True
        return root

    @classmethod
    def _apply_console_level(cls) -> None:
        if cls._console is not None:
            cls._console.setLevel(logging.DEBUG if cls._debug_mode else logging.WARNING)

    @classmethod
    def set_debug_mode(cls, enabled: bool = True) -> None:
        """Switch console verbosity between DEBUG and WARNING."""
        cls._debug_mode = enabled
        cls._apply_console_level()


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return the logger for a module.

    Names outside the ``tabgrouper`` tree (``__main__`` for instance)
    are re-parented under it so they share its handlers.

    Args:
        name: Usually the caller's ``__name__``

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
