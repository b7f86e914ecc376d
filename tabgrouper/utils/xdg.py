"""Where Tab Grouper keeps its files.

Paths follow the freedesktop.org base directory layout. The
``TABGROUPER_HOME`` variable overrides all of them with a single
directory, which is handy for portable installs.
"""

import os
from pathlib import Path

APP_ID = "io.github.tabgrouper"

HOME_OVERRIDE_ENV = "TABGROUPER_HOME"
DATABASE_FILE = "tabgrouper.db"


def _resolve(env_var: str, fallback: str) -> Path:
    """Build (and create) an application directory.

    Args:
        env_var: XDG variable consulted first
        fallback: Path under the home directory used when it is unset

    Returns:
        Existing directory path
    """
    override = os.environ.get(HOME_OVERRIDE_ENV)
    if override:
        path = Path(override).expanduser()
    else:
        base = os.environ.get(env_var) or str(Path.home() / fallback)
        path = Path(base) / APP_ID

    path.mkdir(parents=True, exist_ok=True)
    return path


class XDGDirectories:
    """Access to the application's data and cache directories."""

    @staticmethod
    def get_data_dir() -> Path:
        return _resolve("XDG_DATA_HOME", ".local/share")

    @staticmethod
    def get_cache_dir() -> Path:
        return _resolve("XDG_CACHE_HOME", ".cache")

    @classmethod
    def get_database_path(cls) -> Path:
        """SQLite file backing both storage namespaces."""
        return cls.get_data_dir() / DATABASE_FILE

    @classmethod
    def get_logs_dir(cls) -> Path:
        logs_dir = cls.get_cache_dir() / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        return logs_dir
