"""Versioned data migrations for the key/value store.

Applied versions are recorded in ``schema_version``; each pending
migration runs in order and is committed on its own.
"""

import json
import sqlite3
from typing import Callable

from ..utils.logger import get_logger

logger = get_logger(__name__)

Migration = Callable[[sqlite3.Connection], None]

AUTOSAVES_KEY = "workspace_autosaves"


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied version (0 for a fresh store)."""
    conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)")
    (version,) = conn.execute("SELECT COALESCE(MAX(version), 0) FROM schema_version").fetchone()
    return version


def migration_v1_autosave_ids(conn: sqlite3.Connection) -> None:
    """Key legacy autosaves by id instead of ring position.

    The legacy value is ``{"autosaves": [snapshot, ...], "max": n}``,
    newest first. Each snapshot gets an id so that the newest one holds
    the highest id, and ``next_id`` continues after it.

    Args:
        conn: SQLite connection
    """
    cursor = conn.cursor()
    cursor.execute("SELECT value FROM local_store WHERE key = ?", (AUTOSAVES_KEY,))
    row = cursor.fetchone()
    if not row:
        return

    value = json.loads(row[0])
    if not isinstance(value, dict) or "autosaves" not in value:
        return

    snapshots = value["autosaves"] if isinstance(value["autosaves"], list) else []
    total = len(snapshots)
    migrated = {
        "entries": [
            {"id": total - position, "snapshot": snapshot}
            for position, snapshot in enumerate(snapshots)
        ],
        "next_id": total + 1,
    }
    cursor.execute(
        "UPDATE local_store SET value = ? WHERE key = ?",
        (json.dumps(migrated, ensure_ascii=False), AUTOSAVES_KEY),
    )


MIGRATIONS: dict[int, Migration] = {
    1: migration_v1_autosave_ids,
}


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply every migration newer than the stored version."""
    current = get_schema_version(conn)
    pending = [(v, m) for v, m in sorted(MIGRATIONS.items()) if v > current]

    for version, migration in pending:
        logger.info(f"Applying migration v{version}: {migration.__name__}")
        migration(conn)
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))
        conn.commit()
