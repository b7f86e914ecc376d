"""Database layer for Tab Grouper.

This module provides a clean interface to the SQLite store, following
the Repository pattern for separation of concerns.

The store is split into two key/value namespaces backed by separate
tables: ``sync_store`` (configuration, saved workspaces, settings) and
``local_store`` (autosave ring, undo record). Values are JSON text and
every write replaces the whole value of a key; there are no
transactions spanning several keys.
"""

import json
import sqlite3
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Generator, Optional

from ..utils.validators import ValidationError, validate_group_max_tabs, validate_hostname
from .migrations import AUTOSAVES_KEY, run_migrations
from .models import (
    AutosaveRing,
    GroupingConfig,
    GroupingPreferences,
    Rule,
    UndoSnapshot,
    WorkspaceSettings,
    WorkspaceSnapshot,
)


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class Namespace(str, Enum):
    """Storage namespaces and the tables holding them."""

    SYNC = "sync_store"
    LOCAL = "local_store"


CONFIG_KEY = "config"
WORKSPACES_KEY = "workspaces"
WORKSPACE_SETTINGS_KEY = "ws_settings"
CUSTOM_RULES_KEY = "custom_rules"
PREFERENCES_KEY = "grouping_preferences"
UNDO_KEY = "undo_snapshot"


class Database:
    """SQLite key/value wrapper with migrations.

    This class handles all storage operations and ensures proper
    connection management and error handling.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._ensure_database_exists()
        self._run_migrations()

    def _ensure_database_exists(self) -> None:
        """Create database directory if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection (context manager).

        Yields:
            SQLite connection with row factory enabled

        Raises:
            DatabaseError: If connection fails
        """
        conn: Optional[sqlite3.Connection] = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            raise DatabaseError(f"Database error: {e}") from e
        finally:
            if conn:
                conn.close()

    def _run_migrations(self) -> None:
        """Create the namespace tables and apply pending migrations."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for namespace in Namespace:
                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {namespace.value} (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
            run_migrations(conn)

    # Raw key/value operations

    def get_value(self, namespace: Namespace, key: str, default: Any = None) -> Any:
        """Read a JSON value.

        Args:
            namespace: Namespace holding the key
            key: Key to read
            default: Returned when the key is absent

        Returns:
            Decoded value or ``default``
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT value FROM {namespace.value} WHERE key = ?", (key,))
            row = cursor.fetchone()

        if not row:
            return default
        return json.loads(row["value"])

    def set_value(self, namespace: Namespace, key: str, value: Any) -> None:
        """Write a JSON value, replacing any previous one.

        Raises:
            DatabaseError: If the write fails
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO {namespace.value} (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, json.dumps(value, ensure_ascii=False)),
            )

    def remove_value(self, namespace: Namespace, key: str) -> None:
        """Delete a key (no-op when absent)."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {namespace.value} WHERE key = ?", (key,))

    # Configuration operations

    def get_config(self) -> GroupingConfig:
        """Get the rule engine configuration (defaults when never saved)."""
        data = self.get_value(Namespace.SYNC, CONFIG_KEY)
        if not data:
            return GroupingConfig()
        return GroupingConfig.from_dict(data)

    def update_config(self, config: GroupingConfig) -> GroupingConfig:
        """Persist the configuration as a new revision.

        Args:
            config: Configuration to store

        Returns:
            The stored configuration, with its version bumped

        Raises:
            ValidationError: If the size cap or a whitelisted host is invalid
        """
        if not validate_group_max_tabs(config.group_max_tabs):
            raise ValidationError(f"Invalid group_max_tabs: {config.group_max_tabs}")
        for hostname in config.whitelist:
            if not validate_hostname(hostname):
                raise ValidationError(f"Invalid whitelist hostname: {hostname}")

        current = self.get_value(Namespace.SYNC, CONFIG_KEY) or {}
        config.version = max(config.version, int(current.get("version", 0))) + 1
        self.set_value(Namespace.SYNC, CONFIG_KEY, config.to_dict())
        return config

    def initialize_defaults(self) -> None:
        """Fill missing configuration and preference keys with defaults.

        Existing values are kept; only absent fields are added.
        """
        stored = self.get_value(Namespace.SYNC, CONFIG_KEY) or {}
        merged = GroupingConfig.from_dict(stored).to_dict()
        if merged != stored:
            self.set_value(Namespace.SYNC, CONFIG_KEY, merged)

        if self.get_value(Namespace.SYNC, PREFERENCES_KEY) is None:
            self.update_grouping_preferences(GroupingPreferences())

    def get_workspace_settings(self) -> WorkspaceSettings:
        data = self.get_value(Namespace.SYNC, WORKSPACE_SETTINGS_KEY) or {}
        defaults = WorkspaceSettings()
        return WorkspaceSettings(
            include_pinned=data.get("include_pinned", defaults.include_pinned),
            include_meta=data.get("include_meta", defaults.include_meta),
            autosave_enabled=data.get("autosave_enabled", defaults.autosave_enabled),
            autosave_max=data.get("autosave_max", defaults.autosave_max),
        )

    def update_workspace_settings(self, settings: WorkspaceSettings) -> None:
        self.set_value(
            Namespace.SYNC,
            WORKSPACE_SETTINGS_KEY,
            {
                "include_pinned": settings.include_pinned,
                "include_meta": settings.include_meta,
                "autosave_enabled": settings.autosave_enabled,
                "autosave_max": settings.autosave_max,
            },
        )

    def get_grouping_preferences(self) -> GroupingPreferences:
        data = self.get_value(Namespace.SYNC, PREFERENCES_KEY) or {}
        defaults = GroupingPreferences()
        mode = data.get("mode", defaults.mode)
        return GroupingPreferences(
            ignore_pinned=data.get("ignore_pinned", defaults.ignore_pinned),
            window_only=data.get("window_only", defaults.window_only),
            mode=mode if mode in GroupingPreferences.VALID_MODES else defaults.mode,
        )

    def update_grouping_preferences(self, preferences: GroupingPreferences) -> None:
        self.set_value(
            Namespace.SYNC,
            PREFERENCES_KEY,
            {
                "ignore_pinned": preferences.ignore_pinned,
                "window_only": preferences.window_only,
                "mode": preferences.mode,
            },
        )

    def get_custom_rules(self) -> list[Rule]:
        """Get user-defined category rules, in declaration order."""
        data = self.get_value(Namespace.SYNC, CUSTOM_RULES_KEY) or []
        return [Rule.from_dict(item) for item in data]

    def save_custom_rules(self, rules: list[Rule]) -> None:
        self.set_value(Namespace.SYNC, CUSTOM_RULES_KEY, [rule.to_dict() for rule in rules])

    # Workspace collection operations

    def get_workspaces(self) -> list[WorkspaceSnapshot]:
        """Get the whole saved workspace collection, in stored order."""
        data = self.get_value(Namespace.SYNC, WORKSPACES_KEY) or []
        if not isinstance(data, list):
            return []
        return [WorkspaceSnapshot.from_dict(item) for item in data]

    def set_workspaces(self, workspaces: list[WorkspaceSnapshot]) -> None:
        """Replace the whole saved workspace collection."""
        self.set_value(
            Namespace.SYNC, WORKSPACES_KEY, [workspace.to_dict() for workspace in workspaces]
        )

    # Local-only operations

    def get_autosave_ring(self) -> AutosaveRing:
        return AutosaveRing.from_dict(self.get_value(Namespace.LOCAL, AUTOSAVES_KEY))

    def set_autosave_ring(self, ring: AutosaveRing) -> None:
        self.set_value(Namespace.LOCAL, AUTOSAVES_KEY, ring.to_dict())

    def get_undo_snapshot(self) -> Optional[UndoSnapshot]:
        data = self.get_value(Namespace.LOCAL, UNDO_KEY)
        if not data:
            return None
        return UndoSnapshot.from_dict(data)

    def set_undo_snapshot(self, snapshot: UndoSnapshot) -> None:
        self.set_value(Namespace.LOCAL, UNDO_KEY, snapshot.to_dict())

    def clear_undo_snapshot(self) -> None:
        self.remove_value(Namespace.LOCAL, UNDO_KEY)
