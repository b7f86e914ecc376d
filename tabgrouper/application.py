"""Main application class.

This module provides the application object that creates the core
components, wires them together, and exposes the message and keyboard
command entry points used by the browser side.
"""

from typing import Any, Callable, Optional

from .browser.host import HostAdapter
from .core.grouping import TabGrouper
from .core.profile_bridge import ProfileBridge
from .core.workspace_manager import WorkspaceManager
from .data.database import Database
from .utils.logger import get_logger
from .utils.xdg import APP_ID, XDGDirectories

logger = get_logger(__name__)

MSG_SMART_MERGE = "SMART_MERGE"
MSG_SPLIT_BIG_GROUPS = "SPLIT_BIG_GROUPS"

COMMAND_GROUP_TABS = "group-tabs"
COMMAND_UNGROUP_TABS = "ungroup-tabs"
COMMAND_COLLAPSE_GROUPS = "collapse-groups"
COMMAND_SMART_MERGE = "smart-merge"


class TabGrouperApplication:
    """Main application class.

    Owns the database, the grouping engine, the workspace manager and
    the optional profile bridge. A host adapter is needed for anything
    that reads or changes live tabs; store-only operations work without
    one.
    """

    def __init__(
        self,
        host: Optional[HostAdapter] = None,
        database: Optional[Database] = None,
        bridge: Optional[ProfileBridge] = None,
    ) -> None:
        """Initialize application.

        Args:
            host: Browser host adapter (None for store-only use)
            database: Store to use (the XDG database by default)
            bridge: Profile bridge (a default localhost bridge if omitted)
        """
        self.host = host
        self.database = database or self._open_database()
        self.bridge = bridge or ProfileBridge()
        self.workspace_manager = WorkspaceManager(self.database, host)
        self.grouper: Optional[TabGrouper] = None
        if host is not None:
            self.grouper = TabGrouper(
                host, self.database, autosave=self.workspace_manager.autosave_current_session
            )

        self._message_handlers: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
            MSG_SMART_MERGE: self._on_smart_merge,
            MSG_SPLIT_BIG_GROUPS: self._on_split_big_groups,
        }

        logger.debug(f"TabGrouperApplication initialized (ID: {APP_ID})")

    @staticmethod
    def _open_database() -> Database:
        db_path = XDGDirectories.get_database_path()
        database = Database(db_path)
        logger.debug(f"Database initialized: {db_path}")
        return database

    def on_installed(self) -> None:
        """First-install hook: fill configuration defaults."""
        self.database.initialize_defaults()
        logger.info("Tab Grouper installed, defaults initialized")

    def _require_grouper(self) -> TabGrouper:
        if self.grouper is None:
            raise RuntimeError("No browser host attached")
        return self.grouper

    # Message entry point

    def handle_message(self, message: Any) -> dict[str, Any]:
        """Dispatch a typed message from the browser side.

        Args:
            message: Dict with a ``type`` key

        Returns:
            ``{"ok": True, ...}`` on success, ``{"ok": False, "error": ...}``
            otherwise
        """
        msg_type = message.get("type") if isinstance(message, dict) else None
        handler = self._message_handlers.get(msg_type)
        if handler is None:
            return {"ok": False, "error": "Unknown message type"}

        try:
            return handler(message)
        except Exception as e:
            logger.error(f"Message handler error ({msg_type}): {e}", exc_info=True)
            return {"ok": False, "error": str(e)}

    def _on_smart_merge(self, message: dict[str, Any]) -> dict[str, Any]:
        grouper = self._require_grouper()
        window = grouper.host.get_current_window()
        created = grouper.smart_merge(window_id=window.id, window_only=True, ignore_pinned=True)
        return {"ok": True, "groups": created}

    def _on_split_big_groups(self, message: dict[str, Any]) -> dict[str, Any]:
        return {"ok": True, "split": self._require_grouper().split_big_groups()}

    # Keyboard commands

    def handle_command(self, command: str) -> int:
        """Run a keyboard command against the current window.

        Args:
            command: Command name

        Returns:
            Number of groups or tabs affected

        Raises:
            ValueError: If the command is unknown
        """
        grouper = self._require_grouper()
        window_id = grouper.host.get_current_window().id
        logger.debug(f"Keyboard command: {command}")

        if command == COMMAND_GROUP_TABS:
            preferences = self.database.get_grouping_preferences()
            result = grouper.group_tabs(
                window_id=window_id,
                window_only=True,
                ignore_pinned=True,
                mode=preferences.mode,
            )
            self.workspace_manager.autosave_current_session()
            return result

        if command == COMMAND_UNGROUP_TABS:
            result = grouper.ungroup_all(window_id)
            self.workspace_manager.autosave_current_session()
            return result

        if command == COMMAND_COLLAPSE_GROUPS:
            return grouper.collapse_all_groups(window_id)

        if command == COMMAND_SMART_MERGE:
            # smart_merge autosaves on its own
            return grouper.smart_merge(window_id=window_id, window_only=True, ignore_pinned=True)

        raise ValueError(f"Unknown command: {command}")
