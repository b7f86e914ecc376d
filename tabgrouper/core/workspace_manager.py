"""Workspace management and lifecycle.

This module is the core business logic for saved workspaces and the
autosave ring: CRUD over the stored collection, capture and restore of
live sessions, and import/export.

The stored collection is read, modified and written back as a whole on
every operation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..browser.host import HostAdapter
from ..data.database import Database
from ..data.models import (
    AutosaveEntry,
    WorkspaceSettings,
    WorkspaceSnapshot,
    WorkspaceStats,
    WorkspaceSummary,
)
from ..utils.logger import get_logger
from ..utils.validators import validate_workspace_name
from . import codec
from .restore import RestoreEngine, RestoreMode, RestoreReport
from .snapshot import capture_workspace, now_iso

logger = get_logger(__name__)


class WorkspaceNotFoundError(LookupError):
    """Raised when no stored workspace has the requested name."""

    pass


class AutosaveNotFoundError(LookupError):
    """Raised when the autosave ring holds no entry with the requested id."""

    pass


class WorkspaceExistsError(ValueError):
    """Raised when a name is already used by a stored workspace."""

    pass


@dataclass
class AutosaveInfo:
    """Listing entry for one autosave.

    ``id`` is stable for the life of the entry; ``index`` is its current
    position in the ring (0 is the newest) and shifts on every autosave.
    """

    id: int
    index: int
    name: str
    date: str
    stats: WorkspaceStats


class WorkspaceManager:
    """Manages saved workspaces and autosaves.

    This is the main business logic class that coordinates:
    - Capture of the live session
    - Persistence of the workspace collection and the autosave ring
    - Restore through the restore engine
    - Import/export
    """

    def __init__(
        self,
        database: Database,
        host: Optional[HostAdapter],
        restore_engine: Optional[RestoreEngine] = None,
    ) -> None:
        """Initialize workspace manager.

        Args:
            database: Database instance for persistence
            host: Browser host adapter used for capture and restore (None
                for store-only use)
            restore_engine: Engine used for restores (built from host if omitted)
        """
        self.db = database
        self.host = host
        self.restore_engine = restore_engine or (RestoreEngine(host) if host else None)
        logger.debug("WorkspaceManager initialized")

    # Settings

    def get_settings(self) -> WorkspaceSettings:
        return self.db.get_workspace_settings()

    def update_settings(self, settings: WorkspaceSettings) -> None:
        self.db.update_workspace_settings(settings)
        logger.info("Workspace settings updated")

    # Capture and CRUD

    def _require_host(self) -> HostAdapter:
        if self.host is None:
            raise RuntimeError("No browser host attached")
        return self.host

    def _restore(self, snapshot: WorkspaceSnapshot, mode: Union[str, RestoreMode]) -> RestoreReport:
        if self.restore_engine is None:
            raise RuntimeError("No browser host attached")
        return self.restore_engine.restore(snapshot, mode)

    def capture(
        self, name: Optional[str] = None, tags: Optional[list[str]] = None, notes: str = ""
    ) -> WorkspaceSnapshot:
        """Capture the live session without saving it."""
        return capture_workspace(
            self._require_host(), self.get_settings(), name=name, tags=tags, notes=notes
        )

    def _find(self, workspaces: list[WorkspaceSnapshot], name: str) -> Optional[WorkspaceSnapshot]:
        for workspace in workspaces:
            if workspace.name == name:
                return workspace
        return None

    def _check_new_name(self, workspaces: list[WorkspaceSnapshot], name: str) -> str:
        name_valid, name_error = validate_workspace_name(name)
        if not name_valid:
            raise ValueError(f"Invalid name: {name_error}")
        name = name.strip()
        if self._find(workspaces, name) is not None:
            raise WorkspaceExistsError(f"Workspace already exists: {name}")
        return name

    def save_workspace(self, snapshot: WorkspaceSnapshot) -> str:
        """Append a snapshot to the stored collection.

        Args:
            snapshot: Workspace to store

        Returns:
            Name the workspace was stored under

        Raises:
            ValueError: If the name is invalid
            WorkspaceExistsError: If the name is already taken
        """
        workspaces = self.db.get_workspaces()
        snapshot.name = self._check_new_name(workspaces, snapshot.name)
        workspaces.append(snapshot)
        self.db.set_workspaces(workspaces)
        logger.info(f"Workspace saved: {snapshot.name}")
        return snapshot.name

    def save_current_workspace(
        self, name: Optional[str] = None, tags: Optional[list[str]] = None, notes: str = ""
    ) -> WorkspaceSnapshot:
        """Capture the live session and store it."""
        snapshot = self.capture(name=name, tags=tags, notes=notes)
        self.save_workspace(snapshot)
        return snapshot

    def get_workspace(self, name: str) -> Optional[WorkspaceSnapshot]:
        """Get a stored workspace by name, or None."""
        return self._find(self.db.get_workspaces(), name)

    def require_workspace(self, name: str) -> WorkspaceSnapshot:
        workspace = self.get_workspace(name)
        if workspace is None:
            raise WorkspaceNotFoundError(f"Workspace not found: {name}")
        return workspace

    def list_workspaces(self, tag: Optional[str] = None) -> list[WorkspaceSummary]:
        """List stored workspaces, newest first.

        Args:
            tag: Only list workspaces carrying this tag

        Returns:
            Light summaries (name, date, tags, stats)
        """
        summaries = [w.summary() for w in self.db.get_workspaces() if tag is None or tag in w.tags]
        summaries.sort(key=lambda s: s.date, reverse=True)
        return summaries

    def rename_workspace(self, old_name: str, new_name: str) -> WorkspaceSnapshot:
        """Rename a stored workspace.

        Raises:
            WorkspaceNotFoundError: If ``old_name`` is not stored
            WorkspaceExistsError: If ``new_name`` is already taken
        """
        workspaces = self.db.get_workspaces()
        workspace = self._find(workspaces, old_name)
        if workspace is None:
            raise WorkspaceNotFoundError(f"Workspace not found: {old_name}")

        if new_name.strip() == old_name:
            return workspace

        workspace.name = self._check_new_name(workspaces, new_name)
        self.db.set_workspaces(workspaces)
        logger.info(f"Workspace renamed: {old_name} -> {workspace.name}")
        return workspace

    def duplicate_workspace(self, name: str, new_name: str) -> WorkspaceSnapshot:
        """Store a deep copy of a workspace under a new name and date.

        Raises:
            WorkspaceNotFoundError: If ``name`` is not stored
            WorkspaceExistsError: If ``new_name`` is already taken
        """
        workspaces = self.db.get_workspaces()
        source = self._find(workspaces, name)
        if source is None:
            raise WorkspaceNotFoundError(f"Workspace not found: {name}")

        copy = source.copy()
        copy.name = self._check_new_name(workspaces, new_name)
        copy.date = now_iso()
        workspaces.append(copy)
        self.db.set_workspaces(workspaces)
        logger.info(f"Workspace duplicated: {name} -> {copy.name}")
        return copy

    def delete_workspace(self, name: str) -> None:
        """Delete a stored workspace.

        Raises:
            WorkspaceNotFoundError: If ``name`` is not stored
        """
        workspaces = self.db.get_workspaces()
        remaining = [w for w in workspaces if w.name != name]
        if len(remaining) == len(workspaces):
            raise WorkspaceNotFoundError(f"Workspace not found: {name}")

        logger.warning(f"Deleting workspace: {name}")
        self.db.set_workspaces(remaining)

    def restore_workspace(
        self, name: str, mode: Union[str, RestoreMode] = RestoreMode.MERGE_CURRENT
    ) -> RestoreReport:
        """Restore a stored workspace.

        Raises:
            WorkspaceNotFoundError: If ``name`` is not stored
        """
        return self._restore(self.require_workspace(name), mode)

    # Autosave ring

    def autosave_current_session(self) -> Optional[AutosaveEntry]:
        """Capture the session into the autosave ring.

        Returns:
            The new entry, or None when autosave is disabled
        """
        settings = self.get_settings()
        if not settings.autosave_enabled:
            return None

        snapshot = capture_workspace(
            self._require_host(), settings, name=f"Session {datetime.now().strftime('%H:%M:%S')}"
        )
        ring = self.db.get_autosave_ring()
        entry = ring.push(snapshot, settings.autosave_max)
        self.db.set_autosave_ring(ring)
        logger.debug(f"Autosave {entry.id} stored ({len(ring.entries)} in ring)")
        return entry

    def list_autosaves(self) -> list[AutosaveInfo]:
        """List autosaves, newest first."""
        return [
            AutosaveInfo(
                id=entry.id,
                index=index,
                name=entry.snapshot.name,
                date=entry.snapshot.date,
                stats=entry.snapshot.stats,
            )
            for index, entry in enumerate(self.db.get_autosave_ring().entries)
        ]

    def get_autosave(self, autosave_id: int) -> WorkspaceSnapshot:
        """Get an autosaved snapshot by id.

        Raises:
            AutosaveNotFoundError: If the id is no longer in the ring
        """
        entry = self.db.get_autosave_ring().find(autosave_id)
        if entry is None:
            raise AutosaveNotFoundError(f"Autosave not found: {autosave_id}")
        return entry.snapshot

    def restore_autosave(
        self, autosave_id: int, mode: Union[str, RestoreMode] = RestoreMode.MERGE_CURRENT
    ) -> RestoreReport:
        """Restore an autosave by id.

        Raises:
            AutosaveNotFoundError: If the id is no longer in the ring
        """
        return self._restore(self.get_autosave(autosave_id), mode)

    # Import/export

    def export_workspace(self, name: str) -> str:
        """Export one stored workspace as envelope JSON.

        Raises:
            WorkspaceNotFoundError: If ``name`` is not stored
        """
        return codec.export_workspace(self.require_workspace(name))

    def export_all_workspaces(self) -> str:
        return codec.export_workspaces(self.db.get_workspaces())

    def export_current_snapshot(self, name: Optional[str] = None) -> str:
        """Capture the live session and export it without storing it."""
        return codec.export_workspace(self.capture(name=name))

    def import_workspaces_from_text(self, text: str) -> codec.ImportResult:
        """Import workspaces from envelope or bare-list JSON.

        Invalid items are reported in the result and skipped; the
        collection is only written once validation and name resolution
        are complete.

        Raises:
            WorkspaceImportError: If the text is malformed or nothing is valid
        """
        incoming, errors = codec.decode_workspaces(text)
        merged, result = codec.merge_imported(self.db.get_workspaces(), incoming)
        result.skipped = len(errors)
        result.errors = errors

        if result.imported:
            self.db.set_workspaces(merged)

        logger.info(
            f"Import finished: {result.imported} imported, {result.skipped} skipped, "
            f"{result.duplicates} already present"
        )
        return result
