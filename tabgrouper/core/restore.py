"""Workspace restore engine.

Rehydrates a ``WorkspaceSnapshot`` into live windows, tabs and groups.
Failures are recorded per tab, group and window in a ``RestoreReport``
and never abort the rest of the restore.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from ..browser.host import HostAdapter, HostError
from ..data.models import TabRecord, WindowSnapshot, WorkspaceSnapshot
from ..utils.logger import get_logger

logger = get_logger(__name__)


class RestoreMode(str, Enum):
    """How a snapshot is placed relative to the live windows.

    NEW_WINDOW opens a new window per snapshot window. MERGE_CURRENT
    appends the first snapshot window to the current window and opens
    new windows for the others. REPLACE_CURRENT does the same after
    closing the current window's tabs.
    """

    NEW_WINDOW = "NEW_WINDOW"
    MERGE_CURRENT = "MERGE_CURRENT"
    REPLACE_CURRENT = "REPLACE_CURRENT"

    @classmethod
    def parse(cls, value: Union[str, "RestoreMode"]) -> "RestoreMode":
        """Accept a mode or its name.

        Raises:
            ValueError: If the value names no mode
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unknown restore mode: {value}") from None


@dataclass
class RestoreFailure:
    """One item that could not be restored."""

    kind: str
    target: str
    reason: str

    def __str__(self) -> str:
        return f"{self.kind} {self.target}: {self.reason}"


@dataclass
class RestoreReport:
    """Outcome of a restore.

    Attributes:
        workspace: Name of the restored snapshot
        mode: Restore mode used
        window_ids: Ids of the windows that received tabs, in snapshot order
        created_windows: Ids of the windows opened by the restore
        tabs_created: Number of tabs opened
        groups_created: Number of groups created
        failures: Items that could not be restored
    """

    workspace: str
    mode: RestoreMode
    window_ids: list[int] = field(default_factory=list)
    created_windows: list[int] = field(default_factory=list)
    tabs_created: int = 0
    groups_created: int = 0
    failures: list[RestoreFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every item was restored."""
        return not self.failures

    def fail(self, kind: str, target: str, error: Exception) -> None:
        logger.error(f"Failed to restore {kind} {target}: {error}")
        self.failures.append(RestoreFailure(kind=kind, target=target, reason=str(error)))

    def to_dict(self) -> dict:
        return {
            "workspace": self.workspace,
            "mode": self.mode.value,
            "windows": list(self.window_ids),
            "created_windows": list(self.created_windows),
            "tabs": self.tabs_created,
            "groups": self.groups_created,
            "failures": [str(f) for f in self.failures],
        }


class RestoreEngine:
    """Rehydrates workspace snapshots through a host adapter."""

    def __init__(self, host: HostAdapter) -> None:
        self.host = host

    def restore(
        self, snapshot: WorkspaceSnapshot, mode: Union[str, RestoreMode] = RestoreMode.MERGE_CURRENT
    ) -> RestoreReport:
        """Restore a snapshot.

        Args:
            snapshot: Workspace to restore
            mode: Restore mode (or its name)

        Returns:
            Report of what was created and what failed

        Raises:
            ValueError: If mode is unknown
        """
        mode = RestoreMode.parse(mode)
        report = RestoreReport(workspace=snapshot.name, mode=mode)
        logger.info(f"Restoring '{snapshot.name}' ({mode.value})")

        if mode is RestoreMode.NEW_WINDOW:
            for window in snapshot.windows:
                self._restore_into_new_window(window, report)
            return report

        current = self.host.get_current_window()

        if mode is RestoreMode.REPLACE_CURRENT:
            tab_ids = [tab.id for tab in self.host.list_tabs(current.id)]
            if tab_ids:
                try:
                    self.host.remove_tabs(tab_ids)
                except HostError as e:
                    report.fail("window", str(current.id), e)

        for position, window in enumerate(snapshot.windows):
            if position == 0:
                report.window_ids.append(current.id)
                self._populate(current.id, window, report)
            else:
                self._restore_into_new_window(window, report)

        return report

    def _restore_into_new_window(self, window: WindowSnapshot, report: RestoreReport) -> None:
        try:
            created = self.host.create_window(bounds=window.bounds, focused=False)
        except HostError as e:
            report.fail("window", window.bounds.state, e)
            return

        report.created_windows.append(created.id)
        report.window_ids.append(created.id)
        self._populate(created.id, window, report)

    def _create_tabs(self, window_id: int, tabs: list[TabRecord], report: RestoreReport) -> list[int]:
        """Open tabs in order; a tab the host rejects is skipped."""
        tab_ids: list[int] = []
        for record in tabs:
            try:
                tab = self.host.create_tab(window_id, record.url, pinned=record.pinned, active=False)
            except HostError as e:
                report.fail("tab", record.url, e)
                continue
            tab_ids.append(tab.id)
            report.tabs_created += 1
        return tab_ids

    def _populate(self, window_id: int, window: WindowSnapshot, report: RestoreReport) -> None:
        """Open loose tabs first, then each group from its freshly opened tabs."""
        self._create_tabs(window_id, window.ungrouped, report)

        for group in window.groups:
            tab_ids = self._create_tabs(window_id, group.tabs, report)
            if not tab_ids:
                continue
            try:
                group_id = self.host.group_tabs(tab_ids, window_id=window_id)
                self.host.update_group(
                    group_id,
                    title=group.title,
                    color=group.color,
                    collapsed=group.collapsed or None,
                )
            except HostError as e:
                report.fail("group", group.title, e)
                continue
            report.groups_created += 1
