"""Workspace capture.

Builds a ``WorkspaceSnapshot`` from the live state reported by the host.
Capturing only reads from the host; it never mutates a window, tab or
group.
"""

from datetime import datetime, timezone
from typing import Optional

from ..browser.host import TAB_GROUP_ID_NONE, HostAdapter, HostTab
from ..data.models import (
    GroupRecord,
    TabRecord,
    WindowSnapshot,
    WorkspaceSettings,
    WorkspaceSnapshot,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


def now_iso() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_workspace_name() -> str:
    return f"Workspace {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"


def build_tab_record(tab: HostTab, include_meta: bool) -> TabRecord:
    """Convert a live tab, keeping title and favicon only when asked to."""
    if include_meta:
        return TabRecord(
            url=tab.url, pinned=tab.pinned, title=tab.title or "", favicon=tab.fav_icon_url or ""
        )
    return TabRecord(url=tab.url, pinned=tab.pinned)


def capture_window(host: HostAdapter, window_id: int, settings: WorkspaceSettings) -> WindowSnapshot:
    """Capture one window: tabs are partitioned by the group they belong to.

    Args:
        host: Browser host adapter
        window_id: Window to capture
        settings: Capture settings (pinned tabs, metadata)

    Returns:
        WindowSnapshot with groups in host order
    """
    by_group: dict[int, list[TabRecord]] = {}
    for tab in host.list_tabs(window_id):
        if tab.pinned and not settings.include_pinned:
            continue
        by_group.setdefault(tab.group_id, []).append(
            build_tab_record(tab, settings.include_meta)
        )

    groups = [
        GroupRecord(
            title=group.title,
            color=group.color,
            tabs=by_group.get(group.id, []),
            collapsed=group.collapsed,
        )
        for group in host.list_groups(window_id)
    ]

    return WindowSnapshot(groups=groups, ungrouped=by_group.get(TAB_GROUP_ID_NONE, []))


def capture_workspace(
    host: HostAdapter,
    settings: WorkspaceSettings,
    name: Optional[str] = None,
    tags: Optional[list[str]] = None,
    notes: str = "",
) -> WorkspaceSnapshot:
    """Capture every open window into a workspace snapshot.

    Args:
        host: Browser host adapter
        settings: Capture settings
        name: Workspace name (a timestamped default when empty)
        tags: Free-form labels
        notes: Free-form text

    Returns:
        The captured, unsaved snapshot
    """
    windows = []
    for window in host.list_windows():
        snapshot = capture_window(host, window.id, settings)
        snapshot.bounds = window.bounds
        windows.append(snapshot)

    workspace = WorkspaceSnapshot(
        name=name or default_workspace_name(),
        date=now_iso(),
        tags=list(tags) if tags else [],
        notes=str(notes or ""),
        windows=windows,
    )

    stats = workspace.stats
    logger.debug(
        f"Captured '{workspace.name}': {stats.windows} windows, "
        f"{stats.groups} groups, {stats.tabs} tabs"
    )
    return workspace
