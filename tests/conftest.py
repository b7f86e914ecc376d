from typing import Optional

import pytest

from tabgrouper.browser.host import (
    TAB_GROUP_ID_NONE,
    HostAdapter,
    HostError,
    HostGroup,
    HostTab,
    HostWindow,
)
from tabgrouper.data.database import Database
from tabgrouper.data.models import WindowBounds

MUTATIONS = {
    "create_tab",
    "remove_tabs",
    "move_tabs",
    "group_tabs",
    "ungroup_tabs",
    "update_group",
    "create_window",
    "remove_window",
    "update_window",
}


class FakeHost(HostAdapter):
    """In-memory browser: windows, tabs in window order, and groups."""

    def __init__(self) -> None:
        self.windows: dict[int, HostWindow] = {}
        self.tabs: list[HostTab] = []
        self.groups: dict[int, HostGroup] = {}
        self.current_window_id: Optional[int] = None
        self.fail_urls: set[str] = set()
        self.calls: list[tuple] = []
        self._next_id = 1

    def _new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    # Test helpers

    def add_window(self, **bounds) -> HostWindow:
        window = HostWindow(id=self._new_id(), **bounds)
        self.windows[window.id] = window
        if self.current_window_id is None:
            self.current_window_id = window.id
        return window

    def add_tab(self, window_id: int, url: str, pinned: bool = False, title: str = "") -> HostTab:
        tab = HostTab(
            id=self._new_id(), window_id=window_id, url=url, pinned=pinned,
            title=title, fav_icon_url=f"{url}/favicon.ico" if title else "",
        )
        self.tabs.append(tab)
        return tab

    def add_group(self, window_id: int, title: str, color: str, urls: list[str]) -> HostGroup:
        group = HostGroup(id=self._new_id(), window_id=window_id, title=title, color=color)
        self.groups[group.id] = group
        for url in urls:
            self.add_tab(window_id, url).group_id = group.id
        return group

    def tab(self, tab_id: int) -> HostTab:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        raise HostError(f"No tab with id: {tab_id}")

    def tabs_in_group(self, group_id: int) -> list[HostTab]:
        return [tab for tab in self.tabs if tab.group_id == group_id]

    def mutation_calls(self) -> list[tuple]:
        return [call for call in self.calls if call[0] in MUTATIONS]

    def _prune_groups(self) -> None:
        used = {tab.group_id for tab in self.tabs}
        for group_id in list(self.groups):
            if group_id not in used:
                del self.groups[group_id]

    # HostAdapter

    def list_windows(self) -> list[HostWindow]:
        self.calls.append(("list_windows",))
        return list(self.windows.values())

    def get_current_window(self) -> HostWindow:
        self.calls.append(("get_current_window",))
        return self.windows[self.current_window_id]

    def list_tabs(self, window_id: Optional[int] = None) -> list[HostTab]:
        self.calls.append(("list_tabs", window_id))
        return [tab for tab in self.tabs if window_id is None or tab.window_id == window_id]

    def list_groups(self, window_id: Optional[int] = None) -> list[HostGroup]:
        self.calls.append(("list_groups", window_id))
        return [g for g in self.groups.values() if window_id is None or g.window_id == window_id]

    def create_tab(self, window_id, url, pinned=False, active=False) -> HostTab:
        self.calls.append(("create_tab", window_id, url))
        if url in self.fail_urls:
            raise HostError(f"Cannot open {url}")
        if window_id not in self.windows:
            raise HostError(f"No window with id: {window_id}")
        return self.add_tab(window_id, url, pinned=pinned)

    def remove_tabs(self, tab_ids) -> None:
        self.calls.append(("remove_tabs", list(tab_ids)))
        self.tabs = [tab for tab in self.tabs if tab.id not in tab_ids]
        self._prune_groups()

    def move_tabs(self, tab_ids, window_id, index=-1) -> None:
        self.calls.append(("move_tabs", list(tab_ids), window_id))
        if window_id not in self.windows:
            raise HostError(f"No window with id: {window_id}")
        moved = [self.tab(tab_id) for tab_id in tab_ids]
        for tab in moved:
            self.tabs.remove(tab)
            tab.window_id = window_id
            tab.group_id = TAB_GROUP_ID_NONE
            self.tabs.append(tab)
        self._prune_groups()

    def group_tabs(self, tab_ids, window_id=None) -> int:
        self.calls.append(("group_tabs", list(tab_ids), window_id))
        if not tab_ids:
            raise HostError("No tabs to group")
        members = [self.tab(tab_id) for tab_id in tab_ids]
        group = HostGroup(id=self._new_id(), window_id=window_id or members[0].window_id)
        self.groups[group.id] = group
        for tab in members:
            tab.group_id = group.id
            tab.window_id = group.window_id
        self._prune_groups()
        return group.id

    def ungroup_tabs(self, tab_ids) -> None:
        self.calls.append(("ungroup_tabs", list(tab_ids)))
        for tab_id in tab_ids:
            self.tab(tab_id).group_id = TAB_GROUP_ID_NONE
        self._prune_groups()

    def update_group(self, group_id, title=None, color=None, collapsed=None) -> None:
        self.calls.append(("update_group", group_id, title, color, collapsed))
        group = self.groups.get(group_id)
        if group is None:
            raise HostError(f"No group with id: {group_id}")
        if title is not None:
            group.title = title
        if color is not None:
            group.color = color
        if collapsed is not None:
            group.collapsed = collapsed

    def create_window(self, bounds=None, focused=False, tab_id=None) -> HostWindow:
        self.calls.append(("create_window", tab_id))
        bounds = bounds or WindowBounds()
        window = HostWindow(
            id=self._new_id(), left=bounds.left, top=bounds.top,
            width=bounds.width, height=bounds.height, state=bounds.state,
        )
        self.windows[window.id] = window
        if tab_id is not None:
            tab = self.tab(tab_id)
            self.tabs.remove(tab)
            tab.window_id = window.id
            tab.group_id = TAB_GROUP_ID_NONE
            self.tabs.append(tab)
            self._prune_groups()
        return window

    def remove_window(self, window_id) -> None:
        self.calls.append(("remove_window", window_id))
        self.windows.pop(window_id, None)
        self.tabs = [tab for tab in self.tabs if tab.window_id != window_id]
        self._prune_groups()

    def update_window(self, window_id, bounds) -> None:
        self.calls.append(("update_window", window_id))
        window = self.windows[window_id]
        window.left, window.top = bounds.left, bounds.top
        window.width, window.height, window.state = bounds.width, bounds.height, bounds.state


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("TABGROUPER_HOME", raising=False)


@pytest.fixture
def database(tmp_path):
    return Database(tmp_path / "tabgrouper.db")


@pytest.fixture
def host():
    fake = FakeHost()
    fake.add_window(left=0, top=0, width=1280, height=800)
    return fake


@pytest.fixture
def window_id(host):
    return host.current_window_id
