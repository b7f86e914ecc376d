"""Browser host adapter interface.

The engines never talk to a browser directly: they go through a
``HostAdapter`` that enumerates and mutates windows, tabs and groups.
Concrete adapters (an extension bridge, a remote-debugging client, a
test double) implement this interface and raise ``HostError`` when the
browser rejects a call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..data.models import WindowBounds

# Group id reported for tabs that belong to no group
TAB_GROUP_ID_NONE = -1


class HostError(Exception):
    """Raised when the browser rejects a host operation."""

    pass


@dataclass
class HostWindow:
    """A live browser window."""

    id: int
    left: Optional[int] = None
    top: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    state: str = "normal"
    focused: bool = False

    @property
    def bounds(self) -> WindowBounds:
        return WindowBounds(
            left=self.left, top=self.top, width=self.width, height=self.height, state=self.state
        )


@dataclass
class HostTab:
    """A live browser tab."""

    id: int
    window_id: int
    url: str
    pinned: bool = False
    group_id: int = TAB_GROUP_ID_NONE
    title: str = ""
    fav_icon_url: str = ""
    index: int = 0

    @property
    def is_grouped(self) -> bool:
        return self.group_id != TAB_GROUP_ID_NONE


@dataclass
class HostGroup:
    """A live tab group."""

    id: int
    window_id: int
    title: str = ""
    color: str = "grey"
    collapsed: bool = False


class HostAdapter(ABC):
    """Window/tab/group primitives consumed by the engines.

    Listing methods return items in host order. Mutations are issued one
    at a time by the callers and may raise ``HostError``.
    """

    @abstractmethod
    def list_windows(self) -> list[HostWindow]:
        """List every open window."""

    @abstractmethod
    def get_current_window(self) -> HostWindow:
        """Return the window the user is acting on."""

    @abstractmethod
    def list_tabs(self, window_id: Optional[int] = None) -> list[HostTab]:
        """List tabs of one window, or of every window when ``window_id`` is None."""

    @abstractmethod
    def list_groups(self, window_id: Optional[int] = None) -> list[HostGroup]:
        """List groups of one window, or of every window when ``window_id`` is None."""

    @abstractmethod
    def create_tab(
        self, window_id: int, url: str, pinned: bool = False, active: bool = False
    ) -> HostTab:
        """Open a tab at the end of a window."""

    @abstractmethod
    def remove_tabs(self, tab_ids: list[int]) -> None:
        """Close tabs."""

    @abstractmethod
    def move_tabs(self, tab_ids: list[int], window_id: int, index: int = -1) -> None:
        """Move tabs into a window (``index=-1`` appends)."""

    @abstractmethod
    def group_tabs(self, tab_ids: list[int], window_id: Optional[int] = None) -> int:
        """Put tabs into a new group and return the group id."""

    @abstractmethod
    def ungroup_tabs(self, tab_ids: list[int]) -> None:
        """Take tabs out of their groups."""

    @abstractmethod
    def update_group(
        self,
        group_id: int,
        title: Optional[str] = None,
        color: Optional[str] = None,
        collapsed: Optional[bool] = None,
    ) -> None:
        """Change group properties; ``None`` leaves a property untouched."""

    @abstractmethod
    def create_window(
        self, bounds: Optional[WindowBounds] = None, focused: bool = False,
        tab_id: Optional[int] = None,
    ) -> HostWindow:
        """Open a window, optionally moving an existing tab into it."""

    @abstractmethod
    def remove_window(self, window_id: int) -> None:
        """Close a window."""

    @abstractmethod
    def update_window(self, window_id: int, bounds: WindowBounds) -> None:
        """Apply bounds and state to a window."""
