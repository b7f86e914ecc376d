"""Data models for Tab Grouper.

This module defines the domain models using dataclasses: the rule
engine configuration, the persisted settings, and the workspace
snapshot hierarchy (workspace > window > group > tab) together with
the autosave ring and the single-step undo record.

Snapshot models serialize to plain dicts with ``to_dict`` and are
rebuilt with ``from_dict``; the dict shape is the one written into
export files, so it must stay stable.
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Optional

# Group colors accepted by the host
COLORS: tuple[str, ...] = (
    "grey",
    "blue",
    "red",
    "yellow",
    "green",
    "pink",
    "purple",
    "cyan",
    "orange",
)


@dataclass(frozen=True)
class Rule:
    """A categorization rule.

    Rules are always evaluated as an ordered list: the first rule whose
    pattern matches wins and evaluation stops there.

    Attributes:
        pattern: Regular expression searched (unanchored) in the subject
        group: Label of the group the rule sends matching tabs to
        color: Optional group color (one of COLORS)
    """

    pattern: str
    group: str
    color: Optional[str] = None

    def __post_init__(self) -> None:
        """Compile the pattern and validate the color."""
        if self.color is not None and self.color not in COLORS:
            raise ValueError(f"Invalid color: {self.color}")
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise ValueError(f"Invalid rule pattern '{self.pattern}': {e}") from e
        object.__setattr__(self, "_regex", compiled)

    def matches(self, subject: str) -> bool:
        """Check whether the rule pattern occurs anywhere in ``subject``."""
        return self._regex.search(subject) is not None

    def to_dict(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "group": self.group, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Rule":
        return cls(pattern=data["pattern"], group=data["group"], color=data.get("color"))


# Category-mode rules, matched against the hostname
DEFAULT_RULES: list[Rule] = [
    Rule(r"youtube|vimeo|twitch", "🎥 Video", "red"),
    Rule(r"notion|docs\.google|drive\.google|evernote", "📑 Docs", "yellow"),
    Rule(r"openai|chatgpt|claude|gemini|anthropic", "🤖 AI", "purple"),
    Rule(r"mail\.google|outlook|proton", "📬 Mail", "blue"),
    Rule(r"github|gitlab|bitbucket|stackoverflow", "💻 Code", "cyan"),
    Rule(r"twitter|x\.com|linkedin|facebook|instagram", "📱 Social", "green"),
]

# Fallback bucket for category mode
OTHER_CATEGORY = "🌐 Other"
OTHER_COLOR = "grey"

DEFAULT_PRESET = "Empleaido"

# Smart-merge presets, matched against the full URL
DEFAULT_PRESETS: dict[str, list[Rule]] = {
    DEFAULT_PRESET: [
        Rule(r"notion|docs\.google|drive\.google|sheets\.google|evernote", "📑 Docs", "yellow"),
        Rule(r"openai|chatgpt|claude|anthropic|gemini", "🤖 AI", "purple"),
        Rule(r"github|cursor|stackblitz|gitlab|bitbucket|stackoverflow", "💻 Code", "cyan"),
        Rule(r"youtube|vimeo|twitch", "🎥 Video", "red"),
        Rule(r"mail\.google|outlook|proton", "📬 Mail", "green"),
        Rule(r"twitter|x\.com|reddit|instagram|linkedin|facebook", "📱 Social", "orange"),
    ]
}


@dataclass
class AutoCollapseByType:
    """Selective collapse policy.

    Attributes:
        enabled: Whether only matching groups are collapsed
        only: Title prefixes of the groups to collapse
    """

    enabled: bool = False
    only: list[str] = field(default_factory=lambda: ["🎥 Video", "📱 Social"])


@dataclass
class GroupingConfig:
    """Rule engine and smart-merge configuration.

    A single value passed explicitly into every rule and bucketing call.
    ``version`` is bumped by the store on every persisted update.

    Attributes:
        normalize_subdomains: Reduce hosts to their registrable domain
        whitelist: Exact hostnames that always get their own group
        blacklist_ignore: URL prefixes that are never grouped
        group_max_tabs: Maximum number of tabs per group
        auto_collapse_after_merge: Collapse every group after a merge
        auto_collapse_by_type: Collapse only groups with matching titles
        preset: Name of the active preset
        presets: Ordered rule lists by preset name
        version: Configuration revision
    """

    normalize_subdomains: bool = True
    whitelist: list[str] = field(default_factory=lambda: ["drive.google.com"])
    blacklist_ignore: list[str] = field(
        default_factory=lambda: ["chrome://", "about:", "blob:", "data:"]
    )
    group_max_tabs: int = 30
    auto_collapse_after_merge: bool = True
    auto_collapse_by_type: AutoCollapseByType = field(default_factory=AutoCollapseByType)
    preset: str = DEFAULT_PRESET
    presets: dict[str, list[Rule]] = field(
        default_factory=lambda: {name: list(rules) for name, rules in DEFAULT_PRESETS.items()}
    )
    version: int = 1

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not isinstance(self.group_max_tabs, int) or self.group_max_tabs <= 0:
            raise ValueError(f"group_max_tabs must be a positive integer, got {self.group_max_tabs}")

    def active_rules(self) -> list[Rule]:
        """Rules of the active preset, or the built-in preset when unknown."""
        rules = self.presets.get(self.preset)
        if rules is None:
            return list(DEFAULT_PRESETS[DEFAULT_PRESET])
        return rules

    def to_dict(self) -> dict[str, Any]:
        return {
            "normalize_subdomains": self.normalize_subdomains,
            "whitelist": list(self.whitelist),
            "blacklist_ignore": list(self.blacklist_ignore),
            "group_max_tabs": self.group_max_tabs,
            "auto_collapse_after_merge": self.auto_collapse_after_merge,
            "auto_collapse_by_type": {
                "enabled": self.auto_collapse_by_type.enabled,
                "only": list(self.auto_collapse_by_type.only),
            },
            "preset": self.preset,
            "presets": {
                name: [rule.to_dict() for rule in rules] for name, rules in self.presets.items()
            },
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroupingConfig":
        """Build a config, filling every missing field with its default."""
        defaults = cls()
        by_type = data.get("auto_collapse_by_type") or {}
        presets = data.get("presets")
        return cls(
            normalize_subdomains=data.get("normalize_subdomains", defaults.normalize_subdomains),
            whitelist=list(data.get("whitelist", defaults.whitelist)),
            blacklist_ignore=list(data.get("blacklist_ignore", defaults.blacklist_ignore)),
            group_max_tabs=data.get("group_max_tabs", defaults.group_max_tabs),
            auto_collapse_after_merge=data.get(
                "auto_collapse_after_merge", defaults.auto_collapse_after_merge
            ),
            auto_collapse_by_type=AutoCollapseByType(
                enabled=bool(by_type.get("enabled", False)),
                only=list(by_type.get("only", defaults.auto_collapse_by_type.only)),
            ),
            preset=data.get("preset", defaults.preset),
            presets=(
                {name: [Rule.from_dict(r) for r in rules] for name, rules in presets.items()}
                if presets is not None
                else defaults.presets
            ),
            version=data.get("version", defaults.version),
        )


@dataclass
class WorkspaceSettings:
    """Workspace capture and autosave settings.

    Attributes:
        include_pinned: Capture pinned tabs too
        include_meta: Capture tab title and favicon
        autosave_enabled: Whether autosave triggers capture anything
        autosave_max: Capacity of the autosave ring (1..50)
    """

    include_pinned: bool = False
    include_meta: bool = True
    autosave_enabled: bool = True
    autosave_max: int = 10

    MIN_AUTOSAVES = 1
    MAX_AUTOSAVES = 50

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if not self.MIN_AUTOSAVES <= self.autosave_max <= self.MAX_AUTOSAVES:
            raise ValueError(
                f"autosave_max must be between {self.MIN_AUTOSAVES} and "
                f"{self.MAX_AUTOSAVES}, got {self.autosave_max}"
            )


@dataclass
class GroupingPreferences:
    """Flat grouping preferences used by keyboard commands."""

    ignore_pinned: bool = True
    window_only: bool = True
    mode: str = "domain"

    VALID_MODES = {"domain", "category"}

    def __post_init__(self) -> None:
        if self.mode not in self.VALID_MODES:
            raise ValueError(f"Invalid grouping mode: {self.mode}")


@dataclass
class TabRecord:
    """A captured tab.

    Attributes:
        url: Absolute URL of the tab
        pinned: Whether the tab was pinned
        title: Page title (only when metadata capture is enabled)
        favicon: Favicon URL (only when metadata capture is enabled)
    """

    url: str
    pinned: bool = False
    title: Optional[str] = None
    favicon: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url, "pinned": self.pinned}
        if self.title is not None:
            data["title"] = self.title
        if self.favicon is not None:
            data["favicon"] = self.favicon
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TabRecord":
        return cls(
            url=data["url"],
            pinned=data.get("pinned") is True,
            title=data.get("title"),
            favicon=data.get("favicon"),
        )


@dataclass
class GroupRecord:
    """A captured tab group."""

    title: str
    color: Optional[str] = None
    tabs: list[TabRecord] = field(default_factory=list)
    collapsed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "color": self.color,
            "collapsed": self.collapsed,
            "tabs": [tab.to_dict() for tab in self.tabs],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroupRecord":
        title = data.get("title")
        return cls(
            title=title if isinstance(title, str) else "",
            color=data.get("color") or None,
            tabs=[TabRecord.from_dict(t) for t in data.get("tabs", [])],
            collapsed=data.get("collapsed") is True,
        )


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass
class WindowBounds:
    """Window geometry and state (normal, maximized, minimized, fullscreen)."""

    left: Optional[int] = None
    top: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    state: str = "normal"

    def to_dict(self) -> dict[str, Any]:
        return {
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "height": self.height,
            "state": self.state,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "WindowBounds":
        if not isinstance(data, dict):
            data = {}
        state = data.get("state")
        return cls(
            left=_int_or_none(data.get("left")),
            top=_int_or_none(data.get("top")),
            width=_int_or_none(data.get("width")),
            height=_int_or_none(data.get("height")),
            state=state if isinstance(state, str) and state else "normal",
        )


@dataclass
class WindowSnapshot:
    """One captured window: its bounds, its groups, and its loose tabs."""

    bounds: WindowBounds = field(default_factory=WindowBounds)
    groups: list[GroupRecord] = field(default_factory=list)
    ungrouped: list[TabRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bounds": self.bounds.to_dict(),
            "groups": [group.to_dict() for group in self.groups],
            "ungrouped": [tab.to_dict() for tab in self.ungrouped],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WindowSnapshot":
        return cls(
            bounds=WindowBounds.from_dict(data.get("bounds")),
            groups=[GroupRecord.from_dict(g) for g in data.get("groups", [])],
            ungrouped=[TabRecord.from_dict(t) for t in data.get("ungrouped", [])],
        )


@dataclass(frozen=True)
class WorkspaceStats:
    """Counts derived from a workspace's windows."""

    windows: int = 0
    groups: int = 0
    tabs: int = 0

    @classmethod
    def from_windows(cls, windows: list[WindowSnapshot]) -> "WorkspaceStats":
        """Fold over windows.

        Loose tabs of a window count as one extra group.
        """
        groups = 0
        tabs = 0
        for window in windows:
            groups += len(window.groups) + (1 if window.ungrouped else 0)
            tabs += len(window.ungrouped)
            for group in window.groups:
                tabs += len(group.tabs)
        return cls(windows=len(windows), groups=groups, tabs=tabs)

    def to_dict(self) -> dict[str, int]:
        return {"windows": self.windows, "groups": self.groups, "tabs": self.tabs}


@dataclass
class WorkspaceSummary:
    """Light projection of a workspace used by listings."""

    name: str
    date: str
    tags: list[str]
    stats: WorkspaceStats


@dataclass
class WorkspaceSnapshot:
    """A named, dated capture of every window of a session.

    ``stats`` is computed from ``windows`` on access and is never stored
    independently, so it cannot drift from the captured structure.

    Attributes:
        name: Name, unique within the store
        date: ISO-8601 capture timestamp
        tags: Free-form labels
        notes: Free-form text
        windows: Captured windows in host order
    """

    name: str
    date: str
    tags: list[str] = field(default_factory=list)
    notes: str = ""
    windows: list[WindowSnapshot] = field(default_factory=list)

    @property
    def stats(self) -> WorkspaceStats:
        return WorkspaceStats.from_windows(self.windows)

    def summary(self) -> WorkspaceSummary:
        return WorkspaceSummary(
            name=self.name, date=self.date, tags=list(self.tags), stats=self.stats
        )

    def copy(self) -> "WorkspaceSnapshot":
        """Deep copy of the snapshot."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "date": self.date,
            "tags": list(self.tags),
            "notes": self.notes,
            "windows": [window.to_dict() for window in self.windows],
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkspaceSnapshot":
        tags = data.get("tags")
        date = data.get("date")
        return cls(
            name=data["name"],
            date=date if isinstance(date, str) else "",
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            notes=str(data.get("notes") or ""),
            windows=[WindowSnapshot.from_dict(w) for w in data.get("windows", [])],
        )


@dataclass
class AutosaveEntry:
    """An autosaved snapshot keyed by the id it received on insertion."""

    id: int
    snapshot: WorkspaceSnapshot

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "snapshot": self.snapshot.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AutosaveEntry":
        return cls(id=int(data["id"]), snapshot=WorkspaceSnapshot.from_dict(data["snapshot"]))


@dataclass
class AutosaveRing:
    """Newest-first, capacity-bounded log of autosaved snapshots.

    Ids are handed out from ``next_id`` and never reused, so an id keeps
    pointing at the same snapshot while the ring shifts underneath it.
    """

    entries: list[AutosaveEntry] = field(default_factory=list)
    next_id: int = 1

    def push(self, snapshot: WorkspaceSnapshot, capacity: int) -> AutosaveEntry:
        """Prepend a snapshot and drop whatever falls past ``capacity``."""
        entry = AutosaveEntry(id=self.next_id, snapshot=snapshot)
        self.next_id += 1
        self.entries.insert(0, entry)
        del self.entries[capacity:]
        return entry

    def find(self, autosave_id: int) -> Optional[AutosaveEntry]:
        for entry in self.entries:
            if entry.id == autosave_id:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "next_id": self.next_id,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "AutosaveRing":
        if not data:
            return cls()
        entries = [AutosaveEntry.from_dict(e) for e in data.get("entries", [])]
        next_id = int(data.get("next_id", 1))
        # next_id must stay ahead of every stored id
        if entries:
            next_id = max(next_id, max(e.id for e in entries) + 1)
        return cls(entries=entries, next_id=next_id)


@dataclass(frozen=True)
class UndoTabState:
    """Grouping state of one tab before a grouping operation."""

    id: int
    group_id: int
    pinned: bool = False


@dataclass
class UndoSnapshot:
    """Single-step undo record taken right before ``group_tabs``.

    Attributes:
        timestamp: Capture time (seconds since epoch)
        window_id: Window the grouping was scoped to (None for all)
        tabs: Pre-grouping state of every tab in scope
    """

    timestamp: float
    window_id: Optional[int]
    tabs: list[UndoTabState] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "window_id": self.window_id,
            "tabs": [
                {"id": t.id, "group_id": t.group_id, "pinned": t.pinned} for t in self.tabs
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UndoSnapshot":
        return cls(
            timestamp=float(data["timestamp"]),
            window_id=data.get("window_id"),
            tabs=[
                UndoTabState(id=t["id"], group_id=t["group_id"], pinned=bool(t.get("pinned")))
                for t in data.get("tabs", [])
            ],
        )
