"""Bucketing and split engine.

Turns the live tabs reported by the host into groups: plain grouping by
domain or category, smart merge with whitelist/preset/base-host
priority, splitting of oversized groups, and the surrounding window and
group housekeeping (ungroup, collapse, merge windows, undo).

Host mutations are issued one at a time. A rejected mutation is logged
and only the affected group is lost; the rest of the batch continues.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..browser.host import TAB_GROUP_ID_NONE, HostAdapter, HostError, HostTab
from ..data.database import Database
from ..data.models import COLORS, GroupingConfig, UndoSnapshot, UndoTabState
from ..utils.logger import get_logger
from .rules import base_host, categorize_tab, hostname_of, is_ignored, load_rules, match_preset

logger = get_logger(__name__)

# Bucket for tabs whose host cannot be determined
MISC_BUCKET = "misc"


def chunked(items: list, size: int) -> list[list]:
    """Slice ``items`` into consecutive chunks of at most ``size`` elements.

    Args:
        items: Sequence to split, order is preserved
        size: Maximum chunk length

    Returns:
        List of chunks (empty when ``items`` is empty)

    Raises:
        ValueError: If size is not positive
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


@dataclass
class Bucket:
    """Tabs sharing a grouping key, before they become host groups."""

    title: str
    color: Optional[str] = None
    tab_ids: list[int] = field(default_factory=list)


class TabGrouper:
    """Groups, splits and reorganizes live tabs through a host adapter.

    Configuration is read from the store when a call does not receive one
    explicitly, and is never cached between calls.
    """

    def __init__(
        self,
        host: HostAdapter,
        database: Database,
        autosave: Optional[Callable[[], object]] = None,
    ) -> None:
        """Initialize the grouper.

        Args:
            host: Browser host adapter
            database: Store holding configuration and the undo record
            autosave: Called after operations that should leave an autosave
        """
        self.host = host
        self.db = database
        self.autosave = autosave

    def _trigger_autosave(self) -> None:
        if self.autosave is not None:
            self.autosave()

    def _materialize(
        self, tab_ids: list[int], title: str, color: Optional[str], collapsed: Optional[bool] = None
    ) -> bool:
        """Create one host group and apply its properties."""
        try:
            group_id = self.host.group_tabs(tab_ids)
            self.host.update_group(group_id, title=title, color=color, collapsed=collapsed)
        except HostError as e:
            logger.error(f"Failed to create group '{title}': {e}")
            return False
        return True

    # Plain grouping

    def group_tabs(
        self,
        window_id: Optional[int] = None,
        window_only: bool = True,
        ignore_pinned: bool = True,
        mode: str = "domain",
    ) -> int:
        """Group every ungrouped tab by domain or category.

        The undo record is written before anything is mutated. Tabs that
        already belong to a group are left alone, so a second run over
        the same tabs creates nothing.

        Args:
            window_id: Window to act on
            window_only: Restrict to ``window_id`` (all windows otherwise)
            ignore_pinned: Skip pinned tabs
            mode: ``"domain"`` or ``"category"``

        Returns:
            Number of groups created
        """
        scope = window_id if window_id is not None and window_only else None
        self.save_undo_snapshot(scope)

        rules = load_rules(self.db.get_custom_rules()) if mode == "category" else None

        buckets: dict[str, Bucket] = {}
        for tab in self.host.list_tabs(scope):
            if ignore_pinned and tab.pinned:
                continue
            if tab.is_grouped:
                continue

            category = categorize_tab(tab.url, mode, rules)
            if category is None:
                continue

            bucket = buckets.setdefault(category.key, Bucket(title=category.key, color=category.color))
            bucket.tab_ids.append(tab.id)

        created = 0
        for index, bucket in enumerate(buckets.values()):
            if not bucket.tab_ids:
                continue
            color = bucket.color or COLORS[index % len(COLORS)]
            if self._materialize(bucket.tab_ids, bucket.title, color, collapsed=False):
                created += 1

        logger.info(f"Grouped tabs into {created} groups (mode={mode})")
        return created

    # Smart merge

    def bucket_tabs(
        self, tabs: list[HostTab], config: GroupingConfig, ignore_pinned: bool = True
    ) -> list[Bucket]:
        """Partition tabs into smart-merge buckets.

        Keys are resolved in priority order: a whitelisted hostname gets
        its own bucket, then the active preset's first matching rule,
        then the (optionally normalized) base host.

        Args:
            tabs: Live tabs in host order
            config: Grouping configuration
            ignore_pinned: Skip pinned tabs

        Returns:
            Buckets in first-seen order
        """
        buckets: dict[str, Bucket] = {}
        for tab in tabs:
            if ignore_pinned and tab.pinned:
                continue
            if is_ignored(tab.url, config):
                continue

            host = hostname_of(tab.url)
            if host and host in config.whitelist:
                key, title, color = f"WL:{host}", host, None
            else:
                match = match_preset(tab.url, config)
                if match is not None:
                    key, title, color = f"PX:{match.group}", match.group, match.color
                else:
                    base = base_host(tab.url, config.normalize_subdomains) or MISC_BUCKET
                    key, title, color = f"BH:{base}", base, None

            bucket = buckets.setdefault(key, Bucket(title=title, color=color))
            bucket.tab_ids.append(tab.id)

        return list(buckets.values())

    def smart_merge(
        self,
        window_id: Optional[int] = None,
        window_only: bool = True,
        ignore_pinned: bool = True,
        config: Optional[GroupingConfig] = None,
    ) -> int:
        """Group tabs with the whitelist/preset/base-host rules.

        Buckets larger than ``group_max_tabs`` are created as several
        groups titled ``"<title> (n)"``. The auto-collapse policy and an
        autosave follow.

        Returns:
            Number of groups created
        """
        cfg = config or self.db.get_config()
        scope = window_id if window_id is not None and window_only else None
        buckets = self.bucket_tabs(self.host.list_tabs(scope), cfg, ignore_pinned)

        created = 0
        for bucket in buckets:
            chunks = chunked(bucket.tab_ids, cfg.group_max_tabs)
            for number, chunk in enumerate(chunks, start=1):
                title = f"{bucket.title} ({number})" if len(chunks) > 1 else bucket.title
                color = bucket.color if bucket.color in COLORS else None
                if self._materialize(chunk, title, color):
                    created += 1

        logger.info(f"Smart merge created {created} groups from {len(buckets)} buckets")

        self.maybe_auto_collapse(window_id, cfg)
        self._trigger_autosave()
        return created

    def split_big_groups(self, config: Optional[GroupingConfig] = None) -> int:
        """Split groups of the current window that exceed the size cap.

        Each oversized group is ungrouped and rebuilt as fixed-size
        chunks titled ``"<title> (n)"`` with the original color. Groups
        within the cap are untouched, so repeated calls are harmless.

        Returns:
            Number of groups that were split
        """
        cfg = config or self.db.get_config()
        window = self.host.get_current_window()
        tabs = self.host.list_tabs(window.id)

        affected = 0
        for group in self.host.list_groups(window.id):
            tab_ids = [tab.id for tab in tabs if tab.group_id == group.id]
            if len(tab_ids) <= cfg.group_max_tabs:
                continue

            logger.info(f"Splitting group '{group.title}' ({len(tab_ids)} tabs)")
            try:
                self.host.ungroup_tabs(tab_ids)
            except HostError as e:
                logger.error(f"Failed to ungroup '{group.title}': {e}")
                continue

            for number, chunk in enumerate(chunked(tab_ids, cfg.group_max_tabs), start=1):
                self._materialize(chunk, f"{group.title or 'Group'} ({number})", group.color)
            affected += 1

        self.maybe_auto_collapse(window.id, cfg)
        self._trigger_autosave()
        return affected

    def maybe_auto_collapse(
        self, window_id: Optional[int] = None, config: Optional[GroupingConfig] = None
    ) -> int:
        """Apply the configured collapse policy.

        Collapse-by-type wins over collapse-everything when both are on.

        Returns:
            Number of groups collapsed
        """
        cfg = config or self.db.get_config()
        by_type = cfg.auto_collapse_by_type
        if not cfg.auto_collapse_after_merge and not by_type.enabled:
            return 0

        collapsed = 0
        for group in self.host.list_groups(window_id):
            if by_type.enabled:
                title = group.title or ""
                if not any(title.startswith(label) for label in by_type.only):
                    continue
            try:
                self.host.update_group(group.id, collapsed=True)
                collapsed += 1
            except HostError as e:
                logger.error(f"Failed to collapse group {group.id}: {e}")
        return collapsed

    # Housekeeping

    def ungroup_all(self, window_id: int) -> int:
        """Ungroup every grouped tab of a window.

        Returns:
            Number of tabs ungrouped
        """
        tab_ids = [tab.id for tab in self.host.list_tabs(window_id) if tab.is_grouped]
        if not tab_ids:
            return 0
        self.host.ungroup_tabs(tab_ids)
        logger.info(f"Ungrouped {len(tab_ids)} tabs in window {window_id}")
        return len(tab_ids)

    def _set_collapsed(self, window_id: int, collapsed: bool) -> int:
        group_ids: list[int] = []
        for tab in self.host.list_tabs(window_id):
            if tab.is_grouped and tab.group_id not in group_ids:
                group_ids.append(tab.group_id)

        for group_id in group_ids:
            self.host.update_group(group_id, collapsed=collapsed)
        return len(group_ids)

    def collapse_all_groups(self, window_id: int) -> int:
        """Collapse every group of a window and return how many there were."""
        return self._set_collapsed(window_id, True)

    def expand_all_groups(self, window_id: int) -> int:
        return self._set_collapsed(window_id, False)

    def merge_all_windows(self, ignore_pinned: bool = True) -> int:
        """Move the tabs of every other window into the current one.

        Args:
            ignore_pinned: Leave pinned tabs where they are

        Returns:
            Number of windows whose tabs were moved
        """
        windows = self.host.list_windows()
        if len(windows) <= 1:
            logger.info("Only one window open, nothing to merge")
            return 0

        target = self.host.get_current_window()
        merged = 0
        for window in windows:
            if window.id == target.id:
                continue

            tab_ids = [
                tab.id
                for tab in self.host.list_tabs(window.id)
                if not (ignore_pinned and tab.pinned)
            ]
            if not tab_ids:
                continue

            try:
                self.host.move_tabs(tab_ids, target.id, index=-1)
                merged += 1
            except HostError as e:
                logger.error(f"Failed to move tabs from window {window.id}: {e}")

        return merged

    def groups_to_windows(self) -> int:
        """Give every group of the current window a window of its own.

        The group is recreated in the new window with its title, color
        and collapsed state.

        Returns:
            Number of windows created
        """
        current = self.host.get_current_window()
        groups = self.host.list_groups(current.id)
        if not groups:
            logger.info("No groups to convert")
            return 0

        tabs = self.host.list_tabs(current.id)
        created = 0
        for group in groups:
            tab_ids = [tab.id for tab in tabs if tab.group_id == group.id]
            if not tab_ids:
                continue

            try:
                window = self.host.create_window(focused=False, tab_id=tab_ids[0])
                if len(tab_ids) > 1:
                    self.host.move_tabs(tab_ids[1:], window.id, index=-1)

                moved = [tab.id for tab in self.host.list_tabs(window.id)]
                new_group = self.host.group_tabs(moved, window_id=window.id)
                self.host.update_group(
                    new_group, title=group.title, color=group.color, collapsed=group.collapsed
                )
                created += 1
            except HostError as e:
                logger.error(f"Failed to create window for group '{group.title}': {e}")

        return created

    # Undo

    def save_undo_snapshot(self, window_id: Optional[int] = None) -> UndoSnapshot:
        """Record the grouping state of every tab in scope."""
        snapshot = UndoSnapshot(
            timestamp=time.time(),
            window_id=window_id,
            tabs=[
                UndoTabState(id=tab.id, group_id=tab.group_id, pinned=tab.pinned)
                for tab in self.host.list_tabs(window_id)
            ],
        )
        self.db.set_undo_snapshot(snapshot)
        return snapshot

    def undo_last_group(self) -> bool:
        """Ungroup the tabs that were ungrouped before the last grouping.

        The undo record is consumed whatever happens to individual tabs.

        Returns:
            False if there was nothing to undo
        """
        snapshot = self.db.get_undo_snapshot()
        if snapshot is None:
            logger.warning("No undo snapshot available")
            return False

        try:
            for state in snapshot.tabs:
                if state.group_id != TAB_GROUP_ID_NONE:
                    continue
                try:
                    self.host.ungroup_tabs([state.id])
                except HostError as e:
                    logger.warning(f"Could not restore tab {state.id}: {e}")
        finally:
            self.db.clear_undo_snapshot()

        return True
