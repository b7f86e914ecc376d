import pytest

from tabgrouper.browser.host import TAB_GROUP_ID_NONE
from tabgrouper.core.grouping import TabGrouper, chunked
from tabgrouper.data.models import COLORS, AutoCollapseByType, GroupingConfig


@pytest.fixture
def autosaves():
    return []


@pytest.fixture
def grouper(host, database, autosaves):
    return TabGrouper(host, database, autosave=lambda: autosaves.append(True))


def no_collapse(**overrides):
    return GroupingConfig(auto_collapse_after_merge=False, **overrides)


def titles(host):
    return [group.title for group in host.groups.values()]


def test_chunked_preserves_order_and_cap():
    assert chunked(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]
    assert chunked([], 3) == []
    with pytest.raises(ValueError):
        chunked([1], 0)


@pytest.mark.parametrize("n, cap", [(1, 1), (5, 2), (6, 3), (30, 30), (31, 30)])
def test_chunk_count_is_ceiling(n, cap):
    chunks = chunked(list(range(n)), cap)

    assert len(chunks) == -(-n // cap)
    assert all(len(chunk) <= cap for chunk in chunks)
    assert [item for chunk in chunks for item in chunk] == list(range(n))


def test_group_tabs_by_domain(host, window_id, grouper):
    host.add_tab(window_id, "https://a.com/1")
    host.add_tab(window_id, "https://b.com/1")
    host.add_tab(window_id, "https://a.com/2")

    created = grouper.group_tabs(window_id=window_id)

    assert created == 2
    groups = list(host.groups.values())
    assert [g.title for g in groups] == ["a.com", "b.com"]
    assert [g.color for g in groups] == [COLORS[0], COLORS[1]]
    assert all(not g.collapsed for g in groups)
    assert len(host.tabs_in_group(groups[0].id)) == 2


def test_group_tabs_is_idempotent(host, window_id, grouper):
    host.add_tab(window_id, "https://a.com/1")
    host.add_tab(window_id, "https://b.com/1")

    assert grouper.group_tabs(window_id=window_id) == 2
    assert grouper.group_tabs(window_id=window_id) == 0
    assert len(host.groups) == 2


def test_group_tabs_skips_pinned_and_invalid(host, window_id, grouper):
    pinned = host.add_tab(window_id, "https://a.com/1", pinned=True)
    broken = host.add_tab(window_id, "not-a-url")
    host.add_tab(window_id, "https://a.com/2")

    assert grouper.group_tabs(window_id=window_id) == 1
    assert pinned.group_id == TAB_GROUP_ID_NONE
    assert broken.group_id == TAB_GROUP_ID_NONE


def test_group_tabs_category_mode_uses_rule_colors(host, window_id, grouper):
    host.add_tab(window_id, "https://github.com/x")
    host.add_tab(window_id, "https://example.org/")

    grouper.group_tabs(window_id=window_id, mode="category")

    colors = {g.title: g.color for g in host.groups.values()}
    assert colors == {"💻 Code": "cyan", "🌐 Other": "grey"}


def test_group_tabs_scoped_to_window(host, window_id, grouper):
    other = host.add_window()
    host.add_tab(window_id, "https://a.com/1")
    elsewhere = host.add_tab(other.id, "https://a.com/2")

    grouper.group_tabs(window_id=window_id, window_only=True)

    assert elsewhere.group_id == TAB_GROUP_ID_NONE


def test_undo_snapshot_taken_before_grouping(host, window_id, database, grouper):
    tab = host.add_tab(window_id, "https://a.com/1")

    grouper.group_tabs(window_id=window_id)

    snapshot = database.get_undo_snapshot()
    assert [(t.id, t.group_id) for t in snapshot.tabs] == [(tab.id, TAB_GROUP_ID_NONE)]
    first_mutation = next(i for i, c in enumerate(host.calls) if c[0] == "group_tabs")
    assert host.calls.index(("list_tabs", window_id)) < first_mutation


def test_undo_last_group_ungroups_and_clears(host, window_id, database, grouper):
    already = host.add_group(window_id, "Kept", "red", ["https://kept.com/"])
    tab = host.add_tab(window_id, "https://a.com/1")
    grouper.group_tabs(window_id=window_id)
    assert tab.group_id != TAB_GROUP_ID_NONE

    assert grouper.undo_last_group() is True

    assert tab.group_id == TAB_GROUP_ID_NONE
    assert host.tabs_in_group(already.id)
    assert database.get_undo_snapshot() is None
    assert grouper.undo_last_group() is False


def test_undo_covers_every_window_when_grouping_all(host, window_id, database, grouper):
    here = host.add_tab(window_id, "https://a.com/1")
    other = host.add_window()
    there = host.add_tab(other.id, "https://b.com/1")

    grouper.group_tabs(window_id=window_id, window_only=False)
    assert there.group_id != TAB_GROUP_ID_NONE

    snapshot = database.get_undo_snapshot()
    assert snapshot.window_id is None
    assert {t.id for t in snapshot.tabs} == {here.id, there.id}

    grouper.undo_last_group()

    assert here.group_id == TAB_GROUP_ID_NONE
    assert there.group_id == TAB_GROUP_ID_NONE


def test_smart_merge_whitelist_beats_preset(host, window_id, grouper):
    host.add_tab(window_id, "https://drive.google.com/file/1")
    host.add_tab(window_id, "https://docs.google.com/document/1")

    grouper.smart_merge(window_id=window_id, config=no_collapse())

    assert sorted(titles(host)) == sorted(["drive.google.com", "📑 Docs"])
    docs = next(g for g in host.groups.values() if g.title == "📑 Docs")
    assert docs.color == "yellow"


def test_smart_merge_falls_back_to_base_host(host, window_id, grouper):
    host.add_tab(window_id, "https://a.example.com/")
    host.add_tab(window_id, "https://b.example.com/")
    host.add_tab(window_id, "chrome://settings")

    created = grouper.smart_merge(window_id=window_id, config=no_collapse())

    assert created == 1
    assert titles(host) == ["example.com"]


def test_smart_merge_chunks_oversized_buckets(host, window_id, grouper):
    tabs = [host.add_tab(window_id, f"https://example.com/{i}") for i in range(5)]

    created = grouper.smart_merge(window_id=window_id, config=no_collapse(group_max_tabs=2))

    assert created == 3
    groups = list(host.groups.values())
    assert [g.title for g in groups] == ["example.com (1)", "example.com (2)", "example.com (3)"]
    members = [[t.id for t in host.tabs_in_group(g.id)] for g in groups]
    assert members == [[tabs[0].id, tabs[1].id], [tabs[2].id, tabs[3].id], [tabs[4].id]]


def test_smart_merge_single_chunk_has_no_suffix(host, window_id, grouper):
    host.add_tab(window_id, "https://example.com/1")

    grouper.smart_merge(window_id=window_id, config=no_collapse(group_max_tabs=2))

    assert titles(host) == ["example.com"]


def test_smart_merge_collapses_everything_and_autosaves(host, window_id, grouper, autosaves):
    host.add_tab(window_id, "https://a.com/")
    host.add_tab(window_id, "https://youtube.com/")

    grouper.smart_merge(window_id=window_id, config=GroupingConfig())

    assert all(g.collapsed for g in host.groups.values())
    assert autosaves == [True]


def test_auto_collapse_by_type_only_collapses_matching_titles(host, window_id, grouper):
    host.add_tab(window_id, "https://a.com/")
    host.add_tab(window_id, "https://youtube.com/")
    cfg = GroupingConfig(auto_collapse_by_type=AutoCollapseByType(enabled=True, only=["🎥 Video"]))

    grouper.smart_merge(window_id=window_id, config=cfg)

    collapsed = {g.title: g.collapsed for g in host.groups.values()}
    assert collapsed == {"a.com": False, "🎥 Video": True}


def test_split_big_groups(host, window_id, database, grouper, autosaves):
    big = host.add_group(window_id, "Big", "purple", [f"https://big.com/{i}" for i in range(5)])
    host.add_group(window_id, "Small", "red", ["https://small.com/"])
    database.update_config(no_collapse(group_max_tabs=2))

    assert grouper.split_big_groups() == 1

    assert big.id not in host.groups
    split = [g for g in host.groups.values() if g.title.startswith("Big")]
    assert [g.title for g in split] == ["Big (1)", "Big (2)", "Big (3)"]
    assert {g.color for g in split} == {"purple"}
    assert autosaves == [True]
    assert grouper.split_big_groups() == 0


def test_ungroup_all(host, window_id, grouper):
    host.add_group(window_id, "G", "red", ["https://a.com/", "https://b.com/"])

    assert grouper.ungroup_all(window_id) == 2
    assert host.groups == {}
    assert grouper.ungroup_all(window_id) == 0


def test_collapse_and_expand_all_groups(host, window_id, grouper):
    host.add_group(window_id, "G1", "red", ["https://a.com/"])
    host.add_group(window_id, "G2", "blue", ["https://b.com/"])

    assert grouper.collapse_all_groups(window_id) == 2
    assert all(g.collapsed for g in host.groups.values())
    assert grouper.expand_all_groups(window_id) == 2
    assert not any(g.collapsed for g in host.groups.values())


def test_merge_all_windows(host, window_id, grouper):
    other = host.add_window()
    moved = host.add_tab(other.id, "https://a.com/")
    pinned = host.add_tab(other.id, "https://b.com/", pinned=True)

    assert grouper.merge_all_windows() == 1
    assert moved.window_id == window_id
    assert pinned.window_id == other.id


def test_merge_all_windows_single_window(grouper):
    assert grouper.merge_all_windows() == 0


def test_groups_to_windows(host, window_id, grouper):
    group = host.add_group(window_id, "Code", "cyan", ["https://github.com/", "https://gitlab.com/"])
    group.collapsed = True
    host.add_tab(window_id, "https://loose.com/")

    assert grouper.groups_to_windows() == 1

    assert len(host.windows) == 2
    new_window = [w for w in host.windows if w != window_id][0]
    recreated = host.list_groups(new_window)
    assert len(recreated) == 1
    assert (recreated[0].title, recreated[0].color, recreated[0].collapsed) == ("Code", "cyan", True)
    assert len(host.tabs_in_group(recreated[0].id)) == 2
