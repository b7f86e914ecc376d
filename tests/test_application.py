import json

import pytest

from tabgrouper.application import TabGrouperApplication
from tabgrouper.data.models import GroupingConfig, GroupingPreferences
from tabgrouper.main import main


@pytest.fixture
def app(host, database):
    return TabGrouperApplication(host=host, database=database)


@pytest.fixture
def store_app(database):
    return TabGrouperApplication(database=database)


def test_unknown_message_type(app):
    assert app.handle_message({"type": "NOPE"}) == {"ok": False, "error": "Unknown message type"}
    assert app.handle_message(None) == {"ok": False, "error": "Unknown message type"}


def test_smart_merge_message(app, host, window_id):
    host.add_tab(window_id, "https://github.com/x")

    response = app.handle_message({"type": "SMART_MERGE"})

    assert response["ok"] is True
    assert [g.title for g in host.groups.values()] == ["💻 Code"]
    assert len(app.workspace_manager.list_autosaves()) == 1


def test_split_big_groups_message(app, host, window_id, database):
    host.add_group(window_id, "Big", "red", [f"https://big.com/{i}" for i in range(3)])
    database.update_config(GroupingConfig(group_max_tabs=2))

    assert app.handle_message({"type": "SPLIT_BIG_GROUPS"}) == {"ok": True, "split": 1}


def test_message_errors_become_responses(store_app):
    response = store_app.handle_message({"type": "SMART_MERGE"})

    assert response == {"ok": False, "error": "No browser host attached"}


def test_group_tabs_command_uses_preferences_and_autosaves(app, host, window_id, database):
    database.update_grouping_preferences(GroupingPreferences(mode="category"))
    host.add_tab(window_id, "https://youtube.com/watch")

    assert app.handle_command("group-tabs") == 1
    assert [g.title for g in host.groups.values()] == ["🎥 Video"]
    assert len(app.workspace_manager.list_autosaves()) == 1


def test_ungroup_and_collapse_commands(app, host, window_id):
    host.add_group(window_id, "G", "red", ["https://a.com/"])

    assert app.handle_command("collapse-groups") == 1
    assert app.handle_command("ungroup-tabs") == 1
    assert host.groups == {}


def test_unknown_command(app):
    with pytest.raises(ValueError):
        app.handle_command("dance")


def test_on_installed_fills_defaults(store_app, database):
    store_app.on_installed()

    assert database.get_config().preset == "Empleaido"


def test_cli_list_and_show(store_app, host, window_id, capsys):
    host.add_tab(window_id, "https://example.com/")
    TabGrouperApplication(host=host, database=store_app.database).workspace_manager.save_current_workspace(
        name="Saved", tags=["t"]
    )

    assert main(["list"], app=store_app) == 0
    assert "Saved" in capsys.readouterr().out

    assert main(["show", "Saved"], app=store_app) == 0
    assert json.loads(capsys.readouterr().out)["name"] == "Saved"


def test_cli_missing_workspace_fails(store_app, capsys):
    assert main(["delete", "ghost"], app=store_app) == 1
    assert "ghost" in capsys.readouterr().err


def test_cli_export_then_import(store_app, tmp_path, capsys):
    export_file = tmp_path / "all.json"
    assert main(["export", "-o", str(export_file)], app=store_app) == 0
    assert json.loads(export_file.read_text(encoding="utf-8"))["data"] == []

    import_file = tmp_path / "in.json"
    import_file.write_text(
        json.dumps([{"name": "Imported", "windows": [{"groups": [], "ungrouped": [{"url": "https://a.com/"}]}]}]),
        encoding="utf-8",
    )
    assert main(["import", str(import_file)], app=store_app) == 0
    assert store_app.workspace_manager.get_workspace("Imported") is not None


def test_cli_config_update(store_app, capsys):
    assert main(["config", "--max-tabs", "5", "--no-normalize"], app=store_app) == 0

    config = store_app.database.get_config()
    assert config.group_max_tabs == 5
    assert config.normalize_subdomains is False
    assert main(["config", "--max-tabs", "0"], app=store_app) == 1
    assert main(["config", "--preset", "Unknown"], app=store_app) == 1
