"""Entry point for Tab Grouper.

This module provides the main() function behind the ``tabgrouper``
command: store-side management of saved workspaces, autosaves and the
grouping configuration.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from .application import TabGrouperApplication
from .data.database import DatabaseError
from .utils.logger import Logger, get_logger
from .utils.validators import ValidationError, sanitize_filename

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="tabgrouper", description="Manage saved browser workspaces"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List saved workspaces")
    list_cmd.add_argument("--tag", help="Only list workspaces with this tag")

    show_cmd = commands.add_parser("show", help="Print a saved workspace")
    show_cmd.add_argument("name")

    rename_cmd = commands.add_parser("rename", help="Rename a workspace")
    rename_cmd.add_argument("old_name")
    rename_cmd.add_argument("new_name")

    duplicate_cmd = commands.add_parser("duplicate", help="Copy a workspace under a new name")
    duplicate_cmd.add_argument("name")
    duplicate_cmd.add_argument("new_name")

    delete_cmd = commands.add_parser("delete", help="Delete a workspace")
    delete_cmd.add_argument("name")

    export_cmd = commands.add_parser("export", help="Export one or every workspace")
    export_cmd.add_argument("name", nargs="?")
    export_cmd.add_argument("-o", "--output", type=Path, help="Write to a file instead of stdout")

    import_cmd = commands.add_parser("import", help="Import workspaces from a JSON file")
    import_cmd.add_argument("file", type=Path)

    commands.add_parser("autosaves", help="List autosaved sessions")

    config_cmd = commands.add_parser("config", help="Show or change the grouping configuration")
    config_cmd.add_argument("--preset", help="Active smart-merge preset")
    config_cmd.add_argument("--max-tabs", type=int, help="Maximum tabs per group")
    config_cmd.add_argument(
        "--normalize", action=argparse.BooleanOptionalAction, default=None,
        help="Reduce hosts to their registrable domain",
    )

    commands.add_parser("profiles", help="List window profiles from the profile service")
    return parser


def _cmd_list(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    summaries = app.workspace_manager.list_workspaces(tag=args.tag)
    if not summaries:
        print("No saved workspaces")
        return 0
    for summary in summaries:
        stats = summary.stats
        tags = f"  [{', '.join(summary.tags)}]" if summary.tags else ""
        print(
            f"{summary.name}  {summary.date}  "
            f"{stats.windows} windows, {stats.groups} groups, {stats.tabs} tabs{tags}"
        )
    return 0


def _cmd_show(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    workspace = app.workspace_manager.require_workspace(args.name)
    print(json.dumps(workspace.to_dict(), indent=2, ensure_ascii=False))
    return 0


def _cmd_rename(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    workspace = app.workspace_manager.rename_workspace(args.old_name, args.new_name)
    print(f"Renamed to {workspace.name}")
    return 0


def _cmd_duplicate(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    workspace = app.workspace_manager.duplicate_workspace(args.name, args.new_name)
    print(f"Duplicated as {workspace.name}")
    return 0


def _cmd_delete(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    app.workspace_manager.delete_workspace(args.name)
    print(f"Deleted {args.name}")
    return 0


def _cmd_export(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    manager = app.workspace_manager
    text = manager.export_workspace(args.name) if args.name else manager.export_all_workspaces()

    if args.output is None:
        print(text)
        return 0

    output = args.output
    if output.is_dir():
        output = output / f"{sanitize_filename(args.name or 'workspaces')}.json"
    output.write_text(text, encoding="utf-8")
    print(f"Exported to {output}")
    return 0


def _cmd_import(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    text = args.file.read_text(encoding="utf-8")
    result = app.workspace_manager.import_workspaces_from_text(text)
    print(
        f"Imported {result.imported}, skipped {result.skipped}, "
        f"already present {result.duplicates}"
    )
    for error in result.errors:
        print(f"  {error}")
    return 0


def _cmd_autosaves(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    autosaves = app.workspace_manager.list_autosaves()
    if not autosaves:
        print("No autosaves")
        return 0
    for info in autosaves:
        print(f"#{info.id}  {info.name}  {info.date}  {info.stats.tabs} tabs")
    return 0


def _cmd_config(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    config = app.database.get_config()
    changed = False

    if args.preset is not None:
        if args.preset not in config.presets:
            raise ValidationError(f"Unknown preset: {args.preset}")
        config.preset = args.preset
        changed = True

    if args.max_tabs is not None:
        config.group_max_tabs = args.max_tabs
        changed = True

    if args.normalize is not None:
        config.normalize_subdomains = args.normalize
        changed = True

    if changed:
        config = app.database.update_config(config)

    print(json.dumps(config.to_dict(), indent=2, ensure_ascii=False))
    return 0


def _cmd_profiles(app: TabGrouperApplication, args: argparse.Namespace) -> int:
    if not app.bridge.connect():
        print("Profile service unavailable")
        return 1
    profiles = app.bridge.list_profiles()
    for name in profiles:
        print(name)
    return 0


COMMANDS = {
    "list": _cmd_list,
    "show": _cmd_show,
    "rename": _cmd_rename,
    "duplicate": _cmd_duplicate,
    "delete": _cmd_delete,
    "export": _cmd_export,
    "import": _cmd_import,
    "autosaves": _cmd_autosaves,
    "config": _cmd_config,
    "profiles": _cmd_profiles,
}


def main(argv: Optional[list[str]] = None, app: Optional[TabGrouperApplication] = None) -> int:
    """Main entry point for the command line.

    Args:
        argv: Arguments (defaults to ``sys.argv[1:]``)
        app: Application to run against (built from the XDG store if omitted)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = build_parser().parse_args(argv)

    # callers that bring their own app own the handlers
    if app is None:
        Logger.configure(debug=args.debug)
    else:
        Logger.set_debug_mode(args.debug)
    logger.debug(f"Running command: {args.command}")

    try:
        app = app or TabGrouperApplication()
        return COMMANDS[args.command](app, args)

    except (LookupError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except (DatabaseError, OSError) as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
