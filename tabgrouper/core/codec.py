"""Import/export codec for workspace collections.

Exports wrap a workspace, or the whole collection, in a versioned JSON
envelope::

    {"schema": "tabgrouper.workspace@1", "exportedAt": "...", "data": {...}}

Imports accept a wrapped workspace, a wrapped list, or a bare list,
validate every item on its own, and resolve name collisions by suffixing
`` (2)``, `` (3)``... so that a stored workspace is never overwritten.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from ..data.models import WorkspaceSnapshot
from ..utils.logger import get_logger
from ..utils.validators import validate_workspace_object
from .snapshot import now_iso

logger = get_logger(__name__)

WORKSPACE_SCHEMA = "tabgrouper.workspace@1"
WORKSPACE_LIST_SCHEMA = "tabgrouper.workspace.list@1"


class WorkspaceImportError(ValueError):
    """Raised when an import yields nothing to store.

    Attributes:
        errors: Per-item reasons collected before giving up
    """

    def __init__(self, message: str, errors: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


@dataclass
class ImportResult:
    """Outcome of an import.

    Attributes:
        imported: Workspaces added to the store
        skipped: Items rejected by validation
        errors: One ``"<name>: <reason>"`` line per rejected item
        duplicates: Valid items identical to a stored workspace, not re-added
        names: Names the imported workspaces were stored under
    """

    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    duplicates: int = 0
    names: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "duplicates": self.duplicates,
        }


def encode_envelope(schema: str, payload: Any) -> str:
    """Wrap a payload in the export envelope and format it as JSON."""
    envelope = {"schema": schema, "exportedAt": now_iso(), "data": payload}
    return json.dumps(envelope, indent=2, ensure_ascii=False)


def export_workspace(workspace: WorkspaceSnapshot) -> str:
    return encode_envelope(WORKSPACE_SCHEMA, workspace.to_dict())


def export_workspaces(workspaces: list[WorkspaceSnapshot]) -> str:
    return encode_envelope(WORKSPACE_LIST_SCHEMA, [w.to_dict() for w in workspaces])


def _candidates(parsed: Any) -> list[Any]:
    """Normalize the accepted top-level shapes to a list of items."""
    if isinstance(parsed, dict) and isinstance(parsed.get("data"), list):
        return parsed["data"]
    if isinstance(parsed, dict) and parsed.get("data"):
        return [parsed["data"]]
    if isinstance(parsed, list):
        return parsed
    raise WorkspaceImportError("Unrecognized structure")


def decode_workspaces(text: str) -> tuple[list[WorkspaceSnapshot], list[str]]:
    """Parse and validate an import file.

    Args:
        text: JSON text

    Returns:
        Tuple of (valid workspaces, reasons for rejected items)

    Raises:
        WorkspaceImportError: If the JSON is malformed, the structure is
            unrecognized, or no item is valid
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise WorkspaceImportError(f"Invalid JSON: {e}") from e

    valid: list[WorkspaceSnapshot] = []
    errors: list[str] = []
    for item in _candidates(parsed):
        workspace = item["data"] if isinstance(item, dict) and item.get("data") else item
        reason = validate_workspace_object(workspace)
        if reason:
            name = workspace.get("name") if isinstance(workspace, dict) else None
            errors.append(f"{name or 'Unnamed'}: {reason}")
            continue
        valid.append(WorkspaceSnapshot.from_dict(workspace))

    if not valid:
        raise WorkspaceImportError(
            f"Nothing imported. Errors: {'; '.join(errors)}", errors
        )

    return valid, errors


def resolve_unique_name(name: str, taken: set[str]) -> str:
    """Suffix ``name`` with `` (2)``, `` (3)``... until it is not taken."""
    if name not in taken:
        return name
    counter = 2
    while f"{name} ({counter})" in taken:
        counter += 1
    return f"{name} ({counter})"


def _content_key(workspace: WorkspaceSnapshot) -> str:
    return json.dumps(workspace.to_dict(), sort_keys=True, ensure_ascii=False)


def merge_imported(
    existing: list[WorkspaceSnapshot], incoming: list[WorkspaceSnapshot]
) -> tuple[list[WorkspaceSnapshot], ImportResult]:
    """Append imported workspaces to a collection without overwriting any.

    A workspace identical to one already stored is counted as a
    duplicate and skipped. Otherwise a taken name is suffixed; data and
    timestamps are kept as imported.

    Args:
        existing: Current collection
        incoming: Validated workspaces to add

    Returns:
        Tuple of (new collection, result counters)
    """
    merged = list(existing)
    taken = {workspace.name for workspace in existing}
    stored = {_content_key(workspace) for workspace in existing}
    result = ImportResult()

    for workspace in incoming:
        key = _content_key(workspace)
        if key in stored:
            logger.debug(f"Workspace already present, not re-importing: {workspace.name}")
            result.duplicates += 1
            continue

        workspace.name = resolve_unique_name(workspace.name, taken)
        taken.add(workspace.name)
        stored.add(key)
        merged.append(workspace)
        result.imported += 1
        result.names.append(workspace.name)

    return merged, result
