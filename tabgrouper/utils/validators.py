"""Input validation utilities.

This module provides validation functions for user input, URLs and
imported workspace objects. Workspace validators return a descriptive
reason string (or None when valid) so that bulk callers can aggregate
several failures instead of stopping at the first exception.
"""

from typing import Any, Optional, Tuple
from urllib.parse import urlparse

import validators as external_validators

from ..data.models import COLORS

RESTORABLE_SCHEMES = ("http", "https")


class ValidationError(ValueError):
    """Raised when validation fails."""

    pass


def validate_tab_url(url: Any) -> Optional[str]:
    """Validate a URL read from an imported workspace.

    Only http(s) URLs are restorable; other schemes are rejected even
    though live tabs may carry them.

    Args:
        url: Value of the tab record's ``url`` field

    Returns:
        Reason string if invalid, None otherwise
    """
    if not isinstance(url, str):
        return "Tab missing url"

    try:
        parsed = urlparse(url)
    except ValueError:
        return "Invalid URL"

    if not parsed.scheme or not (parsed.netloc or parsed.path):
        return "Invalid URL"

    if parsed.scheme.lower() not in RESTORABLE_SCHEMES:
        return "Only http/https"

    # path, query and fragment are taken as the browser reports them
    try:
        _ = parsed.port  # raises on a malformed port
    except ValueError:
        return "Invalid URL"

    host = parsed.hostname
    if not host or not external_validators.hostname(host, may_have_port=False):
        return "Invalid URL"

    return None


def validate_color(color: Optional[str]) -> bool:
    """Check a group color (None means "host default" and is allowed)."""
    return color is None or color in COLORS


def validate_hostname(hostname: str) -> bool:
    """Check an exact hostname, as stored in the whitelist.

    Args:
        hostname: Hostname without scheme or path

    Returns:
        True if valid, False otherwise
    """
    if not hostname or not hostname.strip():
        return False
    if hostname == "localhost":
        return True
    return bool(external_validators.domain(hostname))


def validate_workspace_name(name: str) -> Tuple[bool, str]:
    """Validate workspace name.

    Args:
        name: Name to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not name or not name.strip():
        return False, "Name cannot be empty"

    if len(name.strip()) > 200:
        return False, "Name must be at most 200 characters"

    return True, ""


def validate_group_max_tabs(value: int) -> bool:
    """Group size cap must be a positive integer."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_tab_record(tab: Any) -> Optional[str]:
    """Validate one tab record of an imported workspace."""
    if not isinstance(tab, dict):
        return "Tab missing url"
    return validate_tab_url(tab.get("url"))


def validate_group_record(group: Any) -> Optional[str]:
    """Validate one group record and its tabs."""
    if not isinstance(group, dict):
        return "Group invalid"
    if not validate_color(group.get("color") or None):
        return "Invalid color"
    tabs = group.get("tabs")
    if not isinstance(tabs, list):
        return "tabs must be array"
    for tab in tabs:
        error = validate_tab_record(tab)
        if error:
            return error
    return None


def validate_window_record(window: Any) -> Optional[str]:
    """Validate one window record, its groups and its loose tabs."""
    if not isinstance(window, dict):
        return "Window invalid"
    if not isinstance(window.get("groups"), list) or not isinstance(window.get("ungrouped"), list):
        return "groups/ungrouped must be arrays"
    if window.get("bounds") is not None and not isinstance(window["bounds"], dict):
        return "bounds must be object"
    for group in window["groups"]:
        error = validate_group_record(group)
        if error:
            return error
    for tab in window["ungrouped"]:
        error = validate_tab_record(tab)
        if error:
            return error
    return None


def validate_workspace_object(obj: Any) -> Optional[str]:
    """Validate a workspace object read from an import file.

    Args:
        obj: Decoded JSON value

    Returns:
        Reason string describing the first problem found, None if valid
    """
    if not isinstance(obj, dict):
        return "Not an object"
    if not obj.get("name") or not isinstance(obj["name"], str):
        return "Missing name"
    if obj.get("date") is not None and not isinstance(obj["date"], str):
        return "Invalid date"
    if not isinstance(obj.get("windows"), list):
        return "windows must be array"
    for window in obj["windows"]:
        error = validate_window_record(window)
        if error:
            return error
    return None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe filesystem operations.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    dangerous_chars = '<>:"/\\|?*'
    for char in dangerous_chars:
        filename = filename.replace(char, "_")

    filename = filename.strip(". ")

    if len(filename) > 255:
        filename = filename[:255]

    return filename or "unnamed"
