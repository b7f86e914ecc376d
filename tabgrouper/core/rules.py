"""Rule engine for tab categorization.

Pure functions mapping a URL and a ``GroupingConfig`` to a grouping
key. Nothing here touches the host or the store: the configuration and
the rule lists are always passed in by the caller.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from ..data.models import DEFAULT_RULES, OTHER_CATEGORY, OTHER_COLOR, GroupingConfig, Rule
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Two-label public suffixes under which the registrable domain keeps three labels
COMPOUND_SUFFIXES = frozenset({"co.uk", "com.br", "com.ar", "com.mx", "com.do", "com.co"})

MODE_DOMAIN = "domain"
MODE_CATEGORY = "category"


@dataclass(frozen=True)
class Category:
    """Result of categorizing one tab.

    Attributes:
        key: Bucket key, also used as the group title
        color: Explicit group color, None to let the caller pick one
    """

    key: str
    color: Optional[str] = None


@dataclass(frozen=True)
class PresetMatch:
    """Group label and color of the first preset rule that matched."""

    group: str
    color: Optional[str] = None


def hostname_of(url: Optional[str]) -> Optional[str]:
    """Extract the hostname of an absolute URL.

    Args:
        url: URL string

    Returns:
        Lower-cased hostname, or None when the URL has none or is malformed
    """
    if not url:
        return None
    try:
        parsed = urlparse(url)
        # .hostname can itself raise on a malformed port or bracket
        hostname = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not hostname:
        return None
    return hostname


def base_host(url: Optional[str], normalize: bool = True) -> Optional[str]:
    """Reduce a URL to its registrable domain.

    ``app.notion.so`` becomes ``notion.so`` and ``shop.example.co.uk``
    becomes ``example.co.uk``. Hosts with two labels or fewer are
    returned unchanged.

    Args:
        url: URL string
        normalize: When False, return the full hostname

    Returns:
        Base hostname, or None for a malformed URL
    """
    hostname = hostname_of(url)
    if hostname is None or not normalize:
        return hostname

    labels = hostname.split(".")
    if len(labels) <= 2:
        return hostname

    if ".".join(labels[-2:]) in COMPOUND_SUFFIXES:
        return ".".join(labels[-3:])

    return ".".join(labels[-2:])


def is_ignored(url: Optional[str], config: GroupingConfig) -> bool:
    """Check whether a URL is empty or starts with a blacklisted prefix."""
    if not url:
        return True
    return any(url.startswith(prefix) for prefix in config.blacklist_ignore)


def first_match(rules: list[Rule], subject: str) -> Optional[Rule]:
    """Return the first rule matching ``subject``, in list order."""
    for rule in rules:
        if rule.matches(subject):
            return rule
    return None


def match_preset(url: str, config: GroupingConfig) -> Optional[PresetMatch]:
    """Match a full URL against the active preset.

    Args:
        url: Tab URL
        config: Grouping configuration holding the presets

    Returns:
        The first matching rule's group and color, or None
    """
    rule = first_match(config.active_rules(), url)
    if rule is None:
        return None
    return PresetMatch(group=rule.group, color=rule.color)


def load_rules(custom_rules: Optional[list[Rule]] = None) -> list[Rule]:
    """Built-in category rules followed by the user's custom rules."""
    return list(DEFAULT_RULES) + list(custom_rules or [])


def categorize_tab(
    url: Optional[str], mode: str, rules: Optional[list[Rule]] = None
) -> Optional[Category]:
    """Categorize a tab by its URL.

    In domain mode the key is the raw hostname. In category mode the
    hostname is matched against ``rules`` (defaults to the built-in
    list), falling back to the "Other" bucket.

    Args:
        url: Tab URL
        mode: ``"domain"`` or ``"category"``
        rules: Ordered category rules for category mode

    Returns:
        Category, or None when the URL cannot be parsed

    Raises:
        ValueError: If mode is unknown
    """
    hostname = hostname_of(url)
    if hostname is None:
        logger.debug(f"Skipping tab with invalid URL: {url}")
        return None

    if mode == MODE_DOMAIN:
        return Category(key=hostname)

    if mode == MODE_CATEGORY:
        rule = first_match(rules if rules is not None else load_rules(), hostname)
        if rule is None:
            return Category(key=OTHER_CATEGORY, color=OTHER_COLOR)
        return Category(key=rule.group, color=rule.color)

    raise ValueError(f"Invalid grouping mode: {mode}")
