"""
DNS label and zone name normalization.
"""

import re

from bind9sync.models.errors import InvalidLabelError

MAX_LABEL_LENGTH = 63

_WHITESPACE_RE = re.compile(r"\s+")
_INVALID_CHARS_RE = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUN_RE = re.compile(r"-+")


def normalize_label(name: str) -> str:
    """
    Turn an arbitrary VM display name into a single valid DNS label.

    Lowercases, maps "_" and whitespace runs to "-", drops everything
    outside [a-z0-9-], collapses hyphen runs, trims hyphens and truncates
    to 63 characters.

    Args:
        name: Raw VM name, e.g. "My VM #1"

    Returns:
        str: DNS label, e.g. "my-vm-1"

    Raises:
        InvalidLabelError: If nothing usable is left
    """
    label = (name or "").lower().replace("_", "-")
    label = _WHITESPACE_RE.sub("-", label)
    label = _INVALID_CHARS_RE.sub("", label)
    label = _HYPHEN_RUN_RE.sub("-", label).strip("-")
    # truncation can expose a hyphen at the cut
    label = label[:MAX_LABEL_LENGTH].rstrip("-")
    if not label:
        raise InvalidLabelError(name)
    return label


def normalize_zone(zone: str) -> str:
    """
    Strip whitespace and make the zone name trailing-dot-terminated.

    Raises:
        ValueError: If the zone is empty
    """
    zone = (zone or "").strip()
    if not zone or zone == ".":
        raise ValueError("zone is empty")
    if not zone.endswith("."):
        zone = f"{zone}."
    return zone


def make_fqdn(label: str, zone: str) -> str:
    return f"{label}.{normalize_zone(zone)}"
