"""
Identifier helpers.

Rows reference users, clients and task groups by UUID. Legacy data and older
frontends sometimes send placeholder ids such as "1"; those must never reach a
uuid column, so they are coerced to None instead of being rejected.
"""

import re
from typing import Any, Optional

# RFC 4122 shape, versions 1-5, variant 8/9/a/b
UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE,
)


def is_uuid(value: Any) -> bool:
    """Return True if value is a UUID-shaped string."""
    return isinstance(value, str) and bool(UUID_PATTERN.match(value.strip()))


def coerce_uuid(value: Any) -> Optional[str]:
    """
    Normalize a reference to a lowercase UUID string, or None.

    Args:
        value: Any incoming identifier (str, None, int, ...)

    Returns:
        The lowercase UUID string if value is UUID-shaped, otherwise None.

    Example:
        >>> coerce_uuid("1") is None
        True
    """
    if not is_uuid(value):
        return None
    return value.strip().lower()
