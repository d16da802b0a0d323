"""
Owner-column reconciliation over plain row dicts.

Same rule the 0003 migration applies in the database: the canonical column
wins, the legacy column only fills canonical gaps, references that are not
UUID-shaped become null, and the legacy column is removed from the result.
"""

from typing import Any, Dict, Iterable, List

from crm_backend.utils.identifiers import coerce_uuid


def reconcile_ownership(
    rows: Iterable[Dict[str, Any]],
    legacy: str = "user_id",
    canonical: str = "assigned_to",
) -> List[Dict[str, Any]]:
    """
    Collapse two owner columns into one.

    Args:
        rows: Rows that may carry both columns
        legacy: Column being retired
        canonical: Column that survives

    Returns:
        New row dicts without the legacy column. Input rows are not modified.
    """
    reconciled = []
    for row in rows:
        out = {k: v for k, v in row.items() if k != legacy}
        owner = coerce_uuid(row.get(canonical))
        if owner is None:
            owner = coerce_uuid(row.get(legacy))
        out[canonical] = owner
        reconciled.append(out)
    return reconciled
