"""
Access-control evaluator.

Decides, for a (table, verb, caller) triple and the affected row(s), whether
the operation may proceed. Mirrors how Postgres applies permissive RLS
policies:

- SELECT: rows failing every USING clause are silently dropped.
- DELETE: rows failing every USING clause are not targeted (zero rows).
- UPDATE: rows failing every USING clause are not targeted; a targeted row
  whose new version fails the check raises RowLevelSecurityError.
- INSERT: a new row failing every check raises RowLevelSecurityError.

A denial is never reported as a distinct "forbidden" outcome.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from crm_backend.access.identity import CallerIdentity
from crm_backend.access.policies import Policy, Verb
from crm_backend.access.registry import policies_for
from crm_backend.access.rules import Row

logger = logging.getLogger(__name__)


class RowLevelSecurityError(Exception):
    """A written row version does not satisfy any WITH CHECK clause."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f'new row violates row-level security policy for table "{table}"')


def _policies(table: str, verb: Verb, policies: Optional[Sequence[Policy]]) -> List[Policy]:
    if policies is None:
        return policies_for(table, verb)
    return [p for p in policies if p.table == table and p.applies_to(verb)]


def is_allowed(
    table: str,
    verb: Verb,
    caller: CallerIdentity,
    row: Optional[Row] = None,
    new_row: Optional[Row] = None,
    policies: Optional[Sequence[Policy]] = None,
) -> bool:
    """
    Pure policy decision.

    Args:
        table: Table name
        verb: Statement kind
        caller: Explicit caller identity
        row: Existing row (SELECT, UPDATE, DELETE)
        new_row: Proposed row version (INSERT, UPDATE)
        policies: Override the registry (tests, migrations)

    Returns:
        True iff at least one applicable policy permits the operation.
    """
    return any(
        p.permits(verb, caller, row=row, new_row=new_row)
        for p in _policies(table, verb, policies)
    )


def filter_visible(
    table: str,
    caller: CallerIdentity,
    rows: Iterable[Row],
    policies: Optional[Sequence[Policy]] = None,
) -> List[Row]:
    """Drop rows the caller may not SELECT."""
    rows = list(rows)
    visible = [
        row for row in rows
        if is_allowed(table, Verb.SELECT, caller, row=row, policies=policies)
    ]
    hidden = len(rows) - len(visible)
    if hidden:
        logger.debug(f"Policy filter hid {hidden} {table} rows from caller {caller.user_id}")
    return visible


def enforce_write(
    table: str,
    verb: Verb,
    caller: CallerIdentity,
    row: Optional[Row] = None,
    new_row: Optional[Row] = None,
    policies: Optional[Sequence[Policy]] = None,
) -> bool:
    """
    Gate a write before it is sent to the database.

    Returns:
        True if the write may proceed. False if the existing row is not
        visible to the write (UPDATE/DELETE affect zero rows).

    Raises:
        RowLevelSecurityError: The new row version fails every check clause.
    """
    applicable = _policies(table, verb, policies)

    if verb == Verb.DELETE:
        return any(p.matches_existing(row, caller) for p in applicable)

    if verb == Verb.UPDATE:
        if not any(p.matches_existing(row, caller) for p in applicable):
            return False
        if any(p.permits(verb, caller, row=row, new_row=new_row) for p in applicable):
            return True
        logger.warning(f"Policy check failed: UPDATE on {table} by caller {caller.user_id}")
        raise RowLevelSecurityError(table)

    if verb == Verb.INSERT:
        if any(p.permits(verb, caller, new_row=new_row) for p in applicable):
            return True
        logger.warning(f"Policy check failed: INSERT on {table} by caller {caller.user_id}")
        raise RowLevelSecurityError(table)

    return any(p.permits(verb, caller, row=row) for p in applicable)
