"""
Row-level policies.

A Policy is scoped to one table and one command (SELECT, INSERT, UPDATE,
DELETE or ALL) and carries a USING rule (checked against the existing row)
and an optional WITH CHECK rule (checked against the new row). As in
Postgres, a policy without WITH CHECK reuses USING as its check.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional

from crm_backend.access.identity import CallerIdentity
from crm_backend.access.rules import Row, Rule


class Verb(str, Enum):
    """Statement kinds a policy can gate."""
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL = "ALL"


@dataclass(frozen=True)
class Policy:
    name: str
    table: str
    command: str
    using: Optional[Rule] = None
    check: Optional[Rule] = None

    def applies_to(self, verb: Verb) -> bool:
        return self.command == ALL or self.command == verb.value

    @property
    def check_rule(self) -> Optional[Rule]:
        return self.check if self.check is not None else self.using

    def matches_existing(self, row: Optional[Row], caller: CallerIdentity) -> bool:
        """USING clause against an existing row."""
        return self.using is not None and self.using(row, caller)

    def accepts_new(self, new_row: Optional[Row], caller: CallerIdentity) -> bool:
        """WITH CHECK clause (or USING fallback) against a new row version."""
        rule = self.check_rule
        return rule is not None and rule(new_row, caller)

    def permits(
        self,
        verb: Verb,
        caller: CallerIdentity,
        row: Optional[Row] = None,
        new_row: Optional[Row] = None,
    ) -> bool:
        """USING and WITH CHECK are AND-ed for writes that have both."""
        if not self.applies_to(verb):
            return False
        if verb in (Verb.SELECT, Verb.DELETE):
            return self.matches_existing(row, caller)
        if verb == Verb.INSERT:
            return self.accepts_new(new_row, caller)
        return self.matches_existing(row, caller) and self.accepts_new(new_row, caller)

    @property
    def columns(self) -> FrozenSet[str]:
        """Columns the policy depends on (dropping one requires dropping the policy)."""
        cols: FrozenSet[str] = frozenset()
        for rule in (self.using, self.check):
            if rule is not None:
                cols = cols | rule.columns
        return cols

    def to_sql(self) -> str:
        """Render as CREATE POLICY, emitting only the clauses valid for the command."""
        parts: List[str] = [
            f'CREATE POLICY "{self.name}" ON {self.table}',
            f"  FOR {self.command} TO authenticated",
        ]
        if self.command != Verb.INSERT.value and self.using is not None:
            parts.append(f"  USING ({self.using.sql})")
        if self.command in (ALL, Verb.INSERT.value, Verb.UPDATE.value):
            rule = self.check if self.command != Verb.INSERT.value else self.check_rule
            if rule is not None:
                parts.append(f"  WITH CHECK ({rule.sql})")
        return "\n".join(parts) + ";"

    def drop_sql(self) -> str:
        return f'DROP POLICY IF EXISTS "{self.name}" ON {self.table};'
