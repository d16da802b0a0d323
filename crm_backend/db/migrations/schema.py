"""
In-memory model of the database schema.

Migrations are dry-run against this model before their SQL is shipped, which
catches dependency errors (dropping a column a policy still reads) and proves
re-runs are no-ops. The model can carry a handful of rows per table so data
migrations (backfills, uuid cleanup) can be checked too.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Set

from crm_backend.access.policies import Policy


class MigrationError(Exception):
    """A migration operation could not be applied."""


@dataclass
class TableState:
    name: str
    columns: Dict[str, str] = field(default_factory=dict)
    # constraint name -> columns it depends on
    constraints: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    policies: Dict[str, Policy] = field(default_factory=dict)
    rls_enabled: bool = False
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def require_column(self, column: str) -> None:
        if column not in self.columns:
            raise MigrationError(f'column "{column}" of relation "{self.name}" does not exist')

    def dependents_of(self, column: str) -> List[str]:
        """Names of policies and constraints that read column."""
        deps = [name for name, pol in self.policies.items() if column in pol.columns]
        deps += [name for name, cols in self.constraints.items() if column in cols]
        return deps


@dataclass
class SchemaState:
    tables: Dict[str, TableState] = field(default_factory=dict)
    # names of migrations already applied
    applied: Set[str] = field(default_factory=set)

    def table(self, name: str) -> TableState:
        if name not in self.tables:
            raise MigrationError(f'relation "{name}" does not exist')
        return self.tables[name]

    def copy(self) -> "SchemaState":
        return copy.deepcopy(self)

    def signature(self) -> Dict[str, Any]:
        """Comparable description of the structure (no rows)."""
        return {
            name: {
                "columns": dict(t.columns),
                "constraints": sorted(t.constraints),
                "policies": sorted(t.policies),
                "rls_enabled": t.rls_enabled,
            }
            for name, t in sorted(self.tables.items())
        }
