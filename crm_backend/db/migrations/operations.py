"""
Schema migration operations.

Every operation renders re-runnable SQL (IF [NOT] EXISTS guards, or a
drop-then-create pair where Postgres has no guard) and applies the same change
to a SchemaState. Applying an operation whose guard is already satisfied is a
no-op, both in SQL and in the model.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from crm_backend.access.policies import Policy
from crm_backend.db.migrations.schema import MigrationError, SchemaState, TableState
from crm_backend.utils.identifiers import UUID_PATTERN, coerce_uuid


def _sql_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    text = str(value).replace("'", "''")
    return f"'{text}'"


def _when_column_exists(table: str, column: str, statement: str) -> str:
    """Wrap a data statement so re-runs after the column is dropped are no-ops."""
    return (
        "DO $$\nBEGIN\n"
        "  IF EXISTS (SELECT 1 FROM information_schema.columns "
        f"WHERE table_name = '{table}' AND column_name = '{column}') THEN\n"
        f"    {statement}\n"
        "  END IF;\nEND $$;"
    )


class Operation:
    """Base class; subclasses implement apply() and to_sql()."""

    def apply(self, state: SchemaState) -> None:
        raise NotImplementedError

    def to_sql(self) -> str:
        raise NotImplementedError

    def describe(self) -> str:
        return self.to_sql().splitlines()[0]


@dataclass
class CreateTable(Operation):
    table: str
    columns: Dict[str, str]
    constraints: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def apply(self, state: SchemaState) -> None:
        if self.table in state.tables:
            return
        state.tables[self.table] = TableState(
            name=self.table,
            columns=dict(self.columns),
            constraints={name: frozenset(cols) for name, cols in self.constraints.items()},
        )

    def to_sql(self) -> str:
        cols = ",\n".join(f"    {name} {sql_type}" for name, sql_type in self.columns.items())
        return f"CREATE TABLE IF NOT EXISTS {self.table} (\n{cols}\n);"


@dataclass
class EnableRowLevelSecurity(Operation):
    table: str

    def apply(self, state: SchemaState) -> None:
        state.table(self.table).rls_enabled = True

    def to_sql(self) -> str:
        return f"ALTER TABLE {self.table} ENABLE ROW LEVEL SECURITY;"


@dataclass
class AddColumn(Operation):
    table: str
    column: str
    sql_type: str
    default: Any = None
    if_not_exists: bool = True

    def apply(self, state: SchemaState) -> None:
        table = state.table(self.table)
        if self.column in table.columns:
            if self.if_not_exists:
                return
            raise MigrationError(
                f'column "{self.column}" of relation "{self.table}" already exists'
            )
        table.columns[self.column] = self.sql_type
        for row in table.rows:
            row.setdefault(self.column, self.default)

    def to_sql(self) -> str:
        guard = "IF NOT EXISTS " if self.if_not_exists else ""
        default = f" DEFAULT {_sql_literal(self.default)}" if self.default is not None else ""
        return f"ALTER TABLE {self.table} ADD COLUMN {guard}{self.column} {self.sql_type}{default};"


@dataclass
class DropColumn(Operation):
    table: str
    column: str
    if_exists: bool = True

    def apply(self, state: SchemaState) -> None:
        table = state.table(self.table)
        if self.column not in table.columns:
            if self.if_exists:
                return
            table.require_column(self.column)
        dependents = table.dependents_of(self.column)
        if dependents:
            raise MigrationError(
                f'cannot drop column {self.column} of table {self.table} because other '
                f'objects depend on it: {", ".join(sorted(dependents))}'
            )
        del table.columns[self.column]
        for row in table.rows:
            row.pop(self.column, None)

    def to_sql(self) -> str:
        guard = "IF EXISTS " if self.if_exists else ""
        return f"ALTER TABLE {self.table} DROP COLUMN {guard}{self.column};"


@dataclass
class AddCheckConstraint(Operation):
    """CHECK (column IN (...)); existing rows must already satisfy it (nulls pass)."""
    table: str
    name: str
    column: str
    allowed: Tuple[Any, ...]

    def apply(self, state: SchemaState) -> None:
        table = state.table(self.table)
        table.require_column(self.column)
        for row in table.rows:
            value = row.get(self.column)
            if value is not None and value not in self.allowed:
                raise MigrationError(
                    f'check constraint "{self.name}" of relation "{self.table}" '
                    f"is violated by some row"
                )
        table.constraints[self.name] = frozenset({self.column})

    def to_sql(self) -> str:
        values = ", ".join(_sql_literal(v) for v in self.allowed)
        return (
            f"ALTER TABLE {self.table} DROP CONSTRAINT IF EXISTS {self.name};\n"
            f"ALTER TABLE {self.table} ADD CONSTRAINT {self.name} "
            f"CHECK ({self.column} IN ({values}));"
        )

    def describe(self) -> str:
        return f"ADD CONSTRAINT {self.name} ON {self.table}"


@dataclass
class DropConstraint(Operation):
    table: str
    name: str

    def apply(self, state: SchemaState) -> None:
        state.table(self.table).constraints.pop(self.name, None)

    def to_sql(self) -> str:
        return f"ALTER TABLE {self.table} DROP CONSTRAINT IF EXISTS {self.name};"


@dataclass
class CreatePolicy(Operation):
    """Postgres has no CREATE POLICY IF NOT EXISTS, so render drop-then-create."""
    policy: Policy

    def apply(self, state: SchemaState) -> None:
        table = state.table(self.policy.table)
        if not table.rls_enabled:
            raise MigrationError(f'row level security is not enabled on "{table.name}"')
        for column in self.policy.columns:
            table.require_column(column)
        table.policies[self.policy.name] = self.policy

    def to_sql(self) -> str:
        return f"{self.policy.drop_sql()}\n{self.policy.to_sql()}"

    def describe(self) -> str:
        return f'CREATE POLICY "{self.policy.name}" ON {self.policy.table}'


@dataclass
class DropPolicy(Operation):
    table: str
    name: str

    def apply(self, state: SchemaState) -> None:
        state.table(self.table).policies.pop(self.name, None)

    def to_sql(self) -> str:
        return f'DROP POLICY IF EXISTS "{self.name}" ON {self.table};'


@dataclass
class CopyColumn(Operation):
    """Backfill target from source where target is null and source is not."""
    table: str
    source: str
    target: str

    def apply(self, state: SchemaState) -> None:
        table = state.table(self.table)
        table.require_column(self.target)
        if self.source not in table.columns:
            # Source already reconciled away on a previous run
            return
        for row in table.rows:
            if row.get(self.target) is None and row.get(self.source) is not None:
                row[self.target] = row[self.source]

    def to_sql(self) -> str:
        return _when_column_exists(
            self.table,
            self.source,
            f"UPDATE {self.table} SET {self.target} = {self.source} "
            f"WHERE {self.target} IS NULL AND {self.source} IS NOT NULL;",
        )

    def describe(self) -> str:
        return f"UPDATE {self.table} SET {self.target} = {self.source}"


@dataclass
class NullInvalidUuids(Operation):
    """Set non-UUID-shaped references to NULL."""
    table: str
    column: str
    pattern: Optional[str] = None

    def apply(self, state: SchemaState) -> None:
        table = state.table(self.table)
        if self.column not in table.columns:
            return
        for row in table.rows:
            if row.get(self.column) is not None:
                row[self.column] = coerce_uuid(row[self.column])

    def to_sql(self) -> str:
        pattern = self.pattern or UUID_PATTERN.pattern
        return _when_column_exists(
            self.table,
            self.column,
            f"UPDATE {self.table} SET {self.column} = NULL "
            f"WHERE {self.column} IS NOT NULL AND {self.column}::text !~* '{pattern}';",
        )

    def describe(self) -> str:
        return f"UPDATE {self.table} SET {self.column} = NULL (invalid uuids)"
