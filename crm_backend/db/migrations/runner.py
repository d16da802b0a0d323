"""
Migration container and runner.

Each migration renders as one transaction (BEGIN ... COMMIT), so a failure in
the database rolls the whole file back. apply_migration() gives the same
guarantee for the in-memory model: it works on a copy and only returns the
new state if every operation succeeded.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from crm_backend.db.migrations.operations import Operation
from crm_backend.db.migrations.schema import MigrationError, SchemaState
from crm_backend.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Migration:
    name: str
    description: str
    operations: Tuple[Operation, ...]

    def render_sql(self) -> str:
        """Full SQL script for this migration, wrapped in a transaction."""
        body = "\n\n".join(op.to_sql() for op in self.operations)
        return (
            f"-- {self.name}\n"
            f"-- {self.description}\n\n"
            "BEGIN;\n\n"
            f"{body}\n\n"
            "COMMIT;\n"
        )


def apply_migration(state: SchemaState, migration: Migration) -> SchemaState:
    """
    Apply a migration to a copy of state.

    Returns:
        The migrated state. The input state is never modified.

    Raises:
        MigrationError: naming the migration and the operation that failed.
    """
    working = state.copy()
    for index, op in enumerate(migration.operations, start=1):
        try:
            op.apply(working)
        except MigrationError as e:
            logger.error(
                f"Migration {migration.name} failed at step {index} ({op.describe()}): {e}"
            )
            raise MigrationError(
                f"{migration.name} step {index} ({op.describe()}): {e}"
            ) from e
    working.applied.add(migration.name)
    logger.info(f"Migration {migration.name} applied ({len(migration.operations)} operations)")
    return working


def apply_all(state: SchemaState, migrations: Iterable[Migration]) -> SchemaState:
    """
    Apply migrations in order, skipping any already recorded in state.applied.

    Stops at the first failure; migrations applied before it are kept.
    """
    for migration in migrations:
        if migration.name in state.applied:
            logger.debug(f"Migration {migration.name} already applied, skipping")
            continue
        state = apply_migration(state, migration)
    return state


def render_all(migrations: Sequence[Migration]) -> Tuple[Tuple[str, str], ...]:
    """(filename, sql) pairs for every migration."""
    return tuple((f"{m.name}.sql", m.render_sql()) for m in migrations)
