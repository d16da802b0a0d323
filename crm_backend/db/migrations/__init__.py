"""
Schema-evolution layer.

Migrations are sequences of Operation objects. Each operation renders
re-runnable SQL and applies the same change to an in-memory SchemaState, so
a migration can be dry-run (and shown to be atomic and idempotent) before its
SQL reaches the database.
"""

from .operations import (
    AddCheckConstraint,
    AddColumn,
    CopyColumn,
    CreatePolicy,
    CreateTable,
    DropColumn,
    DropConstraint,
    DropPolicy,
    EnableRowLevelSecurity,
    NullInvalidUuids,
    Operation,
)
from .ownership import reconcile_ownership
from .runner import Migration, apply_all, apply_migration, render_all
from .schema import MigrationError, SchemaState, TableState
from .versions import MIGRATIONS

__all__ = [
    "AddCheckConstraint",
    "AddColumn",
    "CopyColumn",
    "CreatePolicy",
    "CreateTable",
    "DropColumn",
    "DropConstraint",
    "DropPolicy",
    "EnableRowLevelSecurity",
    "NullInvalidUuids",
    "Operation",
    "reconcile_ownership",
    "Migration",
    "apply_all",
    "apply_migration",
    "render_all",
    "MigrationError",
    "SchemaState",
    "TableState",
    "MIGRATIONS",
]
