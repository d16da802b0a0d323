#!/usr/bin/env python3
"""
Render and dry-run the schema migrations.

Every registered migration is first applied to an empty in-memory schema (in
order, then a second time to show the additive ones are no-ops). Only if
that succeeds are the SQL files written, one per migration, each wrapped in
BEGIN/COMMIT.

Usage:
    python scripts/render_migrations.py
    python scripts/render_migrations.py --output supabase/migrations
    python scripts/render_migrations.py --check
"""

import argparse
import os
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from crm_backend.config import settings
from crm_backend.db.migrations import (
    MIGRATIONS,
    MigrationError,
    SchemaState,
    apply_all,
    apply_migration,
    render_all,
)
from crm_backend.utils.logging import get_logger

logger = get_logger(__name__)


def dry_run() -> SchemaState:
    """Apply every migration to an empty schema, then re-apply the ones after the baseline."""
    state = apply_all(SchemaState(), MIGRATIONS)
    signature = state.signature()

    # Re-running a migration file must leave the schema unchanged
    rerun = state
    for migration in MIGRATIONS[1:]:
        rerun = apply_migration(rerun, migration)
    if rerun.signature() != signature:
        raise MigrationError("re-applying migrations changed the schema")

    return state


def main() -> int:
    parser = argparse.ArgumentParser(description="Render schema migrations to SQL files")
    parser.add_argument(
        "--output",
        default=settings.MIGRATIONS_OUTPUT_DIR,
        help="Directory for the .sql files (default: MIGRATIONS_OUTPUT_DIR)"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only dry-run the migrations, do not write files"
    )
    args = parser.parse_args()

    try:
        state = dry_run()
    except MigrationError as e:
        logger.error(f"Dry run failed: {e}")
        return 1

    logger.info(f"Dry run OK: {len(MIGRATIONS)} migrations, {len(state.tables)} tables")

    if args.check:
        return 0

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    for filename, sql in render_all(MIGRATIONS):
        (output_dir / filename).write_text(sql)
        logger.info(f"Wrote {output_dir / filename}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
