"""
Tests for the schema-evolution layer.

Tests cover:
- Idempotent operations
- Atomic migrations
- Client ownership reconciliation end state
- Payment and expense bookkeeping columns
- Policy / column dependencies
- Rendered SQL
"""

import pytest

from crm_backend.access import CallerIdentity, Verb, is_allowed
from crm_backend.access.policies import Policy
from crm_backend.access.rules import owned_by
from crm_backend.db.migrations import (
    MIGRATIONS,
    AddCheckConstraint,
    AddColumn,
    CreatePolicy,
    CreateTable,
    DropColumn,
    Migration,
    MigrationError,
    SchemaState,
    apply_all,
    apply_migration,
    reconcile_ownership,
    render_all,
)
from crm_backend.db.migrations.versions import BASELINE, FINANCIAL_RECORDS, RECONCILE_CLIENT_OWNERSHIP

OWNER_A = "11111111-1111-4111-8111-111111111111"
OWNER_B = "22222222-2222-4222-8222-222222222222"


@pytest.fixture
def baseline_state():
    return apply_migration(SchemaState(), BASELINE)


def _seed_clients(state):
    state.tables["clients"].rows.extend([
        {"id": "c1", "company_name": "Acme", "user_id": OWNER_A, "assigned_to": None},
        {"id": "c2", "company_name": "Globex", "user_id": "1", "assigned_to": OWNER_B},
        {"id": "c3", "company_name": "Initech", "user_id": OWNER_A, "assigned_to": "unassigned"},
        {"id": "c4", "company_name": "Umbrella", "user_id": "1", "assigned_to": None},
    ])
    return state


class TestOperations:
    def test_add_column_twice_is_a_no_op(self, baseline_state):
        op = AddColumn("clients", "number_of_cars", "INTEGER", default=1)

        op.apply(baseline_state)
        once = baseline_state.signature()
        op.apply(baseline_state)

        assert baseline_state.signature() == once
        assert "ADD COLUMN IF NOT EXISTS number_of_cars INTEGER DEFAULT 1" in op.to_sql()

    def test_add_column_fills_default_on_existing_rows(self, baseline_state):
        _seed_clients(baseline_state)

        AddColumn("clients", "commitment_length", "INTEGER", default=12).apply(baseline_state)

        assert all(r["commitment_length"] == 12 for r in baseline_state.tables["clients"].rows)

    def test_drop_column_read_by_policy_fails(self, baseline_state):
        with pytest.raises(MigrationError, match="other objects depend on it"):
            DropColumn("clients", "user_id").apply(baseline_state)

    def test_drop_missing_column_with_if_exists_is_a_no_op(self, baseline_state):
        DropColumn("clients", "no_such_column").apply(baseline_state)

    def test_create_policy_requires_row_level_security(self):
        state = SchemaState()
        CreateTable("notes", {"id": "UUID", "user_id": "UUID"}).apply(state)
        policy = Policy("own notes", "notes", "ALL", using=owned_by("user_id"))

        with pytest.raises(MigrationError, match="row level security"):
            CreatePolicy(policy).apply(state)

    def test_create_policy_on_missing_column_fails(self, baseline_state):
        policy = Policy("by owner", "payments", "ALL", using=owned_by("owner_id"))

        with pytest.raises(MigrationError, match="owner_id"):
            CreatePolicy(policy).apply(baseline_state)

    def test_check_constraint_rejects_existing_bad_rows(self, baseline_state):
        baseline_state.tables["clients"].rows.append({"id": "c1", "stage": "negotiating"})

        with pytest.raises(MigrationError, match="clients_stage_check"):
            AddCheckConstraint("clients", "clients_stage_check", "stage", ("prospect",)).apply(
                baseline_state
            )


class TestAtomicity:
    def test_failed_migration_leaves_state_untouched(self, baseline_state):
        before = baseline_state.signature()
        broken = Migration(
            name="9999_broken",
            description="adds a column then fails",
            operations=(
                AddColumn("clients", "temporary", "TEXT"),
                DropColumn("clients", "user_id"),
            ),
        )

        with pytest.raises(MigrationError, match="9999_broken step 2"):
            apply_migration(baseline_state, broken)

        assert baseline_state.signature() == before
        assert "temporary" not in baseline_state.tables["clients"].columns
        assert "9999_broken" not in baseline_state.applied

    def test_apply_migration_does_not_mutate_input(self):
        empty = SchemaState()

        migrated = apply_migration(empty, BASELINE)

        assert empty.tables == {}
        assert "clients" in migrated.tables


class TestOwnershipReconciliation:
    def test_end_state_has_single_owner_column(self, baseline_state):
        state = apply_all(_seed_clients(baseline_state), MIGRATIONS)
        clients = state.tables["clients"]

        assert "user_id" not in clients.columns
        assert "assigned_to" in clients.columns
        assert "clients_user_id_fkey" not in clients.constraints
        for policy in clients.policies.values():
            assert "user_id" not in policy.columns

    def test_backfill_and_uuid_cleanup(self, baseline_state):
        state = apply_all(_seed_clients(baseline_state), MIGRATIONS)
        owners = {r["id"]: r["assigned_to"] for r in state.tables["clients"].rows}

        assert owners == {"c1": OWNER_A, "c2": OWNER_B, "c3": OWNER_A, "c4": None}

    def test_legacy_policies_replaced_with_team_policy(self):
        state = apply_all(SchemaState(), MIGRATIONS)

        assert sorted(state.tables["clients"].policies) == ["Team can manage clients"]
        assert "Users can only see their own calendar events" not in (
            state.tables["calendar_events"].policies
        )

    def test_clients_readable_right_after_reconciliation(self):
        state = apply_all(SchemaState(), MIGRATIONS[:3])
        clients = state.tables["clients"]
        caller = CallerIdentity.from_user_id(OWNER_A)

        assert clients.rls_enabled
        assert sorted(clients.policies) == ["Team can manage clients"]
        assert is_allowed(
            "clients", Verb.SELECT, caller,
            row={"id": "c1", "assigned_to": OWNER_B},
            policies=list(clients.policies.values()),
        )

    def test_reconcile_ownership_on_rows(self):
        rows = [
            {"id": "c1", "user_id": OWNER_A, "assigned_to": None},
            {"id": "c2", "user_id": OWNER_A, "assigned_to": OWNER_B.upper()},
            {"id": "c3", "user_id": "1"},
        ]

        result = reconcile_ownership(rows)

        assert result == [
            {"id": "c1", "assigned_to": OWNER_A},
            {"id": "c2", "assigned_to": OWNER_B},
            {"id": "c3", "assigned_to": None},
        ]
        assert "user_id" in rows[0]


class TestFinancialRecords:
    def _before(self):
        state = apply_all(SchemaState(), MIGRATIONS[:-1])
        state.tables["payments"].rows.append(
            {"id": "p1", "client_id": "c1", "amount": 100, "status": "completed"}
        )
        return state

    def test_existing_payments_become_received(self):
        state = apply_migration(self._before(), FINANCIAL_RECORDS)
        payment = state.tables["payments"].rows[0]

        assert payment["payment_type"] == "received"
        assert payment["payment_method"] == "bank_transfer"
        assert "expense_category" in state.tables["expenses"].columns
        assert "payments_status_check" in state.tables["payments"].constraints

    def test_unknown_payment_status_blocks_migration(self):
        state = self._before()
        state.tables["payments"].rows[0]["status"] = "refunded"

        with pytest.raises(MigrationError, match="payments_status_check"):
            apply_migration(state, FINANCIAL_RECORDS)

    def test_read_receipt_policy_installed(self):
        state = apply_all(SchemaState(), MIGRATIONS)

        assert "Team can mark messages read in accessible rooms" in (
            state.tables["chat_messages"].policies
        )


class TestRunner:
    def test_apply_all_skips_applied_migrations(self):
        state = apply_all(SchemaState(), MIGRATIONS)

        again = apply_all(state, MIGRATIONS)

        assert again.signature() == state.signature()
        assert again.applied == {m.name for m in MIGRATIONS}

    def test_reapplying_later_migrations_is_a_no_op(self):
        state = apply_all(SchemaState(), MIGRATIONS)
        signature = state.signature()

        for migration in MIGRATIONS[1:]:
            state = apply_migration(state, migration)

        assert state.signature() == signature

    def test_rendered_sql_is_transactional_and_guarded(self):
        sql = RECONCILE_CLIENT_OWNERSHIP.render_sql()

        assert sql.startswith("-- 0003_reconcile_client_ownership")
        assert "BEGIN;" in sql
        assert sql.rstrip().endswith("COMMIT;")
        assert "DROP COLUMN IF EXISTS user_id" in sql
        assert 'DROP POLICY IF EXISTS "Users can only see their own clients" ON clients;' in sql
        assert "information_schema.columns" in sql

    def test_render_all_names_files_after_migrations(self):
        files = dict(render_all(MIGRATIONS))

        assert list(files) == [f"{m.name}.sql" for m in MIGRATIONS]
        assert "CREATE TABLE IF NOT EXISTS clients" in files["0001_baseline.sql"]
