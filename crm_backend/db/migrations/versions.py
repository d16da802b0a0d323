"""
Registered schema migrations, in apply order.

0001 reproduces the pre-existing schema, including the legacy duplicate
ownership column on clients (user_id next to assigned_to) and the policies
that keyed off it. 0003 reconciles that to a single owner column and installs
the team policy on clients. 0006 installs the canonical policy set from
crm_backend.access.registry. 0007 adds the payment and expense bookkeeping
columns and the chat read-receipt policy.
"""

from typing import Tuple

from crm_backend.access.policies import Policy, Verb
from crm_backend.access.registry import TABLE_POLICIES
from crm_backend.access.rules import owned_by
from crm_backend.db.migrations.operations import (
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
from crm_backend.db.migrations.runner import Migration
from crm_backend.utils.constants import (
    CLIENT_STAGES,
    COMMITMENT_LENGTHS,
    DEFAULT_COMMITMENT_LENGTH,
    DEFAULT_EXPENSE_CATEGORY,
    DEFAULT_NUMBER_OF_CARS,
    DEFAULT_PER_CAR_VALUE,
    DEFAULT_SETUP_FEE,
    EXPENSE_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    PAYMENT_TYPES,
    SUPPORTED_CURRENCIES,
    SUPPORTED_DATE_FORMATS,
    SUPPORTED_TIME_FORMATS,
    USER_ROLES,
)

UUID_PK = "UUID PRIMARY KEY DEFAULT gen_random_uuid()"
TIMESTAMPTZ_NOW = "TIMESTAMP WITH TIME ZONE DEFAULT NOW()"
USER_REF = "UUID REFERENCES users(id)"

BASELINE_TABLES = {
    "users": {
        "id": "UUID PRIMARY KEY REFERENCES auth.users(id) ON DELETE CASCADE",
        "email": "TEXT UNIQUE NOT NULL",
        "full_name": "TEXT",
        "role": "VARCHAR(50)",
        "avatar_url": "TEXT",
        "is_online": "BOOLEAN DEFAULT FALSE",
        "last_seen": TIMESTAMPTZ_NOW,
        "created_at": TIMESTAMPTZ_NOW,
        "updated_at": TIMESTAMPTZ_NOW,
    },
    "clients": {
        "id": UUID_PK,
        "company_name": "VARCHAR(255) NOT NULL",
        "contact_name": "VARCHAR(255)",
        "email": "VARCHAR(255)",
        "phone": "VARCHAR(50)",
        "linkedin_url": "TEXT",
        "stage": "VARCHAR(50) DEFAULT 'prospect'",
        "assigned_to": USER_REF,
        "user_id": USER_REF,
        "last_contact_note": "TEXT",
        "created_at": TIMESTAMPTZ_NOW,
        "updated_at": TIMESTAMPTZ_NOW,
    },
    "task_groups": {
        "id": UUID_PK,
        "name": "VARCHAR(255) NOT NULL",
        "description": "TEXT",
        "color": "VARCHAR(50) DEFAULT '#3B82F6'",
        "created_by": USER_REF,
        "created_at": TIMESTAMPTZ_NOW,
        "updated_at": TIMESTAMPTZ_NOW,
    },
    "tasks": {
        "id": UUID_PK,
        "title": "VARCHAR(255) NOT NULL",
        "description": "TEXT",
        "status": "VARCHAR(50) DEFAULT 'pending'",
        "priority": "VARCHAR(20) DEFAULT 'medium'",
        "assigned_to": USER_REF,
        "client_id": "UUID REFERENCES clients(id)",
        "task_group_id": "UUID REFERENCES task_groups(id) ON DELETE CASCADE",
        "due_date": "TIMESTAMP WITH TIME ZONE",
        "created_at": TIMESTAMPTZ_NOW,
        "updated_at": TIMESTAMPTZ_NOW,
    },
    "calendar_events": {
        "id": UUID_PK,
        "title": "VARCHAR(255) NOT NULL",
        "description": "TEXT",
        "start_time": "TIMESTAMP WITH TIME ZONE NOT NULL",
        "end_time": "TIMESTAMP WITH TIME ZONE NOT NULL",
        "type": "VARCHAR(50) DEFAULT 'meeting'",
        "client_id": "UUID REFERENCES clients(id)",
        "created_by": USER_REF,
        "user_id": USER_REF,
        "created_at": TIMESTAMPTZ_NOW,
    },
    "journal_entries": {
        "id": UUID_PK,
        "user_id": "UUID REFERENCES users(id) ON DELETE CASCADE",
        "entry_date": "DATE NOT NULL",
        "sales_accomplishment": "TEXT",
        "marketing_accomplishment": "TEXT",
        "ops_accomplishment": "TEXT",
        "tech_accomplishment": "TEXT",
        "random_thoughts": "TEXT",
        "created_at": TIMESTAMPTZ_NOW,
    },
    "chat_rooms": {
        "id": UUID_PK,
        "name": "VARCHAR(255) NOT NULL",
        "type": "VARCHAR(20) NOT NULL DEFAULT 'direct'",
        "created_by": "UUID REFERENCES users(id) ON DELETE CASCADE",
        "created_at": TIMESTAMPTZ_NOW,
        "updated_at": TIMESTAMPTZ_NOW,
    },
    "chat_participants": {
        "id": UUID_PK,
        "room_id": "UUID REFERENCES chat_rooms(id) ON DELETE CASCADE",
        "user_id": "UUID REFERENCES users(id) ON DELETE CASCADE",
        "joined_at": TIMESTAMPTZ_NOW,
    },
    "chat_messages": {
        "id": UUID_PK,
        "room_id": "UUID REFERENCES chat_rooms(id) ON DELETE CASCADE",
        "sender_id": "UUID REFERENCES users(id) ON DELETE CASCADE",
        "content": "TEXT",
        "message_type": "VARCHAR(20) NOT NULL DEFAULT 'text'",
        "is_read": "BOOLEAN DEFAULT FALSE",
        "created_at": TIMESTAMPTZ_NOW,
        "updated_at": TIMESTAMPTZ_NOW,
    },
    "user_settings": {
        "id": UUID_PK,
        "user_id": "UUID UNIQUE NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE",
        "timezone": "TEXT DEFAULT 'America/New_York'",
        "currency": "TEXT DEFAULT 'USD'",
        "date_format": "TEXT DEFAULT 'MM/dd/yyyy'",
        "time_format": "TEXT DEFAULT '12h'",
        "created_at": TIMESTAMPTZ_NOW,
        "updated_at": TIMESTAMPTZ_NOW,
    },
    "payments": {
        "id": UUID_PK,
        "client_id": "UUID REFERENCES clients(id) ON DELETE CASCADE",
        "amount": "DECIMAL(12,2) NOT NULL",
        "status": "VARCHAR(20) DEFAULT 'pending'",
        "payment_date": "DATE NOT NULL",
        "created_at": TIMESTAMPTZ_NOW,
    },
    "expenses": {
        "id": UUID_PK,
        "client_id": "UUID REFERENCES clients(id) ON DELETE CASCADE",
        "amount": "DECIMAL(12,2) NOT NULL",
        "status": "VARCHAR(20) DEFAULT 'pending'",
        "expense_date": "DATE NOT NULL",
        "created_at": TIMESTAMPTZ_NOW,
    },
}

BASELINE_CONSTRAINTS = {
    "clients": {
        "clients_user_id_fkey": ("user_id",),
        "clients_assigned_to_fkey": ("assigned_to",),
    },
}

# Policies that predate the shared/personal split
LEGACY_CLIENT_POLICIES = tuple(
    Policy(
        name=f"Users can only {action} their own clients",
        table="clients",
        command=verb.value,
        using=None if verb == Verb.INSERT else owned_by("user_id"),
        check=owned_by("user_id") if verb == Verb.INSERT else None,
    )
    for action, verb in (
        ("see", Verb.SELECT),
        ("insert", Verb.INSERT),
        ("update", Verb.UPDATE),
        ("delete", Verb.DELETE),
    )
)

LEGACY_CALENDAR_POLICY = Policy(
    name="Users can only see their own calendar events",
    table="calendar_events",
    command=Verb.SELECT.value,
    using=owned_by("created_by"),
)


def _baseline() -> Tuple[Operation, ...]:
    ops = []
    for table, columns in BASELINE_TABLES.items():
        ops.append(CreateTable(table, columns, BASELINE_CONSTRAINTS.get(table, {})))
        ops.append(EnableRowLevelSecurity(table))
    ops.extend(CreatePolicy(p) for p in LEGACY_CLIENT_POLICIES)
    ops.append(CreatePolicy(LEGACY_CALENDAR_POLICY))
    return tuple(ops)


def _canonical_policies() -> Tuple[Operation, ...]:
    ops: list = [DropPolicy(LEGACY_CALENDAR_POLICY.table, LEGACY_CALENDAR_POLICY.name)]
    for table in sorted(TABLE_POLICIES):
        ops.extend(CreatePolicy(policy) for policy in TABLE_POLICIES[table])
    return tuple(ops)


BASELINE = Migration(
    name="0001_baseline",
    description="Existing tables, row level security and legacy owner policies",
    operations=_baseline(),
)

DEAL_FIELDS = Migration(
    name="0002_add_deal_calculation_fields",
    description="Car-based deal calculation inputs on clients",
    operations=(
        AddColumn("clients", "number_of_cars", "INTEGER", default=DEFAULT_NUMBER_OF_CARS),
        AddColumn("clients", "commitment_length", "INTEGER", default=DEFAULT_COMMITMENT_LENGTH),
        AddColumn("clients", "per_car_value", "DECIMAL(10,2)", default=DEFAULT_PER_CAR_VALUE),
        AddColumn("clients", "setup_fee", "DECIMAL(10,2)", default=DEFAULT_SETUP_FEE),
        AddColumn("clients", "last_contact", "TIMESTAMP WITH TIME ZONE"),
        AddCheckConstraint(
            "clients", "clients_commitment_length_check", "commitment_length", COMMITMENT_LENGTHS
        ),
        AddCheckConstraint("clients", "clients_stage_check", "stage", CLIENT_STAGES),
    ),
)

RECONCILE_CLIENT_OWNERSHIP = Migration(
    name="0003_reconcile_client_ownership",
    description="Make assigned_to the only owner column on clients",
    operations=(
        *(DropPolicy("clients", p.name) for p in LEGACY_CLIENT_POLICIES),
        NullInvalidUuids("clients", "user_id"),
        NullInvalidUuids("clients", "assigned_to"),
        CopyColumn("clients", source="user_id", target="assigned_to"),
        DropConstraint("clients", "clients_user_id_fkey"),
        DropColumn("clients", "user_id"),
        *(CreatePolicy(p) for p in TABLE_POLICIES["clients"]),
    ),
)

FEATURE_COLUMNS = Migration(
    name="0004_add_feature_columns",
    description="Collective calendar events, shared tasks, journal metadata, general chat",
    operations=(
        AddColumn("calendar_events", "is_collective", "BOOLEAN", default=False),
        AddColumn("calendar_events", "location", "TEXT"),
        AddColumn("calendar_events", "meeting_url", "TEXT"),
        AddColumn("calendar_events", "updated_at", TIMESTAMPTZ_NOW),
        AddColumn("tasks", "is_shared", "BOOLEAN", default=False),
        AddColumn("tasks", "created_by", USER_REF),
        AddColumn("journal_entries", "title", "VARCHAR(255)"),
        AddColumn("journal_entries", "category", "VARCHAR(100)"),
        AddColumn("journal_entries", "mood", "TEXT"),
        AddColumn("journal_entries", "content", "TEXT"),
        AddColumn("journal_entries", "updated_at", TIMESTAMPTZ_NOW),
        AddColumn("chat_rooms", "is_general", "BOOLEAN", default=False),
        AddColumn("users", "bio", "TEXT"),
        AddColumn("users", "company", "TEXT"),
        AddColumn("users", "location", "TEXT"),
        AddColumn("users", "phone", "TEXT"),
        NullInvalidUuids("tasks", "assigned_to"),
    ),
)

DISPLAY_SETTINGS_CONSTRAINTS = Migration(
    name="0005_display_settings_constraints",
    description="Restrict display settings and roles to supported values",
    operations=(
        AddCheckConstraint("user_settings", "user_settings_currency_check", "currency",
                           SUPPORTED_CURRENCIES),
        AddCheckConstraint("user_settings", "user_settings_date_format_check", "date_format",
                           SUPPORTED_DATE_FORMATS),
        AddCheckConstraint("user_settings", "user_settings_time_format_check", "time_format",
                           SUPPORTED_TIME_FORMATS),
        AddCheckConstraint("users", "users_role_check", "role", USER_ROLES),
    ),
)

ROW_LEVEL_POLICIES = Migration(
    name="0006_row_level_policies",
    description="Shared/personal access policies for every table",
    operations=_canonical_policies(),
)

READ_RECEIPT_POLICY = next(
    p for p in TABLE_POLICIES["chat_messages"] if p.name == "Team can mark messages read in accessible rooms"
)

FINANCIAL_RECORDS = Migration(
    name="0007_financial_records",
    description="Payment and expense bookkeeping columns, status checks, chat read receipts",
    operations=(
        AddColumn("payments", "payment_type", "VARCHAR(20)", default="received"),
        AddColumn("payments", "currency", "VARCHAR(3)", default="USD"),
        AddColumn("payments", "payment_method", "VARCHAR(50)", default="bank_transfer"),
        AddColumn("payments", "description", "TEXT"),
        AddColumn("payments", "invoice_number", "VARCHAR(100)"),
        AddColumn("payments", "created_by", USER_REF),
        AddColumn("payments", "updated_at", TIMESTAMPTZ_NOW),
        AddCheckConstraint("payments", "payments_status_check", "status", PAYMENT_STATUSES),
        AddCheckConstraint("payments", "payments_payment_type_check", "payment_type", PAYMENT_TYPES),
        AddCheckConstraint("payments", "payments_payment_method_check", "payment_method",
                           PAYMENT_METHODS),
        AddColumn("expenses", "expense_category", "VARCHAR(100)", default=DEFAULT_EXPENSE_CATEGORY),
        AddColumn("expenses", "currency", "VARCHAR(3)", default="USD"),
        AddColumn("expenses", "description", "TEXT"),
        AddColumn("expenses", "receipt_url", "TEXT"),
        AddColumn("expenses", "created_by", USER_REF),
        AddColumn("expenses", "updated_at", TIMESTAMPTZ_NOW),
        AddCheckConstraint("expenses", "expenses_status_check", "status", EXPENSE_STATUSES),
        CreatePolicy(READ_RECEIPT_POLICY),
    ),
)

MIGRATIONS: Tuple[Migration, ...] = (
    BASELINE,
    DEAL_FIELDS,
    RECONCILE_CLIENT_OWNERSHIP,
    FEATURE_COLUMNS,
    DISPLAY_SETTINGS_CONSTRAINTS,
    ROW_LEVEL_POLICIES,
    FINANCIAL_RECORDS,
)
