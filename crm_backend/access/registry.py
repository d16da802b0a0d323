"""
Canonical policy set, one entry per table.

Shared tables (clients, tasks, task groups, chat participants, payments,
expenses) admit every authenticated caller. Personal tables (journal entries,
user settings) admit only the row owner. Calendar events are mixed: a
collective event is team-visible, a personal one belongs to user_id only.

Each table has exactly one owner column; see DESIGN.md for why calendar
events key off user_id and clients off assigned_to.
"""

from typing import Dict, List, Tuple

from crm_backend.access.policies import ALL, Policy, Verb
from crm_backend.access.rules import (
    all_of,
    any_of,
    authenticated,
    flag_set,
    in_accessible_room,
    owned_by,
    room_member,
)

SHARED_TABLES = (
    "clients",
    "tasks",
    "task_groups",
    "chat_participants",
    "payments",
    "expenses",
)

OWNER_COLUMNS: Dict[str, str] = {
    "clients": "assigned_to",
    "calendar_events": "user_id",
    "journal_entries": "user_id",
    "user_settings": "user_id",
    "users": "id",
    "chat_rooms": "created_by",
    "chat_messages": "sender_id",
}


def _team_policy(table: str) -> Policy:
    return Policy(
        name=f"Team can manage {table.replace('_', ' ')}",
        table=table,
        command=ALL,
        using=authenticated(),
    )


def _build_policies() -> Dict[str, Tuple[Policy, ...]]:
    policies: Dict[str, List[Policy]] = {table: [_team_policy(table)] for table in SHARED_TABLES}

    collective_or_own = any_of(
        all_of(authenticated(), flag_set("is_collective")),
        owned_by("user_id"),
    )
    policies["calendar_events"] = [
        Policy(
            name="Team can view collective or own calendar events",
            table="calendar_events",
            command=ALL,
            using=collective_or_own,
        ),
    ]

    policies["journal_entries"] = [
        Policy(
            name="Users can manage own journal entries",
            table="journal_entries",
            command=ALL,
            using=owned_by("user_id"),
        ),
    ]

    policies["user_settings"] = [
        Policy(
            name="Users can manage own settings",
            table="user_settings",
            command=ALL,
            using=owned_by("user_id"),
        ),
    ]

    policies["users"] = [
        Policy(
            name="Team can view all user profiles",
            table="users",
            command=Verb.SELECT.value,
            using=authenticated(),
        ),
        Policy(
            name="Users can insert own profile",
            table="users",
            command=Verb.INSERT.value,
            check=owned_by("id"),
        ),
        Policy(
            name="Users can update own profile",
            table="users",
            command=Verb.UPDATE.value,
            using=owned_by("id"),
        ),
    ]

    general_or_own_room = any_of(
        all_of(authenticated(), flag_set("is_general")),
        owned_by("created_by"),
    )
    policies["chat_rooms"] = [
        Policy(
            name="Team can access general or own chat rooms",
            table="chat_rooms",
            command=Verb.SELECT.value,
            using=room_member(),
        ),
        Policy(
            name="Team can create chat rooms",
            table="chat_rooms",
            command=Verb.INSERT.value,
            check=owned_by("created_by"),
        ),
        Policy(
            name="Team can update general or own chat rooms",
            table="chat_rooms",
            command=Verb.UPDATE.value,
            using=general_or_own_room,
        ),
        Policy(
            name="Team can delete general or own chat rooms",
            table="chat_rooms",
            command=Verb.DELETE.value,
            using=general_or_own_room,
        ),
    ]

    policies["chat_messages"] = [
        Policy(
            name="Team can access messages in accessible rooms",
            table="chat_messages",
            command=Verb.SELECT.value,
            using=in_accessible_room(),
        ),
        Policy(
            name="Team can send messages in accessible rooms",
            table="chat_messages",
            command=Verb.INSERT.value,
            check=all_of(in_accessible_room(), owned_by("sender_id")),
        ),
        Policy(
            name="Team can update own messages",
            table="chat_messages",
            command=Verb.UPDATE.value,
            using=owned_by("sender_id"),
        ),
        # Read receipts: members flag others' messages as read
        Policy(
            name="Team can mark messages read in accessible rooms",
            table="chat_messages",
            command=Verb.UPDATE.value,
            using=in_accessible_room(),
        ),
        Policy(
            name="Team can delete own messages",
            table="chat_messages",
            command=Verb.DELETE.value,
            using=owned_by("sender_id"),
        ),
    ]

    return {table: tuple(items) for table, items in policies.items()}


TABLE_POLICIES: Dict[str, Tuple[Policy, ...]] = _build_policies()


def policies_for(table: str, verb: Verb) -> List[Policy]:
    """Policies on table that gate verb. Unknown tables have none (deny)."""
    return [p for p in TABLE_POLICIES.get(table, ()) if p.applies_to(verb)]
