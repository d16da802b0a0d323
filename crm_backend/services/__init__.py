"""
Service layer.

Async functions taking an authenticated Supabase client and an explicit
CallerIdentity. They query Supabase, re-apply the access policies to every
row read or written, and return plain dicts (or valuation results) for the
routes to map into response models.
"""

from .calendar_service import (
    create_calendar_event,
    delete_calendar_event,
    get_calendar_event_by_id,
    get_calendar_events,
    update_calendar_event,
)
from .chat_service import (
    create_chat_room,
    get_chat_messages,
    get_chat_room_by_id,
    get_chat_rooms,
    mark_messages_read,
    send_chat_message,
)
from .client_service import (
    create_client,
    delete_client,
    get_client_by_id,
    get_client_deal_value,
    get_client_profitability,
    get_clients,
    get_pipeline_stats,
    transfer_client,
    update_client,
)
from .expense_service import (
    create_expense,
    delete_expense,
    get_expense_by_id,
    get_expenses,
    update_expense,
)
from .journal_service import (
    create_journal_entry,
    delete_journal_entry,
    get_journal_entries,
    get_journal_entry_by_id,
    update_journal_entry,
)
from .payment_service import (
    create_payment,
    delete_payment,
    get_payment_by_id,
    get_payments,
    update_payment,
)
from .settings_service import get_user_settings, update_user_settings
from .task_group_service import (
    create_task_group,
    delete_task_group,
    get_task_group_by_id,
    get_task_groups,
    update_task_group,
)
from .task_service import create_task, delete_task, get_task_by_id, get_tasks, update_task
from .user_service import get_users, update_own_profile

__all__ = [
    "create_calendar_event",
    "delete_calendar_event",
    "get_calendar_event_by_id",
    "get_calendar_events",
    "update_calendar_event",
    "create_chat_room",
    "get_chat_messages",
    "get_chat_room_by_id",
    "get_chat_rooms",
    "mark_messages_read",
    "send_chat_message",
    "create_client",
    "delete_client",
    "get_client_by_id",
    "get_client_deal_value",
    "get_client_profitability",
    "get_clients",
    "get_pipeline_stats",
    "transfer_client",
    "update_client",
    "create_expense",
    "delete_expense",
    "get_expense_by_id",
    "get_expenses",
    "update_expense",
    "create_journal_entry",
    "delete_journal_entry",
    "get_journal_entries",
    "get_journal_entry_by_id",
    "update_journal_entry",
    "create_payment",
    "delete_payment",
    "get_payment_by_id",
    "get_payments",
    "update_payment",
    "get_user_settings",
    "update_user_settings",
    "create_task_group",
    "delete_task_group",
    "get_task_group_by_id",
    "get_task_groups",
    "update_task_group",
    "create_task",
    "delete_task",
    "get_task_by_id",
    "get_tasks",
    "update_task",
    "get_users",
    "update_own_profile",
]
