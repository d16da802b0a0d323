"""
Journal entry service.

Entries are strictly personal. Queries are scoped to the caller and the
ownership policy is re-applied; an entry owned by someone else behaves
exactly like a missing one. Entry content is never logged.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.utils.identifiers import coerce_uuid

logger = logging.getLogger(__name__)

TABLE = "journal_entries"


def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, date) else v for k, v in fields.items()}


async def get_journal_entries(
    supabase_client: Client,
    caller: CallerIdentity,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 50,
    offset: int = 0
) -> List[Dict[str, Any]]:
    """
    Fetch the caller's journal entries, most recent entry_date first.

    Returns:
        List of entry dicts. An anonymous caller always gets an empty list,
        including for rows whose user_id is null.
    """
    if not caller.is_authenticated:
        return []

    query = supabase_client.table(TABLE).select("*").eq("user_id", caller.user_id)
    if start_date is not None:
        query = query.gte("entry_date", start_date.isoformat())
    if end_date is not None:
        query = query.lte("entry_date", end_date.isoformat())

    result = (
        query
        .order("entry_date", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )

    entries = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    logger.info(f"Found {len(entries)} journal entries for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], entries)


async def get_journal_entry_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    entry_id: str
) -> Optional[Dict[str, Any]]:
    entry_uuid = coerce_uuid(entry_id)
    if entry_uuid is None or not caller.is_authenticated:
        return None

    result = (
        supabase_client.table(TABLE)
        .select("*")
        .eq("id", entry_uuid)
        .eq("user_id", caller.user_id)
        .execute()
    )

    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    return cast(Dict[str, Any], rows[0]) if rows else None


async def create_journal_entry(
    supabase_client: Client,
    caller: CallerIdentity,
    **fields: Any
) -> Dict[str, Any]:
    """
    Create an entry owned by the caller.

    Raises:
        RowLevelSecurityError: If the caller is anonymous
        Exception: If the insert returns no data
    """
    entry_data = _serialize(fields)
    entry_data["user_id"] = caller.user_id

    enforce_write(TABLE, Verb.INSERT, caller, new_row=entry_data)

    result = supabase_client.table(TABLE).insert(entry_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create journal entry: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    logger.info(f"Journal entry created: {created.get('id')}")

    return created


async def update_journal_entry(
    supabase_client: Client,
    caller: CallerIdentity,
    entry_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    existing = await get_journal_entry_by_id(supabase_client, caller, entry_id)
    if existing is None:
        return None

    updates = _serialize(updates)
    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
        return None

    result = (
        supabase_client.table(TABLE)
        .update(updates)
        .eq("id", existing["id"])
        .eq("user_id", caller.user_id)
        .execute()
    )

    if not result.data or len(result.data) == 0:
        return None

    logger.info(f"Journal entry {existing['id']} updated: {list(updates.keys())}")
    return cast(Dict[str, Any], result.data[0])


async def delete_journal_entry(
    supabase_client: Client,
    caller: CallerIdentity,
    entry_id: str
) -> bool:
    existing = await get_journal_entry_by_id(supabase_client, caller, entry_id)
    if existing is None:
        return False

    if not enforce_write(TABLE, Verb.DELETE, caller, row=existing):
        return False

    result = (
        supabase_client.table(TABLE)
        .delete()
        .eq("id", existing["id"])
        .eq("user_id", caller.user_id)
        .execute()
    )

    logger.info(f"Journal entry {existing['id']} deleted")
    return bool(result.data)
