"""
Task service.

Tasks are shared with the whole team. References to users, clients and task
groups are coerced: a value that is not a UUID is stored as null.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.utils.identifiers import coerce_uuid

logger = logging.getLogger(__name__)

TABLE = "tasks"

REFERENCE_FIELDS = ("assigned_to", "client_id", "task_group_id")


def _prepare(fields: Dict[str, Any]) -> Dict[str, Any]:
    data = {k: v.isoformat() if isinstance(v, datetime) else v for k, v in fields.items()}
    for field in REFERENCE_FIELDS:
        if field in data:
            data[field] = coerce_uuid(data[field])
    return data


async def get_tasks(
    supabase_client: Client,
    caller: CallerIdentity,
    status: Optional[str] = None,
    task_group_id: Optional[str] = None,
    assigned_to: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Fetch tasks, soonest due first.

    Args:
        supabase_client: Authenticated Supabase client
        caller: Explicit caller identity
        status: Optional status filter
        task_group_id: Optional group filter
        assigned_to: Optional assignee filter

    Returns:
        List of task dicts
    """
    query = supabase_client.table(TABLE).select("*")
    if status:
        query = query.eq("status", status)
    for column, value in (("task_group_id", task_group_id), ("assigned_to", assigned_to)):
        if value is None:
            continue
        ref = coerce_uuid(value)
        if ref is None:
            return []
        query = query.eq(column, ref)

    result = query.order("due_date").execute()

    tasks = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    logger.info(f"Found {len(tasks)} tasks for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], tasks)


async def get_task_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    task_id: str
) -> Optional[Dict[str, Any]]:
    task_uuid = coerce_uuid(task_id)
    if task_uuid is None:
        return None

    result = supabase_client.table(TABLE).select("*").eq("id", task_uuid).execute()

    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    return cast(Dict[str, Any], rows[0]) if rows else None


async def create_task(
    supabase_client: Client,
    caller: CallerIdentity,
    **fields: Any
) -> Dict[str, Any]:
    """
    Create a task recorded as created by the caller.

    Raises:
        RowLevelSecurityError: If the caller is not authenticated
        Exception: If the insert returns no data
    """
    task_data = _prepare(fields)
    task_data["created_by"] = caller.user_id

    enforce_write(TABLE, Verb.INSERT, caller, new_row=task_data)

    result = supabase_client.table(TABLE).insert(task_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create task: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    logger.info(f"Task created successfully: {created.get('id')}")

    return created


async def update_task(
    supabase_client: Client,
    caller: CallerIdentity,
    task_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """Update a task. Returns None if it is missing or not visible."""
    existing = await get_task_by_id(supabase_client, caller, task_id)
    if existing is None:
        return None

    updates = _prepare(updates)
    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
        return None

    result = supabase_client.table(TABLE).update(updates).eq("id", existing["id"]).execute()

    if not result.data or len(result.data) == 0:
        return None

    logger.info(f"Task {existing['id']} updated: {list(updates.keys())}")
    return cast(Dict[str, Any], result.data[0])


async def delete_task(
    supabase_client: Client,
    caller: CallerIdentity,
    task_id: str
) -> bool:
    existing = await get_task_by_id(supabase_client, caller, task_id)
    if existing is None:
        return False

    if not enforce_write(TABLE, Verb.DELETE, caller, row=existing):
        return False

    result = supabase_client.table(TABLE).delete().eq("id", existing["id"]).execute()

    logger.info(f"Task {existing['id']} deleted by {caller.user_id}")
    return bool(result.data)
