"""
Task group service.

Groups are shared. Deleting a group cascades to its tasks in the database.
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.utils.constants import DEFAULT_TASK_GROUP_COLOR
from crm_backend.utils.identifiers import coerce_uuid

logger = logging.getLogger(__name__)

TABLE = "task_groups"


async def get_task_groups(
    supabase_client: Client,
    caller: CallerIdentity
) -> List[Dict[str, Any]]:
    result = supabase_client.table(TABLE).select("*").order("created_at").execute()

    groups = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    logger.info(f"Found {len(groups)} task groups for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], groups)


async def get_task_group_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    group_id: str
) -> Optional[Dict[str, Any]]:
    group_uuid = coerce_uuid(group_id)
    if group_uuid is None:
        return None

    result = supabase_client.table(TABLE).select("*").eq("id", group_uuid).execute()

    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    return cast(Dict[str, Any], rows[0]) if rows else None


async def create_task_group(
    supabase_client: Client,
    caller: CallerIdentity,
    name: str,
    description: Optional[str] = None,
    color: str = DEFAULT_TASK_GROUP_COLOR
) -> Dict[str, Any]:
    """
    Create a task group.

    Raises:
        RowLevelSecurityError: If the caller is not authenticated
        Exception: If the insert returns no data
    """
    group_data = {
        "name": name,
        "description": description,
        "color": color.upper(),
        "created_by": caller.user_id,
    }

    enforce_write(TABLE, Verb.INSERT, caller, new_row=group_data)

    result = supabase_client.table(TABLE).insert(group_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create task group: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    logger.info(f"Task group created successfully: {created.get('id')}")

    return created


async def update_task_group(
    supabase_client: Client,
    caller: CallerIdentity,
    group_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    existing = await get_task_group_by_id(supabase_client, caller, group_id)
    if existing is None:
        return None

    if updates.get("color"):
        updates["color"] = updates["color"].upper()

    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
        return None

    result = supabase_client.table(TABLE).update(updates).eq("id", existing["id"]).execute()

    if not result.data or len(result.data) == 0:
        return None

    return cast(Dict[str, Any], result.data[0])


async def delete_task_group(
    supabase_client: Client,
    caller: CallerIdentity,
    group_id: str
) -> bool:
    """Delete a group and, through ON DELETE CASCADE, its tasks."""
    existing = await get_task_group_by_id(supabase_client, caller, group_id)
    if existing is None:
        return False

    if not enforce_write(TABLE, Verb.DELETE, caller, row=existing):
        return False

    result = supabase_client.table(TABLE).delete().eq("id", existing["id"]).execute()

    logger.info(f"Task group {existing['id']} deleted by {caller.user_id}")
    return bool(result.data)
