"""
Team member profile service.

Profiles are readable by the whole team; each member can only edit their
own row.
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible

logger = logging.getLogger(__name__)

TABLE = "users"


async def get_users(
    supabase_client: Client,
    caller: CallerIdentity
) -> List[Dict[str, Any]]:
    result = supabase_client.table(TABLE).select("*").order("full_name").execute()

    users = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    logger.info(f"Found {len(users)} team members for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], users)


async def update_own_profile(
    supabase_client: Client,
    caller: CallerIdentity,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Update the caller's own profile.

    Returns:
        The updated profile, or None if the caller has no profile row.

    Raises:
        RowLevelSecurityError: If the updated row fails the policy check
    """
    if not caller.is_authenticated:
        return None

    result = supabase_client.table(TABLE).select("*").eq("id", caller.user_id).execute()
    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    if not rows:
        logger.warning(f"No profile row for {caller.user_id}")
        return None

    existing = cast(Dict[str, Any], rows[0])
    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
        return None

    result = supabase_client.table(TABLE).update(updates).eq("id", caller.user_id).execute()

    if not result.data or len(result.data) == 0:
        return None

    logger.info(f"Profile {caller.user_id} updated: {list(updates.keys())}")
    return cast(Dict[str, Any], result.data[0])
