"""
User settings service.

Display preferences only (timezone, currency, date and time format). A user
without a stored row is served the defaults; the first update creates the
row.
"""

import logging
from typing import Any, Dict, List, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.utils.constants import (
    DEFAULT_USER_SETTINGS,
    SUPPORTED_CURRENCIES,
    SUPPORTED_DATE_FORMATS,
    SUPPORTED_TIME_FORMATS,
)

logger = logging.getLogger(__name__)

TABLE = "user_settings"

_ALLOWED = {
    "currency": SUPPORTED_CURRENCIES,
    "date_format": SUPPORTED_DATE_FORMATS,
    "time_format": SUPPORTED_TIME_FORMATS,
}


def _validate(updates: Dict[str, Any]) -> None:
    for field, allowed in _ALLOWED.items():
        if field in updates and updates[field] not in allowed:
            raise ValueError(f"{field} must be one of {allowed}")


async def _fetch(supabase_client: Client, caller: CallerIdentity) -> List[Dict[str, Any]]:
    result = (
        supabase_client.table(TABLE)
        .select("*")
        .eq("user_id", caller.user_id)
        .execute()
    )
    return cast(List[Dict[str, Any]], filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or [])))


async def get_user_settings(
    supabase_client: Client,
    caller: CallerIdentity
) -> Dict[str, Any]:
    """
    The caller's settings, or the defaults when none are stored.

    Returns:
        Settings dict with an is_default flag.
    """
    if not caller.is_authenticated:
        return {"user_id": None, **DEFAULT_USER_SETTINGS, "is_default": True}

    rows = await _fetch(supabase_client, caller)
    if not rows:
        logger.debug(f"No settings stored for {caller.user_id}, using defaults")
        return {"user_id": caller.user_id, **DEFAULT_USER_SETTINGS, "is_default": True}

    return {**rows[0], "is_default": False}


async def update_user_settings(
    supabase_client: Client,
    caller: CallerIdentity,
    **updates: Any
) -> Dict[str, Any]:
    """
    Update the caller's settings, creating the row on first use.

    Raises:
        ValueError: If a value is not supported
        RowLevelSecurityError: If the caller is anonymous
        Exception: If the write returns no data
    """
    _validate(updates)

    rows = await _fetch(supabase_client, caller) if caller.is_authenticated else []

    if rows:
        existing = rows[0]
        if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row={**existing, **updates}):
            raise Exception("Failed to update settings: row not writable")
        result = (
            supabase_client.table(TABLE)
            .update(updates)
            .eq("user_id", caller.user_id)
            .execute()
        )
    else:
        settings_data = {**DEFAULT_USER_SETTINGS, **updates, "user_id": caller.user_id}
        enforce_write(TABLE, Verb.INSERT, caller, new_row=settings_data)
        result = supabase_client.table(TABLE).insert(settings_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to save settings: no data returned")

    logger.info(f"Settings updated for {caller.user_id}: {list(updates.keys())}")
    return {**cast(Dict[str, Any], result.data[0]), "is_default": False}
