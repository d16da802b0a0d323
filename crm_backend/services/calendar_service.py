"""
Calendar event service.

Events are either collective (team-visible) or personal (visible only to
user_id). Listing supports three scopes:

- all: collective events plus the caller's personal events
- shared: collective events only
- personal: the caller's personal events only

The scope is pushed down to PostgREST and the SELECT policy is re-applied to
the rows that come back.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.utils.identifiers import coerce_uuid

logger = logging.getLogger(__name__)

TABLE = "calendar_events"


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _check_time_range(start_time: Any, end_time: Any) -> None:
    start, end = _as_datetime(start_time), _as_datetime(end_time)
    if start is not None and end is not None and end < start:
        raise ValueError("end_time must not be before start_time")


def _in_scope(event: Dict[str, Any], scope: str) -> bool:
    if scope == "shared":
        return event.get("is_collective") is True
    if scope == "personal":
        return event.get("is_collective") is not True
    return True


def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in fields.items()}


async def get_calendar_events(
    supabase_client: Client,
    caller: CallerIdentity,
    scope: str = "all",
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Fetch events visible to the caller, ordered by start_time.

    Args:
        supabase_client: Authenticated Supabase client
        caller: Explicit caller identity
        scope: "all", "shared" or "personal"
        start: Only events starting at or after this instant
        end: Only events starting at or before this instant

    Returns:
        List of event dicts. An anonymous caller always gets an empty list.
    """
    if not caller.is_authenticated:
        logger.warning("Anonymous calendar listing, returning no events")
        return []

    query = supabase_client.table(TABLE).select("*")
    if scope == "shared":
        query = query.eq("is_collective", True)
    elif scope == "personal":
        query = query.eq("is_collective", False).eq("user_id", caller.user_id)
    else:
        query = query.or_(f"is_collective.eq.true,user_id.eq.{caller.user_id}")

    if start is not None:
        query = query.gte("start_time", start.isoformat())
    if end is not None:
        query = query.lte("start_time", end.isoformat())

    result = query.order("start_time").execute()

    rows = cast(List[Dict[str, Any]], result.data or [])
    events = [e for e in filter_visible(TABLE, caller, rows) if _in_scope(cast(Dict[str, Any], e), scope)]
    logger.info(f"Found {len(events)} {scope} calendar events for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], events)


async def get_calendar_event_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    event_id: str
) -> Optional[Dict[str, Any]]:
    """Fetch one event, or None if it is missing or not visible."""
    event_uuid = coerce_uuid(event_id)
    if event_uuid is None:
        return None

    result = supabase_client.table(TABLE).select("*").eq("id", event_uuid).execute()

    rows = filter_visible(TABLE, caller, cast(List[Dict[str, Any]], result.data or []))
    if not rows:
        logger.warning(f"Calendar event {event_uuid} not found for caller {caller.user_id}")
        return None

    return cast(Dict[str, Any], rows[0])


async def create_calendar_event(
    supabase_client: Client,
    caller: CallerIdentity,
    **fields: Any
) -> Dict[str, Any]:
    """
    Create an event owned by the caller.

    Raises:
        ValueError: If end_time is before start_time
        RowLevelSecurityError: If the caller cannot own the event
    """
    _check_time_range(fields.get("start_time"), fields.get("end_time"))

    event_data = _serialize(fields)
    event_data["client_id"] = coerce_uuid(event_data.get("client_id"))
    event_data["user_id"] = caller.user_id
    event_data["created_by"] = caller.user_id

    enforce_write(TABLE, Verb.INSERT, caller, new_row=event_data)

    logger.info(
        f"Creating calendar event for caller {caller.user_id} "
        f"(collective={event_data.get('is_collective', False)})"
    )

    result = supabase_client.table(TABLE).insert(event_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create calendar event: no data returned")

    return cast(Dict[str, Any], result.data[0])


async def update_calendar_event(
    supabase_client: Client,
    caller: CallerIdentity,
    event_id: str,
    **updates: Any
) -> Optional[Dict[str, Any]]:
    """
    Update an event.

    Any team member may edit a collective event, but the result must still
    be visible to them: turning someone else's collective event personal
    fails the policy check.

    Returns:
        The updated event, or None if not visible.

    Raises:
        ValueError: If the resulting time range is reversed
        RowLevelSecurityError: If the updated row fails the policy check
    """
    existing = await get_calendar_event_by_id(supabase_client, caller, event_id)
    if existing is None:
        return None

    updates = _serialize(updates)
    if "client_id" in updates:
        updates["client_id"] = coerce_uuid(updates["client_id"])

    new_row = {**existing, **updates}
    _check_time_range(new_row.get("start_time"), new_row.get("end_time"))

    if not enforce_write(TABLE, Verb.UPDATE, caller, row=existing, new_row=new_row):
        return None

    result = supabase_client.table(TABLE).update(updates).eq("id", existing["id"]).execute()

    if not result.data or len(result.data) == 0:
        logger.warning(f"Calendar event {existing['id']} update affected no rows")
        return None

    logger.info(f"Calendar event {existing['id']} updated by {caller.user_id}")
    return cast(Dict[str, Any], result.data[0])


async def delete_calendar_event(
    supabase_client: Client,
    caller: CallerIdentity,
    event_id: str
) -> bool:
    """Delete an event. Returns False if it is missing or not visible."""
    existing = await get_calendar_event_by_id(supabase_client, caller, event_id)
    if existing is None:
        return False

    if not enforce_write(TABLE, Verb.DELETE, caller, row=existing):
        return False

    result = supabase_client.table(TABLE).delete().eq("id", existing["id"]).execute()

    logger.info(f"Calendar event {existing['id']} deleted by {caller.user_id}")
    return bool(result.data)
