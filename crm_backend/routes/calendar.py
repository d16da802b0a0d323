"""
Calendar API endpoints.

Collective events are visible to the whole team; personal events only to
their owner. A personal event of another user answers 404, exactly like a
missing one.
"""

import logging
from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.db.client import get_supabase_client
from crm_backend.routes.errors import (
    empty_update,
    from_api_error,
    invalid_request,
    not_found,
    policy_violation,
    server_error,
)
from crm_backend.schemas.calendar import (
    CalendarEventCreateRequest,
    CalendarEventCreateResponse,
    CalendarEventDeleteResponse,
    CalendarEventListResponse,
    CalendarEventResponse,
    CalendarEventUpdateRequest,
    CalendarEventUpdateResponse,
    EventScope,
)
from crm_backend.services.calendar_service import (
    create_calendar_event,
    delete_calendar_event,
    get_calendar_event_by_id,
    get_calendar_events,
    update_calendar_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _as_str(v: Any) -> str:
    return str(v) if v is not None else ""


def _build_event_response(event: Dict[str, Any]) -> CalendarEventResponse:
    return CalendarEventResponse(
        id=_as_str(event.get("id")),
        title=_as_str(event.get("title")),
        description=event.get("description"),
        start_time=_as_str(event.get("start_time")),
        end_time=_as_str(event.get("end_time")),
        type=_as_str(event.get("type") or "meeting"),
        location=event.get("location"),
        meeting_url=event.get("meeting_url"),
        client_id=event.get("client_id"),
        is_collective=bool(event.get("is_collective")),
        user_id=event.get("user_id"),
        created_by=event.get("created_by"),
        created_at=_as_str(event.get("created_at")),
    )


@router.get(
    "/events",
    response_model=CalendarEventListResponse,
    status_code=status.HTTP_200_OK,
    summary="List calendar events",
    description="""
    scope=all returns collective events plus the caller's personal events,
    scope=shared only collective events, scope=personal only the caller's
    personal events. start/end bound start_time.
    """
)
async def list_events(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    scope: EventScope = Query("all", description="all, shared or personal"),
    start: Optional[datetime] = Query(None, description="Earliest start_time (ISO-8601)"),
    end: Optional[datetime] = Query(None, description="Latest start_time (ISO-8601)")
) -> CalendarEventListResponse:
    if start is not None and end is not None and start > end:
        raise invalid_request("start must not be after end")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        events = await get_calendar_events(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            scope=scope,
            start=start,
            end=end
        )

        responses = [_build_event_response(e) for e in events]
        return CalendarEventListResponse(events=responses, count=len(responses), scope=scope)

    except Exception as e:
        logger.error(f"Failed to list calendar events: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve calendar events")


@router.post(
    "/events",
    response_model=CalendarEventCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create calendar event",
    description="Create an event owned by the caller, personal unless is_collective is set."
)
async def create_event(
    request: CalendarEventCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CalendarEventCreateResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await create_calendar_event(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **request.model_dump()
        )

        logger.info(f"Calendar event {created.get('id')} created by {auth_user.user_id}")

        return CalendarEventCreateResponse(
            status="CREATED",
            event=_build_event_response(created),
            message="Event created successfully"
        )

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to create calendar event: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to create calendar event")
    except Exception as e:
        logger.error(f"Failed to create calendar event: {e}", exc_info=True)
        raise server_error("create_error", "Failed to create calendar event")


@router.get(
    "/events/{event_id}",
    response_model=CalendarEventResponse,
    status_code=status.HTTP_200_OK,
    summary="Get calendar event"
)
async def get_event(
    event_id: Annotated[str, Path(description="Event UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CalendarEventResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        event = await get_calendar_event_by_id(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            event_id=event_id
        )

        if not event:
            raise not_found("Event")

        return _build_event_response(event)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch calendar event {event_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve calendar event")


@router.patch(
    "/events/{event_id}",
    response_model=CalendarEventUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update calendar event",
    description="""
    Partial update. Collective events can be edited by any team member, but
    the edited event must stay visible to the editor.
    """
)
async def update_event(
    event_id: Annotated[str, Path(description="Event UUID")],
    request: CalendarEventUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CalendarEventUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_calendar_event(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            event_id=event_id,
            **updates
        )

        if not updated:
            raise not_found("Event")

        return CalendarEventUpdateResponse(
            status="UPDATED",
            event=_build_event_response(updated),
            message="Event updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to update calendar event {event_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update calendar event")
    except Exception as e:
        logger.error(f"Failed to update calendar event {event_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update calendar event")


@router.delete(
    "/events/{event_id}",
    response_model=CalendarEventDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete calendar event"
)
async def delete_event(
    event_id: Annotated[str, Path(description="Event UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CalendarEventDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_calendar_event(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            event_id=event_id
        )

        if not deleted:
            raise not_found("Event")

        return CalendarEventDeleteResponse(status="DELETED", message="Event deleted successfully")

    except HTTPException:
        raise
    except APIError as e:
        logger.error(f"Failed to delete calendar event {event_id}: {e}", exc_info=True)
        raise from_api_error(e, "delete_error", "Failed to delete calendar event")
    except Exception as e:
        logger.error(f"Failed to delete calendar event {event_id}: {e}", exc_info=True)
        raise server_error("delete_error", "Failed to delete calendar event")
