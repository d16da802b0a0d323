"""
Journal API endpoints.

Entries are personal. Another user's entry answers 404.
"""

import logging
from datetime import date
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
from crm_backend.schemas.journal import (
    JournalEntryCreateRequest,
    JournalEntryCreateResponse,
    JournalEntryDeleteResponse,
    JournalEntryListResponse,
    JournalEntryResponse,
    JournalEntryUpdateRequest,
    JournalEntryUpdateResponse,
)
from crm_backend.services.journal_service import (
    create_journal_entry,
    delete_journal_entry,
    get_journal_entries,
    get_journal_entry_by_id,
    update_journal_entry,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/journal", tags=["journal"])

TEXT_FIELDS = (
    "title",
    "category",
    "mood",
    "content",
    "sales_accomplishment",
    "marketing_accomplishment",
    "ops_accomplishment",
    "tech_accomplishment",
    "random_thoughts",
)


def _as_str(v: Any) -> str:
    return str(v) if v is not None else ""


def _build_entry_response(entry: Dict[str, Any]) -> JournalEntryResponse:
    return JournalEntryResponse(
        id=_as_str(entry.get("id")),
        user_id=_as_str(entry.get("user_id")),
        entry_date=_as_str(entry.get("entry_date")),
        created_at=_as_str(entry.get("created_at")),
        **{field: entry.get(field) for field in TEXT_FIELDS},
    )


@router.get(
    "/entries",
    response_model=JournalEntryListResponse,
    status_code=status.HTTP_200_OK,
    summary="List own journal entries"
)
async def list_entries(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    start_date: Optional[date] = Query(None, description="Earliest entry_date"),
    end_date: Optional[date] = Query(None, description="Latest entry_date"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0)
) -> JournalEntryListResponse:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise invalid_request("start_date must not be after end_date")

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        entries = await get_journal_entries(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset
        )

        responses = [_build_entry_response(e) for e in entries]
        return JournalEntryListResponse(entries=responses, count=len(responses))

    except Exception as e:
        logger.error(f"Failed to list journal entries for {auth_user.user_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve journal entries")


@router.post(
    "/entries",
    response_model=JournalEntryCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create journal entry"
)
async def create_entry(
    request: JournalEntryCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> JournalEntryCreateResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await create_journal_entry(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **request.model_dump()
        )

        return JournalEntryCreateResponse(
            status="CREATED",
            entry=_build_entry_response(created),
            message="Journal entry created successfully"
        )

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to create journal entry: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to create journal entry")
    except Exception as e:
        logger.error(f"Failed to create journal entry: {e}", exc_info=True)
        raise server_error("create_error", "Failed to create journal entry")


@router.get(
    "/entries/{entry_id}",
    response_model=JournalEntryResponse,
    status_code=status.HTTP_200_OK,
    summary="Get journal entry"
)
async def get_entry(
    entry_id: Annotated[str, Path(description="Entry UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> JournalEntryResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        entry = await get_journal_entry_by_id(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            entry_id=entry_id
        )

        if not entry:
            raise not_found("Journal entry")

        return _build_entry_response(entry)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch journal entry {entry_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve journal entry")


@router.patch(
    "/entries/{entry_id}",
    response_model=JournalEntryUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update journal entry"
)
async def update_entry(
    entry_id: Annotated[str, Path(description="Entry UUID")],
    request: JournalEntryUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> JournalEntryUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_journal_entry(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            entry_id=entry_id,
            **updates
        )

        if not updated:
            raise not_found("Journal entry")

        return JournalEntryUpdateResponse(
            status="UPDATED",
            entry=_build_entry_response(updated),
            message="Journal entry updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to update journal entry {entry_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update journal entry")
    except Exception as e:
        logger.error(f"Failed to update journal entry {entry_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update journal entry")


@router.delete(
    "/entries/{entry_id}",
    response_model=JournalEntryDeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete journal entry"
)
async def delete_entry(
    entry_id: Annotated[str, Path(description="Entry UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> JournalEntryDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await delete_journal_entry(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            entry_id=entry_id
        )

        if not deleted:
            raise not_found("Journal entry")

        return JournalEntryDeleteResponse(status="DELETED", message="Journal entry deleted successfully")

    except HTTPException:
        raise
    except APIError as e:
        logger.error(f"Failed to delete journal entry {entry_id}: {e}", exc_info=True)
        raise from_api_error(e, "delete_error", "Failed to delete journal entry")
    except Exception as e:
        logger.error(f"Failed to delete journal entry {entry_id}: {e}", exc_info=True)
        raise server_error("delete_error", "Failed to delete journal entry")
