"""
User settings API endpoints.

Display preferences for the caller only. GET returns defaults when nothing
is stored; PATCH creates the row on first use.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, status
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.db.client import get_supabase_client
from crm_backend.routes.errors import (
    empty_update,
    from_api_error,
    invalid_request,
    policy_violation,
    server_error,
)
from crm_backend.schemas.settings import UserSettingsResponse, UserSettingsUpdateRequest
from crm_backend.services.settings_service import get_user_settings, update_user_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


def _build_settings_response(row: Dict[str, Any], user_id: str) -> UserSettingsResponse:
    return UserSettingsResponse(
        user_id=str(row.get("user_id") or user_id),
        timezone=str(row.get("timezone")),
        currency=str(row.get("currency")),
        date_format=str(row.get("date_format")),
        time_format=str(row.get("time_format")),
        is_default=bool(row.get("is_default")),
    )


@router.get(
    "",
    response_model=UserSettingsResponse,
    status_code=status.HTTP_200_OK,
    summary="Get own settings"
)
async def read_settings(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> UserSettingsResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        row = await get_user_settings(supabase_client=supabase_client, caller=auth_user.caller)
        return _build_settings_response(row, auth_user.user_id)

    except Exception as e:
        logger.error(f"Failed to fetch settings for {auth_user.user_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve settings")


@router.patch(
    "",
    response_model=UserSettingsResponse,
    status_code=status.HTTP_200_OK,
    summary="Update own settings",
    description="timezone must be an IANA name; currency, date_format and time_format must be supported values."
)
async def write_settings(
    request: UserSettingsUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> UserSettingsResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        row = await update_user_settings(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **updates
        )
        return _build_settings_response(row, auth_user.user_id)

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except ValueError as e:
        raise invalid_request(str(e))
    except APIError as e:
        logger.error(f"Failed to update settings for {auth_user.user_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update settings")
    except Exception as e:
        logger.error(f"Failed to update settings for {auth_user.user_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update settings")
