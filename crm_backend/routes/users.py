"""
Team member API endpoints.

Every member can list the team; each member edits only their own profile.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.db.client import get_supabase_client
from crm_backend.routes.errors import (
    empty_update,
    from_api_error,
    not_found,
    policy_violation,
    server_error,
)
from crm_backend.schemas.users import (
    UserListResponse,
    UserProfileUpdateRequest,
    UserProfileUpdateResponse,
    UserResponse,
)
from crm_backend.services.user_service import get_users, update_own_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _build_user_response(user: Dict[str, Any]) -> UserResponse:
    last_seen = user.get("last_seen")
    return UserResponse(
        id=str(user.get("id") or ""),
        email=str(user.get("email") or ""),
        full_name=user.get("full_name"),
        role=user.get("role"),
        avatar_url=user.get("avatar_url"),
        bio=user.get("bio"),
        company=user.get("company"),
        location=user.get("location"),
        phone=user.get("phone"),
        is_online=bool(user.get("is_online")),
        last_seen=str(last_seen) if last_seen is not None else None,
    )


@router.get(
    "",
    response_model=UserListResponse,
    status_code=status.HTTP_200_OK,
    summary="List team members"
)
async def list_users(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> UserListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        users = await get_users(supabase_client=supabase_client, caller=auth_user.caller)

        responses = [_build_user_response(u) for u in users]
        return UserListResponse(users=responses, count=len(responses))

    except Exception as e:
        logger.error(f"Failed to list users: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve team members")


@router.patch(
    "/me",
    response_model=UserProfileUpdateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update own profile"
)
async def update_me(
    request: UserProfileUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> UserProfileUpdateResponse:
    updates = request.model_dump(exclude_none=True)

    if not updates:
        raise empty_update()

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        updated = await update_own_profile(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            **updates
        )

        if not updated:
            raise not_found("Profile")

        return UserProfileUpdateResponse(
            status="UPDATED",
            user=_build_user_response(updated),
            message="Profile updated successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to update profile {auth_user.user_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to update profile")
    except Exception as e:
        logger.error(f"Failed to update profile {auth_user.user_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to update profile")
