"""
Team chat API endpoints.

A room the caller cannot read answers 404 for both listing and posting
messages.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from postgrest.exceptions import APIError

from crm_backend.access import RowLevelSecurityError
from crm_backend.auth.dependencies import AuthenticatedUser, get_authenticated_user
from crm_backend.db.client import get_supabase_client
from crm_backend.routes.errors import from_api_error, not_found, policy_violation, server_error
from crm_backend.schemas.chat import (
    ChatMessageCreateRequest,
    ChatMessageCreateResponse,
    ChatMessageListResponse,
    ChatMessageResponse,
    ChatMessagesReadResponse,
    ChatRoomCreateRequest,
    ChatRoomCreateResponse,
    ChatRoomListResponse,
    ChatRoomResponse,
)
from crm_backend.services.chat_service import (
    create_chat_room,
    get_chat_messages,
    get_chat_rooms,
    mark_messages_read,
    participant_ids,
    send_chat_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _as_str(v: Any) -> str:
    return str(v) if v is not None else ""


def _build_room_response(room: Dict[str, Any]) -> ChatRoomResponse:
    return ChatRoomResponse(
        id=_as_str(room.get("id")),
        name=_as_str(room.get("name")),
        type=_as_str(room.get("type") or "group"),
        is_general=bool(room.get("is_general")),
        created_by=room.get("created_by"),
        participant_ids=participant_ids(room),
        created_at=_as_str(room.get("created_at")),
    )


def _build_message_response(message: Dict[str, Any]) -> ChatMessageResponse:
    return ChatMessageResponse(
        id=_as_str(message.get("id")),
        room_id=_as_str(message.get("room_id")),
        sender_id=message.get("sender_id"),
        content=message.get("content"),
        message_type=_as_str(message.get("message_type") or "text"),
        is_read=bool(message.get("is_read")),
        created_at=_as_str(message.get("created_at")),
    )


@router.get(
    "/rooms",
    response_model=ChatRoomListResponse,
    status_code=status.HTTP_200_OK,
    summary="List chat rooms",
    description="The general room plus rooms the caller created or participates in."
)
async def list_rooms(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ChatRoomListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        rooms = await get_chat_rooms(supabase_client=supabase_client, caller=auth_user.caller)

        responses = [_build_room_response(r) for r in rooms]
        return ChatRoomListResponse(rooms=responses, count=len(responses))

    except Exception as e:
        logger.error(f"Failed to list chat rooms: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve chat rooms")


@router.post(
    "/rooms",
    response_model=ChatRoomCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create chat room"
)
async def create_room(
    request: ChatRoomCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ChatRoomCreateResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        room = await create_chat_room(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            name=request.name,
            room_type=request.type,
            participants=request.participant_ids
        )

        return ChatRoomCreateResponse(
            status="CREATED",
            room=_build_room_response(room),
            message="Chat room created successfully"
        )

    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to create chat room: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to create chat room")
    except Exception as e:
        logger.error(f"Failed to create chat room: {e}", exc_info=True)
        raise server_error("create_error", "Failed to create chat room")


@router.get(
    "/rooms/{room_id}/messages",
    response_model=ChatMessageListResponse,
    status_code=status.HTTP_200_OK,
    summary="List room messages",
    description="Messages of a room the caller can read, oldest first."
)
async def list_messages(
    room_id: Annotated[str, Path(description="Room UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    limit: int = Query(100, ge=1, le=500, description="Maximum number of messages")
) -> ChatMessageListResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        messages = await get_chat_messages(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            room_id=room_id,
            limit=limit
        )

        if messages is None:
            raise not_found("Chat room")

        responses = [_build_message_response(m) for m in messages]
        return ChatMessageListResponse(messages=responses, count=len(responses))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list messages for room {room_id}: {e}", exc_info=True)
        raise server_error("fetch_error", "Failed to retrieve messages")


@router.post(
    "/rooms/{room_id}/messages",
    response_model=ChatMessageCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send message"
)
async def post_message(
    room_id: Annotated[str, Path(description="Room UUID")],
    request: ChatMessageCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ChatMessageCreateResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        created = await send_chat_message(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            room_id=room_id,
            content=request.content,
            message_type=request.message_type
        )

        if created is None:
            raise not_found("Chat room")

        return ChatMessageCreateResponse(
            status="CREATED",
            chat_message=_build_message_response(created),
            message="Message sent successfully"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to send message to room {room_id}: {e}", exc_info=True)
        raise from_api_error(e, "create_error", "Failed to send message")
    except Exception as e:
        logger.error(f"Failed to send message to room {room_id}: {e}", exc_info=True)
        raise server_error("create_error", "Failed to send message")


@router.put(
    "/rooms/{room_id}/messages/read",
    response_model=ChatMessagesReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark room messages read",
    description="Marks every unread message from other members in the room as read."
)
async def mark_room_read(
    room_id: Annotated[str, Path(description="Room UUID")],
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ChatMessagesReadResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        marked = await mark_messages_read(
            supabase_client=supabase_client,
            caller=auth_user.caller,
            room_id=room_id
        )

        if marked is None:
            raise not_found("Chat room")

        return ChatMessagesReadResponse(
            status="UPDATED",
            room_id=room_id,
            marked_read=marked,
            message="Messages marked as read"
        )

    except HTTPException:
        raise
    except RowLevelSecurityError as e:
        raise policy_violation(e)
    except APIError as e:
        logger.error(f"Failed to mark messages read in room {room_id}: {e}", exc_info=True)
        raise from_api_error(e, "update_error", "Failed to mark messages as read")
    except Exception as e:
        logger.error(f"Failed to mark messages read in room {room_id}: {e}", exc_info=True)
        raise server_error("update_error", "Failed to mark messages as read")
