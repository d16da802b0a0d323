"""
Team chat service.

Rooms are fetched with their participants embedded, and messages with their
room (and its participants) embedded, so the room-membership policy can be
evaluated on the rows PostgREST returns:

    chat_rooms:    select("*, chat_participants(user_id)")
    chat_messages: select("*, room:chat_rooms(is_general, created_by, chat_participants(user_id))")

Message content is never logged.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, cast

from postgrest.exceptions import APIError
from supabase import Client

from crm_backend.access import CallerIdentity, Verb, enforce_write, filter_visible
from crm_backend.utils.identifiers import coerce_uuid

logger = logging.getLogger(__name__)

ROOM_SELECT = "*, chat_participants(user_id)"
MESSAGE_SELECT = "*, room:chat_rooms(is_general, created_by, chat_participants(user_id))"


def participant_ids(room: Dict[str, Any]) -> List[str]:
    """UUIDs of a room's participants, from the embedded chat_participants."""
    ids = (coerce_uuid(p.get("user_id")) for p in room.get("chat_participants") or [])
    return [i for i in ids if i is not None]


async def get_chat_rooms(
    supabase_client: Client,
    caller: CallerIdentity
) -> List[Dict[str, Any]]:
    """
    Rooms the caller can read: the general room, rooms they created and
    rooms they participate in. General room first, then newest first.
    """
    result = (
        supabase_client.table("chat_rooms")
        .select(ROOM_SELECT)
        .order("is_general", desc=True)
        .order("created_at", desc=True)
        .execute()
    )

    rooms = filter_visible("chat_rooms", caller, cast(List[Dict[str, Any]], result.data or []))
    logger.info(f"Found {len(rooms)} chat rooms for caller {caller.user_id}")

    return cast(List[Dict[str, Any]], rooms)


async def get_chat_room_by_id(
    supabase_client: Client,
    caller: CallerIdentity,
    room_id: str
) -> Optional[Dict[str, Any]]:
    room_uuid = coerce_uuid(room_id)
    if room_uuid is None:
        return None

    result = supabase_client.table("chat_rooms").select(ROOM_SELECT).eq("id", room_uuid).execute()

    rows = filter_visible("chat_rooms", caller, cast(List[Dict[str, Any]], result.data or []))
    return cast(Dict[str, Any], rows[0]) if rows else None


async def create_chat_room(
    supabase_client: Client,
    caller: CallerIdentity,
    name: str,
    room_type: str = "group",
    participants: Iterable[str] = ()
) -> Dict[str, Any]:
    """
    Create a room and add its participants.

    The caller is always a participant; ids that are not UUIDs are dropped.

    Returns:
        The created room with chat_participants embedded.

    Raises:
        RowLevelSecurityError: If the caller is anonymous
        APIError: If a participant cannot be added; the room is deleted first
        Exception: If the insert returns no data
    """
    room_data = {
        "name": name,
        "type": room_type,
        "is_general": False,
        "created_by": caller.user_id,
    }

    enforce_write("chat_rooms", Verb.INSERT, caller, new_row=room_data)

    result = supabase_client.table("chat_rooms").insert(room_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to create chat room: no data returned")

    room = cast(Dict[str, Any], result.data[0])

    members = [caller.user_id]
    for raw in participants:
        member = coerce_uuid(raw)
        if member is not None and member not in members:
            members.append(member)

    participant_rows = [{"room_id": room["id"], "user_id": member} for member in members]
    for row in participant_rows:
        enforce_write("chat_participants", Verb.INSERT, caller, new_row=row)

    try:
        supabase_client.table("chat_participants").insert(participant_rows).execute()
    except APIError as e:
        # No room without its participants
        logger.error(f"Adding participants to room {room['id']} failed, removing the room: {e.message}")
        supabase_client.table("chat_rooms").delete().eq("id", room["id"]).execute()
        raise

    room["chat_participants"] = [{"user_id": member} for member in members]
    logger.info(f"Chat room {room['id']} created with {len(members)} participants")

    return room


async def get_chat_messages(
    supabase_client: Client,
    caller: CallerIdentity,
    room_id: str,
    limit: int = 100
) -> Optional[List[Dict[str, Any]]]:
    """
    Messages of a room, oldest first.

    Returns:
        List of message dicts (without the embedded room), or None if the
        room is not visible.
    """
    room = await get_chat_room_by_id(supabase_client, caller, room_id)
    if room is None:
        return None

    result = (
        supabase_client.table("chat_messages")
        .select(MESSAGE_SELECT)
        .eq("room_id", room["id"])
        .order("created_at")
        .limit(limit)
        .execute()
    )

    visible = filter_visible("chat_messages", caller, cast(List[Dict[str, Any]], result.data or []))
    messages = [{k: v for k, v in m.items() if k != "room"} for m in visible]
    logger.info(f"Found {len(messages)} messages in room {room['id']}")

    return messages


async def send_chat_message(
    supabase_client: Client,
    caller: CallerIdentity,
    room_id: str,
    content: str,
    message_type: str = "text"
) -> Optional[Dict[str, Any]]:
    """
    Post a message as the caller.

    Returns:
        The created message, or None if the room is not visible.

    Raises:
        RowLevelSecurityError: If the caller may not post in the room
        Exception: If the insert returns no data
    """
    room = await get_chat_room_by_id(supabase_client, caller, room_id)
    if room is None:
        return None

    message_data = {
        "room_id": room["id"],
        "sender_id": caller.user_id,
        "content": content,
        "message_type": message_type,
    }

    enforce_write("chat_messages", Verb.INSERT, caller, new_row={**message_data, "room": room})

    result = supabase_client.table("chat_messages").insert(message_data).execute()

    if not result.data or len(result.data) == 0:
        raise Exception("Failed to send message: no data returned")

    created = cast(Dict[str, Any], result.data[0])
    logger.info(f"Message {created.get('id')} sent to room {room['id']} by {caller.user_id}")

    return created


async def mark_messages_read(
    supabase_client: Client,
    caller: CallerIdentity,
    room_id: str
) -> Optional[int]:
    """
    Mark every unread message in a room that the caller did not send as read.

    Returns:
        Number of messages marked, or None if the room is not visible.

    Raises:
        RowLevelSecurityError: If the caller may not update messages in the room
    """
    room = await get_chat_room_by_id(supabase_client, caller, room_id)
    if room is None:
        return None

    scope = {"room_id": room["id"], "room": room}
    if not enforce_write("chat_messages", Verb.UPDATE, caller, row=scope, new_row={**scope, "is_read": True}):
        return None

    result = (
        supabase_client.table("chat_messages")
        .update({"is_read": True})
        .eq("room_id", room["id"])
        .neq("sender_id", caller.user_id)
        .eq("is_read", False)
        .execute()
    )

    marked = len(result.data or [])
    logger.info(f"Marked {marked} messages read in room {room['id']} for {caller.user_id}")

    return marked
