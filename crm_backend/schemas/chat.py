"""
Pydantic schemas for team chat endpoints.

A room is readable by everyone when it is the general room, otherwise by its
creator and participants. Messages follow their room. Only the sender may
delete a message; any member may mark messages in the room as read.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

RoomType = Literal["direct", "group"]
MessageType = Literal["text", "shared_content", "file"]


class ChatRoomResponse(BaseModel):
    id: str = Field(..., description="Room UUID")
    name: str = Field(..., description="Room name")
    type: str = Field(..., description="direct or group")
    is_general: bool = Field(False, description="True for the team-wide room")
    created_by: Optional[str] = Field(None, description="Creator UUID")
    participant_ids: list[str] = Field(default_factory=list, description="Participant UUIDs")
    created_at: str = Field(..., description="ISO-8601 timestamp when created")


class ChatRoomListResponse(BaseModel):
    rooms: list[ChatRoomResponse]
    count: int = Field(..., description="Number of rooms returned")


class ChatRoomCreateRequest(BaseModel):
    """
    Request to create a room.

    The caller is always added as a participant. Participant ids that are not
    UUIDs are dropped.
    """
    name: str = Field(..., min_length=1, max_length=255, examples=["Deal desk"])
    type: RoomType = Field("group")
    participant_ids: list[str] = Field(default_factory=list)


class ChatRoomCreateResponse(BaseModel):
    status: str = Field("CREATED")
    room: ChatRoomResponse
    message: str = Field(..., examples=["Chat room created successfully"])


class ChatMessageResponse(BaseModel):
    id: str = Field(..., description="Message UUID")
    room_id: str = Field(..., description="Room UUID")
    sender_id: Optional[str] = Field(None, description="Sender UUID")
    content: Optional[str] = Field(None)
    message_type: str = Field(..., description="text, shared_content or file")
    is_read: bool = Field(False)
    created_at: str = Field(..., description="ISO-8601 timestamp when sent")


class ChatMessageListResponse(BaseModel):
    messages: list[ChatMessageResponse]
    count: int = Field(..., description="Number of messages returned")


class ChatMessageCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000, examples=["Proposal sent"])
    message_type: MessageType = Field("text")


class ChatMessageCreateResponse(BaseModel):
    status: str = Field("CREATED")
    chat_message: ChatMessageResponse
    message: str = Field(..., examples=["Message sent successfully"])


class ChatMessagesReadResponse(BaseModel):
    status: str = Field("UPDATED")
    room_id: str = Field(..., description="Room UUID")
    marked_read: int = Field(..., description="Messages from other members newly marked read")
    message: str = Field(..., examples=["Messages marked as read"])
