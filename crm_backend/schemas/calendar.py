"""
Pydantic schemas for calendar event endpoints.

An event is either collective (is_collective=true, visible to the whole
team) or personal (visible only to its owner, user_id). created_by is kept
for audit and never grants access.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

EventType = Literal["meeting", "sync", "block", "personal"]

# all = collective + own personal, shared = collective only, personal = own personal only
EventScope = Literal["all", "shared", "personal"]


class CalendarEventResponse(BaseModel):
    id: str = Field(..., description="Event UUID")
    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(None)
    start_time: str = Field(..., description="ISO-8601 start")
    end_time: str = Field(..., description="ISO-8601 end")
    type: str = Field(..., description="Event type")
    location: Optional[str] = Field(None)
    meeting_url: Optional[str] = Field(None)
    client_id: Optional[str] = Field(None, description="Related client UUID")
    is_collective: bool = Field(..., description="True if visible to the whole team")
    user_id: Optional[str] = Field(None, description="Owner UUID")
    created_by: Optional[str] = Field(None, description="Creator UUID (audit only)")
    created_at: str = Field(..., description="ISO-8601 timestamp when created")


class CalendarEventListResponse(BaseModel):
    events: list[CalendarEventResponse] = Field(..., description="Events visible to the caller")
    count: int = Field(..., description="Number of events returned")
    scope: EventScope = Field(..., description="Scope the list was filtered to")


class CalendarEventCreateRequest(BaseModel):
    """
    Request to create an event.

    The owner is always the caller. end_time must not precede start_time.
    """
    title: str = Field(..., min_length=1, max_length=255, examples=["Weekly pipeline sync"])
    description: Optional[str] = Field(None, max_length=5000)
    start_time: datetime = Field(..., examples=["2026-03-02T15:00:00Z"])
    end_time: datetime = Field(..., examples=["2026-03-02T15:30:00Z"])
    type: EventType = Field("meeting")
    location: Optional[str] = Field(None, max_length=255)
    meeting_url: Optional[str] = Field(None)
    client_id: Optional[str] = Field(None, description="Related client UUID")
    is_collective: bool = Field(
        False,
        description="Share with the whole team instead of keeping it personal"
    )


class CalendarEventUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    start_time: Optional[datetime] = Field(None)
    end_time: Optional[datetime] = Field(None)
    type: Optional[EventType] = Field(None)
    location: Optional[str] = Field(None, max_length=255)
    meeting_url: Optional[str] = Field(None)
    client_id: Optional[str] = Field(None)
    is_collective: Optional[bool] = Field(None)


class CalendarEventCreateResponse(BaseModel):
    status: str = Field("CREATED")
    event: CalendarEventResponse
    message: str = Field(..., examples=["Event created successfully"])


class CalendarEventUpdateResponse(BaseModel):
    status: str = Field("UPDATED")
    event: CalendarEventResponse
    message: str = Field(..., examples=["Event updated successfully"])


class CalendarEventDeleteResponse(BaseModel):
    status: str = Field("DELETED")
    message: str = Field(..., examples=["Event deleted successfully"])
