"""
Pydantic schemas for team member profiles.

Every team member can see every profile; only the owner can edit their own.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

UserRole = Literal["CEO", "CGO", "CTO"]


class UserResponse(BaseModel):
    id: str = Field(..., description="User UUID")
    email: str = Field(..., description="Login email")
    full_name: Optional[str] = Field(None)
    role: Optional[str] = Field(None, description="CEO, CGO or CTO")
    avatar_url: Optional[str] = Field(None)
    bio: Optional[str] = Field(None)
    company: Optional[str] = Field(None)
    location: Optional[str] = Field(None)
    phone: Optional[str] = Field(None)
    is_online: bool = Field(False)
    last_seen: Optional[str] = Field(None, description="ISO-8601 timestamp")


class UserListResponse(BaseModel):
    users: list[UserResponse]
    count: int = Field(..., description="Number of team members returned")


class UserProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[UserRole] = Field(None)
    avatar_url: Optional[str] = Field(None)
    bio: Optional[str] = Field(None, max_length=2000)
    company: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class UserProfileUpdateResponse(BaseModel):
    status: str = Field("UPDATED")
    user: UserResponse
    message: str = Field(..., examples=["Profile updated successfully"])
