"""
Pydantic schemas for journal endpoints.

Journal entries are strictly personal: only the author can read or change
them.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class JournalEntryResponse(BaseModel):
    id: str = Field(..., description="Entry UUID")
    user_id: str = Field(..., description="Author UUID")
    entry_date: str = Field(..., description="Day the entry is about (YYYY-MM-DD)")
    title: Optional[str] = Field(None)
    category: Optional[str] = Field(None)
    mood: Optional[str] = Field(None)
    content: Optional[str] = Field(None)
    sales_accomplishment: Optional[str] = Field(None)
    marketing_accomplishment: Optional[str] = Field(None)
    ops_accomplishment: Optional[str] = Field(None)
    tech_accomplishment: Optional[str] = Field(None)
    random_thoughts: Optional[str] = Field(None)
    created_at: str = Field(..., description="ISO-8601 timestamp when created")


class JournalEntryListResponse(BaseModel):
    entries: list[JournalEntryResponse]
    count: int = Field(..., description="Number of entries returned")


class JournalEntryCreateRequest(BaseModel):
    entry_date: date = Field(..., examples=["2026-03-02"])
    title: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    mood: Optional[str] = Field(None, max_length=50)
    content: Optional[str] = Field(None)
    sales_accomplishment: Optional[str] = Field(None)
    marketing_accomplishment: Optional[str] = Field(None)
    ops_accomplishment: Optional[str] = Field(None)
    tech_accomplishment: Optional[str] = Field(None)
    random_thoughts: Optional[str] = Field(None)


class JournalEntryUpdateRequest(BaseModel):
    entry_date: Optional[date] = Field(None)
    title: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    mood: Optional[str] = Field(None, max_length=50)
    content: Optional[str] = Field(None)
    sales_accomplishment: Optional[str] = Field(None)
    marketing_accomplishment: Optional[str] = Field(None)
    ops_accomplishment: Optional[str] = Field(None)
    tech_accomplishment: Optional[str] = Field(None)
    random_thoughts: Optional[str] = Field(None)


class JournalEntryCreateResponse(BaseModel):
    status: str = Field("CREATED")
    entry: JournalEntryResponse
    message: str = Field(..., examples=["Journal entry created successfully"])


class JournalEntryUpdateResponse(BaseModel):
    status: str = Field("UPDATED")
    entry: JournalEntryResponse
    message: str = Field(..., examples=["Journal entry updated successfully"])


class JournalEntryDeleteResponse(BaseModel):
    status: str = Field("DELETED")
    message: str = Field(..., examples=["Journal entry deleted successfully"])
