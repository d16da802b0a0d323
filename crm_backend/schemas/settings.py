"""
Pydantic schemas for per-user display settings.

Settings only affect formatting in the UI. A user without a stored row gets
the defaults.
"""

from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

Currency = Literal["USD", "EUR", "GBP", "JPY", "CAD", "AUD"]
DateFormat = Literal["MM/dd/yyyy", "dd/MM/yyyy", "yyyy-MM-dd"]
TimeFormat = Literal["12h", "24h"]


def validate_timezone(value: str) -> str:
    """Reject names the IANA database does not know."""
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {value}")
    return value


class UserSettingsResponse(BaseModel):
    user_id: str = Field(..., description="Owner UUID")
    timezone: str = Field(..., description="IANA timezone", examples=["America/New_York"])
    currency: str = Field(..., description="Display currency", examples=["USD"])
    date_format: str = Field(..., examples=["MM/dd/yyyy"])
    time_format: str = Field(..., examples=["12h"])
    is_default: bool = Field(
        False,
        description="True when no settings row exists yet and defaults are returned"
    )


class UserSettingsUpdateRequest(BaseModel):
    timezone: Optional[str] = Field(None, examples=["Europe/London"])
    currency: Optional[Currency] = Field(None)
    date_format: Optional[DateFormat] = Field(None)
    time_format: Optional[TimeFormat] = Field(None)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return validate_timezone(value)
