"""
Pydantic schemas for calendar feed tokens.

Provides data validation and serialization for:
- Feed creation requests
- Feed list/detail responses
- Feed creation response (includes the plain token, shown once)
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator


class CalendarFeedCreate(BaseModel):
    """
    Schema for creating a calendar feed.

    Fields:
        name: Display name shown in the subscribing calendar application
        filter_member: Optional member GUID or legacy role; the feed then only
            lists occurrences where this member drops off or picks up
    """

    name: str = Field(..., min_length=1, max_length=100)
    filter_member: Optional[str] = Field(default=None, max_length=64)

    @field_validator("name")
    @classmethod
    def validate_name_not_whitespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Feed name cannot be empty or whitespace")
        return v.strip()

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Kids Activities",
                "filter_member": "parent1",
            }
        }
    }


class CalendarFeedResponse(BaseModel):
    """Feed metadata. The token itself is never returned here."""

    guid: str = Field(..., description="Feed GUID (fed_xxx)")
    name: str
    token_prefix: str = Field(..., description="First characters of the token")
    filter_member: Optional[str] = None
    is_active: bool
    last_accessed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }


class CalendarFeedCreatedResponse(BaseModel):
    """Response for feed creation; the token is not retrievable later."""

    token: str
    feed_url: str = Field(..., description="Subscription URL including the token")
    feed: CalendarFeedResponse


class CalendarFeedListResponse(BaseModel):
    feeds: List[CalendarFeedResponse]
    total: int
