from pydantic import Field, field_validator, field_serializer
from datetime import datetime
from typing import Optional

from ticketflow.utils.datetime_utils import to_iso_string
from .common import CamelModel


class UserResponse(CamelModel):
    """Public view of a user; never carries credentials."""
    id: int
    username: str
    name: str
    role: str
    department: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: Optional[datetime]):
        return to_iso_string(value)


class UpdateProfileRequest(CamelModel):
    """Profile update. Only the display name can be changed."""
    name: str = Field(max_length=255)

    @field_validator("name", mode="before")
    @classmethod
    def not_blank(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("Name must not be empty")
        return value
