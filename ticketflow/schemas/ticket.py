from pydantic import Field, field_validator, field_serializer, model_validator
from datetime import datetime
from typing import List, Optional, Union

from ticketflow.models.ticket import Department, TicketPriority, TicketStatus, RE_OPEN
from ticketflow.utils.datetime_utils import to_iso_string
from ticketflow.utils.validators import editable_subject
from .common import CamelModel


class AttachmentDescriptor(CamelModel):
    """File attached to a ticket (stored inside the ticket's files list)."""
    id: Union[str, int, float]
    name: str
    size: int = 0
    key: Optional[str] = None
    mimetype: Optional[str] = None
    uploaded_at: Optional[str] = None
    uploaded_by: Optional[int] = None

    class Config:
        extra = "allow"


class CreateTicketRequest(CamelModel):
    """Create ticket request."""
    subject: str
    description: str
    department: Department
    priority: TicketPriority
    category: Optional[str] = None
    subcategory: Optional[str] = None
    files: List[AttachmentDescriptor] = Field(default_factory=list)

    @field_validator("subject", "description", mode="before")
    @classmethod
    def not_blank(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("Field must not be empty")
        return value

    @field_validator("category", "subcategory", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class UpdateTicketRequest(CamelModel):
    """Partial ticket update. Unknown fields (createdBy, id, ...) are ignored."""
    subject: Optional[str] = None
    description: Optional[str] = None
    department: Optional[Department] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    comment: Optional[str] = None
    files_to_delete: List[Union[str, int, float]] = Field(default_factory=list)
    new_files: List[AttachmentDescriptor] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def reopen_is_open(cls, value):
        # RE_OPEN is not a stored status
        if value == RE_OPEN:
            return TicketStatus.OPEN
        return value


class TicketFilters(CamelModel):
    """Listing and stats filters, combined with AND."""
    department: Optional[Department] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    search: Optional[str] = None
    my_tickets: bool = False

    @field_validator("department", "priority", "status", "search", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("status", mode="before")
    @classmethod
    def reopen_is_open(cls, value):
        if value == RE_OPEN:
            return TicketStatus.OPEN
        return value


class TicketAuthor(CamelModel):
    id: int
    name: str
    username: str
    role: str
    department: Optional[str] = None

    class Config:
        from_attributes = True


class TicketResponse(CamelModel):
    """Ticket response."""
    id: int
    subject: str
    editable_subject: str = ""
    description: str
    department: Department
    priority: TicketPriority
    status: TicketStatus
    category: Optional[str] = None
    subcategory: Optional[str] = None
    comment: Optional[str] = None
    files: List[dict] = Field(default_factory=list)
    created_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[TicketAuthor] = None

    class Config:
        from_attributes = True

    @field_validator("files", mode="before")
    @classmethod
    def files_default(cls, value):
        return list(value or [])

    @model_validator(mode="after")
    def derive_editable_subject(self):
        self.editable_subject = editable_subject(self.subject)
        return self

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: Optional[datetime]):
        return to_iso_string(value)


class PageInfo(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool
    has_prev_page: bool
