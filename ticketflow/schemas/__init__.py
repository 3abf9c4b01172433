from .identity import Identity, parse_managed_departments
from .ticket import (
    AttachmentDescriptor,
    CreateTicketRequest,
    UpdateTicketRequest,
    TicketFilters,
    TicketResponse,
    PageInfo,
)
from .user import UserResponse, UpdateProfileRequest

__all__ = [
    "Identity",
    "parse_managed_departments",
    "AttachmentDescriptor",
    "CreateTicketRequest",
    "UpdateTicketRequest",
    "TicketFilters",
    "TicketResponse",
    "PageInfo",
    "UserResponse",
    "UpdateProfileRequest",
]
