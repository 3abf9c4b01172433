from .base import Base, TimestampMixin
from .user import User
from .ticket import Ticket, Department, TicketPriority, TicketStatus, RE_OPEN
from .upload import Upload

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "Ticket",
    "Department",
    "TicketPriority",
    "TicketStatus",
    "RE_OPEN",
    "Upload",
]
