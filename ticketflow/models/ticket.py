from sqlalchemy import Column, String, Text, Integer, ForeignKey, Index, Enum, JSON
from sqlalchemy.orm import relationship
import enum
from .base import Base, TimestampMixin

class Department(str, enum.Enum):
    """Department a ticket is routed to."""
    ADMIN = "ADMIN"
    FINANCE = "FINANCE"
    HR = "HR"

class TicketPriority(str, enum.Enum):
    """Ticket priority."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

class TicketStatus(str, enum.Enum):
    """Ticket status - any status may follow any other."""
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"

# Accepted on input, never persisted; stored as OPEN.
RE_OPEN = "RE_OPEN"

class Ticket(Base, TimestampMixin):
    """Help request routed to one department."""
    __tablename__ = "tickets"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    subject = Column(String(500), nullable=False)
    description = Column(Text, nullable=False)
    department = Column(Enum(Department, native_enum=False, length=20), nullable=False)
    priority = Column(Enum(TicketPriority, native_enum=False, length=20), nullable=False)
    status = Column(
        Enum(TicketStatus, native_enum=False, length=20),
        nullable=False,
        default=TicketStatus.OPEN,
    )
    category = Column(String(255), nullable=True)
    subcategory = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)
    files = Column(JSON, nullable=False, default=list)  # ordered attachment descriptors
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    version = Column(Integer, nullable=False)
    
    # Relationships
    user = relationship("User", back_populates="tickets")
    
    __table_args__ = (
        Index("idx_ticket_created_by", "created_by"),
        Index("idx_ticket_department", "department"),
        Index("idx_ticket_status", "status"),
        Index("idx_ticket_created_at", "created_at"),
    )
    
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self):
        return f"<Ticket #{self.id} {self.status}>"
