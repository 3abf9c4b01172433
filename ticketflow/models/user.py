from sqlalchemy import Column, String, Integer, Boolean, JSON, Index
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin

class User(Base, TimestampMixin):
    """Employee or manager. Role is free text (e.g. "Senior HR Executive")."""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(150), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    role = Column(String(255), nullable=False)
    department = Column(String(100), nullable=True)
    # Departments this user can handle, e.g. ["HR", "FINANCE"]
    managed_departments = Column(JSON, nullable=True)
    is_manager = Column(Boolean, nullable=False, default=False)
    
    # Relationships
    tickets = relationship("Ticket", back_populates="user")
    
    __table_args__ = (
        Index("idx_user_username", "username"),
    )
    
    def __repr__(self):
        return f"<User {self.username}>"
