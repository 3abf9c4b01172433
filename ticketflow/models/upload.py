from sqlalchemy import Column, String, Integer, BigInteger, ForeignKey, Index
from .base import Base, TimestampMixin

class Upload(Base, TimestampMixin):
    """A stored attachment object and who uploaded it.

    ticket_id stays empty until the file is attached to a ticket.
    """
    __tablename__ = "uploads"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    file_id = Column(String(64), nullable=False)
    key = Column(String(512), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    mimetype = Column(String(255), nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True)
    
    __table_args__ = (
        Index("idx_upload_uploaded_by", "uploaded_by"),
        Index("idx_upload_ticket_id", "ticket_id"),
    )
    
    def __repr__(self):
        return f"<Upload {self.key}>"
