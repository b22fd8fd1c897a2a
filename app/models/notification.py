"""In-app notification, optionally forwarded by email."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    Uuid,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database import Base


QUESTION_ANSWERED = "question_answered"


class Notification(Base):
    """
    Notification for a profile.

    `read` is owned by the recipient; `processed_at` is owned by the email
    dispatcher and marks a completed email send. Each writer updates only
    its own column.
    """

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    recipient_id = Column(
        Uuid(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    data = Column(JSON, nullable=False, default=dict)  # form_id, response_id, question_id, question_text, answer
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    recipient = relationship("Profile", back_populates="notifications")

    __table_args__ = (
        Index("idx_notifications_recipient_read", "recipient_id", "read"),
        Index("idx_notifications_type_processed", "type", "processed_at"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, type={self.type}, recipient_id={self.recipient_id})>"
