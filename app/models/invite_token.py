"""Invite model for admin-issued, single-use registration links."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database import Base


class InviteStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class InviteToken(Base):
    """Invite granting one email permission to self-register under a role."""

    __tablename__ = "invite_tokens"

    id = Column(Integer, primary_key=True)
    token = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="employee")
    status = Column(String(20), nullable=False, default=InviteStatus.PENDING.value)
    invited_by = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    inviter = relationship("User", foreign_keys=[invited_by])

    __table_args__ = (
        Index("idx_invite_tokens_email_status", "email", "status"),
    )
