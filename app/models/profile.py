"""Application-level user record linked one-to-one with an auth account."""

import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database import Base


class ProfileRole(str, enum.Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
    MANAGER = "manager"


class ProfileStatus(str, enum.Enum):
    INVITED = "invited"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Profile(Base):
    """Profile keyed by the auth account id; holds role, status and inviter linkage."""

    __tablename__ = "profiles"

    id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default=ProfileRole.EMPLOYEE.value)
    status = Column(String(20), nullable=False, default=ProfileStatus.ACTIVE.value)
    invited_by = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", foreign_keys=[id], back_populates="profile")
    inviter = relationship("User", foreign_keys=[invited_by])
    notifications = relationship(
        "Notification", back_populates="recipient", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN.value

    @property
    def display_name(self) -> str:
        """Full name, falling back to email."""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    def __repr__(self):
        return f"<Profile(id={self.id}, email={self.email}, role={self.role})>"
