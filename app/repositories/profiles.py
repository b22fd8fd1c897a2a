"""Repository for application profiles."""

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models import Profile, ProfileStatus


class ProfileRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, profile_id: UUID) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.id == profile_id).first()

    def create(
        self,
        account_id: UUID,
        email: str,
        role: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        invited_by: Optional[UUID] = None,
        status: str = ProfileStatus.ACTIVE.value,
    ) -> Profile:
        profile = Profile(
            id=account_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            status=status,
            invited_by=invited_by,
        )
        self.db.add(profile)
        self.db.flush()
        return profile
