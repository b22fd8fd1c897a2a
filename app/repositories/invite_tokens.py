"""Repository for invite tokens."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import InviteToken, InviteStatus


class InviteTokenRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, token: str) -> Optional[InviteToken]:
        return self.db.query(InviteToken).filter(InviteToken.token == token).first()

    def get_pending_for_email(self, email: str) -> Optional[InviteToken]:
        return (
            self.db.query(InviteToken)
            .filter(
                func.lower(InviteToken.email) == email.lower(),
                InviteToken.status == InviteStatus.PENDING.value,
            )
            .order_by(InviteToken.created_at.desc())
            .first()
        )

    def create(
        self,
        token: str,
        email: str,
        role: str,
        invited_by: UUID,
        expires_at: datetime,
    ) -> InviteToken:
        invite = InviteToken(
            token=token,
            email=email,
            role=role,
            invited_by=invited_by,
            status=InviteStatus.PENDING.value,
            expires_at=expires_at,
        )
        self.db.add(invite)
        self.db.flush()
        return invite

    def mark_accepted(self, invite_id: int, accepted_at: datetime) -> bool:
        """Move pending -> accepted. False when another caller got there first."""
        updated = (
            self.db.query(InviteToken)
            .filter(
                InviteToken.id == invite_id,
                InviteToken.status == InviteStatus.PENDING.value,
            )
            .update(
                {"status": InviteStatus.ACCEPTED.value, "accepted_at": accepted_at},
                synchronize_session=False,
            )
        )
        return updated == 1

    def mark_expired(self, invite_id: int) -> bool:
        updated = (
            self.db.query(InviteToken)
            .filter(
                InviteToken.id == invite_id,
                InviteToken.status == InviteStatus.PENDING.value,
            )
            .update(
                {"status": InviteStatus.EXPIRED.value}, synchronize_session=False
            )
        )
        return updated == 1

    def expire_stale(self, now: datetime) -> int:
        """Flip every pending invite past its expiry to expired."""
        return (
            self.db.query(InviteToken)
            .filter(
                InviteToken.status == InviteStatus.PENDING.value,
                InviteToken.expires_at < now,
            )
            .update(
                {"status": InviteStatus.EXPIRED.value}, synchronize_session=False
            )
        )

    def get_accepted_for_email(self, email: str) -> Optional[InviteToken]:
        return (
            self.db.query(InviteToken)
            .filter(
                func.lower(InviteToken.email) == email.lower(),
                InviteToken.status == InviteStatus.ACCEPTED.value,
            )
            .order_by(InviteToken.accepted_at.desc())
            .first()
        )
