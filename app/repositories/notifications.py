"""Repository for notifications."""

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.models import Notification
from app.timeutils import utcnow


class NotificationRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        recipient_id: UUID,
        type: str,
        title: str,
        message: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
            read=False,
            created_at=utcnow(),
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_pending(self, type: str, limit: int) -> List[Notification]:
        """Unprocessed notifications of a type, oldest first."""
        return (
            self.db.query(Notification)
            .options(joinedload(Notification.recipient))
            .filter(Notification.type == type, Notification.processed_at.is_(None))
            .order_by(Notification.created_at.asc(), Notification.id.asc())
            .limit(limit)
            .all()
        )

    def mark_processed(self, notification_id: int, processed_at: datetime) -> bool:
        """Set processed_at once; only this column is written."""
        updated = (
            self.db.query(Notification)
            .filter(
                Notification.id == notification_id,
                Notification.processed_at.is_(None),
            )
            .update({"processed_at": processed_at}, synchronize_session=False)
        )
        return updated == 1

    def list_for_recipient(
        self,
        recipient_id: UUID,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Notification]:
        query = self.db.query(Notification).filter(
            Notification.recipient_id == recipient_id
        )
        if unread_only:
            query = query.filter(Notification.read.is_(False))
        return (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_unread(self, recipient_id: UUID) -> int:
        return (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == recipient_id,
                Notification.read.is_(False),
            )
            .count()
        )

    def mark_read(self, recipient_id: UUID, notification_ids: Iterable[int]) -> int:
        """Mark the caller's own notifications read; other recipients' rows are never matched."""
        ids = list(notification_ids)
        if not ids:
            return 0
        return (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == recipient_id,
                Notification.id.in_(ids),
            )
            .update(
                {"read": True, "updated_at": utcnow()}, synchronize_session=False
            )
        )

    def mark_all_read(self, recipient_id: UUID) -> int:
        return (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == recipient_id,
                Notification.read.is_(False),
            )
            .update(
                {"read": True, "updated_at": utcnow()}, synchronize_session=False
            )
        )
