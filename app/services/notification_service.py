"""
Notification email dispatch and recipient-side notification management.

Dispatch flow (invoked periodically by an external scheduler):
1. Select unprocessed `question_answered` notifications, oldest first
2. Resolve recipient email, form title and submitter name
3. Format the answer for display and post the payload to the email webhook
4. On success set `processed_at` (conditional on it still being null)
5. On failure leave the row for the next run and count the error

One item's failure never aborts the batch.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models import Notification, Profile, QUESTION_ANSWERED
from app.repositories import FormRepository, NotificationRepository
from app.services.email_sender import WebhookEmailSender
from app.services.errors import ConfigurationError, InvalidInputError
from app.timeutils import utcnow


logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def format_answer(answer: Any) -> Any:
    """
    Normalize an answer for human display.

    Lists join with ", ", dicts become compact JSON text, scalars pass through.
    """
    if isinstance(answer, (list, tuple)):
        return ", ".join("" if item is None else str(item) for item in answer)
    if isinstance(answer, dict):
        return json.dumps(answer, separators=(",", ":"), ensure_ascii=False)
    return answer


@dataclass
class DispatchResult:
    processed: int = 0
    errors: int = 0

    @property
    def message(self) -> str:
        if not self.processed and not self.errors:
            return "No notifications to process"
        return f"Processed {self.processed} notifications with {self.errors} errors"


class NotificationDispatcher:
    """Turns queued notifications into outbound emails exactly once."""

    def __init__(self, db: Session, email_sender: WebhookEmailSender):
        self.db = db
        self.email_sender = email_sender
        self.notifications = NotificationRepository(db)
        self.forms = FormRepository(db)

    def _webhook_url(self) -> str:
        if not settings.notification_webhook_url:
            logger.critical("Missing NOTIFICATION_WEBHOOK_URL setting")
            raise ConfigurationError("Email service not configured")
        return settings.notification_webhook_url

    async def dispatch_pending(self, batch_size: Optional[int] = None) -> DispatchResult:
        """Process up to batch_size pending notifications."""
        if batch_size is not None and batch_size < 1:
            raise InvalidInputError("Batch size must be at least 1")
        webhook_url = self._webhook_url()
        if batch_size is None:
            batch_size = settings.notification_batch_size
        result = DispatchResult()

        pending = self.notifications.list_pending(QUESTION_ANSWERED, batch_size)
        if not pending:
            logger.info("No unprocessed notifications found")
            return result

        logger.info("Found %d notifications to process", len(pending))

        for notification in pending:
            notification_id = notification.id
            recipient = notification.recipient
            if recipient is None or not recipient.email:
                logger.error("No email found for recipient %s", notification.recipient_id)
                result.errors += 1
                continue

            try:
                payload = self.build_payload(notification, recipient)
                await self.email_sender.send(webhook_url, payload)
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("Database error composing notification %s", notification_id)
                result.errors += 1
                continue
            except Exception:
                # Left unprocessed; the next scheduled run retries it
                logger.exception("Failed to process notification %s", notification_id)
                result.errors += 1
                continue

            try:
                marked = self.notifications.mark_processed(notification_id, utcnow())
                self.db.commit()
            except SQLAlchemyError:
                # Email went out but the row stays pending, so the next run resends it
                self.db.rollback()
                logger.exception("Failed to mark notification %s processed", notification_id)
                result.errors += 1
                continue

            if marked:
                result.processed += 1
            else:
                logger.warning(
                    "Notification %s was already processed by another run", notification_id
                )

        logger.info(
            "Email processing complete: %d sent, %d errors", result.processed, result.errors
        )
        return result

    def build_payload(self, notification: Notification, recipient: Profile) -> Dict[str, Any]:
        """Compose the email payload from the notification and its context."""
        data = notification.data or {}

        form = self.forms.get(data["form_id"]) if data.get("form_id") else None
        response = self.forms.get_response(data["response_id"]) if data.get("response_id") else None
        submitter = response.respondent_profile if response is not None else None

        return {
            "recipientEmail": recipient.email,
            "questionText": data.get("question_text"),
            "formattedAnswer": format_answer(data.get("answer")),
            "formTitle": form.title if form is not None else "Unknown Form",
            "submitterName": (submitter.display_name if submitter else None) or "Unknown User",
            "responseId": data.get("response_id"),
            "questionId": data.get("question_id"),
        }

    async def send_direct(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send a single question-answered email from an already-composed payload."""
        required = ("questionText", "answer", "formTitle", "recipientEmail")
        if any(payload.get(field) in (None, "", [], {}) for field in required):
            raise InvalidInputError("Missing required fields")

        return await self.email_sender.send(
            self._webhook_url(),
            {
                "recipientEmail": payload["recipientEmail"],
                "questionText": payload["questionText"],
                "formattedAnswer": format_answer(payload["answer"]),
                "formTitle": payload["formTitle"],
                "submitterName": payload.get("submitterName") or "Unknown User",
                "responseId": payload.get("responseId"),
                "questionId": payload.get("questionId"),
            },
        )


class NotificationService:
    """
    Recipient-side operations. Every query is scoped to the caller's own
    notifications, and writes touch only `read`/`updated_at`.
    """

    def __init__(self, db: Session):
        self.db = db
        self.notifications = NotificationRepository(db)

    def list(
        self,
        profile: Profile,
        unread_only: bool = False,
        limit: int = 20,
        page: int = 1,
    ) -> Tuple[List[Notification], int]:
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if page < 1:
            raise InvalidInputError("page must be 1 or greater")

        notifications = self.notifications.list_for_recipient(
            profile.id,
            unread_only=unread_only,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return notifications, self.notifications.count_unread(profile.id)

    def mark_read(self, profile: Profile, notification_ids: List[int]) -> int:
        updated = self.notifications.mark_read(profile.id, notification_ids)
        self.db.commit()
        return updated

    def mark_all_read(self, profile: Profile) -> int:
        updated = self.notifications.mark_all_read(profile.id)
        self.db.commit()
        return updated
