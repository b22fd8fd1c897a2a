"""Notification routes: recipient inbox, read state and email dispatch."""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.api.serializers import serialize_notification
from app.database import get_db
from app.models.profile import Profile
from app.services.auth.dependencies import get_current_profile
from app.services.email_sender import WebhookEmailSender, get_email_sender
from app.services.errors import InvalidInputError
from app.services.notification_service import NotificationDispatcher, NotificationService


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class MarkReadRequest(BaseModel):
    notification_ids: Optional[List[int]] = None
    mark_all_read: bool = False


class DirectEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_text: Optional[str] = Field(None, alias="questionText")
    answer: Any = None
    form_title: Optional[str] = Field(None, alias="formTitle")
    submitter_name: Optional[str] = Field(None, alias="submitterName")
    response_id: Optional[Any] = Field(None, alias="responseId")
    question_id: Optional[Any] = Field(None, alias="questionId")
    recipient_email: Optional[str] = Field(None, alias="recipientEmail")


@router.get("")
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(20),
    page: int = Query(1),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """The caller's notifications, newest first, with their unread count."""
    notifications, unread_count = NotificationService(db).list(
        profile, unread_only=unread_only, limit=limit, page=page
    )
    return {
        "notifications": [serialize_notification(n) for n in notifications],
        "unread_count": unread_count,
    }


@router.patch("")
async def mark_notifications_read(
    body: MarkReadRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    service = NotificationService(db)
    if body.mark_all_read:
        updated = service.mark_all_read(profile)
    elif body.notification_ids is not None:
        updated = service.mark_read(profile, body.notification_ids)
    else:
        raise InvalidInputError("Invalid request body")
    return {"success": True, "updated": updated}


@router.post("/process-emails")
async def process_email_notifications(
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
):
    """Dispatch one batch of pending notification emails (scheduler trigger)."""
    result = await NotificationDispatcher(db, email_sender).dispatch_pending()
    return {
        "success": True,
        "message": result.message,
        "processed": result.processed,
        "errors": result.errors,
    }


@router.post("/email")
async def send_notification_email(
    body: DirectEmailRequest,
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
):
    """Send one question-answered email from a composed payload."""
    await NotificationDispatcher(db, email_sender).send_direct(
        body.model_dump(by_alias=True)
    )
    return {"success": True, "message": "Email notification sent successfully"}
