"""Invitation routes (admin issue, public inspection)."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.serializers import serialize_invite
from app.database import get_db
from app.models.profile import Profile
from app.services.auth.dependencies import require_admin
from app.services.email_sender import WebhookEmailSender, get_email_sender
from app.services.invitation_service import InvitationService


router = APIRouter(prefix="/api/invitations", tags=["invitations"])


class SendInvitationsRequest(BaseModel):
    emails: Optional[List[str]] = None
    role: str = "employee"


@router.post("/send")
async def send_invitations(
    body: SendInvitationsRequest,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
):
    """Create invites for a list of emails (admin only)."""
    service = InvitationService(db, email_sender)
    result = await service.send_invitations(admin, body.emails or [], body.role)
    return {"success": True, **result}


@router.get("/{token}")
async def inspect_invitation(token: str, db: Session = Depends(get_db)):
    """Check an invite link without consuming it."""
    invite = InvitationService(db).inspect(token)
    return serialize_invite(invite)
