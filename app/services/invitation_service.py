"""
Admin invitations: bulk issue, inspection and single-use acceptance.

Invites move pending -> accepted exactly once. Expired invites keep their
`pending` status until the maintenance sweep (or a re-invite) flips them to
`expired`; expiry itself is always computed from `expires_at`.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models import InviteStatus, InviteToken, Profile, ProfileRole
from app.repositories import InviteTokenRepository
from app.services.email_sender import WebhookEmailSender
from app.services.errors import (
    ForbiddenError,
    InvalidInputError,
    InvalidTokenError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    UpstreamError,
)
from app.services.token_service import generate_token, token_hint
from app.timeutils import as_utc, utcnow


logger = logging.getLogger(__name__)

VALID_ROLES = {role.value for role in ProfileRole}


def invite_link(token: str) -> str:
    return f"{settings.site_url.rstrip('/')}/accept-invite?token={token}"


class InvitationService:
    """Issues, inspects and accepts invite tokens."""

    def __init__(self, db: Session, email_sender: Optional[WebhookEmailSender] = None):
        self.db = db
        self.email_sender = email_sender
        self.invites = InviteTokenRepository(db)

    # =========================================================================
    # Issue
    # =========================================================================

    async def send_invitations(
        self, inviter: Profile, emails: List[str], role: str = "employee"
    ) -> Dict:
        """
        Create one invite per email. Per-email failures never abort the batch.

        Returns:
            Dict with `summary` counts and per-email `results`
        """
        if not inviter.is_admin:
            raise ForbiddenError("Only admins can send invitations")
        if not emails:
            raise InvalidInputError("Emails array is required")
        if role not in VALID_ROLES:
            raise InvalidInputError(f"Invalid role: {role}")

        results = []
        for raw_email in emails:
            results.append(await self._invite_one(inviter, raw_email, role))

        summary = {
            "total": len(emails),
            "successful": sum(1 for r in results if r["status"] == "success"),
            "errors": sum(1 for r in results if r["status"] == "error"),
            "skipped": sum(1 for r in results if r["status"] == "skipped"),
        }
        logger.info(
            "Invitations by %s: %d sent, %d skipped, %d errors",
            inviter.id,
            summary["successful"],
            summary["skipped"],
            summary["errors"],
        )
        return {"summary": summary, "results": results}

    async def _invite_one(self, inviter: Profile, raw_email: str, role: str) -> Dict:
        email = (raw_email or "").strip().lower()
        if not email or "@" not in email:
            return {"email": raw_email, "status": "error", "message": "Invalid email address"}

        now = utcnow()
        try:
            existing = self.invites.get_pending_for_email(email)
            if existing is not None:
                if as_utc(existing.expires_at) > now:
                    return {
                        "email": email,
                        "status": "skipped",
                        "message": "Invitation already pending for this email",
                    }
                self.invites.mark_expired(existing.id)

            token = generate_token()
            self.invites.create(
                token=token,
                email=email,
                role=role,
                invited_by=inviter.id,
                expires_at=now + timedelta(hours=settings.invite_token_ttl_hours),
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to create invite record for %s: %s", email, e)
            return {"email": email, "status": "error", "message": "Failed to create invite record"}

        link = invite_link(token)
        result = {
            "email": email,
            "status": "success",
            "invite_link": link,
            "token": token,
            "email_sent": False,
            "message": "Invitation created successfully",
        }

        # Without an invite webhook the link is handed back for manual sending
        if settings.invite_webhook_url and self.email_sender is not None:
            try:
                await self.email_sender.send(
                    settings.invite_webhook_url,
                    {
                        "email": email,
                        "inviteLink": link,
                        "role": role,
                        "invitedBy": inviter.display_name,
                        "expiresAt": (now + timedelta(hours=settings.invite_token_ttl_hours)).isoformat(),
                    },
                )
                result["email_sent"] = True
            except UpstreamError as e:
                # Token stays valid; the admin can resend the link
                result["message"] = f"Invitation created but email delivery failed: {e.message}"
        return result

    # =========================================================================
    # Inspect / accept
    # =========================================================================

    def inspect(self, token: str) -> InviteToken:
        """Validate an invite without consuming it."""
        if not token:
            raise InvalidInputError("Invite token is required")

        invite = self.invites.get_by_token(token)
        if invite is None:
            logger.warning("Unknown invite token %s", token_hint(token))
            raise InvalidTokenError("Invalid invitation token")

        if invite.status == InviteStatus.EXPIRED.value or utcnow() > as_utc(invite.expires_at):
            raise TokenExpiredError("Invitation has expired")

        if invite.status != InviteStatus.PENDING.value:
            raise TokenAlreadyUsedError("Invitation has already been accepted")

        return invite

    def accept(self, token: str, email: str) -> InviteToken:
        """
        Consume the invite for the given email.

        Returns the accepted invite (email, role, invited_by) for provisioning.
        """
        invite = self.inspect(token)

        if (email or "").strip().lower() != invite.email.lower():
            raise InvalidTokenError("Invitation was issued for a different email address")

        accepted_at = utcnow()
        if not self.invites.mark_accepted(invite.id, accepted_at):
            raise TokenAlreadyUsedError("Invitation has already been accepted")
        self.db.commit()
        self.db.refresh(invite)

        logger.info("Invite %s accepted by %s", token_hint(token), invite.email)
        return invite

    # =========================================================================
    # Maintenance
    # =========================================================================

    def expire_stale(self) -> int:
        """Flip pending invites past expiry to expired. Returns rows changed."""
        count = self.invites.expire_stale(utcnow())
        self.db.commit()
        if count:
            logger.info("Expired %d stale invites", count)
        return count
