"""
Signup and sign-in orchestration.

Two signup paths:
- invite path (`skip_email_confirmation` and an invite token): consume the
  invite, provision a pre-confirmed account linked to the inviter and sign
  the user straight in;
- self-signup: provision an unconfirmed account and email a confirmation
  link. The user signs in after confirming.
"""

import logging
from typing import Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from app.models import ProfileRole
from app.services.auth import AuthProvider
from app.services.email_sender import WebhookEmailSender
from app.services.errors import (
    ConfigurationError,
    InvalidInputError,
    InvalidTokenError,
    PersistenceError,
    ProfileCreationError,
    UnauthorizedError,
    UpstreamError,
)
from app.services.invitation_service import InvitationService
from app.services.provisioning_service import AccountProvisioner
from app.services.token_service import TokenService


logger = logging.getLogger(__name__)


class SignupService:
    """Signup, sign-in and sign-out over the configured auth provider."""

    def __init__(
        self,
        db: Session,
        email_sender: WebhookEmailSender,
        auth_provider: AuthProvider,
    ):
        self.db = db
        self.auth_provider = auth_provider
        self.provisioner = AccountProvisioner(db, auth_provider)
        self.invitations = InvitationService(db, email_sender)
        self.tokens = TokenService(db, email_sender, auth_provider)

    async def signup(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: Optional[str] = None,
        invite_token: Optional[str] = None,
        skip_email_confirmation: bool = False,
        request: Optional[Request] = None,
    ) -> Dict:
        """
        Returns:
            Dict with `user`, `profile` and `session` (None until confirmed);
            self-signups also carry `confirmation_sent`.
        """
        if skip_email_confirmation and invite_token:
            return await self._signup_with_invite(
                email, password, first_name, last_name, invite_token, request
            )

        try:
            user, profile = await self.provisioner.provision(
                email,
                password,
                first_name=first_name,
                last_name=last_name,
                role=role or ProfileRole.ADMIN.value,
            )
        except ProfileCreationError:
            # The account exists; confirming it lets the user sign in and
            # retry the profile through POST /api/profiles
            await self._send_confirmation(email.strip().lower())
            raise

        return {
            "user": user,
            "profile": profile,
            "session": None,
            "confirmation_sent": await self._send_confirmation(user.email),
        }

    async def _send_confirmation(self, email: str) -> bool:
        try:
            await self.tokens.issue_confirmation(email)
        except (ConfigurationError, PersistenceError, UpstreamError) as e:
            # Account stands; the confirmation email can be re-requested
            logger.warning("Confirmation email not sent for %s: %s", email, e.message)
            return False
        return True

    async def _signup_with_invite(
        self,
        email: str,
        password: str,
        first_name: Optional[str],
        last_name: Optional[str],
        invite_token: str,
        request: Optional[Request],
    ) -> Dict:
        email = self.provisioner.validate_credentials(email, password)

        # Validate everything that can fail before the invite is consumed
        invite = self.invitations.inspect(invite_token)
        if invite.email.lower() != email:
            raise InvalidTokenError("Invitation was issued for a different email address")
        if await self.auth_provider.get_user_by_email(self.db, email):
            raise InvalidInputError("An account with this email already exists")

        invite = self.invitations.accept(invite_token, email)
        user, profile = await self.provisioner.provision(
            email,
            password,
            first_name=first_name,
            last_name=last_name,
            invite=invite,
        )

        session = await self.auth_provider.create_session(self.db, user, request)
        logger.info("Invite signup complete for %s (invited by %s)", email, invite.invited_by)
        return {"user": user, "profile": profile, "session": session}

    async def sign_in(
        self, email: str, password: str, request: Optional[Request] = None
    ) -> Dict:
        if not email or not password:
            raise InvalidInputError("Email and password are required")

        user = await self.auth_provider.authenticate(self.db, email, password)
        if user is None:
            raise UnauthorizedError("Invalid login credentials")
        if not user.email_confirmed:
            raise UnauthorizedError("Email not confirmed")

        session = await self.auth_provider.create_session(self.db, user, request)
        return {"user": user, "profile": user.profile, "session": session}

    async def sign_out(self, token: Optional[str]) -> bool:
        if not token:
            return False
        return await self.auth_provider.revoke_session(self.db, token)
