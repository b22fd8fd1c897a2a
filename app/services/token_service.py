"""
Signup confirmation tokens: issuing, emailing and single-use verification.

A token is a 32-character alphanumeric string drawn from the OS CSPRNG. It
expires 24 hours after issue and can be consumed exactly once; consumption
is a conditional update so two concurrent verifications yield one winner.
"""

import logging
import secrets
import string
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models import SignupConfirmationToken
from app.repositories import ConfirmationTokenRepository
from app.services.auth import AuthProvider
from app.services.email_sender import WebhookEmailSender
from app.services.errors import (
    ConfigurationError,
    InvalidInputError,
    InvalidTokenError,
    NotFoundError,
    PersistenceError,
    TokenAlreadyUsedError,
    TokenExpiredError,
)
from app.timeutils import as_utc, utcnow


logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_token(length: Optional[int] = None) -> str:
    """Generate a random alphanumeric token (62-symbol alphabet)."""
    length = length or settings.token_length
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def token_hint(token: str) -> str:
    """Shortened token for log lines."""
    return f"{token[:6]}..." if token else "<empty>"


def confirmation_url(token: str) -> str:
    return f"{settings.site_url.rstrip('/')}/auth/confirm?token={token}"


class TokenService:
    """Issues and verifies signup confirmation tokens."""

    def __init__(
        self,
        db: Session,
        email_sender: WebhookEmailSender,
        auth_provider: AuthProvider,
    ):
        self.db = db
        self.email_sender = email_sender
        self.auth_provider = auth_provider
        self.tokens = ConfirmationTokenRepository(db)

    async def issue_confirmation(self, email: str) -> SignupConfirmationToken:
        """
        Create a confirmation token for the email and send the link.

        The token row is committed before delivery; if the webhook fails the
        row stays valid and UpstreamError propagates to the caller.

        Raises:
            InvalidInputError: email missing
            ConfigurationError: confirmation webhook not configured
            PersistenceError: token row could not be stored
            UpstreamError: webhook delivery failed
        """
        email = (email or "").strip().lower()
        if not email:
            raise InvalidInputError("Email is required")

        webhook_url = settings.signup_confirmation_webhook_url
        if not webhook_url:
            logger.critical("Missing SIGNUP_CONFIRMATION_WEBHOOK_URL setting")
            raise ConfigurationError("Email service not configured")

        token = generate_token()
        expires_at = utcnow() + timedelta(hours=settings.confirmation_token_ttl_hours)
        try:
            record = self.tokens.create(token=token, email=email, expires_at=expires_at)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error storing confirmation token for %s: %s", email, e)
            raise PersistenceError("Failed to create confirmation token") from e

        logger.info("Issued confirmation token %s for %s", token_hint(token), email)

        await self.email_sender.send(
            webhook_url,
            {
                "email": email,
                "confirmationUrl": confirmation_url(token),
                "timestamp": utcnow().isoformat(),
            },
        )
        logger.info("Signup confirmation email sent to %s", email)
        return record

    async def verify_confirmation(self, token: str) -> str:
        """
        Consume a confirmation token and confirm the matching account.

        Expiry is checked before the used flag, so an expired token always
        reports TokenExpiredError and is never consumed.

        Returns:
            The confirmed email address
        """
        if not token:
            raise InvalidInputError("Token is required")

        record = self.tokens.get_by_token(token)
        if record is None:
            logger.warning("Unknown confirmation token %s", token_hint(token))
            raise InvalidTokenError("Invalid or expired confirmation token")

        now = utcnow()
        if now > as_utc(record.expires_at):
            logger.warning("Expired confirmation token %s", token_hint(token))
            raise TokenExpiredError("Token expired")

        if record.used:
            raise TokenAlreadyUsedError("Confirmation token has already been used")

        user = await self.auth_provider.get_user_by_email(self.db, record.email)
        if user is None:
            logger.error("No account for confirmation email %s", record.email)
            raise NotFoundError("User not found")

        if not self.tokens.mark_used(record.id, now):
            # Lost the race to a concurrent verification
            raise TokenAlreadyUsedError("Confirmation token has already been used")
        self.db.commit()

        await self.auth_provider.confirm_email(self.db, user)
        logger.info("Email confirmed for %s", record.email)
        return record.email
