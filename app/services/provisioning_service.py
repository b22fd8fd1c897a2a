"""
Account provisioning: auth account first, then the application profile.

If the profile insert fails after the account was created, the account is
kept and ProfileCreationError tells the caller to retry profile creation
(see `create_profile`) rather than the whole signup.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models import InviteToken, Profile, ProfileRole, ProfileStatus, User
from app.repositories import InviteTokenRepository, ProfileRepository
from app.services.auth import AuthProvider
from app.services.errors import InvalidInputError, ProfileCreationError


logger = logging.getLogger(__name__)

VALID_ROLES = {role.value for role in ProfileRole}


class AccountProvisioner:
    """Creates auth accounts and their linked profiles."""

    def __init__(self, db: Session, auth_provider: AuthProvider):
        self.db = db
        self.auth_provider = auth_provider
        self.profiles = ProfileRepository(db)
        self.invites = InviteTokenRepository(db)

    def validate_credentials(self, email: str, password: str) -> str:
        """Return the normalized email or raise InvalidInputError."""
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise InvalidInputError("A valid email is required")
        if not password or len(password) < settings.min_password_length:
            raise InvalidInputError(
                f"Password must be at least {settings.min_password_length} characters"
            )
        return email

    async def provision(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: str = ProfileRole.EMPLOYEE.value,
        invite: Optional[InviteToken] = None,
    ) -> Tuple[User, Profile]:
        """
        Create the account and its active profile.

        An invite pre-confirms the account, overrides the role and links the
        profile to the inviter.
        """
        email = self.validate_credentials(email, password)
        if invite is not None:
            role = invite.role
        if role not in VALID_ROLES:
            raise InvalidInputError(f"Invalid role: {role}")

        if await self.auth_provider.get_user_by_email(self.db, email):
            raise InvalidInputError("An account with this email already exists")

        user = await self.auth_provider.create_user(
            self.db, email, password, email_confirmed=invite is not None
        )
        logger.info("Created account %s for %s", user.id, email)

        profile = self.create_profile(
            user,
            first_name=first_name,
            last_name=last_name,
            role=role,
            invited_by=invite.invited_by if invite is not None else None,
        )
        return user, profile

    def create_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: str = ProfileRole.EMPLOYEE.value,
        invited_by=None,
    ) -> Profile:
        """Insert the profile for an existing account."""
        try:
            profile = self.profiles.create(
                account_id=user.id,
                email=user.email,
                first_name=first_name,
                last_name=last_name,
                role=role,
                invited_by=invited_by,
                status=ProfileStatus.ACTIVE.value,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Profile insert failed for account %s (account kept): %s", user.id, e
            )
            raise ProfileCreationError(
                "Account created but profile creation failed; retry profile creation",
                account_id=user.id,
            ) from e
        return profile

    def retry_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: str = ProfileRole.EMPLOYEE.value,
    ) -> Profile:
        """
        Create the missing profile for an account that already exists.

        Role and inviter come from the account's accepted invite when there is one.
        """
        if self.profiles.get(user.id) is not None:
            raise InvalidInputError("Profile already exists")

        invited_by = None
        invite = self.invites.get_accepted_for_email(user.email)
        if invite is not None:
            role = invite.role
            invited_by = invite.invited_by
        elif role not in VALID_ROLES:
            raise InvalidInputError(f"Invalid role: {role}")

        return self.create_profile(
            user,
            first_name=first_name,
            last_name=last_name,
            role=role,
            invited_by=invited_by,
        )
