"""Abstract base class for authentication providers."""
from abc import ABC, abstractmethod
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session as DBSession

from app.models.session import Session
from app.models.user import User


class AuthProvider(ABC):
    """
    Abstract authentication provider interface.

    Stands in for the hosted auth backend: account creation, email
    confirmation, password sign-in and bearer sessions. Routes and services
    only talk to this interface, so the local implementation can be swapped
    for an external one without touching them.
    """

    @abstractmethod
    async def authenticate(self, db: DBSession, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns User if credentials are valid, None otherwise.
        """
        pass

    @abstractmethod
    async def create_user(
        self,
        db: DBSession,
        email: str,
        password: str,
        email_confirmed: bool = False,
    ) -> User:
        """
        Create a new account with the given credentials.

        With email_confirmed=True the account skips the confirmation round trip.
        """
        pass

    @abstractmethod
    async def get_user_by_email(self, db: DBSession, email: str) -> Optional[User]:
        """Look up an account by email (case-insensitive)."""
        pass

    @abstractmethod
    async def confirm_email(self, db: DBSession, user: User) -> None:
        """Mark the account's email as confirmed. Idempotent."""
        pass

    @abstractmethod
    async def get_user_from_token(self, db: DBSession, token: str) -> Optional[User]:
        """
        Resolve a bearer access token to its account.

        Returns None for unknown or expired tokens.
        """
        pass

    @abstractmethod
    async def create_session(
        self, db: DBSession, user: User, request: Optional[Request] = None
    ) -> Session:
        """Create a new access session for the user."""
        pass

    @abstractmethod
    async def revoke_session(self, db: DBSession, token: str) -> bool:
        """
        Revoke/invalidate a session by its token.

        Returns True if session was revoked, False if not found.
        """
        pass
