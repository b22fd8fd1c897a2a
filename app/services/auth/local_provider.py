"""Local password-based authentication provider."""
import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from fastapi import Request
from sqlalchemy.orm import Session as DBSession

from app.config import settings
from app.models.user import User
from app.models.session import Session
from app.services.auth.base import AuthProvider
from app.timeutils import utcnow


class LocalAuthProvider(AuthProvider):
    """
    Local authentication provider using password hashing and database sessions.

    Passwords are hashed with bcrypt. Sessions are stored in database with
    secure random tokens and presented as bearer tokens.
    """

    def _hash_password(self, password: str) -> str:
        """Hash a password using bcrypt."""
        return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def _verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))

    def _generate_session_token(self) -> str:
        """Generate a cryptographically secure session token."""
        return secrets.token_urlsafe(32)

    async def authenticate(self, db: DBSession, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password."""
        user = await self.get_user_by_email(db, email)
        if not user or not user.password_hash:
            return None
        if not self._verify_password(password, user.password_hash):
            return None
        return user

    async def create_user(
        self,
        db: DBSession,
        email: str,
        password: str,
        email_confirmed: bool = False,
    ) -> User:
        """Create a new account with hashed password."""
        user = User(
            email=email.lower(),
            password_hash=self._hash_password(password),
            email_confirmed_at=utcnow() if email_confirmed else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    async def get_user_by_email(self, db: DBSession, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    async def confirm_email(self, db: DBSession, user: User) -> None:
        """Set email_confirmed_at unless it is already set."""
        if user.email_confirmed_at is None:
            user.email_confirmed_at = utcnow()
            db.commit()

    async def get_user_from_token(self, db: DBSession, token: str) -> Optional[User]:
        """Resolve a bearer token to a user via an unexpired session."""
        if not token:
            return None

        session = db.query(Session).filter(
            Session.token == token,
            Session.expires_at > utcnow()
        ).first()

        if not session:
            return None

        return session.user

    async def create_session(
        self, db: DBSession, user: User, request: Optional[Request] = None
    ) -> Session:
        """Create a new session for the user."""
        token = self._generate_session_token()
        expires_at = utcnow() + timedelta(seconds=settings.session_max_age)

        # Extract request metadata
        user_agent = None
        client_ip = None
        if request is not None:
            user_agent = request.headers.get("user-agent", "")[:512]
            client_ip = request.client.host if request.client else None

        session = Session(
            user_id=user.id,
            token=token,
            expires_at=expires_at,
            user_agent=user_agent,
            ip_address=client_ip
        )
        db.add(session)
        db.commit()

        return session

    async def revoke_session(self, db: DBSession, token: str) -> bool:
        """Revoke a session by its token."""
        session = db.query(Session).filter(Session.token == token).first()
        if not session:
            return False
        db.delete(session)
        db.commit()
        return True


# Singleton instance
local_auth_provider = LocalAuthProvider()
