"""FastAPI dependencies for bearer-token authentication."""
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.profile import Profile
from app.models.user import User
from app.services.auth import AuthProvider, get_auth_provider
from app.services.errors import ForbiddenError, UnauthorizedError


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> User:
    """
    Get the currently authenticated account.

    Raises UnauthorizedError (401) when the header is missing or the token
    does not resolve to a live session.
    """
    token = get_bearer_token(request)
    if not token:
        raise UnauthorizedError("No authorization header")

    user = await auth_provider.get_user_from_token(db, token)
    if not user:
        raise UnauthorizedError("Invalid token")

    return user


async def get_current_profile(
    user: User = Depends(get_current_user),
) -> Profile:
    """Get the authenticated caller's profile. Accounts without one are rejected."""
    if user.profile is None:
        raise UnauthorizedError("No profile for this account")
    return user.profile


async def require_admin(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    """
    Require the current profile to be an admin.

    Raises ForbiddenError (403) otherwise.
    """
    if not profile.is_admin:
        raise ForbiddenError("Admin access required")
    return profile
