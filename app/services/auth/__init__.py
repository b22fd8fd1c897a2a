"""
Authentication service package.

Provides pluggable authentication with support for:
- Local password-based auth with bearer sessions (current)
- Hosted/external auth backends (future)

Usage:
    from app.services.auth import get_auth_provider
    from app.services.auth.dependencies import get_current_user, get_current_profile

    # In routes:
    @router.get("/protected")
    async def protected_route(profile: Profile = Depends(get_current_profile)):
        ...
"""
from app.services.auth.base import AuthProvider
from app.services.auth.local_provider import local_auth_provider


def get_auth_provider() -> AuthProvider:
    """
    Factory function to get the configured auth provider.

    Also used as a FastAPI dependency so tests can override it.
    """
    return local_auth_provider


__all__ = [
    "AuthProvider",
    "get_auth_provider",
    "local_auth_provider",
]
