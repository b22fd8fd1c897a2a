"""
Typed repositories, one per persisted entity.

Each repository wraps a SQLAlchemy session. Mutations of tokens and
notifications are conditional single-row updates whose row count tells the
caller whether it won the transition.
"""

from app.repositories.confirmation_tokens import ConfirmationTokenRepository
from app.repositories.forms import FormRepository
from app.repositories.invite_tokens import InviteTokenRepository
from app.repositories.notifications import NotificationRepository
from app.repositories.profiles import ProfileRepository

__all__ = [
    "ConfirmationTokenRepository",
    "FormRepository",
    "InviteTokenRepository",
    "NotificationRepository",
    "ProfileRepository",
]
