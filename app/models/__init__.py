"""
Database models.

Import all models here so Alembic can detect them for migrations.
"""

from app.database import Base
from app.models.user import User
from app.models.session import Session
from app.models.profile import Profile, ProfileRole, ProfileStatus
from app.models.invite_token import InviteToken, InviteStatus
from app.models.signup_confirmation_token import SignupConfirmationToken
from app.models.notification import Notification, QUESTION_ANSWERED
from app.models.form import Form, FormQuestion, FormResponse, QuestionResponse

__all__ = [
    "Base",
    "User",
    "Session",
    "Profile",
    "ProfileRole",
    "ProfileStatus",
    "InviteToken",
    "InviteStatus",
    "SignupConfirmationToken",
    "Notification",
    "QUESTION_ANSWERED",
    "Form",
    "FormQuestion",
    "FormResponse",
    "QuestionResponse",
]
