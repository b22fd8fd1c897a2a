"""
Factory functions for creating test data.

These factories create model instances with sensible defaults.
Use db.flush() to get IDs without committing (for transaction rollback).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional
import secrets

import bcrypt
from sqlalchemy.orm import Session

from app.models import (
    User,
    Session as UserSession,
    Profile,
    InviteToken,
    SignupConfirmationToken,
    Notification,
    Form,
    FormQuestion,
    FormResponse,
    QuestionResponse,
    QUESTION_ANSWERED,
)
from app.services.token_service import generate_token


# =============================================================================
# User / Profile Factories
# =============================================================================


def create_user(
    db: Session,
    email: Optional[str] = None,
    password: str = "testpassword123",
    confirmed: bool = True,
    **overrides,
) -> User:
    """
    Create a test account with hashed password.

    Args:
        db: Database session
        email: Account email (auto-generated if not provided)
        password: Plain text password to hash
        confirmed: Whether the email is already confirmed
        **overrides: Additional fields to override

    Returns:
        Created User object
    """
    if email is None:
        email = f"testuser_{secrets.token_hex(4)}@example.com"

    password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode(
        "utf-8"
    )

    defaults = {
        "email": email.lower(),
        "password_hash": password_hash,
        "email_confirmed_at": datetime.now(timezone.utc) if confirmed else None,
    }
    defaults.update(overrides)

    user = User(**defaults)
    db.add(user)
    db.flush()
    return user


def create_profile(
    db: Session,
    user: User,
    role: str = "employee",
    **overrides,
) -> Profile:
    """Create the profile row for an account."""
    defaults = {
        "id": user.id,
        "email": user.email,
        "role": role,
        "status": "active",
    }
    defaults.update(overrides)

    profile = Profile(**defaults)
    db.add(profile)
    db.flush()
    return profile


# =============================================================================
# Session Factory
# =============================================================================


def create_session(
    db: Session,
    user: User,
    expires_in: timedelta = timedelta(days=7),
    **overrides,
) -> UserSession:
    """Create a bearer session for the account."""
    defaults = {
        "user_id": user.id,
        "token": secrets.token_urlsafe(32),
        "expires_at": datetime.now(timezone.utc) + expires_in,
        "user_agent": "pytest-test-client",
        "ip_address": "127.0.0.1",
    }
    defaults.update(overrides)

    session = UserSession(**defaults)
    db.add(session)
    db.flush()
    return session


# =============================================================================
# Token Factories
# =============================================================================


def create_invite(
    db: Session,
    inviter: User,
    email: str = "newhire@example.com",
    role: str = "employee",
    expires_in: timedelta = timedelta(hours=24),
    status: str = "pending",
    **overrides,
) -> InviteToken:
    """
    Create an invite token.

    Args:
        db: Database session
        inviter: Account that issued the invite
        email: Invited email
        role: Role granted on acceptance
        expires_in: Expiration time from now (negative for expired)
        status: pending / accepted / expired
        **overrides: Additional fields to override

    Returns:
        Created InviteToken object
    """
    defaults = {
        "token": generate_token(),
        "email": email,
        "role": role,
        "status": status,
        "invited_by": inviter.id,
        "expires_at": datetime.now(timezone.utc) + expires_in,
    }
    defaults.update(overrides)

    invite = InviteToken(**defaults)
    db.add(invite)
    db.flush()
    return invite


def create_confirmation_token(
    db: Session,
    email: str = "alice@example.com",
    expires_in: timedelta = timedelta(hours=24),
    used: bool = False,
    **overrides,
) -> SignupConfirmationToken:
    """Create a signup confirmation token."""
    now = datetime.now(timezone.utc)
    defaults = {
        "token": generate_token(),
        "email": email,
        "expires_at": now + expires_in,
        "used": used,
        "used_at": now if used else None,
    }
    defaults.update(overrides)

    record = SignupConfirmationToken(**defaults)
    db.add(record)
    db.flush()
    return record


# =============================================================================
# Form Factories
# =============================================================================


def create_form(
    db: Session,
    creator: User,
    title: str = "Weekly Safety Check",
    questions: Optional[List[str]] = None,
    **overrides,
) -> Form:
    """Create a form with one text question per entry in `questions`."""
    if questions is None:
        questions = ["How many days were lost this week?"]

    defaults = {"title": title, "created_by": creator.id, "is_active": True}
    defaults.update(overrides)

    form = Form(**defaults)
    for index, text in enumerate(questions):
        form.questions.append(
            FormQuestion(question_text=text, question_type="text", order_index=index)
        )
    db.add(form)
    db.flush()
    return form


def create_form_response(
    db: Session,
    form: Form,
    respondent: User,
    answers: Optional[dict] = None,
) -> FormResponse:
    """Create a submitted response; answers maps question id to answer."""
    now = datetime.now(timezone.utc)
    response = FormResponse(
        form_id=form.id,
        respondent_id=respondent.id,
        status="submitted",
        started_at=now,
        submitted_at=now,
    )
    for question_id, answer in (answers or {}).items():
        response.answers.append(QuestionResponse(question_id=question_id, answer=answer))
    db.add(response)
    db.flush()
    return response


# =============================================================================
# Notification Factory
# =============================================================================


def create_notification(
    db: Session,
    recipient: Profile,
    created_at: Optional[datetime] = None,
    answer: Any = "2",
    form: Optional[Form] = None,
    response: Optional[FormResponse] = None,
    **overrides,
) -> Notification:
    """Create a question_answered notification, unprocessed and unread by default."""
    question = form.questions[0] if form is not None and form.questions else None
    defaults = {
        "recipient_id": recipient.id,
        "type": QUESTION_ANSWERED,
        "title": "New answer",
        "message": "Someone answered a question",
        "data": {
            "form_id": form.id if form is not None else None,
            "response_id": response.id if response is not None else None,
            "question_id": question.id if question is not None else None,
            "question_text": question.question_text if question is not None else "How many days?",
            "answer": answer,
        },
        "read": False,
        "created_at": created_at or datetime.now(timezone.utc),
        "processed_at": None,
    }
    defaults.update(overrides)

    notification = Notification(**defaults)
    db.add(notification)
    db.flush()
    return notification
