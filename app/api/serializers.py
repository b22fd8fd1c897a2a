"""JSON shapes for models returned by the API."""

from typing import Any, Dict, Optional

from app.models import Form, FormResponse, InviteToken, Notification, Profile, Session, User
from app.timeutils import isoformat


def serialize_user(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": str(user.id),
        "email": user.email,
        "email_confirmed_at": isoformat(user.email_confirmed_at),
        "created_at": isoformat(user.created_at),
    }


def serialize_session(session: Optional[Session]) -> Optional[Dict[str, Any]]:
    if session is None:
        return None
    return {
        "access_token": session.token,
        "token_type": "bearer",
        "expires_at": isoformat(session.expires_at),
    }


def serialize_profile(profile: Optional[Profile]) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None
    return {
        "id": str(profile.id),
        "email": profile.email,
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "role": profile.role,
        "status": profile.status,
        "invited_by": str(profile.invited_by) if profile.invited_by else None,
        "created_at": isoformat(profile.created_at),
    }


def serialize_invite(invite: InviteToken) -> Dict[str, Any]:
    return {
        "email": invite.email,
        "role": invite.role,
        "status": invite.status,
        "expires_at": isoformat(invite.expires_at),
    }


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "recipient_id": str(notification.recipient_id),
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data or {},
        "read": notification.read,
        "created_at": isoformat(notification.created_at),
        "processed_at": isoformat(notification.processed_at),
    }


def serialize_form(form: Form) -> Dict[str, Any]:
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "is_active": form.is_active,
        "created_by": str(form.created_by) if form.created_by else None,
        "created_at": isoformat(form.created_at),
        "questions": [
            {
                "id": q.id,
                "question_text": q.question_text,
                "question_type": q.question_type,
                "is_required": q.is_required,
                "order_index": q.order_index,
                "options": q.options or [],
            }
            for q in form.questions
        ],
    }


def serialize_response(response: FormResponse) -> Dict[str, Any]:
    return {
        "id": response.id,
        "form_id": response.form_id,
        "respondent_id": str(response.respondent_id) if response.respondent_id else None,
        "status": response.status,
        "submitted_at": isoformat(response.submitted_at),
        "answers": [
            {"question_id": a.question_id, "answer": a.answer} for a in response.answers
        ],
    }
