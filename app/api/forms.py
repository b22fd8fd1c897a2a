"""Form routes: create, list, submit responses."""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.serializers import serialize_form, serialize_response
from app.database import get_db
from app.models.profile import Profile
from app.services.auth.dependencies import get_current_profile, require_admin
from app.services.form_service import FormService


router = APIRouter(prefix="/api/forms", tags=["forms"])


class QuestionIn(BaseModel):
    question_text: str
    question_type: str = "text"
    is_required: bool = False
    options: List[Any] = []


class CreateFormRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    questions: List[QuestionIn] = []


class AnswerIn(BaseModel):
    question_id: int
    answer: Any = None


class SubmitResponseRequest(BaseModel):
    answers: List[AnswerIn] = []


@router.get("")
async def list_forms(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return {"forms": [serialize_form(f) for f in FormService(db).list_forms()]}


@router.post("")
async def create_form(
    body: CreateFormRequest,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    form = FormService(db).create_form(
        admin,
        title=body.title,
        description=body.description,
        questions=[q.model_dump() for q in body.questions],
    )
    return {"form": serialize_form(form)}


@router.post("/{form_id}/responses")
async def submit_response(
    form_id: int,
    body: SubmitResponseRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Submit answers; the form creator is notified of each answer."""
    response = FormService(db).submit_response(
        profile, form_id, [a.model_dump() for a in body.answers]
    )
    return {"response": serialize_response(response)}
