"""Repository for forms, questions and responses."""

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.models import Form, FormQuestion, FormResponse, QuestionResponse
from app.timeutils import utcnow


class FormRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, form_id: int) -> Optional[Form]:
        return self.db.query(Form).filter(Form.id == form_id).first()

    def list_active(self) -> List[Form]:
        return (
            self.db.query(Form)
            .options(joinedload(Form.questions))
            .filter(Form.is_active.is_(True))
            .order_by(Form.created_at.desc(), Form.id.desc())
            .all()
        )

    def create(
        self,
        title: str,
        created_by: UUID,
        questions: List[Dict],
        description: Optional[str] = None,
    ) -> Form:
        form = Form(title=title, description=description, created_by=created_by)
        for index, question in enumerate(questions):
            form.questions.append(
                FormQuestion(
                    question_text=question["question_text"],
                    question_type=question.get("question_type", "text"),
                    is_required=question.get("is_required", False),
                    order_index=question.get("order_index", index),
                    options=question.get("options") or [],
                )
            )
        self.db.add(form)
        self.db.flush()
        return form

    def get_response(self, response_id: int) -> Optional[FormResponse]:
        return (
            self.db.query(FormResponse)
            .options(joinedload(FormResponse.respondent_profile))
            .filter(FormResponse.id == response_id)
            .first()
        )

    def create_response(
        self, form_id: int, respondent_id: UUID, answers: Dict[int, object]
    ) -> FormResponse:
        """Store a submitted response; answers maps question id to answer value."""
        now = utcnow()
        response = FormResponse(
            form_id=form_id,
            respondent_id=respondent_id,
            status="submitted",
            started_at=now,
            submitted_at=now,
        )
        for question_id, answer in answers.items():
            response.answers.append(
                QuestionResponse(question_id=question_id, answer=answer)
            )
        self.db.add(response)
        self.db.flush()
        return response
