"""
Form creation and response submission.

Submitting a response queues one `question_answered` notification per
answer for the form's creator; the notification dispatcher later turns
those into emails.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.models import Form, FormResponse, Profile, QUESTION_ANSWERED
from app.repositories import FormRepository, NotificationRepository, ProfileRepository
from app.services.errors import ForbiddenError, InvalidInputError, NotFoundError


logger = logging.getLogger(__name__)

QUESTION_TYPES = {"text", "number", "select", "multi_select", "date", "boolean"}


class FormService:
    def __init__(self, db: Session):
        self.db = db
        self.forms = FormRepository(db)
        self.profiles = ProfileRepository(db)
        self.notifications = NotificationRepository(db)

    def create_form(
        self,
        creator: Profile,
        title: str,
        questions: List[Dict],
        description: Optional[str] = None,
    ) -> Form:
        if not creator.is_admin:
            raise ForbiddenError("Only admins can create forms")
        if not (title or "").strip():
            raise InvalidInputError("Form title is required")
        for question in questions:
            if not (question.get("question_text") or "").strip():
                raise InvalidInputError("Question text is required")
            if question.get("question_type", "text") not in QUESTION_TYPES:
                raise InvalidInputError(
                    f"Unsupported question type: {question.get('question_type')}"
                )

        form = self.forms.create(
            title=title.strip(),
            description=description,
            created_by=creator.id,
            questions=questions,
        )
        self.db.commit()
        logger.info("Form %s created by %s with %d questions", form.id, creator.id, len(questions))
        return form

    def list_forms(self) -> List[Form]:
        return self.forms.list_active()

    def submit_response(
        self, respondent: Profile, form_id: int, answers: List[Dict]
    ) -> FormResponse:
        """
        Store a submitted response and queue notifications for the form creator.

        Args:
            respondent: Profile submitting the response
            form_id: Form being answered
            answers: List of {"question_id": int, "answer": Any}
        """
        form = self.forms.get(form_id)
        if form is None:
            raise NotFoundError("Form not found")
        if not form.is_active:
            raise InvalidInputError("Form is not accepting responses")

        questions = {question.id: question for question in form.questions}
        answer_map = {}
        for item in answers:
            question_id = item.get("question_id")
            if question_id not in questions:
                raise InvalidInputError(f"Unknown question id: {question_id}")
            answer_map[question_id] = item.get("answer")

        missing = [
            q.id for q in form.questions
            if q.is_required and answer_map.get(q.id) in (None, "", [])
        ]
        if missing:
            raise InvalidInputError(f"Missing answers for required questions: {missing}")

        response = self.forms.create_response(form.id, respondent.id, answer_map)

        recipient = self.profiles.get(form.created_by) if form.created_by else None
        if recipient is not None and recipient.id != respondent.id:
            for question_id, answer in answer_map.items():
                question = questions[question_id]
                self.notifications.create(
                    recipient_id=recipient.id,
                    type=QUESTION_ANSWERED,
                    title=f"New answer on {form.title}",
                    message=f'{respondent.display_name} answered "{question.question_text}"',
                    data={
                        "form_id": form.id,
                        "response_id": response.id,
                        "question_id": question.id,
                        "question_text": question.question_text,
                        "answer": answer,
                    },
                )

        self.db.commit()
        logger.info("Response %s submitted for form %s", response.id, form.id)
        return response
