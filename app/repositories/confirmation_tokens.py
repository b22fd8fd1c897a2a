"""Repository for signup confirmation tokens."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models import SignupConfirmationToken


class ConfirmationTokenRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, token: str) -> Optional[SignupConfirmationToken]:
        return (
            self.db.query(SignupConfirmationToken)
            .filter(SignupConfirmationToken.token == token)
            .first()
        )

    def create(self, token: str, email: str, expires_at: datetime) -> SignupConfirmationToken:
        record = SignupConfirmationToken(
            token=token, email=email, expires_at=expires_at, used=False
        )
        self.db.add(record)
        self.db.flush()
        return record

    def mark_used(self, token_id: int, used_at: datetime) -> bool:
        """Flip used false -> true. False when the token was already consumed."""
        updated = (
            self.db.query(SignupConfirmationToken)
            .filter(
                SignupConfirmationToken.id == token_id,
                SignupConfirmationToken.used.is_(False),
            )
            .update({"used": True, "used_at": used_at}, synchronize_session=False)
        )
        return updated == 1
