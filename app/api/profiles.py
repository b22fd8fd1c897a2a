"""Profile routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.api.serializers import serialize_profile
from app.database import get_db
from app.models.user import User
from app.services.auth import AuthProvider, get_auth_provider
from app.services.auth.dependencies import get_current_user
from app.services.provisioning_service import AccountProvisioner


router = APIRouter(prefix="/api/profiles", tags=["profiles"])


class CreateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    role: str = "employee"


@router.post("")
async def create_missing_profile(
    body: CreateProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    """Retry profile creation for an account whose signup left it without one."""
    profile = AccountProvisioner(db, auth_provider).retry_profile(
        user, first_name=body.first_name, last_name=body.last_name, role=body.role
    )
    return {"profile": serialize_profile(profile)}
