"""Authentication routes: signup, confirmation tokens, sign-in and sign-out."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.api.serializers import serialize_profile, serialize_session, serialize_user
from app.database import get_db
from app.models.user import User
from app.services.auth import AuthProvider, get_auth_provider
from app.services.auth.dependencies import get_bearer_token, get_current_user
from app.services.email_sender import WebhookEmailSender, get_email_sender
from app.services.signup_service import SignupService
from app.services.token_service import TokenService


router = APIRouter(prefix="/api/auth", tags=["auth"])


class EmailRequest(BaseModel):
    email: Optional[str] = None


class TokenRequest(BaseModel):
    token: Optional[str] = None


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    role: Optional[str] = None
    invite_token: Optional[str] = Field(None, alias="inviteToken")
    skip_email_confirmation: bool = Field(False, alias="skipEmailConfirmation")
    redirect_to: Optional[str] = Field(None, alias="redirectTo")


class SignInRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


# =============================================================================
# Confirmation tokens
# =============================================================================


@router.post("/signup-confirmation")
async def send_signup_confirmation(
    body: EmailRequest,
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    """Issue a confirmation token and email the link."""
    service = TokenService(db, email_sender, auth_provider)
    await service.issue_confirmation(body.email)
    return {"success": True, "message": "Confirmation email sent successfully"}


@router.post("/verify-confirmation")
async def verify_confirmation(
    body: TokenRequest,
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    """Consume a confirmation token and confirm the account."""
    service = TokenService(db, email_sender, auth_provider)
    email = await service.verify_confirmation(body.token)
    return {"success": True, "message": "Account confirmed successfully", "email": email}


# =============================================================================
# Signup / Sign-in
# =============================================================================


@router.post("/signup")
async def signup(
    body: SignupRequest,
    request: Request,
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    """Create an account, via invite (pre-confirmed, signed in) or self-signup."""
    service = SignupService(db, email_sender, auth_provider)
    result = await service.signup(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        invite_token=body.invite_token,
        skip_email_confirmation=body.skip_email_confirmation,
        request=request,
    )

    response = {
        "user": serialize_user(result["user"]),
        "profile": serialize_profile(result["profile"]),
        "session": serialize_session(result["session"]),
    }
    if "confirmation_sent" in result:
        response["confirmation_sent"] = result["confirmation_sent"]
    return response


@router.post("/signin")
async def signin(
    body: SignInRequest,
    request: Request,
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    service = SignupService(db, email_sender, auth_provider)
    result = await service.sign_in(body.email, body.password, request)
    return {
        "user": serialize_user(result["user"]),
        "profile": serialize_profile(result["profile"]),
        "session": serialize_session(result["session"]),
    }


@router.post("/signout")
async def signout(
    request: Request,
    db: Session = Depends(get_db),
    email_sender: WebhookEmailSender = Depends(get_email_sender),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    """Revoke the presented bearer session."""
    service = SignupService(db, email_sender, auth_provider)
    await service.sign_out(get_bearer_token(request))
    return {"success": True}


@router.get("/user")
async def current_user(user: User = Depends(get_current_user)):
    return {"user": serialize_user(user), "profile": serialize_profile(user.profile)}
