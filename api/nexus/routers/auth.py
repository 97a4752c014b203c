from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Cookie, Request, Response, status
from pydantic import BaseModel

from nexus.core.audit import audit_login, create_audit_log
from nexus.core.config import settings
from nexus.core.deps import CurrentUser, DbSession
from nexus.core.errors import unauthorized
from nexus.core.validators import DisplayName, Email, OTPCode, StrongPassword
from nexus.services import auth as auth_service
from nexus.services.auth import TokenPair, VerificationRequired

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    name: DisplayName
    email: Email
    password: StrongPassword

    class Config:
        extra = "forbid"


class LoginRequest(BaseModel):
    email: Email
    password: str

    class Config:
        extra = "forbid"


class EmailRequest(BaseModel):
    email: Email

    class Config:
        extra = "forbid"


class VerifyEmailRequest(BaseModel):
    email: Email
    otp: OTPCode

    class Config:
        extra = "forbid"


class ResetPasswordRequest(BaseModel):
    token: str
    password: StrongPassword

    class Config:
        extra = "forbid"


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class VerificationRequiredResponse(BaseModel):
    requires_verification: Literal[True] = True
    email: str


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    email_verified: bool

    class Config:
        from_attributes = True


def _set_session_cookies(response: Response, tokens: TokenPair) -> None:
    cookie_settings = settings.cookie_settings()
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        tokens.refresh_token,
        max_age=settings.refresh_cookie_max_age,
        **cookie_settings,
    )
    response.set_cookie(
        settings.ACCESS_COOKIE_NAME,
        tokens.access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_HOURS * 3600,
        **cookie_settings,
    )


def _clear_session_cookies(response: Response) -> None:
    cookie_settings = settings.cookie_settings()
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, **cookie_settings)
    response.delete_cookie(settings.ACCESS_COOKIE_NAME, **cookie_settings)


def _token_response(response: Response, tokens: TokenPair) -> TokenResponse:
    _set_session_cookies(response, tokens)
    return TokenResponse(access_token=tokens.access_token)


@router.post(
    "/register",
    response_model=VerificationRequiredResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(data: RegisterRequest, request: Request, db: DbSession):
    """Register a new user. A verification code is sent to the email."""
    user = auth_service.register(db, data.name, data.email, data.password)

    create_audit_log(
        db=db,
        action="auth.register",
        resource_type="user",
        resource_id=user.id,
        actor_user_id=user.id,
        request=request,
    )

    return VerificationRequiredResponse(email=user.email)


@router.post("/login", response_model=TokenResponse | VerificationRequiredResponse)
def login(data: LoginRequest, request: Request, response: Response, db: DbSession):
    """
    Login with email and password.

    Unverified accounts get a fresh code and a requires_verification
    response instead of tokens.
    """
    result = auth_service.login(db, data.email, data.password)

    if isinstance(result, VerificationRequired):
        return VerificationRequiredResponse(email=result.email)

    audit_login(db, result.user.id, request)
    return _token_response(response, result)


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    response: Response,
    db: DbSession,
    refresh_token: str | None = Cookie(default=None, alias=settings.REFRESH_COOKIE_NAME),
):
    """Exchange the refresh cookie for a new token pair."""
    if not refresh_token:
        raise unauthorized("Refresh token missing.")

    tokens = auth_service.refresh(db, refresh_token)
    return _token_response(response, tokens)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias=settings.REFRESH_COOKIE_NAME),
):
    """Revoke the refresh token and clear session cookies."""
    auth_service.logout(refresh_token)
    _clear_session_cookies(response)
    return MessageResponse(message="Logged out successfully.")


@router.post("/send-verification", response_model=MessageResponse)
def send_verification(data: EmailRequest, db: DbSession):
    auth_service.send_verification(db, data.email)
    return MessageResponse(
        message="If the account exists and is unverified, a verification code has been sent."
    )


@router.post("/verify-email", response_model=TokenResponse)
def verify_email(data: VerifyEmailRequest, response: Response, db: DbSession):
    """Verify the email with the OTP and log the user in."""
    tokens = auth_service.verify_email(db, data.email, data.otp)
    return _token_response(response, tokens)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(data: EmailRequest, db: DbSession):
    auth_service.forgot_password(db, data.email)
    return MessageResponse(
        message="If an account with that email exists, a password reset link has been sent."
    )


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(data: ResetPasswordRequest, request: Request, db: DbSession):
    user = auth_service.reset_password(db, data.token, data.password)

    create_audit_log(
        db=db,
        action="auth.password_reset",
        resource_type="user",
        resource_id=user.id,
        actor_user_id=user.id,
        request=request,
    )

    return MessageResponse(message="Password has been reset successfully.")


@router.get("/me", response_model=UserResponse)
def get_me(user: CurrentUser):
    """Get current user info."""
    return user
