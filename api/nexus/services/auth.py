"""
Session lifecycle: registration, login, email verification, token refresh,
logout and password reset.

User states are derived from flags, never stored:
    UNREGISTERED -> REGISTERED_UNVERIFIED -> VERIFIED

Unverified users never receive tokens. Login for them re-sends a code and
returns VerificationRequired instead of a TokenPair.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nexus.core import mailer
from nexus.core.config import settings
from nexus.core.errors import conflict, not_found, unauthorized
from nexus.core.metrics import auth_events, tokens_issued
from nexus.core.revocation import revoke_refresh_token
from nexus.core.security import (
    AccessTokenClaims,
    InvalidTokenError,
    MembershipClaim,
    decode_refresh_token,
    generate_otp,
    generate_token,
    hash_password,
    hash_token,
    issue_access_token,
    issue_refresh_token,
    verify_password,
)
from nexus.models import EmailVerificationToken, Membership, PasswordResetToken, Role, User

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    user: User


@dataclass(frozen=True)
class VerificationRequired:
    email: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


# =============================================================================
# Token issuance
# =============================================================================

def build_access_claims(db: Session, user: User) -> AccessTokenClaims:
    """Snapshot of the user's memberships at issuance time."""
    memberships = db.execute(
        select(Membership.workspace_id, Membership.role).where(Membership.user_id == user.id)
    ).all()
    return AccessTokenClaims(
        id=user.id,
        name=user.name,
        email_verified=user.email_verified,
        memberships=[
            MembershipClaim(workspace_id=workspace_id, role=Role(role))
            for workspace_id, role in memberships
        ],
    )


def issue_token_pair(db: Session, user: User, reason: str) -> TokenPair:
    tokens_issued.labels(reason=reason).inc()
    return TokenPair(
        access_token=issue_access_token(build_access_claims(db, user)),
        refresh_token=issue_refresh_token(user.id),
        user=user,
    )


# =============================================================================
# Email verification
# =============================================================================

def _create_verification_code(db: Session, user: User) -> str:
    """Stage a new OTP for the user. Caller commits."""
    code = generate_otp()
    db.add(EmailVerificationToken(
        user_id=user.id,
        token=code,
        expires_at=_now() + timedelta(minutes=settings.EMAIL_VERIFICATION_EXPIRE_MINUTES),
    ))
    return code


def register(db: Session, name: str, email: str, password: str) -> User:
    """Create an unverified user and send the first verification code."""
    if get_user_by_email(db, email) is not None:
        auth_events.labels(event="register", outcome="conflict").inc()
        raise conflict("An account with this email already exists.")

    user = User(name=name, email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.flush()
        code = _create_verification_code(db, user)
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        auth_events.labels(event="register", outcome="conflict").inc()
        raise conflict("An account with this email already exists.")

    db.refresh(user)
    mailer.send_verification_code(user.email, code)
    auth_events.labels(event="register", outcome="success").inc()
    logger.info("auth.registered", user_id=str(user.id))
    return user


def send_verification(db: Session, email: str) -> None:
    """
    Re-send a verification code.

    Unknown and already-verified emails complete silently so the endpoint
    cannot be used to discover accounts.
    """
    user = get_user_by_email(db, email)
    if user is None or user.email_verified:
        logger.info("auth.verification.skipped", reason="unknown_or_verified")
        return

    code = _create_verification_code(db, user)
    db.commit()
    mailer.send_verification_code(user.email, code)


def verify_email(db: Session, email: str, otp: str) -> TokenPair:
    """Consume a valid OTP, mark the email verified and log the user in."""
    token = db.execute(
        select(EmailVerificationToken)
        .join(User, User.id == EmailVerificationToken.user_id)
        .where(
            User.email == email,
            EmailVerificationToken.token == otp.upper(),
            EmailVerificationToken.expires_at >= _now(),
        )
    ).scalars().first()

    if token is None:
        auth_events.labels(event="verify_email", outcome="invalid").inc()
        raise unauthorized("Invalid or expired verification code.")

    user = token.user
    user.email_verified = True
    db.execute(
        delete(EmailVerificationToken).where(EmailVerificationToken.user_id == user.id)
    )
    db.commit()
    db.refresh(user)

    auth_events.labels(event="verify_email", outcome="success").inc()
    logger.info("auth.email_verified", user_id=str(user.id))
    return issue_token_pair(db, user, reason="verify_email")


# =============================================================================
# Login / refresh / logout
# =============================================================================

def login(db: Session, email: str, password: str) -> TokenPair | VerificationRequired:
    user = get_user_by_email(db, email)

    # Same message for unknown email and wrong password
    if user is None or not verify_password(password, user.password_hash):
        auth_events.labels(event="login", outcome="invalid_credentials").inc()
        logger.info("auth.login.failed", reason="invalid_credentials")
        raise unauthorized(INVALID_CREDENTIALS)

    if not user.email_verified:
        code = _create_verification_code(db, user)
        db.commit()
        mailer.send_verification_code(user.email, code)
        auth_events.labels(event="login", outcome="verification_required").inc()
        return VerificationRequired(email=user.email)

    auth_events.labels(event="login", outcome="success").inc()
    logger.info("auth.login.succeeded", user_id=str(user.id))
    return issue_token_pair(db, user, reason="login")


def refresh(db: Session, refresh_token: str) -> TokenPair:
    """
    Rotate a refresh token.

    The presented token is revoked before a new pair is issued. Revocation
    is an atomic claim, so of concurrent refreshes with the same token only
    one succeeds.
    """
    try:
        claims = decode_refresh_token(refresh_token)
    except InvalidTokenError as e:
        auth_events.labels(event="refresh", outcome="invalid").inc()
        raise unauthorized("Invalid or expired refresh token.") from e

    if not revoke_refresh_token(claims):
        auth_events.labels(event="refresh", outcome="revoked").inc()
        logger.warning("auth.refresh.revoked_token_used", user_id=str(claims.id))
        raise unauthorized("Refresh token has been revoked.")

    user = db.get(User, claims.id)
    if user is None:
        auth_events.labels(event="refresh", outcome="unknown_user").inc()
        raise unauthorized("User not found.")

    auth_events.labels(event="refresh", outcome="success").inc()
    return issue_token_pair(db, user, reason="refresh")


def logout(refresh_token: str | None) -> None:
    """
    Revoke the refresh token if one was presented and is still valid.

    A Redis outage is logged and does not fail the logout; the caller
    still clears the session cookies.
    """
    if not refresh_token:
        return
    try:
        claims = decode_refresh_token(refresh_token)
    except InvalidTokenError:
        # Nothing to revoke: the token can no longer be exchanged anyway
        return
    try:
        revoke_refresh_token(claims)
    except RedisError:
        auth_events.labels(event="logout", outcome="revocation_failed").inc()
        logger.exception("auth.logout.revocation_failed", user_id=str(claims.id))
        return
    auth_events.labels(event="logout", outcome="success").inc()


# =============================================================================
# Password reset
# =============================================================================

def forgot_password(db: Session, email: str) -> None:
    """
    Issue a single-use reset token (stored hashed).

    Unknown emails complete silently so accounts cannot be enumerated.
    """
    user = get_user_by_email(db, email)
    if user is None:
        logger.info("auth.password_reset.skipped", reason="unknown_email")
        return

    token = generate_token()
    db.add(PasswordResetToken(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=_now() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
    ))
    db.commit()
    mailer.send_password_reset(user.email, token)
    auth_events.labels(event="forgot_password", outcome="success").inc()


def reset_password(db: Session, token: str, new_password: str) -> User:
    """Set a new password and burn every outstanding reset token for the user."""
    reset_token = db.execute(
        select(PasswordResetToken).where(
            PasswordResetToken.token_hash == hash_token(token),
            PasswordResetToken.expires_at >= _now(),
        )
    ).scalar_one_or_none()

    if reset_token is None:
        auth_events.labels(event="reset_password", outcome="invalid").inc()
        raise unauthorized("Invalid or expired password reset token.")

    user = reset_token.user
    user.password_hash = hash_password(new_password)
    db.execute(
        delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
    )
    db.commit()

    auth_events.labels(event="reset_password", outcome="success").inc()
    logger.info("auth.password_reset", user_id=str(user.id))
    return user


# =============================================================================
# Profile
# =============================================================================

def get_me(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise not_found("User not found.")
    return user
