"""
Password hashing, JWT issuance/verification and opaque token helpers.

Two token kinds, each with its own signing secret:
- access:  sub, name, email_verified, memberships, 24h
- refresh: sub only, 7d (carries a jti so it can be revoked)
"""
import hashlib
import secrets
import string
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from pydantic import BaseModel, ValidationError

from nexus.core.config import settings
from nexus.models.enums import Role

ph = PasswordHasher()

OTP_ALPHABET = string.ascii_uppercase + string.digits
OTP_LENGTH = 6


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    """Hash password using Argon2 (salted per hash)."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against hash."""
    try:
        ph.verify(password_hash, password)
        return True
    except (VerificationError, InvalidHashError):
        return False


# =============================================================================
# Opaque tokens
# =============================================================================

def generate_otp() -> str:
    """6-character upper-case alphanumeric code for email verification."""
    return "".join(secrets.choice(OTP_ALPHABET) for _ in range(OTP_LENGTH))


def generate_token() -> str:
    """32 random bytes as 64 hex characters (reset and invite tokens)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 hex digest, used to store reset tokens at rest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# =============================================================================
# JWT
# =============================================================================

class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class InvalidTokenError(Exception):
    """Bad signature, malformed token, or wrong token kind."""


class ExpiredTokenError(InvalidTokenError):
    """Token is past its exp claim."""


class ImmatureTokenError(InvalidTokenError):
    """Token is not valid yet (nbf/iat in the future)."""


class MembershipClaim(BaseModel):
    workspace_id: uuid.UUID
    role: Role


class AccessTokenClaims(BaseModel):
    """Identity claims embedded in an access token. Roles here are hints only."""
    id: uuid.UUID
    name: str
    email_verified: bool
    memberships: list[MembershipClaim] = []


class RefreshTokenClaims(BaseModel):
    id: uuid.UUID
    jti: str
    expires_at: datetime


def _secret_for(kind: TokenKind) -> str:
    if kind is TokenKind.ACCESS:
        return settings.JWT_SECRET_KEY
    return settings.JWT_REFRESH_SECRET_KEY


def _encode(payload: dict[str, Any], kind: TokenKind, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **payload,
        "type": kind.value,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, _secret_for(kind), algorithm=settings.JWT_ALGORITHM)


def issue_access_token(claims: AccessTokenClaims) -> str:
    """Create JWT access token (24h by default)."""
    payload = {
        "sub": str(claims.id),
        "name": claims.name,
        "email_verified": claims.email_verified,
        "memberships": [
            {"workspace_id": str(m.workspace_id), "role": m.role.value}
            for m in claims.memberships
        ],
    }
    return _encode(payload, TokenKind.ACCESS, timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))


def issue_refresh_token(user_id: uuid.UUID) -> str:
    """Create JWT refresh token (7d by default)."""
    return _encode(
        {"sub": str(user_id)},
        TokenKind.REFRESH,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def verify_token(token: str, kind: TokenKind) -> dict[str, Any]:
    """
    Decode and validate a token of the given kind.

    Raises ExpiredTokenError, ImmatureTokenError or InvalidTokenError.
    """
    try:
        payload = jwt.decode(
            token,
            _secret_for(kind),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp", "iat", "jti"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise ExpiredTokenError("Token has expired") from e
    except jwt.ImmatureSignatureError as e:
        raise ImmatureTokenError("Token not active yet") from e
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError("Invalid token") from e

    if payload.get("type") != kind.value:
        raise InvalidTokenError("Invalid token type")

    return payload


def decode_access_token(token: str) -> AccessTokenClaims:
    payload = verify_token(token, TokenKind.ACCESS)
    try:
        return AccessTokenClaims(
            id=payload["sub"],
            name=payload.get("name", ""),
            email_verified=payload.get("email_verified", False),
            memberships=payload.get("memberships", []),
        )
    except ValidationError as e:
        raise InvalidTokenError("Invalid token payload") from e


def decode_refresh_token(token: str) -> RefreshTokenClaims:
    payload = verify_token(token, TokenKind.REFRESH)
    try:
        return RefreshTokenClaims(
            id=payload["sub"],
            jti=payload["jti"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except ValidationError as e:
        raise InvalidTokenError("Invalid token payload") from e
