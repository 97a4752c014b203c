"""
Refresh token denylist backed by Redis.

Contract:
- Key: revoked:refresh:{jti}
- TTL: remaining lifetime of the token (the key disappears when the
  token would have expired anyway)
- Revocation is a SET NX claim: of several concurrent revocations of the
  same jti exactly one wins, and a jti present in the store is never
  honored again
"""
from datetime import datetime, timezone

import structlog

from nexus.core.redis import redis_client
from nexus.core.security import RefreshTokenClaims

logger = structlog.get_logger(__name__)

KEY_PREFIX = "revoked:refresh:"


def _key(jti: str) -> str:
    return f"{KEY_PREFIX}{jti}"


def revoke_refresh_token(claims: RefreshTokenClaims) -> bool:
    """
    Add a refresh token's jti to the denylist until it expires.

    Returns True when this call revoked the token, False when it was
    already revoked.
    """
    remaining = int((claims.expires_at - datetime.now(timezone.utc)).total_seconds())
    claimed = redis_client.set(_key(claims.jti), str(claims.id), ex=max(remaining, 1), nx=True)
    if not claimed:
        return False
    logger.info("auth.refresh_token.revoked", user_id=str(claims.id), jti=claims.jti)
    return True
