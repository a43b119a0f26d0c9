"""Authentication helpers: JWTs, refresh cookies, password hashing.

Pipeline:
- create_access_token / decode_access_token: short-lived bearer token
  (claims sub, name, roles, jti)
- create_refresh_token / decode_refresh_token: long-lived token carried in
  an httpOnly cookie (claims sub, sid, jti)
- hash_refresh_token: SHA-256 stored on the session row
- hash_password / verify_password: bcrypt, timing-safe on unknown users
- validate_password_strength: format rules
"""

import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Response

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

# bcrypt cost factor for password hashing
_BCRYPT_ROUNDS = 12

_ACCESS_TOKEN_TYPE = "access"
_REFRESH_TOKEN_TYPE = "refresh"  # nosec B105

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


@dataclass(frozen=True)
class AccessClaims:
    """Decoded access-token claims."""

    user_id: str
    username: str
    roles: frozenset[str]
    jti: str


@dataclass(frozen=True)
class RefreshClaims:
    """Decoded refresh-token claims."""

    user_id: str
    session_id: str
    jti: str


def _secret() -> str:
    return settings.auth_secret.get_secret_value()


def _encode(payload: dict, expires_delta: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        **payload,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "iat": now,
        "exp": now + expires_delta,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _secret(), algorithm="HS256")


def _decode(token: str, token_type: str) -> dict:
    payload = jwt.decode(
        token,
        _secret(),
        algorithms=["HS256"],
        audience=settings.auth_audience,
        issuer=settings.auth_issuer,
        options={"require": ["exp", "iat", "sub", "jti"]},
    )
    if payload.get("typ") != token_type:
        msg = f"Expected a {token_type} token"
        raise jwt.InvalidTokenError(msg)
    return payload


def create_access_token(
    *,
    user_id: str,
    username: str,
    roles: frozenset[str] | set[str],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: User UUID string for the sub claim.
        username: Display name for the name claim.
        roles: Role names for the roles claim.
        expires_delta: Lifetime. Defaults to settings.access_token_minutes.

    Returns:
        Encoded JWT string.
    """
    return _encode(
        {
            "sub": user_id,
            "name": username,
            "roles": sorted(roles),
            "typ": _ACCESS_TOKEN_TYPE,
        },
        expires_delta or timedelta(minutes=settings.access_token_minutes),
    )


def decode_access_token(token: str) -> AccessClaims:
    """Verify and decode an access token.

    Raises:
        jwt.InvalidTokenError: Bad signature, expired, wrong audience,
            issuer or token type, or missing claims.
    """
    payload = _decode(token, _ACCESS_TOKEN_TYPE)
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return AccessClaims(
        user_id=payload["sub"],
        username=payload.get("name", ""),
        roles=frozenset(roles),
        jti=payload["jti"],
    )


def create_refresh_token(
    *,
    user_id: str,
    session_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed refresh token bound to a session."""
    return _encode(
        {"sub": user_id, "sid": session_id, "typ": _REFRESH_TOKEN_TYPE},
        expires_delta or timedelta(days=settings.refresh_token_days),
    )


def decode_refresh_token(token: str) -> RefreshClaims:
    """Verify and decode a refresh token.

    Raises:
        jwt.InvalidTokenError: For any invalid token, including a missing sid.
    """
    payload = _decode(token, _REFRESH_TOKEN_TYPE)
    session_id = payload.get("sid")
    if not session_id:
        msg = "Refresh token has no session id"
        raise jwt.InvalidTokenError(msg)
    return RefreshClaims(
        user_id=payload["sub"], session_id=session_id, jti=payload["jti"]
    )


def hash_refresh_token(token: str) -> str:
    """SHA-256 hex digest stored on the session row."""
    return hashlib.sha256(token.encode()).hexdigest()


def set_refresh_cookie(response: Response, token: str) -> None:
    """Set the httpOnly refresh-token cookie on the response."""
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite=settings.refresh_cookie_samesite,
        path="/",
        max_age=int(timedelta(days=settings.refresh_token_days).total_seconds()),
    )


def delete_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path="/",
        secure=settings.refresh_cookie_secure,
        httponly=True,
        samesite=settings.refresh_cookie_samesite,
    )


def hash_password(password: str) -> str:
    """bcrypt hash, cost factor 12."""
    salt = bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode(), salt).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password; still spends bcrypt time when there is no hash."""
    if not password_hash:
        bcrypt.checkpw(password.encode(), DUMMY_HASH)
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def validate_password_strength(password: str) -> None:
    """Validate password meets strength requirements.

    8-128 chars with an uppercase letter, a lowercase letter, a digit and a
    special character.

    Raises:
        ValidationError: With a ``password`` field message per broken rule.
    """
    problems = []
    if len(password) < 8:
        problems.append("Password must be at least 8 characters")
    if len(password) > 128:
        problems.append("Password must be at most 128 characters")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain a lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain a digit")
    if not re.search(r"[^a-zA-Z\d]", password):
        problems.append("Password must contain a special character")
    if problems:
        raise ValidationError(errors={"password": problems})
